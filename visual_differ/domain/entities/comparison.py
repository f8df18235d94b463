"""Comparison output entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt

if TYPE_CHECKING:
    from .alignment import AlignmentResult
    from .classification import ClassificationSummary
    from .image import Image
    from .region import DifferenceRegion


@dataclass(frozen=True, slots=True)
class DifferenceMask:
    """Per-pixel differing/same bitmap.

    Excluded pixels are always False in ``data``.
    """
    data: npt.NDArray[np.bool_]
    excluded: npt.NDArray[np.bool_] | None = None

    def __post_init__(self) -> None:
        data = np.array(self.data, dtype=bool)
        if self.excluded is not None:
            excluded = np.array(self.excluded, dtype=bool)
            data &= ~excluded
            excluded.setflags(write=False)
            object.__setattr__(self, "excluded", excluded)
        data.setflags(write=False)
        object.__setattr__(self, "data", data)

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def pixel_count(self) -> int:
        """Number of differing pixels."""
        return int(np.count_nonzero(self.data))

    @property
    def excluded_count(self) -> int:
        if self.excluded is None:
            return 0
        return int(np.count_nonzero(self.excluded))


@dataclass(frozen=True, slots=True)
class ComparisonStatistics:
    """Aggregate numbers for one comparison.

    ``percentage_different`` is relative to all pixels, excluded ones included.
    """
    pixels_different: int
    total_pixels: int
    percentage_different: float
    is_equal: bool
    excluded_pixels: int = 0

    @classmethod
    def from_counts(
        cls,
        pixels_different: int,
        total_pixels: int,
        equality_threshold: float,
        excluded_pixels: int = 0,
    ) -> ComparisonStatistics:
        percentage = pixels_different / total_pixels * 100 if total_pixels else 0.0
        return cls(
            pixels_different=pixels_different,
            total_pixels=total_pixels,
            percentage_different=percentage,
            is_equal=percentage <= equality_threshold,
            excluded_pixels=excluded_pixels,
        )


@dataclass(frozen=True, slots=True)
class ComparisonResult:
    """Result of comparing one image pair."""
    statistics: ComparisonStatistics
    mask: DifferenceMask
    regions: tuple['DifferenceRegion', ...] = ()
    diff_image: 'Image | None' = None
    classification: 'ClassificationSummary | None' = None
    alignment: 'AlignmentResult | None' = None

    @property
    def is_equal(self) -> bool:
        return self.statistics.is_equal

    @property
    def percentage_different(self) -> float:
        return self.statistics.percentage_different
