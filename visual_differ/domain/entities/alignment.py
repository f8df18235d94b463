"""Alignment result entity."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import numpy as np
import numpy.typing as npt

from ...config import AlignmentMethod
from ...exceptions import AlignmentAttempt
from .image import Image


def translation_matrix(dx: float, dy: float) -> npt.NDArray[np.float64]:
    """Homography that maps target coordinates to reference coordinates.

    ``dx``/``dy`` is where reference content appears in the target, so the
    matrix shifts by the negated offset.
    """
    return np.array([[1.0, 0.0, -dx], [0.0, 1.0, -dy], [0.0, 0.0, 1.0]])


@dataclass(frozen=True, slots=True)
class AlignmentResult:
    """Outcome of the selected alignment strategy.

    Attributes:
        method: Strategy that produced the transform
        matrix: 3x3 homography mapping target pixels into the reference frame
        score: Quality in [0, 1] (1 - RMSE/255 over covered pixels)
        aligned: Target warped into the reference frame
        attempts: Every strategy tried, in order
        details: Strategy specific numbers (inliers, peak response, ...)
    """
    method: AlignmentMethod
    matrix: npt.NDArray[np.float64]
    score: float
    aligned: Image
    attempts: tuple[AlignmentAttempt, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        matrix = np.array(self.matrix, dtype=np.float64).reshape(3, 3)
        matrix.setflags(write=False)
        object.__setattr__(self, "matrix", matrix)
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    @property
    def is_translation(self) -> bool:
        """Check if the transform is a pure shift."""
        return bool(np.allclose(self.matrix[:2, :2], np.eye(2)) and
                    np.allclose(self.matrix[2], [0.0, 0.0, 1.0]))

    @property
    def offset(self) -> tuple[float, float]:
        """(dx, dy) position of reference content inside the target."""
        return (-float(self.matrix[0, 2]), -float(self.matrix[1, 2]))
