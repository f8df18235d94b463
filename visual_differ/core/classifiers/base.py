"""Base class and shared context for difference classifiers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...config import CLASSIFICATION_CONFIG
from ...domain.entities.classification import ClassificationResult
from ...domain.entities.comparison import DifferenceMask
from ...domain.entities.image import Image
from ...domain.entities.region import DifferenceRegion
from ...domain.value_objects.geometry import BoundingBox
from ..image_ops import RGBAArray


@dataclass(frozen=True, slots=True)
class AnalysisContext:
    """Images a region is classified against.

    ``compared`` is the target already aligned into the reference frame.
    """
    original: Image
    compared: Image
    mask: DifferenceMask | None = None


class DifferenceClassifier(ABC):
    """Base class for region classifiers.

    Subclasses set ``name`` and ``priority`` (higher wins confidence ties)
    and implement ``can_classify`` and ``classify``.
    """

    name: str = "classifier"
    priority: int = 0

    # Built-ins discard results below this confidence
    floor: float = CLASSIFICATION_CONFIG.classifier_floor

    @abstractmethod
    def can_classify(self, region: DifferenceRegion, context: AnalysisContext) -> bool:
        """Cheap check whether this classifier applies to the region."""

    @abstractmethod
    def classify(
        self, region: DifferenceRegion, context: AnalysisContext
    ) -> ClassificationResult | None:
        """Classify the region, or return None if it does not match."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, priority={self.priority})"

    @staticmethod
    def region_pixels(image: Image, bounds: BoundingBox) -> RGBAArray:
        """RGBA block of ``image`` under ``bounds`` (clipped to the image)."""
        rows, cols = bounds.clamp(image.width, image.height).to_slices()
        return image.data[rows, cols]

    def region_pair(
        self, bounds: BoundingBox, context: AnalysisContext
    ) -> tuple[RGBAArray, RGBAArray]:
        """Pixel blocks of both images under ``bounds``."""
        return (
            self.region_pixels(context.original, bounds),
            self.region_pixels(context.compared, bounds),
        )
