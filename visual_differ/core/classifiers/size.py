"""Size change classifier - elements grown, shrunk or stretched."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ...domain.entities.classification import ClassificationResult, DifferenceType
from ...domain.entities.region import DifferenceRegion
from ..image_ops import (
    RGBAArray,
    color_difference_map,
    edge_map,
    gray_histogram,
    histogram_intersection,
)
from .base import AnalysisContext, DifferenceClassifier


@dataclass(frozen=True, slots=True)
class ElementBounds:
    """Inclusive pixel bounds of the element inside a block."""
    top: int
    bottom: int
    left: int
    right: int

    @property
    def width(self) -> int:
        return self.right - self.left + 1

    @property
    def height(self) -> int:
        return self.bottom - self.top + 1

    def crop(self, data: RGBAArray) -> RGBAArray:
        return data[self.top:self.bottom + 1, self.left:self.right + 1]


def corner_background(data: RGBAArray) -> tuple[int, int, int]:
    """Most frequent exact corner color (first corner wins ties)."""
    h, w = data.shape[:2]
    corners = [tuple(int(c) for c in data[y, x, :3]) for y, x in ((0, 0), (0, w - 1), (h - 1, 0), (h - 1, w - 1))]
    return max(corners, key=corners.count)


def detect_element_bounds(data: RGBAArray, color_threshold: int = 30) -> ElementBounds:
    """Bounds of the Sobel edges in a block.

    Falls back to pixels that differ from the corner background color when
    there are no edges, and to the whole block when nothing stands out.
    """
    h, w = data.shape[:2]
    found = edge_map(data)
    if not np.any(found):
        found = color_difference_map(data, corner_background(data)) > color_threshold

    if not np.any(found):
        return ElementBounds(0, h - 1, 0, w - 1)

    rows = np.flatnonzero(found.any(axis=1))
    cols = np.flatnonzero(found.any(axis=0))
    return ElementBounds(int(rows[0]), int(rows[-1]), int(cols[0]), int(cols[-1]))


class SizeClassifier(DifferenceClassifier):
    """Flags dimensional changes from element boundaries and content similarity."""

    name = "size"
    priority = 3

    min_coverage = 5.0
    max_coverage = 80.0
    change_threshold = 0.05
    similarity_threshold = 0.7

    def can_classify(self, region: DifferenceRegion, context: AnalysisContext) -> bool:
        return self.min_coverage <= region.coverage <= self.max_coverage

    def classify(
        self, region: DifferenceRegion, context: AnalysisContext
    ) -> ClassificationResult | None:
        original, compared = self.region_pair(region.bounds, context)

        original_bounds = detect_element_bounds(original)
        compared_bounds = detect_element_bounds(compared)

        width_change = (compared_bounds.width - original_bounds.width) / original_bounds.width
        height_change = (compared_bounds.height - original_bounds.height) / original_bounds.height
        original_aspect = original_bounds.width / original_bounds.height
        compared_aspect = compared_bounds.width / compared_bounds.height
        aspect_change = abs(compared_aspect - original_aspect) / original_aspect
        uniform = abs(width_change - height_change) < 0.1

        threshold = self.change_threshold
        if width_change > threshold and height_change > threshold:
            expansion = "expand"
        elif width_change < -threshold and height_change < -threshold:
            expansion = "shrink"
        elif abs(width_change) > threshold or abs(height_change) > threshold:
            expansion = "stretch"
        else:
            expansion = "none"
        boundary_changed = expansion != "none"

        similarity = histogram_intersection(
            gray_histogram(original_bounds.crop(original)),
            gray_histogram(compared_bounds.crop(compared)),
        )
        content_preserved = similarity > self.similarity_threshold

        confidence = 0.0
        if boundary_changed:
            confidence += 0.3
        if content_preserved:
            confidence += 0.3
        if abs(width_change) > 0.1:
            confidence += 0.15
        if abs(height_change) > 0.1:
            confidence += 0.15
        if uniform:
            confidence += 0.1

        if not uniform and aspect_change > 0.2:
            confidence *= 0.8
        if region.coverage > 70:
            confidence *= 0.7

        confidence = min(confidence, 1.0)
        if confidence < self.floor:
            return None

        if uniform:
            subtype = {"expand": "scale-up", "shrink": "scale-down"}.get(expansion, "scale")
        elif abs(width_change) > abs(height_change) * 2:
            subtype = "horizontal-resize"
        elif abs(height_change) > abs(width_change) * 2:
            subtype = "vertical-resize"
        elif aspect_change > 0.2:
            subtype = "aspect-change"
        else:
            subtype = expansion

        return ClassificationResult(
            type=DifferenceType.SIZE,
            confidence=confidence,
            subtype=subtype,
            details={
                "width_change": width_change,
                "height_change": height_change,
                "aspect_ratio_change": aspect_change,
                "original_size": (original_bounds.width, original_bounds.height),
                "compared_size": (compared_bounds.width, compared_bounds.height),
                "content_similarity": similarity,
            },
        )
