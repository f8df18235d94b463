"""Layout change classifier - content moved to a new position."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from ...domain.entities.classification import ClassificationResult, DifferenceType
from ...domain.entities.region import DifferenceRegion
from ..image_ops import RGBAArray, edge_statistics, gray_histogram, histogram_intersection, to_gray
from .base import AnalysisContext, DifferenceClassifier

_DIRECTIONS = ("right", "down-right", "down", "down-left", "left", "up-left", "up", "up-right")


@dataclass(frozen=True, slots=True)
class ShiftEstimate:
    """Best sampled shift between two pixel blocks."""
    dx: int
    dy: int
    score: float
    consistent: bool

    @property
    def distance(self) -> float:
        return math.hypot(self.dx, self.dy)

    @property
    def direction(self) -> str:
        """Compass direction in image coordinates (y grows downward)."""
        if self.distance <= 2:
            return "none"
        angle = math.degrees(math.atan2(self.dy, self.dx))
        return _DIRECTIONS[int(((angle + 22.5) % 360) // 45)]


def estimate_shift(
    original: RGBAArray,
    compared: RGBAArray,
    max_shift: int = 20,
    step: int = 2,
    sample_rate: int = 4,
    min_gray: float = 30.0,
    consistent_score: float = 200.0,
) -> ShiftEstimate:
    """Sampled cross-correlation search for where original content moved.

    Bright-enough original pixels on a ``sample_rate`` grid are compared with
    the compared block at every candidate shift; the score is the mean of
    ``255 - |gray difference|`` over samples that stay inside the block.
    """
    h, w = original.shape[:2]
    original_gray = to_gray(original)
    compared_gray = to_gray(compared)

    ys, xs = np.mgrid[0:h:sample_rate, 0:w:sample_rate]
    values = original_gray[ys, xs]
    keep = values > min_gray
    ys, xs, values = ys[keep], xs[keep], values[keep]

    best_dx, best_dy, best_score = 0, 0, 0.0
    if values.size:
        for dy in range(-max_shift, max_shift + 1, step):
            for dx in range(-max_shift, max_shift + 1, step):
                nx, ny = xs + dx, ys + dy
                inside = (nx >= 0) & (nx < w) & (ny >= 0) & (ny < h)
                if not np.any(inside):
                    continue
                diff = np.abs(values[inside] - compared_gray[ny[inside], nx[inside]])
                score = float(np.mean(255.0 - diff))
                if score > best_score:
                    best_dx, best_dy, best_score = dx, dy, score

    return ShiftEstimate(best_dx, best_dy, best_score, best_score > consistent_score)


class LayoutClassifier(DifferenceClassifier):
    """Flags positional shifts by correlating nearby content of both images."""

    name = "layout"
    priority = 6

    min_coverage = 10.0
    max_coverage = 70.0
    padding = 20
    similarity_threshold = 0.7
    alignment_threshold = 0.7

    def can_classify(self, region: DifferenceRegion, context: AnalysisContext) -> bool:
        return self.min_coverage <= region.coverage <= self.max_coverage

    def classify(
        self, region: DifferenceRegion, context: AnalysisContext
    ) -> ClassificationResult | None:
        bounds = region.bounds.expand(self.padding).clamp(context.original.width, context.original.height)
        original, compared = self.region_pair(bounds, context)

        shift = estimate_shift(original, compared)
        similarity = histogram_intersection(gray_histogram(original), gray_histogram(compared))

        original_edges = edge_statistics(original)
        compared_edges = edge_statistics(compared)
        if shift.consistent:
            edge_alignment = min(
                original_edges.edge_count / (compared_edges.edge_count or 1),
                compared_edges.edge_count / (original_edges.edge_count or 1),
            )
        else:
            edge_alignment = 0.0

        horizontal = abs(shift.dx) > abs(shift.dy)
        vertical = abs(shift.dy) > abs(shift.dx)

        confidence = 0.0
        if shift.consistent:
            confidence += 0.3
        if shift.distance > 5:
            confidence += 0.2
        if similarity > self.similarity_threshold:
            confidence += 0.2
        if edge_alignment > self.alignment_threshold:
            confidence += 0.2
        if horizontal or vertical:
            confidence += 0.1

        if region.coverage > 60:
            confidence *= 0.7
        if region.coverage < 15:
            confidence *= 0.8

        confidence = min(confidence, 1.0)
        if confidence < self.floor:
            return None

        if shift.distance < 5:
            subtype = "micro-shift"
        elif horizontal:
            subtype = "horizontal-shift"
        elif vertical:
            subtype = "vertical-shift"
        elif shift.distance > 20:
            subtype = "major-shift"
        else:
            subtype = "diagonal-shift"

        return ClassificationResult(
            type=DifferenceType.LAYOUT,
            confidence=confidence,
            subtype=subtype,
            details={
                "shift_x": shift.dx,
                "shift_y": shift.dy,
                "shift_distance": shift.distance,
                "direction": shift.direction,
                "structural_similarity": similarity,
                "edge_alignment": edge_alignment,
            },
        )
