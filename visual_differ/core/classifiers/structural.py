"""Structural change classifier - elements added or removed."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ...domain.entities.classification import ClassificationResult, DifferenceType
from ...domain.entities.region import DifferenceRegion
from ..image_ops import RGBAArray, background_color, color_difference_map, edge_statistics
from .base import AnalysisContext, DifferenceClassifier


@dataclass(frozen=True, slots=True)
class ContentPresence:
    """How much of a block stands out from its background."""
    has_content: bool
    density: float
    edge_count: int
    edge_density: float


def analyze_presence(data: RGBAArray, color_threshold: int = 30) -> ContentPresence:
    """Measure non-background content of a block.

    A pixel is content when its color is far from the sampled border
    background or it is not (nearly) opaque.
    """
    background = background_color(data)
    content = (color_difference_map(data, background) > color_threshold) | (data[:, :, 3] < 250)
    density = float(np.count_nonzero(content)) / content.size
    edges = edge_statistics(data)
    return ContentPresence(
        has_content=density > 0.05 or edges.edge_count > 10,
        density=density,
        edge_count=edges.edge_count,
        edge_density=edges.edge_density,
    )


def filled_quadrants(data: RGBAArray, color_threshold: int = 30) -> tuple[int, str]:
    """Count quadrants holding non-background pixels, and name their pattern."""
    h, w = data.shape[:2]
    content = color_difference_map(data, background_color(data)) > color_threshold
    mid_y, mid_x = h // 2, w // 2
    quads = [
        bool(np.any(content[:mid_y, :mid_x])),
        bool(np.any(content[:mid_y, mid_x:])),
        bool(np.any(content[mid_y:, :mid_x])),
        bool(np.any(content[mid_y:, mid_x:])),
    ]
    filled = sum(quads)

    pattern = "scattered"
    if filled == 4:
        pattern = "full"
    elif filled == 2:
        if (quads[0] and quads[1]) or (quads[2] and quads[3]):
            pattern = "horizontal"
        elif (quads[0] and quads[2]) or (quads[1] and quads[3]):
            pattern = "vertical"
    elif filled == 1:
        pattern = "corner"
    return filled, pattern


def change_pattern(data: RGBAArray, presence: ContentPresence, added: bool) -> str:
    """Describe what kind of element appeared (``added``) or disappeared."""
    filled, _ = filled_quadrants(data)
    if presence.edge_density > 0.3:
        return "text"
    if filled >= 3:
        return "block"
    if presence.edge_density > 0.1 or not added:
        return "element"
    return "content"


class StructuralClassifier(DifferenceClassifier):
    """Flags added or removed elements via background presence and quadrant fill.

    Presence is measured on the region grown by ``context_margin`` pixels so
    the border background comes from around the element, not from it.
    """

    name = "structural"
    priority = 7

    min_coverage = 30.0
    context_margin = 4

    def can_classify(self, region: DifferenceRegion, context: AnalysisContext) -> bool:
        return region.coverage >= self.min_coverage

    def classify(
        self, region: DifferenceRegion, context: AnalysisContext
    ) -> ClassificationResult | None:
        bounds = region.bounds.expand(self.context_margin).clamp(
            context.original.width, context.original.height
        )
        original, compared = self.region_pair(bounds, context)

        before = analyze_presence(original)
        after = analyze_presence(compared)

        is_addition = not before.has_content and after.has_content
        is_removal = before.has_content and not after.has_content
        is_partial = before.has_content and after.has_content

        if is_addition:
            kind, pattern = "addition", change_pattern(compared, after, added=True)
        elif is_removal:
            kind, pattern = "removal", change_pattern(original, before, added=False)
        elif is_partial:
            ratio = after.density / before.density if before.density else float("inf")
            if ratio > 1.5:
                kind, pattern = "expansion", "content-increase"
            elif ratio < 0.5:
                kind, pattern = "reduction", "content-decrease"
            else:
                kind, pattern = "modification", "content-change"
        else:
            kind, pattern = "unknown", "none"

        density_change = abs(after.density - before.density)

        confidence = 0.0
        if is_addition or is_removal:
            confidence += 0.7  # one side empty, the other not
        if density_change > 0.5:
            confidence += 0.4
        if is_partial:
            confidence *= 0.7
        if region.coverage > 70:
            confidence += 0.1

        confidence = min(confidence, 1.0)
        if confidence < self.floor:
            return None

        if is_addition:
            diff_type, subtype = DifferenceType.NEW_ELEMENT, f"new-{pattern}"
        elif is_removal:
            diff_type, subtype = DifferenceType.REMOVED_ELEMENT, f"removed-{pattern}"
        elif kind == "expansion":
            diff_type, subtype = DifferenceType.STRUCTURAL, "element-expansion"
        elif kind == "reduction":
            diff_type, subtype = DifferenceType.STRUCTURAL, "element-reduction"
        else:
            diff_type, subtype = DifferenceType.STRUCTURAL, "structural-modification"

        return ClassificationResult(
            type=diff_type,
            confidence=confidence,
            subtype=subtype,
            details={
                "change": kind,
                "pattern": pattern,
                "original_density": before.density,
                "compared_density": after.density,
                "original_edges": before.edge_count,
                "compared_edges": after.edge_count,
            },
        )
