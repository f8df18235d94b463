"""Content change classifier - replaced text or imagery."""

from __future__ import annotations

from ...domain.entities.classification import ClassificationResult, DifferenceType
from ...domain.entities.region import DifferenceRegion
from ..image_ops import ColorStats, color_statistics, edge_statistics
from .base import AnalysisContext, DifferenceClassifier


def dominant_color_change(original: ColorStats, compared: ColorStats) -> float:
    """Share of dominant colors (0-1) that are missing or changed a lot in count."""
    if not original.dominant_colors or not compared.dominant_colors:
        return 1.0

    original_counts = dict(original.dominant_colors)
    compared_counts = dict(compared.dominant_colors)
    all_colors = set(original_counts) | set(compared_counts)

    matching = 0
    for color, count in original_counts.items():
        other = compared_counts.get(color)
        if other is not None and abs(count - other) / max(count, other) < 0.3:
            matching += 1
    return 1.0 - matching / len(all_colors)


class ContentClassifier(DifferenceClassifier):
    """Flags replaced content via color distribution and edge density shifts."""

    name = "content"
    priority = 5

    min_coverage = 5.0
    edge_density_high = 0.1
    edge_density_text = 0.3
    edge_change = 0.05
    variance_high = 1000.0
    color_change = 0.3
    large_region_pixels = 1000

    def can_classify(self, region: DifferenceRegion, context: AnalysisContext) -> bool:
        return region.coverage >= self.min_coverage

    def classify(
        self, region: DifferenceRegion, context: AnalysisContext
    ) -> ClassificationResult | None:
        original, compared = self.region_pair(region.bounds, context)

        original_colors = color_statistics(original)
        compared_colors = color_statistics(compared)
        original_edges = edge_statistics(original)
        compared_edges = edge_statistics(compared)

        variance_change = abs(original_colors.variance - compared_colors.variance)
        edge_density_change = abs(original_edges.edge_density - compared_edges.edge_density)
        color_change = dominant_color_change(original_colors, compared_colors)

        high_edge_density = max(original_edges.edge_density, compared_edges.edge_density) > self.edge_density_high
        high_variance = max(original_colors.variance, compared_colors.variance) > self.variance_high
        significant_color_change = color_change > self.color_change

        confidence = 0.0
        if high_edge_density:
            confidence += 0.3
        if edge_density_change > self.edge_change:
            confidence += 0.2
        if high_variance:
            confidence += 0.2
        if significant_color_change:
            confidence += 0.2
        if region.pixel_count > self.large_region_pixels:
            confidence += 0.1

        if region.coverage > 50:
            confidence += 0.2
        elif region.coverage > 30:
            confidence += 0.1

        confidence = min(confidence, 1.0)
        if confidence < self.floor:
            return None

        if max(original_edges.edge_density, compared_edges.edge_density) > self.edge_density_text:
            subtype = "text"
        elif high_variance and high_edge_density:
            subtype = "image"
        elif not high_edge_density and significant_color_change:
            subtype = "solid"
        else:
            subtype = "mixed"

        return ClassificationResult(
            type=DifferenceType.CONTENT,
            confidence=confidence,
            subtype=subtype,
            details={
                "edge_density_change": edge_density_change,
                "color_variance_change": variance_change,
                "dominant_color_change": color_change,
                "original_edge_density": original_edges.edge_density,
                "compared_edge_density": compared_edges.edge_density,
            },
        )
