"""Style change classifier - palette changes over unchanged structure."""

from __future__ import annotations

import math

from ...domain.entities.classification import ClassificationResult, DifferenceType
from ...domain.entities.region import DifferenceRegion
from ..image_ops import EdgeStats, color_statistics, edge_statistics, hsl_statistics
from .base import AnalysisContext, DifferenceClassifier


def edge_preservation(original: EdgeStats, compared: EdgeStats) -> float:
    """How similar two edge summaries are, 1.0 for identical structure."""
    if original.edge_count == 0 or compared.edge_count == 0:
        return 1.0 if original.edge_count == compared.edge_count else 0.0

    density_ratio = min(
        original.edge_density / compared.edge_density,
        compared.edge_density / original.edge_density,
    )
    count_ratio = min(
        original.edge_count / compared.edge_count,
        compared.edge_count / original.edge_count,
    )
    return (density_ratio + count_ratio) / 2


def hue_shift(original: float, compared: float) -> float:
    """Angular hue distance normalized to 0-1."""
    diff = abs(original - compared) % 360.0
    if diff > 180.0:
        diff = 360.0 - diff
    return diff / 180.0


class StyleClassifier(DifferenceClassifier):
    """Flags color, brightness or contrast changes that keep edges intact."""

    name = "style"
    priority = 4

    min_coverage = 2.0
    preserved_threshold = 0.8
    change_threshold = 0.1

    def can_classify(self, region: DifferenceRegion, context: AnalysisContext) -> bool:
        return region.coverage >= self.min_coverage

    def classify(
        self, region: DifferenceRegion, context: AnalysisContext
    ) -> ClassificationResult | None:
        original, compared = self.region_pair(region.bounds, context)

        original_hsl = hsl_statistics(original)
        compared_hsl = hsl_statistics(compared)
        original_avg = color_statistics(original).average
        compared_avg = color_statistics(compared).average

        preservation = edge_preservation(edge_statistics(original), edge_statistics(compared))
        edges_preserved = preservation > self.preserved_threshold

        color_shift = math.dist(original_avg, compared_avg) / 255.0
        brightness_change = abs(original_hsl.brightness - compared_hsl.brightness)
        saturation_change = abs(original_hsl.saturation - compared_hsl.saturation)
        hue_change = hue_shift(original_hsl.hue, compared_hsl.hue)
        contrast_change = abs(original_hsl.contrast - compared_hsl.contrast)

        confidence = 0.0
        if edges_preserved:
            confidence += 0.3
        if color_shift > self.change_threshold:
            confidence += 0.2
        if brightness_change > self.change_threshold:
            confidence += 0.15
        if saturation_change > self.change_threshold:
            confidence += 0.15
        if hue_change > self.change_threshold:
            confidence += 0.1
        if contrast_change > self.change_threshold:
            confidence += 0.1

        # Structure changed too much for a pure restyle
        if not edges_preserved and region.coverage > 30:
            confidence *= 0.5

        confidence = min(confidence, 1.0)
        if confidence < self.floor:
            return None

        if brightness_change > 0.3 and edges_preserved:
            subtype = "theme"
        elif hue_change > 0.2 or color_shift > 0.2:
            subtype = "color-scheme"
        elif saturation_change > 0.2:
            subtype = "saturation"
        elif contrast_change > 0.2:
            subtype = "contrast"
        elif color_shift > 0.05:
            subtype = "color-adjustment"
        else:
            subtype = "subtle"

        return ClassificationResult(
            type=DifferenceType.STYLE,
            confidence=confidence,
            subtype=subtype,
            details={
                "color_shift": color_shift,
                "brightness_change": brightness_change,
                "saturation_change": saturation_change,
                "hue_shift": hue_change,
                "contrast_change": contrast_change,
                "edge_preservation": preservation,
                "edges_preserved": edges_preserved,
                "original_brightness": original_hsl.brightness,
                "compared_brightness": compared_hsl.brightness,
            },
        )
