"""Classification result entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from .region import DifferenceRegion


class DifferenceType(str, Enum):
    """Kinds of visual change a region can represent."""
    CONTENT = "content"
    STYLE = "style"
    LAYOUT = "layout"
    SIZE = "size"
    STRUCTURAL = "structural"
    NEW_ELEMENT = "new_element"
    REMOVED_ELEMENT = "removed_element"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Output of one classifier call. Confidence is clamped to [0, 1]."""
    type: DifferenceType
    confidence: float
    subtype: str | None = None
    details: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", min(1.0, max(0.0, float(self.confidence))))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))


@dataclass(frozen=True, slots=True)
class RegionClassification:
    """Classification outcome for a single region."""
    region: 'DifferenceRegion'
    result: ClassificationResult | None = None
    classifier: str | None = None
    candidates: tuple[tuple[str, ClassificationResult], ...] = ()

    @property
    def is_classified(self) -> bool:
        return self.result is not None

    @property
    def type(self) -> DifferenceType:
        return self.result.type if self.result else DifferenceType.UNKNOWN

    @property
    def confidence(self) -> float:
        return self.result.confidence if self.result else 0.0


@dataclass(frozen=True, slots=True)
class ConfidenceStats:
    """Min/avg/max confidence over classified regions."""
    min: float = 0.0
    avg: float = 0.0
    max: float = 0.0

    @classmethod
    def from_values(cls, values: list[float]) -> ConfidenceStats:
        if not values:
            return cls()
        return cls(min=min(values), avg=sum(values) / len(values), max=max(values))


@dataclass(frozen=True, slots=True)
class ClassificationSummary:
    """Aggregate classification over all regions of one comparison."""
    total_regions: int
    classified_regions: int
    unclassified_regions: int
    by_type: Mapping[DifferenceType, int]
    confidence: ConfidenceStats
    regions: tuple[RegionClassification, ...] = ()

    @classmethod
    def from_classifications(
        cls, classifications: list[RegionClassification]
    ) -> ClassificationSummary:
        """Tally a list of per-region outcomes."""
        by_type = {t: 0 for t in DifferenceType}
        confidences: list[float] = []
        for rc in classifications:
            by_type[rc.type] += 1
            if rc.is_classified:
                confidences.append(rc.confidence)

        return cls(
            total_regions=len(classifications),
            classified_regions=len(confidences),
            unclassified_regions=len(classifications) - len(confidences),
            by_type=MappingProxyType(by_type),
            confidence=ConfidenceStats.from_values(confidences),
            regions=tuple(classifications),
        )

    def regions_of_type(self, diff_type: DifferenceType) -> list[RegionClassification]:
        return [rc for rc in self.regions if rc.type == diff_type]

    def summary_text(self) -> str:
        """Short human-readable digest."""
        if self.total_regions == 0:
            return "No differences detected."

        lines = [
            f"Found {self.total_regions} difference region(s): "
            f"{self.classified_regions} classified, {self.unclassified_regions} unclassified."
        ]
        counts = [
            f"{count} {diff_type.value.replace('_', ' ')}"
            for diff_type, count in self.by_type.items()
            if count and diff_type is not DifferenceType.UNKNOWN
        ]
        if counts:
            lines.append("Types: " + ", ".join(counts) + ".")
        if self.classified_regions:
            lines.append(
                f"Confidence: min {self.confidence.min:.0%}, "
                f"avg {self.confidence.avg:.0%}, max {self.confidence.max:.0%}."
            )
        return "\n".join(lines)
