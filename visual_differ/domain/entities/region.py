"""Difference and exclusion region entities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from ...exceptions import ValidationError
from ..value_objects.geometry import BoundingBox


@dataclass(frozen=True, slots=True)
class DifferenceRegion:
    """One connected cluster of differing pixels.

    Attributes:
        id: 1-based id in scan order of the top-left corner
        bounds: Bounding box inside the image
        pixel_count: Differing pixels belonging to this region
        difference_pixels: All differing mask pixels inside ``bounds``
        difference_percentage: ``pixel_count`` as a percent of the whole image
    """
    id: int
    bounds: BoundingBox
    pixel_count: int
    difference_pixels: int
    difference_percentage: float

    @property
    def coverage(self) -> float:
        """Percent of the bounding box that differs."""
        if self.bounds.area == 0:
            return 0.0
        return self.difference_pixels / self.bounds.area * 100


@dataclass(frozen=True, slots=True)
class ExclusionRegion:
    """Rectangle whose pixel differences are ignored.

    Caller-supplied regions have ``confidence`` 1.0 and ``origin_iteration`` 0;
    regions proposed by refinement record the pass that produced them.
    """
    bounds: BoundingBox
    name: str = ""
    reason: str | None = None
    confidence: float = 1.0
    origin_iteration: int = 0

    def __post_init__(self) -> None:
        if self.bounds.x < 0 or self.bounds.y < 0:
            raise ValidationError(
                f"Exclusion '{self.name}' has negative position ({self.bounds.x}, {self.bounds.y})",
                field="bounds",
            )
        if self.bounds.is_empty:
            raise ValidationError(f"Exclusion '{self.name}' has zero area", field="bounds")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValidationError(
                f"Exclusion confidence must be in [0, 1], got {self.confidence}",
                field="confidence",
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ExclusionRegion:
        """Create from ``{name, bounds: {x, y, width, height}, reason}``."""
        bounds = data.get("bounds")
        if not isinstance(bounds, Mapping):
            raise ValidationError("Exclusion is missing 'bounds'", field="bounds")
        try:
            box = BoundingBox(
                int(bounds["x"]), int(bounds["y"]),
                int(bounds["width"]), int(bounds["height"]),
            )
        except KeyError as e:
            raise ValidationError(f"Exclusion bounds missing {e.args[0]!r}", field="bounds") from e
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Invalid exclusion bounds: {e}", field="bounds") from e

        return cls(
            bounds=box,
            name=str(data.get("name", "")),
            reason=data.get("reason"),
            confidence=float(data.get("confidence", 1.0)),
            origin_iteration=int(data.get("origin_iteration", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name, "bounds": self.bounds.to_dict()}
        if self.reason:
            result["reason"] = self.reason
        result["confidence"] = self.confidence
        result["origin_iteration"] = self.origin_iteration
        return result
