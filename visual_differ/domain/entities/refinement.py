"""Progressive refinement entities."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from .region import ExclusionRegion

if TYPE_CHECKING:
    from .alignment import AlignmentResult


class RefinementState(str, Enum):
    """States of the refinement loop."""
    INITIALIZING = "initializing"
    ANALYZING = "analyzing"
    GENERATING_EXCLUSIONS = "generating_exclusions"
    COMPARING = "comparing"
    CONVERGED = "converged"
    MAX_ITERATIONS_REACHED = "max_iterations_reached"

    @property
    def is_terminal(self) -> bool:
        return self in (RefinementState.CONVERGED, RefinementState.MAX_ITERATIONS_REACHED)


@dataclass(frozen=True, slots=True)
class RefinementIteration:
    """Record of one completed refinement pass.

    ``improvement`` is previous minus current difference, None on the first pass.
    ``excluded_area`` is the pixel area covered by the exclusions after the pass.
    """
    iteration: int
    difference: float
    regions_found: int
    exclusions_applied: tuple[ExclusionRegion, ...] = ()
    total_exclusions: int = 0
    improvement: float | None = None
    excluded_area: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "iteration": self.iteration,
            "difference": self.difference,
            "regions_found": self.regions_found,
            "exclusions_applied": [e.to_dict() for e in self.exclusions_applied],
            "total_exclusions": self.total_exclusions,
            "improvement": self.improvement,
            "excluded_area": self.excluded_area,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RefinementIteration:
        improvement = data.get("improvement")
        return cls(
            iteration=int(data["iteration"]),
            difference=float(data["difference"]),
            regions_found=int(data["regions_found"]),
            exclusions_applied=tuple(
                ExclusionRegion.from_dict(e) for e in data.get("exclusions_applied", [])
            ),
            total_exclusions=int(data.get("total_exclusions", 0)),
            improvement=None if improvement is None else float(improvement),
            excluded_area=int(data.get("excluded_area", 0)),
        )


@dataclass(frozen=True, slots=True)
class RefinementResult:
    """Final outcome of the refinement loop."""
    iterations: tuple[RefinementIteration, ...]
    initial_difference: float
    final_difference: float
    suggested_exclusions: tuple[ExclusionRegion, ...]
    converged: bool
    state: RefinementState
    alignment: 'AlignmentResult | None' = None

    @property
    def total_improvement(self) -> float:
        return self.initial_difference - self.final_difference

    def to_dict(self) -> dict[str, Any]:
        return {
            "iterations": [it.to_dict() for it in self.iterations],
            "initial_difference": self.initial_difference,
            "final_difference": self.final_difference,
            "suggested_exclusions": [e.to_dict() for e in self.suggested_exclusions],
            "converged": self.converged,
            "state": self.state.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RefinementResult:
        """Rebuild a saved result. The alignment is not persisted."""
        return cls(
            iterations=tuple(RefinementIteration.from_dict(it) for it in data.get("iterations", [])),
            initial_difference=float(data["initial_difference"]),
            final_difference=float(data["final_difference"]),
            suggested_exclusions=tuple(
                ExclusionRegion.from_dict(e) for e in data.get("suggested_exclusions", [])
            ),
            converged=bool(data["converged"]),
            state=RefinementState(data["state"]),
        )

    @classmethod
    def from_file(cls, filepath: Path | str) -> RefinementResult:
        """Load a refinement session from a JSON file."""
        filepath = Path(filepath)

        if not filepath.exists():
            raise FileNotFoundError(f"Refinement session not found: {filepath}")

        with open(filepath, 'r', encoding='utf-8') as f:
            data = json.load(f)

        return cls.from_dict(data)

    def to_file(self, filepath: Path | str) -> None:
        """Save this refinement session as JSON."""
        filepath = Path(filepath)
        filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)

    def summary_text(self) -> str:
        """Iteration digest, one line per pass."""
        status = "converged" if self.converged else "did not converge"
        lines = [
            f"Refinement {status} after {len(self.iterations)} iteration(s): "
            f"{self.initial_difference:.2f}% -> {self.final_difference:.2f}% "
            f"({self.total_improvement:.2f} points improved).",
        ]
        for it in self.iterations:
            improvement = "" if it.improvement is None else f", improvement {it.improvement:.2f}"
            lines.append(
                f"  #{it.iteration}: {it.difference:.2f}% different, "
                f"{it.regions_found} region(s), {len(it.exclusions_applied)} new exclusion(s)"
                f"{improvement}"
            )
        if self.suggested_exclusions:
            lines.append(f"Suggested exclusions: {len(self.suggested_exclusions)}")
            for ex in self.suggested_exclusions:
                b = ex.bounds
                lines.append(
                    f"  - {ex.name or 'unnamed'} at ({b.x}, {b.y}) {b.width}x{b.height}"
                    f" [{ex.confidence:.0%}]"
                )
        return "\n".join(lines)
