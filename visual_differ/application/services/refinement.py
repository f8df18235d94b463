"""Progressive refinement - iteratively exclude classified noise regions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from ...core.alignment import AlignmentOrchestrator
from ...core.classifiers.pipeline import ClassifierPipeline
from ...core.comparator import PixelComparator
from ...core.segmenter import RegionSegmenter
from ...domain.entities.comparison import ComparisonResult
from ...domain.entities.image import Image
from ...domain.entities.refinement import RefinementIteration, RefinementResult, RefinementState
from ...domain.entities.region import ExclusionRegion
from ...domain.services.exclusion_merging import (
    cluster_by_center,
    covered_area,
    merge_exclusions,
    union_bounds,
)
from ...domain.value_objects.config import ComparisonConfig, RefinementConfig
from .comparison import ImageComparisonService, load_image

logger = logging.getLogger(__name__)

# Allowed state transitions of the refinement loop
_TRANSITIONS: dict[RefinementState, frozenset[RefinementState]] = {
    RefinementState.INITIALIZING: frozenset({
        RefinementState.ANALYZING,
        RefinementState.CONVERGED,
        RefinementState.MAX_ITERATIONS_REACHED,
    }),
    RefinementState.ANALYZING: frozenset({RefinementState.GENERATING_EXCLUSIONS}),
    RefinementState.GENERATING_EXCLUSIONS: frozenset({RefinementState.COMPARING}),
    RefinementState.COMPARING: frozenset({
        RefinementState.ANALYZING,
        RefinementState.CONVERGED,
        RefinementState.MAX_ITERATIONS_REACHED,
    }),
    RefinementState.CONVERGED: frozenset(),
    RefinementState.MAX_ITERATIONS_REACHED: frozenset(),
}


class RefinementController:
    """Repeats compare -> classify -> exclude until the difference settles.

    Each pass turns confidently classified regions of the configured types
    into exclusion regions, so the next pass ignores them. The loop stops
    once the remaining difference is small enough, stops improving, or the
    iteration cap is hit.
    """

    def __init__(
        self,
        comparison_config: ComparisonConfig | None = None,
        orchestrator: AlignmentOrchestrator | None = None,
        comparator: PixelComparator | None = None,
        segmenter: RegionSegmenter | None = None,
        pipeline: ClassifierPipeline | None = None,
    ):
        # Regions must be classified for exclusions to be proposed
        config = (comparison_config or ComparisonConfig()).model_copy(
            update={"classify": True}
        )
        self._service = ImageComparisonService(
            config,
            orchestrator=orchestrator,
            comparator=comparator,
            segmenter=segmenter,
            pipeline=pipeline,
        )
        self._state = RefinementState.INITIALIZING

    @property
    def state(self) -> RefinementState:
        return self._state

    @property
    def comparison_service(self) -> ImageComparisonService:
        return self._service

    def _transition(self, new_state: RefinementState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(f"Invalid refinement transition: {self._state.value} -> {new_state.value}")
        logger.debug(f"Refinement state: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def refine(
        self,
        reference: Image | Path | str,
        target: Image | Path | str,
        initial_exclusions: Sequence[ExclusionRegion] = (),
        config: RefinementConfig | None = None,
    ) -> RefinementResult:
        """Run the refinement loop.

        Args:
            reference: Reference image or path
            target: Target image or path
            initial_exclusions: Caller-supplied exclusions, kept throughout
            config: Loop settings

        Returns:
            RefinementResult with one record per completed pass

        Raises:
            AlignmentError: If alignment is enabled and fails
            ComparisonError: If the images cannot be compared
        """
        config = config or RefinementConfig()
        reference, target = load_image(reference), load_image(target)
        self._state = RefinementState.INITIALIZING

        alignment = None
        if self._service.config.align:
            alignment = self._service.align(reference, target)

        exclusions = merge_exclusions(initial_exclusions)
        iterations: list[RefinementIteration] = []
        initial_difference = 0.0
        previous: float | None = None
        difference = 0.0
        converged = False

        for iteration in range(1, config.max_iterations + 1):
            result = self._service.compare(reference, target, exclusions, alignment=alignment)
            difference = result.percentage_different
            improvement = None if previous is None else previous - difference
            if previous is None:
                initial_difference = difference

            logger.info(
                f"Refinement pass {iteration}: {difference:.3f}% different, "
                f"{len(result.regions)} region(s), {len(exclusions)} exclusion(s)"
            )

            converged = difference <= config.target_difference_threshold or (
                improvement is not None and improvement < config.min_improvement
            )
            if converged or iteration == config.max_iterations:
                iterations.append(RefinementIteration(
                    iteration=iteration,
                    difference=difference,
                    regions_found=len(result.regions),
                    total_exclusions=len(exclusions),
                    improvement=improvement,
                    excluded_area=_excluded_area(exclusions, reference),
                ))
                break

            self._transition(RefinementState.ANALYZING)
            candidates = self._candidates(result, reference, config, iteration)

            self._transition(RefinementState.GENERATING_EXCLUSIONS)
            before = set(exclusions)
            exclusions = merge_exclusions(exclusions, candidates)
            applied = tuple(e for e in exclusions if e not in before)

            iterations.append(RefinementIteration(
                iteration=iteration,
                difference=difference,
                regions_found=len(result.regions),
                exclusions_applied=applied,
                total_exclusions=len(exclusions),
                improvement=improvement,
                excluded_area=_excluded_area(exclusions, reference),
            ))
            previous = difference
            self._transition(RefinementState.COMPARING)

        final_state = (
            RefinementState.CONVERGED if converged else RefinementState.MAX_ITERATIONS_REACHED
        )
        self._transition(final_state)
        if converged:
            logger.info(f"Refinement converged after {len(iterations)} pass(es) at {difference:.3f}%")
        else:
            logger.warning(
                f"Refinement stopped at max iterations ({config.max_iterations}), "
                f"{difference:.3f}% still different"
            )

        outcome = RefinementResult(
            iterations=tuple(iterations),
            initial_difference=initial_difference,
            final_difference=difference,
            suggested_exclusions=exclusions,
            converged=converged,
            state=final_state,
            alignment=alignment,
        )
        if config.session_file is not None:
            outcome.to_file(config.session_file)
            logger.info(f"Saved refinement session to {config.session_file}")
        return outcome

    def _candidates(
        self,
        result: ComparisonResult,
        reference: Image,
        config: RefinementConfig,
        iteration: int,
    ) -> list[ExclusionRegion]:
        """Exclusion candidates from classified regions.

        Confident regions of the excluded types are proposed as they are.
        With ``exclude_low_confidence`` set, classified regions below the
        confidence threshold are proposed as likely false positives, with
        confidence ``1 - c``.
        """
        if result.classification is None:
            return []
        if not config.exclude_types and not config.exclude_low_confidence:
            return []

        candidates: list[ExclusionRegion] = []
        for rc in result.classification.regions:
            if not rc.is_classified:
                continue
            if rc.confidence >= config.confidence_threshold:
                if rc.type not in config.exclude_types:
                    continue
                name = f"{rc.type.value}-{iteration}-{rc.region.id}"
                reason = f"{rc.type.value} difference ({rc.confidence:.0%} confidence)"
                confidence = rc.confidence
            elif config.exclude_low_confidence:
                name = f"low-confidence-{iteration}-{rc.region.id}"
                reason = f"low confidence {rc.type.value} ({rc.confidence:.0%}), likely a false positive"
                confidence = 1.0 - rc.confidence
            else:
                continue

            bounds = rc.region.bounds.expand(config.exclusion_padding).clamp(
                reference.width, reference.height
            )
            if bounds.is_empty:
                continue
            candidates.append(ExclusionRegion(
                bounds=bounds,
                name=name,
                reason=reason,
                confidence=confidence,
                origin_iteration=iteration,
            ))

        candidates.extend(self._cluster_candidates(candidates, config, iteration))
        logger.debug(f"Pass {iteration}: {len(candidates)} exclusion candidate(s)")
        return candidates

    @staticmethod
    def _cluster_candidates(
        candidates: Sequence[ExclusionRegion],
        config: RefinementConfig,
        iteration: int,
    ) -> list[ExclusionRegion]:
        """One covering exclusion per dense group of candidates."""
        clusters = []
        groups = cluster_by_center([c.bounds for c in candidates], config.cluster_distance)
        for group in groups:
            if len(group) < config.cluster_min_regions:
                continue
            members = [candidates[i] for i in group]
            clusters.append(ExclusionRegion(
                bounds=union_bounds(m.bounds for m in members),
                name=f"cluster-{iteration}-{len(clusters) + 1}",
                reason=f"cluster of {len(members)} similar regions",
                confidence=sum(m.confidence for m in members) / len(members),
                origin_iteration=iteration,
            ))
        return clusters


def _excluded_area(exclusions: Sequence[ExclusionRegion], image: Image) -> int:
    """Pixels of ``image`` covered by the exclusion set."""
    return covered_area(e.bounds.clamp(image.width, image.height) for e in exclusions)
