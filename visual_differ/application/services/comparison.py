"""Image comparison service - orchestrates align, compare, segment, classify."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from ...core.alignment import AlignmentOrchestrator
from ...core.classifiers.base import AnalysisContext
from ...core.classifiers.pipeline import ClassifierPipeline
from ...core.comparator import PixelComparator
from ...core.segmenter import RegionSegmenter
from ...domain.entities.alignment import AlignmentResult
from ...domain.entities.classification import ClassificationSummary
from ...domain.entities.comparison import ComparisonResult, ComparisonStatistics, DifferenceMask
from ...domain.entities.image import Image
from ...domain.entities.region import DifferenceRegion, ExclusionRegion
from ...domain.value_objects.config import ComparisonConfig

logger = logging.getLogger(__name__)


@dataclass
class ComparisonContext:
    """Context passed through pipeline steps."""
    reference: Image
    target: Image
    config: ComparisonConfig
    exclusions: tuple[ExclusionRegion, ...] = ()
    aligned: Image | None = None
    alignment: AlignmentResult | None = None
    mask: DifferenceMask | None = None
    statistics: ComparisonStatistics | None = None
    diff_image: Image | None = None
    regions: tuple[DifferenceRegion, ...] = field(default_factory=tuple)
    classification: ClassificationSummary | None = None


class PipelineStep:
    """Base class for pipeline steps."""

    def __init__(self, name: str):
        self.name = name

    def execute(self, ctx: ComparisonContext) -> ComparisonContext:
        """Execute this step and return updated context."""
        raise NotImplementedError


class AlignStep(PipelineStep):
    """Step 1: Bring the target into the reference frame.

    A precomputed alignment on the context is reused as is.
    """

    def __init__(self, orchestrator: AlignmentOrchestrator):
        super().__init__("align")
        self._orchestrator = orchestrator

    def execute(self, ctx: ComparisonContext) -> ComparisonContext:
        if ctx.alignment is not None:
            ctx.aligned = ctx.alignment.aligned
            return ctx
        if not ctx.config.align:
            ctx.aligned = ctx.target
            return ctx

        ctx.alignment = self._orchestrator.align(
            ctx.reference,
            ctx.target,
            method=ctx.config.alignment_method,
            min_score=ctx.config.min_alignment_score,
        )
        ctx.aligned = ctx.alignment.aligned
        return ctx


class CompareStep(PipelineStep):
    """Step 2: Per-pixel comparison with exclusions."""

    def __init__(self, comparator: PixelComparator):
        super().__init__("compare")
        self._comparator = comparator

    def execute(self, ctx: ComparisonContext) -> ComparisonContext:
        outcome = self._comparator.compare(
            ctx.reference,
            ctx.aligned if ctx.aligned is not None else ctx.target,
            exclusions=ctx.exclusions,
            color_threshold=ctx.config.color_threshold,
            equality_threshold=ctx.config.equality_threshold,
            render_diff=ctx.config.render_diff,
        )
        ctx.mask = outcome.mask
        ctx.statistics = outcome.statistics
        ctx.diff_image = outcome.diff_image
        return ctx


class SegmentStep(PipelineStep):
    """Step 3: Group differing pixels into regions."""

    def __init__(self, segmenter: RegionSegmenter):
        super().__init__("segment")
        self._segmenter = segmenter

    def execute(self, ctx: ComparisonContext) -> ComparisonContext:
        ctx.regions = self._segmenter.segment(ctx.mask, ctx.config.min_region_pixels)
        return ctx


class ClassifyStep(PipelineStep):
    """Step 4: Classify each region."""

    def __init__(self, pipeline: ClassifierPipeline):
        super().__init__("classify")
        self._pipeline = pipeline

    def execute(self, ctx: ComparisonContext) -> ComparisonContext:
        if not ctx.config.classify:
            return ctx
        context = AnalysisContext(
            original=ctx.reference,
            compared=ctx.aligned if ctx.aligned is not None else ctx.target,
            mask=ctx.mask,
        )
        ctx.classification = self._pipeline.classify_regions(ctx.regions, context)
        return ctx


class ImageComparisonService:
    """Service for comparing one reference/target pair.

    Collaborators default to instances built from the config; pass your own
    to share a classifier registry or plug in a different feature matcher.
    """

    def __init__(
        self,
        config: ComparisonConfig | None = None,
        orchestrator: AlignmentOrchestrator | None = None,
        comparator: PixelComparator | None = None,
        segmenter: RegionSegmenter | None = None,
        pipeline: ClassifierPipeline | None = None,
    ):
        self._config = config or ComparisonConfig()
        cfg = self._config
        self._orchestrator = orchestrator or AlignmentOrchestrator(
            min_score=cfg.min_alignment_score,
            allow_fallback=cfg.allow_fallback,
            detector=cfg.feature_detector,
            search_radius=cfg.search_radius,
        )
        self._comparator = comparator or PixelComparator(
            color_threshold=cfg.color_threshold,
            equality_threshold=cfg.equality_threshold,
            metric=cfg.color_metric,
            exclusion_padding=cfg.exclusion_padding,
            highlight_color=cfg.highlight_color,
            lowlight=cfg.lowlight,
            excluded_color=cfg.excluded_color,
            feather_radius=cfg.feather_radius,
        )
        self._segmenter = segmenter or RegionSegmenter(
            min_region_pixels=cfg.min_region_pixels,
            merge_distance=cfg.merge_distance,
            connectivity=cfg.connectivity,
        )
        self._pipeline = pipeline or ClassifierPipeline(min_confidence=cfg.min_classifier_confidence)
        self._steps = self._build_pipeline()

    @property
    def config(self) -> ComparisonConfig:
        return self._config

    @property
    def orchestrator(self) -> AlignmentOrchestrator:
        return self._orchestrator

    @property
    def classifier_pipeline(self) -> ClassifierPipeline:
        return self._pipeline

    def _build_pipeline(self) -> list[PipelineStep]:
        """Build processing pipeline."""
        return [
            AlignStep(self._orchestrator),
            CompareStep(self._comparator),
            SegmentStep(self._segmenter),
            ClassifyStep(self._pipeline),
        ]

    def align(self, reference: Image | Path | str, target: Image | Path | str) -> AlignmentResult:
        """Run only the alignment step with this service's settings."""
        reference, target = load_image(reference), load_image(target)
        return self._orchestrator.align(
            reference,
            target,
            method=self._config.alignment_method,
            min_score=self._config.min_alignment_score,
        )

    def compare(
        self,
        reference: Image | Path | str,
        target: Image | Path | str,
        exclusions: Sequence[ExclusionRegion] = (),
        alignment: AlignmentResult | None = None,
    ) -> ComparisonResult:
        """Compare target against reference.

        Args:
            reference: Reference image or path
            target: Target image or path
            exclusions: Regions to ignore
            alignment: Reuse a previous alignment instead of aligning again

        Returns:
            Comparison result

        Raises:
            AlignmentError: If alignment is enabled and fails
            ComparisonError: If the images cannot be compared pixel for pixel
        """
        ctx = ComparisonContext(
            reference=load_image(reference),
            target=load_image(target),
            config=self._config,
            exclusions=tuple(exclusions),
            alignment=alignment,
        )

        for step in self._steps:
            logger.debug(f"Executing {step.name}")
            ctx = step.execute(ctx)

        logger.info(
            f"Comparison: {ctx.statistics.percentage_different:.3f}% different, "
            f"{len(ctx.regions)} region(s)"
        )
        return ComparisonResult(
            statistics=ctx.statistics,
            mask=ctx.mask,
            regions=ctx.regions,
            diff_image=ctx.diff_image,
            classification=ctx.classification,
            alignment=ctx.alignment,
        )


def load_image(image: Image | Path | str) -> Image:
    if isinstance(image, Image):
        return image
    return Image.from_file(image)
