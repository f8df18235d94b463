"""Core comparison functionality."""

from .alignment import (
    Aligner,
    AlignmentOrchestrator,
    FeatureAligner,
    PhaseCorrelationAligner,
    SubimageAligner,
    score_alignment,
    warp_to_reference,
)
from .comparator import ComparisonOutcome, PixelComparator, render_diff_image
from .segmenter import RegionSegmenter
from .classifiers import (
    AnalysisContext,
    ClassifierPipeline,
    ClassifierRegistry,
    DifferenceClassifier,
    default_registry,
)

__all__ = [
    # Alignment
    'Aligner',
    'AlignmentOrchestrator',
    'FeatureAligner',
    'PhaseCorrelationAligner',
    'SubimageAligner',
    'score_alignment',
    'warp_to_reference',
    # Comparison
    'ComparisonOutcome',
    'PixelComparator',
    'render_diff_image',
    # Segmentation
    'RegionSegmenter',
    # Classification
    'AnalysisContext',
    'ClassifierPipeline',
    'ClassifierRegistry',
    'DifferenceClassifier',
    'default_registry',
]
