"""Domain entities."""

from .image import Image
from .alignment import AlignmentResult
from .classification import (
    ClassificationResult,
    ClassificationSummary,
    ConfidenceStats,
    DifferenceType,
    RegionClassification,
)
from .comparison import ComparisonResult, ComparisonStatistics, DifferenceMask
from .refinement import RefinementIteration, RefinementResult, RefinementState
from .region import DifferenceRegion, ExclusionRegion

__all__ = [
    'Image',
    'AlignmentResult',
    'ClassificationResult',
    'ClassificationSummary',
    'ConfidenceStats',
    'DifferenceType',
    'RegionClassification',
    'ComparisonResult',
    'ComparisonStatistics',
    'DifferenceMask',
    'RefinementIteration',
    'RefinementResult',
    'RefinementState',
    'DifferenceRegion',
    'ExclusionRegion',
]
