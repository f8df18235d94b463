"""Domain layer - entities, value objects and pure geometry services."""

from .value_objects.geometry import Point, BoundingBox
from .value_objects.config import ComparisonConfig, RefinementConfig
from .entities import (
    Image,
    AlignmentResult,
    ClassificationResult,
    ClassificationSummary,
    DifferenceType,
    ComparisonResult,
    ComparisonStatistics,
    DifferenceMask,
    DifferenceRegion,
    ExclusionRegion,
    RefinementIteration,
    RefinementResult,
    RefinementState,
)

__all__ = [
    # Entities
    'Image',
    'AlignmentResult',
    'ClassificationResult',
    'ClassificationSummary',
    'DifferenceType',
    'ComparisonResult',
    'ComparisonStatistics',
    'DifferenceMask',
    'DifferenceRegion',
    'ExclusionRegion',
    'RefinementIteration',
    'RefinementResult',
    'RefinementState',
    # Value Objects
    'Point',
    'BoundingBox',
    'ComparisonConfig',
    'RefinementConfig',
]
