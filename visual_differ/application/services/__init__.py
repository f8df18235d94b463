"""Application services."""

from .comparison import ComparisonContext, ImageComparisonService, PipelineStep, load_image
from .refinement import RefinementController

__all__ = [
    'ComparisonContext',
    'ImageComparisonService',
    'PipelineStep',
    'RefinementController',
    'load_image',
]
