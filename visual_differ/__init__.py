"""Visual Differ - align, compare and classify differences between images."""

__version__ = "1.0.0"

from .config import AlignmentMethod, ColorMetric, FeatureDetectorType
from .core import AlignmentOrchestrator, ClassifierPipeline, PixelComparator, RegionSegmenter
from .application.services import ImageComparisonService, RefinementController
from .domain import (
    BoundingBox,
    ComparisonConfig,
    ComparisonResult,
    DifferenceType,
    ExclusionRegion,
    Image,
    RefinementConfig,
    RefinementResult,
)
from .exceptions import (
    VisualDifferError,
    ConfigurationError,
    ValidationError,
    ImageLoadError,
    AlignmentError,
    ComparisonError,
)
from .utils.env import setup_logging

__all__ = [
    '__version__',
    'AlignmentMethod',
    'ColorMetric',
    'FeatureDetectorType',
    'AlignmentOrchestrator',
    'ClassifierPipeline',
    'PixelComparator',
    'RegionSegmenter',
    'ImageComparisonService',
    'RefinementController',
    'BoundingBox',
    'ComparisonConfig',
    'ComparisonResult',
    'DifferenceType',
    'ExclusionRegion',
    'Image',
    'RefinementConfig',
    'RefinementResult',
    'setup_logging',
    # Exceptions
    'VisualDifferError',
    'ConfigurationError',
    'ValidationError',
    'ImageLoadError',
    'AlignmentError',
    'ComparisonError',
]
