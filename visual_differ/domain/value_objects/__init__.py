"""Value objects."""

from .geometry import Point, BoundingBox
from .config import ComparisonConfig, RefinementConfig

__all__ = ['Point', 'BoundingBox', 'ComparisonConfig', 'RefinementConfig']
