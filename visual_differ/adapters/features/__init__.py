"""Feature matcher adapters."""

from .opencv_matcher import OpenCVFeatureMatcher, create_detector

__all__ = ['OpenCVFeatureMatcher', 'create_detector']
