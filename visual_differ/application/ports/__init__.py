"""Ports - interfaces for external dependencies (Dependency Inversion)."""

from .feature_matcher import FeatureMatcher, FeatureMatches

__all__ = ['FeatureMatcher', 'FeatureMatches']
