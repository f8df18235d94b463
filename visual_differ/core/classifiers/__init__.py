"""Difference classifiers."""

from .base import AnalysisContext, DifferenceClassifier
from .content import ContentClassifier
from .layout import LayoutClassifier
from .pipeline import ClassifierPipeline, ClassifierRegistry, builtin_classifiers, default_registry
from .size import SizeClassifier
from .structural import StructuralClassifier
from .style import StyleClassifier

__all__ = [
    'AnalysisContext',
    'DifferenceClassifier',
    'ContentClassifier',
    'LayoutClassifier',
    'SizeClassifier',
    'StructuralClassifier',
    'StyleClassifier',
    'ClassifierPipeline',
    'ClassifierRegistry',
    'builtin_classifiers',
    'default_registry',
]
