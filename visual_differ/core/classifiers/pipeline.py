"""Classifier registry and pipeline."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Sequence

from ...config import CLASSIFICATION_CONFIG
from ...domain.entities.classification import (
    ClassificationResult,
    ClassificationSummary,
    RegionClassification,
)
from ...domain.entities.region import DifferenceRegion
from ...exceptions import ConfigurationError
from .base import AnalysisContext, DifferenceClassifier

logger = logging.getLogger(__name__)


class ClassifierRegistry:
    """Classifiers ordered by priority, highest first.

    Equal priorities keep registration order. Once frozen (the pipeline
    freezes it on first use) the registry is read-only, so it can be
    shared by concurrent workers without locking.
    """

    def __init__(self, classifiers: Iterable[DifferenceClassifier] = ()):
        self._classifiers: list[DifferenceClassifier] = []
        self._frozen = False
        for classifier in classifiers:
            self.register(classifier)

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def names(self) -> list[str]:
        return [c.name for c in self._classifiers]

    def register(self, classifier: DifferenceClassifier) -> None:
        """Add a classifier.

        Raises:
            ConfigurationError: If the registry is frozen or the name is taken
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register '{classifier.name}': registry is frozen",
                config_key="classifiers",
            )
        if classifier.name in self:
            raise ConfigurationError(
                f"Classifier '{classifier.name}' is already registered",
                config_key="classifiers",
            )

        index = len(self._classifiers)
        for i, existing in enumerate(self._classifiers):
            if classifier.priority > existing.priority:
                index = i
                break
        self._classifiers.insert(index, classifier)
        logger.debug(f"Registered classifier '{classifier.name}' (priority {classifier.priority})")

    def unregister(self, name: str) -> DifferenceClassifier:
        """Remove and return a classifier by name."""
        if self._frozen:
            raise ConfigurationError(
                f"Cannot unregister '{name}': registry is frozen", config_key="classifiers"
            )
        for i, classifier in enumerate(self._classifiers):
            if classifier.name == name:
                return self._classifiers.pop(i)
        raise ConfigurationError(f"Unknown classifier: {name}", config_key="classifiers")

    def freeze(self) -> ClassifierRegistry:
        self._frozen = True
        return self

    def get(self, name: str) -> DifferenceClassifier | None:
        for classifier in self._classifiers:
            if classifier.name == name:
                return classifier
        return None

    def __contains__(self, name: object) -> bool:
        return any(c.name == name for c in self._classifiers)

    def __iter__(self) -> Iterator[DifferenceClassifier]:
        return iter(tuple(self._classifiers))

    def __len__(self) -> int:
        return len(self._classifiers)


def builtin_classifiers() -> list[DifferenceClassifier]:
    """Fresh instances of the built-in classifiers."""
    from .content import ContentClassifier
    from .layout import LayoutClassifier
    from .size import SizeClassifier
    from .structural import StructuralClassifier
    from .style import StyleClassifier

    return [
        StructuralClassifier(),
        LayoutClassifier(),
        ContentClassifier(),
        StyleClassifier(),
        SizeClassifier(),
    ]


def default_registry(include_plugins: bool = False) -> ClassifierRegistry:
    """Registry holding the built-ins and, optionally, entry-point plugins."""
    registry = ClassifierRegistry(builtin_classifiers())
    if include_plugins:
        from ...infrastructure.plugin_registry import PluginRegistry
        for classifier in PluginRegistry.create_classifiers():
            if classifier.name in registry:
                logger.warning(f"Skipping plugin classifier '{classifier.name}': name already registered")
                continue
            registry.register(classifier)
    return registry


class ClassifierPipeline:
    """Runs registered classifiers over regions and aggregates the results.

    For each region every applicable classifier is asked; the most
    confident result wins, with ties going to the higher priority. Results
    below ``min_confidence`` leave the region unclassified.
    """

    def __init__(
        self,
        registry: ClassifierRegistry | None = None,
        min_confidence: float = CLASSIFICATION_CONFIG.min_confidence,
    ):
        if not 0.0 <= min_confidence <= 1.0:
            raise ConfigurationError(
                f"min_confidence must be in [0, 1], got {min_confidence}",
                config_key="min_confidence",
            )
        self._registry = registry if registry is not None else default_registry()
        self._min_confidence = min_confidence

    @property
    def registry(self) -> ClassifierRegistry:
        return self._registry

    @property
    def min_confidence(self) -> float:
        return self._min_confidence

    def register_classifier(self, classifier: DifferenceClassifier) -> None:
        """Add a classifier before the pipeline is first used."""
        self._registry.register(classifier)

    def classify_region(
        self, region: DifferenceRegion, context: AnalysisContext
    ) -> RegionClassification:
        """Pick the best classification for one region."""
        self._registry.freeze()

        candidates: list[tuple[str, ClassificationResult]] = []
        best: tuple[str, ClassificationResult] | None = None

        for classifier in self._registry:
            try:
                if not classifier.can_classify(region, context):
                    continue
                result = classifier.classify(region, context)
            except Exception as e:
                logger.warning(f"Classifier '{classifier.name}' failed on region {region.id}: {e}")
                continue

            if result is None:
                continue
            candidates.append((classifier.name, result))
            # Registry order is priority order, so strict > keeps the higher priority on ties
            if best is None or result.confidence > best[1].confidence:
                best = (classifier.name, result)

        if best is None or best[1].confidence < self._min_confidence:
            logger.debug(f"Region {region.id} unclassified ({len(candidates)} candidate(s))")
            return RegionClassification(region=region, candidates=tuple(candidates))

        name, result = best
        logger.debug(
            f"Region {region.id}: {result.type.value} ({result.confidence:.2f}) by '{name}'"
        )
        return RegionClassification(
            region=region,
            result=result,
            classifier=name,
            candidates=tuple(candidates),
        )

    def classify_regions(
        self, regions: Sequence[DifferenceRegion], context: AnalysisContext
    ) -> ClassificationSummary:
        """Classify all regions and summarize."""
        classifications = [self.classify_region(region, context) for region in regions]
        summary = ClassificationSummary.from_classifications(classifications)
        logger.info(
            f"Classified {summary.classified_regions}/{summary.total_regions} regions"
        )
        return summary
