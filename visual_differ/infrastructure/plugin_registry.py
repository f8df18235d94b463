"""Plugin registry - discovers and loads classifiers via entry points."""

from __future__ import annotations

import logging
from functools import lru_cache
from importlib.metadata import entry_points
from typing import TYPE_CHECKING

from ..config import CLASSIFIER_ENTRY_POINT_GROUP
from ..exceptions import ConfigurationError

if TYPE_CHECKING:
    from ..core.classifiers.base import DifferenceClassifier

logger = logging.getLogger(__name__)


class PluginRegistry:
    """Registry for discovering and loading classifier plugins.

    Uses entry points for plugin discovery:
    - visual_differ.classifiers: DifferenceClassifier subclasses

    Third-party packages can register plugins:

    [project.entry-points."visual_differ.classifiers"]
    my_classifier = "my_package:MyClassifier"
    """

    CLASSIFIER_GROUP = CLASSIFIER_ENTRY_POINT_GROUP

    @classmethod
    @lru_cache(maxsize=1)
    def discover_classifiers(cls) -> dict[str, type]:
        """Discover all installed classifier plugins.

        Returns:
            Dict mapping entry point names to classifier classes
        """
        from ..core.classifiers.base import DifferenceClassifier

        classifiers: dict[str, type] = {}
        for ep in entry_points().select(group=cls.CLASSIFIER_GROUP):
            try:
                classifier_class = ep.load()
            except Exception as e:
                logger.warning(f"Failed to load classifier plugin {ep.name}: {e}")
                continue

            if not (isinstance(classifier_class, type) and issubclass(classifier_class, DifferenceClassifier)):
                logger.warning(f"Ignoring plugin {ep.name}: not a DifferenceClassifier subclass")
                continue

            classifiers[ep.name] = classifier_class
            logger.debug(f"Discovered classifier plugin: {ep.name}")

        return classifiers

    @classmethod
    def create_classifier(cls, name: str, **kwargs) -> "DifferenceClassifier":
        """Create a plugin classifier instance by entry point name.

        Args:
            name: Entry point name
            **kwargs: Constructor arguments

        Returns:
            DifferenceClassifier instance

        Raises:
            ConfigurationError: If no plugin has that name
        """
        plugins = cls.discover_classifiers()
        if name not in plugins:
            available = ", ".join(plugins) or "none"
            raise ConfigurationError(
                f"Unknown classifier plugin: {name}. Available: {available}",
                config_key="classifiers",
            )
        return plugins[name](**kwargs)

    @classmethod
    def create_classifiers(cls) -> list["DifferenceClassifier"]:
        """Instantiate every discovered plugin with default arguments."""
        instances = []
        for name in cls.discover_classifiers():
            try:
                instances.append(cls.create_classifier(name))
            except Exception as e:
                logger.warning(f"Failed to create classifier plugin {name}: {e}")
        return instances

    @classmethod
    def list_available_classifiers(cls) -> list[str]:
        """List discovered plugin names."""
        return list(cls.discover_classifiers().keys())
