"""Collector registry for hosteye.

The registry holds the catalog of available collectors: the built-in psutil
collectors plus third-party DataCollector subclasses advertised through the
``hosteye.collectors`` entry-point group, e.g. in a plugin's pyproject.toml:

    [project.entry-points."hosteye.collectors"]
    gpu = "my_plugin.gpu:GPUCollector"
"""

from __future__ import annotations

from collections.abc import Iterator
import importlib.metadata
import logging
import traceback
from typing import Any

from hosteye.collectors.base import DataCollector

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "hosteye.collectors"


class CollectorError(Exception):
    """Base exception for collector registry errors."""

    def __init__(self, message: str, collector_name: str | None = None) -> None:
        self.collector_name = collector_name
        super().__init__(message)


class CollectorLoadError(CollectorError):
    """A collector plugin could not be loaded or is not a DataCollector."""


class CollectorConflictError(CollectorError):
    """Two collectors were registered under the same name."""


class CollectorNotFoundError(CollectorError, KeyError):
    """No collector is registered under the requested name."""

    def __str__(self) -> str:
        return self.args[0] if self.args else ""


def _builtin_collectors() -> dict[str, type[DataCollector]]:
    from hosteye.plugins.cpu import CPUCollector, LoadCollector
    from hosteye.plugins.disk import DiskCollector
    from hosteye.plugins.host import (
        ProcessCountCollector,
        UptimeCollector,
        UserCountCollector,
    )
    from hosteye.plugins.memory import MemoryCollector

    classes: list[type[DataCollector]] = [
        CPUCollector,
        MemoryCollector,
        DiskCollector,
        LoadCollector,
        ProcessCountCollector,
        UserCountCollector,
        UptimeCollector,
    ]
    return {cls.name: cls for cls in classes}


class CollectorRegistry:
    """Catalog of collector classes, keyed by collector name.

    Example:
        registry = CollectorRegistry()
        registry.discover()
        cpu = registry.create("cpu", {"interval": 10})
    """

    def __init__(self, include_builtins: bool = True) -> None:
        """Initialize the registry.

        Args:
            include_builtins: Register the built-in psutil collectors
        """
        self._classes: dict[str, type[DataCollector]] = {}
        self._failed: dict[str, str] = {}
        if include_builtins:
            for cls in _builtin_collectors().values():
                self.register(cls)

    @property
    def failed_plugins(self) -> dict[str, str]:
        """Return dict of failed plugin names to error messages."""
        return self._failed.copy()

    def register(self, cls: type[DataCollector]) -> None:
        """Register a collector class under its ``name``.

        Raises:
            CollectorLoadError: If ``cls`` is not a concrete DataCollector subclass
            CollectorConflictError: If the name is already taken
        """
        if not (isinstance(cls, type) and issubclass(cls, DataCollector)):
            raise CollectorLoadError(f"{cls!r} is not a DataCollector subclass")
        name = getattr(cls, "name", "")
        if not name or name == DataCollector.name:
            raise CollectorLoadError(f"Collector class {cls.__name__} must define a name")
        if name in self._classes and self._classes[name] is not cls:
            raise CollectorConflictError(
                f"Collector '{name}' is already registered by {self._classes[name].__name__}",
                collector_name=name,
            )
        self._classes[name] = cls

    def discover(self, strict: bool = False) -> list[str]:
        """Load collector classes from the ``hosteye.collectors`` entry points.

        Args:
            strict: If True, raise on the first broken plugin. If False, record
                it in failed_plugins and continue.

        Returns:
            Names of the collectors discovered

        Raises:
            CollectorError: In strict mode, for the first failing plugin
        """
        discovered: list[str] = []
        self._failed.clear()

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            logger.debug("Loading collector entry point: %s from %s", ep.name, ep.value)
            try:
                cls = ep.load()
                self.register(cls)
                discovered.append(cls.name)
                logger.info("Discovered collector plugin: %s", cls.name)
            except CollectorError as e:
                self._failed[ep.name] = str(e)
                logger.error("Failed to load collector plugin %s: %s", ep.name, e)
                if strict:
                    raise
            except Exception as e:
                error_msg = f"Unexpected error loading plugin: {e}"
                self._failed[ep.name] = error_msg
                logger.error("Failed to load collector plugin %s: %s", ep.name, error_msg)
                if logger.isEnabledFor(logging.DEBUG):
                    logger.debug(traceback.format_exc())
                if strict:
                    raise CollectorLoadError(error_msg, collector_name=ep.name) from e

        return discovered

    def get(self, name: str) -> type[DataCollector]:
        """Get a collector class by name.

        Raises:
            CollectorNotFoundError: If no collector has that name
        """
        try:
            return self._classes[name]
        except KeyError:
            available = ", ".join(sorted(self._classes))
            raise CollectorNotFoundError(
                f"Unknown collector '{name}'. Available: {available}",
                collector_name=name,
            ) from None

    def create(self, name: str, config: dict[str, Any] | None = None) -> DataCollector:
        """Instantiate and initialize a collector by name."""
        collector = self.get(name)()
        collector.initialize(config)
        return collector

    def names(self) -> list[str]:
        """Registered collector names, in registration order."""
        return list(self._classes)

    def __contains__(self, name: object) -> bool:
        return name in self._classes

    def __iter__(self) -> Iterator[str]:
        return iter(self._classes)

    def __len__(self) -> int:
        return len(self._classes)
