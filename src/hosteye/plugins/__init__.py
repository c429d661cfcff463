"""Built-in collectors and the collector registry for hosteye."""

from hosteye.plugins.registry import (
    CollectorConflictError,
    CollectorError,
    CollectorLoadError,
    CollectorNotFoundError,
    CollectorRegistry,
)

__all__ = [
    "CollectorRegistry",
    "CollectorError",
    "CollectorLoadError",
    "CollectorConflictError",
    "CollectorNotFoundError",
]
