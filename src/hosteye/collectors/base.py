"""Sampler interface shared by every collector.

A collector produces one Fields snapshot per call or raises. safe_collect()
turns either outcome into a CollectionResult, so the scheduler never sees a
sampler exception.
"""

from abc import ABC
import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
import inspect
import logging
import time
from typing import Any

from hosteye.models.base import Fields

logger = logging.getLogger(__name__)

Sampler = Callable[[], Fields | Awaitable[Fields]]


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass
class CollectionResult:
    """Outcome of one sampling attempt.

    Attributes:
        success: Whether the sampler returned fields
        fields: The sampled fields (None on failure)
        error: Why the attempt failed (None on success)
        collection_time_ms: Time spent sampling, in milliseconds
        timestamp: When the attempt started
        collector_name: Collector that made the attempt
    """

    success: bool
    fields: Fields | None = None
    error: str | None = None
    collection_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=_utcnow)
    collector_name: str = ""

    def __post_init__(self) -> None:
        if self.success and self.fields is None:
            raise ValueError("Successful collection must include fields")
        if not self.success and self.error is None:
            raise ValueError("Failed collection must include error message")


@dataclass
class CollectorStats:
    """Running counters for one collector."""

    total_collections: int = 0
    total_failures: int = 0
    consecutive_failures: int = 0
    last_collection: datetime | None = None

    @property
    def success_rate(self) -> float:
        if not self.total_collections:
            return 0.0
        return (self.total_collections - self.total_failures) / self.total_collections

    def record(self, ok: bool) -> None:
        self.total_collections += 1
        if ok:
            self.consecutive_failures = 0
            self.last_collection = _utcnow()
        else:
            self.total_failures += 1
            self.consecutive_failures += 1


class DataCollector(ABC):
    """Base class for host metric samplers.

    Subclasses implement sample(), a plain blocking call returning a Fields
    mapping. collect() runs it in a worker thread so a slow OS query does not
    stall the other collectors on the event loop; natively async collectors
    override collect() instead.

    Class Attributes:
        name: Collector name, also the point (measurement) name
        default_interval: Seconds between samples unless configured
        timeout: Seconds a single sample may take

    Example:
        class LoadCollector(DataCollector):
            name = "load"

            def sample(self) -> Fields:
                one, five, fifteen = psutil.getloadavg()
                return {"1m": one, "5m": five, "15m": fifteen}
    """

    name: str = "unnamed_collector"
    default_interval: float = 5.0
    timeout: float = 10.0

    def __init__(self) -> None:
        self._interval = self.default_interval
        self.enabled = True
        self.counters = CollectorStats()

    @property
    def interval(self) -> float:
        """Seconds between samples."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        if value <= 0:
            raise ValueError("Interval must be positive")
        self._interval = value

    @property
    def last_collection(self) -> datetime | None:
        return self.counters.last_collection

    @property
    def consecutive_failures(self) -> int:
        return self.counters.consecutive_failures

    @property
    def stats(self) -> dict[str, Any]:
        """Counters plus current settings, as a plain dict."""
        return {
            "name": self.name,
            "enabled": self.enabled,
            "interval": self._interval,
            **asdict(self.counters),
            "success_rate": self.counters.success_rate,
        }

    def initialize(self, config: dict[str, Any] | None = None) -> None:
        """Apply collector settings.

        Args:
            config: May set ``interval``, ``enabled`` and ``timeout``; other
                keys are left for subclasses to read.
        """
        config = config or {}
        if "interval" in config:
            self.interval = float(config["interval"])
        if "enabled" in config:
            self.enabled = bool(config["enabled"])
        if "timeout" in config:
            self.timeout = float(config["timeout"])

    def sample(self) -> Fields:
        """Take one blocking measurement.

        Raises:
            Exception: Any failure; the scheduler drops the tick
        """
        raise NotImplementedError(f"Collector '{self.name}' must implement sample() or collect()")

    async def collect(self) -> Fields:
        return await asyncio.to_thread(self.sample)

    async def safe_collect(self) -> CollectionResult:
        """Run collect() under the timeout and report the outcome.

        Never raises except for cancellation.
        """
        started_at = _utcnow()
        clock = time.monotonic()
        fields: Fields | None = None
        error: str | None = None

        try:
            fields = await asyncio.wait_for(self.collect(), timeout=self.timeout)
            if fields is None:
                raise TypeError("collector returned no fields")
        except asyncio.CancelledError:
            raise
        except PermissionError as e:
            error = f"Permission denied: {e}"
        except TimeoutError:
            error = f"Collection timed out after {self.timeout}s"
        except Exception as e:
            error = f"{type(e).__name__}: {e}"

        self.counters.record(error is None)
        if error is not None:
            logger.debug("Collector '%s' failed: %s", self.name, error)

        return CollectionResult(
            success=error is None,
            fields=dict(fields) if error is None and fields is not None else None,
            error=error,
            collection_time_ms=(time.monotonic() - clock) * 1000,
            timestamp=started_at,
            collector_name=self.name,
        )

    def reset_stats(self) -> None:
        self.counters = CollectorStats()


class FunctionCollector(DataCollector):
    """Wraps a plain sampler function as a collector.

    Sync functions run in a worker thread; coroutine functions are awaited
    on the event loop.

    Example:
        collector = FunctionCollector("mem", lambda: {"total": 100}, interval=5)
    """

    def __init__(
        self,
        name: str,
        sampler: Sampler,
        interval: float | None = None,
        timeout: float | None = None,
    ) -> None:
        if not name:
            raise ValueError("Collector name must be non-empty")
        super().__init__()
        self.name = name
        self._sampler = sampler
        if interval is not None:
            self.interval = interval
        if timeout is not None:
            self.timeout = timeout

    def sample(self) -> Fields:
        result = self._sampler()
        if inspect.isawaitable(result):
            raise TypeError(f"Sampler for '{self.name}' is async; use collect()")
        return result

    async def collect(self) -> Fields:
        if inspect.iscoroutinefunction(self._sampler):
            return await self._sampler()
        return await asyncio.to_thread(self.sample)


def as_collector(
    name: str,
    sampler: DataCollector | Sampler,
    interval: float | None = None,
) -> DataCollector:
    """Return ``sampler`` as a DataCollector, wrapping plain callables.

    An existing collector is returned as is, with ``interval`` applied.
    """
    if isinstance(sampler, DataCollector):
        if interval is not None:
            sampler.interval = interval
        return sampler
    return FunctionCollector(name, sampler, interval=interval)
