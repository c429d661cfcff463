"""Collection scheduler for periodic, independently timed collectors.

Each collector runs in its own asyncio task that samples, wraps a
successful sample into a DataPoint, sends it on the collector's own
stream, and sleeps for its interval. Both suspension points (the send and
the sleep) observe a shared stop event, so shutdown is cooperative.

Key features:
- Per-collector tasks with independent intervals
- Backpressure: a full stream suspends the collector until it drains
- Failed samples are dropped; the next tick runs on schedule
- One collector's failure never affects another
"""

import asyncio
from dataclasses import dataclass, field
import logging
from typing import Any

from pydantic import ValidationError

from hosteye.collectors.base import CollectionResult, DataCollector, Sampler, as_collector
from hosteye.collectors.stream import PointStream
from hosteye.models.base import DataPoint, Tags

logger = logging.getLogger(__name__)


async def _sleep_or_stop(delay: float, stop: asyncio.Event) -> bool:
    """Sleep for ``delay`` seconds. Returns True if stop was set first."""
    if stop.is_set():
        return True
    try:
        await asyncio.wait_for(stop.wait(), timeout=delay)
    except TimeoutError:
        return False
    return True


async def _send_or_stop(stream: PointStream, point: DataPoint, stop: asyncio.Event) -> bool:
    """Send ``point``, giving up if stop is set first. Returns True if sent."""
    if stop.is_set():
        return False
    send = asyncio.ensure_future(stream.send(point))
    stopped = asyncio.ensure_future(stop.wait())
    try:
        done, _ = await asyncio.wait({send, stopped}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (send, stopped):
            if not task.done():
                task.cancel()
    if send in done:
        # Propagates StreamClosedError
        send.result()
        return True
    return False


@dataclass
class ScheduledCollector:
    """Runtime state of one scheduled collector.

    Attributes:
        collector: The DataCollector being sampled
        name: Metric family name stamped on emitted points
        tags: Static tags stamped on emitted points
        stream: Output stream of DataPoints
        stop: Event that ends the loop when set
        task: The asyncio task running the loop (if started)
        last_result: Most recent collection result
        points_emitted: Number of points sent on the stream
        ticks: Number of completed sampling attempts
    """

    collector: DataCollector
    name: str
    tags: Tags
    stream: PointStream
    stop: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task[None] | None = None
    last_result: CollectionResult | None = None
    points_emitted: int = 0
    ticks: int = 0

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()


async def _collection_loop(state: ScheduledCollector) -> None:
    """Sample, emit, sleep; repeat until stop is set. Always closes the stream."""
    collector = state.collector
    stop = state.stop
    try:
        while not stop.is_set():
            result = await collector.safe_collect()
            state.last_result = result
            state.ticks += 1

            if result.success and result.fields is not None:
                try:
                    point = DataPoint(name=state.name, tags=state.tags, fields=result.fields)
                except ValidationError as e:
                    logger.debug("Collector '%s' produced an invalid point: %s", state.name, e)
                    point = None
                if point is not None:
                    if not await _send_or_stop(state.stream, point, stop):
                        break
                    state.points_emitted += 1

            if await _sleep_or_stop(collector.interval, stop):
                break
    finally:
        await state.stream.close()
        logger.debug(
            "Collector '%s' stopped after %d ticks, %d points",
            state.name,
            state.ticks,
            state.points_emitted,
        )


def _start(state: ScheduledCollector) -> None:
    state.task = asyncio.create_task(
        _collection_loop(state),
        name=f"collector-{state.name}",
    )


class ScheduledStream(PointStream):
    """Output stream of collect(), carrying a handle on its producer."""

    state: ScheduledCollector

    @property
    def task(self) -> asyncio.Task[None] | None:
        return self.state.task

    def request_stop(self) -> None:
        """Ask the producing loop to finish at its next suspension point."""
        self.state.stop.set()


def collect(
    name: str,
    tags: Tags,
    interval: float,
    sampler: DataCollector | Sampler,
    *,
    stop: asyncio.Event | None = None,
    capacity: int = 1,
) -> ScheduledStream:
    """Start sampling ``sampler`` every ``interval`` seconds.

    Must be called from a running event loop.

    Args:
        name: Metric family name for emitted points
        tags: Static tags for emitted points
        interval: Seconds to sleep between ticks (must be positive)
        sampler: DataCollector or sampler function
        stop: Event that ends the loop when set; a private one if omitted
        capacity: Capacity of the output stream

    Returns:
        The output stream; it closes once the loop ends
    """
    collector = as_collector(name, sampler, interval=interval)
    stream = ScheduledStream(capacity=capacity, name=name)
    state = ScheduledCollector(
        collector=collector,
        name=name,
        tags=tags,
        stream=stream,
        stop=stop if stop is not None else asyncio.Event(),
    )
    stream.state = state
    _start(state)
    return stream


@dataclass
class SchedulerStats:
    """Statistics about the scheduler's state.

    Attributes:
        running: Whether the scheduler is currently running
        collectors_registered: Number of registered collectors
        collectors_running: Number of actively running collectors
        total_collections: Sum of all collections across all collectors
        total_failures: Sum of all failures across all collectors
        points_emitted: Sum of points sent across all collectors
        average_latency_ms: Average collection time in milliseconds
    """

    running: bool = False
    collectors_registered: int = 0
    collectors_running: int = 0
    total_collections: int = 0
    total_failures: int = 0
    points_emitted: int = 0
    average_latency_ms: float = 0.0


class CollectionScheduler:
    """Scheduler for a set of periodically sampled collectors.

    Example:
        scheduler = CollectionScheduler(tags)
        scheduler.register(CPUCollector())
        scheduler.register(MemoryCollector(), interval=10)

        streams = await scheduler.start()
        # ... merge and drain streams ...
        await scheduler.stop()
    """

    def __init__(self, tags: Tags, stream_capacity: int = 1) -> None:
        """Initialize the scheduler.

        Args:
            tags: Static tags attached to every emitted point
            stream_capacity: Capacity of each collector's output stream
        """
        self._tags = tags
        self._stream_capacity = stream_capacity
        self._collectors: dict[str, ScheduledCollector] = {}
        self._stop = asyncio.Event()
        self._running = False

    @property
    def running(self) -> bool:
        """Check if the scheduler is running."""
        return self._running

    @property
    def tags(self) -> Tags:
        """Static tags shared by every collector."""
        return self._tags

    @property
    def stop_event(self) -> asyncio.Event:
        """Event observed by every collector loop."""
        return self._stop

    def register(self, collector: DataCollector, interval: float | None = None) -> None:
        """Register a collector with the scheduler.

        Args:
            collector: The DataCollector to register
            interval: Interval override in seconds

        Raises:
            ValueError: If a collector with the same name is already registered
        """
        if collector.name in self._collectors:
            raise ValueError(f"Collector '{collector.name}' is already registered")
        if interval is not None:
            collector.interval = interval

        self._collectors[collector.name] = ScheduledCollector(
            collector=collector,
            name=collector.name,
            tags=self._tags,
            stream=PointStream(capacity=self._stream_capacity, name=collector.name),
            stop=self._stop,
        )

    def unregister(self, name: str) -> None:
        """Unregister a collector, cancelling its task if running.

        Raises:
            KeyError: If no collector with that name is registered
        """
        if name not in self._collectors:
            raise KeyError(f"Collector '{name}' is not registered")

        state = self._collectors.pop(name)
        if state.running and state.task is not None:
            state.task.cancel()

    def get_collector(self, name: str) -> DataCollector | None:
        """Get a registered collector by name."""
        state = self._collectors.get(name)
        return state.collector if state else None

    def get_stream(self, name: str) -> PointStream | None:
        """Get a collector's output stream by name."""
        state = self._collectors.get(name)
        return state.stream if state else None

    def get_latest(self, name: str) -> CollectionResult | None:
        """Get the most recent collection result for a collector."""
        state = self._collectors.get(name)
        return state.last_result if state else None

    def list_collectors(self) -> list[str]:
        """Get a list of all registered collector names."""
        return list(self._collectors.keys())

    async def start(self) -> list[PointStream]:
        """Start every enabled collector.

        Returns:
            Output streams of the started collectors, in registration order
        """
        if self._running:
            return [s.stream for s in self._collectors.values() if s.task is not None]

        self._running = True
        self._stop.clear()

        streams: list[PointStream] = []
        for state in self._collectors.values():
            if state.collector.enabled:
                if state.stream.closed:
                    state.stream = PointStream(capacity=self._stream_capacity, name=state.name)
                _start(state)
                streams.append(state.stream)
        logger.info("Started %d collectors: %s", len(streams), ", ".join(s.name for s in streams))
        return streams

    def request_stop(self) -> None:
        """Ask every collector loop to finish at its next suspension point."""
        self._stop.set()

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop all collectors.

        Sets the stop event and waits for the loops to finish; loops still
        running after ``timeout`` seconds are cancelled.

        Args:
            timeout: Maximum seconds to wait for a cooperative stop
        """
        if not self._running:
            return

        self.request_stop()
        tasks = [s.task for s in self._collectors.values() if s.task is not None]
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=timeout)
            if pending:
                logger.warning("Cancelling %d collectors that did not stop in time", len(pending))
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

        self._running = False

    async def get_stats(self) -> SchedulerStats:
        """Get scheduler statistics."""
        total_collections = 0
        total_failures = 0
        points_emitted = 0
        running_count = 0
        latencies: list[float] = []

        for state in self._collectors.values():
            stats = state.collector.stats
            total_collections += stats["total_collections"]
            total_failures += stats["total_failures"]
            points_emitted += state.points_emitted
            if state.last_result is not None:
                latencies.append(state.last_result.collection_time_ms)
            if state.running:
                running_count += 1

        return SchedulerStats(
            running=self._running,
            collectors_registered=len(self._collectors),
            collectors_running=running_count,
            total_collections=total_collections,
            total_failures=total_failures,
            points_emitted=points_emitted,
            average_latency_ms=sum(latencies) / len(latencies) if latencies else 0.0,
        )

    async def get_collector_stats(self, name: str) -> dict[str, Any] | None:
        """Get detailed statistics for a specific collector."""
        state = self._collectors.get(name)
        if state is None:
            return None

        return {
            "collector": state.collector.stats,
            "running": state.running,
            "ticks": state.ticks,
            "points_emitted": state.points_emitted,
            "queued": state.stream.qsize(),
        }
