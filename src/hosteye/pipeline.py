"""Collection pipeline: schedulers -> merger -> sink loop.

Each collector runs in its own scheduler task and emits DataPoints on its
own stream; the merger fans every stream into one; the sink loop drains the
merged stream one point at a time into the write destination.

Shutdown is cooperative. request_stop() sets the shared stop event, every
scheduler leaves its sleep or pending send and closes its stream, the
merger closes its output once all inputs are drained, and the sink loop
ends after writing what is left. The whole sequence is bounded by
``shutdown_timeout``; anything still running after that is cancelled.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, Sequence
from dataclasses import dataclass
import logging
from typing import Literal

from hosteye.collectors.base import DataCollector
from hosteye.collectors.merge import StreamMerger
from hosteye.collectors.scheduler import CollectionScheduler
from hosteye.models.base import DataPoint, Tags
from hosteye.sinks.base import PointSink, SinkWriteError

logger = logging.getLogger(__name__)

WriteErrorPolicy = Literal["ignore", "log", "raise"]
WRITE_ERROR_POLICIES: tuple[str, ...] = ("ignore", "log", "raise")


@dataclass
class SinkStats:
    """Counters kept by the sink loop.

    Attributes:
        points_received: Points read from the merged stream
        points_written: Points the sink accepted
        write_failures: Points the sink rejected
        last_error: Message of the most recent write failure
    """

    points_received: int = 0
    points_written: int = 0
    write_failures: int = 0
    last_error: str | None = None


async def drain(
    stream: AsyncIterable[DataPoint],
    sink: PointSink,
    *,
    on_write_error: WriteErrorPolicy = "log",
    stats: SinkStats | None = None,
) -> SinkStats:
    """Write every point from ``stream`` to ``sink`` until the stream closes.

    Each write runs in a worker thread. SinkConstructionError (and any
    unexpected error) propagates and ends the loop. SinkWriteError is
    handled by ``on_write_error``: "ignore" drops the point, "log" drops it
    with a warning, "raise" propagates it.

    Args:
        stream: Merged point stream
        sink: Write destination
        on_write_error: Policy for failed writes
        stats: Counters to update (a new SinkStats if omitted)

    Returns:
        The updated counters

    Raises:
        ValueError: If the policy is unknown
    """
    if on_write_error not in WRITE_ERROR_POLICIES:
        raise ValueError(
            f"Unknown write error policy '{on_write_error}'. "
            f"Expected one of: {', '.join(WRITE_ERROR_POLICIES)}"
        )
    stats = stats if stats is not None else SinkStats()

    async for point in stream:
        stats.points_received += 1
        try:
            await asyncio.to_thread(sink.write, point)
        except SinkWriteError as e:
            stats.write_failures += 1
            stats.last_error = str(e)
            if on_write_error == "raise":
                raise
            if on_write_error == "log":
                logger.warning("Dropping point '%s': %s", point.name, e)
            continue
        stats.points_written += 1

    return stats


class Pipeline:
    """Wires collectors, the merger and the sink loop together.

    Example:
        pipeline = Pipeline([CPUCollector(), MemoryCollector()], tags, sink)
        loop.add_signal_handler(signal.SIGTERM, pipeline.request_stop)
        stats = await pipeline.run()
    """

    def __init__(
        self,
        collectors: Sequence[DataCollector],
        tags: Tags,
        sink: PointSink,
        *,
        stream_capacity: int = 1,
        shutdown_timeout: float = 5.0,
        on_write_error: WriteErrorPolicy = "log",
    ) -> None:
        """Initialize the pipeline.

        Args:
            collectors: Collectors to schedule, each at its own interval
            tags: Static tags attached to every point
            sink: Write destination
            stream_capacity: Capacity of every stream in the pipeline
            shutdown_timeout: Seconds allowed for a cooperative shutdown
            on_write_error: Policy for failed writes (see drain())
        """
        if shutdown_timeout <= 0:
            raise ValueError("Shutdown timeout must be positive")
        self.sink = sink
        self.stream_capacity = stream_capacity
        self.shutdown_timeout = shutdown_timeout
        self.on_write_error = on_write_error
        self.scheduler = CollectionScheduler(tags, stream_capacity=stream_capacity)
        for collector in collectors:
            self.scheduler.register(collector)
        self.stats = SinkStats()
        self._merger: StreamMerger | None = None

    @property
    def stopping(self) -> bool:
        """Whether a stop has been requested."""
        return self.scheduler.stop_event.is_set()

    def request_stop(self) -> None:
        """Ask the pipeline to shut down. Safe to call from a signal handler."""
        if not self.stopping:
            logger.info("Stopping collection pipeline")
        self.scheduler.request_stop()

    async def run(self) -> SinkStats:
        """Run until stopped or until the sink loop fails.

        Returns:
            Sink loop counters

        Raises:
            SinkConstructionError: If the sink cannot build a connection or point
            SinkWriteError: If a write fails under the "raise" policy
        """
        streams = await self.scheduler.start()
        self._merger = StreamMerger(streams, capacity=self.stream_capacity)
        self._merger.start()

        sink_loop = asyncio.create_task(
            drain(self._merger, self.sink, on_write_error=self.on_write_error, stats=self.stats),
            name="sink-loop",
        )
        stop_requested = asyncio.create_task(self.scheduler.stop_event.wait())
        loop = asyncio.get_running_loop()
        # One shutdown budget covers both the sink loop and the collectors
        deadline: float | None = None
        try:
            await asyncio.wait({sink_loop, stop_requested}, return_when=asyncio.FIRST_COMPLETED)
            if not sink_loop.done():
                deadline = loop.time() + self.shutdown_timeout
                _, pending = await asyncio.wait({sink_loop}, timeout=self.shutdown_timeout)
                if pending:
                    logger.warning(
                        "Sink loop did not finish within %.1fs; cancelling", self.shutdown_timeout
                    )
                    sink_loop.cancel()
                    await asyncio.gather(sink_loop, return_exceptions=True)
            if not sink_loop.cancelled():
                # Re-raise fatal sink errors
                sink_loop.result()
        finally:
            stop_requested.cancel()
            if not sink_loop.done():
                sink_loop.cancel()
                await asyncio.gather(sink_loop, return_exceptions=True)
            if deadline is None:
                deadline = loop.time() + self.shutdown_timeout
            await self._shutdown(max(0.0, deadline - loop.time()))

        return self.stats

    async def _shutdown(self, timeout: float) -> None:
        self.scheduler.request_stop()
        await self.scheduler.stop(timeout=timeout)
        if self._merger is not None:
            await self._merger.cancel()
        logger.info(
            "Pipeline stopped: %d points received, %d written, %d failed",
            self.stats.points_received,
            self.stats.points_written,
            self.stats.write_failures,
        )
