"""Fan-in of many point streams into one.

StreamMerger starts one forwarding task per input stream plus a watcher
task. Each forwarder copies points from its input to the shared output as
they arrive, so a quiet input never holds back a busy one. The watcher
waits for every forwarder to finish before closing the output; until then
a forwarder may still send.
"""

import asyncio
from collections.abc import AsyncIterator, Sequence
import logging

from hosteye.collectors.stream import PointStream
from hosteye.models.base import DataPoint

logger = logging.getLogger(__name__)


class StreamMerger:
    """Merges several PointStreams into a single output stream.

    Ordering across inputs is arrival order; ordering within one input is
    preserved. The output closes only after every input has closed and been
    drained.

    Example:
        merger = StreamMerger([cpu_stream, mem_stream])
        merger.start()
        async for point in merger:
            ...
        await merger.wait_closed()
    """

    def __init__(self, streams: Sequence[PointStream], capacity: int = 1) -> None:
        """Initialize the merger.

        Args:
            streams: Input streams to merge
            capacity: Capacity of the output stream
        """
        self._inputs = list(streams)
        self._output = PointStream(capacity=capacity, name="merged")
        self._forwarders: list[asyncio.Task[int]] = []
        self._watcher: asyncio.Task[None] | None = None
        self._error: BaseException | None = None

    @property
    def output(self) -> PointStream:
        """The merged stream."""
        return self._output

    @property
    def inputs(self) -> list[PointStream]:
        """The input streams, in registration order."""
        return list(self._inputs)

    @property
    def started(self) -> bool:
        """Whether start() has been called."""
        return self._watcher is not None

    def start(self) -> PointStream:
        """Start forwarding. Must be called from a running event loop.

        Returns:
            The merged output stream
        """
        if self._watcher is not None:
            return self._output

        for index, stream in enumerate(self._inputs):
            label = stream.name or str(index)
            self._forwarders.append(
                asyncio.create_task(self._forward(stream), name=f"merge-{label}")
            )
        self._watcher = asyncio.create_task(self._close_when_drained(), name="merge-watcher")
        return self._output

    async def _forward(self, stream: PointStream) -> int:
        forwarded = 0
        async for point in stream:
            await self._output.send(point)
            forwarded += 1
        logger.debug("Input stream '%s' closed after %d points", stream.name, forwarded)
        return forwarded

    async def _close_when_drained(self) -> None:
        try:
            await asyncio.gather(*self._forwarders)
        except asyncio.CancelledError:
            for task in self._forwarders:
                task.cancel()
            raise
        except Exception as e:
            logger.error("Stream merge failed: %s: %s", type(e).__name__, e)
            self._error = e
            for task in self._forwarders:
                task.cancel()
        finally:
            await self._output.close()

    async def wait_closed(self) -> None:
        """Wait until the output has been closed.

        Raises:
            Exception: The first error raised by a forwarding task, if any
        """
        if self._watcher is not None:
            await self._watcher
        if self._error is not None:
            raise self._error

    async def cancel(self) -> None:
        """Stop forwarding immediately and close the output."""
        tasks = [*self._forwarders, *([self._watcher] if self._watcher else [])]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        await self._output.close()

    def __aiter__(self) -> AsyncIterator[DataPoint]:
        return self._output.__aiter__()


def merge(streams: Sequence[PointStream], *, capacity: int = 1) -> StreamMerger:
    """Merge ``streams`` into one and start forwarding.

    Args:
        streams: Input streams
        capacity: Capacity of the merged stream

    Returns:
        A started StreamMerger; iterate it to read the merged points
    """
    merger = StreamMerger(streams, capacity=capacity)
    merger.start()
    return merger
