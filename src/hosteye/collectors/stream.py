"""Bounded, closable point streams.

A PointStream is the handoff between pipeline stages: a scheduler sends
into one, the merger reads many and sends into one, and the sink loop reads
the merged stream. Capacity is bounded (default 1), so a slow reader
throttles every writer upstream of it.

Semantics:
- send() waits while the stream is full and raises StreamClosedError once
  the stream is closed; points are never dropped silently.
- close() is idempotent. Items already queued remain readable.
- Iteration ends after the stream is closed and drained.
"""

import asyncio
from collections import deque
from collections.abc import AsyncIterator

from hosteye.models.base import DataPoint


class StreamClosedError(RuntimeError):
    """Raised when sending on a stream that has been closed."""


class PointStream:
    """Async, bounded FIFO of DataPoints with close semantics.

    Example:
        stream = PointStream(name="cpu")
        await stream.send(point)
        await stream.close()
        async for point in stream:
            ...
    """

    def __init__(self, capacity: int = 1, name: str = "") -> None:
        """Initialize the stream.

        Args:
            capacity: Maximum number of queued points (must be positive)
            name: Label used in error messages and logs

        Raises:
            ValueError: If capacity is not positive
        """
        if capacity <= 0:
            raise ValueError("Stream capacity must be positive")
        self.name = name
        self._capacity = capacity
        self._items: deque[DataPoint] = deque()
        self._closed = False
        self._changed = asyncio.Condition()

    @property
    def capacity(self) -> int:
        """Maximum number of queued points."""
        return self._capacity

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def qsize(self) -> int:
        """Number of points waiting to be read."""
        return len(self._items)

    async def send(self, point: DataPoint) -> None:
        """Queue a point, waiting for room if the stream is full.

        Raises:
            StreamClosedError: If the stream is (or becomes) closed
        """
        async with self._changed:
            await self._changed.wait_for(
                lambda: self._closed or len(self._items) < self._capacity
            )
            if self._closed:
                raise StreamClosedError(f"send on closed stream '{self.name}'")
            self._items.append(point)
            self._changed.notify_all()

    async def receive(self) -> DataPoint:
        """Take the next point, waiting until one is available.

        Raises:
            StopAsyncIteration: If the stream is closed and drained
        """
        async with self._changed:
            await self._changed.wait_for(lambda: self._closed or bool(self._items))
            if not self._items:
                raise StopAsyncIteration
            point = self._items.popleft()
            self._changed.notify_all()
            return point

    async def close(self) -> None:
        """Close the stream, waking any blocked senders and readers."""
        async with self._changed:
            self._closed = True
            self._changed.notify_all()

    def __aiter__(self) -> AsyncIterator[DataPoint]:
        return self

    async def __anext__(self) -> DataPoint:
        return await self.receive()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"PointStream(name={self.name!r}, {state}, {len(self._items)}/{self._capacity})"
