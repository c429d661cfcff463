"""Sink contract and errors.

A sink accepts one DataPoint at a time. write() is a blocking call; the
sink loop runs it in a worker thread.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hosteye.models.base import DataPoint


class SinkError(Exception):
    """Base exception for sink errors."""


class SinkConstructionError(SinkError):
    """The sink, its connection, or the encoded point could not be built.

    Fatal: the collector cannot make progress without a working sink.
    """


class SinkWriteError(SinkError):
    """The destination rejected a write or could not be reached.

    Attributes:
        status_code: HTTP status returned by the destination, if any
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


@runtime_checkable
class PointSink(Protocol):
    """Minimal contract for write destinations."""

    def write(self, point: DataPoint) -> None:
        """Write one point.

        Raises:
            SinkConstructionError: If the point or connection cannot be built
            SinkWriteError: If the write itself fails
        """

    def close(self) -> None:
        """Release resources held by the sink."""
