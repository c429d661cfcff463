"""Console sink: prints each point to a text stream instead of a database."""

from __future__ import annotations

import sys
import threading
from typing import TextIO

from hosteye.formatters import Formatter, LineProtocolFormatter
from hosteye.formatters.line_protocol import LineProtocolError
from hosteye.models.base import DataPoint
from hosteye.sinks.base import SinkConstructionError


class ConsoleSink:
    """Writes one formatted point per line to ``stream`` (stdout by default)."""

    def __init__(self, formatter: Formatter | None = None, stream: TextIO | None = None) -> None:
        self.formatter = formatter or LineProtocolFormatter()
        self._stream = stream
        self._lock = threading.Lock()
        self.writes = 0

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def write(self, point: DataPoint) -> None:
        try:
            output = self.formatter.format(point)
        except LineProtocolError as e:
            raise SinkConstructionError(f"Cannot build point '{point.name}': {e}") from e
        with self._lock:
            print(output, file=self.stream, flush=True)
            self.writes += 1

    def close(self) -> None:
        with self._lock:
            self.stream.flush()
