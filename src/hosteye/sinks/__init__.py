"""Write destinations for hosteye.

- InfluxSink: InfluxDB 1.x over HTTP, one session per point
- ConsoleSink: Formatted points on stdout
"""

from hosteye.sinks.base import (
    PointSink,
    SinkConstructionError,
    SinkError,
    SinkWriteError,
)
from hosteye.sinks.console import ConsoleSink
from hosteye.sinks.influx import InfluxSink

__all__ = [
    "PointSink",
    "SinkError",
    "SinkConstructionError",
    "SinkWriteError",
    "ConsoleSink",
    "InfluxSink",
]
