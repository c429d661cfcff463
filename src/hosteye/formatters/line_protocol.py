"""InfluxDB line protocol encoding for DataPoints.

Reference: https://docs.influxdata.com/influxdb/v1/write_protocols/line_protocol_reference/

    <measurement>[,<tag_key>=<tag_value>...] <field_key>=<field_value>[,...] [<timestamp>]

Integers are written with the ``i`` suffix and floats in shortest
round-trip form. Tags are sorted by key, as InfluxDB recommends, and tags
with an empty value are omitted since the protocol cannot express them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
import math

from hosteye.models.base import DataPoint

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Nanoseconds per unit for each write precision
PRECISIONS: dict[str, int] = {
    "ns": 1,
    "u": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
}


class LineProtocolError(ValueError):
    """Raised when a point cannot be expressed in line protocol."""


def _escape_measurement(value: str) -> str:
    return value.replace("\\", "\\\\").replace(",", "\\,").replace(" ", "\\ ")


def _escape_key(value: str) -> str:
    """Escape tag keys, tag values and field keys."""
    return (
        value.replace("\\", "\\\\")
        .replace(",", "\\,")
        .replace("=", "\\=")
        .replace(" ", "\\ ")
    )


def format_field_value(value: object) -> str:
    """Format one field value.

    Raises:
        LineProtocolError: For non-finite floats and unsupported types
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"{value}i"
    if isinstance(value, float):
        if not math.isfinite(value):
            raise LineProtocolError(f"Field value {value!r} is not finite")
        return repr(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    raise LineProtocolError(f"Unsupported field value type: {type(value).__name__}")


def timestamp_in(ts: datetime, precision: str = "ns") -> int:
    """Convert a datetime to an integer epoch timestamp in ``precision`` units.

    Raises:
        LineProtocolError: If the precision is unknown
    """
    if precision not in PRECISIONS:
        raise LineProtocolError(
            f"Unknown precision '{precision}'. Expected one of: {', '.join(PRECISIONS)}"
        )
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    delta = ts - _EPOCH
    nanos = (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000
    return nanos // PRECISIONS[precision]


def to_line(
    measurement: str,
    tags: Mapping[str, str],
    fields: Mapping[str, object],
    timestamp: int | None = None,
) -> str:
    """Encode one point as a line of line protocol.

    Raises:
        LineProtocolError: If there is no measurement or no fields
    """
    if not measurement:
        raise LineProtocolError("Measurement name must be non-empty")
    if not fields:
        raise LineProtocolError(f"Point '{measurement}' has no fields")

    prefix = _escape_measurement(measurement)
    tag_pairs = [
        f"{_escape_key(str(k))}={_escape_key(str(v))}" for k, v in sorted(tags.items()) if v != ""
    ]
    if tag_pairs:
        prefix = f"{prefix},{','.join(tag_pairs)}"

    field_payload = ",".join(
        f"{_escape_key(str(k))}={format_field_value(v)}" for k, v in fields.items()
    )

    line = f"{prefix} {field_payload}"
    if timestamp is not None:
        line = f"{line} {timestamp}"
    return line


class LineProtocolFormatter:
    """Formats DataPoints as InfluxDB line protocol."""

    name = "line"

    def __init__(self, precision: str = "s") -> None:
        """Initialize the formatter.

        Args:
            precision: Timestamp precision (ns, u, ms or s)

        Raises:
            LineProtocolError: If the precision is unknown
        """
        if precision not in PRECISIONS:
            raise LineProtocolError(
                f"Unknown precision '{precision}'. Expected one of: {', '.join(PRECISIONS)}"
            )
        self.precision = precision

    def format(self, point: DataPoint) -> str:
        return to_line(
            point.name,
            point.tags,
            point.fields,
            timestamp_in(point.timestamp, self.precision),
        )

    def format_many(self, points: Iterable[DataPoint]) -> str:
        return "\n".join(self.format(point) for point in points)
