"""Output formatters for hosteye.

- LineProtocolFormatter: InfluxDB line protocol (the wire format of the Influx sink)
- JsonFormatter: JSON objects for console output
"""

from hosteye.formatters.json_formatter import JsonFormatter
from hosteye.formatters.line_protocol import LineProtocolError, LineProtocolFormatter

Formatter = JsonFormatter | LineProtocolFormatter


def get_formatter(name: str, *, precision: str = "s", pretty_print: bool = False) -> Formatter:
    """Get a formatter by name.

    Args:
        name: "json" or "line"
        precision: Timestamp precision for line protocol
        pretty_print: Indent JSON output

    Raises:
        ValueError: If the format is not recognized
    """
    if name == "json":
        return JsonFormatter(pretty_print=pretty_print)
    if name == "line":
        return LineProtocolFormatter(precision=precision)
    raise ValueError(f"Unknown format: {name}. Available: json, line")


__all__ = [
    "Formatter",
    "JsonFormatter",
    "LineProtocolError",
    "LineProtocolFormatter",
    "get_formatter",
]
