"""JSON formatter for DataPoints.

Uses Pydantic's model_dump() so timestamps serialize as ISO 8601 strings.
Used by the console sink and by ``hosteye once``.
"""

from __future__ import annotations

from collections.abc import Iterable
import json
from typing import Any

from hosteye.models.base import DataPoint


class JsonFormatter:
    """Formats DataPoints as JSON objects.

    Instance Attributes:
        pretty_print: Whether to format with indentation (default: False)
    """

    name = "json"

    def __init__(self, pretty_print: bool = False) -> None:
        """Initialize the JSON formatter.

        Args:
            pretty_print: If True, output indented JSON. If False, output
                one compact object per line.
        """
        self.pretty_print = pretty_print

    def to_dict(self, point: DataPoint) -> dict[str, Any]:
        return point.model_dump(mode="json")

    def format(self, point: DataPoint) -> str:
        return self._dumps(self.to_dict(point))

    def format_many(self, points: Iterable[DataPoint]) -> str:
        if self.pretty_print:
            return self._dumps([self.to_dict(point) for point in points])
        return "\n".join(self.format(point) for point in points)

    def _dumps(self, payload: Any) -> str:
        if self.pretty_print:
            return json.dumps(payload, indent=2, sort_keys=False)
        return json.dumps(payload, separators=(",", ":"))
