"""Base Pydantic models for hosteye data types.

This module defines the values that flow through the collection pipeline:
- Tags: Static per-run metadata attached to every point
- Fields: One sampler's flat key -> scalar measurement snapshot
- DataPoint: Immutable record of one successful sample, tagged and timestamped
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

# A field value is an integer count/byte value or a float reading
FieldValue = int | float

Tags = Mapping[str, str]
"""Read-only mapping of tag key to tag value, shared by every collector."""

Fields = dict[str, FieldValue]
"""Flat mapping of field key to scalar value for one sample."""


def _utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def freeze_tags(tags: Mapping[str, Any] | None = None, **extra: Any) -> Tags:
    """Build a read-only tag mapping.

    Values are coerced to strings. Keyword arguments override entries
    from ``tags``.

    Args:
        tags: Initial tag mapping
        **extra: Additional tags

    Returns:
        An immutable mapping proxy over a private copy of the tags

    Raises:
        ValueError: If a tag key is empty
    """
    merged: dict[str, str] = {}
    for key, value in {**(tags or {}), **extra}.items():
        if not key:
            raise ValueError("Tag keys must be non-empty")
        merged[str(key)] = "" if value is None else str(value)
    return MappingProxyType(merged)


class DataPoint(BaseModel):
    """One successful measurement of a metric family.

    Points are created by a scheduler each time its sampler succeeds and are
    consumed exactly once by the sink loop. They are frozen and hold their
    own read-only copies of tags and fields, so handing one across tasks is
    safe.

    Attributes:
        name: Metric family name (e.g. "cpu", "mem")
        tags: Static tags for the run
        fields: Sampled values
        timestamp: When the sample was taken (UTC)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(..., min_length=1, description="Metric family name")
    tags: Mapping[str, str] = Field(default_factory=dict, validate_default=True)
    fields: Mapping[str, FieldValue]
    timestamp: datetime = Field(default_factory=_utcnow)

    @field_validator("tags", mode="before")
    @classmethod
    def copy_tags(cls, v: Any) -> Any:
        """Take a private copy of a (possibly read-only) tag mapping."""
        if isinstance(v, Mapping):
            return dict(v)
        return v

    @field_validator("fields", mode="before")
    @classmethod
    def reject_bool_fields(cls, v: Any) -> Any:
        """Reject booleans, which would otherwise validate as integers."""
        if isinstance(v, Mapping):
            for key, value in v.items():
                if isinstance(value, bool):
                    raise ValueError(f"Field '{key}' must be numeric, got bool")
            return dict(v)
        return v

    @field_validator("tags", "fields", mode="after")
    @classmethod
    def freeze(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return MappingProxyType(dict(v))

    @field_serializer("tags", "fields")
    def serialize_mapping(self, v: Mapping[str, Any]) -> dict[str, Any]:
        return dict(v)

    def age_seconds(self) -> float:
        """Return how old this point is in seconds."""
        return (_utcnow() - self.timestamp).total_seconds()
