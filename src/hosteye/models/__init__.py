"""Pydantic data models for hosteye.

- DataPoint: Immutable tagged measurement handed through the pipeline
- Tags, Fields, FieldValue: Type aliases for point contents
- freeze_tags: Build the read-only tag mapping shared by all collectors
"""

from hosteye.models.base import DataPoint, Fields, FieldValue, Tags, freeze_tags

__all__ = [
    "DataPoint",
    "Fields",
    "FieldValue",
    "Tags",
    "freeze_tags",
]
