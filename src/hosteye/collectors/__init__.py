"""Data collection pipeline for hosteye.

This module provides the concurrent collection machinery:

- DataCollector: Abstract base class for samplers
- PointStream: Bounded, closable handoff between pipeline stages
- collect / CollectionScheduler: Periodic per-collector producer tasks
- merge / StreamMerger: Fan-in of many streams into one

All operations are asyncio-based; blocking OS queries run in worker threads.
"""

from hosteye.collectors.base import (
    CollectionResult,
    CollectorStats,
    DataCollector,
    FunctionCollector,
    Sampler,
    as_collector,
)
from hosteye.collectors.merge import StreamMerger, merge
from hosteye.collectors.scheduler import (
    CollectionScheduler,
    ScheduledStream,
    SchedulerStats,
    collect,
)
from hosteye.collectors.stream import PointStream, StreamClosedError

__all__ = [
    "CollectionResult",
    "CollectorStats",
    "DataCollector",
    "FunctionCollector",
    "Sampler",
    "as_collector",
    "PointStream",
    "StreamClosedError",
    "collect",
    "CollectionScheduler",
    "ScheduledStream",
    "SchedulerStats",
    "merge",
    "StreamMerger",
]
