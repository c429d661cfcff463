"""CPU and load-average collectors for hosteye.

- CPUCollector: Per-core utilization, keyed ``cpu<N>.util``
- LoadCollector: 1, 5 and 15 minute load averages

Both are thin psutil queries; any psutil failure propagates and the
scheduler drops that tick.
"""

from __future__ import annotations

import psutil

from hosteye.collectors.base import DataCollector
from hosteye.models.base import Fields


class CPUCollector(DataCollector):
    """Collector for per-core CPU utilization.

    Uses a non-blocking psutil call, so each value is the utilization since
    the previous call (the very first sample after start-up reads 0.0).
    """

    name = "cpu"
    default_interval = 5.0

    def sample(self) -> Fields:
        percents = psutil.cpu_percent(interval=None, percpu=True)
        return {f"cpu{index}.util": float(value) for index, value in enumerate(percents)}


class LoadCollector(DataCollector):
    """Collector for system load averages."""

    name = "load"
    default_interval = 5.0

    def sample(self) -> Fields:
        load1, load5, load15 = psutil.getloadavg()
        return {
            "1m": float(load1),
            "5m": float(load5),
            "15m": float(load15),
        }
