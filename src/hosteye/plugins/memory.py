"""Memory collector for hosteye.

Reports virtual memory byte counts. All values are gauges.
"""

import psutil

from hosteye.collectors.base import DataCollector
from hosteye.models.base import Fields


class MemoryCollector(DataCollector):
    """Collector for RAM usage using psutil.

    Fields:
        total: Total physical memory in bytes
        avail: Memory available to new processes without swapping
        free: Memory not used at all
    """

    name = "mem"
    default_interval = 5.0

    def sample(self) -> Fields:
        vm = psutil.virtual_memory()
        return {
            "total": int(vm.total),
            "avail": int(vm.available),
            "free": int(vm.free),
        }
