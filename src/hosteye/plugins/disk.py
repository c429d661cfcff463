"""Disk usage collector for hosteye.

Reports total/used/free bytes for every physical partition. Fields are
keyed by the last path segment of the partition device, so ``/dev/sda1``
yields ``sda1.total``, ``sda1.used`` and ``sda1.free``.
"""

from __future__ import annotations

import logging
from typing import Any

import psutil

from hosteye.collectors.base import DataCollector
from hosteye.models.base import Fields

logger = logging.getLogger(__name__)


def device_name(device: str) -> str:
    """Return the last ``/``-separated segment of a device path."""
    return device.rsplit("/", 1)[-1]


class DiskCollector(DataCollector):
    """Collector for per-partition disk usage.

    A partition whose usage lookup fails (unmounted, permission denied,
    device removed) is left out of the result; the other partitions are
    still reported.
    """

    name = "disk"
    default_interval = 30.0
    timeout = 20.0

    def __init__(self, all_partitions: bool = False) -> None:
        """Initialize the disk collector.

        Args:
            all_partitions: Include pseudo and duplicate filesystems
        """
        super().__init__()
        self.all_partitions = all_partitions

    def _partition_fields(self, partition: Any) -> Fields | None:
        """Get usage fields for one partition, or None if inaccessible."""
        try:
            usage = psutil.disk_usage(partition.mountpoint)
        except OSError as e:
            # PermissionError is an OSError too
            logger.debug("Skipping partition %s (%s): %s", partition.device, partition.mountpoint, e)
            return None

        disk = device_name(partition.device)
        return {
            f"{disk}.total": int(usage.total),
            f"{disk}.used": int(usage.used),
            f"{disk}.free": int(usage.free),
        }

    def sample(self) -> Fields:
        fields: Fields = {}
        for partition in psutil.disk_partitions(all=self.all_partitions):
            partition_fields = self._partition_fields(partition)
            if partition_fields is not None:
                fields.update(partition_fields)
        return fields
