"""Host-level collectors and host identity tags for hosteye.

- UptimeCollector: Seconds since boot
- ProcessCountCollector: Number of running processes
- UserCountCollector: Number of distinct logged-in users
- get_host_tags: Static host identity tags attached to every point
"""

from __future__ import annotations

from collections.abc import Mapping
import platform
import socket
import time
from typing import Any

import psutil

from hosteye.collectors.base import DataCollector
from hosteye.models.base import Fields, Tags, freeze_tags


class UptimeCollector(DataCollector):
    """Collector for system uptime in whole seconds."""

    name = "uptime"
    default_interval = 60.0

    def sample(self) -> Fields:
        return {"value": max(0, int(time.time() - psutil.boot_time()))}


class ProcessCountCollector(DataCollector):
    """Collector for the number of processes on the host."""

    name = "procs"
    default_interval = 10.0

    def sample(self) -> Fields:
        return {"value": len(psutil.pids())}


class UserCountCollector(DataCollector):
    """Collector for the number of distinct logged-in users.

    A user with several sessions (terminals, ssh logins) counts once.
    """

    name = "users"
    default_interval = 60.0

    def sample(self) -> Fields:
        return {"value": len({user.name for user in psutil.users()})}


def _os_release() -> dict[str, str]:
    """Read /etc/os-release where available."""
    try:
        return platform.freedesktop_os_release()
    except OSError:
        return {}


def get_host_tags(extra: Mapping[str, Any] | None = None) -> Tags:
    """Build the static tag set identifying this host.

    Tags with an empty value are left out. ``extra`` entries (from the
    ``tags`` config section) override the detected ones.

    Args:
        extra: Additional static tags

    Returns:
        Read-only tag mapping
    """
    system = platform.system()
    release = _os_release()

    detected = {
        "Hostname": socket.gethostname(),
        "OS": system.lower(),
        "Platform": release.get("ID", system.lower()),
        "PlatformFamily": release.get("ID_LIKE", "").split(" ")[0],
        "PlatformVersion": release.get("VERSION_ID", platform.release()),
        "Arch": platform.machine(),
    }
    tags = {key: value for key, value in detected.items() if value}
    return freeze_tags(tags, **dict(extra or {}))
