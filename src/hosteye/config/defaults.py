"""Default configuration values for hosteye.

This module defines the default configuration used when no config file exists
or when config values are not specified. All configuration options are documented
here for reference.

Environment Variables:
    HOSTEYE_CONFIG_PATH: Override default config file path
    INFLUX_URL, INFLUX_DATABASE, INFLUX_USERNAME, INFLUX_PASSWORD: Destination
        settings, referenced by the defaults below
    Any config value can reference environment variables using ${VAR} syntax

Config File Locations (in order of precedence):
    1. Path specified via --config CLI flag
    2. Path specified via HOSTEYE_CONFIG_PATH environment variable
    3. ~/.config/hosteye/config.yaml (XDG default)
    4. /etc/hosteye/config.yaml (system-wide)
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    # Destination database
    "influx": {
        "url": "${INFLUX_URL:-http://localhost:8086}",
        "database": "${INFLUX_DATABASE:-eye}",
        "username": "${INFLUX_USERNAME:-root}",
        "password": "${INFLUX_PASSWORD:-root}",
        "precision": "s",  # s, ms, u or ns
        "timeout": 5.0,  # HTTP timeout in seconds
    },
    # Where points go: "influx" or "console"
    "sink": "influx",
    # What to do when a write fails: "ignore", "log" or "raise"
    "on_write_error": "log",
    # Per-collector settings; interval is in seconds
    "collectors": {
        "cpu": {"enabled": True, "interval": 5},
        "mem": {"enabled": True, "interval": 5},
        "disk": {"enabled": True, "interval": 30},
        "load": {"enabled": True, "interval": 5},
        "procs": {"enabled": True, "interval": 10},
        "users": {"enabled": True, "interval": 60},
        "uptime": {"enabled": True, "interval": 60},
    },
    # Extra static tags merged over the detected host tags
    "tags": {},
    "pipeline": {
        "stream_capacity": 1,  # Points buffered per stream
        "shutdown_timeout": 5.0,  # Seconds allowed for a graceful stop
    },
    "console": {
        "format": "line",  # "line" or "json"
    },
    "logging": {
        "level": "INFO",  # DEBUG, INFO, WARNING, ERROR
        "file": None,  # Optional log file path
    },
    # Error reporting; disabled unless a DSN is configured
    "sentry": {
        "dsn": "${HOSTEYE_SENTRY_DSN:-}",
        "environment": "production",
    },
}
