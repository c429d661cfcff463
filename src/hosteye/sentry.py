"""Optional Sentry error reporting for hosteye.

Nothing is sent unless a DSN is configured (``sentry.dsn`` in the config
file, or ``HOSTEYE_SENTRY_DSN``). When enabled, ERROR log records and fatal
pipeline errors become Sentry events tagged with the host and the running
collectors.
"""

from __future__ import annotations

import logging
import platform
import socket
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from hosteye import __version__

logger = logging.getLogger(__name__)


def init_sentry(
    *,
    dsn: str | None,
    environment: str = "production",
    debug: bool = False,
    event_level: int = logging.ERROR,
) -> bool:
    """Start the Sentry client if a DSN is given.

    Args:
        dsn: Sentry DSN; reporting stays off when empty
        environment: Environment name attached to every event
        debug: Turn on the SDK's own debug output
        event_level: Lowest log level that creates an event (lower levels
            are kept as breadcrumbs from INFO up)

    Returns:
        True if Sentry was initialized
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=f"hosteye@{__version__}",
        debug=debug,
        send_default_pii=False,
        integrations=[
            AsyncioIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=event_level),
        ],
        before_send=_before_send,
    )
    for key, value in {
        "app.version": __version__,
        "python.version": platform.python_version(),
        "os.name": platform.system(),
        "host": socket.gethostname(),
    }.items():
        sentry_sdk.set_tag(key, value)

    logger.debug("Sentry error reporting enabled (%s)", environment)
    return True


def _before_send(event: dict[str, Any], hint: dict[str, Any]) -> dict[str, Any] | None:
    # Ctrl-C is a normal way to stop the agent
    exc_info = hint.get("exc_info")
    if exc_info and exc_info[0] is KeyboardInterrupt:
        return None
    return event


def set_agent_context(
    *,
    collectors: list[str] | None = None,
    sink: str | None = None,
    config_path: str | None = None,
) -> None:
    """Attach what the agent is running to every later event."""
    context: dict[str, Any] = {}
    if collectors is not None:
        context.update(collectors=collectors, collector_count=len(collectors))
    if sink is not None:
        context["sink"] = sink
        sentry_sdk.set_tag("hosteye.sink", sink)
    if config_path is not None:
        context["config_path"] = config_path
        sentry_sdk.set_tag("hosteye.custom_config", "true")

    if context:
        sentry_sdk.set_context("hosteye", context)


def capture_fatal_error(error: BaseException, *, extra: dict[str, Any] | None = None) -> None:
    """Report an error that stopped the pipeline. A no-op if Sentry is off."""
    with sentry_sdk.new_scope() as scope:
        scope.set_tag("fatal", "true")
        scope.set_context("fatal_error", {"error_type": type(error).__name__, **(extra or {})})
        sentry_sdk.capture_exception(error)
