"""InfluxDB 1.x sink.

Every point goes through its own connect -> encode -> write -> disconnect
cycle against the HTTP ``/write`` endpoint: a fresh requests.Session is
opened, one line of line protocol is posted, and the session is closed.
There is no batching across points and no retry.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
from urllib.parse import urlparse

import requests

from hosteye.formatters.line_protocol import PRECISIONS, LineProtocolError, LineProtocolFormatter
from hosteye.models.base import DataPoint
from hosteye.sinks.base import SinkConstructionError, SinkWriteError

logger = logging.getLogger(__name__)


def _extract_body(response: requests.Response, limit: int = 512) -> str:
    try:
        body = response.text or ""
    except Exception as exc:  # pragma: no cover - undecodable body
        return f"<unable to decode body: {exc}>"
    if len(body) <= limit:
        return body
    return f"{body[:limit]}... [truncated {len(body) - limit} chars]"


class InfluxSink:
    """Writes points to an InfluxDB 1.x database over HTTP.

    Example:
        sink = InfluxSink("http://localhost:8086", "eye", "root", "root")
        sink.write(point)
    """

    def __init__(
        self,
        url: str,
        database: str,
        username: str | None = None,
        password: str | None = None,
        *,
        precision: str = "s",
        timeout: float = 5.0,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        """Initialize the sink.

        Args:
            url: Base URL of the InfluxDB HTTP API (e.g. http://host:8086)
            database: Target database name
            username: Basic-auth user (no auth if empty)
            password: Basic-auth password
            precision: Timestamp precision (ns, u, ms or s)
            timeout: HTTP timeout in seconds
            session_factory: Creates the per-write HTTP session

        Raises:
            SinkConstructionError: If the address, database or precision is invalid
        """
        parsed = urlparse(url or "")
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise SinkConstructionError(f"Invalid InfluxDB address: '{url}'")
        if not database:
            raise SinkConstructionError("InfluxDB database name must be non-empty")
        if precision not in PRECISIONS:
            raise SinkConstructionError(
                f"Invalid precision '{precision}'. Expected one of: {', '.join(PRECISIONS)}"
            )

        self.url = url.rstrip("/")
        self.database = database
        self.precision = precision
        self.timeout = timeout
        self._auth = (username, password or "") if username else None
        self._session_factory = session_factory
        self._formatter = LineProtocolFormatter(precision=precision)
        self.writes = 0

    @property
    def write_url(self) -> str:
        return f"{self.url}/write"

    def encode(self, point: DataPoint) -> str:
        """Encode one point as line protocol.

        Raises:
            SinkConstructionError: If the point cannot be encoded
        """
        try:
            return self._formatter.format(point)
        except LineProtocolError as e:
            raise SinkConstructionError(f"Cannot build point '{point.name}': {e}") from e

    def write(self, point: DataPoint) -> None:
        """Write one point in its own HTTP session.

        Raises:
            SinkConstructionError: If the point or the session cannot be built
            SinkWriteError: If the request fails or returns a non-2xx status
        """
        line = self.encode(point)

        try:
            session = self._session_factory()
        except Exception as e:
            raise SinkConstructionError(f"Cannot open InfluxDB connection: {e}") from e

        try:
            response = session.post(
                self.write_url,
                params={"db": self.database, "precision": self.precision},
                data=line.encode("utf-8"),
                auth=self._auth,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise SinkWriteError(f"InfluxDB write failed: {type(e).__name__}: {e}") from e
        finally:
            session.close()

        if response.status_code >= 300:
            raise SinkWriteError(
                f"InfluxDB write failed: HTTP {response.status_code} {_extract_body(response)}",
                status_code=response.status_code,
            )

        self.writes += 1
        logger.debug("Wrote point '%s' to %s/%s", point.name, self.url, self.database)

    def close(self) -> None:
        """Nothing to release; sessions are closed after every write."""

    def __repr__(self) -> str:
        return f"InfluxSink(url={self.url!r}, database={self.database!r})"
