"""Tests for the InfluxDB sink."""

from datetime import UTC, datetime
from typing import Any

import pytest
import requests

from hosteye.models import DataPoint
from hosteye.sinks import InfluxSink, PointSink, SinkConstructionError, SinkWriteError

TS = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)


class FakeResponse:
    def __init__(self, status_code: int = 204, text: str = "") -> None:
        self.status_code = status_code
        self.text = text
        self.headers: dict[str, str] = {}

    def json(self) -> Any:
        raise ValueError("no json")


class FakeSession:
    """Records posts; returns a canned response or raises."""

    instances: list["FakeSession"] = []

    def __init__(self, response: FakeResponse | None = None, error: Exception | None = None) -> None:
        self.response = response or FakeResponse()
        self.error = error
        self.posts: list[dict[str, Any]] = []
        self.closed = False
        FakeSession.instances.append(self)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        self.posts.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response

    def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_sessions() -> None:
    FakeSession.instances = []


def make_point() -> DataPoint:
    return DataPoint(name="mem", tags={"Hostname": "web-1"}, fields={"total": 100}, timestamp=TS)


def make_sink(**kwargs: Any) -> InfluxSink:
    factory = kwargs.pop("session_factory", FakeSession)
    return InfluxSink(
        "http://influx:8086/",
        "eye",
        "root",
        "secret",
        session_factory=factory,
        **kwargs,
    )


class TestConstruction:
    """Tests for sink construction."""

    def test_valid(self) -> None:
        """Test a valid configuration."""
        sink = make_sink()
        assert sink.write_url == "http://influx:8086/write"
        assert isinstance(sink, PointSink)

    @pytest.mark.parametrize("url", ["", "influx:8086", "ftp://influx", "http://"])
    def test_invalid_address(self, url: str) -> None:
        """Test that unusable addresses are construction errors."""
        with pytest.raises(SinkConstructionError, match="Invalid InfluxDB address"):
            InfluxSink(url, "eye")

    def test_empty_database(self) -> None:
        """Test that a database name is required."""
        with pytest.raises(SinkConstructionError, match="database"):
            InfluxSink("http://influx:8086", "")

    def test_invalid_precision(self) -> None:
        """Test that the precision must be known."""
        with pytest.raises(SinkConstructionError, match="precision"):
            InfluxSink("http://influx:8086", "eye", precision="h")


class TestWrite:
    """Tests for InfluxSink.write()."""

    def test_posts_one_line(self) -> None:
        """Test that a write posts exactly one line with db, precision and auth."""
        sink = make_sink()
        sink.write(make_point())

        assert len(FakeSession.instances) == 1
        session = FakeSession.instances[0]
        assert len(session.posts) == 1
        post = session.posts[0]
        assert post["url"] == "http://influx:8086/write"
        assert post["params"] == {"db": "eye", "precision": "s"}
        assert post["auth"] == ("root", "secret")
        assert post["data"] == b"mem,Hostname=web-1 total=100i 1704164645"
        assert post["timeout"] == 5.0
        assert sink.writes == 1

    def test_session_per_write(self) -> None:
        """Test that each write opens and closes its own session."""
        sink = make_sink()
        sink.write(make_point())
        sink.write(make_point())

        assert len(FakeSession.instances) == 2
        assert all(s.closed for s in FakeSession.instances)

    def test_precision_applied(self) -> None:
        """Test that the timestamp follows the configured precision."""
        sink = make_sink(precision="ms")
        sink.write(make_point())

        post = FakeSession.instances[0].posts[0]
        assert post["params"]["precision"] == "ms"
        assert post["data"].endswith(b" 1704164645000")

    def test_no_auth_without_username(self) -> None:
        """Test that basic auth is omitted when no user is configured."""
        sink = InfluxSink("http://influx:8086", "eye", session_factory=FakeSession)
        sink.write(make_point())
        assert FakeSession.instances[0].posts[0]["auth"] is None

    def test_http_error_status(self) -> None:
        """Test that a non-2xx response is a write error carrying the status."""
        sink = make_sink(
            session_factory=lambda: FakeSession(FakeResponse(404, '{"error":"database not found"}'))
        )
        with pytest.raises(SinkWriteError) as exc_info:
            sink.write(make_point())

        assert exc_info.value.status_code == 404
        assert "database not found" in str(exc_info.value)
        assert FakeSession.instances[0].closed
        assert sink.writes == 0

    def test_network_error(self) -> None:
        """Test that request failures are write errors and the session is closed."""
        sink = make_sink(
            session_factory=lambda: FakeSession(error=requests.ConnectionError("refused"))
        )
        with pytest.raises(SinkWriteError, match="ConnectionError"):
            sink.write(make_point())
        assert FakeSession.instances[0].closed

    def test_session_factory_failure(self) -> None:
        """Test that failing to build a connection is a construction error."""

        def broken_factory() -> requests.Session:
            raise RuntimeError("no sockets")

        sink = make_sink(session_factory=broken_factory)
        with pytest.raises(SinkConstructionError, match="no sockets"):
            sink.write(make_point())

    def test_unencodable_point(self) -> None:
        """Test that a point that cannot be encoded is a construction error."""
        sink = make_sink()
        point = DataPoint(name="x", fields={"v": float("inf")}, timestamp=TS)
        with pytest.raises(SinkConstructionError, match="Cannot build point 'x'"):
            sink.write(point)
        assert FakeSession.instances == []
