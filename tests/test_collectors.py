"""Tests for the data collector base classes."""

import asyncio
from datetime import UTC, datetime

import pytest

from hosteye.collectors import (
    CollectionResult,
    DataCollector,
    FunctionCollector,
    as_collector,
)
from hosteye.models import Fields


class MockCollector(DataCollector):
    """Mock collector with a blocking sample()."""

    name = "mock_collector"
    default_interval = 0.1
    timeout = 1.0

    def __init__(self, value: float = 42.0) -> None:
        super().__init__()
        self.value = value
        self.sample_count = 0

    def sample(self) -> Fields:
        self.sample_count += 1
        return {"value": self.value}


class FailingCollector(DataCollector):
    """Collector that always fails."""

    name = "failing_collector"
    default_interval = 0.1
    timeout = 1.0

    def sample(self) -> Fields:
        raise RuntimeError("Collection failed intentionally")


class SlowCollector(DataCollector):
    """Collector that takes too long."""

    name = "slow_collector"
    default_interval = 0.1
    timeout = 0.1  # Short timeout for testing

    async def collect(self) -> Fields:
        await asyncio.sleep(1.0)  # Longer than timeout
        return {"value": 1.0}


class DeniedCollector(DataCollector):
    """Collector without permission to read its source."""

    name = "denied_collector"

    def sample(self) -> Fields:
        raise PermissionError("access denied")


class TestCollectionResult:
    """Tests for CollectionResult dataclass."""

    def test_successful_result(self) -> None:
        """Test creating a successful result."""
        result = CollectionResult(success=True, fields={"value": 1}, collector_name="test")
        assert result.success
        assert result.fields == {"value": 1}
        assert result.error is None
        assert isinstance(result.timestamp, datetime)

    def test_failed_result(self) -> None:
        """Test creating a failed result."""
        result = CollectionResult(success=False, error="boom")
        assert not result.success
        assert result.fields is None

    def test_success_requires_fields(self) -> None:
        """Test that a successful result must carry fields."""
        with pytest.raises(ValueError, match="must include fields"):
            CollectionResult(success=True)

    def test_failure_requires_error(self) -> None:
        """Test that a failed result must carry an error message."""
        with pytest.raises(ValueError, match="must include error"):
            CollectionResult(success=False)


class TestDataCollector:
    """Tests for DataCollector."""

    def test_defaults(self) -> None:
        """Test default collector state."""
        collector = MockCollector()
        assert collector.interval == 0.1
        assert collector.enabled
        assert collector.last_collection is None
        assert collector.consecutive_failures == 0

    def test_interval_must_be_positive(self) -> None:
        """Test that intervals must be positive."""
        collector = MockCollector()
        with pytest.raises(ValueError, match="positive"):
            collector.interval = 0

    def test_initialize(self) -> None:
        """Test applying collector configuration."""
        collector = MockCollector()
        collector.initialize({"interval": 7, "enabled": False, "timeout": 3})
        assert collector.interval == 7.0
        assert not collector.enabled
        assert collector.timeout == 3.0

    def test_initialize_empty(self) -> None:
        """Test that no configuration keeps the defaults."""
        collector = MockCollector()
        collector.initialize(None)
        assert collector.interval == 0.1

    @pytest.mark.asyncio
    async def test_safe_collect_success(self) -> None:
        """Test a successful collection runs sample() and records stats."""
        collector = MockCollector(value=3.5)
        result = await collector.safe_collect()

        assert result.success
        assert result.fields == {"value": 3.5}
        assert result.collector_name == "mock_collector"
        assert result.timestamp.tzinfo == UTC
        assert collector.sample_count == 1
        assert collector.last_collection is not None
        assert collector.stats["total_collections"] == 1

    @pytest.mark.asyncio
    async def test_safe_collect_failure(self) -> None:
        """Test that sampler exceptions become failed results."""
        collector = FailingCollector()
        result = await collector.safe_collect()

        assert not result.success
        assert result.error == "RuntimeError: Collection failed intentionally"
        assert collector.consecutive_failures == 1
        assert collector.stats["total_failures"] == 1

    @pytest.mark.asyncio
    async def test_safe_collect_timeout(self) -> None:
        """Test that slow collections time out."""
        collector = SlowCollector()
        result = await collector.safe_collect()

        assert not result.success
        assert result.error == "Collection timed out after 0.1s"

    @pytest.mark.asyncio
    async def test_safe_collect_permission_denied(self) -> None:
        """Test that permission errors are reported distinctly."""
        result = await DeniedCollector().safe_collect()
        assert not result.success
        assert result.error == "Permission denied: access denied"

    @pytest.mark.asyncio
    async def test_consecutive_failures_reset(self) -> None:
        """Test that a success resets the failure streak."""
        outcomes = iter([RuntimeError("first"), None])

        def sampler() -> Fields:
            error = next(outcomes)
            if error is not None:
                raise error
            return {"value": 1}

        collector = FunctionCollector("flaky", sampler)
        await collector.safe_collect()
        assert collector.consecutive_failures == 1
        await collector.safe_collect()
        assert collector.consecutive_failures == 0
        assert collector.stats["success_rate"] == 0.5

    @pytest.mark.asyncio
    async def test_reset_stats(self) -> None:
        """Test resetting collection statistics."""
        collector = FailingCollector()
        await collector.safe_collect()
        collector.reset_stats()
        assert collector.consecutive_failures == 0
        assert collector.stats["total_collections"] == 0

    @pytest.mark.asyncio
    async def test_base_sample_not_implemented(self) -> None:
        """Test that a collector without sample() fails its collections."""

        class Bare(DataCollector):
            name = "bare"

        result = await Bare().safe_collect()
        assert not result.success
        assert "NotImplementedError" in (result.error or "")


class TestFunctionCollector:
    """Tests for FunctionCollector and as_collector."""

    def test_empty_name_rejected(self) -> None:
        """Test that a wrapped sampler needs a name."""
        with pytest.raises(ValueError, match="non-empty"):
            FunctionCollector("", lambda: {"v": 1})

    def test_interval_and_timeout(self) -> None:
        """Test interval and timeout arguments."""
        collector = FunctionCollector("x", lambda: {"v": 1}, interval=2.0, timeout=0.5)
        assert collector.name == "x"
        assert collector.interval == 2.0
        assert collector.timeout == 0.5

    @pytest.mark.asyncio
    async def test_sync_sampler(self) -> None:
        """Test wrapping a blocking function."""
        collector = FunctionCollector("sync", lambda: {"v": 1})
        result = await collector.safe_collect()
        assert result.fields == {"v": 1}

    @pytest.mark.asyncio
    async def test_async_sampler(self) -> None:
        """Test wrapping a coroutine function."""

        async def sampler() -> Fields:
            return {"v": 2}

        collector = FunctionCollector("async", sampler)
        result = await collector.safe_collect()
        assert result.fields == {"v": 2}

    def test_as_collector_wraps_callable(self) -> None:
        """Test that callables are wrapped."""
        collector = as_collector("wrapped", lambda: {"v": 1}, interval=3)
        assert isinstance(collector, FunctionCollector)
        assert collector.interval == 3

    def test_as_collector_passes_collector_through(self) -> None:
        """Test that collectors are returned as-is with the interval applied."""
        original = MockCollector()
        collector = as_collector("ignored", original, interval=9)
        assert collector is original
        assert collector.interval == 9
