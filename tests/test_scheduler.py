"""Tests for periodic collection scheduling."""

import asyncio
import time

import pytest

from hosteye.collectors import (
    CollectionScheduler,
    DataCollector,
    PointStream,
    collect,
)
from hosteye.models import Fields, freeze_tags

TAGS = freeze_tags({"Hostname": "test-host"})


class CountingCollector(DataCollector):
    """Collector returning an increasing counter."""

    name = "counting"
    default_interval = 0.01
    timeout = 1.0

    def __init__(self) -> None:
        super().__init__()
        self.calls = 0

    async def collect(self) -> Fields:
        self.calls += 1
        return {"value": self.calls}


class BrokenCollector(DataCollector):
    """Collector that always fails."""

    name = "broken"
    default_interval = 0.01
    timeout = 1.0

    async def collect(self) -> Fields:
        raise RuntimeError("Collection failed intentionally")


class TestCollect:
    """Tests for the collect() scheduler."""

    @pytest.mark.asyncio
    async def test_failed_tick_emits_nothing(self) -> None:
        """Test that success/failure/success yields two points over three ticks."""
        interval = 0.05
        call_times: list[float] = []

        async def sampler() -> Fields:
            call_times.append(time.monotonic())
            if len(call_times) == 2:
                raise RuntimeError("transient failure")
            return {"tick": len(call_times)}

        stream = collect("alt", TAGS, interval, sampler)
        first = await asyncio.wait_for(stream.receive(), timeout=2.0)
        second = await asyncio.wait_for(stream.receive(), timeout=2.0)
        stream.request_stop()
        rest = [p async for p in stream]

        assert [first.fields["tick"], second.fields["tick"]] == [1, 3]
        assert rest == []
        assert stream.state.ticks == 3
        assert stream.state.points_emitted == 2
        # The failed tick is not retried early
        assert call_times[2] - call_times[1] >= interval - 1e-3

    @pytest.mark.asyncio
    async def test_interval_adherence(self) -> None:
        """Test that K ticks span at least (K - 1) intervals."""
        interval = 0.03
        ticks = 5
        call_times: list[float] = []

        def sampler() -> Fields:
            call_times.append(time.monotonic())
            return {"value": 1}

        stream = collect("timed", TAGS, interval, sampler)
        for _ in range(ticks):
            await asyncio.wait_for(stream.receive(), timeout=2.0)
        stream.request_stop()
        await asyncio.wait_for(stream.task, timeout=1.0)

        assert len(call_times) >= ticks
        assert call_times[ticks - 1] - call_times[0] >= (ticks - 1) * interval - 1e-3

    @pytest.mark.asyncio
    async def test_points_carry_name_and_tags(self) -> None:
        """Test that emitted points are stamped with the scheduler's name and tags."""
        stream = collect("mem", TAGS, 1.0, lambda: {"total": 100, "avail": 40, "free": 30})
        point = await asyncio.wait_for(stream.receive(), timeout=2.0)
        stream.request_stop()
        await asyncio.wait_for(stream.task, timeout=1.0)

        assert point.name == "mem"
        assert point.tags == {"Hostname": "test-host"}
        assert point.fields == {"total": 100, "avail": 40, "free": 30}

    @pytest.mark.asyncio
    async def test_points_in_tick_order(self) -> None:
        """Test that one scheduler's points arrive in tick order."""
        collector = CountingCollector()
        stream = collect("counting", TAGS, 0.001, collector)
        values = [(await stream.receive()).fields["value"] for _ in range(5)]
        stream.request_stop()
        await asyncio.wait_for(stream.task, timeout=1.0)

        assert values == [1, 2, 3, 4, 5]

    @pytest.mark.asyncio
    async def test_backpressure_suspends_scheduler(self) -> None:
        """Test that a full stream stops the scheduler from sampling ahead."""
        collector = CountingCollector()
        stream = collect("counting", TAGS, 0.001, collector, capacity=1)

        await asyncio.sleep(0.1)
        # One point queued, one sampled and waiting to be sent
        assert collector.calls <= 2
        assert stream.qsize() == 1

        stream.request_stop()
        await asyncio.wait_for(stream.task, timeout=1.0)
        assert stream.closed
        remaining = [p.fields["value"] async for p in stream]
        assert remaining == [1]

    @pytest.mark.asyncio
    async def test_stop_interrupts_sleep(self) -> None:
        """Test that stop ends a long sleep promptly and closes the stream."""
        stream = collect("slow", TAGS, 60.0, lambda: {"value": 1})
        await asyncio.wait_for(stream.receive(), timeout=2.0)

        stream.request_stop()
        await asyncio.wait_for(stream.task, timeout=1.0)
        assert stream.closed

    @pytest.mark.asyncio
    async def test_shared_stop_event(self) -> None:
        """Test that one event stops several schedulers."""
        stop = asyncio.Event()
        streams = [
            collect(f"s{i}", TAGS, 60.0, lambda: {"value": 1}, stop=stop) for i in range(3)
        ]
        for stream in streams:
            await asyncio.wait_for(stream.receive(), timeout=2.0)

        stop.set()
        await asyncio.wait_for(asyncio.gather(*(s.task for s in streams)), timeout=1.0)
        assert all(s.closed for s in streams)

    @pytest.mark.asyncio
    async def test_cancel_closes_stream(self) -> None:
        """Test that cancelling the task still closes the stream."""
        stream = collect("cancelled", TAGS, 60.0, lambda: {"value": 1})
        await asyncio.wait_for(stream.receive(), timeout=2.0)

        stream.task.cancel()
        await asyncio.gather(stream.task, return_exceptions=True)
        assert stream.closed

    @pytest.mark.asyncio
    async def test_invalid_interval(self) -> None:
        """Test that a non-positive interval is rejected."""
        with pytest.raises(ValueError, match="positive"):
            collect("bad", TAGS, 0, lambda: {"value": 1})

    @pytest.mark.asyncio
    async def test_invalid_point_dropped(self) -> None:
        """Test that a sample that cannot form a point is dropped, not fatal."""
        results = iter([{"flag": True}, {"value": 2}])
        stream = collect("mixed", TAGS, 0.001, lambda: next(results, {"value": 3}))

        point = await asyncio.wait_for(stream.receive(), timeout=2.0)
        stream.request_stop()
        await asyncio.wait_for(stream.task, timeout=1.0)
        assert point.fields == {"value": 2}


class TestCollectionScheduler:
    """Tests for CollectionScheduler."""

    def test_register(self) -> None:
        """Test registering collectors."""
        scheduler = CollectionScheduler(TAGS)
        scheduler.register(CountingCollector())
        assert scheduler.list_collectors() == ["counting"]
        assert isinstance(scheduler.get_stream("counting"), PointStream)
        assert scheduler.get_collector("missing") is None

    def test_register_duplicate(self) -> None:
        """Test that a name can only be registered once."""
        scheduler = CollectionScheduler(TAGS)
        scheduler.register(CountingCollector())
        with pytest.raises(ValueError, match="already registered"):
            scheduler.register(CountingCollector())

    def test_register_interval_override(self) -> None:
        """Test overriding the interval at registration."""
        scheduler = CollectionScheduler(TAGS)
        collector = CountingCollector()
        scheduler.register(collector, interval=2.5)
        assert collector.interval == 2.5

    def test_unregister_unknown(self) -> None:
        """Test that unregistering an unknown name raises KeyError."""
        scheduler = CollectionScheduler(TAGS)
        with pytest.raises(KeyError):
            scheduler.unregister("missing")

    @pytest.mark.asyncio
    async def test_start_and_stop(self) -> None:
        """Test the scheduler lifecycle."""
        scheduler = CollectionScheduler(TAGS)
        scheduler.register(CountingCollector())
        scheduler.register(BrokenCollector())

        streams = await scheduler.start()
        assert scheduler.running
        assert [s.name for s in streams] == ["counting", "broken"]

        point = await asyncio.wait_for(streams[0].receive(), timeout=2.0)
        assert point.name == "counting"
        await asyncio.sleep(0.05)

        await scheduler.stop(timeout=1.0)
        assert not scheduler.running
        assert all(s.closed for s in streams)

        stats = await scheduler.get_stats()
        assert stats.collectors_registered == 2
        assert stats.collectors_running == 0
        assert stats.total_failures >= 1
        assert stats.points_emitted >= 1

    @pytest.mark.asyncio
    async def test_disabled_collector_not_started(self) -> None:
        """Test that disabled collectors produce no stream."""
        scheduler = CollectionScheduler(TAGS)
        collector = CountingCollector()
        collector.enabled = False
        scheduler.register(collector)

        streams = await scheduler.start()
        assert streams == []
        await scheduler.stop()

    @pytest.mark.asyncio
    async def test_restart_uses_fresh_streams(self) -> None:
        """Test that restarting replaces streams closed by the previous run."""
        scheduler = CollectionScheduler(TAGS)
        scheduler.register(CountingCollector())

        first = await scheduler.start()
        await scheduler.stop(timeout=1.0)
        second = await scheduler.start()

        assert first[0].closed
        assert second[0] is not first[0]
        assert not second[0].closed
        await scheduler.stop(timeout=1.0)

    @pytest.mark.asyncio
    async def test_get_collector_stats(self) -> None:
        """Test per-collector statistics."""
        scheduler = CollectionScheduler(TAGS)
        scheduler.register(CountingCollector())
        streams = await scheduler.start()
        await asyncio.wait_for(streams[0].receive(), timeout=2.0)

        stats = await scheduler.get_collector_stats("counting")
        assert stats is not None
        assert stats["running"] is True
        assert stats["ticks"] >= 1
        assert stats["collector"]["total_collections"] >= 1
        assert await scheduler.get_collector_stats("missing") is None

        await scheduler.stop(timeout=1.0)
