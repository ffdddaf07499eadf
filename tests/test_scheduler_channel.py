"""Tests for clocks, schedulers and the signal output channel."""

from __future__ import annotations

import asyncio

import pytest

from src.strike_signals.config import SignalAction, Urgency
from src.strike_signals.channel import SignalChannel
from src.strike_signals.models import Signal
from src.strike_signals.scheduler import (
    AsyncioScheduler,
    ManualClock,
    ManualScheduler,
    SystemClock,
)


def _signal(market_id: str = "m1", confidence: int = 90) -> Signal:
    return Signal(
        market_id=market_id,
        action=SignalAction.YES,
        confidence=confidence,
        urgency=Urgency.HIGH,
        gap_percent=0.4,
        time_remaining_seconds=45,
        generated_at=1_700_000_000.0,
    )


class TestClocks:

    def test_manual_clock(self):
        clock = ManualClock(100.0)
        assert clock.now() == 100.0
        assert clock.advance(10) == 110.0
        clock.set(5.0)
        assert clock.now() == 5.0

    def test_system_clock_is_epoch(self):
        assert SystemClock().now() > 1_600_000_000


class TestManualScheduler:

    @pytest.mark.asyncio
    async def test_ticks_only_when_started(self):
        calls = []

        async def job():
            calls.append(1)

        scheduler = ManualScheduler()
        scheduler.every_tick(10.0, job)
        assert await scheduler.tick() == 0
        await scheduler.start()
        assert await scheduler.tick(3) == 3
        await scheduler.stop()
        assert await scheduler.tick() == 0
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_advances_clock_between_ticks(self):
        clock = ManualClock(1000.0)
        seen = []

        async def job():
            seen.append(clock.now())

        scheduler = ManualScheduler(clock)
        scheduler.every_tick(10.0, job)
        await scheduler.start()
        await scheduler.tick(3)
        assert seen == [1000.0, 1010.0, 1020.0]

    @pytest.mark.asyncio
    async def test_failing_job_does_not_stop_ticks(self):
        async def boom():
            raise RuntimeError("tick failed")

        scheduler = ManualScheduler()
        job = scheduler.every_tick(1.0, boom)
        await scheduler.start()
        assert await scheduler.tick(2) == 2
        assert job.failures == 2
        assert job.runs == 0


class TestAsyncioScheduler:

    @pytest.mark.asyncio
    async def test_runs_and_stops(self):
        ran = asyncio.Event()
        count = 0

        async def job():
            nonlocal count
            count += 1
            ran.set()

        scheduler = AsyncioScheduler()
        scheduler.every_tick(0.01, job)
        await scheduler.start()
        assert scheduler.is_running
        await asyncio.wait_for(ran.wait(), timeout=1.0)
        await scheduler.stop()
        assert not scheduler.is_running

        stopped_at = count
        await asyncio.sleep(0.05)
        assert count == stopped_at
        assert count >= 1

    @pytest.mark.asyncio
    async def test_survives_job_errors(self):
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            raise ValueError("flaky")

        scheduler = AsyncioScheduler()
        job = scheduler.every_tick(0.01, flaky)
        await scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()
        assert attempts >= 2
        assert job.failures == attempts


class TestSignalChannel:

    @pytest.mark.asyncio
    async def test_publish_to_subscribers(self):
        channel = SignalChannel()
        q1 = channel.subscribe()
        q2 = channel.subscribe()
        assert channel.publish(_signal()) == 2
        assert (await q1.get()).market_id == "m1"
        assert (await q2.get()).market_id == "m1"

    def test_publish_without_subscribers(self):
        channel = SignalChannel()
        assert channel.publish(_signal()) == 0
        assert channel.published_count == 1
        assert channel.history()[0].market_id == "m1"

    def test_full_queue_drops_oldest(self):
        channel = SignalChannel(max_queue_size=2)
        queue = channel.subscribe()
        for i in range(3):
            channel.publish(_signal(market_id=f"m{i}"))
        assert queue.qsize() == 2
        assert queue.get_nowait().market_id == "m1"
        assert queue.get_nowait().market_id == "m2"

    def test_unsubscribe(self):
        channel = SignalChannel()
        queue = channel.subscribe()
        channel.unsubscribe(queue)
        assert channel.subscriber_count == 0
        assert channel.publish(_signal()) == 0
        channel.unsubscribe(queue)

    def test_history_bounded_newest_first(self):
        channel = SignalChannel(history_size=3)
        for i in range(5):
            channel.publish(_signal(market_id=f"m{i}"))
        assert [s.market_id for s in channel.history()] == ["m4", "m3", "m2"]
        assert [s.market_id for s in channel.history("m3")] == ["m3"]
