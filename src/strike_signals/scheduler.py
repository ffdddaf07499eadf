"""Clocks and tick schedulers.

The engine never reads wall time or sleeps directly: it is handed a
Clock and a Scheduler so tests can drive ticks deterministically.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

TickFn = Callable[[], Awaitable[object]]


# ═══════════════════════════════════════════════════════════════════════
# Clocks
# ═══════════════════════════════════════════════════════════════════════


class Clock(ABC):
    """Source of epoch-second timestamps."""

    @abstractmethod
    def now(self) -> float:
        ...


class SystemClock(Clock):
    def now(self) -> float:
        return time.time()


class ManualClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        self._now += seconds
        return self._now

    def set(self, timestamp: float) -> None:
        self._now = float(timestamp)


# ═══════════════════════════════════════════════════════════════════════
# Schedulers
# ═══════════════════════════════════════════════════════════════════════


@dataclass
class ScheduledJob:
    interval: float
    fn: TickFn
    runs: int = 0
    failures: int = 0


class Scheduler(ABC):
    """Runs registered coroutines once per tick interval."""

    def __init__(self) -> None:
        self._jobs: list[ScheduledJob] = []

    def every_tick(self, interval: float, fn: TickFn) -> ScheduledJob:
        job = ScheduledJob(interval=interval, fn=fn)
        self._jobs.append(job)
        return job

    @property
    def jobs(self) -> list[ScheduledJob]:
        return list(self._jobs)

    @abstractmethod
    async def start(self) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    async def _run_job(self, job: ScheduledJob) -> None:
        try:
            await job.fn()
            job.runs += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            job.failures += 1
            logger.error("Scheduled tick failed: %s", e, exc_info=True)


class AsyncioScheduler(Scheduler):
    """Background asyncio tasks, one per job.

    Each job runs immediately on start and then after every interval.
    A tick fully completes before the next one for the same job begins.

    Example:
        scheduler = AsyncioScheduler()
        scheduler.every_tick(10.0, engine.run_tick)
        await scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(self) -> None:
        super().__init__()
        self._tasks: list[asyncio.Task] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._tasks = [asyncio.create_task(self._loop(job)) for job in self._jobs]
        logger.info("Scheduler started with %d job(s)", len(self._tasks))

    async def stop(self) -> None:
        self._running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("Scheduler stopped")

    async def _loop(self, job: ScheduledJob) -> None:
        while self._running:
            await self._run_job(job)
            if not self._running:
                break
            await asyncio.sleep(job.interval)


class ManualScheduler(Scheduler):
    """Scheduler for tests: ticks happen only when ``tick()`` is awaited.

    When bound to a ManualClock, each tick after the first advances the
    clock by the job interval before running it.
    """

    def __init__(self, clock: Optional[ManualClock] = None) -> None:
        super().__init__()
        self.clock = clock
        self._running = False
        self._ticks = 0

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def tick(self, count: int = 1) -> int:
        """Run ``count`` ticks of every job. Returns ticks actually run."""
        ran = 0
        for _ in range(count):
            if not self._running:
                break
            if self.clock is not None and self._ticks > 0 and self._jobs:
                self.clock.advance(min(job.interval for job in self._jobs))
            for job in self._jobs:
                await self._run_job(job)
            self._ticks += 1
            ran += 1
        return ran
