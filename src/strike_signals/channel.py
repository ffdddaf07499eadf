"""Typed output channel for emitted signals.

The scanner publishes; notification or UI consumers subscribe and read
from their own queue at their own pace.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Optional

from src.strike_signals.models import Signal

logger = logging.getLogger(__name__)


class SignalChannel:
    """Fan-out of Signal records to subscriber queues.

    A full subscriber queue drops its oldest pending signal so a slow
    consumer never blocks the scanner. The most recent signals are also
    kept in ``history`` for late subscribers.

    Example:
        channel = SignalChannel()
        queue = channel.subscribe()
        ...
        signal = await queue.get()
    """

    def __init__(self, max_queue_size: int = 100, history_size: int = 50):
        self.max_queue_size = max_queue_size
        self._subscribers: list[asyncio.Queue[Signal]] = []
        self._history: deque[Signal] = deque(maxlen=history_size)
        self._published = 0

    def subscribe(self) -> asyncio.Queue[Signal]:
        queue: asyncio.Queue[Signal] = asyncio.Queue(maxsize=self.max_queue_size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Signal]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, signal: Signal) -> int:
        """Deliver a signal to every subscriber. Returns the delivery count."""
        self._history.append(signal)
        self._published += 1

        delivered = 0
        for queue in self._subscribers:
            if queue.full():
                dropped = queue.get_nowait()
                logger.warning(
                    "Subscriber queue full, dropped signal for %s", dropped.market_id
                )
            queue.put_nowait(signal)
            delivered += 1
        return delivered

    def history(self, market_id: Optional[str] = None) -> list[Signal]:
        """Recent signals, newest first."""
        signals = list(reversed(self._history))
        if market_id is not None:
            signals = [s for s in signals if s.market_id == market_id]
        return signals

    @property
    def published_count(self) -> int:
        return self._published

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
