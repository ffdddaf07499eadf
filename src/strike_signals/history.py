"""Rolling per-market price history.

Keeps the most recent samples for each market, bounded by age and by
count. Not thread-safe: the scanner serializes updates per market.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Optional

from src.strike_signals.config import HistoryConfig
from src.strike_signals.models import PricePoint

logger = logging.getLogger(__name__)


class PriceHistoryStore:
    """Append-only price windows keyed by market id.

    Example:
        store = PriceHistoryStore()
        store.record("mkt-1", 100_250.0, now=1_700_000_000.0)
        points = store.history("mkt-1")
    """

    def __init__(self, config: Optional[HistoryConfig] = None):
        self.config = config or HistoryConfig()
        self._windows: dict[str, deque[PricePoint]] = {}

    def record(self, market_id: str, price: float, now: float) -> PricePoint:
        """Append a sample and evict expired or surplus samples oldest-first."""
        window = self._windows.setdefault(market_id, deque())
        point = PricePoint(price=float(price), timestamp=now)
        window.append(point)
        self._evict(window, now)
        return point

    def history(self, market_id: str, now: Optional[float] = None) -> tuple[PricePoint, ...]:
        """Samples for a market, oldest first.

        Pass ``now`` to evict samples that aged out since the last
        ``record``; without it the window is as of that call.
        """
        return tuple(self._window(market_id, now))

    def prices(self, market_id: str, now: Optional[float] = None) -> list[float]:
        return [p.price for p in self._window(market_id, now)]

    def _window(self, market_id: str, now: Optional[float]):
        window = self._windows.get(market_id)
        if window is None:
            return ()
        if now is not None:
            self._evict(window, now)
        return window

    def clear(self, market_id: str) -> None:
        if self._windows.pop(market_id, None) is not None:
            logger.debug("Cleared price history for %s", market_id)

    def tracked(self) -> list[str]:
        return list(self._windows)

    def __len__(self) -> int:
        return len(self._windows)

    def _evict(self, window: deque[PricePoint], now: float) -> None:
        cutoff = now - self.config.retention_seconds
        while window and window[0].timestamp < cutoff:
            window.popleft()
        while len(window) > self.config.max_samples:
            window.popleft()
