"""Feed contracts consumed by the scanner.

Feeds must fail cleanly: a transient error returns None or an empty
list so the scanner can skip the market for one tick, never raise.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from src.strike_signals.models import Candle, Market

T = TypeVar("T")


class FeedError(Exception):
    """Malformed or unusable payload from an upstream feed."""


class PriceFeed(ABC):
    """Live reference prices and OHLCV candles."""

    @abstractmethod
    async def get_price(self, symbol: str) -> Optional[float]:
        ...

    @abstractmethod
    async def get_candles(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        ...

    async def close(self) -> None:
        return None


class MarketFeed(ABC):
    """Active prediction markets with their strike and end time."""

    @abstractmethod
    async def active_markets(self) -> list[Market]:
        ...

    async def close(self) -> None:
        return None


@dataclass
class _CacheEntry(Generic[T]):
    value: T
    stored_at: float


class TTLCache(Generic[T]):
    """Small in-memory cache with a fixed time-to-live per entry."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _CacheEntry[T]] = {}

    def get(self, key: str) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.stored_at >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: T) -> None:
        self._entries[key] = _CacheEntry(value=value, stored_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
