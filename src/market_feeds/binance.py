"""Binance spot REST price feed.

Thin async client over the public ticker and kline endpoints. Kline
responses are cached per (symbol, interval) for a few seconds since the
scanner asks for the same candles for every market on the same coin.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from src.market_feeds.base import FeedError, PriceFeed, TTLCache
from src.strike_signals.models import Candle

logger = logging.getLogger(__name__)


@dataclass
class BinanceConfig:
    """Connection settings for the Binance public API."""
    base_url: str = "https://api.binance.com"
    request_timeout: float = 5.0
    candle_cache_seconds: float = 10.0


class BinancePriceFeed(PriceFeed):
    """Price and candle feed backed by ``httpx.AsyncClient``.

    Example:
        feed = BinancePriceFeed()
        price = await feed.get_price("BTCUSDT")
        candles = await feed.get_candles("BTCUSDT", "1m", 100)
        await feed.close()
    """

    def __init__(
        self,
        config: Optional[BinanceConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._config = config or BinanceConfig()
        self._client = client
        self._owns_client = client is None
        self._candle_cache: TTLCache[list[Candle]] = TTLCache(
            self._config.candle_cache_seconds, clock=clock
        )

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._config.base_url,
                timeout=self._config.request_timeout,
            )
        return self._client

    async def get_price(self, symbol: str) -> Optional[float]:
        try:
            resp = await self._get_client().get(
                "/api/v3/ticker/price", params={"symbol": symbol}
            )
            resp.raise_for_status()
            data = resp.json()
            price = float(data["price"])
            if price <= 0:
                raise FeedError(f"non-positive price {price}")
            return price
        except (httpx.HTTPError, KeyError, TypeError, ValueError, FeedError) as e:
            logger.debug("Price unavailable for %s: %s", symbol, e)
            return None

    async def get_candles(self, symbol: str, interval: str, limit: int) -> list[Candle]:
        cache_key = f"{symbol}_{interval}"
        cached = self._candle_cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            resp = await self._get_client().get(
                "/api/v3/klines",
                params={"symbol": symbol, "interval": interval, "limit": limit},
            )
            resp.raise_for_status()
            rows = resp.json()
            if not isinstance(rows, list):
                raise FeedError("klines payload is not a list")
            candles = [Candle.from_kline(row) for row in rows]
        except (httpx.HTTPError, IndexError, TypeError, ValueError, FeedError) as e:
            logger.debug("Candles unavailable for %s/%s: %s", symbol, interval, e)
            return []

        self._candle_cache.set(cache_key, candles)
        return candles

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
