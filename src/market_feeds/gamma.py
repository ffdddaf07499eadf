"""Polymarket Gamma API market feed.

Finds active 15-minute up/down crypto events and turns the raw event
JSON into typed Market records. Parsing happens once, here; nothing
downstream sees the raw payload.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import httpx

from src.market_feeds.base import FeedError, MarketFeed
from src.strike_signals.models import Market

logger = logging.getLogger(__name__)

SLUG_TIMESTAMP_RE = re.compile(r"(\d{10,13})$")
DOLLAR_AMOUNT_RE = re.compile(r"\$\s?([\d,]+(?:\.\d+)?)")

KNOWN_COINS = ("btc", "eth", "sol", "xrp")


@dataclass
class GammaConfig:
    """Connection and search settings for the Gamma events API."""
    base_url: str = "https://gamma-api.polymarket.com"
    request_timeout: float = 5.0
    coins: list[str] = field(default_factory=lambda: ["btc", "eth", "sol", "xrp"])
    window: str = "15m"
    page_limit: int = 5
    general_limit: int = 50

    @property
    def search_terms(self) -> list[str]:
        return [f"{coin}-updown-{self.window}" for coin in self.coins]


# ═══════════════════════════════════════════════════════════════════════
# Event parsing
# ═══════════════════════════════════════════════════════════════════════


def coin_from_slug(slug: str) -> str:
    """Detect the underlying coin from an event slug. Defaults to BTC."""
    slug = slug.lower()
    head = slug.split("-", 1)[0]
    if head in KNOWN_COINS:
        return head.upper()
    for coin in KNOWN_COINS[1:]:
        if coin in slug:
            return coin.upper()
    return "BTC"


def end_time_from_event(event: dict[str, Any]) -> Optional[float]:
    """Resolution time in epoch seconds.

    A trailing 10-digit (seconds) or 13-digit (milliseconds) timestamp
    on the slug wins over the ``endDate`` field.
    """
    match = SLUG_TIMESTAMP_RE.search(event.get("slug") or "")
    if match:
        digits = match.group(1)
        ts = int(digits)
        return ts / 1000.0 if len(digits) == 13 else float(ts)

    end_date = event.get("endDate")
    if not end_date:
        return None
    try:
        return datetime.fromisoformat(str(end_date).replace("Z", "+00:00")).timestamp()
    except ValueError:
        return None


def parse_dollar_amount(text: str) -> Optional[float]:
    """First ``$1,234.56`` style amount in ``text``, or None."""
    match = DOLLAR_AMOUNT_RE.search(text or "")
    if not match:
        return None
    try:
        value = float(match.group(1).replace(",", ""))
    except ValueError:
        return None
    return value if value > 0 else None


def strike_from_event(event: dict[str, Any]) -> Optional[float]:
    """Strike from the first market's description, else event text."""
    markets = event.get("markets") or []
    candidates = []
    if markets and isinstance(markets[0], dict):
        candidates.append(markets[0].get("description") or "")
    candidates.append(event.get("description") or "")
    candidates.append(event.get("title") or event.get("question") or "")

    for text in candidates:
        strike = parse_dollar_amount(text)
        if strike is not None:
            return strike
    return None


def odds_from_event(event: dict[str, Any]) -> tuple[Optional[float], Optional[float]]:
    """YES/NO prices in percent from the first market's ``outcomePrices``.

    Gamma serves the field as a JSON-encoded string such as
    ``'["0.62", "0.38"]'``; a plain list is accepted too. Anything
    unparseable or outside [0, 1] gives ``(None, None)``.
    """
    markets = event.get("markets") or []
    if not markets or not isinstance(markets[0], dict):
        return None, None
    raw = markets[0].get("outcomePrices")
    try:
        if isinstance(raw, str):
            raw = json.loads(raw)
        yes, no = (float(p) for p in raw[:2])
    except (TypeError, ValueError):
        return None, None
    if not (0.0 <= yes <= 1.0 and 0.0 <= no <= 1.0):
        return None, None
    return yes * 100.0, no * 100.0


def parse_event(event: dict[str, Any]) -> Optional[Market]:
    """Convert one Gamma event into a Market.

    Returns None for events without an id or a resolvable end time.
    """
    event_id = event.get("id")
    if event_id is None:
        return None

    end_time = end_time_from_event(event)
    if end_time is None:
        logger.debug("No end time for event %s (%s)", event_id, event.get("slug"))
        return None

    slug = event.get("slug") or ""
    coin = coin_from_slug(slug)
    yes_price, no_price = odds_from_event(event)
    return Market(
        id=str(event_id),
        symbol=f"{coin}USDT",
        end_time=end_time,
        strike_price=strike_from_event(event),
        coin=coin,
        slug=slug,
        title=event.get("title") or event.get("question") or "",
        yes_price=yes_price,
        no_price=no_price,
    )


# ═══════════════════════════════════════════════════════════════════════
# Feed
# ═══════════════════════════════════════════════════════════════════════


class GammaMarketFeed(MarketFeed):
    """Active short-window markets from the Gamma API.

    One search per coin plus one general search on the window tag run
    concurrently; results are merged and deduplicated by event id. The
    listing is all-or-nothing: if any search fails, ``active_markets``
    raises FeedError rather than returning a partial list.

    Example:
        feed = GammaMarketFeed(GammaConfig(coins=["btc", "eth"]))
        markets = await feed.active_markets()
    """

    def __init__(
        self,
        config: Optional[GammaConfig] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config or GammaConfig()
        self._client = client
        self._owns_client = client is None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.request_timeout,
            )
        return self._client

    async def _search(self, term: str, limit: int) -> list[dict[str, Any]]:
        try:
            resp = await self._get_client().get(
                "/events",
                params={"active": "true", "slug_contains": term, "limit": limit},
            )
            resp.raise_for_status()
            events = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            raise FeedError(f"event search '{term}' failed: {e}") from e
        if not isinstance(events, list):
            raise FeedError(f"event search '{term}' returned {type(events).__name__}")
        return [e for e in events if isinstance(e, dict)]

    def _wanted(self, event: dict[str, Any]) -> bool:
        slug = event.get("slug") or ""
        if self.config.window not in slug:
            return False
        return slug.split("-", 1)[0].lower() in self.config.coins

    async def active_markets(self) -> list[Market]:
        searches = [self._search(term, self.config.page_limit) for term in self.config.search_terms]
        searches.append(self._search(self.config.window, self.config.general_limit))
        results = await asyncio.gather(*searches)

        markets: list[Market] = []
        seen: set[str] = set()
        for events in results:
            for event in events:
                event_id = str(event.get("id"))
                if event_id in seen or not self._wanted(event):
                    continue
                seen.add(event_id)
                market = parse_event(event)
                if market is not None:
                    markets.append(market)

        logger.debug("Gamma returned %d active market(s)", len(markets))
        return markets

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
