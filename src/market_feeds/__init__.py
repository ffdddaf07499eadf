"""Market & Price Feeds.

Async adapters that supply the scanner with active prediction markets
(Polymarket Gamma) and live prices/candles (Binance).
"""

from src.market_feeds.base import FeedError, MarketFeed, PriceFeed, TTLCache
from src.market_feeds.binance import BinanceConfig, BinancePriceFeed
from src.market_feeds.gamma import (
    GammaConfig,
    GammaMarketFeed,
    coin_from_slug,
    end_time_from_event,
    odds_from_event,
    parse_dollar_amount,
    parse_event,
    strike_from_event,
)

__all__ = [
    "BinanceConfig",
    "BinancePriceFeed",
    "FeedError",
    "GammaConfig",
    "GammaMarketFeed",
    "MarketFeed",
    "PriceFeed",
    "TTLCache",
    "coin_from_slug",
    "end_time_from_event",
    "odds_from_event",
    "parse_dollar_amount",
    "parse_event",
    "strike_from_event",
]
