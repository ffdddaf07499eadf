"""Data models for the Strike Signal engine.

Typed records at the feed boundary (Market, Candle), the engine's
internal state (PricePoint, TrendState, SignalLock) and its only
output (Signal).
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from src.strike_signals.config import (
    GapDirection,
    SignalAction,
    TrendDirection,
    Urgency,
)

POLYMARKET_EVENT_URL = "https://polymarket.com/event/"


def _ts_to_iso(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


# =============================================================================
# Feed boundary
# =============================================================================

@dataclass
class Market:
    """A binary up/down market resolving against a strike price.

    ``end_time`` is epoch seconds. ``strike_price`` is None when the
    metadata feed could not supply one.
    ``yes_price``/``no_price`` are the market's own outcome prices in
    percent (0-100), None when the feed carried no odds.
    """
    id: str
    symbol: str
    end_time: float
    strike_price: Optional[float] = None
    coin: str = "BTC"
    slug: str = ""
    title: str = ""
    yes_price: Optional[float] = None
    no_price: Optional[float] = None

    @property
    def url(self) -> str:
        return f"{POLYMARKET_EVENT_URL}{self.slug}"

    def time_remaining(self, now: float) -> float:
        """Seconds until resolution (negative once expired)."""
        return self.end_time - now

    def refresh(self, other: "Market") -> None:
        """Adopt refreshed strike, odds and end time from a newer feed record."""
        if other.strike_price is not None:
            self.strike_price = other.strike_price
        if other.yes_price is not None:
            self.yes_price = other.yes_price
            self.no_price = other.no_price
        self.end_time = other.end_time

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "coin": self.coin,
            "slug": self.slug,
            "title": self.title,
            "strike_price": self.strike_price,
            "yes_price": self.yes_price,
            "no_price": self.no_price,
            "end_time": _ts_to_iso(self.end_time),
            "url": self.url,
        }


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar, oldest-first in any sequence."""
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    open_time: Optional[int] = None

    @classmethod
    def from_kline(cls, row: list) -> "Candle":
        """Parse a Binance kline array ``[openTime, o, h, l, c, v, ...]``."""
        return cls(
            open=float(row[1]),
            high=float(row[2]),
            low=float(row[3]),
            close=float(row[4]),
            volume=float(row[5]),
            open_time=int(row[0]),
        )


# =============================================================================
# Engine state
# =============================================================================

@dataclass(frozen=True)
class PricePoint:
    """A single observed price."""
    price: float
    timestamp: float


@dataclass(frozen=True)
class TrendState:
    """Short-term trend judged over the retained price window."""
    direction: TrendDirection = TrendDirection.UNKNOWN
    strength: float = 0.0
    consistency: float = 0.0
    sample_count: int = 0
    threshold: float = 0.70

    @property
    def consistent(self) -> bool:
        return self.consistency >= self.threshold

    @property
    def is_known(self) -> bool:
        return self.direction != TrendDirection.UNKNOWN

    def to_dict(self) -> dict:
        return {
            "direction": self.direction.value,
            "strength": round(self.strength, 4),
            "consistency": round(self.consistency, 3),
            "sample_count": self.sample_count,
            "consistent": self.consistent,
        }


@dataclass(frozen=True)
class GapAnalysis:
    """Signed distance between the live price and the strike."""
    diff: float = 0.0
    percentage: float = 0.0
    direction: GapDirection = GapDirection.NEUTRAL
    strength: float = 0.0

    @property
    def abs_percentage(self) -> float:
        return abs(self.percentage)


@dataclass(frozen=True)
class VolumeAnalysis:
    """Recent volume pressure relative to the trailing average."""
    ratio: float = 1.0
    is_high: bool = False
    is_low: bool = False
    direction: GapDirection = GapDirection.NEUTRAL
    strength: float = 0.0


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of one scoring pass."""
    prediction: SignalAction
    confidence: int
    bullish_score: float
    bearish_score: float
    override: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "prediction": self.prediction.value,
            "confidence": self.confidence,
            "bullish_score": round(self.bullish_score, 3),
            "bearish_score": round(self.bearish_score, 3),
            "override": self.override,
        }


@dataclass
class SignalLock:
    """A market's locked directional call."""
    market_id: str
    direction: SignalAction
    locked_at: float
    confidence: int
    last_emitted_at: float = 0.0
    suppressed: int = 0


# =============================================================================
# Output
# =============================================================================

@dataclass(frozen=True)
class Signal:
    """A YES/NO call for one market. The engine's sole unit of output."""
    market_id: str
    action: SignalAction
    confidence: int
    urgency: Urgency
    gap_percent: float
    time_remaining_seconds: int
    generated_at: float
    reason: str = ""
    strategy: str = ""
    current_price: Optional[float] = None
    strike_price: Optional[float] = None
    coin: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "market_id": self.market_id,
            "action": self.action.value,
            "confidence": self.confidence,
            "urgency": self.urgency.value,
            "gap_percent": round(self.gap_percent, 4),
            "time_remaining_seconds": self.time_remaining_seconds,
            "generated_at": _ts_to_iso(self.generated_at),
            "reason": self.reason,
            "strategy": self.strategy,
            "current_price": self.current_price,
            "strike_price": self.strike_price,
            "coin": self.coin,
            "metadata": self.metadata,
        }
