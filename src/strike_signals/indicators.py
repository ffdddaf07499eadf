"""Technical indicators over close-price sequences.

Every function is pure and total: when the input is shorter than the
indicator's period it returns a documented neutral default (50 for
oscillators, the last price for averages, 0 for momentum) instead of
raising. Inputs are ordered oldest-first.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from src.strike_signals.models import Candle

NEUTRAL = 50.0


@dataclass(frozen=True)
class MACDResult:
    """MACD line, approximate signal line and histogram."""
    macd: float = 0.0
    signal: float = 0.0
    histogram: float = 0.0

    @property
    def bias(self) -> str:
        if self.histogram > 0:
            return "bullish"
        if self.histogram < 0:
            return "bearish"
        return "neutral"


@dataclass(frozen=True)
class StochasticResult:
    """%K and %D. %D is not smoothed and always equals %K."""
    k: float = NEUTRAL
    d: float = NEUTRAL


@dataclass(frozen=True)
class BollingerResult:
    """Bands plus the close's normalized position between them.

    position is 0 at the lower band and 1 at the upper band; it is not
    clamped, so a breakout reads below 0 or above 1.
    """
    upper: float
    middle: float
    lower: float
    position: float = 0.5


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Multi-timeframe indicator set consumed by the scorer."""
    rsi_1m: float = NEUTRAL
    rsi_5m: float = NEUTRAL
    rsi_15m: float = NEUTRAL
    ema9_1m: float = 0.0
    ema21_1m: float = 0.0
    ema9_5m: float = 0.0
    ema21_5m: float = 0.0
    ema9_15m: float = 0.0
    ema21_15m: float = 0.0
    macd_1m: MACDResult = MACDResult()
    macd_5m: MACDResult = MACDResult()
    stochastic_1m: StochasticResult = StochasticResult()
    bollinger_1m: Optional[BollingerResult] = None
    momentum_5m: float = 0.0
    current_price: float = 0.0

    def blended_rsi(self, weights: tuple[float, float, float] = (0.3, 0.4, 0.3)) -> float:
        """Weighted RSI across the 1m/5m/15m timeframes."""
        w1, w5, w15 = weights
        return self.rsi_1m * w1 + self.rsi_5m * w5 + self.rsi_15m * w15

    def to_dict(self) -> dict:
        return {
            "rsi_1m": round(self.rsi_1m, 2),
            "rsi_5m": round(self.rsi_5m, 2),
            "rsi_15m": round(self.rsi_15m, 2),
            "ema_cross_1m": "bullish" if self.ema9_1m > self.ema21_1m else "bearish",
            "ema_cross_5m": "bullish" if self.ema9_5m > self.ema21_5m else "bearish",
            "ema_cross_15m": "bullish" if self.ema9_15m > self.ema21_15m else "bearish",
            "macd_1m": self.macd_1m.bias,
            "stochastic_k": round(self.stochastic_1m.k, 2),
            "bollinger_position": (
                round(self.bollinger_1m.position, 3) if self.bollinger_1m else None
            ),
            "momentum_5m": round(self.momentum_5m, 4),
            "current_price": self.current_price,
        }


# ═══════════════════════════════════════════════════════════════════════
# Primitives
# ═══════════════════════════════════════════════════════════════════════


def _mean(values: Sequence[float]) -> float:
    # Offset from the first value so a constant series averages exactly.
    first = values[0]
    return first + sum(v - first for v in values) / len(values)


def sma(values: Sequence[float], period: int) -> Optional[float]:
    """Simple moving average of the trailing ``period`` values."""
    if period <= 0 or len(values) < period:
        return None
    return _mean(values[-period:])


def ema(values: Sequence[float], period: int) -> float:
    """Exponential moving average seeded with the SMA of the first ``period`` values.

    Returns the last value when the series is shorter than ``period``.
    """
    if not values:
        return 0.0
    if len(values) < period:
        return float(values[-1])

    k = 2.0 / (period + 1)
    result = _mean(values[:period])
    for value in values[period:]:
        result += k * (value - result)
    return result


def rsi(closes: Sequence[float], period: int = 14) -> float:
    """Relative Strength Index over the trailing ``period`` deltas.

    Returns 50 with fewer than ``period + 1`` closes and 100 when the
    window has no losses.
    """
    if len(closes) < period + 1:
        return NEUTRAL

    gains = 0.0
    losses = 0.0
    for i in range(len(closes) - period, len(closes)):
        change = closes[i] - closes[i - 1]
        if change >= 0:
            gains += change
        else:
            losses -= change

    if losses == 0:
        return 100.0
    rs = (gains / period) / (losses / period)
    return 100.0 - 100.0 / (1.0 + rs)


def macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal_window: int = 9,
) -> MACDResult:
    """MACD with a signal line averaged from recomputed recent MACD values."""
    if not closes:
        return MACDResult()

    line = ema(closes, fast) - ema(closes, slow)

    recent = []
    for end in range(max(0, len(closes) - signal_window), len(closes)):
        window = closes[: end + 1]
        recent.append(ema(window, fast) - ema(window, slow))
    signal = sum(recent) / len(recent)

    return MACDResult(macd=line, signal=signal, histogram=line - signal)


def stochastic(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> StochasticResult:
    """Stochastic oscillator over the trailing window."""
    if len(closes) < period or len(highs) < period or len(lows) < period:
        return StochasticResult()

    highest = float(np.max(highs[-period:]))
    lowest = float(np.min(lows[-period:]))
    if highest == lowest:
        return StochasticResult()

    k = (closes[-1] - lowest) / (highest - lowest) * 100.0
    return StochasticResult(k=k, d=k)


def bollinger(closes: Sequence[float], period: int = 20, k: float = 2.0) -> BollingerResult:
    """Bollinger bands (population stddev) around the trailing SMA."""
    if not closes:
        return BollingerResult(upper=0.0, middle=0.0, lower=0.0)

    last = float(closes[-1])
    if len(closes) < period:
        return BollingerResult(upper=last, middle=last, lower=last)

    window = closes[-period:]
    middle = _mean(window)
    arr = np.asarray(window, dtype=float)
    std = float(np.sqrt(np.mean((arr - middle) ** 2)))

    upper = middle + k * std
    lower = middle - k * std
    if upper == lower:
        return BollingerResult(upper=upper, middle=middle, lower=lower)

    return BollingerResult(
        upper=upper,
        middle=middle,
        lower=lower,
        position=(last - lower) / (upper - lower),
    )


def momentum(closes: Sequence[float], lag: int = 10) -> float:
    """Percent change between the last close and the close ``lag`` bars back."""
    if lag <= 0 or len(closes) < lag + 1:
        return 0.0
    past = closes[-1 - lag]
    if past == 0:
        return 0.0
    return (closes[-1] - past) / past * 100.0


def atr(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
) -> float:
    """Average True Range as an SMA of the trailing true ranges."""
    if len(closes) < period + 1:
        return 0.0

    true_ranges = [
        max(
            highs[i] - lows[i],
            abs(highs[i] - closes[i - 1]),
            abs(lows[i] - closes[i - 1]),
        )
        for i in range(1, len(closes))
    ]
    return sma(true_ranges, period) or 0.0


def support_resistance(
    highs: Sequence[float], lows: Sequence[float], period: int = 20
) -> tuple[float, float]:
    """(support, resistance) from the trailing window's extremes."""
    if not highs or not lows:
        return 0.0, 0.0
    if len(highs) < period or len(lows) < period:
        return float(lows[-1]), float(highs[-1])
    return float(min(lows[-period:])), float(max(highs[-period:]))


# ═══════════════════════════════════════════════════════════════════════
# Multi-timeframe snapshot
# ═══════════════════════════════════════════════════════════════════════


def compute_all(
    candles_1m: Sequence[Candle],
    candles_5m: Sequence[Candle] = (),
    candles_15m: Sequence[Candle] = (),
) -> IndicatorSnapshot:
    """Compute the full indicator set from three candle timeframes."""
    closes_1m = [c.close for c in candles_1m]
    closes_5m = [c.close for c in candles_5m]
    closes_15m = [c.close for c in candles_15m]
    highs_1m = [c.high for c in candles_1m]
    lows_1m = [c.low for c in candles_1m]

    return IndicatorSnapshot(
        rsi_1m=rsi(closes_1m, 14),
        rsi_5m=rsi(closes_5m, 14),
        rsi_15m=rsi(closes_15m, 14),
        ema9_1m=ema(closes_1m, 9),
        ema21_1m=ema(closes_1m, 21),
        ema9_5m=ema(closes_5m, 9),
        ema21_5m=ema(closes_5m, 21),
        ema9_15m=ema(closes_15m, 9),
        ema21_15m=ema(closes_15m, 21),
        macd_1m=macd(closes_1m),
        macd_5m=macd(closes_5m),
        stochastic_1m=stochastic(highs_1m, lows_1m, closes_1m, 14),
        bollinger_1m=bollinger(closes_1m, 20, 2.0),
        momentum_5m=momentum(closes_1m, 5),
        current_price=closes_1m[-1] if closes_1m else 0.0,
    )
