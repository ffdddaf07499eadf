"""Signal scoring: gap and volume analysis, weighted scorer, terminal scorer.

The weighted scorer blends technical indicators, the live-price-vs-strike
gap and volume pressure using the active strategy's weights. Inside the
closing windows large gaps short-circuit the blend:

    final      |gap| > 0.3%  ->  confidence min(95, 70 + |gap| * 10)
    gap_focus  |gap| > 0.2%  ->  confidence min(90, 60 + |gap| * 8)

The terminal scorer is the lighter gap/time bucket table used by the
gap-only scan mode and ahead of the weighted scorer in the final window.
The mispricing scorer backs the spot side when the market's own YES
price disagrees with the probability the gap implies.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from src.strike_signals.config import (
    BALANCED,
    GapDirection,
    MispricingConfig,
    ScoringConfig,
    SignalAction,
    Strategy,
    TerminalConfig,
)
from src.strike_signals.indicators import IndicatorSnapshot
from src.strike_signals.models import Candle, GapAnalysis, ScoreResult, VolumeAnalysis

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _action_for(direction: GapDirection) -> SignalAction:
    return SignalAction.YES if direction == GapDirection.UP else SignalAction.NO


# ═══════════════════════════════════════════════════════════════════════
# Gap and volume analysis
# ═══════════════════════════════════════════════════════════════════════


def analyze_gap(current_price: float, strike_price: Optional[float]) -> GapAnalysis:
    """Signed percentage gap between the live price and the strike.

    A missing or non-positive strike yields a neutral gap, which disables
    every gap-based branch downstream.
    """
    if not strike_price or strike_price <= 0:
        return GapAnalysis()

    diff = current_price - strike_price
    percentage = diff / strike_price * 100.0
    if diff > 0:
        direction = GapDirection.UP
    elif diff < 0:
        direction = GapDirection.DOWN
    else:
        direction = GapDirection.NEUTRAL

    return GapAnalysis(
        diff=diff,
        percentage=percentage,
        direction=direction,
        strength=min(100.0, abs(percentage) * 20.0),
    )


def analyze_volume(
    candles: Sequence[Candle],
    config: Optional[ScoringConfig] = None,
    recent_bars: int = 5,
    average_bars: int = 30,
) -> VolumeAnalysis:
    """Compare the last few bars' volume with the trailing average."""
    config = config or ScoringConfig()
    if not candles:
        return VolumeAnalysis()

    trailing = candles[-average_bars:]
    avg_volume = sum(c.volume for c in trailing) / len(trailing)
    if avg_volume <= 0:
        return VolumeAnalysis()

    recent = candles[-recent_bars:]
    ratio = sum(c.volume for c in recent) / (avg_volume * recent_bars)

    anchor = candles[-(recent_bars + 1)] if len(candles) > recent_bars else candles[0]
    price_change = candles[-1].close - anchor.close

    return VolumeAnalysis(
        ratio=ratio,
        is_high=ratio > config.high_volume_ratio,
        is_low=ratio < config.low_volume_ratio,
        direction=GapDirection.UP if price_change > 0 else GapDirection.DOWN,
        strength=min(100.0, ratio * 50.0),
    )


# ═══════════════════════════════════════════════════════════════════════
# Weighted scorer
# ═══════════════════════════════════════════════════════════════════════


class ScoringEngine:
    """Combine indicators, gap and volume into a prediction and confidence.

    Example:
        engine = ScoringEngine()
        result = engine.score(snapshot, analyze_gap(price, strike),
                              analyze_volume(candles_1m), strategy)
    """

    def __init__(self, config: Optional[ScoringConfig] = None):
        self.config = config or ScoringConfig()

    def score(
        self,
        indicators: IndicatorSnapshot,
        gap: GapAnalysis,
        volume: Optional[VolumeAnalysis] = None,
        strategy: Optional[Strategy] = None,
    ) -> ScoreResult:
        strategy = strategy or BALANCED
        volume = volume or VolumeAnalysis()

        override = self._override(gap, strategy)
        if override is not None:
            return override

        bullish, bearish = self._technical_points(indicators, strategy.tech_weight)

        cfg = self.config
        gap_score = min(100.0, gap.abs_percentage * cfg.gap_score_slope + cfg.gap_score_base)
        if gap.direction == GapDirection.UP:
            bullish += gap_score * strategy.gap_weight
        elif gap.direction == GapDirection.DOWN:
            bearish += gap_score * strategy.gap_weight

        if volume.is_high:
            if volume.direction == GapDirection.UP:
                bullish += cfg.volume_points * strategy.volume_weight
            else:
                bearish += cfg.volume_points * strategy.volume_weight

        prediction = SignalAction.YES if bullish >= bearish else SignalAction.NO
        confidence = self._confidence(bullish, bearish)

        logger.debug(
            "Scored %s bullish=%.2f bearish=%.2f -> %s (%d)",
            strategy.name, bullish, bearish, prediction.value, confidence,
        )
        return ScoreResult(
            prediction=prediction,
            confidence=confidence,
            bullish_score=bullish,
            bearish_score=bearish,
        )

    def _override(self, gap: GapAnalysis, strategy: Strategy) -> Optional[ScoreResult]:
        """Short-circuit on large gaps inside the final and gap_focus windows."""
        if gap.direction == GapDirection.NEUTRAL:
            return None

        cfg = self.config
        magnitude = gap.abs_percentage
        action = _action_for(gap.direction)
        is_up = gap.direction == GapDirection.UP

        if strategy.name == "final" and magnitude > cfg.final_override_gap:
            confidence = min(
                cfg.final_override_cap,
                cfg.final_override_base + magnitude * cfg.final_override_slope,
            )
            return ScoreResult(
                prediction=action,
                confidence=_round_half_up(confidence),
                bullish_score=100.0 if is_up else 0.0,
                bearish_score=0.0 if is_up else 100.0,
                override="final",
            )

        if strategy.name == "gap_focus" and magnitude > cfg.gap_focus_override_gap:
            confidence = min(
                cfg.gap_focus_override_cap,
                cfg.gap_focus_override_base + magnitude * cfg.gap_focus_override_slope,
            )
            return ScoreResult(
                prediction=action,
                confidence=_round_half_up(confidence),
                bullish_score=80.0 if is_up else 20.0,
                bearish_score=20.0 if is_up else 80.0,
                override="gap_focus",
            )

        return None

    def _technical_points(
        self, ind: IndicatorSnapshot, weight: float
    ) -> tuple[float, float]:
        cfg = self.config
        bullish = 0.0
        bearish = 0.0

        avg_rsi = ind.blended_rsi(cfg.rsi_blend)
        if avg_rsi < cfg.rsi_bullish_below:
            bullish += cfg.rsi_points * weight
        elif avg_rsi > cfg.rsi_bearish_above:
            bearish += cfg.rsi_points * weight

        if ind.ema9_1m > ind.ema21_1m:
            bullish += cfg.ema_1m_points * weight
        else:
            bearish += cfg.ema_1m_points * weight

        if ind.ema9_5m > ind.ema21_5m:
            bullish += cfg.ema_5m_points * weight
        else:
            bearish += cfg.ema_5m_points * weight

        if ind.macd_1m.histogram > 0:
            bullish += cfg.macd_points * weight
        else:
            bearish += cfg.macd_points * weight

        k = ind.stochastic_1m.k
        if k < cfg.stochastic_oversold:
            bullish += cfg.stochastic_points * weight
        elif k > cfg.stochastic_overbought:
            bearish += cfg.stochastic_points * weight

        if ind.bollinger_1m is not None:
            position = ind.bollinger_1m.position
            if position < cfg.bollinger_low:
                bullish += cfg.bollinger_points * weight
            elif position > cfg.bollinger_high:
                bearish += cfg.bollinger_points * weight

        if ind.momentum_5m > cfg.momentum_threshold:
            bullish += cfg.momentum_points * weight
        elif ind.momentum_5m < -cfg.momentum_threshold:
            bearish += cfg.momentum_points * weight

        return bullish, bearish

    def _confidence(self, bullish: float, bearish: float) -> int:
        total = bullish + bearish
        if total <= 0:
            return self.config.min_confidence
        share = max(bullish, bearish) / total
        confidence = _round_half_up(50 + (share - 0.5) * 80)
        return max(self.config.min_confidence, min(self.config.max_confidence, confidence))


# ═══════════════════════════════════════════════════════════════════════
# Terminal gap/time scorer
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class TerminalCall:
    """A near-deterministic call from the closing seconds."""
    action: SignalAction
    confidence: int
    max_seconds: float
    min_gap_percent: float


class TerminalGapScorer:
    """Bucket (time remaining, |gap|) into high-certainty calls.

    Tiers are checked shortest window first, so 20s with a 0.5% gap is
    a 95 call rather than a 90 one.
    """

    def __init__(self, config: Optional[TerminalConfig] = None):
        self.config = config or TerminalConfig()

    def evaluate(self, time_remaining_seconds: float, gap_percent: float) -> Optional[TerminalCall]:
        if gap_percent == 0 or time_remaining_seconds <= 0:
            return None

        magnitude = abs(gap_percent)
        for tier in sorted(self.config.tiers, key=lambda t: t.max_seconds):
            if time_remaining_seconds <= tier.max_seconds and magnitude >= tier.min_gap_percent:
                return TerminalCall(
                    action=SignalAction.YES if gap_percent > 0 else SignalAction.NO,
                    confidence=min(self.config.max_confidence, tier.confidence),
                    max_seconds=tier.max_seconds,
                    min_gap_percent=tier.min_gap_percent,
                )
        return None


# ═══════════════════════════════════════════════════════════════════════
# Odds mispricing
# ═══════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class MispricingCall:
    """Disagreement between the market's odds and the spot price."""
    action: SignalAction
    confidence: int
    market_yes: float
    spot_yes: float
    edge: float

    def to_dict(self) -> dict:
        return {
            "market_yes": round(self.market_yes, 1),
            "spot_yes": round(self.spot_yes, 1),
            "edge": round(self.edge, 1),
        }


class MispricingScorer:
    """Compare a market's YES price with the YES probability the spot gap implies.

    When the two differ by ``min_edge`` points or more, back the spot
    side: YES if spot implies a higher YES probability than the market
    prices in, NO otherwise. Confidence is ``min(95, 50 + edge)``.
    """

    def __init__(self, config: Optional[MispricingConfig] = None):
        self.config = config or MispricingConfig()

    def spot_implied_yes(self, gap_percent: float) -> float:
        cfg = self.config
        if abs(gap_percent) <= cfg.neutral_band_percent:
            return 50.0
        implied = 50.0 + gap_percent * cfg.slope
        return min(cfg.ceiling, max(cfg.floor, implied))

    def evaluate(self, gap_percent: float, market_yes: Optional[float]) -> Optional[MispricingCall]:
        cfg = self.config
        if not cfg.enabled or market_yes is None:
            return None

        spot_yes = self.spot_implied_yes(gap_percent)
        edge = abs(market_yes - spot_yes)
        if edge < cfg.min_edge:
            return None

        confidence = min(cfg.max_confidence, _round_half_up(cfg.base_confidence + edge))
        return MispricingCall(
            action=SignalAction.YES if spot_yes > market_yes else SignalAction.NO,
            confidence=confidence,
            market_yes=market_yes,
            spot_yes=spot_yes,
            edge=edge,
        )


# ═══════════════════════════════════════════════════════════════════════
# Reasons
# ═══════════════════════════════════════════════════════════════════════


def build_reason(
    coin: str,
    current_price: float,
    strike_price: Optional[float],
    gap: GapAnalysis,
    strategy: Strategy,
    time_remaining_seconds: float,
    indicators: Optional[IndicatorSnapshot] = None,
    volume: Optional[VolumeAnalysis] = None,
) -> str:
    """Human-readable summary of why a call was made."""
    parts = []

    if strike_price:
        sign = "+" if gap.percentage > 0 else ""
        parts.append(
            f"{coin} ${current_price:,.2f} vs strike ${strike_price:,.2f} "
            f"({sign}{gap.percentage:.2f}%)"
        )
    else:
        parts.append(f"{coin} ${current_price:,.2f} (no strike)")

    parts.append(f"strategy {strategy.name}, {int(time_remaining_seconds)}s left")

    if indicators is not None:
        avg_rsi = indicators.blended_rsi()
        trend = "up" if indicators.ema9_5m > indicators.ema21_5m else "down"
        aligned = (indicators.ema9_5m > indicators.ema21_5m) == (
            indicators.ema9_15m > indicators.ema21_15m
        )
        parts.append(f"RSI {avg_rsi:.0f}")
        parts.append(f"trend {trend}{'' if aligned else ' (mixed timeframes)'}")
        parts.append(f"MACD {indicators.macd_1m.bias}")

    if volume is not None and volume.is_high:
        side = "buying" if volume.direction == GapDirection.UP else "selling"
        parts.append(f"high volume, {side} pressure")

    return "; ".join(parts)
