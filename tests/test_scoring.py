"""Tests for gap/volume analysis, the weighted scorer and the terminal scorer."""

from __future__ import annotations

import pytest

from src.strike_signals.config import (
    BALANCED,
    FINAL,
    GAP_FOCUS,
    MOMENTUM,
    GapDirection,
    MispricingConfig,
    SignalAction,
    Strategy,
    TerminalConfig,
    TerminalTier,
)
from src.strike_signals.indicators import (
    BollingerResult,
    IndicatorSnapshot,
    MACDResult,
    StochasticResult,
)
from src.strike_signals.models import Candle, GapAnalysis, VolumeAnalysis
from src.strike_signals.scoring import (
    MispricingScorer,
    ScoringEngine,
    TerminalGapScorer,
    analyze_gap,
    analyze_volume,
    build_reason,
)


def _bullish_snapshot() -> IndicatorSnapshot:
    return IndicatorSnapshot(
        rsi_1m=30.0, rsi_5m=30.0, rsi_15m=30.0,
        ema9_1m=101.0, ema21_1m=100.0,
        ema9_5m=101.0, ema21_5m=100.0,
        ema9_15m=101.0, ema21_15m=100.0,
        macd_1m=MACDResult(macd=1.0, signal=0.5, histogram=0.5),
        stochastic_1m=StochasticResult(k=20.0, d=20.0),
        bollinger_1m=BollingerResult(upper=110.0, middle=100.0, lower=90.0, position=0.1),
        momentum_5m=0.5,
        current_price=100.0,
    )


def _bearish_snapshot() -> IndicatorSnapshot:
    return IndicatorSnapshot(
        rsi_1m=70.0, rsi_5m=70.0, rsi_15m=70.0,
        ema9_1m=99.0, ema21_1m=100.0,
        ema9_5m=99.0, ema21_5m=100.0,
        ema9_15m=99.0, ema21_15m=100.0,
        macd_1m=MACDResult(macd=-1.0, signal=-0.5, histogram=-0.5),
        stochastic_1m=StochasticResult(k=90.0, d=90.0),
        bollinger_1m=BollingerResult(upper=110.0, middle=100.0, lower=90.0, position=0.9),
        momentum_5m=-0.5,
        current_price=100.0,
    )


@pytest.fixture
def engine():
    return ScoringEngine()


# ═══════════════════════════════════════════════════════════════════════
#  Gap / volume
# ═══════════════════════════════════════════════════════════════════════


class TestAnalyzeGap:

    def test_above_strike(self):
        gap = analyze_gap(100_300.0, 100_000.0)
        assert gap.direction == GapDirection.UP
        assert gap.diff == pytest.approx(300.0)
        assert gap.percentage == pytest.approx(0.3)
        assert gap.strength == pytest.approx(6.0)

    def test_below_strike(self):
        gap = analyze_gap(99_000.0, 100_000.0)
        assert gap.direction == GapDirection.DOWN
        assert gap.percentage == pytest.approx(-1.0)
        assert gap.abs_percentage == pytest.approx(1.0)

    def test_at_strike_neutral(self):
        assert analyze_gap(100.0, 100.0).direction == GapDirection.NEUTRAL

    @pytest.mark.parametrize("strike", [None, 0.0, -5.0])
    def test_missing_strike_neutral(self, strike):
        assert analyze_gap(100.0, strike) == GapAnalysis()

    def test_strength_capped(self):
        assert analyze_gap(200.0, 100.0).strength == 100.0


class TestAnalyzeVolume:

    def test_no_candles(self):
        assert analyze_volume([]) == VolumeAnalysis()

    def test_high_volume_on_rising_price(self):
        candles = [Candle(open=100, high=101, low=99, close=100 + i * 0.1, volume=10.0)
                   for i in range(25)]
        candles += [Candle(open=103, high=104, low=102, close=103 + i, volume=30.0)
                    for i in range(5)]
        vol = analyze_volume(candles)
        assert vol.ratio == pytest.approx(150.0 / (400.0 / 30 * 5))
        assert vol.is_high
        assert not vol.is_low
        assert vol.direction == GapDirection.UP
        assert vol.strength == 100.0

    def test_low_volume(self):
        candles = [Candle(open=100, high=101, low=99, close=100 - i, volume=10.0)
                   for i in range(25)]
        candles += [Candle(open=80, high=81, low=79, close=70 - i, volume=1.0)
                    for i in range(5)]
        vol = analyze_volume(candles)
        assert vol.is_low
        assert vol.direction == GapDirection.DOWN

    def test_zero_volume(self):
        candles = [Candle(open=1, high=1, low=1, close=1, volume=0.0)] * 10
        assert analyze_volume(candles) == VolumeAnalysis()


# ═══════════════════════════════════════════════════════════════════════
#  Weighted scorer
# ═══════════════════════════════════════════════════════════════════════


class TestScoringEngine:

    def test_all_bullish_without_strike(self, engine):
        result = engine.score(_bullish_snapshot(), analyze_gap(100.0, None), None, MOMENTUM)
        assert result.prediction == SignalAction.YES
        assert result.bullish_score == pytest.approx(85 * MOMENTUM.tech_weight)
        assert result.bearish_score == 0.0
        assert result.confidence == 90
        assert result.override is None

    def test_all_bearish(self, engine):
        result = engine.score(_bearish_snapshot(), GapAnalysis(), None, MOMENTUM)
        assert result.prediction == SignalAction.NO
        assert result.bullish_score == 0.0
        assert result.confidence == 90

    def test_null_strike_contributes_nothing(self, engine):
        snap = _bullish_snapshot()
        without = engine.score(snap, analyze_gap(100.0, None), None, MOMENTUM)
        neutral = engine.score(snap, GapAnalysis(), None, MOMENTUM)
        assert without == neutral

    def test_gap_points(self, engine):
        snap = _bullish_snapshot()
        base = engine.score(snap, GapAnalysis(), None, BALANCED)
        with_gap = engine.score(snap, analyze_gap(100.1, 100.0), None, BALANCED)
        expected = min(100.0, 0.1 * 30 + 20) * BALANCED.gap_weight
        assert with_gap.bullish_score - base.bullish_score == pytest.approx(expected, rel=1e-3)

    def test_high_volume_points(self, engine):
        snap = _bearish_snapshot()
        volume = VolumeAnalysis(ratio=2.0, is_high=True, direction=GapDirection.DOWN)
        base = engine.score(snap, GapAnalysis(), None, MOMENTUM)
        result = engine.score(snap, GapAnalysis(), volume, MOMENTUM)
        assert result.bearish_score - base.bearish_score == pytest.approx(30 * MOMENTUM.volume_weight)

    def test_tie_goes_to_yes(self, engine):
        snap = IndicatorSnapshot(
            ema9_1m=2.0, ema21_1m=1.0,          # bullish 10
            ema9_5m=1.0, ema21_5m=2.0,          # bearish 15
            macd_1m=MACDResult(histogram=0.1),  # bullish 10
            stochastic_1m=StochasticResult(k=10.0, d=10.0),  # bullish 10
            momentum_5m=-1.0,                   # bearish 15
        )
        even = Strategy("even", 0.5, 0.25, 0.25)
        result = engine.score(snap, GapAnalysis(), None, even)
        assert result.bullish_score == pytest.approx(result.bearish_score)
        assert result.prediction == SignalAction.YES
        assert result.confidence == 50

    def test_confidence_bounds(self, engine):
        assert engine._confidence(0.0, 0.0) == 50
        assert engine._confidence(10.0, 0.0) == 90
        assert engine._confidence(6.0, 4.0) == 58

    def test_default_strategy_is_balanced(self, engine):
        snap = _bullish_snapshot()
        assert engine.score(snap, GapAnalysis()) == engine.score(snap, GapAnalysis(), None, BALANCED)


class TestOverrides:

    def test_final_override(self, engine):
        result = engine.score(_bearish_snapshot(), analyze_gap(100.5, 100.0), None, FINAL)
        assert result.override == "final"
        assert result.prediction == SignalAction.YES
        assert result.confidence == 75
        assert result.bullish_score == 100.0

    def test_final_override_capped(self, engine):
        result = engine.score(IndicatorSnapshot(), analyze_gap(97.0, 100.0), None, FINAL)
        assert result.prediction == SignalAction.NO
        assert result.confidence == 95
        assert result.bearish_score == 100.0

    def test_final_override_threshold_exclusive(self, engine):
        gap = GapAnalysis(diff=0.3, percentage=0.3, direction=GapDirection.UP)
        assert engine.score(IndicatorSnapshot(), gap, None, FINAL).override is None

    def test_gap_focus_override(self, engine):
        result = engine.score(_bearish_snapshot(), analyze_gap(100.5, 100.0), None, GAP_FOCUS)
        assert result.override == "gap_focus"
        assert result.confidence == 64
        assert (result.bullish_score, result.bearish_score) == (80.0, 20.0)

    def test_gap_focus_override_capped(self, engine):
        result = engine.score(IndicatorSnapshot(), analyze_gap(110.0, 100.0), None, GAP_FOCUS)
        assert result.confidence == 90

    def test_no_override_outside_closing_windows(self, engine):
        result = engine.score(_bearish_snapshot(), analyze_gap(105.0, 100.0), None, MOMENTUM)
        assert result.override is None


# ═══════════════════════════════════════════════════════════════════════
#  Terminal scorer
# ═══════════════════════════════════════════════════════════════════════


class TestTerminalGapScorer:

    @pytest.mark.parametrize("seconds,gap,expected", [
        (20, 0.3, 95),
        (20, 0.5, 95),
        (30, 0.2, 95),
        (45, 0.5, 90),
        (60, 0.4, 90),
        (100, 0.7, 85),
        (120, 0.6, 85),
    ])
    def test_tiers(self, seconds, gap, expected):
        call = TerminalGapScorer().evaluate(seconds, gap)
        assert call is not None
        assert call.action == SignalAction.YES
        assert call.confidence == expected

    @pytest.mark.parametrize("seconds,gap", [
        (20, 0.1),
        (45, 0.3),
        (100, 0.5),
        (150, 5.0),
        (0, 1.0),
        (20, 0.0),
    ])
    def test_no_call(self, seconds, gap):
        assert TerminalGapScorer().evaluate(seconds, gap) is None

    def test_negative_gap_is_no(self):
        call = TerminalGapScorer().evaluate(25, -0.25)
        assert call.action == SignalAction.NO
        assert call.confidence == 95

    def test_confidence_cap(self):
        scorer = TerminalGapScorer(TerminalConfig(tiers=[TerminalTier(30.0, 0.1, 99)]))
        assert scorer.evaluate(10, 1.0).confidence == 98


# ═══════════════════════════════════════════════════════════════════════
#  Mispricing scorer
# ═══════════════════════════════════════════════════════════════════════


class TestMispricingScorer:

    @pytest.mark.parametrize("gap,expected", [
        (0.0, 50.0),
        (0.5, 50.0),
        (-0.5, 50.0),
        (0.8, 58.0),
        (-0.8, 42.0),
        (5.0, 90.0),
        (-6.0, 10.0),
    ])
    def test_spot_implied_yes(self, gap, expected):
        assert MispricingScorer().spot_implied_yes(gap) == pytest.approx(expected)

    def test_underpriced_yes_backs_yes(self):
        call = MispricingScorer().evaluate(0.8, 20.0)
        assert call.action == SignalAction.YES
        assert call.edge == pytest.approx(38.0)
        assert call.confidence == 88
        assert call.to_dict() == {"market_yes": 20.0, "spot_yes": 58.0, "edge": 38.0}

    def test_overpriced_yes_near_strike_backs_no(self):
        call = MispricingScorer().evaluate(0.2, 85.0)
        assert call.action == SignalAction.NO
        assert call.confidence == 85

    def test_minimum_edge_is_inclusive(self):
        scorer = MispricingScorer()
        assert scorer.evaluate(0.0, 80.0).confidence == 80
        assert scorer.evaluate(0.0, 79.9) is None

    def test_confidence_cap(self):
        call = MispricingScorer().evaluate(-6.0, 90.0)
        assert call.action == SignalAction.NO
        assert call.confidence == 95

    def test_no_odds_or_disabled(self):
        assert MispricingScorer().evaluate(0.8, None) is None
        assert MispricingScorer(MispricingConfig(enabled=False)).evaluate(0.8, 20.0) is None


class TestBuildReason:

    def test_with_strike(self):
        gap = analyze_gap(100_300.0, 100_000.0)
        reason = build_reason("BTC", 100_300.0, 100_000.0, gap, FINAL, 20)
        assert "BTC $100,300.00 vs strike $100,000.00 (+0.30%)" in reason
        assert "strategy final, 20s left" in reason

    def test_without_strike_with_indicators(self):
        volume = VolumeAnalysis(ratio=2.0, is_high=True, direction=GapDirection.UP)
        reason = build_reason(
            "ETH", 3000.0, None, GapAnalysis(), MOMENTUM, 400,
            indicators=_bullish_snapshot(), volume=volume,
        )
        assert "(no strike)" in reason
        assert "RSI 30" in reason
        assert "trend up" in reason
        assert "MACD bullish" in reason
        assert "buying pressure" in reason
