"""Configuration for the Strike Signal engine.

Enums shared across the engine plus one config dataclass per component.
Defaults reproduce the reference tuning; every threshold is a plain field
so it can be overridden from settings or in tests.
"""

from dataclasses import dataclass, field
from enum import Enum


class TrendDirection(str, Enum):
    """Short-term price direction relative to the strike."""
    UP = "up"
    DOWN = "down"
    UNKNOWN = "unknown"


class GapDirection(str, Enum):
    """Side of the strike the live price sits on."""
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class SignalAction(str, Enum):
    """Outcome a signal recommends."""
    YES = "YES"
    NO = "NO"


class Urgency(str, Enum):
    """Notification priority derived from time remaining."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class ScanMode(str, Enum):
    """Scoring path used by the scanner.

    TECHNICAL runs the full multi-timeframe scorer over a wide horizon.
    GAP only looks at the live-price-vs-strike gap in the final minutes.
    """
    TECHNICAL = "technical"
    GAP = "gap"


@dataclass(frozen=True)
class Strategy:
    """Weighting profile chosen from time remaining."""
    name: str
    tech_weight: float
    gap_weight: float
    volume_weight: float


BALANCED = Strategy("balanced", 0.50, 0.35, 0.15)
FINAL = Strategy("final", 0.10, 0.80, 0.10)
GAP_FOCUS = Strategy("gap_focus", 0.25, 0.60, 0.15)
MOMENTUM = Strategy("momentum", 0.45, 0.40, 0.15)
TREND = Strategy("trend", 0.60, 0.25, 0.15)

# Upper bounds in seconds (inclusive); anything longer maps to TREND.
STRATEGY_TIERS: list[tuple[float, Strategy]] = [
    (120.0, FINAL),
    (300.0, GAP_FOCUS),
    (600.0, MOMENTUM),
]


@dataclass
class HistoryConfig:
    """Rolling price window per market."""
    retention_seconds: float = 300.0
    max_samples: int = 60


@dataclass
class TrendConfig:
    """Trend evaluation over the retained window."""
    min_samples: int = 3
    recent_window: int = 6
    consistency_threshold: float = 0.70


@dataclass
class ScoringConfig:
    """Point values and thresholds for the weighted scorer."""

    # Override short-circuits
    final_override_gap: float = 0.3
    final_override_base: float = 70.0
    final_override_slope: float = 10.0
    final_override_cap: float = 95.0
    gap_focus_override_gap: float = 0.2
    gap_focus_override_base: float = 60.0
    gap_focus_override_slope: float = 8.0
    gap_focus_override_cap: float = 90.0

    # Indicator points (multiplied by strategy.tech_weight)
    rsi_points: float = 15.0
    rsi_bullish_below: float = 40.0
    rsi_bearish_above: float = 60.0
    rsi_blend: tuple[float, float, float] = (0.3, 0.4, 0.3)
    ema_1m_points: float = 10.0
    ema_5m_points: float = 15.0
    macd_points: float = 10.0
    stochastic_points: float = 10.0
    stochastic_oversold: float = 30.0
    stochastic_overbought: float = 70.0
    bollinger_points: float = 10.0
    bollinger_low: float = 0.3
    bollinger_high: float = 0.7
    momentum_points: float = 15.0
    momentum_threshold: float = 0.1

    # Gap and volume
    gap_score_slope: float = 30.0
    gap_score_base: float = 20.0
    volume_points: float = 30.0
    high_volume_ratio: float = 1.2
    low_volume_ratio: float = 0.8

    # Confidence mapping
    min_confidence: int = 50
    max_confidence: int = 95


@dataclass
class TerminalTier:
    """One row of the terminal gap/time table."""
    max_seconds: float
    min_gap_percent: float
    confidence: int


@dataclass
class TerminalConfig:
    """Gap/time buckets used in the closing minutes."""
    tiers: list[TerminalTier] = field(default_factory=lambda: [
        TerminalTier(30.0, 0.2, 95),
        TerminalTier(60.0, 0.4, 90),
        TerminalTier(120.0, 0.6, 85),
    ])
    max_confidence: int = 98


@dataclass
class MispricingConfig:
    """Market odds versus the spot-implied YES probability.

    Spot implies 50% YES while the price is within ``neutral_band_percent``
    of the strike, then moves ``slope`` points per 1% of gap, clamped to
    [floor, ceiling]. A call needs at least ``min_edge`` points between
    that and the market's own YES price.
    """
    enabled: bool = True
    neutral_band_percent: float = 0.5
    slope: float = 10.0
    floor: float = 10.0
    ceiling: float = 90.0
    min_edge: float = 30.0
    base_confidence: float = 50.0
    max_confidence: int = 95


@dataclass
class LockConfig:
    """Signal lock and re-emission cooldown."""
    cooldown_seconds: float = 60.0


@dataclass
class ScannerConfig:
    """Top-level scanner configuration."""

    mode: ScanMode = ScanMode.TECHNICAL
    scan_interval: float = 10.0
    fetch_timeout: float = 5.0
    technical_horizon_seconds: float = 1800.0
    gap_horizon_seconds: float = 120.0
    # Inconsistent trends may still be scored inside this window.
    trend_gate_seconds: float = 60.0

    candle_limits: dict[str, int] = field(default_factory=lambda: {
        "1m": 100,
        "5m": 50,
        "15m": 30,
    })

    history: HistoryConfig = field(default_factory=HistoryConfig)
    trend: TrendConfig = field(default_factory=TrendConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    terminal: TerminalConfig = field(default_factory=TerminalConfig)
    mispricing: MispricingConfig = field(default_factory=MispricingConfig)
    lock: LockConfig = field(default_factory=LockConfig)

    @property
    def horizon_seconds(self) -> float:
        if self.mode == ScanMode.GAP:
            return self.gap_horizon_seconds
        return self.technical_horizon_seconds


def urgency_for(time_remaining_seconds: float) -> Urgency:
    """Bucket time remaining into a notification urgency tier."""
    if time_remaining_seconds <= 30:
        return Urgency.CRITICAL
    if time_remaining_seconds <= 60:
        return Urgency.HIGH
    if time_remaining_seconds <= 300:
        return Urgency.MEDIUM
    return Urgency.LOW


DEFAULT_SCANNER_CONFIG = ScannerConfig()
