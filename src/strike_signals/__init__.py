"""Strike Signal Engine.

Scans short-window crypto up/down prediction markets and emits at most
one directional YES/NO call per market:
- Rolling per-market price history and trend consistency gating
- Time-remaining strategy tiers (trend → momentum → gap_focus → final)
- Multi-timeframe indicators (RSI, EMA, MACD, Stochastic, Bollinger)
- Weighted scoring with closing-window gap overrides
- Market odds vs spot-implied probability (mispricing) calls
- Per-market direction lock with re-emission cooldown

Pipeline: Markets fetched → Prices recorded → Trend gated → Strategy selected → Scored → Locked → Published
"""

from src.strike_signals.channel import SignalChannel
from src.strike_signals.config import (
    BALANCED,
    DEFAULT_SCANNER_CONFIG,
    FINAL,
    GAP_FOCUS,
    MOMENTUM,
    TREND,
    GapDirection,
    HistoryConfig,
    LockConfig,
    MispricingConfig,
    ScanMode,
    ScannerConfig,
    ScoringConfig,
    SignalAction,
    Strategy,
    TerminalConfig,
    TerminalTier,
    TrendConfig,
    TrendDirection,
    Urgency,
    urgency_for,
)
from src.strike_signals.engine import ScannerEngine, SymbolSnapshot
from src.strike_signals.history import PriceHistoryStore
from src.strike_signals.indicators import (
    BollingerResult,
    IndicatorSnapshot,
    MACDResult,
    StochasticResult,
    compute_all,
)
from src.strike_signals.lock import SignalLockManager
from src.strike_signals.models import (
    Candle,
    GapAnalysis,
    Market,
    PricePoint,
    ScoreResult,
    Signal,
    SignalLock,
    TrendState,
    VolumeAnalysis,
)
from src.strike_signals.scheduler import (
    AsyncioScheduler,
    Clock,
    ManualClock,
    ManualScheduler,
    Scheduler,
    SystemClock,
)
from src.strike_signals.scoring import (
    MispricingCall,
    MispricingScorer,
    ScoringEngine,
    TerminalCall,
    TerminalGapScorer,
    analyze_gap,
    analyze_volume,
    build_reason,
)
from src.strike_signals.strategy import StrategySelector
from src.strike_signals.trend import TrendAnalyzer

__all__ = [
    # Config
    "BALANCED",
    "DEFAULT_SCANNER_CONFIG",
    "FINAL",
    "GAP_FOCUS",
    "MOMENTUM",
    "TREND",
    "GapDirection",
    "HistoryConfig",
    "LockConfig",
    "MispricingConfig",
    "ScanMode",
    "ScannerConfig",
    "ScoringConfig",
    "SignalAction",
    "Strategy",
    "TerminalConfig",
    "TerminalTier",
    "TrendConfig",
    "TrendDirection",
    "Urgency",
    "urgency_for",
    # Models
    "Candle",
    "GapAnalysis",
    "Market",
    "PricePoint",
    "ScoreResult",
    "Signal",
    "SignalLock",
    "TrendState",
    "VolumeAnalysis",
    # Indicators
    "BollingerResult",
    "IndicatorSnapshot",
    "MACDResult",
    "StochasticResult",
    "compute_all",
    # Pipeline
    "PriceHistoryStore",
    "TrendAnalyzer",
    "StrategySelector",
    "ScoringEngine",
    "MispricingCall",
    "MispricingScorer",
    "TerminalCall",
    "TerminalGapScorer",
    "analyze_gap",
    "analyze_volume",
    "build_reason",
    "SignalLockManager",
    "SignalChannel",
    # Engine & scheduling
    "ScannerEngine",
    "SymbolSnapshot",
    "AsyncioScheduler",
    "Clock",
    "ManualClock",
    "ManualScheduler",
    "Scheduler",
    "SystemClock",
]
