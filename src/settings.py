"""Centralized settings for the strike signal scanner.

Uses pydantic-settings to load from environment variables (prefixed STRIKE_)
with defaults matching the dataclass configs in src.strike_signals.config.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings

from src.logging_config import LogFormat, LoggingConfig, LogLevel
from src.market_feeds import BinanceConfig, GammaConfig
from src.strike_signals.config import (
    HistoryConfig,
    LockConfig,
    MispricingConfig,
    ScanMode,
    ScannerConfig,
    TrendConfig,
)


class Settings(BaseSettings):
    """Scanner settings loaded from environment variables."""

    # --- Scan loop ---
    mode: ScanMode = ScanMode.TECHNICAL
    scan_interval: float = 10.0
    fetch_timeout: float = 5.0
    technical_horizon_seconds: float = 1800.0
    gap_horizon_seconds: float = 120.0
    trend_gate_seconds: float = 60.0

    # --- State ---
    history_retention_seconds: float = 300.0
    history_max_samples: int = 60
    trend_consistency_threshold: float = 0.70
    cooldown_seconds: float = 60.0

    # --- Odds mispricing ---
    mispricing_enabled: bool = True
    mispricing_min_edge: float = 30.0

    # --- Binance ---
    binance_base_url: str = "https://api.binance.com"
    candle_cache_seconds: float = 10.0

    # --- Polymarket Gamma ---
    gamma_base_url: str = "https://gamma-api.polymarket.com"
    coins: list[str] = ["btc", "eth", "sol", "xrp"]
    market_window: str = "15m"

    # --- Logging ---
    log_level: LogLevel = LogLevel.INFO
    log_format: LogFormat = LogFormat.JSON
    slow_tick_ms: float = 2000.0

    model_config = {
        "env_prefix": "STRIKE_",
        "env_file": ".env",
        "extra": "ignore",
    }

    def to_scanner_config(self) -> ScannerConfig:
        return ScannerConfig(
            mode=self.mode,
            scan_interval=self.scan_interval,
            fetch_timeout=self.fetch_timeout,
            technical_horizon_seconds=self.technical_horizon_seconds,
            gap_horizon_seconds=self.gap_horizon_seconds,
            trend_gate_seconds=self.trend_gate_seconds,
            history=HistoryConfig(
                retention_seconds=self.history_retention_seconds,
                max_samples=self.history_max_samples,
            ),
            trend=TrendConfig(consistency_threshold=self.trend_consistency_threshold),
            lock=LockConfig(cooldown_seconds=self.cooldown_seconds),
            mispricing=MispricingConfig(
                enabled=self.mispricing_enabled,
                min_edge=self.mispricing_min_edge,
            ),
        )

    def to_binance_config(self) -> BinanceConfig:
        return BinanceConfig(
            base_url=self.binance_base_url,
            request_timeout=self.fetch_timeout,
            candle_cache_seconds=self.candle_cache_seconds,
        )

    def to_gamma_config(self) -> GammaConfig:
        return GammaConfig(
            base_url=self.gamma_base_url,
            request_timeout=self.fetch_timeout,
            coins=[c.lower() for c in self.coins],
            window=self.market_window,
        )

    def to_logging_config(self) -> LoggingConfig:
        return LoggingConfig(
            level=self.log_level,
            format=self.log_format,
            slow_threshold_ms=self.slow_tick_ms,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton."""
    return Settings()
