"""Structured Logging & Scan Tracing.

JSON or console logging with tick/market context binding and
performance timing for the scanner.
"""

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import ScanContext, generate_tick_id, get_context_dict
from src.logging_config.performance import PerformanceTimer, log_performance
from src.logging_config.setup import (
    ConsoleFormatter,
    StructuredFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "ConsoleFormatter",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "PerformanceTimer",
    "ScanContext",
    "StructuredFormatter",
    "configure_logging",
    "generate_tick_id",
    "get_context_dict",
    "get_logger",
    "log_performance",
]
