"""Logging Configuration.

Log level, output format and slow-tick threshold for the scanner.
"""

from dataclasses import dataclass
from enum import Enum


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output format."""
    JSON = "json"
    CONSOLE = "console"


@dataclass
class LoggingConfig:
    """Structured logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.JSON
    include_caller: bool = True
    # A scan tick slower than this is logged at WARNING.
    slow_threshold_ms: float = 2000.0
    service_name: str = "strike-signals"


DEFAULT_LOGGING_CONFIG = LoggingConfig()
_active_config = DEFAULT_LOGGING_CONFIG


def get_active_config() -> LoggingConfig:
    """Configuration applied by the last configure_logging() call."""
    return _active_config


def set_active_config(config: LoggingConfig) -> None:
    global _active_config
    _active_config = config
