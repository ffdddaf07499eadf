"""Logging Setup.

One-call configuration for the scanner process. JSON lines for
deployments, colored console output for local runs.
"""

import json
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional

from src.logging_config.config import (
    DEFAULT_LOGGING_CONFIG,
    LogFormat,
    LoggingConfig,
    LogLevel,
    set_active_config,
)
from src.logging_config.context import get_context_dict

# Record attributes copied into JSON output when passed via ``extra=``.
EXTRA_FIELDS = ("duration_ms", "signal", "market_count", "extra_data")


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=timezone.utc)


class StructuredFormatter(logging.Formatter):
    """JSON lines formatter.

    Every line carries timestamp, level, logger, message and service.
    Scan context (tick and market ids) is nested under ``scan`` so a
    whole tick can be pulled out of the log stream by ``scan.tick_id``.
    """

    def __init__(self, service_name: str = "strike-signals", include_caller: bool = True):
        super().__init__()
        self.service_name = service_name
        self.include_caller = include_caller

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": _record_time(record).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        if self.include_caller:
            entry["caller"] = f"{record.module}.{record.funcName}:{record.lineno}"

        scan = get_context_dict()
        if scan:
            entry["scan"] = scan

        entry.update({k: record.__dict__[k] for k in EXTRA_FIELDS if k in record.__dict__})

        if record.exc_info and record.exc_info[0] is not None:
            exc_type, exc, _ = record.exc_info
            entry["error"] = {
                "type": exc_type.__name__,
                "message": str(exc),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored single-line output for local runs.

    ``12:00:01.250 INFO  [tick-4 market=1001] strike_signals.engine: ...``
    """

    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        clock = _record_time(record).strftime("%H:%M:%S.%f")[:-3]

        line = f"{color}{clock} {record.levelname:<5}{self.RESET} "
        tags = self._tags(get_context_dict())
        if tags:
            line += f"[{tags}] "
        line += f"{record.name}: {record.getMessage()}"

        signal = getattr(record, "signal", None)
        if isinstance(signal, dict):
            line += " | {coin} {action} {confidence}% {urgency}".format_map(_Missing(signal))
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line

    @staticmethod
    def _tags(scan: dict) -> str:
        parts = []
        if "tick_id" in scan:
            parts.append(scan.pop("tick_id"))
        if "market_id" in scan:
            parts.append(f"market={scan.pop('market_id')}")
        parts.extend(f"{k}={v}" for k, v in scan.items())
        return " ".join(parts)


class _Missing(dict):
    def __missing__(self, key):
        return "?"


def _apply_env_overrides(config: LoggingConfig) -> LoggingConfig:
    env_level = os.environ.get("STRIKE_LOG_LEVEL", "").upper()
    if env_level in LogLevel.__members__:
        config = replace(config, level=LogLevel(env_level))

    env_format = os.environ.get("STRIKE_LOG_FORMAT", "").lower()
    if env_format in [f.value for f in LogFormat]:
        config = replace(config, format=LogFormat(env_format))

    return config


def configure_logging(config: Optional[LoggingConfig] = None) -> LoggingConfig:
    """Configure the root logger for the scanner process.

    Call once at startup. ``STRIKE_LOG_LEVEL`` and ``STRIKE_LOG_FORMAT``
    override the passed config.

    Args:
        config: Logging configuration. Uses defaults if not provided.

    Returns:
        The effective configuration after env overrides.
    """
    config = _apply_env_overrides(config or DEFAULT_LOGGING_CONFIG)
    set_active_config(config)

    if config.format == LogFormat.JSON:
        formatter: logging.Formatter = StructuredFormatter(
            service_name=config.service_name,
            include_caller=config.include_caller,
        )
    else:
        formatter = ConsoleFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level.value))

    # Per-request lines from the HTTP client drown out tick logs.
    for noisy in ("asyncio", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return config


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance, typically for ``__name__``."""
    return logging.getLogger(name)
