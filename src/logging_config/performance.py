"""Performance Logging.

Timing for scan ticks and feed calls. Every timed call is logged at
DEBUG, calls above the slow threshold at WARNING.
"""

import asyncio
import functools
import logging
import time
from typing import Any, Callable, Optional

from src.logging_config.config import get_active_config

logger = logging.getLogger(__name__)


def _report(
    _logger: logging.Logger,
    name: str,
    duration_ms: float,
    threshold_ms: Optional[float],
    error: Optional[BaseException] = None,
) -> None:
    if threshold_ms is None:
        threshold_ms = get_active_config().slow_threshold_ms
    extra = {"duration_ms": round(duration_ms, 2)}
    if error is not None:
        _logger.error(
            f"{name} failed after {duration_ms:.1f}ms: {type(error).__name__}",
            extra=extra,
        )
    elif duration_ms >= threshold_ms:
        _logger.warning(f"Slow operation: {name} took {duration_ms:.1f}ms", extra=extra)
    else:
        _logger.debug(f"{name} completed in {duration_ms:.1f}ms", extra=extra)


def log_performance(
    threshold_ms: Optional[float] = None,
    logger_name: Optional[str] = None,
) -> Callable:
    """Decorator that logs function execution time.

    Works on both plain functions and coroutines. Cancellation of a
    coroutine is not reported as a failure.

    Args:
        threshold_ms: Slow operation threshold in milliseconds.
                     Defaults to the active config's slow_threshold_ms,
                     read at call time.
        logger_name: Custom logger name. Defaults to function's module.

    Example:
        @log_performance(threshold_ms=500)
        async def run_tick(self):
            ...
    """

    def decorator(func: Callable) -> Callable:
        _logger = logging.getLogger(logger_name or func.__module__)
        func_name = func.__qualname__

        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except asyncio.CancelledError:
                    raise
                except Exception as exc:
                    _report(_logger, func_name, (time.perf_counter() - start) * 1000,
                            threshold_ms, exc)
                    raise
                _report(_logger, func_name, (time.perf_counter() - start) * 1000, threshold_ms)
                return result
            return async_wrapper

        @functools.wraps(func)
        def sync_wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _report(_logger, func_name, (time.perf_counter() - start) * 1000,
                        threshold_ms, exc)
                raise
            _report(_logger, func_name, (time.perf_counter() - start) * 1000, threshold_ms)
            return result
        return sync_wrapper

    return decorator


class PerformanceTimer:
    """Context manager for timing code blocks.

    Example:
        with PerformanceTimer("fetch_prices") as timer:
            prices = await gather_prices(markets)
        logger.info("fetched in %.1fms", timer.duration_ms)
    """

    def __init__(self, operation_name: str, threshold_ms: Optional[float] = None):
        self.operation_name = operation_name
        if threshold_ms is None:
            threshold_ms = get_active_config().slow_threshold_ms
        self.threshold_ms = threshold_ms
        self.start_time: float = 0
        self.duration_ms: float = 0

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration_ms = (time.perf_counter() - self.start_time) * 1000
        error = exc_val if exc_type is not None and issubclass(exc_type, Exception) else None
        _report(logger, self.operation_name, self.duration_ms, self.threshold_ms, error)
