"""Scan Context Management.

contextvars-based binding of the current tick and market to every log
entry emitted while that market is being evaluated. Concurrent fetch
tasks inherit the context they were created in.
"""

import itertools
from contextvars import ContextVar, Token
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


_tick_id_var: ContextVar[str] = ContextVar("tick_id", default="")
_market_id_var: ContextVar[str] = ContextVar("market_id", default="")
_extra_context_var: ContextVar[dict] = ContextVar("extra_context", default={})

_tick_counter = itertools.count(1)


def generate_tick_id() -> str:
    """Next process-wide tick identifier, e.g. ``tick-42``."""
    return f"tick-{next(_tick_counter)}"


def get_tick_id() -> str:
    """Get the current tick ID from context."""
    return _tick_id_var.get()


def get_market_id() -> str:
    """Get the market currently being evaluated, if any."""
    return _market_id_var.get()


def get_context_dict() -> dict[str, Any]:
    """Get all context variables as a dictionary for log binding."""
    ctx = {}
    tick_id = _tick_id_var.get()
    if tick_id:
        ctx["tick_id"] = tick_id
    market_id = _market_id_var.get()
    if market_id:
        ctx["market_id"] = market_id
    extra = _extra_context_var.get()
    if extra:
        ctx.update(extra)
    return ctx


@dataclass
class ScanContext:
    """Context manager for tick- and market-scoped logging context.

    Nesting is supported: an inner context restores the outer values on
    exit, so a market context inside a tick context leaves the tick_id
    bound afterwards.

    Example:
        with ScanContext(tick_id=generate_tick_id()):
            with ScanContext(market_id="12345"):
                logger.info("scoring")   # includes tick_id and market_id
    """

    tick_id: Optional[str] = None
    market_id: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)
    started_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    _tokens: list[tuple[ContextVar, Token]] = field(default_factory=list, repr=False)

    def __enter__(self) -> "ScanContext":
        if self.tick_id is not None:
            self._tokens.append((_tick_id_var, _tick_id_var.set(self.tick_id)))
        if self.market_id is not None:
            self._tokens.append((_market_id_var, _market_id_var.set(self.market_id)))
        merged = {**_extra_context_var.get(), **self.extra}
        self._tokens.append((_extra_context_var, _extra_context_var.set(merged)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since context was created."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    def bind(self, **kwargs: Any) -> None:
        """Add extra key-value pairs to the context."""
        current = _extra_context_var.get()
        _extra_context_var.set({**current, **kwargs})
        self.extra.update(kwargs)
