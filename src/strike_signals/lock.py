"""Per-market signal lock and emission cooldown.

State machine per market:

    Unlocked --first qualifying call--> Locked(direction)
    Locked(direction) --market expired / untracked--> Unlocked

Once a direction is locked, an opposite call is rejected outright (not
queued, not retried). Same-direction calls are rate limited by the
cooldown and dropped while it runs. There is no unlock on timeout.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Optional

from src.strike_signals.config import LockConfig, SignalAction
from src.strike_signals.models import SignalLock

logger = logging.getLogger(__name__)


class SignalLockManager:
    """Enforce one directional call per market for its whole lifetime.

    Example:
        locks = SignalLockManager()
        locks.try_emit("mkt-1", SignalAction.YES, 95, now=t)        # True
        locks.try_emit("mkt-1", SignalAction.NO, 99, now=t + 5)     # False
        locks.try_emit("mkt-1", SignalAction.YES, 95, now=t + 30)   # False (cooldown)
        locks.try_emit("mkt-1", SignalAction.YES, 95, now=t + 61)   # True
    """

    def __init__(self, config: Optional[LockConfig] = None):
        self.config = config or LockConfig()
        self._locks: dict[str, SignalLock] = {}

    def try_emit(
        self,
        market_id: str,
        direction: SignalAction,
        confidence: int,
        now: float,
    ) -> bool:
        """Return True if a signal in ``direction`` may be emitted now."""
        lock = self._locks.get(market_id)

        if lock is None:
            self._locks[market_id] = SignalLock(
                market_id=market_id,
                direction=direction,
                locked_at=now,
                confidence=confidence,
                last_emitted_at=now,
            )
            logger.info("Locked %s to %s at %d%%", market_id, direction.value, confidence)
            return True

        if lock.direction != direction:
            lock.suppressed += 1
            logger.debug(
                "Suppressed %s call for %s (locked %s)",
                direction.value, market_id, lock.direction.value,
            )
            return False

        if now - lock.last_emitted_at < self.config.cooldown_seconds:
            logger.debug("Cooldown active for %s", market_id)
            return False

        lock.last_emitted_at = now
        return True

    def get(self, market_id: str) -> Optional[SignalLock]:
        return self._locks.get(market_id)

    def is_locked(self, market_id: str) -> bool:
        return market_id in self._locks

    def release(self, market_id: str) -> bool:
        """Clear a market's lock. Returns True if one existed."""
        lock = self._locks.pop(market_id, None)
        if lock is not None:
            logger.debug("Released %s lock for %s", lock.direction.value, market_id)
            return True
        return False

    def prune(self, active_ids: Iterable[str]) -> list[str]:
        """Release every lock whose market is no longer tracked."""
        active = set(active_ids)
        stale = [mid for mid in self._locks if mid not in active]
        for mid in stale:
            self.release(mid)
        return stale

    @property
    def active(self) -> dict[str, SignalLock]:
        return dict(self._locks)

    def __len__(self) -> int:
        return len(self._locks)
