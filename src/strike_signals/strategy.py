"""Strategy selection from time remaining.

As resolution nears, the live-price-vs-strike gap dominates because
technical momentum has no time left to reverse it. Selection is a pure,
total function of the remaining seconds.
"""

from __future__ import annotations

from typing import Optional

from src.strike_signals.config import BALANCED, STRATEGY_TIERS, TREND, Strategy


class StrategySelector:
    """Map remaining time to a weighting profile.

    Example:
        selector = StrategySelector()
        selector.select(90).name    # "final"
        selector.select(None).name  # "balanced"
    """

    def __init__(self, tiers: Optional[list[tuple[float, Strategy]]] = None):
        self.tiers = sorted(tiers or STRATEGY_TIERS, key=lambda t: t[0])

    def select(self, time_remaining_seconds: Optional[float]) -> Strategy:
        if time_remaining_seconds is None:
            return BALANCED
        for upper_bound, strategy in self.tiers:
            if time_remaining_seconds <= upper_bound:
                return strategy
        return TREND

    @property
    def names(self) -> list[str]:
        return [BALANCED.name] + [s.name for _, s in self.tiers] + [TREND.name]
