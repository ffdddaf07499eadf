"""Trend direction and consistency from the retained price window.

Strike-adjacent price action is noisy, so the trend is judged over the
whole retained window instead of the latest tick: the direction comes
from the mean of the most recent samples, and consistency is the share
of all retained samples sitting on that side of the strike.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from src.strike_signals.config import TrendConfig, TrendDirection
from src.strike_signals.history import PriceHistoryStore
from src.strike_signals.models import TrendState


class TrendAnalyzer:
    """Derive a TrendState for a market from its price history."""

    def __init__(self, store: PriceHistoryStore, config: Optional[TrendConfig] = None):
        self.store = store
        self.config = config or TrendConfig()

    def evaluate(
        self, market_id: str, strike_price: Optional[float], now: Optional[float] = None
    ) -> TrendState:
        """Evaluate the trend of ``market_id`` against ``strike_price``.

        Returns an UNKNOWN state (consistency 0) with fewer than
        ``min_samples`` samples or without a strike; UNKNOWN never blocks
        scoring, it only disables trend gating.
        """
        prices = self.store.prices(market_id, now)
        threshold = self.config.consistency_threshold

        if len(prices) < self.config.min_samples or strike_price is None:
            return TrendState(sample_count=len(prices), threshold=threshold)

        arr = np.asarray(prices, dtype=float)
        recent_mean = float(np.mean(arr[-self.config.recent_window:]))

        if recent_mean > strike_price:
            direction = TrendDirection.UP
            on_side = int(np.count_nonzero(arr > strike_price))
        else:
            direction = TrendDirection.DOWN
            on_side = int(np.count_nonzero(arr < strike_price))

        oldest = prices[0]
        strength = (recent_mean - oldest) / oldest * 100.0 if oldest else 0.0

        return TrendState(
            direction=direction,
            strength=strength,
            consistency=on_side / len(prices),
            sample_count=len(prices),
            threshold=threshold,
        )
