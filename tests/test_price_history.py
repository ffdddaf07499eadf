"""Tests for the rolling per-market price history."""

from __future__ import annotations

import unittest

from src.strike_signals.config import HistoryConfig
from src.strike_signals.history import PriceHistoryStore
from src.strike_signals.models import PricePoint


class TestPriceHistoryStore(unittest.TestCase):

    def setUp(self):
        self.store = PriceHistoryStore(HistoryConfig(retention_seconds=300.0, max_samples=60))

    def test_record_returns_point(self):
        point = self.store.record("m1", 100.0, now=1000.0)
        self.assertEqual(point, PricePoint(price=100.0, timestamp=1000.0))
        self.assertEqual(self.store.history("m1"), (point,))

    def test_oldest_first(self):
        for i in range(5):
            self.store.record("m1", 100.0 + i, now=1000.0 + i)
        self.assertEqual(self.store.prices("m1"), [100.0, 101.0, 102.0, 103.0, 104.0])

    def test_age_eviction(self):
        self.store.record("m1", 1.0, now=0.0)
        self.store.record("m1", 2.0, now=200.0)
        self.store.record("m1", 3.0, now=301.0)
        self.assertEqual(self.store.prices("m1"), [2.0, 3.0])

    def test_sample_at_retention_boundary_kept(self):
        self.store.record("m1", 1.0, now=0.0)
        self.store.record("m1", 2.0, now=300.0)
        self.assertEqual(self.store.prices("m1"), [1.0, 2.0])

    def test_count_cap(self):
        for i in range(75):
            self.store.record("m1", float(i), now=float(i))
        prices = self.store.prices("m1")
        self.assertEqual(len(prices), 60)
        self.assertEqual(prices[0], 15.0)
        self.assertEqual(prices[-1], 74.0)

    def test_markets_independent(self):
        self.store.record("m1", 1.0, now=0.0)
        self.store.record("m2", 2.0, now=0.0)
        self.assertEqual(self.store.prices("m1"), [1.0])
        self.assertEqual(sorted(self.store.tracked()), ["m1", "m2"])
        self.assertEqual(len(self.store), 2)

    def test_clear(self):
        self.store.record("m1", 1.0, now=0.0)
        self.store.clear("m1")
        self.assertEqual(self.store.history("m1"), ())
        self.store.clear("never-seen")

    def test_unknown_market_empty(self):
        self.assertEqual(self.store.prices("nope"), [])

    def test_read_with_now_evicts_stale_samples(self):
        self.store.record("m1", 1.0, now=0.0)
        self.store.record("m1", 2.0, now=100.0)
        self.assertEqual(self.store.prices("m1", now=350.0), [2.0])
        self.assertEqual(self.store.history("m1", now=500.0), ())
        self.assertEqual(self.store.prices("m1"), [])

    def test_read_without_now_is_window_as_of_last_record(self):
        self.store.record("m1", 1.0, now=0.0)
        self.assertEqual(self.store.prices("m1"), [1.0])
        self.assertEqual(self.store.prices("nope", now=10.0), [])

    def test_history_snapshot_is_immutable(self):
        self.store.record("m1", 1.0, now=0.0)
        snapshot = self.store.history("m1")
        self.store.record("m1", 2.0, now=1.0)
        self.assertEqual(len(snapshot), 1)
