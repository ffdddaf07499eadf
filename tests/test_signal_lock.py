"""Tests for the per-market signal lock and cooldown."""

from __future__ import annotations

import unittest

from src.strike_signals.config import LockConfig, SignalAction
from src.strike_signals.lock import SignalLockManager

T0 = 1_700_000_000.0


class TestSignalLock(unittest.TestCase):

    def setUp(self):
        self.locks = SignalLockManager(LockConfig(cooldown_seconds=60.0))

    def test_first_call_locks(self):
        self.assertTrue(self.locks.try_emit("m1", SignalAction.YES, 95, now=T0))
        lock = self.locks.get("m1")
        self.assertEqual(lock.direction, SignalAction.YES)
        self.assertEqual(lock.locked_at, T0)
        self.assertEqual(lock.confidence, 95)
        self.assertTrue(self.locks.is_locked("m1"))

    def test_opposite_direction_never_emits(self):
        self.locks.try_emit("m1", SignalAction.YES, 80, now=T0)
        for offset in (1, 61, 600, 3600):
            self.assertFalse(self.locks.try_emit("m1", SignalAction.NO, 99, now=T0 + offset))
        lock = self.locks.get("m1")
        self.assertEqual(lock.direction, SignalAction.YES)
        self.assertEqual(lock.confidence, 80)
        self.assertEqual(lock.locked_at, T0)
        self.assertEqual(lock.suppressed, 4)

    def test_cooldown_drops_repeat(self):
        self.assertTrue(self.locks.try_emit("m1", SignalAction.NO, 90, now=T0))
        self.assertFalse(self.locks.try_emit("m1", SignalAction.NO, 90, now=T0 + 30))
        self.assertFalse(self.locks.try_emit("m1", SignalAction.NO, 90, now=T0 + 59.9))

    def test_emits_again_after_cooldown(self):
        self.locks.try_emit("m1", SignalAction.NO, 90, now=T0)
        self.assertTrue(self.locks.try_emit("m1", SignalAction.NO, 90, now=T0 + 60))
        self.assertFalse(self.locks.try_emit("m1", SignalAction.NO, 90, now=T0 + 90))
        self.assertTrue(self.locks.try_emit("m1", SignalAction.NO, 90, now=T0 + 121))

    def test_exactly_one_signal_within_cooldown(self):
        emitted = [
            self.locks.try_emit("m1", SignalAction.YES, 90, now=T0 + t)
            for t in (0, 10, 20, 30, 40, 50)
        ]
        self.assertEqual(emitted.count(True), 1)

    def test_markets_independent(self):
        self.assertTrue(self.locks.try_emit("m1", SignalAction.YES, 90, now=T0))
        self.assertTrue(self.locks.try_emit("m2", SignalAction.NO, 90, now=T0))
        self.assertEqual(len(self.locks), 2)

    def test_release_allows_new_direction(self):
        self.locks.try_emit("m1", SignalAction.YES, 90, now=T0)
        self.assertTrue(self.locks.release("m1"))
        self.assertFalse(self.locks.release("m1"))
        self.assertTrue(self.locks.try_emit("m1", SignalAction.NO, 90, now=T0 + 1))

    def test_prune(self):
        for mid in ("a", "b", "c"):
            self.locks.try_emit(mid, SignalAction.YES, 90, now=T0)
        released = self.locks.prune(["b"])
        self.assertEqual(sorted(released), ["a", "c"])
        self.assertEqual(list(self.locks.active), ["b"])
