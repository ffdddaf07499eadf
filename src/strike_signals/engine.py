"""Scanner engine: one tick of the market scan loop.

A tick has two phases. First every feed request runs concurrently:
active markets, then one price (plus candles in technical mode) per
symbol, each bounded by ``fetch_timeout``. Then markets are evaluated
one at a time against that snapshot, so price history, trend and locks
are only ever mutated sequentially and no scoring code awaits.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Optional, TypeVar

from src.logging_config import (
    PerformanceTimer,
    ScanContext,
    generate_tick_id,
    log_performance,
)
from src.strike_signals.channel import SignalChannel
from src.strike_signals.config import (
    ScanMode,
    ScannerConfig,
    SignalAction,
    Strategy,
    urgency_for,
)
from src.strike_signals.history import PriceHistoryStore
from src.strike_signals.indicators import IndicatorSnapshot, compute_all
from src.strike_signals.lock import SignalLockManager
from src.strike_signals.models import (
    Candle,
    GapAnalysis,
    Market,
    Signal,
    TrendState,
    VolumeAnalysis,
)
from src.strike_signals.scheduler import (
    AsyncioScheduler,
    Clock,
    ScheduledJob,
    Scheduler,
    SystemClock,
)
from src.strike_signals.scoring import (
    MispricingScorer,
    ScoringEngine,
    TerminalGapScorer,
    analyze_gap,
    analyze_volume,
    build_reason,
)
from src.strike_signals.strategy import StrategySelector
from src.strike_signals.trend import TrendAnalyzer

if TYPE_CHECKING:
    from src.market_feeds.base import MarketFeed, PriceFeed

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SymbolSnapshot:
    """Everything fetched for one symbol during a tick."""
    symbol: str
    price: Optional[float]
    candles: dict[str, list[Candle]] = field(default_factory=dict)


@dataclass(frozen=True)
class Decision:
    """A scored call before lock and cooldown are applied."""
    action: SignalAction
    confidence: int
    source: str
    indicators: Optional[IndicatorSnapshot] = None
    volume: Optional[VolumeAnalysis] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    detail: str = ""


class ScannerEngine:
    """Owns all per-market scan state and produces Signals.

    Construct one per process. Collaborators (feeds, clock, scheduler,
    output channel) are injected so the whole loop can be driven from
    tests without network or real time.

    Example:
        engine = ScannerEngine(GammaMarketFeed(), BinancePriceFeed())
        queue = engine.channel.subscribe()
        await engine.start()
        signal = await queue.get()
        await engine.stop()
    """

    def __init__(
        self,
        market_feed: "MarketFeed",
        price_feed: "PriceFeed",
        config: Optional[ScannerConfig] = None,
        clock: Optional[Clock] = None,
        scheduler: Optional[Scheduler] = None,
        channel: Optional[SignalChannel] = None,
    ):
        self.config = config or ScannerConfig()
        self.market_feed = market_feed
        self.price_feed = price_feed
        self.clock = clock or SystemClock()
        self.scheduler = scheduler or AsyncioScheduler()
        self.channel = channel or SignalChannel()

        self.history = PriceHistoryStore(self.config.history)
        self.trend = TrendAnalyzer(self.history, self.config.trend)
        self.strategies = StrategySelector()
        self.scorer = ScoringEngine(self.config.scoring)
        self.terminal = TerminalGapScorer(self.config.terminal)
        self.mispricing = MispricingScorer(self.config.mispricing)
        self.locks = SignalLockManager(self.config.lock)

        self.markets: dict[str, Market] = {}
        self.tick_count = 0
        self._job: Optional[ScheduledJob] = None

    # ── Lifecycle ──────────────────────────────────────────────────────

    async def start(self) -> None:
        if self._job is None:
            self._job = self.scheduler.every_tick(self.config.scan_interval, self.run_tick)
        await self.scheduler.start()
        logger.info(
            "Scanner started (mode=%s, interval=%.0fs, horizon=%.0fs)",
            self.config.mode.value, self.config.scan_interval, self.config.horizon_seconds,
        )

    async def stop(self) -> None:
        await self.scheduler.stop()
        logger.info("Scanner stopped after %d tick(s)", self.tick_count)

    # ── Tick ───────────────────────────────────────────────────────────

    @log_performance()
    async def run_tick(self) -> list[Signal]:
        """Run exactly one scan tick. Returns the signals it published."""
        with ScanContext(tick_id=generate_tick_id()):
            self.tick_count += 1

            fetched = await self._bounded(self.market_feed.active_markets(), None, "active markets")
            if fetched is None:
                return []

            now = self.clock.now()
            listed = self._sync_markets(fetched, now)

            candidates = [
                m for m in self.markets.values()
                if m.id in listed and self._in_window(m, now)
            ]
            if not candidates:
                logger.debug("No markets inside the %.0fs horizon", self.config.horizon_seconds)
                return []

            symbols = sorted({m.symbol for m in candidates})
            with PerformanceTimer(f"fetch {len(symbols)} symbol(s)"):
                snapshots = await asyncio.gather(*(self._fetch_symbol(s) for s in symbols))
            by_symbol = {snap.symbol: snap for snap in snapshots}

            signals = []
            for market in candidates:
                snapshot = by_symbol[market.symbol]
                if snapshot.price is None:
                    continue
                with ScanContext(market_id=market.id):
                    try:
                        signal = self.evaluate_market(market, snapshot, now)
                    except Exception as e:
                        logger.warning("Evaluation failed for %s: %s", market.id, e, exc_info=True)
                        continue
                if signal is not None:
                    signals.append(signal)

            logger.debug(
                "Tick scanned %d market(s), emitted %d signal(s)",
                len(candidates), len(signals),
                extra={"market_count": len(candidates)},
            )
            return signals

    def _sync_markets(self, fetched: list[Market], now: float) -> set[str]:
        """Merge the feed's market set and return the ids it listed.

        A market missing from a listing is not evaluated that tick but
        keeps its lock and history until its end time passes.
        """
        active_ids: set[str] = set()
        for market in fetched:
            active_ids.add(market.id)
            known = self.markets.get(market.id)
            if known is None:
                self.markets[market.id] = market
                logger.debug("Tracking %s (%s)", market.id, market.slug or market.symbol)
            else:
                known.refresh(market)

        for market_id in list(self.markets):
            if self.markets[market_id].time_remaining(now) <= 0:
                self.forget(market_id)
        return active_ids

    def forget(self, market_id: str) -> None:
        """Drop a market along with its price history and lock."""
        self.markets.pop(market_id, None)
        self.history.clear(market_id)
        self.locks.release(market_id)

    def _in_window(self, market: Market, now: float) -> bool:
        remaining = market.time_remaining(now)
        if remaining <= 0 or remaining > self.config.horizon_seconds:
            return False
        if self.config.mode == ScanMode.GAP and not market.strike_price:
            return False
        return True

    # ── Fetching ───────────────────────────────────────────────────────

    async def _bounded(self, aw: Awaitable[T], default: T, what: str) -> T:
        """Await a feed call under ``fetch_timeout``; failures give ``default``."""
        try:
            return await asyncio.wait_for(aw, timeout=self.config.fetch_timeout)
        except asyncio.TimeoutError:
            logger.debug("Timed out fetching %s", what)
        except Exception as e:
            logger.warning("Feed error fetching %s: %s", what, e)
        return default

    async def _fetch_symbol(self, symbol: str) -> SymbolSnapshot:
        price = await self._bounded(self.price_feed.get_price(symbol), None, f"{symbol} price")
        if price is None or self.config.mode != ScanMode.TECHNICAL:
            return SymbolSnapshot(symbol=symbol, price=price)

        intervals = list(self.config.candle_limits.items())
        results = await asyncio.gather(*(
            self._bounded(
                self.price_feed.get_candles(symbol, interval, limit), [], f"{symbol} {interval} candles"
            )
            for interval, limit in intervals
        ))
        candles = {interval: list(rows) for (interval, _), rows in zip(intervals, results)}
        return SymbolSnapshot(symbol=symbol, price=price, candles=candles)

    # ── Evaluation ─────────────────────────────────────────────────────

    def evaluate_market(
        self, market: Market, snapshot: SymbolSnapshot, now: float
    ) -> Optional[Signal]:
        """Evaluate one market against a fetched snapshot.

        Records the price, applies the trend gate, scores, then passes
        the call through the signal lock. Returns the published Signal,
        or None when the market abstains or the call is suppressed.
        """
        price = snapshot.price
        if price is None:
            return None

        remaining = market.time_remaining(now)
        self.history.record(market.id, price, now)

        trend = self.trend.evaluate(market.id, market.strike_price, now)
        if self._gated(trend, remaining):
            logger.debug(
                "Abstaining on %s: trend %s consistency %.2f with %.0fs left",
                market.id, trend.direction.value, trend.consistency, remaining,
            )
            return None

        strategy = self.strategies.select(remaining)
        gap = analyze_gap(price, market.strike_price)

        decision = self._decide(market, snapshot, remaining, gap, strategy)
        if decision is None:
            return None

        if not self.locks.try_emit(market.id, decision.action, decision.confidence, now):
            return None

        reason = build_reason(
            market.coin, price, market.strike_price, gap, strategy, remaining,
            decision.indicators, decision.volume,
        )
        if decision.detail:
            reason = f"{reason}; {decision.detail}"

        signal = Signal(
            market_id=market.id,
            action=decision.action,
            confidence=decision.confidence,
            urgency=urgency_for(remaining),
            gap_percent=gap.percentage,
            time_remaining_seconds=int(remaining),
            generated_at=now,
            reason=reason,
            strategy=strategy.name,
            current_price=price,
            strike_price=market.strike_price,
            coin=market.coin,
            metadata={
                "source": decision.source,
                "trend": trend.to_dict(),
                "slug": market.slug,
                "url": market.url,
                **decision.metadata,
            },
        )
        delivered = self.channel.publish(signal)
        logger.info(
            "%s %s %d%% (%s, %ds left, %d subscriber(s))",
            market.coin, signal.action.value, signal.confidence, strategy.name,
            signal.time_remaining_seconds, delivered,
            extra={"signal": signal.to_dict()},
        )
        return signal

    def _gated(self, trend: TrendState, remaining: float) -> bool:
        return (
            trend.is_known
            and not trend.consistent
            and remaining > self.config.trend_gate_seconds
        )

    def _decide(
        self,
        market: Market,
        snapshot: SymbolSnapshot,
        remaining: float,
        gap: GapAnalysis,
        strategy: Strategy,
    ) -> Optional[Decision]:
        if strategy.name == "final" and market.strike_price:
            call = self.terminal.evaluate(remaining, gap.percentage)
            if call is not None:
                return Decision(
                    action=call.action,
                    confidence=call.confidence,
                    source="terminal",
                    metadata={"terminal_tier": call.max_seconds},
                )

        if market.strike_price:
            odds = self.mispricing.evaluate(gap.percentage, market.yes_price)
            if odds is not None:
                return Decision(
                    action=odds.action,
                    confidence=odds.confidence,
                    source="mispricing",
                    metadata={"odds": odds.to_dict()},
                    detail=(
                        f"market prices YES at {odds.market_yes:.1f}% vs "
                        f"{odds.spot_yes:.1f}% implied by spot"
                    ),
                )

        if self.config.mode == ScanMode.GAP:
            return None

        candles_1m = snapshot.candles.get("1m") or []
        if not candles_1m:
            logger.debug("No 1m candles for %s, skipping", market.symbol)
            return None

        indicators = compute_all(
            candles_1m,
            snapshot.candles.get("5m") or [],
            snapshot.candles.get("15m") or [],
        )
        volume = analyze_volume(candles_1m, self.config.scoring)
        result = self.scorer.score(indicators, gap, volume, strategy)
        return Decision(
            action=result.prediction,
            confidence=result.confidence,
            source=result.override or "technical",
            indicators=indicators,
            volume=volume,
            metadata={"score": result.to_dict()},
        )

    # ── Introspection ──────────────────────────────────────────────────

    def status(self) -> dict:
        now = self.clock.now()
        return {
            "mode": self.config.mode.value,
            "ticks": self.tick_count,
            "tracked_markets": len(self.markets),
            "in_window": sum(1 for m in self.markets.values() if self._in_window(m, now)),
            "locks": {mid: lock.direction.value for mid, lock in self.locks.active.items()},
            "published": self.channel.published_count,
        }
