"""CLI entry point: python main.py --mode gap --coins btc eth"""

import argparse
import asyncio
import logging

from src.logging_config import LogFormat, configure_logging
from src.market_feeds import BinancePriceFeed, GammaMarketFeed
from src.settings import get_settings
from src.strike_signals import ScanMode, ScannerEngine, Signal

logger = logging.getLogger("strike_signals.main")


def format_signal(signal: Signal) -> str:
    return (
        f"[{signal.urgency.value.upper():8s}] {signal.coin} {signal.action.value} "
        f"{signal.confidence}% | {signal.gap_percent:+.3f}% | "
        f"{signal.time_remaining_seconds}s left | {signal.reason}"
    )


async def consume(engine: ScannerEngine) -> None:
    queue = engine.channel.subscribe()
    try:
        while True:
            signal = await queue.get()
            print(format_signal(signal), flush=True)
    finally:
        engine.channel.unsubscribe(queue)


async def run(args: argparse.Namespace) -> None:
    overrides = {}
    if args.mode:
        overrides["mode"] = ScanMode(args.mode)
    if args.interval:
        overrides["scan_interval"] = args.interval
    if args.coins:
        overrides["coins"] = args.coins
    settings = get_settings().model_copy(update=overrides)

    market_feed = GammaMarketFeed(settings.to_gamma_config())
    price_feed = BinancePriceFeed(settings.to_binance_config())
    engine = ScannerEngine(market_feed, price_feed, config=settings.to_scanner_config())

    try:
        if args.once:
            for signal in await engine.run_tick():
                print(format_signal(signal))
            print(f"\nTracked markets: {len(engine.markets)}")
            return

        consumer = asyncio.create_task(consume(engine))
        await engine.start()
        try:
            await asyncio.Event().wait()
        finally:
            await engine.stop()
            consumer.cancel()
            await asyncio.gather(consumer, return_exceptions=True)
    finally:
        await market_feed.close()
        await price_feed.close()


def main():
    parser = argparse.ArgumentParser(
        description="Strike Signals - short-window crypto prediction market scanner"
    )
    parser.add_argument(
        "--mode", choices=[m.value for m in ScanMode], default=None,
        help="Scan mode (default: technical, or STRIKE_MODE)"
    )
    parser.add_argument(
        "--interval", type=float, default=None,
        help="Seconds between scan ticks (default: 10)"
    )
    parser.add_argument(
        "--coins", nargs="+", default=None,
        help="Coins to scan, e.g. btc eth sol"
    )
    parser.add_argument(
        "--once", action="store_true",
        help="Run a single tick, print its signals and exit"
    )
    parser.add_argument(
        "--console", action="store_true",
        help="Human-readable console logs instead of JSON"
    )
    args = parser.parse_args()

    log_config = get_settings().to_logging_config()
    if args.console:
        log_config.format = LogFormat.CONSOLE
    configure_logging(log_config)

    print("=" * 60)
    print("STRIKE SIGNALS - PREDICTION MARKET SCANNER")
    print("=" * 60)

    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")


if __name__ == "__main__":
    main()
