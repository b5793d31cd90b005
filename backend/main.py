"""
Command-line entry point.

    python -m main analyze 0xabc...
    python -m main discover --sample-size 5000 --max-wallets 30 [--continuous]
    python -m main arbitrage --threshold 0.99
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from pydantic import ValidationError

from config import settings
from services.arbitrage_scanner import scan_arbitrage
from services.market_cache import MarketCache, MarketCacheEmptyError
from services.polymarket import PolymarketClient
from services.reporting import (
    console,
    render_arbitrage,
    render_flag_summary,
    render_insufficient_data,
    render_iteration,
    render_scan_summary,
    render_wallet_report,
    render_wallet_table,
)
from services.wallet_analyzer import InsufficientDataError, analyze_wallet
from services.wallet_discovery import WalletDiscoveryEngine
from utils.logger import setup_logging
from utils.retry import TransportError
from utils.validation import ArbitrageParams, DiscoveryParams, WalletAddressParam


def install_stop_handlers(stop_event: asyncio.Event):
    """Set ``stop_event`` on SIGINT/SIGTERM so the loop can finish its iteration"""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; Ctrl+C raises KeyboardInterrupt instead
            pass


async def cmd_analyze(params: WalletAddressParam) -> int:
    client = PolymarketClient()
    try:
        report = await analyze_wallet(params.address, client=client)
    except InsufficientDataError as e:
        render_insufficient_data(e.address)
        return 1
    except (MarketCacheEmptyError, TransportError) as e:
        console.print(f"[bold red]Analysis of {params.address} failed:[/bold red] {e}")
        return 1
    finally:
        await client.close()

    render_wallet_report(report)
    return 0


async def cmd_discover(params: DiscoveryParams) -> int:
    client = PolymarketClient()
    engine = WalletDiscoveryEngine(client=client, market_cache=MarketCache(client))
    try:
        if not params.continuous:
            result = await engine.run_scan(params.sample_size, params.max_wallets)
            console.print(
                f"\n[bold]Analyzed {result.analyzed} wallets "
                f"({result.skipped} skipped) in {result.duration_seconds:.1f}s[/bold]"
            )
            render_wallet_table(result.accepted, "Profitable wallets", console)
            render_flag_summary(result.accepted, console)
            return 0

        stop_event = asyncio.Event()
        install_stop_handlers(stop_event)
        console.print("[dim]Continuous discovery running. Press Ctrl+C to stop after the current scan.[/dim]")
        state = await engine.run_continuous(
            params.sample_size,
            params.max_wallets,
            stop_event=stop_event,
            on_iteration=render_iteration,
        )
        render_scan_summary(state)
        return 0
    except MarketCacheEmptyError as e:
        console.print(f"[bold red]Discovery failed:[/bold red] {e}")
        return 1
    finally:
        await client.close()


async def cmd_arbitrage(params: ArbitrageParams) -> int:
    client = PolymarketClient()
    try:
        opportunities = await scan_arbitrage(
            threshold=params.threshold,
            max_markets=params.max_markets,
            client=client,
        )
    except TransportError as e:
        console.print(f"[bold red]Arbitrage scan failed:[/bold red] {e}")
        return 1
    finally:
        await client.close()

    render_arbitrage(opportunities)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Polymarket wallet performance scanner")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze = subparsers.add_parser("analyze", help="Analyze a single wallet")
    analyze.add_argument("address", help="Wallet address (0x...)")

    discover = subparsers.add_parser("discover", help="Find profitable wallets from recent trades")
    discover.add_argument(
        "--sample-size",
        type=int,
        default=settings.DISCOVERY_SAMPLE_SIZE,
        help="Number of recent trades to sample",
    )
    discover.add_argument(
        "--max-wallets",
        type=int,
        default=settings.DISCOVERY_MAX_WALLETS,
        help="Most active wallets to analyze per scan",
    )
    discover.add_argument(
        "--continuous",
        action="store_true",
        help="Keep scanning until interrupted, skipping wallets already analyzed",
    )

    arbitrage = subparsers.add_parser("arbitrage", help="Scan active markets for YES+NO mispricing")
    arbitrage.add_argument(
        "--threshold",
        type=float,
        default=settings.ARBITRAGE_THRESHOLD,
        help="Flag markets whose YES+NO total is below this",
    )
    arbitrage.add_argument(
        "--max-markets",
        type=int,
        default=settings.MAX_ACTIVE_MARKETS,
        help="Maximum active markets to fetch",
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    # Validate everything before any network activity
    try:
        if args.command == "analyze":
            params = WalletAddressParam(address=args.address)
        elif args.command == "discover":
            params = DiscoveryParams(
                sample_size=args.sample_size,
                max_wallets=args.max_wallets,
                continuous=args.continuous,
            )
        else:
            params = ArbitrageParams(threshold=args.threshold, max_markets=args.max_markets)
    except ValidationError as e:
        parser.error(str(e))

    setup_logging(
        level=args.log_level or settings.LOG_LEVEL,
        json_format=settings.LOG_JSON,
        log_file=settings.LOG_FILE,
    )

    if args.command == "analyze":
        return asyncio.run(cmd_analyze(params))
    if args.command == "discover":
        return asyncio.run(cmd_discover(params))
    return asyncio.run(cmd_arbitrage(params))


if __name__ == "__main__":
    sys.exit(main())
