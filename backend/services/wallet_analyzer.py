import asyncio
from typing import Optional

from models import Trade, WalletReport
from services.anomaly_classifier import classify
from services.market_cache import MarketCache
from services.performance import summarize
from services.polymarket import PolymarketClient, polymarket_client
from services.position_reconciler import MarketLookup, reconcile
from utils.logger import get_logger
from utils.validation import validate_eth_address

logger = get_logger("wallet_analyzer")


class InsufficientDataError(Exception):
    """A wallet has no resolved positions to score."""

    def __init__(self, address: str):
        super().__init__(f"Insufficient data: {address} has no resolved positions")
        self.address = address


def display_name_from_trades(trades: list[Trade]) -> Optional[str]:
    return next((t.trader_name for t in trades if t.trader_name), None)


def build_report(
    address: str,
    trades: list[Trade],
    market_cache: MarketLookup,
    display_name: Optional[str] = None,
) -> WalletReport:
    """Reconcile, summarize and classify one wallet's trades"""
    positions = reconcile(trades, market_cache)
    performance = summarize(positions, wallet_address=address, display_name=display_name)
    return WalletReport(performance=performance, flags=tuple(classify(performance)))


async def evaluate_wallet(
    address: str,
    client: PolymarketClient,
    market_cache: MarketLookup,
) -> WalletReport:
    """Fetch a wallet's trades and score them against the resolved-market cache.

    Transport failures propagate to the caller.
    """
    trades = await client.get_wallet_trades(address)

    # Reconciliation is CPU-bound for busy wallets; keep the event loop free.
    return await asyncio.to_thread(
        build_report,
        address,
        trades,
        market_cache,
        display_name_from_trades(trades),
    )


async def analyze_wallet(
    address: str,
    client: Optional[PolymarketClient] = None,
    market_cache: Optional[MarketCache] = None,
) -> WalletReport:
    """Produce a performance report with red flags for a single wallet.

    Raises ValueError for a malformed address, MarketCacheEmptyError when no
    resolved markets load, and InsufficientDataError when none of the
    wallet's positions have resolved.
    """
    address = validate_eth_address(address)
    client = client or polymarket_client
    if market_cache is None:
        market_cache = MarketCache(client)
    await market_cache.load()

    logger.info("Analyzing wallet", address=address, cached_markets=len(market_cache))
    report = await evaluate_wallet(address, client, market_cache)

    if report.performance.resolved_positions == 0:
        raise InsufficientDataError(address)

    logger.info(
        "Wallet analysis complete",
        address=address,
        resolved_positions=report.performance.resolved_positions,
        roi=float(report.performance.roi),
        flags=len(report.flags),
    )
    return report
