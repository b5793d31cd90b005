from typing import Optional

from config import settings
from models import ArbitrageOpportunity, Market
from services.polymarket import PolymarketClient, polymarket_client
from utils.logger import get_logger

logger = get_logger("arbitrage")


class ArbitrageScanner:
    """
    Single-market arbitrage

    Buying YES + NO on the same binary market pays out exactly $1.00, so
    any pair priced below $1.00 is a locked-in profit (before fees).

    Example:
    - YES price: $0.48
    - NO price: $0.48
    - Total cost: $0.96
    - Payout: $1.00
    - Profit: $0.04 per $0.96 staked (4.17%)

    The default threshold of 0.99 leaves room for ~1% trading fees.
    """

    def __init__(self, threshold: Optional[float] = None):
        self.threshold = threshold if threshold is not None else settings.ARBITRAGE_THRESHOLD

    def check_market(self, market: Market) -> Optional[ArbitrageOpportunity]:
        # Skip if not a binary market
        if len(market.outcome_prices) != 2:
            return None

        # Skip closed markets
        if market.closed or not market.active:
            return None

        yes_price = market.yes_price
        no_price = market.no_price

        # Unpriced sides can't be bought
        if yes_price <= 0 or no_price <= 0:
            return None

        if yes_price + no_price >= self.threshold:
            return None

        return ArbitrageOpportunity.from_market(market, yes_price, no_price)

    def scan(self, markets: list[Market]) -> list[ArbitrageOpportunity]:
        """Return every mispriced market, best profit percentage first"""
        opportunities = [opp for opp in (self.check_market(m) for m in markets) if opp]
        opportunities.sort(key=lambda o: o.profit_percent, reverse=True)
        return opportunities


async def scan_arbitrage(
    threshold: Optional[float] = None,
    max_markets: Optional[int] = None,
    client: Optional[PolymarketClient] = None,
) -> list[ArbitrageOpportunity]:
    """Fetch active markets and report those priced below the threshold"""
    client = client or polymarket_client
    scanner = ArbitrageScanner(threshold)

    markets = await client.get_active_markets(max_markets or settings.MAX_ACTIVE_MARKETS)
    opportunities = scanner.scan(markets)

    logger.info(
        "Arbitrage scan complete",
        markets_scanned=len(markets),
        opportunities=len(opportunities),
        threshold=scanner.threshold,
    )
    return opportunities
