from typing import Iterable, Optional, Protocol

from models import Market, Position, Trade
from models.types import ONE, ZERO, Outcome, Side
from utils.logger import get_logger

logger = get_logger("reconciler")


class MarketLookup(Protocol):
    def lookup(self, market_id: str) -> Optional[Market]: ...


class _PositionTally:
    """Running totals for one (market, outcome token) group"""

    __slots__ = (
        "trade_count",
        "bought_quantity",
        "sold_quantity",
        "buy_cost",
        "sell_proceeds",
        "title",
    )

    def __init__(self):
        self.trade_count = 0
        self.bought_quantity = ZERO
        self.sold_quantity = ZERO
        self.buy_cost = ZERO
        self.sell_proceeds = ZERO
        self.title = ""

    def add(self, trade: Trade):
        self.trade_count += 1
        if trade.side == Side.BUY:
            self.bought_quantity += trade.quantity
            self.buy_cost += trade.notional
        else:
            self.sold_quantity += trade.quantity
            self.sell_proceeds += trade.notional
        if not self.title and trade.title:
            self.title = trade.title


def settle(
    wallet_address: str,
    market_id: str,
    outcome: Outcome,
    tally: _PositionTally,
    market: Optional[Market],
) -> Position:
    """Build a Position from its trade totals and the market's resolution (if any)"""
    net_quantity = tally.bought_quantity - tally.sold_quantity
    cost_basis = tally.buy_cost - tally.sell_proceeds
    question = (market.question if market else "") or tally.title

    if market is None or not market.is_resolved:
        return Position(
            wallet_address=wallet_address,
            market_id=market_id,
            outcome=outcome,
            question=question,
            trade_count=tally.trade_count,
            bought_quantity=tally.bought_quantity,
            sold_quantity=tally.sold_quantity,
            buy_cost=tally.buy_cost,
            sell_proceeds=tally.sell_proceeds,
        )

    # Winning shares redeem at $1; a flat or short book collects nothing
    payout = net_quantity * ONE if outcome == market.resolution and net_quantity > 0 else ZERO

    return Position(
        wallet_address=wallet_address,
        market_id=market_id,
        outcome=outcome,
        question=question,
        trade_count=tally.trade_count,
        bought_quantity=tally.bought_quantity,
        sold_quantity=tally.sold_quantity,
        buy_cost=tally.buy_cost,
        sell_proceeds=tally.sell_proceeds,
        resolved=True,
        resolution=market.resolution,
        payout=payout,
        profit=payout - cost_basis,
    )


def reconcile(trades: Iterable[Trade], market_cache: MarketLookup) -> list[Position]:
    """Fold a wallet's trades into one position per (market, outcome token).

    Markets missing from the cache or not yet resolved yield unresolved
    positions rather than errors.
    """
    tallies: dict[tuple[str, Outcome], _PositionTally] = {}
    wallet_address = ""

    for trade in trades:
        wallet_address = wallet_address or trade.wallet_address
        key = (trade.market_id, trade.outcome)
        tally = tallies.get(key)
        if tally is None:
            tally = tallies[key] = _PositionTally()
        tally.add(trade)

    positions: list[Position] = []
    gaps = 0
    for (market_id, outcome), tally in tallies.items():
        market = market_cache.lookup(market_id)
        if market is None:
            gaps += 1
        positions.append(settle(wallet_address, market_id, outcome, tally, market))

    if gaps:
        logger.debug(
            "Markets outside the resolved cache",
            wallet=wallet_address,
            missing_markets=gaps,
            positions=len(positions),
        )
    return positions

