from decimal import Decimal
from typing import Iterable, Optional

from models import Position, WalletPerformance
from models.types import ZERO

HUNDRED = Decimal("100")


def compute_roi(net_profit: Decimal, total_invested: Decimal) -> Decimal:
    """Return on investment as a percentage; 0 when nothing was invested."""
    if total_invested <= 0:
        return ZERO
    return net_profit / total_invested * HUNDRED


def summarize(
    positions: Iterable[Position],
    wallet_address: str,
    display_name: Optional[str] = None,
) -> WalletPerformance:
    """Aggregate a wallet's positions into its performance summary.

    Only resolved positions contribute to wins, losses and money totals.
    A position wins when its profit is strictly positive; break-even
    positions count as losses. Trade and market counts cover every
    position, resolved or not.
    """
    positions = list(positions)

    total_trades = sum(p.trade_count for p in positions)
    unique_markets = len({p.market_id for p in positions})

    resolved = [p for p in positions if p.resolved]
    winners = [p for p in resolved if p.is_win]
    losers = [p for p in resolved if not p.is_win]

    total_invested = sum((p.buy_cost for p in resolved), ZERO)
    total_payout = sum((p.payout + p.sell_proceeds for p in resolved), ZERO)
    net_profit = total_payout - total_invested

    win_profit = sum((p.profit for p in winners), ZERO)
    loss_total = sum((p.profit for p in losers), ZERO)

    return WalletPerformance(
        wallet_address=wallet_address,
        display_name=display_name,
        total_trades=total_trades,
        unique_markets=unique_markets,
        resolved_positions=len(resolved),
        wins=len(winners),
        losses=len(losers),
        total_invested=total_invested,
        total_payout=total_payout,
        net_profit=net_profit,
        roi=compute_roi(net_profit, total_invested),
        avg_profit_per_win=win_profit / len(winners) if winners else ZERO,
        avg_loss_per_loss=loss_total / len(losers) if losers else ZERO,
    )
