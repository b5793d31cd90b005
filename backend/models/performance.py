from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, computed_field

from models.types import Outcome, ZERO


class Position(BaseModel):
    """A wallet's net holding in one outcome token of one market"""

    model_config = ConfigDict(frozen=True)

    wallet_address: str
    market_id: str
    outcome: Outcome
    question: str = ""
    trade_count: int = 0
    bought_quantity: Decimal = ZERO
    sold_quantity: Decimal = ZERO
    buy_cost: Decimal = ZERO
    sell_proceeds: Decimal = ZERO
    resolved: bool = False
    resolution: Outcome = Outcome.UNRESOLVED
    payout: Decimal = ZERO  # $1 per held winning share at resolution
    profit: Decimal = ZERO

    @property
    def net_quantity(self) -> Decimal:
        return self.bought_quantity - self.sold_quantity

    @property
    def cost_basis(self) -> Decimal:
        """Buy cost net of sell proceeds; negative when sells outearned buys."""
        return self.buy_cost - self.sell_proceeds

    @property
    def is_win(self) -> bool:
        # Zero-profit positions count as losses
        return self.resolved and self.profit > 0


class WalletPerformance(BaseModel):
    """Aggregate profitability of one wallet over its resolved positions"""

    model_config = ConfigDict(frozen=True)

    wallet_address: str
    display_name: Optional[str] = None
    total_trades: int = 0
    unique_markets: int = 0
    resolved_positions: int = 0
    wins: int = 0
    losses: int = 0
    total_invested: Decimal = ZERO
    total_payout: Decimal = ZERO
    net_profit: Decimal = ZERO
    roi: Decimal = ZERO  # percent; 0 when nothing was invested
    avg_profit_per_win: Decimal = ZERO
    avg_loss_per_loss: Decimal = ZERO  # <= 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def win_rate(self) -> float:
        """Percentage of resolved positions that were wins."""
        if self.resolved_positions <= 0:
            return 0.0
        return self.wins / self.resolved_positions * 100.0

    @property
    def has_invested_capital(self) -> bool:
        return self.total_invested > 0


class FlagType(str, Enum):
    HIGHLY_SUSPICIOUS_WIN_RATE = "highly_suspicious_win_rate"
    SUSPICIOUS_WIN_RATE = "suspicious_win_rate"
    HIGH_ROI_AT_SCALE = "high_roi_at_scale"
    CONSISTENT_PERFORMANCE = "consistent_performance"
    ASYMMETRIC_PAYOFF = "asymmetric_payoff"


class Severity(str, Enum):
    MEDIUM = "medium"
    HIGH = "high"


class RedFlag(BaseModel):
    """A self-describing signal of anomalous performance"""

    model_config = ConfigDict(frozen=True)

    tag: FlagType
    severity: Severity
    description: str
    evidence: dict[str, Any] = {}


class WalletReport(BaseModel):
    """A wallet's performance together with its red flags"""

    model_config = ConfigDict(frozen=True)

    performance: WalletPerformance
    flags: tuple[RedFlag, ...] = ()

    @property
    def wallet_address(self) -> str:
        return self.performance.wallet_address

    @property
    def is_suspicious(self) -> bool:
        return bool(self.flags)
