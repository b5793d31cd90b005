from .types import Outcome, Side
from .market import Market
from .trade import Trade
from .performance import (
    Position,
    WalletPerformance,
    FlagType,
    Severity,
    RedFlag,
    WalletReport,
)
from .opportunity import ArbitrageOpportunity

__all__ = [
    "Outcome",
    "Side",
    "Market",
    "Trade",
    "Position",
    "WalletPerformance",
    "FlagType",
    "Severity",
    "RedFlag",
    "WalletReport",
    "ArbitrageOpportunity",
]
