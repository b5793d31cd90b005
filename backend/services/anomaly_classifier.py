"""
Rule-based anomaly classification for wallet performance.

Each rule is a pure function of a WalletPerformance returning a RedFlag or
None. ``classify`` runs every rule in RULES order; flags may co-occur.
Thresholds reflect what a skilled but uninformed trader rarely exceeds:
sustained win rates above ~60% are uncommon on binary markets.
"""

from decimal import Decimal
from typing import Callable, Optional

from models import FlagType, RedFlag, Severity, WalletPerformance
from utils.logger import get_logger

logger = get_logger("anomaly")

MIN_POSITIONS_FOR_WIN_RATE = 10
HIGHLY_SUSPICIOUS_WIN_RATE = 75.0
SUSPICIOUS_WIN_RATE = 65.0

HIGH_ROI_PERCENT = Decimal("50")
HIGH_ROI_MIN_INVESTED = Decimal("1000")

CONSISTENT_WIN_RATE = 70.0
CONSISTENT_MIN_WINS = 15

ASYMMETRY_RATIO = Decimal("2")

Rule = Callable[[WalletPerformance], Optional[RedFlag]]


def win_rate_rule(performance: WalletPerformance) -> Optional[RedFlag]:
    if performance.resolved_positions < MIN_POSITIONS_FOR_WIN_RATE:
        return None

    win_rate = performance.win_rate
    evidence = {
        "win_rate": round(win_rate, 2),
        "wins": performance.wins,
        "resolved_positions": performance.resolved_positions,
    }
    if win_rate > HIGHLY_SUSPICIOUS_WIN_RATE:
        return RedFlag(
            tag=FlagType.HIGHLY_SUSPICIOUS_WIN_RATE,
            severity=Severity.HIGH,
            description=f"Extremely high win rate: {win_rate:.1f}% (normal is ~50-60%)",
            evidence=evidence,
        )
    if win_rate > SUSPICIOUS_WIN_RATE:
        return RedFlag(
            tag=FlagType.SUSPICIOUS_WIN_RATE,
            severity=Severity.MEDIUM,
            description=f"Suspicious win rate: {win_rate:.1f}% (normal is ~50-60%)",
            evidence=evidence,
        )
    return None


def high_roi_at_scale_rule(performance: WalletPerformance) -> Optional[RedFlag]:
    if performance.roi > HIGH_ROI_PERCENT and performance.total_invested > HIGH_ROI_MIN_INVESTED:
        return RedFlag(
            tag=FlagType.HIGH_ROI_AT_SCALE,
            severity=Severity.HIGH,
            description=(
                f"Very high ROI: {performance.roi:.1f}% "
                f"with ${performance.total_invested:,.2f} invested"
            ),
            evidence={
                "roi": float(performance.roi),
                "total_invested": float(performance.total_invested),
            },
        )
    return None


def consistency_rule(performance: WalletPerformance) -> Optional[RedFlag]:
    if performance.win_rate > CONSISTENT_WIN_RATE and performance.wins >= CONSISTENT_MIN_WINS:
        return RedFlag(
            tag=FlagType.CONSISTENT_PERFORMANCE,
            severity=Severity.MEDIUM,
            description=(
                f"Consistent high performance: {performance.wins} wins out of "
                f"{performance.resolved_positions} resolved positions"
            ),
            evidence={
                "wins": performance.wins,
                "resolved_positions": performance.resolved_positions,
                "win_rate": round(performance.win_rate, 2),
            },
        )
    return None


def asymmetry_rule(performance: WalletPerformance) -> Optional[RedFlag]:
    avg_win = performance.avg_profit_per_win
    avg_loss = performance.avg_loss_per_loss
    if avg_win == 0 or avg_loss == 0:
        return None

    if avg_win > ASYMMETRY_RATIO * abs(avg_loss):
        return RedFlag(
            tag=FlagType.ASYMMETRIC_PAYOFF,
            severity=Severity.MEDIUM,
            description=(
                f"Asymmetric profit pattern: avg win ${avg_win:,.2f} "
                f"vs avg loss ${avg_loss:,.2f}"
            ),
            evidence={
                "avg_profit_per_win": float(avg_win),
                "avg_loss_per_loss": float(avg_loss),
                "ratio": float(avg_win / abs(avg_loss)),
            },
        )
    return None


RULES: tuple[Rule, ...] = (
    win_rate_rule,
    high_roi_at_scale_rule,
    consistency_rule,
    asymmetry_rule,
)


def classify(performance: WalletPerformance, rules: tuple[Rule, ...] = RULES) -> list[RedFlag]:
    """Evaluate every rule against a wallet's performance, in order"""
    flags = [flag for flag in (rule(performance) for rule in rules) if flag is not None]
    if flags:
        logger.debug(
            "Wallet flagged",
            wallet=performance.wallet_address,
            flags=[flag.tag.value for flag in flags],
        )
    return flags
