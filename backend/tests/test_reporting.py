import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import io
from decimal import Decimal

import pytest
from rich.console import Console

from models import ArbitrageOpportunity, FlagType, RedFlag, Severity, WalletPerformance, WalletReport
from services.reporting import (
    render_arbitrage,
    render_insufficient_data,
    render_iteration,
    render_scan_summary,
    render_wallet_report,
)
from services.wallet_discovery import IterationResult, ScanState

WALLET = "0x" + "9f" * 20


@pytest.fixture
def out():
    return Console(file=io.StringIO(), width=200, color_system=None)


def _text(console: Console) -> str:
    return console.file.getvalue()


def _flagged_report() -> WalletReport:
    perf = WalletPerformance(
        wallet_address=WALLET,
        display_name="[bot] whale",
        total_trades=120,
        unique_markets=40,
        resolved_positions=45,
        wins=37,
        losses=8,
        total_invested=Decimal("12000"),
        total_payout=Decimal("20400"),
        net_profit=Decimal("8400"),
        roi=Decimal("70"),
    )
    flag = RedFlag(
        tag=FlagType.HIGHLY_SUSPICIOUS_WIN_RATE,
        severity=Severity.HIGH,
        description="Extremely high win rate: 82.2% (normal is ~50-60%)",
    )
    return WalletReport(performance=perf, flags=(flag,))


def test_wallet_report_lists_metrics_and_flags(out):
    render_wallet_report(_flagged_report(), out)
    text = _text(out)

    assert WALLET in text
    assert "[bot] whale" in text
    assert "82.2%" in text
    assert "$8,400.00" in text
    assert "70.0%" in text
    assert "Extremely high win rate" in text


def test_clean_wallet_report(out):
    render_wallet_report(WalletReport(performance=WalletPerformance(wallet_address=WALLET)), out)
    assert "No suspicious patterns detected." in _text(out)


def test_insufficient_data_names_the_address(out):
    render_insufficient_data(WALLET, out)
    assert f"Insufficient data for {WALLET}" in _text(out)


def test_iteration_and_summary(out):
    result = IterationResult(
        iteration=2, dispatched=[WALLET, "0x" + "1" * 40], accepted=[_flagged_report()], analyzed=1, skipped=1
    )
    state = ScanState()
    state.merge(result)

    render_iteration(result, out)
    render_scan_summary(state, out)
    text = _text(out)

    assert "Scan #2" in text
    assert "dispatched 2, analyzed 1, skipped 1, accepted 1" in text
    assert "1 scans, 1 wallets analyzed, 1 skipped, 1 profitable" in text
    assert "1 wallet(s) with suspicious activity" in text


def test_empty_results(out):
    render_scan_summary(ScanState(), out)
    render_arbitrage([], out)
    text = _text(out)

    assert "no profitable wallets found" in text
    assert "No arbitrage opportunities found." in text


def test_arbitrage_table(out):
    opp = ArbitrageOpportunity(
        condition_id="0xa11ce",
        question="Will it rain in Seattle tomorrow?",
        yes_price=0.48,
        no_price=0.47,
        total_cost=0.95,
        profit_per_dollar=0.05,
        profit_percent=5.263,
        volume=1200.0,
        liquidity=800.25,
    )

    render_arbitrage([opp], out)
    text = _text(out)

    assert "Arbitrage Opportunities (1)" in text
    assert "Will it rain in Seattle tomorrow?" in text
    assert "5.3%" in text
    assert "$800.25" in text
