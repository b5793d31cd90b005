"""Tests for the wallet discovery loop: sampling, acceptance, dedup and stopping."""

import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import asyncio
from decimal import Decimal

import pytest

from models import WalletPerformance, WalletReport
from models.types import Outcome, Side
from services.market_cache import MarketCache, MarketCacheEmptyError
from services.wallet_discovery import (
    AcceptanceCriteria,
    DiscoveryState,
    IterationResult,
    ScanState,
    WalletDiscoveryEngine,
)
from services.wallet_analyzer import build_report


def _addr(n: int) -> str:
    return f"0x{n:040x}"


def _engine(gateway, criteria=None) -> WalletDiscoveryEngine:
    return WalletDiscoveryEngine(
        client=gateway,
        market_cache=MarketCache(gateway, page_size=100),
        criteria=criteria or AcceptanceCriteria(),
    )


def _report(address: str, roi: str) -> WalletReport:
    return WalletReport(performance=WalletPerformance(wallet_address=address, roi=Decimal(roi)))


def _sample_trades(make_trade, counts: dict[str, int]):
    trades = []
    for address, count in counts.items():
        trades.extend(make_trade(address, "SAMPLE") for _ in range(count))
    return trades


@pytest.fixture
def population(make_wallet_history, make_trade):
    """Three wallets: a strong winner, a modest winner and a loser."""
    strong, modest, loser = _addr(1), _addr(2), _addr(3)
    histories = {
        strong: make_wallet_history(strong, wins=15, losses=2),
        modest: make_wallet_history(modest, wins=8, losses=4),
        loser: make_wallet_history(loser, wins=3, losses=12),
    }
    markets = [m for ms, _ in histories.values() for m in ms]
    wallet_trades = {address: trades for address, (_, trades) in histories.items()}
    recent = _sample_trades(make_trade, {loser: 9, strong: 5, modest: 5})
    return {
        "strong": strong,
        "modest": modest,
        "loser": loser,
        "markets": markets,
        "wallet_trades": wallet_trades,
        "recent": recent,
    }


# ---------------------------------------------------------------------------
# Sampling
# ---------------------------------------------------------------------------


class TestRankCandidates:
    def test_most_active_first_with_address_tiebreak(self, make_trade):
        a, b, c = _addr(0xA), _addr(0xB), _addr(0xC)
        trades = _sample_trades(make_trade, {c: 2, b: 3, a: 2})

        assert WalletDiscoveryEngine.rank_candidates(trades, max_wallets=10) == [b, a, c]

    def test_respects_max_wallets_and_exclusions(self, make_trade):
        a, b, c = _addr(0xA), _addr(0xB), _addr(0xC)
        trades = _sample_trades(make_trade, {a: 5, b: 4, c: 3})

        assert WalletDiscoveryEngine.rank_candidates(trades, max_wallets=1) == [a]
        assert WalletDiscoveryEngine.rank_candidates(trades, max_wallets=2, exclude={a}) == [b, c]


# ---------------------------------------------------------------------------
# Acceptance
# ---------------------------------------------------------------------------


class TestAcceptanceCriteria:
    def test_single_winning_trade_needs_lowered_minimum(self, make_market, make_trade, market_lookup):
        wallet = _addr(42)
        cache = market_lookup([make_market("M", Outcome.YES)])
        trades = [make_trade(wallet, "M", Side.BUY, Outcome.YES, quantity="10", price="0.30")]
        perf = build_report(wallet, trades, cache).performance

        assert float(perf.roi) == pytest.approx(233.33, rel=1e-3)
        assert not AcceptanceCriteria().accepts(perf)
        # $7 profit also sits under the default $50 floor
        lowered = AcceptanceCriteria(min_resolved_positions=1, min_net_profit=Decimal("0"))
        assert lowered.accepts(perf)

    def test_requires_invested_capital(self):
        perf = WalletPerformance(
            wallet_address=_addr(1),
            resolved_positions=12,
            wins=12,
            net_profit=Decimal("100"),
            roi=Decimal("0"),
        )
        assert not AcceptanceCriteria(min_roi_percent=Decimal("-1")).accepts(perf)

    def test_monotonic_in_thresholds(self):
        perfs = [
            WalletPerformance(
                wallet_address=_addr(i),
                resolved_positions=10 + i,
                total_invested=Decimal("1000"),
                net_profit=Decimal(40 + 15 * i),
                roi=Decimal(5 + 4 * i),
            )
            for i in range(12)
        ]

        previous = None
        for roi_floor, profit_floor in [(0, 0), (10, 50), (20, 80), (35, 120), (60, 500)]:
            criteria = AcceptanceCriteria(
                min_roi_percent=Decimal(roi_floor), min_net_profit=Decimal(profit_floor)
            )
            accepted = {p.wallet_address for p in perfs if criteria.accepts(p)}
            if previous is not None:
                assert accepted <= previous
            previous = accepted


# ---------------------------------------------------------------------------
# ScanState
# ---------------------------------------------------------------------------


class TestScanState:
    def test_merge_accumulates_and_counts(self):
        state = ScanState()
        a, b, c = _addr(1), _addr(2), _addr(3)

        state.merge(
            IterationResult(iteration=1, dispatched=[a, b, c], accepted=[_report(a, "20")], analyzed=2, skipped=1)
        )
        state.merge(IterationResult(iteration=2, dispatched=[_addr(4)], accepted=[_report(_addr(4), "90")], analyzed=1))

        assert state.counters() == {
            "scans_completed": 2,
            "wallets_analyzed": 3,
            "wallets_skipped": 1,
            "profitable_found": 2,
        }
        assert all(state.is_analyzed(x) for x in (a, b, c, _addr(4)))
        assert [r.wallet_address for r in state.sorted_reports()] == [_addr(4), a]

    def test_sorted_reports_ties_break_by_address(self):
        state = ScanState()
        state.merge(
            IterationResult(
                iteration=1,
                accepted=[_report(_addr(9), "15"), _report(_addr(3), "15"), _report(_addr(5), "40")],
            )
        )

        assert [r.wallet_address for r in state.sorted_reports()] == [_addr(5), _addr(3), _addr(9)]


# ---------------------------------------------------------------------------
# Single scan
# ---------------------------------------------------------------------------


class TestRunScan:
    @pytest.mark.asyncio
    async def test_accepts_only_profitable_wallets(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=population["markets"],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
        )
        engine = _engine(gateway)

        result = await engine.run_scan(sample_size=100, max_wallets=10)

        # strong: 17 resolved, +820 on 680 invested; modest: 12 resolved, +320 on 480
        assert [r.wallet_address for r in result.accepted] == [population["strong"], population["modest"]]
        assert result.analyzed == 3
        assert result.skipped == 0
        assert result.dispatched[0] == population["loser"]
        assert engine.state == DiscoveryState.DONE
        assert gateway.recent_requests == [100]

    @pytest.mark.asyncio
    async def test_min_resolved_gate(self, fake_gateway, make_wallet_history, make_trade):
        wallet = _addr(7)
        markets, trades = make_wallet_history(wallet, wins=9, losses=0)
        gateway = fake_gateway(
            markets=markets,
            recent_trades=[make_trade(wallet, "SAMPLE")],
            wallet_trades={wallet: trades},
        )

        result = await _engine(gateway).run_scan(sample_size=10, max_wallets=5)

        # 9 straight wins, +$540, still below the statistical minimum
        assert result.accepted == []
        assert result.analyzed == 1

    @pytest.mark.asyncio
    async def test_failed_wallet_is_skipped(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=population["markets"],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
            failing_wallets={population["strong"]},
        )

        result = await _engine(gateway).run_scan(sample_size=100, max_wallets=10)

        assert [r.wallet_address for r in result.accepted] == [population["modest"]]
        assert result.analyzed == 2
        assert result.skipped == 1

    @pytest.mark.asyncio
    async def test_unexpected_wallet_error_skips_only_that_wallet(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=population["markets"],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
        )
        original = gateway.get_wallet_trades

        async def flaky(address, limit=None):
            if address == population["modest"]:
                raise KeyError("outcomeIndex")
            return await original(address, limit)

        gateway.get_wallet_trades = flaky

        result = await _engine(gateway).run_scan(sample_size=100, max_wallets=10)

        assert [r.wallet_address for r in result.accepted] == [population["strong"]]
        assert result.analyzed == 2
        assert result.skipped == 1

    @pytest.mark.asyncio
    async def test_empty_market_cache_fails_before_analysis(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=[],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
        )

        with pytest.raises(MarketCacheEmptyError):
            await _engine(gateway).run_scan(sample_size=100, max_wallets=10)

        assert gateway.recent_requests == []
        assert gateway.wallet_requests == []


# ---------------------------------------------------------------------------
# Continuous mode
# ---------------------------------------------------------------------------


class TestRunContinuous:
    @pytest.mark.asyncio
    async def test_never_redispatches_an_analyzed_wallet(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=population["markets"],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
        )
        stop = asyncio.Event()
        seen: list[IterationResult] = []

        def on_iteration(result: IterationResult):
            seen.append(result)
            if len(seen) == 4:
                stop.set()

        state = await _engine(gateway).run_continuous(
            sample_size=100, max_wallets=2, stop_event=stop, on_iteration=on_iteration
        )

        assert len(gateway.wallet_requests) == len(set(gateway.wallet_requests)) == 3
        assert [len(r.dispatched) for r in seen] == [2, 1, 0, 0]
        assert state.scans_completed == 4
        assert state.counters()["profitable_found"] == 2
        assert [r.wallet_address for r in state.sorted_reports()] == [
            population["strong"],
            population["modest"],
        ]

    @pytest.mark.asyncio
    async def test_failed_wallets_are_not_retried(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=population["markets"],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
            failing_wallets={population["strong"]},
        )
        stop = asyncio.Event()

        async def on_iteration(result: IterationResult):
            if result.iteration == 3:
                stop.set()

        state = await _engine(gateway).run_continuous(
            sample_size=100, max_wallets=10, stop_event=stop, on_iteration=on_iteration
        )

        assert gateway.wallet_requests.count(population["strong"]) == 1
        assert state.counters()["wallets_skipped"] == 1
        assert state.counters()["wallets_analyzed"] == 2

    @pytest.mark.asyncio
    async def test_stop_event_checked_before_each_iteration(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=population["markets"],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
        )
        stop = asyncio.Event()
        stop.set()

        state = await _engine(gateway).run_continuous(sample_size=100, max_wallets=10, stop_event=stop)

        assert state.scans_completed == 0
        assert gateway.recent_requests == []

    @pytest.mark.asyncio
    async def test_in_flight_iteration_completes_after_stop(self, fake_gateway, population):
        gateway = fake_gateway(
            markets=population["markets"],
            recent_trades=population["recent"],
            wallet_trades=population["wallet_trades"],
        )
        stop = asyncio.Event()
        original = gateway.get_wallet_trades

        async def stop_mid_iteration(address, limit=None):
            stop.set()
            return await original(address, limit)

        gateway.get_wallet_trades = stop_mid_iteration

        state = await _engine(gateway).run_continuous(sample_size=100, max_wallets=10, stop_event=stop)

        assert state.scans_completed == 1
        assert state.counters()["wallets_analyzed"] == 3
        assert state.counters()["profitable_found"] == 2
