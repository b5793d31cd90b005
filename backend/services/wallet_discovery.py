"""
Wallet Discovery Engine
=======================

Finds profitable Polymarket wallets by sampling the live trade feed.

Pipeline:
    1. Load the resolved-market cache (once per session)
    2. Sample recent trades and rank wallets by how often they trade
    3. Analyze the top candidates concurrently: fetch trades, reconcile
       positions, summarize performance, classify red flags
    4. Keep wallets that clear the acceptance thresholds, sorted by ROI

In continuous mode steps 2-4 repeat until a stop event is set. Results
accumulate in a ScanState, and a wallet is never dispatched twice.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Callable, Iterable, Optional

from config import settings
from models import Trade, WalletPerformance, WalletReport
from services.market_cache import MarketCache
from services.polymarket import PolymarketClient, polymarket_client
from services.wallet_analyzer import evaluate_wallet
from utils.logger import get_logger
from utils.retry import TransportError

logger = get_logger("discovery")

# ---------------------------------------------------------------------------
# State and results
# ---------------------------------------------------------------------------


class DiscoveryState(str, Enum):
    IDLE = "idle"
    SAMPLING = "sampling"
    ANALYZING = "analyzing"
    DONE = "done"


@dataclass(frozen=True)
class AcceptanceCriteria:
    """Thresholds a wallet must clear to be reported as profitable"""

    min_resolved_positions: int = 10
    min_roi_percent: Decimal = Decimal("10")
    min_net_profit: Decimal = Decimal("50")

    @classmethod
    def from_settings(cls) -> "AcceptanceCriteria":
        return cls(
            min_resolved_positions=settings.MIN_RESOLVED_POSITIONS,
            min_roi_percent=Decimal(str(settings.MIN_ROI_PERCENT)),
            min_net_profit=Decimal(str(settings.MIN_NET_PROFIT)),
        )

    def accepts(self, performance: WalletPerformance) -> bool:
        return (
            performance.resolved_positions >= self.min_resolved_positions
            and performance.roi > self.min_roi_percent
            and performance.net_profit > self.min_net_profit
            and performance.has_invested_capital
        )


def sort_by_roi(reports: Iterable[WalletReport]) -> list[WalletReport]:
    return sorted(reports, key=lambda r: (-r.performance.roi, r.wallet_address))


@dataclass
class IterationResult:
    """Outcome of one sample-and-analyze pass"""

    iteration: int
    dispatched: list[str] = field(default_factory=list)
    accepted: list[WalletReport] = field(default_factory=list)  # ROI descending
    analyzed: int = 0
    skipped: int = 0
    duration_seconds: float = 0.0


class ScanState:
    """Accumulated results of a continuous discovery session.

    Only ``merge`` mutates it, once per completed iteration.
    """

    def __init__(self):
        self.analyzed_addresses: set[str] = set()
        self._reports: dict[str, WalletReport] = {}
        self.scans_completed = 0
        self.wallets_analyzed = 0
        self.wallets_skipped = 0
        self.profitable_found = 0

    def merge(self, result: IterationResult):
        # Failed wallets are marked too; they are not retried later.
        self.analyzed_addresses.update(result.dispatched)
        for report in result.accepted:
            if report.wallet_address not in self._reports:
                self.profitable_found += 1
            self._reports[report.wallet_address] = report
        self.wallets_analyzed += result.analyzed
        self.wallets_skipped += result.skipped
        self.scans_completed += 1

    def is_analyzed(self, address: str) -> bool:
        return address in self.analyzed_addresses

    def sorted_reports(self) -> list[WalletReport]:
        return sort_by_roi(self._reports.values())

    def counters(self) -> dict[str, int]:
        return {
            "scans_completed": self.scans_completed,
            "wallets_analyzed": self.wallets_analyzed,
            "wallets_skipped": self.wallets_skipped,
            "profitable_found": self.profitable_found,
        }


IterationCallback = Callable[[IterationResult], Any]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class WalletDiscoveryEngine:
    """Samples, analyzes and filters wallets against the resolved-market cache"""

    def __init__(
        self,
        client: Optional[PolymarketClient] = None,
        market_cache: Optional[MarketCache] = None,
        criteria: Optional[AcceptanceCriteria] = None,
    ):
        self.client = client or polymarket_client
        self.market_cache = market_cache if market_cache is not None else MarketCache(self.client)
        self.criteria = criteria or AcceptanceCriteria.from_settings()
        self.state = DiscoveryState.IDLE

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------

    @staticmethod
    def rank_candidates(
        trades: Iterable[Trade],
        max_wallets: int,
        exclude: Optional[set[str] | frozenset[str]] = None,
    ) -> list[str]:
        """Most active wallets first; ties broken by address"""
        counts = Counter(trade.wallet_address for trade in trades)
        ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
        excluded = exclude or frozenset()
        return [address for address, _ in ranked if address not in excluded][:max_wallets]

    async def sample_candidates(
        self,
        sample_size: int,
        max_wallets: int,
        exclude: Optional[set[str] | frozenset[str]] = None,
    ) -> list[str]:
        self.state = DiscoveryState.SAMPLING
        trades = await self.client.get_recent_trades(limit=sample_size)
        candidates = self.rank_candidates(trades, max_wallets, exclude)
        logger.info(
            "Sampled candidate wallets",
            trades=len(trades),
            distinct_wallets=len({t.wallet_address for t in trades}),
            candidates=len(candidates),
        )
        return candidates

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def _analyze_one(self, address: str) -> Optional[WalletReport]:
        try:
            return await evaluate_wallet(address, self.client, self.market_cache)
        except (TransportError, ValueError) as e:
            logger.warning("Skipping wallet", address=address, error=str(e))
            return None
        except Exception as e:
            # One bad wallet must not take down the rest of the batch
            logger.exception("Unexpected error analyzing wallet", address=address, error=str(e))
            return None

    async def analyze_candidates(
        self, addresses: list[str]
    ) -> tuple[list[WalletReport], int, int]:
        """Analyze wallets concurrently.

        Returns (accepted reports sorted by ROI, analyzed count, skipped count).
        The gateway semaphore bounds how many requests are in flight.
        """
        self.state = DiscoveryState.ANALYZING
        results = await asyncio.gather(*[self._analyze_one(a) for a in addresses])

        reports = [r for r in results if r is not None]
        accepted = [r for r in reports if self.criteria.accepts(r.performance)]
        return sort_by_roi(accepted), len(reports), len(results) - len(reports)

    async def run_iteration(
        self,
        sample_size: int,
        max_wallets: int,
        exclude: Optional[set[str] | frozenset[str]] = None,
        iteration: int = 1,
    ) -> IterationResult:
        started = time.monotonic()
        logger.info(
            "Starting discovery iteration",
            iteration=iteration,
            sample_size=sample_size,
            max_wallets=max_wallets,
            already_analyzed=len(exclude or ()),
        )

        try:
            candidates = await self.sample_candidates(sample_size, max_wallets, exclude)
        except TransportError as e:
            logger.warning("Trade sampling failed", iteration=iteration, error=str(e))
            return IterationResult(iteration=iteration, duration_seconds=time.monotonic() - started)

        accepted, analyzed, skipped = await self.analyze_candidates(candidates)
        result = IterationResult(
            iteration=iteration,
            dispatched=candidates,
            accepted=accepted,
            analyzed=analyzed,
            skipped=skipped,
            duration_seconds=time.monotonic() - started,
        )
        logger.info(
            "Discovery iteration complete",
            iteration=iteration,
            dispatched=len(candidates),
            analyzed=analyzed,
            skipped=skipped,
            accepted=len(accepted),
            duration_seconds=round(result.duration_seconds, 2),
        )
        return result

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def run_scan(
        self,
        sample_size: Optional[int] = None,
        max_wallets: Optional[int] = None,
    ) -> IterationResult:
        """Run a single discovery pass.

        Raises MarketCacheEmptyError before any wallet is analyzed when no
        resolved markets load.
        """
        sample_size = sample_size or settings.DISCOVERY_SAMPLE_SIZE
        max_wallets = max_wallets or settings.DISCOVERY_MAX_WALLETS

        await self.market_cache.load()
        result = await self.run_iteration(sample_size, max_wallets)
        self.state = DiscoveryState.DONE
        return result

    async def run_continuous(
        self,
        sample_size: Optional[int] = None,
        max_wallets: Optional[int] = None,
        stop_event: Optional[asyncio.Event] = None,
        on_iteration: Optional[IterationCallback] = None,
        scan_state: Optional[ScanState] = None,
    ) -> ScanState:
        """Repeat discovery passes until ``stop_event`` is set.

        The event is checked between iterations, so the iteration in flight
        always completes and is merged before this returns.
        """
        sample_size = sample_size or settings.DISCOVERY_SAMPLE_SIZE
        max_wallets = max_wallets or settings.DISCOVERY_MAX_WALLETS
        stop_event = stop_event or asyncio.Event()
        state = scan_state if scan_state is not None else ScanState()

        await self.market_cache.load()

        while not stop_event.is_set():
            result = await self.run_iteration(
                sample_size,
                max_wallets,
                exclude=frozenset(state.analyzed_addresses),
                iteration=state.scans_completed + 1,
            )
            state.merge(result)

            if on_iteration is not None:
                outcome = on_iteration(result)
                if inspect.isawaitable(outcome):
                    await outcome

        self.state = DiscoveryState.DONE
        logger.info("Continuous discovery stopped", **state.counters())
        return state

