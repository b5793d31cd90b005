"""Shared fixtures for wallet performance tests."""

import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

import json
from decimal import Decimal
from typing import Optional

import pytest

from models import Market, Trade
from models.types import Outcome, Side
from utils.retry import TransportError


# ---------------------------------------------------------------------------
# Raw API response fixtures (mimicking Gamma / Data API payloads)
# ---------------------------------------------------------------------------


@pytest.fixture
def raw_closed_market_response():
    """A Gamma /markets row for a market that settled YES."""
    return {
        "id": "501234",
        "conditionId": "0xc0ffee01",
        "question": "Will the Fed cut rates in March?",
        "slug": "fed-cut-march",
        "outcomes": json.dumps(["Yes", "No"]),
        "outcomePrices": json.dumps(["0.9995", "0.0005"]),
        "active": True,
        "closed": True,
        "volume": "250000.5",
        "liquidity": "0",
        "closedTime": "2025-03-19T18:05:11Z",
        "endDate": "2025-03-19T00:00:00Z",
    }


@pytest.fixture
def raw_active_market_response():
    """A Gamma /markets row for an open binary market."""
    return {
        "id": "601",
        "conditionId": "0xa11ce",
        "question": "Will it rain in Seattle tomorrow?",
        "slug": "seattle-rain",
        "outcomePrices": json.dumps(["0.48", "0.47"]),
        "active": True,
        "closed": False,
        "volume": "1200",
        "liquidity": "800.25",
    }


@pytest.fixture
def raw_trade_response():
    """A Data API /trades row."""
    return {
        "proxyWallet": "0x56687BF447DB6FFA42FFE2204A05EDAA20F55839",
        "side": "BUY",
        "asset": "71321045679252212594626385532706912750332728571942532289631379312455583992563",
        "conditionId": "0xc0ffee01",
        "size": 10,
        "price": 0.3,
        "timestamp": 1724000000,
        "title": "Will the Fed cut rates in March?",
        "slug": "fed-cut-march",
        "outcome": "Yes",
        "outcomeIndex": 0,
        "name": "sharp-trader",
        "pseudonym": "Quiet-Gazelle",
    }


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


def build_market(
    condition_id: str,
    resolution: Outcome = Outcome.YES,
    question: Optional[str] = None,
) -> Market:
    prices = {
        Outcome.YES: (1.0, 0.0),
        Outcome.NO: (0.0, 1.0),
        Outcome.UNRESOLVED: (0.5, 0.5),
    }[resolution]
    return Market(
        condition_id=condition_id,
        question=question or f"Question for {condition_id}",
        outcome_prices=prices,
        resolution=resolution,
        active=False,
        closed=True,
    )


def build_trade(
    address: str,
    market_id: str,
    side: Side = Side.BUY,
    outcome: Outcome = Outcome.YES,
    quantity: str = "10",
    price: str = "0.30",
    trader_name: Optional[str] = None,
) -> Trade:
    return Trade(
        wallet_address=address,
        market_id=market_id,
        side=side,
        outcome=outcome,
        quantity=Decimal(quantity),
        price=Decimal(price),
        trader_name=trader_name,
    )


def build_wallet_history(
    address: str, wins: int, losses: int, stake: str = "100", price: str = "0.40"
) -> tuple[list[Market], list[Trade]]:
    """Markets plus BUY-YES trades giving a wallet ``wins`` winning and ``losses`` losing positions.

    With the defaults each win nets +$60 and each loss -$40.
    """
    markets: list[Market] = []
    trades: list[Trade] = []
    for i in range(wins + losses):
        market_id = f"{address}-m{i}"
        resolution = Outcome.YES if i < wins else Outcome.NO
        markets.append(build_market(market_id, resolution))
        trades.append(build_trade(address, market_id, quantity=stake, price=price))
    return markets, trades


@pytest.fixture
def make_market():
    return build_market


@pytest.fixture
def make_trade():
    return build_trade


@pytest.fixture
def make_wallet_history():
    return build_wallet_history


# ---------------------------------------------------------------------------
# Fake collaborators
# ---------------------------------------------------------------------------


class StaticMarketLookup:
    """Dict-backed stand-in for a loaded MarketCache."""

    def __init__(self, markets=()):
        self._markets = {m.condition_id: m for m in markets}

    def lookup(self, market_id: str) -> Optional[Market]:
        return self._markets.get(market_id)

    def __len__(self) -> int:
        return len(self._markets)


class FakeGateway:
    """In-memory stand-in for PolymarketClient that records every call."""

    def __init__(
        self,
        markets=(),
        recent_trades=(),
        wallet_trades=None,
        active_markets=(),
        failing_wallets=(),
        failing_offsets=(),
        fail_all_pages: bool = False,
    ):
        self.markets = list(markets)
        self.recent_trades = list(recent_trades)
        self.wallet_trades = dict(wallet_trades or {})
        self.active_markets = list(active_markets)
        self.failing_wallets = set(failing_wallets)
        self.failing_offsets = set(failing_offsets)
        self.fail_all_pages = fail_all_pages

        self.page_requests: list[int] = []
        self.recent_requests: list[Optional[int]] = []
        self.wallet_requests: list[str] = []

    async def get_resolved_markets_page(self, offset: int = 0, limit: int = 100):
        self.page_requests.append(offset)
        if self.fail_all_pages or offset in self.failing_offsets:
            raise TransportError("upstream unavailable", url="/markets", attempts=3)
        page = self.markets[offset : offset + limit]
        next_offset = offset + len(page) if len(page) >= limit else None
        return page, next_offset

    async def get_recent_trades(self, limit: Optional[int] = None):
        self.recent_requests.append(limit)
        return self.recent_trades[:limit] if limit else list(self.recent_trades)

    async def get_wallet_trades(self, address: str, limit: Optional[int] = None):
        self.wallet_requests.append(address)
        if address in self.failing_wallets:
            raise TransportError("timed out", url="/trades", attempts=3)
        return list(self.wallet_trades.get(address, []))

    async def get_active_markets(self, max_markets: Optional[int] = None):
        return self.active_markets[:max_markets] if max_markets else list(self.active_markets)

    async def close(self):
        return None


@pytest.fixture
def market_lookup():
    return StaticMarketLookup


@pytest.fixture
def fake_gateway():
    return FakeGateway
