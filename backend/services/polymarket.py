import asyncio
from typing import Any, Callable, Optional, TypeVar

import httpx

from config import settings
from models import Market, Trade
from utils.logger import get_logger
from utils.rate_limiter import RateLimiter, endpoint_for_url
from utils.retry import RetryConfig, RetryableClient
from utils.validation import validate_eth_address

logger = get_logger("polymarket")

T = TypeVar("T")


class PolymarketClient:
    """Client for the Polymarket Gamma (markets) and Data (trades) APIs.

    Every request goes through one shared semaphore, a per-endpoint token
    bucket and a bounded retry loop. Failures that survive the retries
    surface as ``TransportError``.
    """

    def __init__(
        self,
        gamma_url: Optional[str] = None,
        data_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_concurrent_requests: Optional[int] = None,
        retry_config: Optional[RetryConfig] = None,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.gamma_url = (gamma_url or settings.GAMMA_API_URL).rstrip("/")
        self.data_url = (data_url or settings.DATA_API_URL).rstrip("/")
        self.timeout = timeout or settings.API_TIMEOUT_SECONDS
        self.max_concurrent_requests = max_concurrent_requests or settings.MAX_CONCURRENT_REQUESTS
        self.retry_config = retry_config or RetryConfig(
            max_attempts=settings.MAX_RETRY_ATTEMPTS,
            base_delay=settings.RETRY_BASE_DELAY,
        )
        self.rate_limiter = rate_limiter or RateLimiter.from_settings(settings)
        self._transport = transport
        self._client: Optional[RetryableClient] = None
        self._semaphore = asyncio.Semaphore(self.max_concurrent_requests)

    async def _get_client(self) -> RetryableClient:
        if self._client is None or self._client.is_closed:
            http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
            self._client = RetryableClient(http_client, self.retry_config)
        return self._client

    async def close(self):
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _get_json(self, url: str, params: dict, expect: Optional[type] = list) -> Any:
        async with self._semaphore:
            await self.rate_limiter.acquire(endpoint_for_url(url))
            client = await self._get_client()
            return await client.get_json(url, params=params, expect=expect)

    @staticmethod
    def _parse_rows(rows: list, parser: Callable[[dict], T], kind: str) -> list[T]:
        parsed: list[T] = []
        for row in rows:
            try:
                parsed.append(parser(row))
            except ValueError as e:
                logger.debug(f"Dropping unparseable {kind}", error=str(e))
        return parsed

    # ==================== GAMMA API ====================

    async def get_resolved_markets_page(
        self, offset: int = 0, limit: Optional[int] = None
    ) -> tuple[list[Market], Optional[int]]:
        """Fetch one page of closed markets, most recently closed first.

        Returns the parsed markets and the offset of the next page, or None
        when this page was the last one.
        """
        limit = limit or settings.MARKET_PAGE_SIZE
        params = {
            "closed": "true",
            "order": "closedTime",
            "ascending": "false",
            "limit": limit,
            "offset": offset,
        }
        data = await self._get_json(f"{self.gamma_url}/markets", params)
        markets = self._parse_rows(data, Market.from_gamma_response, "market")

        # Paging follows the raw row count so dropped rows don't end the scan
        next_offset = offset + len(data) if len(data) >= limit else None
        return markets, next_offset

    async def get_active_markets(self, max_markets: Optional[int] = None) -> list[Market]:
        """Fetch open markets with pagination"""
        max_markets = max_markets or settings.MAX_ACTIVE_MARKETS
        limit = min(settings.MARKET_PAGE_SIZE, max_markets)
        all_markets: list[Market] = []
        offset = 0

        while len(all_markets) < max_markets:
            params = {
                "active": "true",
                "closed": "false",
                "limit": limit,
                "offset": offset,
            }
            data = await self._get_json(f"{self.gamma_url}/markets", params)
            all_markets.extend(self._parse_rows(data, Market.from_gamma_response, "market"))
            if len(data) < limit:
                break
            offset += len(data)

        return all_markets[:max_markets]

    # ==================== DATA API ====================

    async def _get_trades(self, params: dict, limit: int) -> list[Trade]:
        page_size = min(settings.RECENT_TRADES_PAGE_SIZE, limit)
        trades: list[Trade] = []
        offset = 0

        while len(trades) < limit:
            page_params = {**params, "limit": page_size, "offset": offset}
            data = await self._get_json(f"{self.data_url}/trades", page_params)
            trades.extend(self._parse_rows(data, Trade.from_data_api_response, "trade"))
            if len(data) < page_size:
                break
            offset += len(data)

        return trades[:limit]

    async def get_recent_trades(self, limit: Optional[int] = None) -> list[Trade]:
        """Get the most recent trades across all markets, newest first"""
        limit = limit or settings.DISCOVERY_SAMPLE_SIZE
        trades = await self._get_trades({}, limit)
        logger.debug("Fetched recent trades", requested=limit, received=len(trades))
        return trades

    async def get_wallet_trades(self, address: str, limit: Optional[int] = None) -> list[Trade]:
        """Get a wallet's trade history, newest first"""
        address = validate_eth_address(address)
        limit = limit or settings.WALLET_TRADES_LIMIT
        return await self._get_trades({"user": address}, limit)


# Singleton instance
polymarket_client = PolymarketClient()
