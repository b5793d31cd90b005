"""
Resolved-market cache.

Bulk-loads the most recently closed markets once per session so position
reconciliation can look up a market's resolution in O(1) without a network
call per trade. Pages are fetched in waves of concurrent requests (bounded
by the gateway semaphore); a page that fails after its retries is skipped
and the load carries on. Once loaded the cache is read-only.
"""

import asyncio
from itertools import islice
from typing import Optional

from config import settings
from models import Market
from services.polymarket import PolymarketClient, polymarket_client
from utils.logger import get_logger
from utils.retry import TransportError

logger = get_logger("market_cache")


class MarketCacheEmptyError(Exception):
    """The resolved-market load produced no markets at all."""


class MarketCache:
    """In-memory map of condition id -> resolved (closed) Market"""

    def __init__(
        self,
        client: Optional[PolymarketClient] = None,
        page_size: Optional[int] = None,
        max_concurrent_pages: Optional[int] = None,
        max_failed_waves: Optional[int] = None,
    ):
        self._client = client or polymarket_client
        self.page_size = page_size or settings.MARKET_PAGE_SIZE
        self.max_concurrent_pages = max_concurrent_pages or settings.MAX_CONCURRENT_REQUESTS
        self.max_failed_waves = max_failed_waves or settings.MARKET_CACHE_MAX_FAILED_WAVES
        self._markets: dict[str, Market] = {}
        self._loaded = False
        self.failed_pages = 0

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def lookup(self, market_id: str) -> Optional[Market]:
        return self._markets.get(market_id)

    def __len__(self) -> int:
        return len(self._markets)

    def __contains__(self, market_id: object) -> bool:
        return market_id in self._markets

    async def _fetch_page(self, offset: int) -> Optional[tuple[list[Market], Optional[int]]]:
        try:
            return await self._client.get_resolved_markets_page(offset=offset, limit=self.page_size)
        except TransportError as e:
            logger.warning(
                "Skipping resolved-market page",
                offset=offset,
                attempts=e.attempts,
                error=str(e),
            )
            return None

    async def load(self, max_markets: Optional[int] = None) -> dict[str, Market]:
        """Fill the cache with up to ``max_markets`` most recently closed markets.

        A second call on a loaded cache returns the existing mapping.
        Raises MarketCacheEmptyError when nothing could be loaded.
        """
        if self._loaded:
            return self._markets

        max_markets = max_markets or settings.MAX_RESOLVED_MARKETS
        logger.info("Loading resolved markets", max_markets=max_markets, page_size=self.page_size)

        collected: dict[str, Market] = {}
        offset = 0
        exhausted = False
        failed_waves = 0  # consecutive waves in which every page failed

        while not exhausted and len(collected) < max_markets:
            remaining_pages = -(-(max_markets - len(collected)) // self.page_size)
            wave = min(self.max_concurrent_pages, remaining_pages)
            offsets = [offset + i * self.page_size for i in range(wave)]

            results = await asyncio.gather(*[self._fetch_page(o) for o in offsets])

            failed_in_wave = 0
            # Walk pages in offset order so the most recent markets win duplicates
            for result in results:
                if result is None:
                    failed_in_wave += 1
                    continue
                markets, next_offset = result
                for market in markets:
                    collected.setdefault(market.condition_id, market)
                if next_offset is None:
                    exhausted = True
                    break

            self.failed_pages += failed_in_wave
            failed_waves = failed_waves + 1 if failed_in_wave == wave else 0
            if failed_waves >= self.max_failed_waves:
                logger.warning(
                    "Upstream keeps failing, stopping load",
                    offset=offset,
                    failed_waves=failed_waves,
                )
                break
            offset += wave * self.page_size

        if not collected:
            raise MarketCacheEmptyError("No resolved markets could be loaded")

        self._markets = dict(islice(collected.items(), max_markets))
        self._loaded = True

        resolved = sum(1 for m in self._markets.values() if m.is_resolved)
        logger.info(
            "Resolved market cache ready",
            markets=len(self._markets),
            resolved=resolved,
            failed_pages=self.failed_pages,
        )
        return self._markets
