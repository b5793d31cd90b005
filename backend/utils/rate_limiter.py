import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import urlsplit

from utils.logger import get_logger

logger = get_logger("rate_limiter")

# Endpoint families the scanner talks to
GAMMA_MARKETS = "gamma_markets"
GAMMA_OTHER = "gamma_general"
DATA_TRADES = "data_trades"
DATA_OTHER = "data_general"
DEFAULT = "default"


@dataclass
class RateLimitConfig:
    """Requests allowed per rolling window for one endpoint family"""

    requests_per_window: int
    window_seconds: float = 10.0

    @property
    def per_second(self) -> float:
        return self.requests_per_window / self.window_seconds


@dataclass
class TokenBucket:
    capacity: float
    refill_rate: float  # tokens per second
    tokens: float = 0.0
    updated_at: float = field(default_factory=time.monotonic)

    @classmethod
    def full(cls, config: RateLimitConfig) -> "TokenBucket":
        return cls(
            capacity=config.requests_per_window,
            refill_rate=config.per_second,
            tokens=config.requests_per_window,
        )

    def _refill(self):
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.updated_at) * self.refill_rate)
        self.updated_at = now

    def take(self) -> float:
        """Take one token, returning how long the caller must wait for it"""
        self._refill()
        self.tokens -= 1
        if self.tokens >= 0:
            return 0.0
        return -self.tokens / self.refill_rate


class RateLimiter:
    """Per-endpoint token-bucket pacing for the Gamma and Data APIs.

    This sits underneath the request concurrency cap: the cap bounds how
    many calls are in flight, the buckets bound how many start per window.
    A token is reserved before sleeping, so concurrent waiters queue up
    behind each other instead of all waking at the same instant.
    """

    # Published Polymarket limits, requests per 10 seconds
    LIMITS = {
        GAMMA_MARKETS: RateLimitConfig(requests_per_window=300),
        GAMMA_OTHER: RateLimitConfig(requests_per_window=4000),
        DATA_TRADES: RateLimitConfig(requests_per_window=200),
        DATA_OTHER: RateLimitConfig(requests_per_window=1000),
    }
    FALLBACK = RateLimitConfig(requests_per_window=1000)

    def __init__(self, limits: Optional[Dict[str, RateLimitConfig]] = None):
        self._limits = {**self.LIMITS, **(limits or {})}
        self._buckets: Dict[str, TokenBucket] = {}

    @classmethod
    def from_settings(cls, settings) -> "RateLimiter":
        window = settings.RATE_LIMIT_WINDOW_SECONDS
        return cls(
            {
                GAMMA_MARKETS: RateLimitConfig(settings.GAMMA_MARKETS_RATE_LIMIT, window),
                DATA_TRADES: RateLimitConfig(settings.DATA_TRADES_RATE_LIMIT, window),
            }
        )

    def _bucket(self, endpoint: str) -> TokenBucket:
        bucket = self._buckets.get(endpoint)
        if bucket is None:
            bucket = TokenBucket.full(self._limits.get(endpoint, self.FALLBACK))
            self._buckets[endpoint] = bucket
        return bucket

    async def acquire(self, endpoint: str) -> float:
        """Wait for permission to start one request; returns the time waited."""
        wait = self._bucket(endpoint).take()
        if wait > 0:
            logger.debug("Rate limit wait", endpoint=endpoint, wait_seconds=round(wait, 3))
            await asyncio.sleep(wait)
        return wait


def endpoint_for_url(url: str) -> str:
    """Map a request URL onto its rate-limit family"""
    parts = urlsplit(url)
    host, path = parts.netloc, parts.path
    if host.startswith("gamma-api"):
        return GAMMA_MARKETS if path.startswith("/markets") else GAMMA_OTHER
    if host.startswith("data-api"):
        return DATA_TRADES if path.startswith("/trades") else DATA_OTHER
    return DEFAULT
