import asyncio
import random
from typing import Any, Optional, Tuple, Type

import httpx

from utils.logger import get_logger

logger = get_logger("retry")


class TransportError(Exception):
    """An upstream request failed (network, timeout or HTTP status)."""

    def __init__(self, message: str, url: str = "", attempts: int = 0):
        super().__init__(message)
        self.url = url
        self.attempts = attempts


class MalformedResponseError(TransportError):
    """An upstream response could not be decoded into the expected shape."""


class RetryConfig:
    """Configuration for retry behavior"""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = False,
        retryable_exceptions: Tuple[Type[Exception], ...] = (
            httpx.TimeoutException,
            httpx.NetworkError,
            httpx.RemoteProtocolError,
            ConnectionError,
            asyncio.TimeoutError,
            MalformedResponseError,
        ),
        retryable_status_codes: Tuple[int, ...] = (408, 425, 429, 500, 502, 503, 504),
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retryable_exceptions = retryable_exceptions
        self.retryable_status_codes = retryable_status_codes


def calculate_delay(attempt: int, config: RetryConfig) -> float:
    """Calculate delay with exponential backoff and optional jitter"""
    if config.base_delay <= 0:
        return 0.0
    delay = min(config.base_delay * (config.exponential_base**attempt), config.max_delay)
    if config.jitter:
        delay = delay * (0.5 + random.random())
    return delay


def is_retryable_error(error: Exception, config: RetryConfig) -> bool:
    """Check if an error should be retried"""
    # Check exception type
    if isinstance(error, config.retryable_exceptions):
        return True

    # Check HTTP status code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in config.retryable_status_codes

    return False


class RetryableClient:
    """HTTP client wrapper with a bounded attempt counter per request.

    Every failure that leaves the wrapper is a ``TransportError`` so callers
    only need one except clause to downgrade a unit of work to "skipped".
    """

    def __init__(self, client: httpx.AsyncClient, config: Optional[RetryConfig] = None):
        self.client = client
        self.config = config or RetryConfig()

    async def get_json(self, url: str, expect: Optional[type] = None, **kwargs) -> Any:
        """GET a URL and decode its JSON body, retrying undecodable bodies too

        When ``expect`` is given, a body of any other JSON type counts as
        malformed and is retried like a transport failure.
        """
        return await self._attempt("GET", url, expect=expect, **kwargs)

    async def _attempt(self, method: str, url: str, expect: Optional[type] = None, **kwargs) -> Any:
        last_error: Optional[Exception] = None

        for attempt in range(self.config.max_attempts):
            try:
                response = await self.client.request(method, url, **kwargs)
                response.raise_for_status()
                try:
                    payload = response.json()
                except ValueError as e:
                    raise MalformedResponseError(
                        f"Invalid JSON from {url}: {e}", url=url
                    ) from e
                if expect is not None and not isinstance(payload, expect):
                    raise MalformedResponseError(
                        f"Expected {expect.__name__} from {url}, got {type(payload).__name__}",
                        url=url,
                    )
                return payload
            except Exception as e:
                last_error = e

                if not is_retryable_error(e, self.config):
                    logger.error(
                        "Non-retryable error",
                        method=method,
                        url=url,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    transport_error = self._as_transport_error(e, url, attempt + 1)
                    if transport_error is e:
                        raise
                    raise transport_error from e

                if attempt < self.config.max_attempts - 1:
                    delay = calculate_delay(attempt, self.config)

                    # Special handling for rate limits
                    if isinstance(e, httpx.HTTPStatusError) and e.response.status_code == 429:
                        retry_after = e.response.headers.get("Retry-After")
                        if retry_after:
                            try:
                                delay = max(delay, float(retry_after))
                            except ValueError:
                                pass

                    logger.warning(
                        "Retrying HTTP request",
                        method=method,
                        url=url,
                        attempt=attempt + 1,
                        max_attempts=self.config.max_attempts,
                        delay=delay,
                        error=str(e) or type(e).__name__,
                    )
                    if delay > 0:
                        await asyncio.sleep(delay)

        logger.warning(
            "All retry attempts exhausted",
            method=method,
            url=url,
            attempts=self.config.max_attempts,
            error=str(last_error) or type(last_error).__name__,
        )
        transport_error = self._as_transport_error(last_error, url, self.config.max_attempts)
        if transport_error is last_error:
            raise transport_error
        raise transport_error from last_error

    @staticmethod
    def _as_transport_error(error: Exception, url: str, attempts: int) -> TransportError:
        if isinstance(error, TransportError):
            error.attempts = attempts
            return error
        message = str(error) or type(error).__name__
        return TransportError(message, url=url, attempts=attempts)

    async def aclose(self):
        await self.client.aclose()

    @property
    def is_closed(self) -> bool:
        return self.client.is_closed
