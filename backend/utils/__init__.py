from .logger import setup_logging, get_logger, ContextLogger
from .retry import RetryConfig, RetryableClient, TransportError, MalformedResponseError
from .rate_limiter import RateLimiter, RateLimitConfig, endpoint_for_url
from .utcnow import utcnow
from .validation import (
    validate_eth_address,
    WalletAddressParam,
    DiscoveryParams,
    ArbitrageParams,
)

__all__ = [
    # Logger
    "setup_logging",
    "get_logger",
    "ContextLogger",

    # HTTP
    "RetryConfig",
    "RetryableClient",
    "TransportError",
    "MalformedResponseError",
    "RateLimiter",
    "RateLimitConfig",
    "endpoint_for_url",

    # Time
    "utcnow",

    # Validation
    "validate_eth_address",
    "WalletAddressParam",
    "DiscoveryParams",
    "ArbitrageParams",
]
