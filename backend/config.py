from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Get the directory where this config file is located.
_BACKEND_DIR = Path(__file__).parent.resolve()
_PROJECT_ROOT = _BACKEND_DIR.parent.resolve()


class Settings(BaseSettings):
    # API Base URLs
    GAMMA_API_URL: str = "https://gamma-api.polymarket.com"
    DATA_API_URL: str = "https://data-api.polymarket.com"

    # API Settings
    API_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0)
    MAX_RETRY_ATTEMPTS: int = Field(default=3, ge=1)
    RETRY_BASE_DELAY: float = Field(default=0.0, ge=0)  # No backoff by default
    MAX_CONCURRENT_REQUESTS: int = Field(default=10, ge=1)  # Hard cap on in-flight upstream calls

    # Rate limits (requests per window, per endpoint family)
    RATE_LIMIT_WINDOW_SECONDS: float = Field(default=10.0, gt=0)
    GAMMA_MARKETS_RATE_LIMIT: int = Field(default=300, ge=1)
    DATA_TRADES_RATE_LIMIT: int = Field(default=200, ge=1)

    # Resolved Market Cache
    MARKET_PAGE_SIZE: int = Field(default=100, ge=1, le=500)
    MAX_RESOLVED_MARKETS: int = Field(default=15000, ge=1)
    MARKET_CACHE_MAX_FAILED_WAVES: int = Field(default=3, ge=1)  # Consecutive all-failed waves before giving up

    # Trade Fetching
    RECENT_TRADES_PAGE_SIZE: int = Field(default=500, ge=1, le=10000)
    WALLET_TRADES_LIMIT: int = Field(default=3000, ge=1)

    # Wallet Discovery
    DISCOVERY_SAMPLE_SIZE: int = Field(default=5000, ge=1)
    DISCOVERY_MAX_WALLETS: int = Field(default=30, ge=1)

    # Acceptance thresholds (a wallet must clear all of them)
    MIN_RESOLVED_POSITIONS: int = Field(default=10, ge=1)
    MIN_ROI_PERCENT: float = 10.0
    MIN_NET_PROFIT: float = 50.0

    # Arbitrage Scan
    ARBITRAGE_THRESHOLD: float = Field(default=0.99, gt=0, le=1)  # YES+NO below this is flagged
    MAX_ACTIVE_MARKETS: int = Field(default=5000, ge=1)

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False
    LOG_FILE: Optional[str] = None

    @field_validator("GAMMA_API_URL", "DATA_API_URL", mode="before")
    @classmethod
    def _normalize_api_url(cls, value: object) -> object:
        if value is None:
            return value
        text = str(value).strip()
        if not text:
            return text
        # Keep scheme://host normalization simple and deterministic.
        return text.rstrip("/")

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        text = str(value or "INFO").strip().upper()
        if text not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return text

    class Config:
        # Load project-root .env first (common workflow), then backend/.env
        # as an override if present.
        env_file = (
            str(_PROJECT_ROOT / ".env"),
            str(_BACKEND_DIR / ".env"),
        )
        env_file_encoding = "utf-8"


settings = Settings()
