import re

from pydantic import BaseModel, Field, field_validator

from config import settings

# 0x followed by 40 hex characters; case is normalized away
ETH_ADDRESS_REGEX = re.compile(r"^0x[a-fA-F0-9]{40}$")


def validate_eth_address(address: str) -> str:
    """Validate a wallet address and return it lower-cased"""
    if not address or not address.strip():
        raise ValueError("Address cannot be empty")

    address = address.strip()
    if not ETH_ADDRESS_REGEX.match(address):
        raise ValueError(f"Invalid wallet address: {address} (expected 0x + 40 hex characters)")

    return address.lower()


def validate_positive_number(value: float, name: str) -> float:
    """Validate that a number is positive"""
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


class WalletAddressParam(BaseModel):
    """Validated ``analyze`` argument"""

    address: str

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        return validate_eth_address(v)


class DiscoveryParams(BaseModel):
    """Validated ``discover`` arguments"""

    sample_size: int = Field(default=settings.DISCOVERY_SAMPLE_SIZE, le=100000)
    max_wallets: int = Field(default=settings.DISCOVERY_MAX_WALLETS, le=1000)
    continuous: bool = False

    @field_validator("sample_size", "max_wallets")
    @classmethod
    def validate_counts(cls, v: int, info) -> int:
        return int(validate_positive_number(v, info.field_name))


class ArbitrageParams(BaseModel):
    """Validated ``arbitrage`` arguments"""

    threshold: float = Field(default=settings.ARBITRAGE_THRESHOLD, gt=0.0, le=1.0)
    max_markets: int = Field(default=settings.MAX_ACTIVE_MARKETS)

    @field_validator("max_markets")
    @classmethod
    def validate_max_markets(cls, v: int) -> int:
        return int(validate_positive_number(v, "max_markets"))
