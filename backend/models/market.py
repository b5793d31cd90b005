from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime
import json

from models.types import Outcome
from utils.utcnow import parse_timestamp

# A settled binary market prices the winning token at ~$1
RESOLUTION_PRICE_THRESHOLD = 0.9


def _parse_maybe_json_list(raw: object) -> list[object]:
    """Accept list values directly or parse JSON-encoded list strings."""
    if raw is None:
        return []
    if isinstance(raw, list):
        return raw
    if isinstance(raw, tuple):
        return list(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except (json.JSONDecodeError, TypeError):
            return []
        if isinstance(parsed, list):
            return parsed
    return []


def _parse_float(raw: object) -> float:
    try:
        return float(raw or 0)
    except (TypeError, ValueError):
        return 0.0


def resolution_from_prices(outcome_prices: list[float]) -> Outcome:
    """Determine the winning outcome from a binary market's settled prices.

    Returns UNRESOLVED when the market is not binary or neither side has
    settled near $1.
    """
    if len(outcome_prices) != 2:
        return Outcome.UNRESOLVED
    if outcome_prices[0] > RESOLUTION_PRICE_THRESHOLD:
        return Outcome.YES
    if outcome_prices[1] > RESOLUTION_PRICE_THRESHOLD:
        return Outcome.NO
    return Outcome.UNRESOLVED


class Market(BaseModel):
    """Represents a single prediction market"""

    model_config = ConfigDict(frozen=True)

    condition_id: str
    question: str
    slug: str = ""
    outcome_prices: tuple[float, ...] = ()
    resolution: Outcome = Outcome.UNRESOLVED
    resolved_at: Optional[datetime] = None
    active: bool = True
    closed: bool = False
    volume: float = 0.0
    liquidity: float = 0.0

    @classmethod
    def from_gamma_response(cls, data: dict) -> "Market":
        """Parse market from Gamma API response"""
        if not isinstance(data, dict):
            raise ValueError(f"Market payload must be an object, got {type(data).__name__}")

        condition_id = str(data.get("conditionId") or data.get("condition_id") or "").strip()
        if not condition_id:
            raise ValueError("Market payload has no condition id")

        # Parse stringified JSON fields
        outcome_prices: list[float] = []
        for price in _parse_maybe_json_list(
            data.get("outcomePrices", data.get("outcome_prices"))
        ):
            try:
                outcome_prices.append(float(price))
            except (TypeError, ValueError):
                continue

        closed = bool(data.get("closed", False))
        resolution = resolution_from_prices(outcome_prices) if closed else Outcome.UNRESOLVED
        resolved_at = None
        if resolution != Outcome.UNRESOLVED:
            resolved_at = parse_timestamp(
                data.get("closedTime") or data.get("umaEndDate") or data.get("endDate")
            )

        return cls(
            condition_id=condition_id,
            question=data.get("question", "") or "",
            slug=data.get("slug", "") or "",
            outcome_prices=tuple(outcome_prices),
            resolution=resolution,
            resolved_at=resolved_at,
            active=bool(data.get("active", True)),
            closed=closed,
            volume=_parse_float(data.get("volume") or data.get("volumeNum")),
            liquidity=_parse_float(data.get("liquidity") or data.get("liquidityNum")),
        )

    @property
    def is_resolved(self) -> bool:
        return self.resolution != Outcome.UNRESOLVED

    @property
    def yes_price(self) -> float:
        """Get YES token price"""
        if self.outcome_prices and len(self.outcome_prices) > 0:
            return self.outcome_prices[0]
        return 0.0

    @property
    def no_price(self) -> float:
        """Get NO token price"""
        if self.outcome_prices and len(self.outcome_prices) > 1:
            return self.outcome_prices[1]
        return 0.0
