from decimal import Decimal
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from models.types import Outcome, Side, to_decimal
from utils.utcnow import parse_timestamp


class Trade(BaseModel):
    """A single fill from the Data API, attributed to one wallet"""

    model_config = ConfigDict(frozen=True)

    wallet_address: str
    market_id: str  # condition id
    side: Side
    outcome: Outcome
    quantity: Decimal
    price: Decimal
    timestamp: Optional[datetime] = None
    title: str = ""
    trader_name: Optional[str] = None

    @classmethod
    def from_data_api_response(cls, data: dict) -> "Trade":
        """Parse a Data API ``/trades`` row.

        Raises ValueError when the row lacks a wallet, market, side, outcome
        or a usable size/price.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Trade payload must be an object, got {type(data).__name__}")

        wallet = str(data.get("proxyWallet") or data.get("user") or "").strip().lower()
        if not wallet:
            raise ValueError("Trade payload has no wallet address")

        market_id = str(data.get("conditionId") or data.get("market") or "").strip()
        if not market_id:
            raise ValueError("Trade payload has no market id")

        side_raw = str(data.get("side") or "").strip().upper()
        try:
            side = Side(side_raw)
        except ValueError as exc:
            raise ValueError(f"Unknown trade side: {data.get('side')!r}") from exc

        # outcomeIndex is authoritative; labels vary (Yes/No, Up/Down, team names)
        if data.get("outcomeIndex") is not None:
            outcome = Outcome.from_index(data.get("outcomeIndex"))
        else:
            outcome = Outcome.from_label(data.get("outcome"))

        quantity = to_decimal(data.get("size"))
        price = to_decimal(data.get("price"))
        if quantity < 0 or price < 0:
            raise ValueError("Trade size and price must be non-negative")

        trader_name = data.get("name") or data.get("pseudonym") or None

        return cls(
            wallet_address=wallet,
            market_id=market_id,
            side=side,
            outcome=outcome,
            quantity=quantity,
            price=price,
            timestamp=parse_timestamp(data.get("timestamp")),
            title=data.get("title", "") or "",
            trader_name=trader_name,
        )

    @property
    def notional(self) -> Decimal:
        return self.quantity * self.price
