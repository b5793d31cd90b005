"""Shared enums and numeric coercion used across the domain models."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class Outcome(str, Enum):
    """Outcome token of a binary market, or a market's resolution."""

    YES = "YES"
    NO = "NO"
    UNRESOLVED = "UNRESOLVED"

    @classmethod
    def from_index(cls, index: Any) -> "Outcome":
        """Map a binary outcome index (0 = YES, 1 = NO) to an Outcome."""
        try:
            value = int(index)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid outcome index: {index!r}") from exc
        if value == 0:
            return cls.YES
        if value == 1:
            return cls.NO
        raise ValueError(f"Outcome index out of range for binary market: {index!r}")

    @classmethod
    def from_label(cls, label: Any) -> "Outcome":
        """Map an outcome label ("Yes"/"No") to an Outcome."""
        text = str(label or "").strip().upper()
        if text in ("YES", "Y"):
            return cls.YES
        if text in ("NO", "N"):
            return cls.NO
        raise ValueError(f"Unknown outcome label: {label!r}")


class Side(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


ZERO = Decimal("0")
ONE = Decimal("1")


def to_decimal(value: Any) -> Decimal:
    """Convert an API number (str/int/float/Decimal) to Decimal.

    Floats go through ``str`` so 0.3 stays 0.3 rather than its binary
    expansion.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid numeric value: {value!r}")
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, TypeError, ValueError) as exc:
            raise ValueError(f"Invalid numeric value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Non-finite numeric value: {value!r}")
    return result
