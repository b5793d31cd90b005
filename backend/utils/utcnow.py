"""UTC helpers.

The codebase works with **naive** UTC datetimes throughout; these helpers
produce them without the deprecated ``datetime.utcnow()`` family and parse
the mixed timestamp encodings (unix seconds, numeric strings, ISO-8601)
that the Polymarket APIs return.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Return the current UTC time as a naive (tzinfo=None) datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def utcfromtimestamp(ts: float) -> datetime:
    """Convert a POSIX timestamp to a naive UTC datetime."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


def parse_timestamp(raw: object) -> Optional[datetime]:
    """Parse a raw timestamp value into a naive UTC datetime, or None."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        if raw.tzinfo is not None:
            return raw.astimezone(timezone.utc).replace(tzinfo=None)
        return raw
    if isinstance(raw, (int, float)):
        try:
            # Millisecond timestamps show up on some endpoints
            return utcfromtimestamp(raw / 1000 if raw > 1e12 else raw)
        except (ValueError, OSError, OverflowError):
            return None
    if isinstance(raw, str):
        text = raw.strip()
        if text.replace(".", "", 1).isdigit():
            return parse_timestamp(float(text))
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except (ValueError, TypeError):
            return None
        return parse_timestamp(parsed)
    return None
