"""
UTC timestamp utilities.

The container engine reports RFC 3339 timestamps with nanosecond
precision (``2024-03-01T12:00:00.123456789Z``) and uses the zero time
``0001-01-01T00:00:00Z`` for "never". SQLite hands datetimes back
without tzinfo. Everything here normalises to timezone-aware UTC.

STDLIB ONLY.
"""

import re
from datetime import UTC, datetime

_ENGINE_ZERO_TIME = "0001-01-01T00:00:00Z"

_FRACTION = re.compile(r"\.(\d+)")


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_engine_timestamp(value: str | None) -> datetime | None:
    """
    Parse a container engine timestamp.

    Returns ``None`` for empty values and the engine's zero time.
    Raises ``ValueError`` when the string is not a timestamp.

    Examples:
        >>> parse_engine_timestamp("2024-03-01T12:00:00.123456789Z")
        datetime.datetime(2024, 3, 1, 12, 0, 0, 123456, tzinfo=datetime.timezone.utc)
        >>> parse_engine_timestamp("0001-01-01T00:00:00Z") is None
        True
    """
    if not value or value == _ENGINE_ZERO_TIME:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    # fromisoformat accepts at most microseconds
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)

    parsed = datetime.fromisoformat(text)
    if parsed.year <= 1:
        return None
    return ensure_utc(parsed)


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from *start* to *end*, never negative."""
    delta = ensure_utc(end) - ensure_utc(start)
    return max(0, int(delta.total_seconds()))
