"""
Timezone helpers.

Everything is stored and compared in UTC. Naive datetimes are
assumed to be UTC.
"""

from datetime import datetime, timezone
from typing import Optional


TZ_UTC = timezone.utc


def utc_now() -> datetime:
    """
    Returns the current datetime in UTC (timezone-aware).

    Use for values written to the store and for date thresholds.
    """
    return datetime.now(TZ_UTC)


def to_utc(dt: datetime) -> datetime:
    """
    Converts a datetime to UTC.

    Args:
        dt: naive or aware datetime (naive is taken as UTC)
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=TZ_UTC)
    return dt.astimezone(TZ_UTC)


def parse_datetime(value) -> Optional[datetime]:
    """
    Parses a store/API value into an aware UTC datetime.

    Accepts datetimes and ISO 8601 strings (with or without "Z").
    Returns None for None/empty values.

    Raises:
        ValueError: if the value is not a recognizable date
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str):
        raise ValueError(f"not a date: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return to_utc(datetime.fromisoformat(text))


def iso_utc(dt: datetime | None = None) -> str:
    """
    Returns a datetime as an ISO 8601 UTC string.

    Args:
        dt: datetime to format (default: now)
    """
    if dt is None:
        dt = utc_now()
    return to_utc(dt).isoformat()
