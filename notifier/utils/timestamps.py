"""Timestamp utilities for UTC handling.

Delivery records store timestamps as ISO 8601 strings with a 'Z' suffix so
that lexical order matches chronological order in any backend.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    Naive datetimes are treated as UTC; aware ones are converted.

    Example:
        >>> naive = datetime(2024, 5, 1, 12, 0, 0)
        >>> ensure_utc(naive).tzinfo == timezone.utc
        True
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def format_storage_timestamp(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for database storage (microsecond precision, UTC)."""
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return None
    return dt_utc.strftime(STORAGE_FORMAT)


def parse_storage_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO 8601 string back to an aware UTC datetime.

    Accepts values with or without microseconds.
    """
    if not value:
        return None

    raw = value.rstrip("Z")
    try:
        dt = datetime.strptime(raw, "%Y-%m-%dT%H:%M:%S.%f")
    except ValueError:
        dt = datetime.strptime(raw, "%Y-%m-%dT%H:%M:%S")

    return dt.replace(tzinfo=timezone.utc)


def format_timestamp_for_log(dt: datetime) -> str:
    """Format a datetime for structured logging, e.g. '2024-05-01T12:00:00Z'."""
    dt_utc = ensure_utc(dt)
    if dt_utc is None:
        return ""
    return dt_utc.strftime("%Y-%m-%dT%H:%M:%SZ")


def calendar_date(dt: datetime) -> str:
    """Return the UTC calendar date of dt as YYYY-MM-DD."""
    return ensure_utc(dt).date().isoformat()


def week_start(dt: datetime) -> date:
    """Return the Sunday that starts the (UTC) week containing dt."""
    day = ensure_utc(dt).date()
    # weekday(): Monday=0 ... Sunday=6
    return day - timedelta(days=(day.weekday() + 1) % 7)
