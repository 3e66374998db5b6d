"""Utility functions for hashing, time handling and log redaction."""

from .hashing import hash_string, token_fingerprint
from .redaction import redact_address, truncate_error
from .timestamps import (
    calendar_date,
    ensure_utc,
    format_storage_timestamp,
    format_timestamp_for_log,
    parse_storage_timestamp,
    utc_now,
    week_start,
)

__all__ = [
    # Hashing
    "hash_string",
    "token_fingerprint",
    # Redaction
    "redact_address",
    "truncate_error",
    # Timestamps
    "utc_now",
    "ensure_utc",
    "calendar_date",
    "week_start",
    "format_storage_timestamp",
    "parse_storage_timestamp",
    "format_timestamp_for_log",
]
