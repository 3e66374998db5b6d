"""Hashing helpers for idempotency keys.

Secrets (reset tokens, verification codes) never appear in idempotency keys;
only a prefix of their SHA256 digest does.
"""

import hashlib


def hash_string(value: str) -> str:
    """Compute the SHA256 hex digest of a string (64 characters)."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def token_fingerprint(value: str, length: int = 16) -> str:
    """Return the first `length` hex characters of the SHA256 digest of value.

    Example:
        >>> len(token_fingerprint("reset-token"))
        16
    """
    return hash_string(value)[:length]
