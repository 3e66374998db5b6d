"""Redaction helpers for log output."""

from typing import Optional


def redact_address(address: Optional[str]) -> str:
    """Mask the local part of an email address for logging.

    Example:
        >>> redact_address("ana.souza@example.com")
        'an***@example.com'
    """
    if not address:
        return ""

    local, sep, domain = address.partition("@")
    if not sep:
        return "***"

    return f"{local[:2]}***@{domain}"


def truncate_error(message: str, max_length: int) -> str:
    """Truncate an error message for storage, marking the cut with an ellipsis."""
    if len(message) <= max_length:
        return message
    return message[: max(max_length - 3, 0)] + "..."
