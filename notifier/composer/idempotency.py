"""Deterministic idempotency keys per message category.

The same business event always yields the same key, however many times
composition runs. Secrets are reduced to a SHA256 prefix.
"""

from datetime import datetime

from notifier.utils.hashing import token_fingerprint
from notifier.utils.timestamps import calendar_date, week_start


def welcome_key(owner_id: str) -> str:
    return f"welcome:{owner_id}"


def interview_complete_key(owner_id: str, interview_id: str) -> str:
    return f"interview-complete:{owner_id}:{interview_id}"


def purchase_key(provider: str, payment_id: str) -> str:
    """
    Example:
        >>> purchase_key("mercadopago", "P1")
        'purchase:mercadopago:P1'
    """
    return f"purchase:{provider}:{payment_id}"


def low_credits_key(owner_id: str, threshold: int, now: datetime) -> str:
    """One warning per owner, threshold and UTC calendar day.

    Example:
        >>> low_credits_key("U2", 2, datetime(2024, 5, 1, 9, tzinfo=timezone.utc))
        'low-credits:U2:2:2024-05-01'
    """
    return f"low-credits:{owner_id}:{threshold}:{calendar_date(now)}"


def password_reset_key(owner_id: str, reset_token: str) -> str:
    return f"password_reset_{owner_id}_{token_fingerprint(reset_token)}"


def email_verification_key(owner_id: str, verification_code: str) -> str:
    return f"email_verify_{owner_id}_{token_fingerprint(f'{owner_id}:{verification_code}')}"


def interview_reminder_key(owner_id: str, interview_id: str) -> str:
    return f"interview-reminder:{owner_id}:{interview_id}"


def engagement_reminder_key(owner_id: str, now: datetime) -> str:
    """One engagement nudge per owner per (Sunday-start) week."""
    return f"engagement-reminder:{owner_id}:{week_start(now).isoformat()}"
