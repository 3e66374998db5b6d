"""Policy engine: may a message of this category go to this owner?

Security-exempt and must-send categories are allowed without a consent
lookup. Everything else asks the consent service; an explicit opt-out is
refused, while a failing lookup is allowed (fail-open) and logged.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol

from notifier.domain.models import MessageCategory
from notifier.logging import get_logger
from .categories import CATEGORY_POLICIES, get_category_policy

logger = get_logger(__name__, component="policy")

OPTED_OUT_REASON = "opted out"


@dataclass(frozen=True)
class ConsentState:
    """Owner's consent as reported by the consent service."""

    transactional_opt_in: bool


class ConsentService(Protocol):
    """External consent lookup. May raise on infrastructure failure."""

    def get_consent_state(self, owner_id: str) -> ConsentState:
        ...


class StaticConsentService:
    """In-memory consent service: everyone is opted in unless listed."""

    def __init__(self, opted_out: Optional[Iterable[str]] = None):
        self.opted_out = set(opted_out or [])

    def get_consent_state(self, owner_id: str) -> ConsentState:
        return ConsentState(transactional_opt_in=owner_id not in self.opted_out)

    def opt_out(self, owner_id: str) -> None:
        self.opted_out.add(owner_id)

    def opt_in(self, owner_id: str) -> None:
        self.opted_out.discard(owner_id)


@dataclass(frozen=True)
class PolicyDecision:
    """Outcome of a policy check."""

    allowed: bool
    reason: Optional[str] = None


class PolicyEngine:
    """Decides whether a send is permitted. No side effects beyond logging."""

    def __init__(self, consent_service: ConsentService):
        self.consent_service = consent_service

    def can_send(self, owner_id: str, category: MessageCategory) -> PolicyDecision:
        """
        Check whether a message of `category` may be sent to `owner_id`.

        Args:
            owner_id: Recipient account identifier
            category: Message category

        Returns:
            PolicyDecision with allowed=False and reason="opted out" only on
            an explicit opt-out
        """
        policy = get_category_policy(category)

        if not policy.requires_consent:
            logger.debug(
                "Send allowed without consent lookup",
                extra={
                    "event": "policy.bypass",
                    "owner_id": owner_id,
                    "category": policy.category.value,
                    "security_exempt": policy.security_exempt,
                    "must_send": policy.must_send,
                },
            )
            return PolicyDecision(allowed=True)

        try:
            consent = self.consent_service.get_consent_state(owner_id)
        except Exception as e:
            logger.warning(
                f"Consent check failed, allowing send: {e}",
                extra={
                    "event": "policy.consent_lookup_failed",
                    "owner_id": owner_id,
                    "category": policy.category.value,
                    "error_type": type(e).__name__,
                },
            )
            return PolicyDecision(allowed=True, reason="consent lookup failed")

        if not consent.transactional_opt_in:
            logger.info(
                "Send blocked: owner opted out",
                extra={
                    "event": "policy.opted_out",
                    "owner_id": owner_id,
                    "category": policy.category.value,
                },
            )
            return PolicyDecision(allowed=False, reason=OPTED_OUT_REASON)

        return PolicyDecision(allowed=True)


def policy_summary() -> List[Dict[str, object]]:
    """Classification of every category, for admin and debugging output."""
    return [
        {
            "category": policy.category.value,
            "template": policy.template.value,
            "security_exempt": policy.security_exempt,
            "must_send": policy.must_send,
            "product_essential": policy.product_essential,
            "requires_consent": policy.requires_consent,
        }
        for policy in CATEGORY_POLICIES.values()
    ]
