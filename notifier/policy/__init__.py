"""Send policy: consent, security exemption and must-send overrides."""

from .categories import (
    CATEGORY_POLICIES,
    CategoryPolicy,
    get_category_policy,
    is_must_send,
    is_product_essential,
    is_security_exempt,
    requires_consent,
    template_for,
)
from .engine import (
    OPTED_OUT_REASON,
    ConsentService,
    ConsentState,
    PolicyDecision,
    PolicyEngine,
    StaticConsentService,
    policy_summary,
)

__all__ = [
    "CATEGORY_POLICIES",
    "CategoryPolicy",
    "ConsentService",
    "ConsentState",
    "OPTED_OUT_REASON",
    "PolicyDecision",
    "PolicyEngine",
    "StaticConsentService",
    "get_category_policy",
    "is_must_send",
    "is_product_essential",
    "is_security_exempt",
    "policy_summary",
    "requires_consent",
    "template_for",
]
