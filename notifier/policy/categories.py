"""Message category classification table.

Every category maps to exactly one template and carries two independent
flags: security-exempt (never checks consent) and must-send (bypasses
consent but is still audited). Product-essential is informational only.
"""

from dataclasses import dataclass
from typing import Dict

from notifier.domain.models import MessageCategory, TemplateReference


@dataclass(frozen=True)
class CategoryPolicy:
    """Classification of one message category."""

    category: MessageCategory
    template: TemplateReference
    security_exempt: bool = False
    must_send: bool = False
    product_essential: bool = False

    @property
    def requires_consent(self) -> bool:
        return not (self.security_exempt or self.must_send)


CATEGORY_POLICIES: Dict[MessageCategory, CategoryPolicy] = {
    policy.category: policy
    for policy in (
        CategoryPolicy(MessageCategory.WELCOME, TemplateReference.WELCOME_B2C),
        CategoryPolicy(
            MessageCategory.INTERVIEW_COMPLETE,
            TemplateReference.FEEDBACK,
            product_essential=True,
        ),
        CategoryPolicy(
            MessageCategory.CREDITS_PURCHASE_RECEIPT,
            TemplateReference.TRANSACTIONAL,
            must_send=True,
        ),
        CategoryPolicy(MessageCategory.LOW_CREDITS_WARNING, TemplateReference.TRANSACTIONAL),
        CategoryPolicy(
            MessageCategory.PASSWORD_RESET,
            TemplateReference.TRANSACTIONAL,
            security_exempt=True,
        ),
        CategoryPolicy(
            MessageCategory.EMAIL_VERIFICATION,
            TemplateReference.TRANSACTIONAL,
            security_exempt=True,
        ),
        CategoryPolicy(MessageCategory.INTERVIEW_REMINDER, TemplateReference.TRANSACTIONAL),
    )
}


def get_category_policy(category: MessageCategory) -> CategoryPolicy:
    """Look up the classification of a category.

    Raises:
        KeyError: If the category has no classification (a programming error)
    """
    return CATEGORY_POLICIES[MessageCategory(category)]


def is_security_exempt(category: MessageCategory) -> bool:
    return get_category_policy(category).security_exempt


def is_must_send(category: MessageCategory) -> bool:
    return get_category_policy(category).must_send


def is_product_essential(category: MessageCategory) -> bool:
    return get_category_policy(category).product_essential


def requires_consent(category: MessageCategory) -> bool:
    """True unless the category is security-exempt or must-send."""
    return get_category_policy(category).requires_consent


def template_for(category: MessageCategory) -> TemplateReference:
    return get_category_policy(category).template
