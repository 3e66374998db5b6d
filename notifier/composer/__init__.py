"""Message composition: pure builders from domain data to ComposedMessage."""

from .builders import (
    DEFAULT_FREE_CREDITS,
    compose_email_verification,
    compose_feedback,
    compose_interview_reminder,
    compose_low_credits,
    compose_password_reset,
    compose_purchase_receipt,
    compose_transactional,
    compose_welcome,
)
from .common import common_variables, with_common_variables
from .content import ContentRenderer
from .locale import format_currency, format_date, locale_for, resolve_language
from .models import (
    EmailVerificationData,
    FeedbackData,
    FeedbackDetails,
    InterviewDetails,
    InterviewReminderData,
    LowCreditsData,
    PasswordResetData,
    PurchaseReceiptData,
    RubricScore,
    Strength,
    TransactionalData,
    UserContext,
    WelcomeData,
)

__all__ = [
    # Composers
    "compose_welcome",
    "compose_feedback",
    "compose_transactional",
    "compose_purchase_receipt",
    "compose_low_credits",
    "compose_password_reset",
    "compose_email_verification",
    "compose_interview_reminder",
    "DEFAULT_FREE_CREDITS",
    # Helpers
    "common_variables",
    "with_common_variables",
    "resolve_language",
    "locale_for",
    "format_date",
    "format_currency",
    "ContentRenderer",
    # Inputs
    "UserContext",
    "WelcomeData",
    "FeedbackData",
    "InterviewDetails",
    "FeedbackDetails",
    "Strength",
    "RubricScore",
    "TransactionalData",
    "PurchaseReceiptData",
    "LowCreditsData",
    "PasswordResetData",
    "EmailVerificationData",
    "InterviewReminderData",
]
