"""Composers: one pure function per message category.

Each composer takes typed domain data plus the AppConfig and returns a
ComposedMessage. Composers never touch storage or the dispatcher, and the
only clock they read is the optional `now` argument (default: current UTC).
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from pydantic import ValidationError

from notifier.config.models import AppConfig
from notifier.domain.models import (
    Attachment,
    ComposedMessage,
    MessageCategory,
    TemplateReference,
    VariableValue,
)
from notifier.exceptions import CompositionError
from notifier.utils.timestamps import ensure_utc, utc_now
from . import idempotency
from .common import with_common_variables
from .content import get_renderer
from .locale import format_currency, format_date, resolve_language
from .messages import message
from .models import (
    EmailVerificationData,
    FeedbackData,
    InterviewReminderData,
    LowCreditsData,
    PasswordResetData,
    PurchaseReceiptData,
    TransactionalData,
    UserContext,
    WelcomeData,
)

DEFAULT_FREE_CREDITS = 1

PAYMENT_PROVIDER_NAMES = {
    "mercadopago": "Mercado Pago",
    "paypal": "PayPal",
}


def _require(category: MessageCategory, field: str, value: Optional[str]) -> str:
    """Return value stripped, or raise CompositionError if it is blank."""
    if value is None or not str(value).strip():
        raise CompositionError(category.value, field)
    return str(value).strip()


def _now(now: Optional[datetime]) -> datetime:
    return ensure_utc(now) if now is not None else utc_now()


def _first_name(user: UserContext, default: str = "") -> str:
    return (user.first_name or "").strip() or default


def _number_text(value: float) -> str:
    """Render 85.0 as '85' and 85.5 as '85.5'."""
    return str(int(value)) if float(value).is_integer() else str(value)


def _build(category: MessageCategory, **fields: Any) -> ComposedMessage:
    try:
        return ComposedMessage(category=category, **fields)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(loc) for loc in first["loc"]) or "message"
        raise CompositionError(
            category.value, field, f"Cannot compose {category.value}: {first['msg']} ({field})"
        ) from e


def compose_welcome(
    data: WelcomeData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Welcome message for a new account (template welcome_b2c)."""
    category = MessageCategory.WELCOME
    owner_id = _require(category, "user.owner_id", data.user.owner_id)
    email = _require(category, "user.email", data.user.email)
    now = _now(now)
    language = resolve_language(data.user.preferred_language, config.localization)

    free_credits = data.free_credits if data.free_credits is not None else DEFAULT_FREE_CREDITS
    variables = with_common_variables(
        {
            "free_credits": str(free_credits),
            "CANDIDATE_FIRST_NAME": _first_name(data.user, "there"),
        },
        config,
        now,
    )

    return _build(
        category,
        recipient_address=email,
        sender_identity=config.senders.welcome,
        template_reference=TemplateReference.WELCOME_B2C,
        variables=variables,
        idempotency_key=idempotency.welcome_key(owner_id),
        owner_id=owner_id,
        language=language,
    )


def compose_feedback(
    data: FeedbackData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Interview feedback message (template feedback), with the PDF report attached if given."""
    category = MessageCategory.INTERVIEW_COMPLETE
    owner_id = _require(category, "user.owner_id", data.user.owner_id)
    email = _require(category, "user.email", data.user.email)
    interview_id = _require(category, "interview_id", data.interview_id)
    now = _now(now)
    language = resolve_language(data.user.preferred_language, config.localization)
    interview = data.interview

    specific: Dict[str, VariableValue] = {
        "CANDIDATE_FIRST_NAME": _first_name(data.user, "Candidate"),
        "ROLE_TITLE": (interview.job_title or "").strip() or "Interview",
    }

    if interview.company_name and interview.company_name.strip():
        specific["TARGET_COMPANY"] = interview.company_name.strip()
    if interview.language and interview.language.strip():
        specific["INTERVIEW_LANGUAGE"] = interview.language.strip()
    if interview.seniority and interview.seniority.strip():
        specific["SENIORITY"] = interview.seniority.strip()
    if interview.duration_minutes:
        specific["DURATION_MIN"] = str(interview.duration_minutes)
    if interview.completed_at is not None:
        specific["INTERVIEW_DATE"] = format_date(interview.completed_at, language)

    feedback = data.feedback
    if feedback is not None:
        if feedback.overall_score is not None:
            specific["OVERALL_SCORE"] = _number_text(feedback.overall_score)
        if feedback.topics_covered:
            specific["TOPICS_COVERED"] = ", ".join(feedback.topics_covered)

        for num, strength in enumerate(feedback.strengths[:3], start=1):
            specific[f"STRENGTH_{num}"] = strength.text
            if strength.timestamp:
                specific[f"STRENGTH_{num}_TS"] = strength.timestamp

        for num, improvement in enumerate(feedback.improvements[:3], start=1):
            specific[f"IMPROVEMENT_{num}"] = improvement

        for num, rubric in enumerate(feedback.rubrics[:3], start=1):
            specific[f"RUBRIC_{num}_NAME"] = rubric.name
            specific[f"RUBRIC_{num}_SCORE"] = _number_text(rubric.score)
            specific[f"RUBRIC_{num}_PCT"] = _number_text(rubric.percentage)
            if rubric.evidence_timestamp:
                specific[f"RUBRIC_{num}_EVIDENCE_TS"] = rubric.evidence_timestamp
            if rubric.evidence_note:
                specific[f"RUBRIC_{num}_EVIDENCE_NOTE"] = rubric.evidence_note

    specific["FEEDBACK_URL"] = config.branding.url_for(f"/interviews/{interview_id}/feedback")

    attachments: List[Attachment] = []
    if data.pdf_attachment is not None:
        attachments.append(data.pdf_attachment)

    return _build(
        category,
        recipient_address=email,
        sender_identity=config.senders.feedback,
        template_reference=TemplateReference.FEEDBACK,
        variables=with_common_variables(specific, config, now),
        attachments=tuple(attachments),
        idempotency_key=idempotency.interview_complete_key(owner_id, interview_id),
        owner_id=owner_id,
        language=language,
    )


def compose_transactional(
    data: TransactionalData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Shared builder for every category on the transactional template."""
    category = MessageCategory(data.category)
    owner_id = _require(category, "user.owner_id", data.user.owner_id)
    email = _require(category, "user.email", data.user.email)
    idempotency_key = _require(category, "idempotency_key", data.idempotency_key)
    now = _now(now)

    variables = with_common_variables(
        {
            "preheader": data.preheader,
            "subject": data.subject,
            "reason": data.reason,
            "header": data.header,
            "header_highlight": data.header_highlight,
            "content": data.content_html,
        },
        config,
        now,
    )

    return _build(
        category,
        recipient_address=email,
        sender_identity=config.senders.transactional,
        template_reference=TemplateReference.TRANSACTIONAL,
        variables=variables,
        subject=data.subject,
        idempotency_key=idempotency_key,
        owner_id=owner_id,
        language=data.language,
    )


def _transactional(
    category: MessageCategory,
    prefix: str,
    user: UserContext,
    language: str,
    content_html: str,
    idempotency_key: str,
    config: AppConfig,
    now: datetime,
) -> ComposedMessage:
    product = config.branding.product_name
    return compose_transactional(
        TransactionalData(
            user=user,
            category=category,
            subject=message(language, f"{prefix}.subject", product=product),
            preheader=message(language, f"{prefix}.preheader"),
            header=message(language, f"{prefix}.header"),
            header_highlight=message(language, f"{prefix}.header_highlight"),
            reason=message(language, f"{prefix}.reason"),
            content_html=content_html,
            idempotency_key=idempotency_key,
            language=language,
        ),
        config,
        now,
    )


def compose_purchase_receipt(
    data: PurchaseReceiptData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Purchase receipt; keyed by payment so a webhook replay never sends twice."""
    category = MessageCategory.CREDITS_PURCHASE_RECEIPT
    _require(category, "user.owner_id", data.user.owner_id)
    _require(category, "user.email", data.user.email)
    payment_id = _require(category, "payment_id", data.payment_id)
    provider = _require(category, "provider", data.provider)
    now = _now(now)
    language = resolve_language(data.user.preferred_language, config.localization)

    rows = [
        (message(language, "receipt.credits_purchased"), str(data.credits_amount)),
        (
            message(language, "receipt.amount_paid"),
            format_currency(data.amount_paid, data.currency, language),
        ),
        (
            message(language, "receipt.provider"),
            PAYMENT_PROVIDER_NAMES.get(provider.lower(), provider.title()),
        ),
        (message(language, "receipt.new_balance"), str(data.new_balance)),
        (message(language, "receipt.transaction_id"), payment_id),
        (message(language, "receipt.paid_at"), format_date(data.paid_at, language, with_time=True)),
    ]
    content_html = get_renderer().render("purchase_receipt.html.j2", {"rows": rows})

    return _transactional(
        category,
        "receipt",
        data.user,
        language,
        content_html,
        idempotency.purchase_key(provider, payment_id),
        config,
        now,
    )


def compose_low_credits(
    data: LowCreditsData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Low balance warning; at most one per owner, threshold and UTC day."""
    category = MessageCategory.LOW_CREDITS_WARNING
    owner_id = _require(category, "user.owner_id", data.user.owner_id)
    _require(category, "user.email", data.user.email)
    now = _now(now)
    language = resolve_language(data.user.preferred_language, config.localization)

    remaining_key = (
        "low_credits.remaining_one" if data.current_credits == 1 else "low_credits.remaining_many"
    )
    content_html = get_renderer().render(
        "low_credits.html.j2",
        {
            "greeting": message(language, "greeting"),
            "first_name": _first_name(data.user),
            "remaining": message(language, remaining_key, count=data.current_credits),
            "body": message(language, "low_credits.body", product=config.branding.product_name),
            "credits_url": config.branding.url_for(config.branding.credits_path),
            "cta": message(language, "low_credits.cta"),
        },
    )

    return _transactional(
        category,
        "low_credits",
        data.user,
        language,
        content_html,
        idempotency.low_credits_key(owner_id, data.threshold, now),
        config,
        now,
    )


def compose_password_reset(
    data: PasswordResetData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Password reset link; the key carries only a fingerprint of the token."""
    category = MessageCategory.PASSWORD_RESET
    owner_id = _require(category, "user.owner_id", data.user.owner_id)
    _require(category, "user.email", data.user.email)
    token = _require(category, "reset_token", data.reset_token)
    now = _now(now)
    language = resolve_language(data.user.preferred_language, config.localization)
    product = config.branding.product_name

    content_html = get_renderer().render(
        "password_reset.html.j2",
        {
            "greeting": message(language, "greeting"),
            "first_name": _first_name(data.user),
            "body": message(language, "reset.body", product=product),
            "reset_url": config.branding.url_for(
                f"/auth/password-confirm?token={quote(token, safe='')}"
            ),
            "cta": message(language, "reset.cta"),
            "expiry": message(language, "reset.expiry"),
        },
    )

    return _transactional(
        category,
        "reset",
        data.user,
        language,
        content_html,
        idempotency.password_reset_key(owner_id, token),
        config,
        now,
    )


def compose_email_verification(
    data: EmailVerificationData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Email verification code; the key carries only a fingerprint of owner and code."""
    category = MessageCategory.EMAIL_VERIFICATION
    owner_id = _require(category, "user.owner_id", data.user.owner_id)
    email = _require(category, "user.email", data.user.email)
    code = _require(category, "verification_code", data.verification_code)
    now = _now(now)
    language = resolve_language(data.user.preferred_language, config.localization)
    product = config.branding.product_name

    content_html = get_renderer().render(
        "email_verification.html.j2",
        {
            "greeting": message(language, "greeting"),
            "first_name": _first_name(data.user),
            "body": message(language, "verify.body", product=product),
            "code": code,
            "verify_url": config.branding.url_for(
                f"/auth/verify-email?email={quote(email, safe='')}"
            ),
            "cta": message(language, "verify.cta"),
        },
    )

    return _transactional(
        category,
        "verify",
        data.user,
        language,
        content_html,
        idempotency.email_verification_key(owner_id, code),
        config,
        now,
    )


def compose_interview_reminder(
    data: InterviewReminderData, config: AppConfig, now: Optional[datetime] = None
) -> ComposedMessage:
    """Reminder for a scheduled interview, or a weekly engagement nudge without one."""
    category = MessageCategory.INTERVIEW_REMINDER
    owner_id = _require(category, "user.owner_id", data.user.owner_id)
    _require(category, "user.email", data.user.email)
    now = _now(now)
    language = resolve_language(data.user.preferred_language, config.localization)

    interview_id = (data.interview_id or "").strip()
    role = (data.role_title or "").strip() or message(language, "reminder.default_role")

    if interview_id:
        key = idempotency.interview_reminder_key(owner_id, interview_id)
        action_url = config.branding.url_for(f"/interviews/{interview_id}")
        if data.scheduled_at is not None:
            body = message(
                language,
                "reminder.scheduled",
                role=role,
                when=format_date(data.scheduled_at, language, with_time=True),
            )
        else:
            body = message(language, "reminder.pending", role=role)
    else:
        key = idempotency.engagement_reminder_key(owner_id, now)
        action_url = config.branding.url_for(config.branding.dashboard_path)
        body = message(language, "reminder.engagement")

    content_html = get_renderer().render(
        "interview_reminder.html.j2",
        {
            "greeting": message(language, "greeting"),
            "first_name": _first_name(data.user),
            "body": body,
            "action_url": action_url,
            "cta": message(language, "reminder.cta"),
        },
    )

    return _transactional(category, "reminder", data.user, language, content_html, key, config, now)
