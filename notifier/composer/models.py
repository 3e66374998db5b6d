"""Typed domain inputs for the composers.

These are never raw datastore rows. Required identifiers are plain strings;
the composers reject blank ones with CompositionError.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from notifier.domain.models import Attachment, MessageCategory
from notifier.utils.timestamps import ensure_utc


class UserContext(BaseModel):
    """Recipient account."""

    owner_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    preferred_language: Optional[str] = None


class WelcomeData(BaseModel):
    user: UserContext
    free_credits: Optional[int] = Field(None, ge=0)


class InterviewDetails(BaseModel):
    job_title: Optional[str] = None
    company_name: Optional[str] = None
    seniority: Optional[str] = None
    language: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, ge=0)
    completed_at: Optional[datetime] = None

    @field_validator("completed_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class Strength(BaseModel):
    text: str
    timestamp: Optional[str] = None


class RubricScore(BaseModel):
    name: str
    score: float
    percentage: float
    evidence_timestamp: Optional[str] = None
    evidence_note: Optional[str] = None


class FeedbackDetails(BaseModel):
    overall_score: Optional[float] = None
    strengths: List[Strength] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    topics_covered: List[str] = Field(default_factory=list)
    rubrics: List[RubricScore] = Field(default_factory=list)


class FeedbackData(BaseModel):
    """Interview-complete message input; the PDF report is optional."""

    user: UserContext
    interview_id: str
    interview: InterviewDetails = Field(default_factory=InterviewDetails)
    feedback: Optional[FeedbackDetails] = None
    pdf_attachment: Optional[Attachment] = None


class TransactionalData(BaseModel):
    """Input for the shared transactional template."""

    user: UserContext
    category: MessageCategory
    subject: str
    preheader: str = ""
    header: str = ""
    header_highlight: str = ""
    reason: str = ""
    content_html: str
    idempotency_key: str
    language: str = "en"


class PurchaseReceiptData(BaseModel):
    user: UserContext
    payment_id: str
    provider: str = Field(..., description="Payment provider, e.g. mercadopago or paypal")
    credits_amount: int = Field(..., ge=0)
    amount_paid: float = Field(..., ge=0)
    currency: str = Field("BRL", min_length=3, max_length=3)
    new_balance: int = Field(..., ge=0)
    paid_at: datetime

    @field_validator("paid_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class LowCreditsData(BaseModel):
    user: UserContext
    current_credits: int = Field(..., ge=0)
    threshold: int = Field(..., ge=0)


class PasswordResetData(BaseModel):
    user: UserContext
    reset_token: str
    expires_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class EmailVerificationData(BaseModel):
    user: UserContext
    verification_code: str
    expires_at: Optional[datetime] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class InterviewReminderData(BaseModel):
    """Reminder for a scheduled interview, or a weekly engagement nudge when interview_id is None."""

    user: UserContext
    interview_id: Optional[str] = None
    role_title: Optional[str] = None
    scheduled_at: Optional[datetime] = None

    @field_validator("scheduled_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)
