"""Core domain models for the notification pipeline.

This module defines the data structures shared by every component:
- MessageCategory / TemplateReference: the closed sets of send reasons and
  provider-side templates
- ComposedMessage: the immutable outbound message produced by the composer
- DeliveryRecord: the durable lifecycle row for one idempotency key
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from pydantic import BaseModel, EmailStr, Field, field_validator

from notifier.utils.timestamps import ensure_utc

VariableValue = Union[str, int, float]


class MessageCategory(str, Enum):
    """Business reasons a message can be sent."""

    WELCOME = "WELCOME"
    INTERVIEW_COMPLETE = "INTERVIEW_COMPLETE"
    CREDITS_PURCHASE_RECEIPT = "CREDITS_PURCHASE_RECEIPT"
    LOW_CREDITS_WARNING = "LOW_CREDITS_WARNING"
    PASSWORD_RESET = "PASSWORD_RESET"
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    INTERVIEW_REMINDER = "INTERVIEW_REMINDER"


class TemplateReference(str, Enum):
    """Provider-side template identifiers."""

    WELCOME_B2C = "welcome_b2c"
    FEEDBACK = "feedback"
    TRANSACTIONAL = "transactional"


class DeliveryStatus(str, Enum):
    """Delivery record lifecycle: PENDING -> SENDING -> SENT | FAILED."""

    PENDING = "PENDING"
    SENDING = "SENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class ErrorType(str, Enum):
    """Why a delivery record ended up FAILED."""

    TEMPLATE_VALIDATION_ERROR = "TEMPLATE_VALIDATION_ERROR"
    PROVIDER_ERROR = "PROVIDER_ERROR"
    STALE_SENDING = "STALE_SENDING"


class Attachment(BaseModel):
    """File attached to an outbound message."""

    filename: str = Field(..., min_length=1)
    content: bytes = Field(..., description="Raw file bytes")
    content_type: str = Field("application/pdf")

    model_config = {"frozen": True}


class ComposedMessage(BaseModel):
    """Fully specified outbound message.

    Built once per logical notification and never mutated. A retry builds a
    new ComposedMessage with the same idempotency_key from the same inputs.
    """

    recipient_address: EmailStr
    sender_identity: str = Field(..., min_length=1)
    template_reference: TemplateReference
    variables: Dict[str, VariableValue] = Field(default_factory=dict)
    attachments: Tuple[Attachment, ...] = ()
    category: MessageCategory
    idempotency_key: str = Field(..., min_length=1)
    owner_id: str = Field(..., min_length=1)
    subject: Optional[str] = None
    language: str = "en"

    model_config = {"frozen": True}

    def variable_keys(self) -> list[str]:
        """Return variable names in sorted order."""
        return sorted(self.variables)


class DeliveryRecord(BaseModel):
    """Durable lifecycle record for one idempotency key.

    The audit trail of every dispatch attempt. provider_message_id is set
    exactly when status is SENT.
    """

    id: str = Field(..., description="Record identifier (uuid4)")
    owner_id: str
    recipient_address: str
    category: MessageCategory
    status: DeliveryStatus
    provider: str
    provider_message_id: Optional[str] = None
    idempotency_key: str
    retry_count: int = Field(0, ge=0, description="Number of transitions into SENDING")
    last_error: Optional[str] = None
    error_type: Optional[ErrorType] = None
    payload_json: Optional[str] = Field(None, description="Audit snapshot of the composed message")
    language: Optional[str] = None
    sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("sent_at", "created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Ensure datetime is timezone-aware and in UTC."""
        return ensure_utc(v)

    @property
    def is_terminal(self) -> bool:
        return self.status == DeliveryStatus.SENT

    model_config = {"json_schema_extra": {"example": {
        "id": "0b5d3f8e-8f53-4b39-9d9e-3d7c6f1d2a11",
        "owner_id": "U1",
        "recipient_address": "ana@example.com",
        "category": "CREDITS_PURCHASE_RECEIPT",
        "status": "SENT",
        "provider": "resend",
        "provider_message_id": "m1",
        "idempotency_key": "purchase:mercadopago:P1",
        "retry_count": 1,
        "language": "pt",
        "sent_at": "2024-05-01T12:00:01Z",
        "created_at": "2024-05-01T12:00:00Z",
        "updated_at": "2024-05-01T12:00:01Z",
    }}}
