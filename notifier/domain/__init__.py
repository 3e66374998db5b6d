"""Domain models for the notification pipeline."""

from .models import (
    Attachment,
    ComposedMessage,
    DeliveryRecord,
    DeliveryStatus,
    ErrorType,
    MessageCategory,
    TemplateReference,
    VariableValue,
)

__all__ = [
    "Attachment",
    "ComposedMessage",
    "DeliveryRecord",
    "DeliveryStatus",
    "ErrorType",
    "MessageCategory",
    "TemplateReference",
    "VariableValue",
]
