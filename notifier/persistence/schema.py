"""Database schema definition and ORM models.

Defines the delivery_records table and conversion between the ORM row and
the DeliveryRecord domain model.
"""

from sqlalchemy import Column, Index, Integer, String, Text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from notifier.domain.models import DeliveryRecord, DeliveryStatus, ErrorType, MessageCategory
from notifier.logging import get_logger
from notifier.utils.timestamps import format_storage_timestamp, parse_storage_timestamp

logger = get_logger(__name__, component="database")

Base = declarative_base()


class DeliveryRecordModel(Base):
    """ORM model for the delivery_records table.

    One row per idempotency key. Rows are never deleted; they are the audit
    trail of every dispatch attempt.
    """

    __tablename__ = "delivery_records"

    id = Column(String(36), primary_key=True, nullable=False)

    owner_id = Column(String(255), nullable=False)
    recipient_address = Column(String(320), nullable=False)
    category = Column(String(50), nullable=False)
    language = Column(String(8), nullable=True)

    status = Column(String(20), nullable=False)
    provider = Column(String(50), nullable=False)
    provider_message_id = Column(String(255), nullable=True)
    idempotency_key = Column(String(255), nullable=False, unique=True)
    retry_count = Column(Integer, nullable=False, default=0)

    last_error = Column(Text, nullable=True)
    error_type = Column(String(50), nullable=True)
    payload_json = Column(Text, nullable=True)

    # Timestamps (stored as ISO 8601 strings)
    sent_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_delivery_owner_category", "owner_id", "category"),
        Index("idx_delivery_status_updated", "status", "updated_at"),
        Index("idx_delivery_created", "created_at"),
    )

    def to_domain(self) -> DeliveryRecord:
        return DeliveryRecord(
            id=self.id,
            owner_id=self.owner_id,
            recipient_address=self.recipient_address,
            category=MessageCategory(self.category),
            status=DeliveryStatus(self.status),
            provider=self.provider,
            provider_message_id=self.provider_message_id,
            idempotency_key=self.idempotency_key,
            retry_count=self.retry_count or 0,
            last_error=self.last_error,
            error_type=ErrorType(self.error_type) if self.error_type else None,
            payload_json=self.payload_json,
            language=self.language,
            sent_at=parse_storage_timestamp(self.sent_at),
            created_at=parse_storage_timestamp(self.created_at),
            updated_at=parse_storage_timestamp(self.updated_at),
        )

    @classmethod
    def values_from_domain(cls, record: DeliveryRecord) -> dict:
        """Column values for a DeliveryRecord, suitable for insert statements."""
        return {
            "id": record.id,
            "owner_id": record.owner_id,
            "recipient_address": record.recipient_address,
            "category": record.category.value,
            "language": record.language,
            "status": record.status.value,
            "provider": record.provider,
            "provider_message_id": record.provider_message_id,
            "idempotency_key": record.idempotency_key,
            "retry_count": record.retry_count,
            "last_error": record.last_error,
            "error_type": record.error_type.value if record.error_type else None,
            "payload_json": record.payload_json,
            "sent_at": format_storage_timestamp(record.sent_at),
            "created_at": format_storage_timestamp(record.created_at),
            "updated_at": format_storage_timestamp(record.updated_at),
        }

    @classmethod
    def from_domain(cls, record: DeliveryRecord) -> "DeliveryRecordModel":
        return cls(**cls.values_from_domain(record))


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent)."""
    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(
            "Database schema ready",
            extra={"event": "database.schema_ready", "tables": ", ".join(tables)},
        )
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
