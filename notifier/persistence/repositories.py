"""Data access layer for delivery records.

DeliveryRecordRepository encapsulates every read and write of the
delivery_records table and returns DeliveryRecord domain models. State
changes are single conditional statements keyed by idempotency key, so two
dispatchers racing on the same key cannot both win.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from notifier.domain.models import (
    DeliveryRecord,
    DeliveryStatus,
    ErrorType,
    MessageCategory,
)
from notifier.utils.timestamps import format_storage_timestamp, utc_now
from .exceptions import (
    DataIntegrityError,
    InvalidStatusTransitionError,
    PersistenceError,
    RecordNotFoundError,
)
from .schema import DeliveryRecordModel

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


class DeliveryRecordRepository:
    """Repository for delivery record operations."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utc_now):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
            clock: Source of the current UTC time (injectable for tests)
        """
        self.session = session
        self.clock = clock

    def _now(self) -> str:
        return format_storage_timestamp(self.clock())

    # Reads

    def get_by_key(self, idempotency_key: str) -> Optional[DeliveryRecord]:
        """Retrieve a delivery record by idempotency key.

        Returns:
            DeliveryRecord if found, None otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(DeliveryRecordModel).where(
                DeliveryRecordModel.idempotency_key == idempotency_key
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving delivery record {idempotency_key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve delivery record: {e}") from e

    def get_by_id(self, record_id: str) -> Optional[DeliveryRecord]:
        """Retrieve a delivery record by primary key."""
        try:
            model = self.session.get(DeliveryRecordModel, record_id)
            return model.to_domain() if model is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving delivery record id {record_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve delivery record: {e}") from e

    # Writes

    def insert_if_absent(self, record: DeliveryRecord) -> bool:
        """Insert a record unless one with the same idempotency key exists.

        On SQLite and PostgreSQL this is a single INSERT ... ON CONFLICT DO
        NOTHING; other backends use a savepoint and catch the unique
        constraint violation.

        Returns:
            True if this call created the row, False if the key already existed

        Raises:
            PersistenceError: If database error occurs
        """
        values = DeliveryRecordModel.values_from_domain(record)
        dialect = self.session.get_bind().dialect.name

        try:
            insert_fn = _UPSERT_DIALECTS.get(dialect)
            if insert_fn is not None:
                stmt = (
                    insert_fn(DeliveryRecordModel)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["idempotency_key"])
                )
                result = self.session.execute(stmt)
                return result.rowcount == 1

            try:
                with self.session.begin_nested():
                    self.session.add(DeliveryRecordModel(**values))
                return True
            except IntegrityError:
                return False

        except SQLAlchemyError as e:
            logger.error(
                f"Error inserting delivery record {record.idempotency_key}: {e}", exc_info=True
            )
            raise PersistenceError(f"Failed to insert delivery record: {e}") from e

    def claim_for_sending(
        self,
        idempotency_key: str,
        max_retries: int,
        payload_json: Optional[str] = None,
    ) -> bool:
        """Atomically move a record into SENDING and count the attempt.

        Succeeds only when the record is PENDING or FAILED and has fewer than
        max_retries attempts. retry_count is incremented in the same statement,
        and payload_json (when given) replaces the stored snapshot.

        Returns:
            True if this caller owns the attempt, False otherwise
        """
        values = {
            "status": DeliveryStatus.SENDING.value,
            "retry_count": DeliveryRecordModel.retry_count + 1,
            "updated_at": self._now(),
        }
        if payload_json is not None:
            values["payload_json"] = payload_json

        try:
            stmt = (
                update(DeliveryRecordModel)
                .where(
                    DeliveryRecordModel.idempotency_key == idempotency_key,
                    DeliveryRecordModel.status.in_(
                        [DeliveryStatus.PENDING.value, DeliveryStatus.FAILED.value]
                    ),
                    DeliveryRecordModel.retry_count < max_retries,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(f"Error claiming delivery record {idempotency_key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to claim delivery record: {e}") from e

    def mark_sent(self, idempotency_key: str, provider_message_id: str) -> None:
        """Record a successful provider call.

        Allowed from SENDING, and from FAILED when a stale attempt was
        recovered while the provider call was still in flight.

        Raises:
            RecordNotFoundError: If no record exists for the key
            InvalidStatusTransitionError: If the record is not SENDING or FAILED
        """
        now = self._now()
        try:
            stmt = (
                update(DeliveryRecordModel)
                .where(
                    DeliveryRecordModel.idempotency_key == idempotency_key,
                    DeliveryRecordModel.status.in_(
                        [DeliveryStatus.SENDING.value, DeliveryStatus.FAILED.value]
                    ),
                )
                .values(
                    status=DeliveryStatus.SENT.value,
                    provider_message_id=provider_message_id,
                    sent_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Error marking {idempotency_key} as sent: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark delivery record as sent: {e}") from e

        if result.rowcount == 0:
            self._raise_transition_error(idempotency_key, DeliveryStatus.SENT)

    def mark_failed(
        self,
        idempotency_key: str,
        error: str,
        error_type: ErrorType = ErrorType.PROVIDER_ERROR,
    ) -> bool:
        """Record a failed provider call for a record in SENDING.

        Returns:
            True if the record was updated, False if it had already left SENDING
        """
        try:
            stmt = (
                update(DeliveryRecordModel)
                .where(
                    DeliveryRecordModel.idempotency_key == idempotency_key,
                    DeliveryRecordModel.status == DeliveryStatus.SENDING.value,
                )
                .values(
                    status=DeliveryStatus.FAILED.value,
                    last_error=error,
                    error_type=error_type.value,
                    updated_at=self._now(),
                )
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(f"Error marking {idempotency_key} as failed: {e}", exc_info=True)
            raise PersistenceError(f"Failed to mark delivery record as failed: {e}") from e

    def record_validation_failure(self, record: DeliveryRecord, error: str) -> bool:
        """Create or update a record directly into FAILED for a contract violation.

        Never increments retry_count and never touches a SENT or SENDING record.

        Args:
            record: Record to insert if the key is new (its status is overridden)
            error: Structured validation error to store

        Returns:
            True if a record was created or updated
        """
        failed = record.model_copy(
            update={
                "status": DeliveryStatus.FAILED,
                "last_error": error,
                "error_type": ErrorType.TEMPLATE_VALIDATION_ERROR,
            }
        )
        if self.insert_if_absent(failed):
            return True

        try:
            stmt = (
                update(DeliveryRecordModel)
                .where(
                    DeliveryRecordModel.idempotency_key == record.idempotency_key,
                    DeliveryRecordModel.status.in_(
                        [DeliveryStatus.PENDING.value, DeliveryStatus.FAILED.value]
                    ),
                )
                .values(
                    status=DeliveryStatus.FAILED.value,
                    last_error=error,
                    error_type=ErrorType.TEMPLATE_VALIDATION_ERROR.value,
                    payload_json=record.payload_json,
                    updated_at=self._now(),
                )
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            return result.rowcount == 1
        except SQLAlchemyError as e:
            logger.error(
                f"Error recording validation failure for {record.idempotency_key}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to record validation failure: {e}") from e

    def recover_stale_sending(self, older_than: datetime, error: str) -> int:
        """Move SENDING records not updated since older_than to FAILED.

        Returns:
            Number of records recovered
        """
        try:
            stmt = (
                update(DeliveryRecordModel)
                .where(
                    DeliveryRecordModel.status == DeliveryStatus.SENDING.value,
                    DeliveryRecordModel.updated_at < format_storage_timestamp(older_than),
                )
                .values(
                    status=DeliveryStatus.FAILED.value,
                    last_error=error,
                    error_type=ErrorType.STALE_SENDING.value,
                    updated_at=self._now(),
                )
                .execution_options(synchronize_session=False)
            )
            result = self.session.execute(stmt)
            return result.rowcount
        except SQLAlchemyError as e:
            logger.error(f"Error recovering stale deliveries: {e}", exc_info=True)
            raise PersistenceError(f"Failed to recover stale deliveries: {e}") from e

    def add(self, record: DeliveryRecord) -> DeliveryRecord:
        """Insert a fully specified record (imports and fixtures).

        Raises:
            DataIntegrityError: If the idempotency key already exists
        """
        try:
            self.session.add(DeliveryRecordModel.from_domain(record))
            self.session.flush()
            return record
        except IntegrityError as e:
            logger.error(f"Integrity error adding {record.idempotency_key}: {e}", exc_info=True)
            raise DataIntegrityError(
                f"Failed to add delivery record due to constraint violation: {e}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding {record.idempotency_key}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add delivery record: {e}") from e

    # Retry and audit queries

    def list_retry_candidates(self, max_retries: int, limit: int = 100) -> List[DeliveryRecord]:
        """FAILED records below the retry ceiling, oldest update first.

        Contract violations are excluded; retrying an invalid payload cannot succeed.
        """
        try:
            stmt = (
                select(DeliveryRecordModel)
                .where(
                    DeliveryRecordModel.status == DeliveryStatus.FAILED.value,
                    DeliveryRecordModel.retry_count < max_retries,
                    or_(
                        DeliveryRecordModel.error_type.is_(None),
                        DeliveryRecordModel.error_type
                        != ErrorType.TEMPLATE_VALIDATION_ERROR.value,
                    ),
                )
                .order_by(DeliveryRecordModel.updated_at.asc())
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]
        except SQLAlchemyError as e:
            logger.error(f"Error listing retry candidates: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list retry candidates: {e}") from e

    def list_records(
        self,
        owner_id: Optional[str] = None,
        category: Optional[MessageCategory] = None,
        status: Optional[DeliveryStatus] = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[DeliveryRecord]:
        """List records matching every given filter, newest first.

        Args:
            owner_id: Only records for this owner
            category: Only records of this category
            status: Only records in this status
            since: Created at or after this time
            until: Created before this time
            limit: Maximum records returned
            offset: Records skipped (pagination)
        """
        try:
            stmt = select(DeliveryRecordModel)
            if owner_id is not None:
                stmt = stmt.where(DeliveryRecordModel.owner_id == owner_id)
            if category is not None:
                stmt = stmt.where(DeliveryRecordModel.category == MessageCategory(category).value)
            if status is not None:
                stmt = stmt.where(DeliveryRecordModel.status == DeliveryStatus(status).value)
            if since is not None:
                stmt = stmt.where(DeliveryRecordModel.created_at >= format_storage_timestamp(since))
            if until is not None:
                stmt = stmt.where(DeliveryRecordModel.created_at < format_storage_timestamp(until))

            stmt = (
                stmt.order_by(DeliveryRecordModel.created_at.desc(), DeliveryRecordModel.id)
                .offset(offset)
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]
        except SQLAlchemyError as e:
            logger.error(f"Error listing delivery records: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list delivery records: {e}") from e

    def count_by_status(self) -> Dict[str, int]:
        """Number of records per status; every status is present."""
        counts = {status.value: 0 for status in DeliveryStatus}
        counts.update(self._count_grouped(DeliveryRecordModel.status))
        return counts

    def count_by_category(self) -> Dict[str, int]:
        """Number of records per category (only categories with records)."""
        return self._count_grouped(DeliveryRecordModel.category)

    def list_recent_failures(self, limit: int = 20) -> List[DeliveryRecord]:
        """Most recently updated FAILED records."""
        try:
            stmt = (
                select(DeliveryRecordModel)
                .where(DeliveryRecordModel.status == DeliveryStatus.FAILED.value)
                .order_by(DeliveryRecordModel.updated_at.desc())
                .limit(limit)
            )
            models = self.session.execute(stmt).scalars().all()
            return [model.to_domain() for model in models]
        except SQLAlchemyError as e:
            logger.error(f"Error listing recent failures: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list recent failures: {e}") from e

    def _count_grouped(self, column) -> Dict[str, int]:
        try:
            stmt = select(column, func.count()).group_by(column)
            return {value: count for value, count in self.session.execute(stmt).all()}
        except SQLAlchemyError as e:
            logger.error(f"Error counting delivery records: {e}", exc_info=True)
            raise PersistenceError(f"Failed to count delivery records: {e}") from e

    def _raise_transition_error(self, idempotency_key: str, target: DeliveryStatus) -> None:
        current = self.get_by_key(idempotency_key)
        if current is None:
            raise RecordNotFoundError(f"Delivery record {idempotency_key} not found")
        raise InvalidStatusTransitionError(idempotency_key, current.status.value, target.value)
