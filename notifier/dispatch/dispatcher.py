"""Dispatcher: the only pipeline component with side effects.

For each composed message:
1. Policy check (skip, nothing recorded)
2. Contract validation (record FAILED, never call the provider)
3. Idempotency claim against the delivery record (insert-if-absent, then a
   conditional move into SENDING)
4. Provider call
5. Record the outcome (SENT or FAILED)

Each storage step runs in its own short transaction from session_factory so
a concurrent dispatcher sees SENDING before the provider call starts.
Storage errors propagate to the caller.
"""

import json
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Callable, Iterable, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from notifier.config.models import AppConfig
from notifier.contracts.validator import ContractValidator, ValidationResult
from notifier.domain.models import ComposedMessage, DeliveryRecord, DeliveryStatus, ErrorType
from notifier.logging import get_logger
from notifier.logging.context import log_context
from notifier.persistence.database import get_session
from notifier.persistence.exceptions import InvalidStatusTransitionError
from notifier.persistence.repositories import DeliveryRecordRepository
from notifier.policy.engine import PolicyEngine
from notifier.utils.redaction import truncate_error
from notifier.utils.timestamps import utc_now
from .models import BatchDispatchResult, DispatchResult
from .providers import DeliveryProvider, OutboundMessage, ProviderResponseError
from .snapshot import build_payload_snapshot

logger = get_logger(__name__, component="dispatcher")

SessionFactory = Callable[[], AbstractContextManager[Session]]

ALREADY_SENT_REASON = "Already sent"
IN_PROGRESS_REASON = "Send already in progress"
MAX_RETRIES_ERROR = "Max retries reached"


class Dispatcher:
    """Sends composed messages with policy, contract and idempotency enforcement.

    The dispatcher never schedules retries itself; the retry job or the
    caller re-invokes send() with a message carrying the same key.
    """

    def __init__(
        self,
        policy_engine: PolicyEngine,
        validator: ContractValidator,
        provider: DeliveryProvider,
        session_factory: SessionFactory = get_session,
        max_retries: int = 3,
        error_max_length: int = 500,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize dispatcher.

        Args:
            policy_engine: Consent and security policy
            validator: Template contract validator
            provider: Delivery provider (constructed by the caller)
            session_factory: Context manager factory yielding a committed-on-exit Session
            max_retries: Maximum provider attempts per idempotency key
            error_max_length: Stored error messages are truncated to this length
            clock: Source of the current UTC time
        """
        if max_retries < 1:
            raise ValueError(f"max_retries must be at least 1, got: {max_retries}")

        self.policy_engine = policy_engine
        self.validator = validator
        self.provider = provider
        self.session_factory = session_factory
        self.max_retries = max_retries
        self.error_max_length = error_max_length
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        policy_engine: PolicyEngine,
        provider: DeliveryProvider,
        session_factory: SessionFactory = get_session,
        validator: Optional[ContractValidator] = None,
    ) -> "Dispatcher":
        return cls(
            policy_engine=policy_engine,
            validator=validator or ContractValidator(),
            provider=provider,
            session_factory=session_factory,
            max_retries=config.dispatch.max_retries,
            error_max_length=config.dispatch.error_max_length,
        )

    def send(self, message: ComposedMessage) -> DispatchResult:
        """
        Dispatch one composed message.

        Returns:
            DispatchResult; policy skips, contract violations and provider
            failures are results, never exceptions

        Raises:
            PersistenceError: If the delivery record store fails
        """
        with log_context(
            idempotency_key=message.idempotency_key,
            category=message.category.value,
            owner_id=message.owner_id,
        ):
            decision = self.policy_engine.can_send(message.owner_id, message.category)
            if not decision.allowed:
                logger.info(
                    "Message skipped by policy",
                    extra={"event": "dispatch.policy.skipped", "reason": decision.reason},
                )
                return DispatchResult(
                    success=False,
                    skipped=True,
                    reason=decision.reason,
                    idempotency_key=message.idempotency_key,
                )

            validation = self.validator.validate(message.template_reference, message.variables)
            if not validation.valid:
                return self._record_validation_failure(message, validation)

            early_result, record_id = self._claim(message)
            if early_result is not None:
                return early_result

            return self._deliver(message, record_id)

    def send_batch(self, messages: Iterable[ComposedMessage]) -> BatchDispatchResult:
        """Dispatch messages one at a time, in order."""
        batch = BatchDispatchResult()
        for message in messages:
            batch.add(self.send(message))

        logger.info(
            "Batch dispatch complete",
            extra={
                "event": "dispatch.batch.complete",
                "total": batch.total,
                "succeeded": batch.succeeded,
                "failed": batch.failed,
                "skipped": batch.skipped,
            },
        )
        return batch

    def _new_record(self, message: ComposedMessage, status: DeliveryStatus) -> DeliveryRecord:
        now = self.clock()
        return DeliveryRecord(
            id=str(uuid4()),
            owner_id=message.owner_id,
            recipient_address=str(message.recipient_address),
            category=message.category,
            status=status,
            provider=self.provider.name,
            idempotency_key=message.idempotency_key,
            retry_count=0,
            payload_json=build_payload_snapshot(message),
            language=message.language,
            created_at=now,
            updated_at=now,
        )

    def _record_validation_failure(
        self, message: ComposedMessage, validation: ValidationResult
    ) -> DispatchResult:
        if validation.unknown_template:
            error = f"Unknown template reference: {validation.template_reference}"
        else:
            error = f"Missing required template variables: {', '.join(validation.missing_required)}"

        error_json = json.dumps(
            {"type": ErrorType.TEMPLATE_VALIDATION_ERROR.value, **validation.error_payload()}
        )

        with self.session_factory() as session:
            repo = DeliveryRecordRepository(session, clock=self.clock)
            repo.record_validation_failure(
                self._new_record(message, DeliveryStatus.FAILED), error_json
            )
            record = repo.get_by_key(message.idempotency_key)

        logger.error(
            "Template validation failed; provider not called",
            extra={
                "event": "dispatch.validation.failed",
                "template_reference": validation.template_reference,
                "missing_required": ",".join(validation.missing_required),
                "record_status": record.status.value if record else None,
            },
        )
        return DispatchResult(
            success=False,
            error=error,
            delivery_record_id=record.id if record else None,
            status=record.status if record else None,
            idempotency_key=message.idempotency_key,
        )

    def _claim(self, message: ComposedMessage) -> tuple[Optional[DispatchResult], Optional[str]]:
        """Create the record if absent and try to move it into SENDING.

        Returns:
            (None, record_id) when this call owns the attempt, otherwise
            (result, record_id) with the result to hand back to the caller
        """
        key = message.idempotency_key

        with self.session_factory() as session:
            repo = DeliveryRecordRepository(session, clock=self.clock)
            pending = self._new_record(message, DeliveryStatus.PENDING)
            created = repo.insert_if_absent(pending)
            claimed = repo.claim_for_sending(
                key,
                self.max_retries,
                payload_json=None if created else pending.payload_json,
            )
            record = repo.get_by_key(key)

        if claimed:
            logger.debug(
                "Delivery record claimed for sending",
                extra={
                    "event": "dispatch.claimed",
                    "created": created,
                    "retry_count": record.retry_count,
                },
            )
            return None, record.id

        if record.status == DeliveryStatus.SENT:
            logger.info(
                "Message already sent; provider not called",
                extra={
                    "event": "dispatch.idempotent.already_sent",
                    "provider_message_id": record.provider_message_id,
                },
            )
            return (
                DispatchResult(
                    success=True,
                    skipped=True,
                    reason=ALREADY_SENT_REASON,
                    delivery_record_id=record.id,
                    provider_message_id=record.provider_message_id,
                    status=record.status,
                    idempotency_key=key,
                ),
                record.id,
            )

        if record.status == DeliveryStatus.SENDING:
            logger.info(
                "Another dispatch owns this message; backing off",
                extra={"event": "dispatch.in_progress"},
            )
            return (
                DispatchResult(
                    success=False,
                    skipped=True,
                    reason=IN_PROGRESS_REASON,
                    delivery_record_id=record.id,
                    status=record.status,
                    idempotency_key=key,
                ),
                record.id,
            )

        logger.warning(
            "Retry ceiling reached; provider not called",
            extra={
                "event": "dispatch.max_retries",
                "retry_count": record.retry_count,
                "max_retries": self.max_retries,
            },
        )
        return (
            DispatchResult(
                success=False,
                error=MAX_RETRIES_ERROR,
                delivery_record_id=record.id,
                status=record.status,
                idempotency_key=key,
            ),
            record.id,
        )

    def _deliver(self, message: ComposedMessage, record_id: Optional[str]) -> DispatchResult:
        key = message.idempotency_key
        outbound = OutboundMessage.from_composed(message)

        try:
            receipt = self.provider.send(outbound)
            if receipt is None or not receipt.message_id:
                raise ProviderResponseError("No message ID returned")
        except Exception as e:
            error = truncate_error(str(e) or type(e).__name__, self.error_max_length)
            with self.session_factory() as session:
                repo = DeliveryRecordRepository(session, clock=self.clock)
                updated = repo.mark_failed(key, error, ErrorType.PROVIDER_ERROR)
                record = None if updated else repo.get_by_key(key)

            logger.warning(
                f"Provider send failed: {error}",
                extra={
                    "event": "dispatch.send.failed",
                    "error_type": type(e).__name__,
                    "record_updated": updated,
                    "provider": self.provider.name,
                },
            )
            if record is not None and record.status == DeliveryStatus.SENT:
                # Another attempt delivered while this one was in flight
                return self._stored_result(record)

            return DispatchResult(
                success=False,
                error=error,
                delivery_record_id=record_id,
                status=record.status if record is not None else DeliveryStatus.FAILED,
                idempotency_key=key,
            )

        try:
            with self.session_factory() as session:
                DeliveryRecordRepository(session, clock=self.clock).mark_sent(key, receipt.message_id)
        except InvalidStatusTransitionError as e:
            with self.session_factory() as session:
                record = DeliveryRecordRepository(session, clock=self.clock).get_by_key(key)

            logger.error(
                f"Delivered message could not be recorded: {e}",
                extra={
                    "event": "dispatch.send.record_conflict",
                    "provider_message_id": receipt.message_id,
                    "stored_message_id": record.provider_message_id,
                    "current_status": e.current_status,
                },
            )
            return self._stored_result(record)

        logger.info(
            "Message sent",
            extra={
                "event": "dispatch.send.success",
                "provider": self.provider.name,
                "provider_message_id": receipt.message_id,
                "template_reference": message.template_reference.value,
            },
        )
        return DispatchResult(
            success=True,
            delivery_record_id=record_id,
            provider_message_id=receipt.message_id,
            status=DeliveryStatus.SENT,
            idempotency_key=key,
        )

    @staticmethod
    def _stored_result(record: DeliveryRecord) -> DispatchResult:
        """Result for a record already SENT by a different attempt."""
        return DispatchResult(
            success=True,
            skipped=True,
            reason=ALREADY_SENT_REASON,
            delivery_record_id=record.id,
            provider_message_id=record.provider_message_id,
            status=record.status,
            idempotency_key=record.idempotency_key,
        )
