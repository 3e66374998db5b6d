"""Background retry of failed deliveries.

Each run recovers SENDING records abandoned by a crashed attempt, then
re-dispatches FAILED records below the retry ceiling. Re-dispatch goes
through Dispatcher.send with the original idempotency key, so the claim
step still guards against double delivery.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import uuid4

from notifier.config.models import AppConfig
from notifier.dispatch.dispatcher import Dispatcher, SessionFactory
from notifier.dispatch.snapshot import rebuild_from_snapshot
from notifier.domain.models import ComposedMessage, DeliveryRecord
from notifier.logging import get_logger
from notifier.logging.context import log_context
from notifier.persistence.database import get_session
from notifier.persistence.repositories import DeliveryRecordRepository
from notifier.utils.timestamps import utc_now

logger = get_logger(__name__, component="retry")

STALE_SENDING_ERROR = "Attempt abandoned while SENDING"


@dataclass
class RetryRunResult:
    """Counters for one retry run."""

    run_id: str
    total_candidates: int = 0
    retried: int = 0
    succeeded: int = 0
    still_failing: int = 0
    skipped: int = 0
    recovered_stale: int = 0
    duration_seconds: float = 0.0


class RetryJob:
    """Re-dispatches FAILED delivery records."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        session_factory: SessionFactory = get_session,
        rebuild: Callable[[DeliveryRecord], Optional[ComposedMessage]] = rebuild_from_snapshot,
        max_retries: int = 3,
        batch_limit: int = 100,
        stale_after_seconds: int = 1800,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.rebuild = rebuild
        self.max_retries = max_retries
        self.batch_limit = batch_limit
        self.stale_after_seconds = stale_after_seconds
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        dispatcher: Dispatcher,
        session_factory: SessionFactory = get_session,
    ) -> "RetryJob":
        return cls(
            dispatcher=dispatcher,
            session_factory=session_factory,
            max_retries=config.dispatch.max_retries,
            batch_limit=config.retry.batch_limit,
            stale_after_seconds=config.retry.stale_after_seconds,
        )

    def run_once(self) -> RetryRunResult:
        """
        Execute one retry run.

        Returns:
            RetryRunResult with counts for the run

        Raises:
            PersistenceError: If the delivery record store fails
        """
        result = RetryRunResult(run_id=str(uuid4()))
        start = time.time()

        with log_context(retry_run_id=result.run_id):
            logger.info("Retry run started", extra={"event": "retry.run.started"})

            cutoff = self.clock() - timedelta(seconds=self.stale_after_seconds)
            with self.session_factory() as session:
                repo = DeliveryRecordRepository(session, clock=self.clock)
                result.recovered_stale = repo.recover_stale_sending(cutoff, STALE_SENDING_ERROR)
                candidates = repo.list_retry_candidates(self.max_retries, self.batch_limit)

            if result.recovered_stale:
                logger.warning(
                    f"Recovered {result.recovered_stale} stale SENDING record(s)",
                    extra={"event": "retry.stale.recovered", "count": result.recovered_stale},
                )

            result.total_candidates = len(candidates)

            for record in candidates:
                message = self.rebuild(record)
                if message is None:
                    result.skipped += 1
                    logger.info(
                        "Record cannot be rebuilt for automatic retry",
                        extra={
                            "event": "retry.record.not_rebuildable",
                            "idempotency_key": record.idempotency_key,
                            "category": record.category.value,
                        },
                    )
                    continue

                dispatch_result = self.dispatcher.send(message)
                if dispatch_result.skipped:
                    result.skipped += 1
                    continue

                result.retried += 1
                if dispatch_result.success:
                    result.succeeded += 1
                else:
                    result.still_failing += 1

            result.duration_seconds = time.time() - start
            logger.info(
                "Retry run complete",
                extra={
                    "event": "retry.run.complete",
                    "total_candidates": result.total_candidates,
                    "retried": result.retried,
                    "succeeded": result.succeeded,
                    "still_failing": result.still_failing,
                    "skipped": result.skipped,
                    "recovered_stale": result.recovered_stale,
                    "duration_seconds": round(result.duration_seconds, 3),
                },
            )

        return result
