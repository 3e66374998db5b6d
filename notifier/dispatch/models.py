"""Result types for the dispatcher."""

from dataclasses import dataclass, field
from typing import List, Optional

from notifier.domain.models import DeliveryStatus


@dataclass
class DispatchResult:
    """Outcome of dispatching one composed message.

    Attributes:
        success: The message is (or already was) delivered
        skipped: No provider call was made on purpose (policy, already sent, in progress)
        reason: Why the message was skipped
        delivery_record_id: Delivery record touched by this dispatch, if any
        provider_message_id: Provider's message id when delivered
        error: Failure description (contract violation, provider error, retry ceiling)
        status: Delivery record status after this dispatch
        idempotency_key: Key of the dispatched message
    """

    success: bool
    skipped: bool = False
    reason: Optional[str] = None
    delivery_record_id: Optional[str] = None
    provider_message_id: Optional[str] = None
    error: Optional[str] = None
    status: Optional[DeliveryStatus] = None
    idempotency_key: Optional[str] = None


@dataclass
class BatchDispatchResult:
    """Per-message results plus aggregate counts.

    Skipped results are counted only as skipped, even when success is True
    (already sent).
    """

    results: List[DispatchResult] = field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    def add(self, result: DispatchResult) -> None:
        self.results.append(result)
        if result.skipped:
            self.skipped += 1
        elif result.success:
            self.succeeded += 1
        else:
            self.failed += 1

    @property
    def total(self) -> int:
        return len(self.results)
