"""Scheduling of background retry runs."""

from .retry import STALE_SENDING_ERROR, RetryJob, RetryRunResult
from .service import RETRY_JOB_ID, SchedulerService

__all__ = [
    "RetryJob",
    "RetryRunResult",
    "STALE_SENDING_ERROR",
    "SchedulerService",
    "RETRY_JOB_ID",
]
