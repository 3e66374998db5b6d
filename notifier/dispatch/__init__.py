"""Dispatch: policy, contract and idempotency enforcement around the provider call."""

from .dispatcher import (
    ALREADY_SENT_REASON,
    IN_PROGRESS_REASON,
    MAX_RETRIES_ERROR,
    Dispatcher,
)
from .models import BatchDispatchResult, DispatchResult
from .providers import (
    DeliveryProvider,
    DisabledProvider,
    MockProvider,
    OutboundMessage,
    ProviderDisabledError,
    ProviderError,
    ProviderHTTPError,
    ProviderReceipt,
    ProviderResponseError,
    ProviderTimeoutError,
    ResendProvider,
    build_provider,
)
from .snapshot import build_payload_snapshot, rebuild_from_snapshot

__all__ = [
    "Dispatcher",
    "DispatchResult",
    "BatchDispatchResult",
    "ALREADY_SENT_REASON",
    "IN_PROGRESS_REASON",
    "MAX_RETRIES_ERROR",
    # Providers
    "DeliveryProvider",
    "ResendProvider",
    "MockProvider",
    "DisabledProvider",
    "OutboundMessage",
    "ProviderReceipt",
    "build_provider",
    # Provider errors
    "ProviderError",
    "ProviderHTTPError",
    "ProviderTimeoutError",
    "ProviderResponseError",
    "ProviderDisabledError",
    # Snapshots
    "build_payload_snapshot",
    "rebuild_from_snapshot",
]
