"""Delivery providers.

The dispatcher talks to a DeliveryProvider: send() returns a receipt with
the provider's message id or raises ProviderError. ResendProvider calls the
Resend HTTP API; MockProvider and DisabledProvider never leave the process.
"""

import base64
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Optional, Tuple
from uuid import uuid4

import requests

from notifier.config.environment import EnvironmentConfig
from notifier.config.exceptions import ConfigurationError
from notifier.config.models import AppConfig, ProviderMode
from notifier.domain.models import Attachment, ComposedMessage
from notifier.logging import get_logger
from notifier.utils.redaction import redact_address

logger = get_logger(__name__, component="provider")

# Messages kept in memory by MockProvider
MOCK_HISTORY_SIZE = 100


class ProviderError(Exception):
    """Base exception for delivery provider failures.

    Every provider failure is recorded as FAILED and is eligible for retry.
    """

    pass


class ProviderHTTPError(ProviderError):
    """Provider returned a 4xx/5xx status, or the connection failed (status_code 0)."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url

    @property
    def is_retryable(self) -> bool:
        return self.status_code == 0 or self.status_code == 429 or self.status_code >= 500


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class ProviderResponseError(ProviderError):
    """Provider answered but the response was unusable (bad JSON, no message id)."""

    pass


class ProviderDisabledError(ProviderError):
    """Delivery is switched off in this environment."""

    pass


@dataclass(frozen=True)
class OutboundMessage:
    """What a provider needs to deliver one message."""

    to: str
    sender: str
    template_reference: str
    variables: Dict[str, str]
    idempotency_key: str
    subject: Optional[str] = None
    attachments: Tuple[Attachment, ...] = field(default_factory=tuple)

    @classmethod
    def from_composed(cls, message: ComposedMessage) -> "OutboundMessage":
        # Provider template variables are strings
        return cls(
            to=str(message.recipient_address),
            sender=message.sender_identity,
            template_reference=message.template_reference.value,
            variables={key: str(value) for key, value in message.variables.items()},
            idempotency_key=message.idempotency_key,
            subject=message.subject,
            attachments=tuple(message.attachments),
        )


@dataclass(frozen=True)
class ProviderReceipt:
    message_id: str
    provider: str


class DeliveryProvider(ABC):
    """Interface every delivery provider implements."""

    name: str = "provider"

    @abstractmethod
    def send(self, message: OutboundMessage) -> ProviderReceipt:
        """Deliver a message.

        Returns:
            ProviderReceipt carrying the provider's message id

        Raises:
            ProviderError: On any delivery failure
        """


class ResendProvider(DeliveryProvider):
    """Resend HTTP API client (POST /emails with a template reference).

    Attributes:
        timeout: Request timeout in seconds
        api_base_url: API root, e.g. https://api.resend.com
    """

    name = "resend"

    def __init__(
        self,
        api_key: str,
        api_base_url: str = "https://api.resend.com",
        timeout: int = 30,
        user_agent: str = "TransactionalNotifier/1.0",
        session: Optional[requests.Session] = None,
    ) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError(
                "Resend API key is required for the live provider",
                suggestions=["Set RESEND_API_KEY, or EMAIL_PROVIDER_MODE=mock for local runs"],
            )
        if not 5 <= timeout <= 120:
            raise ConfigurationError(f"Provider timeout must be between 5 and 120 seconds, got: {timeout}")

        self.api_base_url = api_base_url.rstrip("/")
        self.timeout = timeout

        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {api_key.strip()}",
                "User-Agent": user_agent,
                "Content-Type": "application/json",
            }
        )

    def build_payload(self, message: OutboundMessage) -> Dict[str, Any]:
        """Request body for POST /emails."""
        payload: Dict[str, Any] = {
            "from": message.sender,
            "to": [message.to],
            "template": {
                "id": message.template_reference,
                "variables": dict(message.variables),
            },
        }
        if message.subject:
            payload["subject"] = message.subject
        if message.attachments:
            payload["attachments"] = [
                {
                    "filename": attachment.filename,
                    "content": base64.b64encode(attachment.content).decode("ascii"),
                    "content_type": attachment.content_type,
                }
                for attachment in message.attachments
            ]
        return payload

    def send(self, message: OutboundMessage) -> ProviderReceipt:
        url = f"{self.api_base_url}/emails"
        data = self._post(
            url,
            self.build_payload(message),
            headers={"Idempotency-Key": message.idempotency_key},
        )

        message_id = data.get("id") if isinstance(data, dict) else None
        if not message_id:
            raise ProviderResponseError("No message ID returned")

        logger.info(
            "Provider accepted message",
            extra={
                "event": "provider.send.accepted",
                "provider": self.name,
                "provider_message_id": message_id,
                "recipient": redact_address(message.to),
                "template_reference": message.template_reference,
                "attachment_count": len(message.attachments),
            },
        )
        return ProviderReceipt(message_id=str(message_id), provider=self.name)

    def _post(self, url: str, body: Dict[str, Any], headers: Dict[str, str]) -> Any:
        """POST JSON and map failures onto ProviderError subclasses.

        Raises:
            ProviderHTTPError: On 4xx/5xx status or connection failure
            ProviderTimeoutError: On request timeout
            ProviderResponseError: On a non-JSON response
        """
        try:
            response = self._session.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            logger.warning(
                f"Request to {url} timed out after {self.timeout} seconds",
                extra={"event": "provider.send.timeout", "url": url, "timeout": self.timeout},
            )
            raise ProviderTimeoutError(
                f"Request to {url} timed out after {self.timeout} seconds", url=url
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"Request to {url} failed: {e}",
                extra={"event": "provider.send.error", "error_type": type(e).__name__, "url": url},
            )
            raise ProviderHTTPError(f"Request to {url} failed: {e}", status_code=0, url=url) from e

        if response.status_code >= 400:
            retryable = response.status_code == 429 or response.status_code >= 500
            logger.log(
                logging.WARNING if retryable else logging.ERROR,
                f"HTTP {response.status_code} error from {url}",
                extra={
                    "event": "provider.send.retryable_error" if retryable else "provider.send.error",
                    "status_code": response.status_code,
                    "url": url,
                },
            )
            raise ProviderHTTPError(
                f"HTTP {response.status_code}: {_error_detail(response)}",
                status_code=response.status_code,
                url=url,
            )

        try:
            return response.json()
        except ValueError as e:
            raise ProviderResponseError(f"Failed to parse JSON response from {url}: {e}") from e


def _error_detail(response: requests.Response) -> str:
    """Best-effort error message from a provider error body."""
    try:
        body = response.json()
    except ValueError:
        return response.reason or "error"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("name") or response.reason or body)
    return response.reason or "error"


class MockProvider(DeliveryProvider):
    """Accepts every message without network access.

    Keeps the most recent `history_size` messages in `sent` and counts all of them.
    """

    name = "mock"

    def __init__(self, history_size: int = MOCK_HISTORY_SIZE) -> None:
        self.sent: Deque[OutboundMessage] = deque(maxlen=history_size)
        self.sent_count = 0

    def send(self, message: OutboundMessage) -> ProviderReceipt:
        message_id = f"mock-{uuid4()}"
        self.sent.append(message)
        self.sent_count += 1
        logger.info(
            "Mock provider accepted message",
            extra={
                "event": "provider.mock.accepted",
                "provider_message_id": message_id,
                "recipient": redact_address(message.to),
                "template_reference": message.template_reference,
                "variable_keys": ",".join(sorted(message.variables)),
            },
        )
        return ProviderReceipt(message_id=message_id, provider=self.name)


class DisabledProvider(DeliveryProvider):
    """Refuses every message."""

    name = "disabled"

    def send(self, message: OutboundMessage) -> ProviderReceipt:
        raise ProviderDisabledError("Email provider disabled")


def build_provider(config: AppConfig, env_config: EnvironmentConfig) -> DeliveryProvider:
    """
    Construct the provider for the effective mode.

    EMAIL_PROVIDER_MODE overrides provider.mode from YAML.

    Raises:
        ConfigurationError: If live mode is selected without an API key
    """
    mode = ProviderMode(env_config.provider_mode or config.provider.mode)

    logger.info(
        "Delivery provider selected",
        extra={"event": "provider.selected", "provider_mode": mode.value},
    )

    if mode == ProviderMode.MOCK:
        return MockProvider()
    if mode == ProviderMode.DISABLED:
        return DisabledProvider()

    return ResendProvider(
        api_key=env_config.resend_api_key or "",
        api_base_url=config.provider.api_base_url,
        timeout=config.provider.timeout_seconds,
        user_agent=config.provider.user_agent,
    )
