"""Unit tests for domain models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from notifier.domain.models import (
    Attachment,
    ComposedMessage,
    DeliveryRecord,
    DeliveryStatus,
    MessageCategory,
    TemplateReference,
)
from tests.helpers import make_message


class TestComposedMessage:
    """Tests for ComposedMessage model."""

    def test_valid_message(self):
        message = make_message()

        assert message.category == MessageCategory.WELCOME
        assert message.template_reference == TemplateReference.WELCOME_B2C
        assert message.language == "en"
        assert message.attachments == ()

    def test_message_is_immutable(self):
        message = make_message()

        with pytest.raises(ValidationError):
            message.idempotency_key = "other"

    def test_invalid_recipient_rejected(self):
        with pytest.raises(ValidationError):
            make_message(recipient_address="not-an-email")

    def test_empty_idempotency_key_rejected(self):
        with pytest.raises(ValidationError):
            make_message(idempotency_key="")

    def test_unknown_template_rejected(self):
        with pytest.raises(ValidationError):
            make_message(template_reference="newsletter")

    def test_variable_keys_sorted(self):
        message = make_message(variables={"b": "2", "a": "1"})
        assert message.variable_keys() == ["a", "b"]

    def test_numeric_variables_allowed(self):
        message = make_message(variables={"free_credits": 1, "OVERALL_SCORE": 85.5})
        assert message.variables["free_credits"] == 1

    def test_attachment(self):
        attachment = Attachment(filename="report.pdf", content=b"%PDF-1.4")
        message = make_message(attachments=(attachment,))

        assert message.attachments[0].content_type == "application/pdf"


class TestDeliveryRecord:
    """Tests for DeliveryRecord model."""

    def make_record(self, **overrides):
        now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
        fields = dict(
            id="r1",
            owner_id="U1",
            recipient_address="ana@example.com",
            category=MessageCategory.WELCOME,
            status=DeliveryStatus.PENDING,
            provider="resend",
            idempotency_key="welcome:U1",
            created_at=now,
            updated_at=now,
        )
        fields.update(overrides)
        return DeliveryRecord(**fields)

    def test_defaults(self):
        record = self.make_record()

        assert record.retry_count == 0
        assert record.provider_message_id is None
        assert record.last_error is None
        assert record.is_terminal is False

    def test_sent_is_terminal(self):
        assert self.make_record(status=DeliveryStatus.SENT).is_terminal is True

    def test_naive_timestamps_become_utc(self):
        record = self.make_record(created_at=datetime(2024, 5, 1, 12, 0))
        assert record.created_at.tzinfo == timezone.utc

    def test_aware_timestamps_converted_to_utc(self):
        tz = timezone(timedelta(hours=-3))
        record = self.make_record(updated_at=datetime(2024, 5, 1, 9, 0, tzinfo=tz))
        assert record.updated_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_negative_retry_count_rejected(self):
        with pytest.raises(ValidationError):
            self.make_record(retry_count=-1)
