"""Unit tests for the retry job."""

from unittest.mock import Mock

import pytest

from notifier.config.models import AppConfig
from notifier.contracts.validator import ContractValidator
from notifier.dispatch import Dispatcher, ProviderHTTPError
from notifier.domain.models import DeliveryStatus, ErrorType, MessageCategory, TemplateReference
from notifier.persistence import DeliveryRecordRepository, get_session
from notifier.policy.engine import PolicyEngine
from notifier.scheduler import STALE_SENDING_ERROR, RetryJob
from tests.helpers import FakeClock, FakeProvider, make_message


def fetch(key):
    with get_session() as session:
        return DeliveryRecordRepository(session).get_by_key(key)


def server_error():
    return ProviderHTTPError("HTTP 503: Service Unavailable", status_code=503, url="https://x/emails")


def low_credits_message():
    return make_message(
        idempotency_key="low-credits:U2:2:2024-05-01",
        category=MessageCategory.LOW_CREDITS_WARNING,
        template_reference=TemplateReference.TRANSACTIONAL,
        owner_id="U2",
        variables={"content": "<p>2 credits left</p>", "subject": "Low credits"},
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def retry_job(dispatcher, clock):
    return RetryJob(dispatcher, max_retries=3, stale_after_seconds=1800, clock=clock)


class TestRetryRun:
    """Tests for a single retry run."""

    def test_no_candidates(self, retry_job):
        result = retry_job.run_once()

        assert result.total_candidates == 0
        assert result.retried == 0
        assert result.run_id

    def test_failed_record_is_redelivered(self, dispatcher, fake_provider, retry_job):
        fake_provider.script(server_error())
        dispatcher.send(low_credits_message())

        result = retry_job.run_once()

        assert result.total_candidates == 1
        assert result.retried == 1
        assert result.succeeded == 1
        assert result.still_failing == 0
        record = fetch("low-credits:U2:2:2024-05-01")
        assert record.status == DeliveryStatus.SENT
        assert record.retry_count == 2
        assert fake_provider.calls[1].variables["content"] == "<p>2 credits left</p>"

    def test_still_failing(self, dispatcher, fake_provider, retry_job):
        fake_provider.script(server_error(), server_error())
        dispatcher.send(low_credits_message())

        result = retry_job.run_once()

        assert result.retried == 1
        assert result.still_failing == 1
        assert fetch("low-credits:U2:2:2024-05-01").retry_count == 2

    def test_exhausted_records_are_not_candidates(self, dispatcher, fake_provider, retry_job):
        fake_provider.script(server_error(), server_error(), server_error())
        for _ in range(3):
            dispatcher.send(low_credits_message())

        result = retry_job.run_once()

        assert result.total_candidates == 0
        assert fake_provider.call_count == 3

    def test_validation_failures_are_not_retried(self, dispatcher, fake_provider, retry_job):
        dispatcher.send(low_credits_message().model_copy(update={"variables": {}}))

        result = retry_job.run_once()

        assert result.total_candidates == 0
        assert fake_provider.call_count == 0

    def test_security_exempt_records_are_skipped(self, dispatcher, fake_provider, retry_job):
        """Reset links are not stored, so only the caller can retry them."""
        fake_provider.script(server_error())
        dispatcher.send(
            make_message(
                idempotency_key="password-reset:U1:tok",
                category=MessageCategory.PASSWORD_RESET,
                template_reference=TemplateReference.TRANSACTIONAL,
            )
        )

        result = retry_job.run_once()

        assert result.total_candidates == 1
        assert result.skipped == 1
        assert result.retried == 0
        assert fetch("password-reset:U1:tok").status == DeliveryStatus.FAILED

    def test_custom_rebuild(self, dispatcher, fake_provider, clock):
        fake_provider.script(server_error())
        dispatcher.send(low_credits_message())
        rebuild = Mock(return_value=low_credits_message())

        result = RetryJob(dispatcher, rebuild=rebuild, clock=clock).run_once()

        assert rebuild.call_count == 1
        assert rebuild.call_args[0][0].idempotency_key == "low-credits:U2:2:2024-05-01"
        assert result.succeeded == 1


class TestStaleRecovery:
    def claim_at(self, dispatcher, message, clock):
        with get_session() as session:
            repo = DeliveryRecordRepository(session, clock=clock)
            repo.insert_if_absent(dispatcher._new_record(message, DeliveryStatus.PENDING))
            repo.claim_for_sending(message.idempotency_key, max_retries=3)

    def test_stale_sending_record_recovered_and_retried(self, dispatcher, fake_provider, retry_job, clock):
        message = low_credits_message()
        self.claim_at(dispatcher, message, FakeClock(clock()))
        clock.advance(hours=1)

        result = retry_job.run_once()

        assert result.recovered_stale == 1
        assert result.succeeded == 1
        record = fetch(message.idempotency_key)
        assert record.status == DeliveryStatus.SENT
        assert record.retry_count == 2

    def test_recent_sending_record_left_alone(self, dispatcher, fake_provider, retry_job, clock):
        message = low_credits_message()
        self.claim_at(dispatcher, message, FakeClock(clock()))
        clock.advance(minutes=10)

        result = retry_job.run_once()

        assert result.recovered_stale == 0
        assert result.total_candidates == 0
        assert fetch(message.idempotency_key).status == DeliveryStatus.SENDING

    def test_recovered_record_records_reason(self, dispatcher, clock):
        message = low_credits_message()
        self.claim_at(dispatcher, message, FakeClock(clock()))
        clock.advance(hours=1)

        # Ceiling of 1 keeps the recovered record from being retried
        RetryJob(dispatcher, max_retries=1, clock=clock).run_once()

        record = fetch(message.idempotency_key)
        assert record.status == DeliveryStatus.FAILED
        assert record.error_type == ErrorType.STALE_SENDING
        assert record.last_error == STALE_SENDING_ERROR

    def test_call_within_provider_timeout_is_never_recovered(self, test_database, consent_service, clock):
        """A retry run during a slow provider call must not hand the key to a second attempt."""
        config = AppConfig.model_validate(
            {"provider": {"mode": "mock", "timeout_seconds": 120}, "retry": {"stale_after": "3m"}}
        )
        nested_runs = []

        class SlowProvider(FakeProvider):
            def send(self, message):
                if not self.calls:
                    clock.advance(seconds=config.provider.timeout_seconds)
                    nested_runs.append(job.run_once())
                return super().send(message)

        provider = SlowProvider()
        dispatcher = Dispatcher(
            PolicyEngine(consent_service), ContractValidator(), provider, clock=clock
        )
        job = RetryJob.from_config(config, dispatcher)
        job.clock = clock

        result = dispatcher.send(low_credits_message())

        assert nested_runs[0].recovered_stale == 0
        assert nested_runs[0].retried == 0
        assert provider.call_count == 1
        record = fetch(low_credits_message().idempotency_key)
        assert record.status == DeliveryStatus.SENT
        assert record.provider_message_id == result.provider_message_id


class TestFromConfig:
    def test_from_config(self, dispatcher):
        config = AppConfig.model_validate(
            {"dispatch": {"max_retries": 4}, "retry": {"batch_limit": 10, "stale_after": "1h"}}
        )

        job = RetryJob.from_config(config, dispatcher)

        assert job.max_retries == 4
        assert job.batch_limit == 10
        assert job.stale_after_seconds == 3600
