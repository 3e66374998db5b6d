"""Tests for logging configuration and formatters."""

import json
import logging

import pytest

from notifier.logging import ComponentLoggerAdapter, get_logger
from notifier.logging.config import (
    SERVICE_NAME,
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from notifier.logging.context import log_context


@pytest.fixture
def logger():
    """Create a test logger with handler for capturing output."""
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()

    yield test_logger

    test_logger.handlers.clear()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(logger, message="Test message", extra=None):
    return logger.makeRecord("test", logging.INFO, "test.py", 1, message, (), None, extra=extra)


def test_json_formatter_basic(logger):
    """Test JSONFormatter produces valid JSON with mandatory fields."""
    log_obj = json.loads(JSONFormatter().format(make_record(logger)))

    assert log_obj["level"] == "INFO"
    assert log_obj["message"] == "Test message"
    assert log_obj["logger"] == "test"
    assert log_obj["timestamp"].endswith("Z")


def test_json_formatter_with_extra_fields(logger):
    """Test JSONFormatter includes extra fields."""
    record = make_record(
        logger, extra={"event": "dispatch.send.success", "retry_count": 2, "skipped": False}
    )

    log_obj = json.loads(JSONFormatter().format(record))

    assert log_obj["event"] == "dispatch.send.success"
    assert log_obj["retry_count"] == 2
    assert log_obj["skipped"] is False


def test_json_formatter_converts_enums(logger):
    from notifier.domain.models import DeliveryStatus

    record = make_record(logger, extra={"status": DeliveryStatus.SENT})

    assert json.loads(JSONFormatter().format(record))["status"] == "SENT"


def test_key_value_formatter(logger):
    """Test KeyValueFormatter appends sorted key=value pairs and quotes spaced values."""
    formatter = KeyValueFormatter("%(levelname)s %(message)s")
    record = make_record(
        logger,
        extra={"event": "retry.run.complete", "reason": "opted out", "error": None, "ok": True},
    )

    output = formatter.format(record)

    assert output.startswith("INFO Test message")
    assert "event=retry.run.complete" in output
    assert 'reason="opted out"' in output
    assert "error=null" in output
    assert "ok=true" in output


def test_contextual_filter_adds_context(logger):
    """Test ContextualFilter adds service, environment and active context."""
    record = make_record(logger)
    context_filter = ContextualFilter(environment="test")

    with log_context(idempotency_key="welcome:U1"):
        context_filter.filter(record)

    assert record.service == SERVICE_NAME
    assert record.environment == "test"
    assert record.idempotency_key == "welcome:U1"


def test_contextual_filter_does_not_override_explicit_fields(logger):
    record = make_record(logger, extra={"owner_id": "explicit"})

    with log_context(owner_id="from-context"):
        ContextualFilter().filter(record)

    assert record.owner_id == "explicit"


def test_configure_logging_json(restore_root_logger, capsys):
    """Test configure_logging installs one handler with the JSON formatter."""
    configure_logging(level="DEBUG", format_type="json", environment="test")

    root = restore_root_logger
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JSONFormatter)

    logging.getLogger("notifier.test").info("hello", extra={"event": "test.event"})
    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    last = json.loads(lines[-1])
    assert last["message"] == "hello"
    assert last["environment"] == "test"


def test_configure_logging_quiets_noisy_loggers(restore_root_logger):
    configure_logging(level="INFO", format_type="key-value")

    assert logging.getLogger("apscheduler").level == logging.WARNING


def test_configure_logging_rejects_invalid_values(restore_root_logger):
    with pytest.raises(ValueError):
        configure_logging(level="LOUD")

    with pytest.raises(ValueError):
        configure_logging(format_type="xml")


def test_get_logger_with_component():
    """Test component is merged into every record's extras."""
    adapted = get_logger("notifier.test", component="dispatcher")

    assert isinstance(adapted, ComponentLoggerAdapter)
    _, kwargs = adapted.process("msg", {"extra": {"event": "x"}})
    assert kwargs["extra"] == {"component": "dispatcher", "event": "x"}


def test_get_logger_without_component():
    assert isinstance(get_logger("notifier.test"), logging.Logger)
