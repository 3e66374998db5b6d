"""Shared pytest fixtures."""

import pytest

from notifier.config.models import AppConfig
from notifier.contracts.validator import ContractValidator
from notifier.dispatch.dispatcher import Dispatcher
from notifier.logging.context import clear_log_context
from notifier.persistence.database import close_database, init_database
from notifier.policy.engine import PolicyEngine, StaticConsentService
from tests.helpers import FIXED_NOW, FakeProvider

ENV_VARS = (
    "RESEND_API_KEY",
    "EMAIL_PROVIDER_MODE",
    "DATABASE_URL",
    "LOG_LEVEL",
    "ENVIRONMENT",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Remove notifier environment variables so a local .env never leaks into tests."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Environment for the live provider."""
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    return monkeypatch


@pytest.fixture
def test_database(tmp_path):
    """File-backed SQLite database, closed after the test."""
    db_file = tmp_path / "notifier_test.db"
    db_url = f"sqlite:///{db_file}"
    init_database(db_url)
    yield db_url
    close_database()


@pytest.fixture
def app_config():
    return AppConfig()


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def consent_service():
    return StaticConsentService()


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def dispatcher(test_database, consent_service, fake_provider):
    """Dispatcher over the test database with the fake provider and max_retries=3."""
    return Dispatcher(
        policy_engine=PolicyEngine(consent_service),
        validator=ContractValidator(),
        provider=fake_provider,
        max_retries=3,
    )
