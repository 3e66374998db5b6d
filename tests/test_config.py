"""Integration tests for configuration module."""

import warnings
from pathlib import Path

import pytest

from notifier.config import (
    AppConfig,
    BrandingConfig,
    ConfigurationError,
    LocalizationConfig,
    ProviderMode,
    SendersConfig,
    build_app_config,
    load_config,
    validate_config_file,
)
from notifier.config.duration import (
    DurationParseError,
    parse_duration,
    seconds_to_human_readable,
    validate_duration_range,
)
from notifier.config.environment import DEFAULT_DATABASE_URL, load_environment_config
from notifier.config.validators import check_for_warnings


# Test fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_load_valid_config(self):
        """Test loading a fully specified configuration file."""
        app_config, env_config = load_config(FIXTURES_DIR / "valid_config.yaml")

        assert app_config.branding.frontend_url == "https://app.example.com"
        assert app_config.senders.welcome == "Example <welcome@example.com>"
        assert app_config.localization.default_language == "pt"
        assert app_config.dispatch.max_retries == 5
        assert app_config.dispatch.error_max_length == 200
        assert app_config.provider.mode == "mock"
        assert app_config.provider.timeout_seconds == 10
        assert app_config.retry.interval_seconds == 1800
        assert app_config.retry.stale_after_seconds == 3600
        assert app_config.retry.batch_limit == 50
        assert app_config.logging.level == "DEBUG"
        assert app_config.logging.format == "json"

        assert env_config.database_url == DEFAULT_DATABASE_URL

    def test_load_minimal_config_applies_defaults(self):
        """Test that every omitted section gets its defaults."""
        app_config, _ = load_config(FIXTURES_DIR / "minimal_config.yaml")

        assert app_config.branding.frontend_url == "https://vocaid.ai"
        assert app_config.dispatch.max_retries == 3
        assert app_config.dispatch.error_max_length == 500
        assert app_config.retry.interval_seconds == 900
        assert app_config.localization.supported_languages == ["en", "pt"]
        assert app_config.logging.format == "key-value"

    def test_empty_file_is_valid_config(self, mock_env_vars):
        """Test that an empty YAML file yields the default configuration."""
        app_config, env_config = load_config(FIXTURES_DIR / "empty_config.yaml")

        assert app_config == AppConfig()
        assert env_config.resend_api_key == "re_test_key"

    def test_invalid_config_reports_every_error(self):
        """Test that validation errors are collected, numbered and explained."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(FIXTURES_DIR / "invalid_config.yaml")

        error = exc_info.value
        assert error.message == "Configuration validation failed"
        assert len(error.errors) == 3
        assert any("max_retries" in e for e in error.errors)
        assert any("localization" in e for e in error.errors)
        assert any("interval" in e for e in error.errors)
        assert "1. " in str(error)
        assert error.suggestions

    def test_missing_config_file(self, tmp_path):
        """Test explicit path that does not exist."""
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(tmp_path / "missing.yaml")

        assert "not found" in str(exc_info.value)

    def test_fallback_config_locations(self, tmp_path, monkeypatch):
        """Test config/config.yaml is found when config.yaml is absent."""
        monkeypatch.chdir(tmp_path)
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "config.yaml").write_text("provider:\n  mode: disabled\n")

        app_config, _ = load_config()

        assert app_config.provider.mode == "disabled"

    def test_no_config_file_anywhere(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError) as exc_info:
            load_config()

        assert "Tried: config.yaml" in exc_info.value.errors

    def test_top_level_list_rejected(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- one\n- two\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file)

        assert "mapping" in str(exc_info.value)

    def test_malformed_yaml(self, tmp_path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("provider: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(config_file)

        assert "Failed to parse YAML" in str(exc_info.value)

    def test_validate_config_file(self, capsys):
        """Test standalone validation prints a verdict."""
        assert validate_config_file(FIXTURES_DIR / "valid_config.yaml") is True
        assert "is valid" in capsys.readouterr().out

        assert validate_config_file(FIXTURES_DIR / "invalid_config.yaml") is False
        assert "validation failed" in capsys.readouterr().out


class TestConfigModels:
    """Test pydantic configuration models."""

    def test_frontend_url_must_be_absolute(self):
        with pytest.raises(ConfigurationError):
            build_app_config({"branding": {"frontend_url": "vocaid.ai"}})

    def test_url_for_joins_paths(self):
        branding = BrandingConfig(frontend_url="https://vocaid.ai/")
        assert branding.url_for("/privacy") == "https://vocaid.ai/privacy"
        assert branding.url_for("terms") == "https://vocaid.ai/terms"

    def test_paths_must_start_with_slash(self):
        with pytest.raises(ValueError):
            BrandingConfig(privacy_path="privacy")

    def test_invalid_support_email(self):
        with pytest.raises(ValueError):
            BrandingConfig(support_email="not-an-email")

    def test_sender_accepts_display_name_or_bare_address(self):
        senders = SendersConfig(welcome="welcome@example.com", feedback="Team <team@example.com>")
        assert senders.welcome == "welcome@example.com"
        assert senders.feedback == "Team <team@example.com>"

    def test_sender_without_address_rejected(self):
        with pytest.raises(ValueError):
            SendersConfig(welcome="Vocaid")

    def test_localization_normalizes_tags(self):
        localization = LocalizationConfig(default_language="PT", supported_languages=["pt", "EN", "pt"])
        assert localization.default_language == "pt"
        assert localization.supported_languages == ["pt", "en"]

    def test_localization_rejects_unknown_language(self):
        with pytest.raises(ValueError, match="Unsupported language"):
            LocalizationConfig(supported_languages=["en", "de"])

    def test_localization_default_must_be_supported(self):
        with pytest.raises(ValueError, match="default_language"):
            LocalizationConfig(default_language="pt", supported_languages=["en"])

    def test_max_retries_bounds(self):
        with pytest.raises(ConfigurationError):
            build_app_config({"dispatch": {"max_retries": 11}})

        config = build_app_config({"dispatch": {"max_retries": 1}})
        assert config.dispatch.max_retries == 1

    def test_invalid_provider_mode(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"provider": {"mode": "smtp"}})

        assert any("provider -> mode" in e for e in exc_info.value.errors)

    def test_stale_after_must_outlast_provider_timeout(self):
        with pytest.raises(ConfigurationError) as exc_info:
            build_app_config({"retry": {"stale_after": "1m"}, "provider": {"timeout_seconds": 120}})

        assert any("retry.stale_after" in e for e in exc_info.value.errors)

        with pytest.raises(ConfigurationError):
            build_app_config({"retry": {"stale_after": "2m"}, "provider": {"timeout_seconds": 90}})

        config = build_app_config({"retry": {"stale_after": "3m"}, "provider": {"timeout_seconds": 120}})
        assert config.retry.stale_after_seconds == 180


class TestEnvironmentConfig:
    """Test environment variable loading."""

    def test_live_mode_requires_api_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config(config_mode="live")

        assert any("RESEND_API_KEY" in e for e in exc_info.value.errors)

    def test_mock_mode_needs_no_api_key(self):
        env_config = load_environment_config(config_mode="mock")

        assert env_config.resend_api_key is None
        assert env_config.database_url == DEFAULT_DATABASE_URL
        assert env_config.environment == "local"

    def test_environment_mode_overrides_yaml(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER_MODE", "Mock")

        env_config = load_environment_config(config_mode="live")

        assert env_config.provider_mode == "mock"

    def test_invalid_values_collected(self, monkeypatch):
        monkeypatch.setenv("EMAIL_PROVIDER_MODE", "carrier-pigeon")
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        monkeypatch.setenv("DATABASE_URL", "  ")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config(config_mode="mock")

        assert len(exc_info.value.errors) == 3

    def test_values_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("RESEND_API_KEY", "re_123")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/x.db")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("ENVIRONMENT", "staging")

        env_config = load_environment_config()

        assert env_config.resend_api_key == "re_123"
        assert env_config.database_url == "sqlite:///tmp/x.db"
        assert env_config.log_level == "DEBUG"
        assert env_config.environment == "staging"


class TestConfigWarnings:
    """Test soft configuration warnings."""

    def test_disabled_provider_warns(self):
        warnings_found = check_for_warnings({"provider": {"mode": "disabled"}})
        assert any("disabled" in w for w in warnings_found)

    def test_insecure_frontend_url_warns(self):
        warnings_found = check_for_warnings({"branding": {"frontend_url": "http://vocaid.ai"}})
        assert any("not HTTPS" in w for w in warnings_found)

    def test_localhost_url_does_not_warn(self):
        assert check_for_warnings({"branding": {"frontend_url": "http://localhost:3000"}}) == []

    def test_single_attempt_warns(self):
        warnings_found = check_for_warnings({"dispatch": {"max_retries": 1}})
        assert any("never be retried" in w for w in warnings_found)

    def test_warnings_emitted_on_load(self):
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            load_config(FIXTURES_DIR / "minimal_config.yaml")

        assert any("mock" in str(w.message) for w in caught)


class TestDurationParsing:
    """Test duration parsing helpers."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("15m", 900),
            ("1h", 3600),
            ("1h30m", 5400),
            ("2d", 172800),
            ("PT15M", 900),
            ("PT1H30M", 5400),
            ("P1D", 86400),
        ],
    )
    def test_parse_valid_durations(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "15", "15 minutes", "PT", "0m", "abc"])
    def test_parse_invalid_durations(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_validate_duration_range(self):
        validate_duration_range(900, min_seconds=60, max_seconds=86400)

        with pytest.raises(DurationParseError, match="too short"):
            validate_duration_range(30, min_seconds=60, max_seconds=86400)

        with pytest.raises(DurationParseError, match="too long"):
            validate_duration_range(90000, min_seconds=60, max_seconds=86400)

    def test_seconds_to_human_readable(self):
        assert seconds_to_human_readable(1) == "1 second"
        assert seconds_to_human_readable(900) == "15 minutes"
        assert seconds_to_human_readable(3600) == "1 hour"
        assert seconds_to_human_readable(172800) == "2 days"

    def test_retry_interval_defaults(self):
        config = AppConfig()
        assert config.retry.interval_seconds == 900
        assert config.retry.stale_after_seconds == 1800
        assert config.provider.mode == ProviderMode.LIVE.value
