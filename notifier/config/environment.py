"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError
from .models import ProviderMode

DEFAULT_DATABASE_URL = "sqlite:///./data/notifier.db"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        resend_api_key: Optional[str] = None,
        provider_mode: Optional[str] = None,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
        environment: Optional[str] = None,
    ):
        self.resend_api_key = resend_api_key
        self.provider_mode = provider_mode
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level
        self.environment = environment or "local"


def load_environment_config(config_mode: Optional[str] = None) -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Optional environment variables:
    - RESEND_API_KEY: Delivery provider API key (required when the effective mode is live)
    - EMAIL_PROVIDER_MODE: Override provider.mode from YAML (live, mock, disabled)
    - DATABASE_URL: SQLAlchemy database URL (default: sqlite:///./data/notifier.db)
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    - ENVIRONMENT: Environment label attached to every log record (default: local)

    Args:
        config_mode: Provider mode from the YAML config, used to decide whether
            RESEND_API_KEY is required when EMAIL_PROVIDER_MODE is unset

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If variables are invalid or the API key is missing in live mode
    """
    errors = []

    resend_api_key = os.getenv("RESEND_API_KEY")
    provider_mode = os.getenv("EMAIL_PROVIDER_MODE")
    database_url = os.getenv("DATABASE_URL")
    log_level = os.getenv("LOG_LEVEL")
    environment = os.getenv("ENVIRONMENT")

    valid_modes = [mode.value for mode in ProviderMode]
    if provider_mode:
        provider_mode = provider_mode.strip().lower()
        if provider_mode not in valid_modes:
            errors.append(
                f"Invalid EMAIL_PROVIDER_MODE: '{provider_mode}'. "
                f"Must be one of: {', '.join(valid_modes)}"
            )

    if log_level:
        if log_level.upper() not in VALID_LOG_LEVELS:
            errors.append(
                f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
            )

    if database_url is not None and not database_url.strip():
        errors.append("DATABASE_URL is set but empty")

    effective_mode = provider_mode or config_mode or ProviderMode.LIVE.value
    if effective_mode == ProviderMode.LIVE.value and not resend_api_key:
        errors.append("Missing required environment variable: RESEND_API_KEY (provider mode is live)")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Set EMAIL_PROVIDER_MODE=mock to run without a provider API key",
                "Check LOG_LEVEL and EMAIL_PROVIDER_MODE spelling",
            ],
        )

    return EnvironmentConfig(
        resend_api_key=resend_api_key,
        provider_mode=provider_mode,
        database_url=database_url,
        log_level=log_level.upper() if log_level else None,
        environment=environment,
    )
