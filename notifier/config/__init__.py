"""Configuration management for the notification pipeline."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import build_app_config, load_config, validate_config_file
from .models import (
    LANGUAGE_LOCALES,
    AppConfig,
    BrandingConfig,
    DispatchConfig,
    LocalizationConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    ProviderConfig,
    ProviderMode,
    RetryConfig,
    SendersConfig,
)

__all__ = [
    # Loader functions
    "load_config",
    "build_app_config",
    "validate_config_file",
    "load_environment_config",
    # Configuration models
    "AppConfig",
    "BrandingConfig",
    "SendersConfig",
    "LocalizationConfig",
    "DispatchConfig",
    "ProviderConfig",
    "RetryConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "LANGUAGE_LOCALES",
    # Enums
    "ProviderMode",
    "LogLevel",
    "LogFormat",
    # Exceptions
    "ConfigurationError",
]
