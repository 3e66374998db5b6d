"""Configuration schema models using Pydantic."""

from email.utils import parseaddr
from enum import Enum
from typing import List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range

# Languages with message strings and formatting rules, mapped to their locale
LANGUAGE_LOCALES = {
    "en": "en-US",
    "pt": "pt-BR",
}

# Headroom between the provider timeout and stale SENDING recovery
STALE_SENDING_MARGIN_SECONDS = 60


class ProviderMode(str, Enum):
    """How outbound messages are delivered."""

    LIVE = "live"
    MOCK = "mock"
    DISABLED = "disabled"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _check_address(value: str) -> str:
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise ValueError(f"Invalid email address '{value}': {e}") from e


class BrandingConfig(BaseModel):
    """Product identity and the URLs shared by every message."""

    product_name: str = Field("Vocaid", min_length=1, description="Product name used in copy")
    frontend_url: str = Field(
        "https://vocaid.ai", description="Base URL of the web application"
    )
    support_email: str = Field("support@vocaid.ai", description="Support contact address")
    privacy_path: str = Field("/privacy", description="Privacy policy path")
    terms_path: str = Field("/terms", description="Terms of service path")
    dashboard_path: str = Field("/app/dashboard", description="Dashboard path")
    credits_path: str = Field("/credits", description="Credits purchase page path")

    @field_validator("frontend_url")
    @classmethod
    def validate_frontend_url(cls, v: str) -> str:
        """Require an absolute http(s) URL and drop any trailing slash."""
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"frontend_url must start with http:// or https://, got: {v}")
        return stripped

    @field_validator("support_email")
    @classmethod
    def validate_support_email(cls, v: str) -> str:
        return _check_address(v.strip())

    @field_validator("privacy_path", "terms_path", "dashboard_path", "credits_path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped.startswith("/"):
            raise ValueError(f"Path must start with '/', got: {v}")
        return stripped

    def url_for(self, path: str) -> str:
        """Join a path onto the frontend base URL."""
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.frontend_url}{path}"


class SendersConfig(BaseModel):
    """Sender identities, one per template family."""

    welcome: str = Field("Vocaid <welcome@contact.vocaid.ai>")
    feedback: str = Field("Vocaid <feedback@contact.vocaid.ai>")
    transactional: str = Field("Vocaid <transactional@contact.vocaid.ai>")

    @field_validator("welcome", "feedback", "transactional")
    @classmethod
    def validate_sender(cls, v: str) -> str:
        """Accept 'Name <address>' or a bare address with a valid address part."""
        stripped = v.strip()
        _, address = parseaddr(stripped)
        if not address:
            raise ValueError(f"Sender identity has no address: '{v}'")
        _check_address(address)
        return stripped


class LocalizationConfig(BaseModel):
    """Language selection for message copy and formatting."""

    default_language: str = Field("en", description="Fallback two-letter language tag")
    supported_languages: List[str] = Field(
        default_factory=lambda: ["en", "pt"],
        description="Two-letter language tags that messages may be written in",
    )

    @field_validator("default_language")
    @classmethod
    def normalize_default(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("supported_languages")
    @classmethod
    def normalize_supported(cls, v: List[str]) -> List[str]:
        normalized = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in normalized:
                normalized.append(tag)
        if not normalized:
            raise ValueError("supported_languages cannot be empty")
        return normalized

    @model_validator(mode="after")
    def validate_languages(self):
        unknown = [tag for tag in self.supported_languages if tag not in LANGUAGE_LOCALES]
        if unknown:
            raise ValueError(
                f"Unsupported language(s): {', '.join(unknown)}. "
                f"Available: {', '.join(sorted(LANGUAGE_LOCALES))}"
            )
        if self.default_language not in self.supported_languages:
            raise ValueError(
                f"default_language '{self.default_language}' must be one of supported_languages"
            )
        return self


class DispatchConfig(BaseModel):
    """Dispatcher limits."""

    max_retries: int = Field(
        3, ge=1, le=10, description="Maximum provider attempts per idempotency key"
    )
    error_max_length: int = Field(
        500, ge=50, le=5000, description="Stored provider error messages are truncated to this"
    )


class ProviderConfig(BaseModel):
    """Delivery provider client settings."""

    mode: ProviderMode = Field(ProviderMode.LIVE, description="live, mock or disabled")
    api_base_url: str = Field("https://api.resend.com", description="Provider API base URL")
    timeout_seconds: int = Field(30, ge=5, le=120, description="Outbound request timeout")
    user_agent: str = Field("TransactionalNotifier/1.0", min_length=1)

    @field_validator("api_base_url")
    @classmethod
    def strip_base_url(cls, v: str) -> str:
        stripped = v.strip().rstrip("/")
        if not stripped.startswith(("http://", "https://")):
            raise ValueError(f"api_base_url must start with http:// or https://, got: {v}")
        return stripped

    model_config = {"use_enum_values": True}


class RetryConfig(BaseModel):
    """Background retry of failed deliveries."""

    interval: str = Field("15m", description="How often the retry job runs")
    stale_after: str = Field(
        "30m", description="SENDING records older than this are treated as failed"
    )
    batch_limit: int = Field(100, ge=1, le=1000, description="Records retried per run")

    interval_seconds: Optional[int] = None
    stale_after_seconds: Optional[int] = None

    @field_validator("interval", "stale_after")
    @classmethod
    def validate_interval(cls, v: str) -> str:
        try:
            seconds = parse_duration(v)
            validate_duration_range(seconds, min_seconds=60, max_seconds=86400)
            return v
        except DurationParseError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def compute_seconds(self):
        self.interval_seconds = parse_duration(self.interval)
        self.stale_after_seconds = parse_duration(self.stale_after)
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object, built once at process start and injected everywhere."""

    branding: BrandingConfig = Field(default_factory=BrandingConfig)
    senders: SendersConfig = Field(default_factory=SendersConfig)
    localization: LocalizationConfig = Field(default_factory=LocalizationConfig)
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    provider: ProviderConfig = Field(default_factory=ProviderConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def validate_stale_after(self):
        """A SENDING record may only be treated as stale once its provider call has timed out."""
        minimum = self.provider.timeout_seconds + STALE_SENDING_MARGIN_SECONDS
        if self.retry.stale_after_seconds < minimum:
            raise ValueError(
                f"retry.stale_after ({self.retry.stale_after_seconds}s) must be at least "
                f"provider.timeout_seconds + {STALE_SENDING_MARGIN_SECONDS}s ({minimum}s)"
            )
        return self
