"""Process-wide variables shared by every template."""

from datetime import datetime
from typing import Dict, Mapping

from notifier.config.models import AppConfig
from notifier.domain.models import VariableValue


def common_variables(config: AppConfig, now: datetime) -> Dict[str, str]:
    branding = config.branding
    return {
        "CURRENT_YEAR": str(now.year),
        "PRIVACY_URL": branding.url_for(branding.privacy_path),
        "TERMS_URL": branding.url_for(branding.terms_path),
        "SUPPORT_EMAIL": branding.support_email,
        "DASHBOARD_URL": branding.url_for(branding.dashboard_path),
    }


def with_common_variables(
    specific: Mapping[str, VariableValue],
    config: AppConfig,
    now: datetime,
) -> Dict[str, VariableValue]:
    """Merge common variables under the category-specific ones (specific wins)."""
    return {**common_variables(config, now), **specific}
