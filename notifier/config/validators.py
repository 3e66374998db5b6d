"""Additional validation utilities for configuration."""

import warnings
from typing import Any, Dict, List


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check configuration for potential issues and return warnings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    provider = config_dict.get("provider", {})
    if isinstance(provider, dict):
        mode = str(provider.get("mode", "live")).strip().lower()
        if mode == "disabled":
            warning_messages.append(
                "Provider mode is 'disabled': every dispatch will be recorded as FAILED"
            )
        elif mode == "mock":
            warning_messages.append("Provider mode is 'mock': no messages will leave the process")

    branding = config_dict.get("branding", {})
    if isinstance(branding, dict):
        frontend_url = branding.get("frontend_url", "")
        if isinstance(frontend_url, str) and frontend_url.strip().startswith("http://"):
            if "localhost" not in frontend_url and "127.0.0.1" not in frontend_url:
                warning_messages.append(
                    f"frontend_url ({frontend_url}) is not HTTPS; links in messages will be insecure"
                )

    dispatch = config_dict.get("dispatch", {})
    if isinstance(dispatch, dict):
        max_retries = dispatch.get("max_retries", 3)
        if isinstance(max_retries, int) and max_retries == 1:
            warning_messages.append(
                "dispatch.max_retries is 1: failed deliveries will never be retried"
            )

    retry = config_dict.get("retry", {})
    if isinstance(retry, dict):
        interval = retry.get("interval", "15m")
        if isinstance(interval, str):
            if interval.strip().lower() in ["1m", "2m", "PT1M", "pt1m", "PT2M", "pt2m"]:
                warning_messages.append(
                    f"Short retry.interval ({interval}) may trigger provider rate limits"
                )

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """
    Emit warning messages using Python's warnings module.

    Args:
        warning_messages: List of warning messages to emit
    """
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
