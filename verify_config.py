#!/usr/bin/env python3
"""Simple script to verify config.example.yaml structure without the package installed."""

import yaml
from pathlib import Path

SECTIONS = {
    'branding': ['frontend_url', 'support_email'],
    'senders': ['welcome', 'feedback', 'transactional'],
    'localization': ['default_language', 'supported_languages'],
    'dispatch': ['max_retries'],
    'provider': ['mode'],
    'retry': ['interval'],
    'logging': ['level', 'format'],
}

VALID_PROVIDER_MODES = ['live', 'mock', 'disabled']
VALID_LANGUAGES = ['en', 'pt']


def verify_config_structure(config_file=Path("config.example.yaml")):
    """Verify config.example.yaml has the expected structure."""
    if not config_file.exists():
        print(f"✗ {config_file} not found")
        return False

    try:
        with open(config_file, 'r') as f:
            config = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        print(f"✗ Failed to parse {config_file}: {e}")
        return False

    if not isinstance(config, dict):
        print(f"✗ {config_file} must contain a mapping at the top level")
        return False

    errors = []

    for section, keys in SECTIONS.items():
        if section not in config:
            continue
        if not isinstance(config[section], dict):
            errors.append(f"'{section}' must be a dictionary")
            continue
        for key in keys:
            if key not in config[section]:
                errors.append(f"'{section}' missing key: {key}")

    unknown = sorted(set(config) - set(SECTIONS))
    for key in unknown:
        errors.append(f"Unknown top-level key: {key}")

    mode = config.get('provider', {}).get('mode')
    if mode is not None and mode not in VALID_PROVIDER_MODES:
        errors.append(f"provider.mode has invalid value: {mode}")

    localization = config.get('localization', {})
    for tag in localization.get('supported_languages', []):
        if tag not in VALID_LANGUAGES:
            errors.append(f"Unsupported language: {tag}")
    default = localization.get('default_language')
    if default and default not in localization.get('supported_languages', VALID_LANGUAGES):
        errors.append(f"default_language '{default}' is not in supported_languages")

    max_retries = config.get('dispatch', {}).get('max_retries')
    if max_retries is not None and not (isinstance(max_retries, int) and 1 <= max_retries <= 10):
        errors.append("dispatch.max_retries must be an integer between 1 and 10")

    if errors:
        print(f"✗ {config_file} validation failed:")
        for error in errors:
            print(f"  - {error}")
        return False

    print(f"✓ {config_file} structure is valid")
    print(f"  - Provider mode: {mode or 'live (default)'}")
    print(f"  - Max retries: {max_retries or 3}")
    print(f"  - Retry interval: {config.get('retry', {}).get('interval', '15m')}")
    print(f"  - Languages: {', '.join(localization.get('supported_languages', VALID_LANGUAGES))}")
    return True


if __name__ == "__main__":
    import sys
    success = verify_config_structure()
    sys.exit(0 if success else 1)
