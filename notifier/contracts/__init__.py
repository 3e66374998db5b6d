"""Template contracts: manifest and validator."""

from .manifest import (
    TEMPLATE_MANIFEST,
    ManifestEntry,
    get_manifest,
    is_known_template,
    resolve_template,
)
from .validator import ContractValidator, ValidationResult

__all__ = [
    "TEMPLATE_MANIFEST",
    "ManifestEntry",
    "ContractValidator",
    "ValidationResult",
    "get_manifest",
    "is_known_template",
    "resolve_template",
]
