"""Contract validator: checks a variable payload against its template manifest.

Pure: no I/O besides logging. An unknown template is a configuration error,
reported as invalid with an empty missing list.
"""

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Union

from notifier.domain.models import TemplateReference
from notifier.exceptions import TemplateValidationError
from notifier.logging import get_logger
from .manifest import get_manifest

logger = get_logger(__name__, component="contracts")


@dataclass
class ValidationResult:
    """Outcome of validating one payload."""

    valid: bool
    template_reference: str
    missing_required: List[str] = field(default_factory=list)
    provided_keys: List[str] = field(default_factory=list)
    unknown_template: bool = False

    def error_payload(self) -> dict:
        """Structured description stored on the delivery record."""
        return {
            "error": "unknown_template" if self.unknown_template else "missing_required_variables",
            "template_reference": self.template_reference,
            "missing_required": list(self.missing_required),
            "provided_keys": list(self.provided_keys),
        }


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


class ContractValidator:
    """Validates composed variables against TEMPLATE_MANIFEST."""

    def validate(
        self,
        template_reference: Union[TemplateReference, str],
        variables: Mapping[str, Any],
    ) -> ValidationResult:
        """
        Check that every required variable is present and non-blank.

        Optional variables are never checked.

        Args:
            template_reference: Template the payload is meant for
            variables: Variable payload

        Returns:
            ValidationResult
        """
        reference_value = getattr(template_reference, "value", str(template_reference))
        provided_keys = sorted(variables)
        manifest = get_manifest(template_reference)

        if manifest is None:
            logger.error(
                "Unknown template reference (configuration error)",
                extra={
                    "event": "contracts.unknown_template",
                    "template_reference": reference_value,
                },
            )
            return ValidationResult(
                valid=False,
                template_reference=reference_value,
                provided_keys=provided_keys,
                unknown_template=True,
            )

        missing = [name for name in manifest.required if _is_blank(variables.get(name))]

        if missing:
            logger.warning(
                "Template validation failed",
                extra={
                    "event": "contracts.validation_failed",
                    "template_reference": reference_value,
                    "missing_required": ",".join(missing),
                },
            )

        return ValidationResult(
            valid=not missing,
            template_reference=reference_value,
            missing_required=missing,
            provided_keys=provided_keys,
        )

    def assert_valid(
        self,
        template_reference: Union[TemplateReference, str],
        variables: Mapping[str, Any],
    ) -> ValidationResult:
        """Validate and raise TemplateValidationError on failure."""
        result = self.validate(template_reference, variables)
        if not result.valid:
            raise TemplateValidationError(
                result.template_reference,
                missing_required=result.missing_required,
                unknown_template=result.unknown_template,
            )
        return result
