"""Pipeline exceptions raised to callers.

Policy rejections and contract violations are results, not exceptions.
These exist for programmer errors and fail-fast callers.
"""

from typing import List, Optional


class NotifierError(Exception):
    """Base exception for notification pipeline errors."""

    pass


class CompositionError(NotifierError):
    """Raised when a composer is called without a required domain field.

    This is a programmer error in the caller, not a runtime condition.
    """

    def __init__(self, category: str, field: str, message: Optional[str] = None):
        self.category = category
        self.field = field
        super().__init__(message or f"Cannot compose {category}: '{field}' is required")


class TemplateValidationError(NotifierError):
    """Raised by ContractValidator.assert_valid() when a payload breaks its manifest."""

    def __init__(
        self,
        template_reference: str,
        missing_required: Optional[List[str]] = None,
        unknown_template: bool = False,
    ):
        self.template_reference = template_reference
        self.missing_required = list(missing_required or [])
        self.unknown_template = unknown_template

        if unknown_template:
            message = f"Unknown template reference: {template_reference}"
        else:
            message = (
                f"Template '{template_reference}' is missing required variables: "
                f"{', '.join(self.missing_required)}"
            )
        super().__init__(message)


class ContentRenderError(NotifierError):
    """Raised when a transactional content block fails to render."""

    pass
