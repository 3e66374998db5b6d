"""Template manifest: required and optional variables per template.

Keys follow the provider-side template placeholders. The manifest is
immutable configuration, not a runtime entity.
"""

from types import MappingProxyType
from typing import Mapping, NamedTuple, Optional, Tuple, Union

from notifier.domain.models import TemplateReference


class ManifestEntry(NamedTuple):
    """Ordered variable names for one template."""

    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()


def _feedback_optional() -> Tuple[str, ...]:
    names = [
        "TARGET_COMPANY",
        "INTERVIEW_LANGUAGE",
        "OVERALL_SCORE",
        "DURATION_MIN",
        "INTERVIEW_DATE",
        "TOPICS_COVERED",
    ]
    for i in range(1, 4):
        names += [f"STRENGTH_{i}", f"STRENGTH_{i}_TS"]
    names += [f"IMPROVEMENT_{i}" for i in range(1, 4)]
    for i in range(1, 4):
        names += [
            f"RUBRIC_{i}_NAME",
            f"RUBRIC_{i}_SCORE",
            f"RUBRIC_{i}_PCT",
            f"RUBRIC_{i}_EVIDENCE_TS",
            f"RUBRIC_{i}_EVIDENCE_NOTE",
        ]
    names += ["FEEDBACK_URL", "SENIORITY"]
    return tuple(names)


TEMPLATE_MANIFEST: Mapping[TemplateReference, ManifestEntry] = MappingProxyType(
    {
        TemplateReference.WELCOME_B2C: ManifestEntry(
            required=(
                "free_credits",
                "CANDIDATE_FIRST_NAME",
                "DASHBOARD_URL",
                "CURRENT_YEAR",
                "PRIVACY_URL",
                "TERMS_URL",
            ),
        ),
        TemplateReference.FEEDBACK: ManifestEntry(
            required=(
                "CANDIDATE_FIRST_NAME",
                "ROLE_TITLE",
                "DASHBOARD_URL",
                "CURRENT_YEAR",
                "PRIVACY_URL",
                "TERMS_URL",
            ),
            optional=_feedback_optional(),
        ),
        TemplateReference.TRANSACTIONAL: ManifestEntry(
            required=("content",),
            optional=(
                "preheader",
                "subject",
                "reason",
                "header",
                "header_highlight",
                "CURRENT_YEAR",
                "PRIVACY_URL",
                "TERMS_URL",
                "SUPPORT_EMAIL",
            ),
        ),
    }
)


def resolve_template(reference: Union[TemplateReference, str]) -> Optional[TemplateReference]:
    """Return the TemplateReference for a value, or None if it is not a known template."""
    try:
        return TemplateReference(reference)
    except ValueError:
        return None


def get_manifest(reference: Union[TemplateReference, str]) -> Optional[ManifestEntry]:
    template = resolve_template(reference)
    if template is None:
        return None
    return TEMPLATE_MANIFEST.get(template)


def is_known_template(reference: Union[TemplateReference, str]) -> bool:
    return get_manifest(reference) is not None
