"""Rendering of transactional content blocks with Jinja2.

The provider renders the final message body; these templates only produce
the HTML `content` variable of the transactional template (receipt table,
reset link, verification code, ...). Rendering is pure.
"""

import logging
from typing import Any, Dict, Optional

from jinja2 import Environment, PackageLoader, StrictUndefined, TemplateError

from notifier.exceptions import ContentRenderError

logger = logging.getLogger(__name__)


class ContentRenderer:
    """Renders content blocks from the notifier.composer content_templates package.

    Templates are cached by the Jinja2 environment after first load.
    """

    def __init__(self, template_dir: str = "content_templates"):
        self.env = Environment(
            loader=PackageLoader("notifier.composer", template_dir),
            autoescape=True,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, template_name: str, context: Dict[str, Any]) -> str:
        """
        Render one content block.

        Args:
            template_name: File name under content_templates (e.g. "purchase_receipt.html.j2")
            context: Template variables

        Returns:
            Rendered HTML, stripped of surrounding whitespace

        Raises:
            ContentRenderError: If the template is missing or references an undefined variable
        """
        try:
            template = self.env.get_template(template_name)
            return template.render(context).strip()
        except TemplateError as e:
            error_msg = f"Content rendering failed for {template_name}: {e}"
            logger.error(error_msg, exc_info=True)
            raise ContentRenderError(error_msg) from e


_default_renderer: Optional[ContentRenderer] = None


def get_renderer() -> ContentRenderer:
    """Shared renderer instance (the Jinja2 environment is immutable once built)."""
    global _default_renderer
    if _default_renderer is None:
        _default_renderer = ContentRenderer()
    return _default_renderer
