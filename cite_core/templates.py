"""
Template rendering for literature notes and citations.

Templates use ``{{variable}}`` placeholders and are rendered with jinja2
with autoescaping disabled: the output is embedded in markdown, so markup
characters must come through untouched. Templates are compiled again on
every access so the latest configured source is always used.
"""

import logging
import os
from enum import Enum
from typing import Mapping

from jinja2 import Environment, Template, TemplateError

from cite_core.config import CitationsSettings
from cite_core.constants import DISALLOWED_FILENAME_CHARACTERS_RE
from cite_core.exceptions import TemplateRenderError

logger = logging.getLogger(__name__)


class TemplateKind(Enum):
    TITLE = "title"
    CONTENT = "content"
    MARKDOWN_CITATION = "markdown-citation"
    ALTERNATIVE_MARKDOWN_CITATION = "alternative-markdown-citation"


_SETTING_FOR_KIND = {
    TemplateKind.TITLE: 'literature_note_title_template',
    TemplateKind.CONTENT: 'literature_note_content_template',
    TemplateKind.MARKDOWN_CITATION: 'markdown_citation_template',
    TemplateKind.ALTERNATIVE_MARKDOWN_CITATION: 'alternative_markdown_citation_template',
}

_environment = Environment(autoescape=False, keep_trailing_newline=True)


def compile_template(source: str) -> Template:
    """
    Compile a template string.

    Raises:
        TemplateRenderError: if the template is malformed
    """
    try:
        return _environment.from_string(source)
    except TemplateError as e:
        raise TemplateRenderError(f"Invalid template {source!r}: {e}") from e


def render_template(template: Template, variables: Mapping[str, str]) -> str:
    """
    Render a compiled template against template variables.

    Raises:
        TemplateRenderError: if rendering fails
    """
    try:
        return template.render(dict(variables))
    except TemplateError as e:
        raise TemplateRenderError(f"Error rendering template: {e}") from e


class TemplateRenderer:
    """Renders the four configured templates."""

    def __init__(self, settings: CitationsSettings):
        self.settings = settings

    def source(self, kind: TemplateKind) -> str:
        return getattr(self.settings, _SETTING_FOR_KIND[kind])

    def compile(self, kind: TemplateKind) -> Template:
        return compile_template(self.source(kind))

    def render(self, kind: TemplateKind, variables: Mapping[str, str]) -> str:
        return render_template(self.compile(kind), variables)

    def note_title(self, variables: Mapping[str, str]) -> str:
        """Render the title template as a safe file name."""
        unsafe_title = self.render(TemplateKind.TITLE, variables)
        return DISALLOWED_FILENAME_CHARACTERS_RE.sub('_', unsafe_title)

    def note_path(self, variables: Mapping[str, str]) -> str:
        """Path of the literature note, relative to the vault."""
        return os.path.join(self.settings.literature_note_folder, f"{self.note_title(variables)}.md")
