#!/usr/bin/env python3
"""
Tests for template rendering.
"""

import os

import pytest

from cite_core.config import CitationsSettings
from cite_core.exceptions import TemplateRenderError
from cite_core.templates import TemplateKind, TemplateRenderer, compile_template, render_template


def test_no_escaping():
    """Test that markup characters pass through unescaped."""
    template = compile_template("{{title}}")
    assert render_template(template, {"title": "Foo & Bar"}) == "Foo & Bar"

    template = compile_template("*{{title}}* [{{citekey}}] <{{year}}>")
    rendered = render_template(template, {"title": "A 'quoted' \"title\"", "citekey": "k", "year": "2020"})
    assert rendered == "*A 'quoted' \"title\"* [k] <2020>"


def test_missing_variables_render_empty():
    """Test that unknown variables render as empty strings."""
    template = compile_template("{{title}}|{{nonexistent}}|")
    assert render_template(template, {"title": "T"}) == "T||"


def test_trailing_newline_is_kept():
    """Test that content templates keep their final newline."""
    template = compile_template("# {{title}}\n")
    assert render_template(template, {"title": "T"}) == "# T\n"


def test_malformed_template():
    """Test that syntax errors surface as TemplateRenderError."""
    with pytest.raises(TemplateRenderError):
        compile_template("{{ title ")
    with pytest.raises(TemplateRenderError):
        compile_template("{% if title %}no end")


def test_render_error():
    """Test that errors while rendering surface as TemplateRenderError."""
    template = compile_template("{{ title.missing.deeper }}")
    with pytest.raises(TemplateRenderError):
        render_template(template, {"title": "T"})


def test_renderer_uses_configured_templates():
    """Test the four configured templates."""
    settings = CitationsSettings(
        literature_note_title_template="@{{citekey}}",
        literature_note_content_template="# {{title}}",
        markdown_citation_template="[@{{citekey}}]",
        alternative_markdown_citation_template="{{authorString}} ({{year}})",
    )
    renderer = TemplateRenderer(settings)
    variables = {"citekey": "smith2020", "title": "T", "authorString": "John Smith", "year": "2020"}

    assert renderer.render(TemplateKind.TITLE, variables) == "@smith2020"
    assert renderer.render(TemplateKind.CONTENT, variables) == "# T"
    assert renderer.render(TemplateKind.MARKDOWN_CITATION, variables) == "[@smith2020]"
    assert renderer.render(TemplateKind.ALTERNATIVE_MARKDOWN_CITATION, variables) == "John Smith (2020)"


def test_renderer_picks_up_changed_settings():
    """Test that templates are recompiled from the current settings on every call."""
    settings = CitationsSettings(markdown_citation_template="[@{{citekey}}]")
    renderer = TemplateRenderer(settings)
    assert renderer.render(TemplateKind.MARKDOWN_CITATION, {"citekey": "k"}) == "[@k]"

    settings.markdown_citation_template = "(@{{citekey}})"
    assert renderer.render(TemplateKind.MARKDOWN_CITATION, {"citekey": "k"}) == "(@k)"


def test_note_title_and_path():
    """Test that note titles are made safe for use as file names."""
    settings = CitationsSettings(literature_note_title_template="{{title}}",
                                 literature_note_folder="Reading notes")
    renderer = TemplateRenderer(settings)
    variables = {"title": 'What is "AI"? A/B: tests*'}

    assert renderer.note_title(variables) == "What is _AI__ A_B_ tests_"
    assert renderer.note_path(variables) == os.path.join("Reading notes", "What is _AI__ A_B_ tests_.md")
