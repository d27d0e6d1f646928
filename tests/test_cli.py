#!/usr/bin/env python3
"""
Tests for the command line interface.
"""

import json
import os

import pytest
import yaml
from typer.testing import CliRunner

from cite_core.cli import app

runner = CliRunner()


@pytest.fixture
def workspace(tmp_path):
    """A vault with a CSL-JSON export, a config file and a note."""
    export = [
        {"id": "smith2020", "type": "article-journal", "title": "Foo & Bar",
         "author": [{"family": "Smith", "given": "John"}],
         "issued": {"date-parts": [[2020]]}, "container-title": "Journal of Testing"},
        {"id": "empty"},
    ]
    (tmp_path / "library.json").write_text(json.dumps(export), encoding="utf-8")
    (tmp_path / "note.md").write_text(
        "See [[@smith2020]] and [@unknown1999].\nNothing here.\n", encoding="utf-8"
    )
    config = {
        "citations": {
            "vault_dir": str(tmp_path),
            "citation_export_path": "library.json",
            "citation_export_format": "csl-json",
            "literature_note_title_template": "{{title}} ({{year}})",
        },
    }
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump(config), encoding="utf-8")
    return tmp_path


def invoke(workspace, *args):
    return runner.invoke(app, ["--config-file", str(workspace / "config.yaml"), "--quiet", *args])


def test_load(workspace):
    """Test loading the configured export."""
    result = invoke(workspace, "load")
    assert result.exit_code == 0
    assert "Loaded 2 entries" in result.output


def test_lookup(workspace):
    """Test showing an entry."""
    result = invoke(workspace, "lookup", "smith2020")
    assert result.exit_code == 0
    assert "Foo & Bar" in result.output
    assert "John Smith" in result.output
    assert "2020" in result.output


def test_lookup_unknown(workspace):
    """Test that an unknown citekey is an error."""
    result = invoke(workspace, "lookup", "missing")
    assert result.exit_code == 1
    assert "Unknown citekey: missing" in result.output


def test_variables(workspace):
    """Test dumping template variables."""
    result = invoke(workspace, "variables", "smith2020")
    assert result.exit_code == 0
    variables = yaml.safe_load(result.stdout)
    assert variables["citekey"] == "smith2020"
    assert variables["containerTitle"] == "Journal of Testing"


def test_render(workspace):
    """Test rendering the configured title template."""
    result = invoke(workspace, "render", "title", "smith2020")
    assert result.exit_code == 0
    assert result.stdout.strip() == "Foo & Bar (2020)"

    result = invoke(workspace, "render", "markdown-citation", "smith2020")
    assert result.stdout.strip() == "[@smith2020]"


def test_cite(workspace):
    """Test inline and parenthetical citations."""
    result = invoke(workspace, "cite", "smith2020")
    assert result.exit_code == 0
    assert result.stdout.strip() == "Smith (2020)"

    result = invoke(workspace, "cite", "smith2020", "--no-inline")
    assert result.stdout.strip() == "(Smith, 2020)"


def test_cite_unavailable(workspace):
    """Test that an entry without printed form is reported, not printed."""
    result = invoke(workspace, "cite", "empty")
    assert result.exit_code == 1
    assert "No printed form" in result.output
    assert "NO_PRINTED_FORM" not in result.output


def test_extract(workspace):
    """Test listing citations in a note."""
    result = invoke(workspace, "extract", str(workspace / "note.md"))
    assert result.exit_code == 0
    lines = result.stdout.splitlines()
    assert lines[0].startswith("  @smith2020")
    assert lines[1].startswith("? @unknown1999")

    result = invoke(workspace, "extract", "--unresolved", str(workspace / "note.md"))
    assert "@smith2020" not in result.stdout
    assert "@unknown1999" in result.stdout


def test_extract_keys(workspace):
    """Test listing each cited key once."""
    note = workspace / "repeated.md"
    note.write_text("[@smith2020] then [@unknown1999]\nand [[@smith2020]] again.\n", encoding="utf-8")

    result = invoke(workspace, "extract", "--keys", str(note))
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["smith2020", "unknown1999"]

    result = invoke(workspace, "extract", "-k", "-u", str(note))
    assert result.exit_code == 0
    assert result.stdout.splitlines() == ["unknown1999"]


def test_note_path(workspace):
    """Test the literature note path."""
    result = invoke(workspace, "note-path", "smith2020")
    assert result.exit_code == 0
    assert result.stdout.strip() == os.path.join("Reading notes", "Foo & Bar (2020).md")


def test_export_override_and_load_failure(workspace):
    """Test --export and a failing load."""
    broken = workspace / "broken.json"
    broken.write_text("{not json", encoding="utf-8")

    result = invoke(workspace, "--export", str(broken), "load")
    assert result.exit_code == 1
    assert "Unable to load citations" in result.output


def test_no_export_configured(tmp_path):
    """Test the error when no export is configured."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text("citations: {}\n", encoding="utf-8")
    result = runner.invoke(app, ["--config-file", str(config_file), "--quiet", "load"])
    assert result.exit_code == 1
    assert "No citation export configured" in result.output
