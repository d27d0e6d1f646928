"""
Command line interface for cite_core.

Usage:
  cite-core load                      Parse the export and report entry count
  cite-core lookup CITEKEY            Show one normalized entry
  cite-core variables CITEKEY         Dump the template variables of an entry
  cite-core render KIND CITEKEY       Render a configured template
  cite-core cite CITEKEY              Format an inline citation
  cite-core extract FILE              List citations found in a note
  cite-core note-path CITEKEY         Path of the literature note for an entry
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import typer
import yaml

from cite_core.config import load_config, get_config_value, resolve_path
from cite_core.exceptions import CiteCoreError
from cite_core.extract import cited_keys
from cite_core.service import CitationService
from cite_core.templates import TemplateKind

logger = logging.getLogger(__name__)

app = typer.Typer(help="Query a bibliography export: entries, templates and citations.")


def configure_logging(level: str, log_file: Optional[str] = None) -> None:
    """Configure root logging for command line use."""
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(resolve_path(log_file), encoding='utf-8'))
    logging.basicConfig(level=getattr(logging, level, logging.INFO),
                        format='%(levelname)s: %(message)s', handlers=handlers, force=True)


@app.callback()
def callback(ctx: typer.Context,
             config_file: Optional[Path] = typer.Option(None, "--config-file", help="Path to a YAML configuration file."),
             export: Optional[str] = typer.Option(None, "--export", "-e", help="Override the citation export path"),
             export_format: Optional[str] = typer.Option(None, "--format", "-f", help="Override the export format (biblatex or csl-json)"),
             verbose: bool = typer.Option(False, "--verbose", "-v", help="Increase verbosity of output."),
             quiet: bool = typer.Option(False, "--quiet", "-q", help="Run quietly, suppressing most output.")):
    """Initialize the Typer context with configuration."""
    config = load_config(str(config_file) if config_file else None)
    level = get_config_value(config, "logging.level", "INFO")
    if verbose:
        level = "DEBUG"
    elif quiet:
        level = "CRITICAL"
    configure_logging(str(level).upper(), get_config_value(config, "logging.file"))

    ctx.obj = {"config": config, "export": export, "export_format": export_format}


def _load_service(ctx: typer.Context) -> CitationService:
    """Create a service and load the configured export, exiting on failure."""
    obj = ctx.obj or {}
    service = CitationService.from_config(obj.get("config", {}))
    ctx.call_on_close(service.shutdown)
    try:
        library = service.reload_file(obj.get("export"), obj.get("export_format"))
    except CiteCoreError as e:
        typer.echo(f"Unable to load citations: {e}", err=True)
        raise typer.Exit(1)
    if library is None:
        typer.echo("No citation export configured. Set citations.citation_export_path or pass --export.", err=True)
        raise typer.Exit(1)
    return service


def _unknown_citekey(citekey: str) -> None:
    typer.echo(f"Unknown citekey: {citekey}", err=True)
    raise typer.Exit(1)


@app.command(name="load")
def load_command(ctx: typer.Context) -> None:
    """Parse the export and report how many entries were loaded."""
    service = _load_service(ctx)
    typer.echo(f"Loaded {service.library.size} entries")


@app.command(name="lookup")
def lookup_command(ctx: typer.Context, citekey: str = typer.Argument(..., help="Citekey to look up")) -> None:
    """Show the normalized entry for a citekey."""
    service = _load_service(ctx)
    entry = service.lookup(citekey)
    if entry is None:
        _unknown_citekey(citekey)
    typer.echo(f"{entry.citekey} [{entry.entry_type}]")
    typer.echo(f"  Title:     {entry.title}")
    typer.echo(f"  Authors:   {entry.author_string}")
    typer.echo(f"  Year:      {entry.year if entry.year is not None else ''}")
    typer.echo(f"  Container: {entry.container_title or ''}")


@app.command(name="variables")
def variables_command(ctx: typer.Context, citekey: str = typer.Argument(..., help="Citekey to look up")) -> None:
    """Dump the template variables of an entry as YAML."""
    service = _load_service(ctx)
    variables = service.template_variables(citekey)
    if variables is None:
        _unknown_citekey(citekey)
    typer.echo(yaml.safe_dump(variables, allow_unicode=True, sort_keys=True), nl=False)


@app.command(name="render")
def render_command(ctx: typer.Context,
                   kind: TemplateKind = typer.Argument(..., help="Template to render"),
                   citekey: str = typer.Argument(..., help="Citekey to render")) -> None:
    """Render one of the configured templates for a citekey."""
    service = _load_service(ctx)
    try:
        rendered = service.render(kind, citekey)
    except CiteCoreError as e:
        typer.echo(f"Template error: {e}", err=True)
        raise typer.Exit(1)
    if rendered is None:
        _unknown_citekey(citekey)
    typer.echo(rendered)


@app.command(name="cite")
def cite_command(ctx: typer.Context,
                 citekey: str = typer.Argument(..., help="Citekey to cite"),
                 inline: bool = typer.Option(True, "--inline/--no-inline", help="Inline (narrative) or parenthetical form")) -> None:
    """Format a citation for a citekey."""
    service = _load_service(ctx)
    if service.lookup(citekey) is None:
        _unknown_citekey(citekey)
    citation = service.format_inline(citekey, inline)
    if citation is None:
        typer.echo(f"No printed form available for {citekey}", err=True)
        raise typer.Exit(1)
    typer.echo(citation)


@app.command(name="extract")
def extract_command(ctx: typer.Context,
                    note: Path = typer.Argument(..., exists=True, dir_okay=False, help="Markdown note to scan"),
                    unresolved_only: bool = typer.Option(False, "--unresolved", "-u", help="Only list citekeys missing from the library"),
                    keys_only: bool = typer.Option(False, "--keys", "-k", help="Print each cited key once, without context")) -> None:
    """List the citations found in a note."""
    service = _load_service(ctx)
    text = note.read_text(encoding='utf-8')
    if keys_only:
        library = service.library
        for citekey in cited_keys(text):
            if unresolved_only and citekey in library:
                continue
            typer.echo(citekey)
        return
    for occurrence in service.extract(text) or []:
        if unresolved_only and occurrence.resolved:
            continue
        marker = " " if occurrence.resolved else "?"
        typer.echo(f"{marker} @{occurrence.citekey}\t{occurrence.line.strip()}")


@app.command(name="note-path")
def note_path_command(ctx: typer.Context, citekey: str = typer.Argument(..., help="Citekey of the literature note")) -> None:
    """Print the literature note path for a citekey."""
    service = _load_service(ctx)
    try:
        path = service.path_for_citekey(citekey)
    except CiteCoreError as e:
        typer.echo(f"Template error: {e}", err=True)
        raise typer.Exit(1)
    if path is None:
        _unknown_citekey(citekey)
    typer.echo(path)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
