"""
Citation service.

Ties the parse channel, adapters, library handle, extractor, templates and
inline formatter together behind the operations a host application calls:
reload, lookup, template variables, extraction, rendering and inline
citations.
"""

import logging
from concurrent.futures import Future
from functools import partial
from typing import List, Dict, Any, Optional, Union

from cite_core.adapters import normalize_records
from cite_core.config import CitationsSettings, load_settings
from cite_core.exceptions import LoadBlocked, LoadFailed, RecordAdaptError
from cite_core.extract import extract_citations, replace_citation_links
from cite_core.formatter import CitationEngine, InlineCitationFormatter
from cite_core.library import Library, LibraryHandle
from cite_core.models import CitationOccurrence, Entry, EntryFormat, ParseRequest
from cite_core.templates import TemplateKind, TemplateRenderer
from cite_core.worker import ParseChannel

logger = logging.getLogger(__name__)


class CitationService:
    """Facade over the current library and the operations that read it."""

    def __init__(self, settings: Optional[CitationsSettings] = None,
                 channel: Optional[ParseChannel] = None,
                 engine: Optional[CitationEngine] = None):
        self.settings = settings or CitationsSettings()
        self.handle = LibraryHandle()
        self.channel = channel or ParseChannel()
        self.templates = TemplateRenderer(self.settings)
        self.formatter = InlineCitationFormatter(self.handle, engine)

    @classmethod
    def from_config(cls, config: Dict[str, Any], **kwargs) -> 'CitationService':
        return cls(load_settings(config), **kwargs)

    @property
    def library(self) -> Optional[Library]:
        return self.handle.current

    @property
    def is_loading(self) -> bool:
        """True while a library is being parsed in the background."""
        return self.channel.busy

    # --- Loading ---

    def start_reload(self, raw_data: str,
                     export_format: Union[str, EntryFormat, None] = None) -> Future:
        """
        Start parsing an export in the background.

        Returns:
            Future resolving to the new Library once it has been installed

        Raises:
            LoadBlocked: if a reload is already in flight
        """
        fmt = EntryFormat.from_setting(export_format or self.settings.citation_export_format)
        result: Future = Future()

        def dispatched(parse_future: Future) -> None:
            generation = self.handle.next_generation()
            parse_future.add_done_callback(partial(self._finish_reload, result, fmt, generation))

        self.channel.post(ParseRequest(raw_data=raw_data, format=fmt), on_dispatch=dispatched)
        return result

    def _finish_reload(self, result: Future, fmt: EntryFormat, generation: int,
                       parse_future: Future) -> None:
        try:
            records = parse_future.result()
        except LoadFailed as e:
            result.set_exception(e)
            return
        except Exception as e:
            failure = LoadFailed(f"Bibliography parse failed: {e}")
            failure.__cause__ = e
            result.set_exception(failure)
            return

        try:
            library = Library(normalize_records(records, fmt))
        except RecordAdaptError as e:
            result.set_exception(e)
            return
        except Exception as e:
            logger.exception("Unexpected error while building the library")
            failure = LoadFailed(f"Could not build library: {e}")
            failure.__cause__ = e
            result.set_exception(failure)
            return

        if self.handle.swap(library, generation):
            logger.info(f"Successfully loaded library with {library.size} entries.")
            result.set_result(library)
        else:
            # A newer reload already installed its library
            result.set_result(self.handle.current)

    def reload(self, raw_data: str,
               export_format: Union[str, EntryFormat, None] = None) -> Optional[Library]:
        """
        Parse an export and install it as the current library.

        Returns:
            The new Library, or None if another reload was already running

        Raises:
            LoadFailed: if the export could not be decoded
            RecordAdaptError: if a record could not be normalized
        """
        try:
            future = self.start_reload(raw_data, export_format)
        except LoadBlocked:
            logger.debug("Library is already being loaded; ignoring reload request")
            return None
        try:
            return future.result()
        except (LoadFailed, RecordAdaptError) as e:
            logger.error(f"Unable to load citations: {e}")
            raise

    def reload_file(self, path: Optional[str] = None,
                    export_format: Union[str, EntryFormat, None] = None) -> Optional[Library]:
        """Read the export file (the configured one by default) and reload from it."""
        path = path or self.settings.resolve_export_path()
        if not path:
            logger.warning("Citation export path is not set. Please update the settings.")
            return None
        logger.debug(f"Reloading library from {path}")
        try:
            with open(path, 'r', encoding='utf-8') as f:
                raw_data = f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Unable to read citation export '{path}': {e}")
            raise LoadFailed(f"Unable to read citation export '{path}': {e}") from e
        return self.reload(raw_data, export_format)

    # --- Queries ---

    def lookup(self, citekey: str) -> Optional[Entry]:
        library = self.library
        return library.lookup(citekey) if library is not None else None

    def template_variables(self, citekey: str) -> Optional[Dict[str, str]]:
        library = self.library
        return library.template_variables(citekey) if library is not None else None

    def extract(self, text: str) -> Optional[List[CitationOccurrence]]:
        """Citations in text, or None if no library is loaded."""
        return extract_citations(text, self.library)

    def render(self, kind: TemplateKind, citekey: str) -> Optional[str]:
        """
        Render one of the configured templates for a citekey.

        Returns None if no library is loaded or the citekey is unknown.
        """
        variables = self.template_variables(citekey)
        if variables is None:
            return None
        return self.templates.render(kind, variables)

    def title_for_citekey(self, citekey: str) -> Optional[str]:
        variables = self.template_variables(citekey)
        return self.templates.note_title(variables) if variables is not None else None

    def path_for_citekey(self, citekey: str) -> Optional[str]:
        variables = self.template_variables(citekey)
        return self.templates.note_path(variables) if variables is not None else None

    def format_inline(self, citekey: str, inline: bool = True) -> Optional[str]:
        """Formatted citation, or None when it cannot be produced."""
        return self.formatter.format(citekey, inline)

    def post_process(self, text: str) -> str:
        """Replace citation links in preview text with inline citations."""
        return replace_citation_links(text, self.library, partial(self.format_inline, inline=True))

    # --- Lifecycle ---

    def shutdown(self) -> None:
        self.channel.shutdown()

    def __enter__(self) -> 'CitationService':
        return self

    def __exit__(self, *exc_info) -> None:
        self.shutdown()
