"""
Inline citation formatting.

The formatting engine is a pluggable collaborator. Engines signal "this
entry has no printed form" with a sentinel string instead of raising; the
formatter turns that sentinel into CitationFormatUnavailable so it never
ends up in rendered text.
"""

import logging
from typing import List, Optional

from typing_extensions import Protocol

from cite_core.constants import NO_PRINTED_FORM
from cite_core.exceptions import CitationFormatUnavailable
from cite_core.library import LibraryHandle
from cite_core.models import Entry

logger = logging.getLogger(__name__)


class CitationEngine(Protocol):
    """A citation-style formatting engine."""

    def cite(self, entry: Entry, inline: bool) -> str:
        ...


def format_author_families(families: List[str]) -> str:
    """Format family names for an author-date citation."""
    if len(families) == 1:
        return families[0]
    if len(families) == 2:
        return f"{families[0]} & {families[1]}"
    return f"{families[0]} et al."


class AuthorDateEngine:
    """Minimal author-date style, e.g. ``(Smith & Jones, 2020)``."""

    def cite(self, entry: Entry, inline: bool) -> str:
        families = [a.family or a.given for a in entry.authors if a.family or a.given]
        if not families and not entry.title:
            return f"[CSL STYLE ERROR: {NO_PRINTED_FORM}]"

        who = format_author_families(families) if families else f"\"{entry.title}\""
        year = str(entry.year) if entry.year is not None else "n.d."
        if inline:
            return f"{who} ({year})"
        return f"({who}, {year})"


class InlineCitationFormatter:
    """Formats citations for citekeys of the current library."""

    def __init__(self, handle: LibraryHandle, engine: Optional[CitationEngine] = None):
        self.handle = handle
        self.engine = engine or AuthorDateEngine()

    def cite(self, citekey: str, inline: bool = True) -> Optional[str]:
        """
        Format a citation with the engine.

        Returns:
            The citation text, or None if no library is loaded or the
            citekey is unknown

        Raises:
            CitationFormatUnavailable: if the engine has no printed form
        """
        library = self.handle.current
        if library is None:
            return None
        entry = library.lookup(citekey)
        if entry is None:
            return None
        citation = self.engine.cite(entry, inline)
        if NO_PRINTED_FORM in citation:
            raise CitationFormatUnavailable(f"No printed form for '{citekey}'")
        return citation

    def format(self, citekey: str, inline: bool = True) -> Optional[str]:
        """Like ``cite``, but returns None instead of raising when unavailable."""
        try:
            return self.cite(citekey, inline)
        except CitationFormatUnavailable as e:
            logger.debug(str(e))
            return None
