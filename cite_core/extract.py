"""
Citation extraction.

Finds citation references such as ``[@key]``, ``[[@key]]`` or
``[[@key#page 4]]`` in free text, line by line, and resolves each citekey
against a Library.
"""

import logging
import re
from typing import List, Optional

from cite_core.constants import CITATION_RE, CITATION_LINK_RE
from cite_core.library import Library
from cite_core.models import CitationOccurrence

logger = logging.getLogger(__name__)


def extract_citations(text: str, library: Optional[Library]) -> Optional[List[CitationOccurrence]]:
    """
    Extract every citation reference from text.

    Args:
        text: Free text, usually a whole markdown note
        library: Library to resolve citekeys against

    Returns:
        One occurrence per reference, in text order, each carrying its whole
        line as context. Unknown citekeys give occurrences without an entry.
        None if no library is loaded.
    """
    if library is None:
        return None

    occurrences: List[CitationOccurrence] = []
    for line in text.splitlines():
        for match in CITATION_RE.finditer(line):
            citekey = match.group(1)
            locator = match.group(3)
            occurrences.append(CitationOccurrence(
                entry=library.lookup(citekey),
                line=line,
                citekey=citekey,
                locator=locator.strip() if locator else None,
            ))

    unresolved = sum(1 for o in occurrences if not o.resolved)
    if unresolved:
        logger.debug(f"{unresolved} of {len(occurrences)} citations could not be resolved")
    return occurrences


def cited_keys(text: str) -> List[str]:
    """Return the unique citekeys referenced in text, in order of appearance."""
    seen = set()
    keys = []
    for match in CITATION_RE.finditer(text):
        citekey = match.group(1)
        if citekey not in seen:
            seen.add(citekey)
            keys.append(citekey)
    return keys


def replace_citation_links(text: str, library: Optional[Library], render) -> str:
    """
    Replace ``[[@citekey]]`` links with rendered inline citations.

    ``render`` is called with each resolved citekey and returns the
    replacement text, or None to leave the link untouched. Unresolved
    citekeys are left as they are. Without a library the text is returned
    unchanged.
    """
    if library is None:
        return text

    def _replace(match: re.Match) -> str:
        citekey = match.group(1)
        if citekey not in library:
            return match.group(0)
        citation = render(citekey)
        if citation is None:
            return match.group(0)
        return citation

    return CITATION_LINK_RE.sub(_replace, text)
