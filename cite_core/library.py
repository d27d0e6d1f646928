"""
Entry store.

A Library is an immutable snapshot mapping citekeys to entries. It is never
updated in place: every reload builds a new Library and a LibraryHandle
swaps it in with a single assignment.
"""

import logging
import threading
from types import MappingProxyType
from typing import Dict, Any, Optional, Iterable, Iterator, Mapping

import orjson

from cite_core.constants import ZOTERO_SELECT_URI
from cite_core.exceptions import DuplicateCitekeyError
from cite_core.models import Entry

logger = logging.getLogger(__name__)


def _flatten_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, (str, int, float)) for v in value):
        return ", ".join(str(v) for v in value)
    if isinstance(value, (dict, list, tuple)):
        return orjson.dumps(value).decode('utf-8')
    return str(value)


class Library:
    """Immutable citekey -> Entry index."""

    def __init__(self, entries: Iterable[Entry]):
        """
        Build a library from normalized entries.

        Raises:
            DuplicateCitekeyError: if two entries share a citekey
        """
        index: Dict[str, Entry] = {}
        for position, entry in enumerate(entries):
            if entry.citekey in index:
                raise DuplicateCitekeyError(
                    f"Duplicate citekey '{entry.citekey}' (record #{position})",
                    index=position, citekey=entry.citekey
                )
            index[entry.citekey] = entry
        self._entries = MappingProxyType(index)

    @property
    def entries(self) -> Mapping[str, Entry]:
        return self._entries

    @property
    def size(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, citekey: object) -> bool:
        return citekey in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def lookup(self, citekey: str) -> Optional[Entry]:
        """Return the entry for a citekey, or None if unknown."""
        return self._entries.get(citekey)

    def template_variables(self, citekey: str) -> Optional[Dict[str, str]]:
        """
        Flatten an entry into string variables for the template engine.

        Passthrough fields come first so the normalized values always win.
        Returns None if the citekey is unknown.
        """
        entry = self.lookup(citekey)
        if entry is None:
            return None

        variables = {str(k): _flatten_value(v) for k, v in entry.fields.items()}
        variables.update({
            'citekey': entry.citekey,
            'title': entry.title,
            'authorString': entry.author_string,
            'year': str(entry.year) if entry.year is not None else "",
            'containerTitle': entry.container_title or "",
            'type': entry.entry_type,
            'abstract': _flatten_value(entry.get_field('abstract')),
            'DOI': _flatten_value(entry.get_field('DOI', entry.get_field('doi'))),
            'URL': _flatten_value(entry.get_field('URL', entry.get_field('url'))),
            'page': _flatten_value(entry.get_field('page', entry.get_field('pages'))),
            'publisher': _flatten_value(entry.get_field('publisher')),
            'publisherPlace': _flatten_value(
                entry.get_field('publisher-place', entry.get_field('location'))
            ),
            'zoteroSelectURI': ZOTERO_SELECT_URI.format(citekey=entry.citekey),
        })
        return variables


class LibraryHandle:
    """
    Owner of the current Library.

    ``swap`` is the only write path; readers take ``current`` and keep using
    that snapshot for as long as they hold it.
    """

    def __init__(self, library: Optional[Library] = None):
        self._library = library
        self._generation = 0
        self._installed_generation = 0
        self._lock = threading.Lock()

    @property
    def current(self) -> Optional[Library]:
        return self._library

    @property
    def loaded(self) -> bool:
        return self._library is not None

    def next_generation(self) -> int:
        """Reserve a generation number for a reload that is about to start."""
        with self._lock:
            self._generation += 1
            return self._generation

    def swap(self, library: Library, generation: Optional[int] = None) -> bool:
        """
        Install a new Library.

        A library built by a reload older than the one currently installed is
        discarded. Returns True if the library was installed.
        """
        with self._lock:
            if generation is not None:
                if generation < self._installed_generation:
                    logger.debug(f"Discarding stale library from reload #{generation}")
                    return False
                self._installed_generation = generation
            self._library = library
        logger.debug(f"Installed library with {library.size} entries")
        return True
