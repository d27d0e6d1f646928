"""
Format adapters.

Each export format has one adapter that maps a raw record onto the shared
Entry shape. The format is always supplied by the caller, never guessed
from the record.
"""

import logging
import re
from typing import List, Dict, Any, Optional, Iterable

from bibtexparser.customization import splitname
from bibtexparser.latexenc import latex_to_unicode
from pydantic import ValidationError

from cite_core.constants import AUTHOR_SEPARATOR_RE, YEAR_TOKEN_RE
from cite_core.exceptions import RecordAdaptError
from cite_core.models import Author, Entry, EntryFormat, CslItemModel

logger = logging.getLogger(__name__)

BIBLATEX_MAPPED_FIELDS = {'key', 'type', 'title', 'author', 'date', 'year'}
BIBLATEX_CONTAINER_FIELDS = ('journaltitle', 'journal', 'booktitle', 'maintitle')
CSL_MAPPED_FIELDS = {'id', 'type', 'title', 'author', 'issued'}


def _strip_braces(value: str) -> str:
    return re.sub(r'[{}]', '', value).strip()


def parse_year(value: Any) -> Optional[int]:
    """Return the leading numeric year token of a date string, if any."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    match = YEAR_TOKEN_RE.match(str(value))
    if not match:
        raise ValueError(f"unparsable date '{value}'")
    return int(match.group(1))


def split_biblatex_name(name: str) -> Author:
    """
    Split one BibLaTeX name into family and given parts.

    Uses bibtexparser's name grammar, so "Family, Given", "Given Family" and
    "von Family, Jr, Given" forms all work, and a brace group such as
    ``{World Health Organization}`` stays a single family name.
    """
    parts = splitname(name.strip(), strict_mode=False)
    family = " ".join(parts.get('von', []) + parts.get('last', []))
    given = " ".join(parts.get('first', []) + parts.get('jr', []))
    return Author(family=latex_to_unicode(family).strip(), given=latex_to_unicode(given).strip())


def split_biblatex_authors(value: str) -> List[Author]:
    """Split an author field on the word "and", outside of brace groups."""
    names = []
    depth = start = i = 0
    while i < len(value):
        char = value[i]
        if char == '{':
            depth += 1
        elif char == '}':
            depth = max(depth - 1, 0)
        elif depth == 0:
            match = AUTHOR_SEPARATOR_RE.match(value, i)
            if match:
                names.append(value[start:i])
                start = i = match.end()
                continue
        i += 1
    names.append(value[start:])
    return [split_biblatex_name(name) for name in names if name.strip()]


def adapt_biblatex(record: Dict[str, Any]) -> Entry:
    """Normalize a record from a BibLaTeX export."""
    citekey = str(record.get('key') or '').strip()
    if not citekey:
        raise ValueError("missing 'key'")

    raw_date = record.get('date') or record.get('year')
    container_title = next(
        (_strip_braces(record[f]) for f in BIBLATEX_CONTAINER_FIELDS if record.get(f)), None
    )
    return Entry(
        citekey=citekey,
        title=_strip_braces(str(record.get('title') or '')),
        authors=split_biblatex_authors(str(record.get('author') or '')),
        year=parse_year(raw_date) if raw_date else None,
        container_title=container_title,
        entry_type=str(record.get('type') or ''),
        fields={k: v for k, v in record.items() if k not in BIBLATEX_MAPPED_FIELDS},
    )


def adapt_csl(record: Dict[str, Any]) -> Entry:
    """Normalize a record from a CSL-JSON export."""
    if not isinstance(record, dict):
        raise ValueError(f"expected an object, got {type(record).__name__}")
    item = CslItemModel.model_validate(record)

    year = None
    if item.issued is not None:
        if item.issued.date_parts and item.issued.date_parts[0]:
            year = parse_year(item.issued.date_parts[0][0])
        elif item.issued.raw or item.issued.literal:
            year = parse_year(item.issued.raw or item.issued.literal)

    authors = [
        Author(family=name.family or name.literal, given=name.given)
        for name in item.author
    ]
    return Entry(
        citekey=str(item.id),
        title=item.title,
        authors=authors,
        year=year,
        container_title=item.container_title,
        entry_type=item.type,
        fields={k: v for k, v in record.items() if k not in CSL_MAPPED_FIELDS},
    )


def normalize(record: Dict[str, Any], export_format: EntryFormat) -> Entry:
    """
    Normalize one raw record into an Entry.

    Args:
        record: Raw record as produced by the parse worker
        export_format: Format the record was decoded from

    Returns:
        The normalized Entry

    Raises:
        RecordAdaptError: if the record cannot be normalized
    """
    citekey = _record_citekey(record, export_format)
    try:
        if export_format is EntryFormat.BIBLATEX:
            return adapt_biblatex(record)
        elif export_format is EntryFormat.CSL_JSON:
            return adapt_csl(record)
    except (ValueError, TypeError, ValidationError) as e:
        raise RecordAdaptError(f"Could not normalize record '{citekey}': {e}", citekey=citekey) from e
    raise RecordAdaptError(f"Unsupported export format: {export_format!r}", citekey=citekey)


def normalize_records(records: Iterable[Dict[str, Any]], export_format: EntryFormat) -> List[Entry]:
    """
    Normalize a whole batch of raw records.

    The first failing record aborts the batch; the error names its position
    and citekey.
    """
    entries = []
    for index, record in enumerate(records):
        try:
            entries.append(normalize(record, export_format))
        except RecordAdaptError as e:
            logger.error(f"Record #{index} rejected: {e}")
            raise RecordAdaptError(f"Record #{index}: {e}", index=index, citekey=e.citekey) from e
    return entries


def _record_citekey(record: Any, export_format: EntryFormat) -> str:
    id_field = 'key' if export_format is EntryFormat.BIBLATEX else 'id'
    if isinstance(record, dict):
        return str(record.get(id_field) or '')
    return ''
