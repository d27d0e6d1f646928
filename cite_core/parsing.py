"""
Decoding of raw bibliography exports.

These functions run inside the background parse worker, so they only deal
with turning text into plain records (lists of dicts):
- BibLaTeX/BibTeX text, via bibtexparser
- CSL-JSON arrays, via orjson
"""

import logging
from typing import List, Dict, Any

import bibtexparser
import orjson
from bibtexparser.bparser import BibTexParser
from bibtexparser.customization import convert_to_unicode

from cite_core.exceptions import LoadFailed
from cite_core.models import EntryFormat, ParseRequest

logger = logging.getLogger(__name__)


def _customize(record: Dict[str, Any]) -> Dict[str, Any]:
    """Convert LaTeX to unicode in every field except ``author``.

    Name lists keep their braces so the adapter can tell a corporate name
    like ``{Barnes and Noble}`` from two people.
    """
    author = record.get("author")
    record = convert_to_unicode(record)
    if author is not None:
        record["author"] = author
    return record


def parse_biblatex(raw_data: str) -> List[Dict[str, Any]]:
    """
    Parse a BibLaTeX export into records keyed by ``key``.

    Args:
        raw_data: Contents of a .bib file

    Returns:
        List of records with ``key``, ``type`` and the lowercased entry fields
    """
    parser = BibTexParser(common_strings=True, ignore_nonstandard_types=False)
    parser.customization = _customize
    try:
        database = bibtexparser.loads(raw_data, parser=parser)
    except Exception as e:
        raise LoadFailed(f"BibLaTeX parsing error: {e}") from e

    records = []
    for entry in database.entries:
        record = dict(entry)
        record_key = record.pop("ID", "")
        record_type = record.pop("ENTRYTYPE", "")
        records.append({"key": record_key, "type": record_type, **record})
    return records


def parse_csl_json(raw_data: str) -> List[Dict[str, Any]]:
    """
    Parse a CSL-JSON export.

    Args:
        raw_data: Contents of a CSL-JSON file (a top-level array of items)

    Returns:
        The list of items, unchanged
    """
    try:
        data = orjson.loads(raw_data)
    except orjson.JSONDecodeError as e:
        raise LoadFailed(f"CSL-JSON parsing error: {e}") from e
    if not isinstance(data, list):
        raise LoadFailed(f"CSL-JSON export must be an array of items, not {type(data).__name__}")
    return data


def parse_request(request: ParseRequest) -> List[Dict[str, Any]]:
    """Decode the raw export of a parse request according to its format."""
    raw_data = request.raw_data.lstrip('\ufeff')
    if request.format is EntryFormat.BIBLATEX:
        records = parse_biblatex(raw_data)
    elif request.format is EntryFormat.CSL_JSON:
        records = parse_csl_json(raw_data)
    else:
        raise LoadFailed(f"Unsupported export format: {request.format!r}")
    logger.debug(f"Parsed {len(records)} raw records ({request.format.value})")
    return records
