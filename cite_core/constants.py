"""Constants for the cite_core package."""

import re

# Regular expression patterns
# One citation reference: [@key], [[@key]], optionally with a #/^ locator.
CITATION_RE = re.compile(r'\[\[?@([^\]]+?)(?:([#^]+)([^\]]+))?\]\]?')
# Wikilink whose target is a citekey, as rendered in preview text.
CITATION_LINK_RE = re.compile(r'\[\[@([^\]|#^]+)((?:[#^][^\]|]*)?)(?:\|([^\]]+))?\]\]')
DISALLOWED_FILENAME_CHARACTERS_RE = re.compile(r'[*"\\/<>:|?]')
AUTHOR_SEPARATOR_RE = re.compile(r'\s+and\s+')
YEAR_TOKEN_RE = re.compile(r'^\s*(-?\d{1,4})')

# Formatting engine output meaning "no printed form could be produced"
NO_PRINTED_FORM = "NO_PRINTED_FORM"

# Export formats accepted in configuration
FORMAT_BIBLATEX = "biblatex"
FORMAT_CSL_JSON = "csl-json"

# Default configuration values
DEFAULT_CONFIG_PATH = "~/.config/cite_core/config.yaml"
DEFAULT_VAULT_DIR = "~/notes"
DEFAULT_EXPORT_FORMAT = FORMAT_CSL_JSON
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LITERATURE_NOTE_FOLDER = "Reading notes"

# Default templates
DEFAULT_TITLE_TEMPLATE = "@{{citekey}}"
DEFAULT_CONTENT_TEMPLATE = (
    "# {{title}}\n"
    "\n"
    "title:: {{title}}\n"
    "authors:: {{authorString}}\n"
    "year:: {{year}}\n"
)
DEFAULT_MARKDOWN_CITATION_TEMPLATE = "[@{{citekey}}]"
DEFAULT_ALTERNATIVE_MARKDOWN_CITATION_TEMPLATE = "@{{citekey}}"

ZOTERO_SELECT_URI = "zotero://select/items/@{citekey}"
