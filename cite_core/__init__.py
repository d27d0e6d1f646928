"""
cite_core: bibliography exports as an indexed entry store.

- Background parsing of BibLaTeX and CSL-JSON exports
- Normalized entries and atomically replaced libraries
- Citation extraction, templates and inline citations
"""

__version__ = "0.1.0"
