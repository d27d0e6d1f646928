"""Errors raised by cite_core."""


class CiteCoreError(Exception):
    """Base class for all cite_core errors."""


class LoadBlocked(CiteCoreError):
    """A reload was requested while another one is still in flight."""


class LoadFailed(CiteCoreError):
    """The raw export could not be read or decoded."""


class RecordAdaptError(CiteCoreError):
    """A single raw record could not be normalized into an entry."""

    def __init__(self, message: str, index: int = -1, citekey: str = ""):
        super().__init__(message)
        self.index = index
        self.citekey = citekey


class DuplicateCitekeyError(RecordAdaptError):
    """Two records in the same batch share a citekey."""


class TemplateRenderError(CiteCoreError):
    """A user-supplied template could not be compiled or rendered."""


class CitationFormatUnavailable(CiteCoreError):
    """The formatting engine produced no printed form for an entry."""
