"""Data models for cite_core."""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import List, Any, Optional, Tuple, Union, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from cite_core.constants import FORMAT_BIBLATEX, FORMAT_CSL_JSON


class EntryFormat(Enum):
    """Bibliography export formats understood by the adapters."""
    BIBLATEX = FORMAT_BIBLATEX
    CSL_JSON = FORMAT_CSL_JSON

    @classmethod
    def from_setting(cls, value: Union[str, 'EntryFormat']) -> 'EntryFormat':
        """Resolve a configured format name, e.g. ``"csl-json"``."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(f.value for f in cls)
            raise ValueError(f"Unknown citation export format '{value}' (expected one of: {valid})")


@dataclass(frozen=True)
class Author:
    """A structured personal name."""
    family: str = ""
    given: str = ""

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.given, self.family) if part)


@dataclass(frozen=True)
class Entry:
    """A normalized bibliography record, independent of the export format."""
    citekey: str
    title: str = ""
    authors: Tuple[Author, ...] = ()
    year: Optional[int] = None
    container_title: Optional[str] = None
    entry_type: str = ""
    fields: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self):
        if not self.citekey:
            raise ValueError("Entry citekey must be a non-empty string")
        object.__setattr__(self, 'authors', tuple(self.authors))
        object.__setattr__(self, 'fields', MappingProxyType(dict(self.fields)))

    @property
    def author_string(self) -> str:
        """Authors as a single comma-separated display string."""
        return ", ".join(a.full_name for a in self.authors if a.full_name)

    def get_field(self, field_name: str, default: Any = None) -> Any:
        """Get a passthrough field by name."""
        return self.fields.get(field_name, default)


@dataclass(frozen=True)
class CitationOccurrence:
    """One citation reference found in a line of text."""
    entry: Optional[Entry]
    line: str
    citekey: str
    locator: Optional[str] = None

    @property
    def resolved(self) -> bool:
        return self.entry is not None


@dataclass(frozen=True)
class ParseRequest:
    """A raw export and the format it should be decoded with."""
    raw_data: str
    format: EntryFormat


# Pydantic models for validating CSL-JSON records

class CslName(BaseModel):
    """A CSL name object."""
    model_config = ConfigDict(extra="allow")

    family: str = Field(default="")
    given: str = Field(default="")
    literal: str = Field(default="")


class CslDate(BaseModel):
    """A CSL date object (``issued``, ``accessed``...)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    date_parts: List[List[Union[int, str]]] = Field(default_factory=list, alias="date-parts")
    raw: Optional[str] = None
    literal: Optional[str] = None


class CslItemModel(BaseModel):
    """Pydantic model for one CSL-JSON item, used for validation."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Union[str, int]
    type: str = Field(default="")
    title: str = Field(default="")
    author: List[CslName] = Field(default_factory=list)
    issued: Optional[CslDate] = None
    container_title: Optional[str] = Field(default=None, alias="container-title")

    @field_validator('id')
    @classmethod
    def validate_id(cls, v: Union[str, int]) -> str:
        """Citekeys are strings; numeric ids are accepted and converted."""
        v = str(v).strip()
        if not v:
            raise ValueError("id must not be empty")
        return v

    @field_validator('container_title', mode='before')
    @classmethod
    def validate_container_title(cls, v: Any) -> Optional[str]:
        """Some exporters emit ``container-title`` as a list."""
        if isinstance(v, list):
            return v[0] if v else None
        return v
