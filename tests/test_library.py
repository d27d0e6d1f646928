#!/usr/bin/env python3
"""
Tests for the entry store.
"""

import pytest

from cite_core.exceptions import DuplicateCitekeyError, RecordAdaptError
from cite_core.library import Library, LibraryHandle
from cite_core.models import Author, Entry


@pytest.fixture
def sample_entries():
    """A few normalized entries."""
    return [
        Entry(
            citekey="smith2020",
            title="Foo & Bar",
            authors=(Author("Smith", "John"), Author("Doe", "Jane")),
            year=2020,
            container_title="Journal of Testing",
            entry_type="article-journal",
            fields={"DOI": "10.1000/xyz", "keyword": ["notes", "testing"],
                    "accessed": {"date-parts": [[2021, 1, 2]]}, "title": "raw title"},
        ),
        Entry(citekey="jones2019", title="A Study", authors=(Author("Jones", "Alice"),),
              entry_type="book", fields={"publisher": "Test Press", "location": "Oxford"}),
    ]


def test_entry_requires_citekey():
    """Test that an entry can never have an empty citekey."""
    with pytest.raises(ValueError):
        Entry(citekey="")


def test_entry_is_immutable(sample_entries):
    """Test that entries and their passthrough fields cannot be changed."""
    entry = sample_entries[0]
    with pytest.raises(AttributeError):
        entry.title = "Other"
    with pytest.raises(TypeError):
        entry.fields["DOI"] = "changed"


def test_entries_are_hashable(sample_entries):
    """Test that entries with passthrough fields can be hashed and put in sets."""
    entry = sample_entries[0]
    twin = Entry(
        citekey=entry.citekey,
        title=entry.title,
        authors=entry.authors,
        year=entry.year,
        container_title=entry.container_title,
        entry_type=entry.entry_type,
        fields=dict(entry.fields),
    )
    assert hash(entry) == hash(twin)
    assert twin == entry
    assert len({entry, twin, sample_entries[1]}) == 2


def test_library_lookup_and_size(sample_entries):
    """Test lookup of known and unknown citekeys."""
    library = Library(sample_entries)

    assert library.size == 2
    assert len(library) == 2
    assert library.lookup("smith2020") is sample_entries[0]
    assert library.lookup("missing") is None
    assert "jones2019" in library
    assert sorted(library) == ["jones2019", "smith2020"]


def test_library_rejects_duplicate_citekeys(sample_entries):
    """Test that colliding citekeys are rejected."""
    duplicate = Entry(citekey="smith2020", title="Other")
    with pytest.raises(DuplicateCitekeyError) as excinfo:
        Library(sample_entries + [duplicate])
    assert excinfo.value.citekey == "smith2020"
    assert excinfo.value.index == 2
    assert isinstance(excinfo.value, RecordAdaptError)


def test_library_is_read_only(sample_entries):
    """Test that the entry mapping cannot be mutated."""
    library = Library(sample_entries)
    with pytest.raises(TypeError):
        library.entries["new"] = sample_entries[0]


def test_template_variables(sample_entries):
    """Test the flat variable projection of an entry."""
    variables = Library(sample_entries).template_variables("smith2020")

    assert variables["citekey"] == "smith2020"
    assert variables["title"] == "Foo & Bar"
    assert variables["authorString"] == "John Smith, Jane Doe"
    assert variables["year"] == "2020"
    assert variables["containerTitle"] == "Journal of Testing"
    assert variables["DOI"] == "10.1000/xyz"
    assert variables["zoteroSelectURI"] == "zotero://select/items/@smith2020"
    # Passthrough fields are flattened to strings
    assert variables["keyword"] == "notes, testing"
    assert variables["accessed"] == '{"date-parts":[[2021,1,2]]}'
    assert all(isinstance(v, str) for v in variables.values())


def test_template_variables_normalized_fields_win(sample_entries):
    """Test that a passthrough field cannot shadow a normalized one."""
    variables = Library(sample_entries).template_variables("smith2020")
    assert variables["title"] == "Foo & Bar"


def test_template_variables_missing_values(sample_entries):
    """Test empty strings for absent optional fields."""
    variables = Library(sample_entries).template_variables("jones2019")
    assert variables["year"] == ""
    assert variables["containerTitle"] == ""
    assert variables["publisherPlace"] == "Oxford"


def test_template_variables_unknown_citekey(sample_entries):
    """Test that unknown citekeys give None."""
    assert Library(sample_entries).template_variables("missing") is None


def test_handle_starts_empty():
    """Test that a fresh handle has no library."""
    handle = LibraryHandle()
    assert handle.current is None
    assert not handle.loaded


def test_handle_swap_keeps_old_snapshots_intact(sample_entries):
    """Test that readers holding an old library still see it after a swap."""
    handle = LibraryHandle()
    handle.swap(Library(sample_entries[:1]))
    snapshot = handle.current

    handle.swap(Library(sample_entries))

    assert snapshot.size == 1
    assert snapshot.lookup("jones2019") is None
    assert handle.current.size == 2


def test_handle_discards_stale_generation(sample_entries):
    """Test that an older reload finishing late does not replace a newer one."""
    handle = LibraryHandle()
    first = handle.next_generation()
    second = handle.next_generation()

    newer = Library(sample_entries)
    assert handle.swap(newer, second) is True
    assert handle.swap(Library(sample_entries[:1]), first) is False
    assert handle.current is newer
