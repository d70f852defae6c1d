"""Tests for entry identity maps, lookups and safe removal."""

import pytest

from core.constants import ResolutionStatus
from core.exceptions import AmbiguousIdentityError, EntryNotFoundError, ValidationError
from services.entry_registry import (
    Entry,
    EntryRegistry,
    IdentityTarget,
    entries_from_rows,
    entry_from_row,
)


def _registry(*pairs):
    return EntryRegistry(Entry(name, ticket) for name, ticket in pairs)


def test_rebuild_records_names_always_and_tickets_only_when_distinct():
    registry = _registry(("Ali", "T1"), ("Beatriz", None), ("42", "42"), ("Diya", "  "))
    maps = registry.maps

    assert maps.name_to_index == {"ali": 0, "beatriz": 1, "42": 2, "diya": 3}
    assert maps.ticket_to_index == {"T1": 0}
    assert maps.ticket_to_name == {"T1": "Ali"}
    assert maps.name_to_ticket == {"ali": "T1"}


def test_rebuild_discards_previous_sequence():
    registry = _registry(("Ali", "T1"), ("Beatriz", "T2"))
    registry.rebuild([Entry("Charles", "T3")])

    assert registry.maps.ticket_to_index == {"T3": 0}
    assert "ali" not in registry.maps.name_to_index
    assert [e.source_index for e in registry.entries] == [0]


def test_ticket_is_compared_case_sensitively_against_name():
    registry = _registry(("abc", "ABC"))
    assert registry.maps.ticket_to_index == {"ABC": 0}


def test_ticket_wins_over_shared_name():
    registry = _registry(("Sam", "T1"), ("Sam", "T2"), ("Ali", None))

    for name in (None, "Sam", "Someone Else"):
        result = registry.find_index_by_identity(IdentityTarget("T2", name))
        assert result.ok
        assert result.index == 1


def test_ticket_match_ignores_stale_name():
    registry = _registry(("Samantha", "T9"))
    result = registry.find_index_by_identity(IdentityTarget("T9", "Sam"))
    assert result.index == 0


def test_shared_name_without_ticket_is_ambiguous():
    registry = _registry(("Sam", None), ("Sam", None), ("Ali", None))
    result = registry.find_index_by_identity(IdentityTarget(display_name="Sam"))

    assert result.status is ResolutionStatus.AMBIGUOUS
    assert result.index is None


def test_unique_name_resolves_case_insensitively():
    registry = _registry(("Sam", None), ("Ali", None))
    result = registry.find_index_by_identity(IdentityTarget(display_name="  ali "))
    assert result.index == 1


def test_unknown_ticket_does_not_fall_back_to_name():
    registry = _registry(("Sam", None))
    result = registry.find_index_by_identity(IdentityTarget("T404", "Sam"))
    assert result.status is ResolutionStatus.NOT_FOUND


def test_ticket_equal_to_name_is_found_by_scan():
    registry = _registry(("1001", "1001"))
    result = registry.find_index_by_identity(IdentityTarget("1001"))
    assert result.index == 0


def test_empty_target_is_not_found():
    result = _registry(("Sam", None)).find_index_by_identity(IdentityTarget())
    assert result.status is ResolutionStatus.NOT_FOUND


def test_remove_by_ticket_removes_only_that_entry():
    registry = _registry(("Sam", "T1"), ("Sam", "T2"), ("Ali", "T3"), ("Sam", None), ("Eric", "T5"))

    remaining = registry.remove_by_ticket("T2")

    assert len(remaining) == 4
    assert [(e.display_name, e.ticket_number) for e in remaining] == [
        ("Sam", "T1"), ("Ali", "T3"), ("Sam", None), ("Eric", "T5"),
    ]
    assert "T2" not in registry.maps.ticket_to_index
    assert registry.maps.ticket_to_index["T5"] == 3


def test_remove_by_unknown_ticket_changes_nothing():
    registry = _registry(("Sam", "T1"), ("Ali", None))

    with pytest.raises(EntryNotFoundError):
        registry.remove_by_ticket("T9")
    assert len(registry) == 2


def test_remove_by_ticket_never_matches_names():
    registry = _registry(("T1", None), ("Ali", "T2"))
    with pytest.raises(EntryNotFoundError):
        registry.remove_by_ticket("T1 ")
    assert len(registry) == 2


def test_remove_by_name_refuses_duplicates():
    registry = _registry(("Sam", None), ("Sam", None))

    with pytest.raises(AmbiguousIdentityError) as excinfo:
        registry.remove_by_name("Sam")
    assert excinfo.value.occurrences == 2
    assert len(registry) == 2


def test_remove_by_unique_name():
    registry = _registry(("Sam", None), ("Ali", None))
    assert [e.display_name for e in registry.remove_by_name("sam")] == ["Ali"]


def test_remove_entry_prefers_ticket():
    registry = _registry(("Sam", "T1"), ("Sam", "T2"))
    removed = registry.remove_entry("Sam", "T1")
    assert removed.ticket_number == "T1"
    assert [e.ticket_number for e in registry.entries] == ["T2"]


def test_remove_entry_treats_name_as_ticket_as_no_ticket():
    registry = _registry(("Sam", "Sam"), ("Sam", None))
    with pytest.raises(AmbiguousIdentityError):
        registry.remove_entry("Sam", "Sam")


def test_remove_requires_some_identity():
    with pytest.raises(ValidationError):
        _registry(("Sam", None)).remove_entry(None, None)


def test_entry_from_payload_reads_ticket_suffix():
    entry = Entry.from_payload("Sam (12)")
    assert entry.display_name == "Sam (12)"
    assert entry.ticket_number == "12"


def test_entry_from_payload_accepts_dicts():
    entry = Entry.from_payload({"displayName": " Diya ", "ticketNumber": " T4 "}, 3)
    assert entry == Entry("Diya", "T4", 3)


def test_entry_from_payload_rejects_blank_names():
    with pytest.raises(ValidationError):
        Entry.from_payload({"displayName": "  "})


def test_suffix_tickets_keep_same_base_names_distinct():
    registry = EntryRegistry([Entry.from_payload("Sam (12)"), Entry.from_payload("Sam (34)")])
    result = registry.find_index_by_identity(IdentityTarget("34"))
    assert result.index == 1


def test_entry_from_row_combines_name_and_ticket():
    entry = entry_from_row({"First Name": "Diya", "Last Name": "Rao", "Ticket Number": 1004}, 0)
    assert entry.display_name == "Diya Rao (1004)"
    assert entry.ticket_number == "1004"


def test_entry_from_row_fallbacks():
    assert entry_from_row({"ticket": "77"}, 0).display_name == "77"
    assert entry_from_row({"Email": "a@b.c"}, 4).display_name == "a@b.c"
    assert entry_from_row({}, 4).display_name == "Entry 5"
    assert entry_from_row("  Hanna ", 0).display_name == "Hanna"


def test_entries_from_rows_skips_removed_tickets_only():
    rows = [
        {"First Name": "Sam", "Ticket Number": "T1"},
        {"First Name": "Sam", "Ticket Number": "T2"},
        {"First Name": "Sam"},
    ]
    entries = entries_from_rows(rows, removed_tickets=["T1", "Sam"])

    assert [e.ticket_number for e in entries] == ["T2", None]
    assert [e.source_index for e in entries] == [1, 2]


def test_entries_from_rows_skips_removed_ticket_only_rows():
    rows = [{"Ticket Number": "1001"}, {"Ticket Number": "1002"}, "1001"]
    entries = entries_from_rows(rows, removed_tickets=["1001"])

    assert [e.display_name for e in entries] == ["1002", "1001"]
    assert [e.ticket_number for e in entries] == ["1002", None]
