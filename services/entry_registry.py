"""Ordered raffle entries and the identity maps used to tell them apart.

Display names are not unique. Tickets are the authoritative key whenever an
entry has one that differs from its name; positional indices are the last
resort. Every lookup here returns or raises something explicit, nothing is
guessed from a shared name.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from core import get_logger
from core.constants import ImportFields, ResolutionStatus, WheelDefaults
from core.exceptions import AmbiguousIdentityError, EntryNotFoundError, ValidationError
from utils.validators import (
    clean_text,
    is_distinct_ticket,
    normalize_name,
    normalize_ticket,
    split_ticket_suffix,
)


logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Entry:
    display_name: str
    ticket_number: Optional[str] = None
    source_index: int = 0

    @property
    def has_ticket(self) -> bool:
        return is_distinct_ticket(self.ticket_number, self.display_name)

    @property
    def name_key(self) -> str:
        return normalize_name(self.display_name)

    def to_dict(self) -> Dict[str, Any]:
        return {"displayName": self.display_name, "ticketNumber": self.ticket_number}

    @classmethod
    def from_payload(cls, value: Any, source_index: int = 0) -> "Entry":
        """Build an entry from a plain name or a ``{displayName, ticketNumber}`` dict.

        A name ending in "(digits)" carries its ticket when no explicit ticket
        is given, matching how imported entries are displayed.
        """
        if isinstance(value, Mapping):
            display_name = clean_text(value.get("displayName", value.get("name")))
            ticket = normalize_ticket(value.get("ticketNumber", value.get("ticket")))
        else:
            display_name = clean_text(value)
            ticket = None

        if not display_name:
            raise ValidationError(f"Entry {source_index + 1} has no display name")
        if ticket is None:
            ticket = split_ticket_suffix(display_name)[1]
        return cls(display_name=display_name, ticket_number=ticket, source_index=source_index)


@dataclass(slots=True)
class IdentityMaps:
    """Derived lookups over one entry sequence. Name keys are normalized."""

    name_to_ticket: Dict[str, str] = field(default_factory=dict)
    ticket_to_name: Dict[str, str] = field(default_factory=dict)
    name_to_index: Dict[str, int] = field(default_factory=dict)
    ticket_to_index: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {
            "nameToTicketMap": dict(self.name_to_ticket),
            "ticketToNameMap": dict(self.ticket_to_name),
            "nameToIndexMap": dict(self.name_to_index),
            "ticketToIndexMap": dict(self.ticket_to_index),
        }


@dataclass(frozen=True, slots=True)
class IdentityTarget:
    """Who a rigged spin or a removal is aimed at."""

    ticket_number: Optional[str] = None
    display_name: Optional[str] = None

    @property
    def ticket(self) -> Optional[str]:
        return normalize_ticket(self.ticket_number)

    @property
    def is_empty(self) -> bool:
        return self.ticket is None and not clean_text(self.display_name)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"ticketNumber": self.ticket, "displayName": clean_text(self.display_name) or None}

    @classmethod
    def from_payload(cls, payload: Optional[Mapping[str, Any]]) -> "IdentityTarget":
        if not payload:
            return cls()
        return cls(
            ticket_number=normalize_ticket(payload.get("ticketNumber")),
            display_name=clean_text(payload.get("displayName")) or None,
        )


@dataclass(frozen=True, slots=True)
class Resolution:
    """Tagged outcome of resolving an identity to an index."""

    status: ResolutionStatus
    index: Optional[int] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED

    @classmethod
    def resolved(cls, index: int) -> "Resolution":
        return cls(ResolutionStatus.RESOLVED, index=index)

    @classmethod
    def ambiguous(cls, reason: str) -> "Resolution":
        return cls(ResolutionStatus.AMBIGUOUS, reason=reason)

    @classmethod
    def not_found(cls, reason: str) -> "Resolution":
        return cls(ResolutionStatus.NOT_FOUND, reason=reason)


class EntryRegistry:
    """Canonical entry order plus the four identity maps."""

    def __init__(self, entries: Iterable[Entry] = ()) -> None:
        self._entries: List[Entry] = []
        self._maps = IdentityMaps()
        self.rebuild(entries)

    @property
    def entries(self) -> List[Entry]:
        return list(self._entries)

    @property
    def maps(self) -> IdentityMaps:
        return self._maps

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> Entry:
        return self._entries[index]

    def rebuild(self, entries: Iterable[Entry]) -> IdentityMaps:
        """Replace the entry sequence and derive fresh maps from it."""
        ordered = [replace(entry, source_index=i) for i, entry in enumerate(entries)]
        if len(ordered) > WheelDefaults.MAX_ENTRIES:
            raise ValidationError(f"A wheel holds at most {WheelDefaults.MAX_ENTRIES} entries")

        maps = IdentityMaps()
        for index, entry in enumerate(ordered):
            maps.name_to_index[entry.name_key] = index
            if entry.has_ticket:
                ticket = normalize_ticket(entry.ticket_number)
                maps.name_to_ticket[entry.name_key] = ticket
                maps.ticket_to_name[ticket] = entry.display_name
                maps.ticket_to_index[ticket] = index

        self._entries = ordered
        self._maps = maps
        return maps

    def count_name(self, display_name: Any) -> int:
        key = normalize_name(display_name)
        return sum(1 for entry in self._entries if entry.name_key == key)

    def find_index_by_identity(self, target: IdentityTarget) -> Resolution:
        """Resolve a target against the current entries.

        Tiers, first hit wins: the ticket map, a direct ticket scan where the
        name only breaks ties, then a name match when the target has no ticket
        and the name occurs exactly once.
        """
        ticket = target.ticket
        if ticket is not None:
            index = self._maps.ticket_to_index.get(ticket)
            if index is not None and index < len(self._entries):
                if normalize_ticket(self._entries[index].ticket_number) == ticket:
                    return Resolution.resolved(index)

            matches = [
                i for i, entry in enumerate(self._entries)
                if normalize_ticket(entry.ticket_number) == ticket
            ]
            if len(matches) > 1 and target.display_name:
                key = normalize_name(target.display_name)
                confirmed = [i for i in matches if self._entries[i].name_key == key]
                if confirmed:
                    matches = confirmed
            if len(matches) == 1:
                return Resolution.resolved(matches[0])
            if matches:
                return Resolution.ambiguous(f"Ticket {ticket!r} is shared by {len(matches)} entries")
            return Resolution.not_found(f"No entry with ticket {ticket!r}")

        name = clean_text(target.display_name)
        if not name:
            return Resolution.not_found("Target has neither ticket nor name")

        key = normalize_name(name)
        matches = [i for i, entry in enumerate(self._entries) if entry.name_key == key]
        if len(matches) == 1:
            return Resolution.resolved(matches[0])
        if matches:
            return Resolution.ambiguous(
                f"Name {name!r} appears {len(matches)} times and no ticket was given"
            )
        return Resolution.not_found(f"No entry named {name!r}")

    def remove_by_ticket(self, ticket: Any) -> List[Entry]:
        """Drop the entry holding ``ticket``; never matches on display name."""
        self._take_by_ticket(ticket)
        return self.entries

    def remove_by_name(self, display_name: Any) -> List[Entry]:
        """Drop the entry named ``display_name`` only if the name is unique."""
        self._take_by_name(display_name)
        return self.entries

    def remove_entry(self, display_name: Any = None, ticket_number: Any = None) -> Entry:
        """Remove one entry, by ticket when it has a usable one, else by unique name.

        Returns the removed entry.
        """
        if is_distinct_ticket(ticket_number, clean_text(display_name)):
            return self._take_by_ticket(ticket_number)
        return self._take_by_name(display_name)

    def _take_by_ticket(self, ticket: Any) -> Entry:
        key = normalize_ticket(ticket)
        if key is None:
            raise ValidationError("Ticket number required")

        kept = [entry for entry in self._entries if normalize_ticket(entry.ticket_number) != key]
        if len(kept) < len(self._entries):
            removed = next(e for e in self._entries if normalize_ticket(e.ticket_number) == key)
            self.rebuild(kept)
            logger.info("Removed entry %r by ticket %s", removed.display_name, key)
            return removed

        index = self._maps.ticket_to_index.get(key)
        if index is not None and 0 <= index < len(self._entries):
            removed = self._entries[index]
            self.rebuild(self._entries[:index] + self._entries[index + 1:])
            logger.info("Removed entry %r at index %d via ticket map", removed.display_name, index)
            return removed

        logger.warning("Refused removal: no entry with ticket %s", key)
        raise EntryNotFoundError(f"No entry with ticket {key!r}; nothing was removed")

    def _take_by_name(self, display_name: Any) -> Entry:
        name = clean_text(display_name)
        if not name:
            raise ValidationError("Display name or ticket number required")

        key = normalize_name(name)
        matches = [i for i, entry in enumerate(self._entries) if entry.name_key == key]
        if not matches:
            logger.warning("Refused removal: no entry named %r", name)
            raise EntryNotFoundError(f"No entry named {name!r}; nothing was removed")
        if len(matches) > 1:
            logger.warning("Refused removal: name %r occurs %d times", name, len(matches))
            raise AmbiguousIdentityError(
                f"{len(matches)} entries are named {name!r}; remove by ticket number instead",
                display_name=name,
                occurrences=len(matches),
            )

        index = matches[0]
        removed = self._entries[index]
        self.rebuild(self._entries[:index] + self._entries[index + 1:])
        logger.info("Removed entry %r by unique name", removed.display_name)
        return removed


def _first_value(row: Mapping[str, Any], keys: Iterable[str]) -> str:
    for key in keys:
        value = clean_text(row.get(key))
        if value:
            return value
    return ""


def entry_from_row(row: Any, position: int) -> Entry:
    """Turn one imported row into an entry. ``position`` is 0-based."""
    if not isinstance(row, Mapping):
        name = clean_text(row) or f"Entry {position + 1}"
        return Entry.from_payload(name, position)

    first = _first_value(row, ImportFields.FIRST_NAME)
    last = _first_value(row, ImportFields.LAST_NAME)
    ticket = normalize_ticket(_first_value(row, ImportFields.TICKET))
    name = " ".join(part for part in (first, last) if part)

    if not name and ticket is None:
        # Unknown layout: use the first non-empty cell
        name = next((clean_text(v) for v in row.values() if clean_text(v)), "")

    if name and ticket is not None and ticket != name:
        display_name = f"{name} ({ticket})"
    elif name:
        display_name = name
    elif ticket is not None:
        display_name = ticket
    else:
        display_name = f"Entry {position + 1}"

    if ticket is None:
        ticket = split_ticket_suffix(display_name)[1]
    return Entry(display_name=display_name, ticket_number=ticket, source_index=position)


def entries_from_rows(
    rows: Iterable[Any],
    removed_tickets: Iterable[str] = (),
) -> List[Entry]:
    """Convert imported rows to entries, skipping tickets already removed.

    Removed entries are matched by ticket only, including rows whose ticket
    doubles as their display name. Entries without a ticket are always kept
    since a shared name cannot identify them.
    """
    removed = {t for t in (normalize_ticket(x) for x in removed_tickets) if t}
    entries: List[Entry] = []
    skipped = 0
    for position, row in enumerate(rows):
        entry = entry_from_row(row, position)
        if entry.ticket_number is not None and normalize_ticket(entry.ticket_number) in removed:
            skipped += 1
            continue
        entries.append(entry)

    if skipped:
        logger.info("Import skipped %d previously removed entries", skipped)
    return entries
