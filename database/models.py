"""Data access layer models implemented with handcrafted queries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class WheelRow:
    wheel_id: str
    entries: List[Dict[str, Any]]
    settings: Dict[str, Any]
    spin_count: int
    created_at: str
    updated_at: str


@dataclass(slots=True)
class SpinConfigRow:
    wheel_id: str
    spin_number: int
    mode: str
    target_ticket: Optional[str]
    target_name: Optional[str]
    updated_at: str


@dataclass(slots=True)
class WinnerRow:
    id: int
    wheel_id: str
    spin_number: int
    entry_index: int
    display_name: str
    ticket_number: Optional[str]
    rotation_start: float
    rotation_end: float
    rigging_status: str
    won_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "spinNumber": self.spin_number,
            "index": self.entry_index,
            "displayName": self.display_name,
            "ticketNumber": self.ticket_number,
            "rotationStart": self.rotation_start,
            "rotationEnd": self.rotation_end,
            "riggingStatus": self.rigging_status,
            "wonAt": self.won_at,
        }


@dataclass(slots=True)
class RemovedEntryRow:
    wheel_id: str
    display_name: str
    ticket_number: str
    removed_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "displayName": self.display_name,
            "ticketNumber": self.ticket_number,
            "removedAt": self.removed_at,
        }
