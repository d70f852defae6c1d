"""Input validation and canonical key normalization helpers.

Every identity map and every lookup goes through these functions so that
names, tickets and spin numbers are normalized the same way everywhere.
"""

from __future__ import annotations

import re
from typing import Any, Optional, Tuple

from core.constants import WheelDefaults
from core.exceptions import ValidationError


TICKET_SUFFIX_RE = re.compile(r"^(.+?)\s*\((\d+)\)$")
WHEEL_ID_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


def clean_text(value: Any) -> str:
    """Stringify and trim, mapping None to an empty string."""
    if value is None:
        return ""
    return str(value).strip()


def normalize_name(value: Any) -> str:
    """Canonical key for display names: trimmed and case-folded."""
    return clean_text(value).casefold()


def normalize_ticket(value: Any) -> Optional[str]:
    """Canonical key for tickets: exact string after trimming, None when empty."""
    ticket = clean_text(value)
    return ticket or None


def normalize_spin_number(value: Any) -> int:
    """Canonical key for spin numbers: a 1-based integer.

    Accepts ints and numeric strings, which is how spin numbers arrive from
    JSON object keys.
    """
    if isinstance(value, bool):
        raise ValidationError(f"Invalid spin number: {value!r}")
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Invalid spin number: {value!r}") from e
    if number < 1:
        raise ValidationError(f"Spin number must be >= 1, got {number}")
    return number


def is_distinct_ticket(ticket: Optional[str], display_name: str) -> bool:
    """A ticket counts only if present and not just the display name again.

    Compared case-sensitively after trimming, so a name is never silently
    treated as its own ticket.
    """
    ticket = normalize_ticket(ticket)
    return ticket is not None and ticket != clean_text(display_name)


def split_ticket_suffix(display_name: str) -> Tuple[str, Optional[str]]:
    """Split "Name (123)" into ("Name", "123"); other names have no ticket."""
    match = TICKET_SUFFIX_RE.match(clean_text(display_name))
    if not match:
        return clean_text(display_name), None
    return match.group(1).strip(), match.group(2)


def validate_wheel_id(value: Any) -> str:
    wheel_id = clean_text(value)
    if not wheel_id:
        raise ValidationError("wheelId required")
    if len(wheel_id) > WheelDefaults.WHEEL_ID_MAX_LENGTH:
        raise ValidationError("wheelId is too long")
    if not WHEEL_ID_RE.match(wheel_id):
        raise ValidationError("wheelId may only contain letters, digits, '.', '_' and '-'")
    return wheel_id
