"""Application-wide constants and configuration values."""

from __future__ import annotations

from enum import Enum


# Spin physics
class SpinDefaults:
    """Default values for a single spin."""
    MIN_ROTATIONS = 5
    MAX_ROTATIONS = 8
    DURATION_MS = 6000
    FRAME_MS = 16  # ~60 frames per second
    POINTER_ANGLE = 0.0  # 3 o'clock, screen space
    SLICE_ORIGIN = -90.0  # slice 0 starts at 12 o'clock


class IdleRotationDefaults:
    """Slow rotation while the wheel waits for a spin."""
    DEGREES_PER_STEP = 1.5
    STEP_MS = 50  # 1.5 degrees per 50ms = 30 degrees per second


class EasingDefaults:
    """Power start + friction stop easing curve."""
    ACCELERATION_SHARE = 0.20
    ACCELERATION_POWER = 3
    DECELERATION_POWER = 5


# Wheel defaults
class WheelDefaults:
    """Wheel document defaults."""
    WHEEL_ID = "default-wheel"
    ENTRIES = ("Ali", "Beatriz", "Charles", "Diya", "Eric", "Fatima", "Gabriel", "Hanna")
    MAX_ENTRIES = 10000
    WHEEL_ID_MAX_LENGTH = 128


# Database constants
class DatabaseDefaults:
    """Default database configuration."""
    POOL_SIZE = 5
    BUSY_TIMEOUT = 5000  # milliseconds


# Status enums
class SpinMode(str, Enum):
    """How the winner of a spin is chosen."""
    RANDOM = "random"
    FIXED = "fixed"


class SpinState(str, Enum):
    """Lifecycle of the wheel's spin resolver."""
    IDLE = "idle"
    SPINNING = "spinning"
    COMPLETED = "completed"


class ResolutionStatus(str, Enum):
    """Outcome of resolving an identity descriptor to an entry index."""
    RESOLVED = "resolved"
    AMBIGUOUS = "ambiguous"
    NOT_FOUND = "not_found"


class RiggingStatus(str, Enum):
    """Whether a spin was rigged and whether the target was hit."""
    NOT_RIGGED = "not_rigged"
    HIT = "hit"
    MISSED_AMBIGUOUS = "missed_ambiguous"
    MISSED_NOT_FOUND = "missed_not_found"


# Import field names accepted for spreadsheet-like rows
class ImportFields:
    """Column names recognised when converting imported rows to entries."""
    TICKET = (
        "Ticket Number", "ticket number", "ticketNumber", "Ticket", "ticket",
        "Ticket No", "ticket no", "TicketNo",
    )
    FIRST_NAME = ("First Name", "first name", "firstName")
    LAST_NAME = ("Last Name", "last name", "lastName")
