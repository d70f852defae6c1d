"""Application-wide exception classes."""

from __future__ import annotations


class ApplicationError(Exception):
    """Base exception for all application errors."""
    pass


class ConfigurationError(ApplicationError):
    """Raised when configuration is invalid."""
    pass


class DatabaseError(ApplicationError):
    """Base exception for database-related errors."""
    pass


class ConnectionPoolError(DatabaseError):
    """Raised when database connection pool has issues."""
    pass


class RepositoryError(DatabaseError):
    """Raised when repository operation fails."""
    pass


class ServiceError(ApplicationError):
    """Base exception for service-level errors."""
    pass


class WheelError(ServiceError):
    """Base exception for wheel operations."""
    pass


class WheelNotFoundError(WheelError):
    """Raised when no snapshot is stored for a wheel id."""
    pass


class InvalidSpinRequestError(WheelError):
    """Raised when a spin is requested with no entries or while spinning."""
    pass


class AmbiguousIdentityError(WheelError):
    """Raised when a display name is shared by several entries without a ticket."""

    def __init__(self, message: str, display_name: str = "", occurrences: int = 0) -> None:
        super().__init__(message)
        self.display_name = display_name
        self.occurrences = occurrences


class EntryNotFoundError(WheelError):
    """Raised when an entry to remove is not present by any resolution tier."""
    pass


class RiggingConfigError(WheelError):
    """Raised when a per-spin rigging configuration is rejected."""
    pass


class ValidationError(ApplicationError):
    """Raised when data validation fails."""
    pass


class AuthenticationError(ApplicationError):
    """Raised when authentication fails."""
    pass
