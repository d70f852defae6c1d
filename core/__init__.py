"""Core application components."""

from core.logger import setup_logger, get_logger
from core.constants import (
    SpinDefaults,
    IdleRotationDefaults,
    EasingDefaults,
    WheelDefaults,
    DatabaseDefaults,
    SpinMode,
    SpinState,
    ResolutionStatus,
    RiggingStatus,
)
from core.exceptions import (
    ApplicationError,
    ConfigurationError,
    DatabaseError,
    ServiceError,
    WheelError,
    WheelNotFoundError,
    InvalidSpinRequestError,
    AmbiguousIdentityError,
    EntryNotFoundError,
    RiggingConfigError,
    ValidationError,
    AuthenticationError,
)

__all__ = [
    # Logging
    'setup_logger',
    'get_logger',
    # Constants
    'SpinDefaults',
    'IdleRotationDefaults',
    'EasingDefaults',
    'WheelDefaults',
    'DatabaseDefaults',
    'SpinMode',
    'SpinState',
    'ResolutionStatus',
    'RiggingStatus',
    # Exceptions
    'ApplicationError',
    'ConfigurationError',
    'DatabaseError',
    'ServiceError',
    'WheelError',
    'WheelNotFoundError',
    'InvalidSpinRequestError',
    'AmbiguousIdentityError',
    'EntryNotFoundError',
    'RiggingConfigError',
    'ValidationError',
    'AuthenticationError',
]
