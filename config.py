"""Application configuration module.

Reads settings from environment variables with sane defaults for a single
raffle wheel server.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from core.constants import DatabaseDefaults, SpinDefaults, WheelDefaults
from core.exceptions import ConfigurationError

# Load environment variables from .env file (optional in test env)
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass


def _get_bool(name: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


def _get_int(name: str, default: int) -> int:
    """Get integer from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got: {value!r}") from e


def _get_float(name: str, default: float) -> float:
    """Get float from environment variable with fallback."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got: {value!r}") from e


def _get_str(name: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.getenv(name, default)


@dataclass(frozen=True)
class Config:
    environment: str
    debug: bool
    log_level: str
    log_folder: str
    web_host: str
    web_port: int
    secret_key: str
    admin_username: str
    admin_password: str
    database_path: str
    db_pool_size: int
    db_busy_timeout: int
    default_wheel_id: str
    spin_duration_ms: int
    spin_frame_ms: int
    rigging_fallback_url: Optional[str]
    rigging_fallback_timeout: float


def validate_config(config: Config) -> Config:
    """Reject values the wheel cannot run with."""
    if config.spin_duration_ms <= 0:
        raise ConfigurationError("SPIN_DURATION_MS must be > 0")
    if config.spin_frame_ms <= 0:
        raise ConfigurationError("SPIN_FRAME_MS must be > 0")
    if config.db_pool_size < 1:
        raise ConfigurationError("DB_POOL_SIZE must be >= 1")
    if not config.default_wheel_id.strip():
        raise ConfigurationError("DEFAULT_WHEEL_ID must not be empty")
    if config.rigging_fallback_timeout <= 0:
        raise ConfigurationError("RIGGING_FALLBACK_TIMEOUT must be > 0")
    return config


def load_config() -> Config:
    """Load application configuration from environment variables.

    Returns:
        Config: Application configuration with validated values
    """
    fallback_url = _get_str("RIGGING_FALLBACK_URL", "").strip() or None

    config = Config(
        environment=_get_str("ENVIRONMENT", "development"),
        debug=_get_bool("DEBUG", False),
        log_level=_get_str("LOG_LEVEL", "INFO").upper(),
        log_folder=_get_str("LOG_FOLDER", "logs"),
        web_host=_get_str("WEB_HOST", "0.0.0.0"),
        web_port=_get_int("WEB_PORT", 3000),
        secret_key=_get_str(
            "SECRET_KEY",
            "production_secret_key_must_be_changed_in_production_environment"
        ),
        admin_username=_get_str("ADMIN_USERNAME", "admin"),
        admin_password=_get_str("ADMIN_PASSWORD", "admin"),
        database_path=_get_str("DATABASE_PATH", "data/wheel.sqlite"),
        db_pool_size=_get_int("DB_POOL_SIZE", DatabaseDefaults.POOL_SIZE),
        db_busy_timeout=_get_int("DB_BUSY_TIMEOUT", DatabaseDefaults.BUSY_TIMEOUT),
        default_wheel_id=_get_str("DEFAULT_WHEEL_ID", WheelDefaults.WHEEL_ID),
        spin_duration_ms=_get_int("SPIN_DURATION_MS", SpinDefaults.DURATION_MS),
        spin_frame_ms=_get_int("SPIN_FRAME_MS", SpinDefaults.FRAME_MS),
        rigging_fallback_url=fallback_url,
        rigging_fallback_timeout=_get_float("RIGGING_FALLBACK_TIMEOUT", 5.0),
    )

    return validate_config(config)
