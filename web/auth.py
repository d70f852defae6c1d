"""Authentication utilities for the wheel admin API.

A single admin account, configured through ADMIN_USERNAME and
ADMIN_PASSWORD, may change per-spin outcomes and winner bookkeeping.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flask import current_app, jsonify
from flask_login import LoginManager, UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

logger = logging.getLogger(__name__)


@dataclass
class AdminCredentials:
    """Admin username and hashed password."""
    username: str
    password_hash: str


login_manager = LoginManager()


class AdminUser(UserMixin):
    """Represents an authenticated admin user."""
    def __init__(self, username: str) -> None:
        self.id = username
        self.username = username


def _is_hashed(value: str) -> bool:
    return value.startswith(("pbkdf2:", "scrypt:"))


def init_login_manager(app, credentials: AdminCredentials) -> AdminCredentials:
    """Attach Flask-Login to ``app`` and store hashed credentials in its config."""
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id: str) -> Optional[AdminUser]:
        stored: AdminCredentials = current_app.config["ADMIN_CREDENTIALS"]
        if user_id == stored.username:
            return AdminUser(username=user_id)
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "Admin login required"}), 401

    if not _is_hashed(credentials.password_hash):
        credentials.password_hash = generate_password_hash(credentials.password_hash)
        logger.info("Password hashed for admin user '%s'", credentials.username)

    app.config["ADMIN_CREDENTIALS"] = credentials
    return credentials


def validate_credentials(credentials: AdminCredentials, username: str, password: str) -> bool:
    """Check a login attempt against the configured admin.

    Usernames compare case-insensitively; passwords are checked against the hash.
    """
    if username.strip().lower() != credentials.username.lower():
        logger.info("Admin login rejected for unknown user '%s'", username)
        return False

    result = check_password_hash(credentials.password_hash, password)
    if not result:
        logger.info("Admin login rejected: wrong password for '%s'", username)
    return result
