"""Flask application factory for the wheel API."""

from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from werkzeug.exceptions import HTTPException

from core.exceptions import (
    AmbiguousIdentityError,
    ApplicationError,
    AuthenticationError,
    EntryNotFoundError,
    InvalidSpinRequestError,
    RiggingConfigError,
    ValidationError,
    WheelNotFoundError,
)
from services.wheel_service import WheelService
from web.auth import AdminCredentials, init_login_manager
from web.config_middleware import (
    configure_app,
    setup_security_headers,
    setup_metrics,
)
from web.routes import register_routes

ERROR_STATUS = (
    (WheelNotFoundError, 404),
    (EntryNotFoundError, 404),
    (AmbiguousIdentityError, 409),
    (InvalidSpinRequestError, 409),
    (RiggingConfigError, 400),
    (ValidationError, 400),
    (AuthenticationError, 401),
)


def create_app(config, testing=False, wheel_service: Optional[WheelService] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        config: Application configuration
        testing: Whether running in testing mode
        wheel_service: Service the routes delegate to; built from config when omitted

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    configure_app(app, config, testing)

    setup_security_headers(app)
    setup_metrics(app)

    credentials = AdminCredentials(
        username=config.admin_username,
        password_hash=config.admin_password
    )
    init_login_manager(app, credentials)

    if wheel_service is None:
        wheel_service = WheelService(
            default_wheel_id=config.default_wheel_id,
            duration_ms=config.spin_duration_ms,
            frame_ms=config.spin_frame_ms,
        )
    app.config["WHEEL_SERVICE"] = wheel_service

    register_routes(app)

    _setup_routes(app)
    _setup_error_handlers(app)

    return app


def _setup_routes(app: Flask) -> None:
    @app.route('/metrics')
    def metrics():
        """Expose Prometheus metrics."""
        data = generate_latest()
        return data, 200, {'Content-Type': CONTENT_TYPE_LATEST}


def error_status(error: ApplicationError) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def _setup_error_handlers(app: Flask) -> None:
    """Render every error as ``{"error": message}`` JSON.

    Args:
        app: Flask application instance
    """
    @app.errorhandler(ApplicationError)
    def application_error(error: ApplicationError):
        status = error_status(error)
        if status >= 500:
            app.logger.error(f"Unhandled application error: {error}")
        body = {"error": str(error)}
        if isinstance(error, AmbiguousIdentityError):
            body["occurrences"] = error.occurrences
        return jsonify(body), status

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description or error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception):
        app.logger.error(f"Internal server error: {error}", exc_info=True)
        return jsonify({"error": "Internal server error"}), 500
