"""Flask application configuration and middleware setup."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from flask import Flask, g, request
from prometheus_client import Counter, Histogram

if TYPE_CHECKING:
    from config import Config

# Prometheus metrics
REQUEST_LATENCY = Histogram(
    "http_request_latency_seconds",
    "HTTP request latency",
    ["method", "path"],
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1, 2),
)
REQUEST_ERRORS = Counter(
    "http_request_errors_total",
    "Total number of 5xx responses",
    ["method", "path"],
)
SPINS_STARTED = Counter(
    "wheel_spins_started_total",
    "Spins started, by mode and rigging outcome",
    ["mode", "rigging_status"],
)


def configure_app(app: Flask, config: Config, testing: bool = False) -> None:
    """Configure Flask application settings.

    Args:
        app: Flask application instance
        config: Application configuration
        testing: Whether running in testing mode
    """
    app.config.update(
        SECRET_KEY=config.secret_key,
        MAX_CONTENT_LENGTH=16 * 1024 * 1024,
        JSON_SORT_KEYS=False,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SECURE=(config.environment == 'production' and not testing),
        SESSION_COOKIE_SAMESITE='Lax',
        DATABASE_PATH=config.database_path,
        DEFAULT_WHEEL_ID=config.default_wheel_id,
        TESTING=testing,
    )

    # Warn if insecure defaults detected
    if config.environment == 'production':
        if config.admin_username == "admin" and config.admin_password == "admin":
            app.logger.warning("Insecure admin credentials detected in production")
        if config.secret_key.startswith("production_secret_key_must_be_changed"):
            app.logger.warning("SECRET_KEY is not set properly")


def setup_security_headers(app: Flask) -> None:
    """Setup security headers middleware.

    Args:
        app: Flask application instance
    """
    @app.after_request
    def add_security_headers(response):
        """Add security headers to all responses."""
        response.headers.setdefault('Content-Security-Policy', "default-src 'none'; frame-ancestors 'none'")
        response.headers.setdefault('X-Content-Type-Options', 'nosniff')
        response.headers.setdefault('X-Frame-Options', 'DENY')
        response.headers.setdefault('Referrer-Policy', 'same-origin')
        response.headers.setdefault('Cache-Control', 'no-store')
        return response


def setup_metrics(app: Flask) -> None:
    """Setup Prometheus metrics middleware.

    Args:
        app: Flask application instance
    """
    @app.before_request
    def before_metrics():
        """Store request start time."""
        g._metrics_start = time.perf_counter()

    @app.after_request
    def after_metrics(response):
        """Record request metrics."""
        start = getattr(g, '_metrics_start', None)
        path = getattr(request.url_rule, 'rule', None) or 'unmatched'
        if start is not None:
            REQUEST_LATENCY.labels(method=request.method, path=path).observe(time.perf_counter() - start)
        if response.status_code >= 500:
            REQUEST_ERRORS.labels(method=request.method, path=path).inc()
        return response
