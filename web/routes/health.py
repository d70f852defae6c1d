"""Health check blueprint."""

from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, jsonify

from core.exceptions import ConnectionPoolError
from database.connection import get_db_pool


health_bp = Blueprint("health", __name__)


@health_bp.route("/health")
@health_bp.route("/api/health")
def health_check():
    try:
        pool = get_db_pool()
        database = "ok" if pool.initialized else "not_initialized"
    except ConnectionPoolError:
        database = "not_initialized"

    data = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": database,
    }
    return jsonify(data)
