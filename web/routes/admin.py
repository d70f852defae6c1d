"""Admin blueprint: login, per-spin outcomes and winner bookkeeping."""

from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user

from core.exceptions import AuthenticationError, ValidationError
from services import run_coroutine_sync
from services.entry_registry import IdentityTarget
from services.wheel_service import WheelService
from web.auth import AdminCredentials, AdminUser, validate_credentials
from web.routes.wheel_api import json_body


admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _service() -> WheelService:
    return current_app.config["WHEEL_SERVICE"]


@admin_bp.route("/login", methods=["POST"])
def login():
    """Start an admin session from JSON or form credentials."""
    payload = request.get_json(silent=True) or request.form
    username = str(payload.get("username", ""))
    password = str(payload.get("password", ""))
    credentials: AdminCredentials = current_app.config["ADMIN_CREDENTIALS"]

    if not validate_credentials(credentials, username, password):
        raise AuthenticationError("Invalid admin credentials")
    login_user(AdminUser(username=credentials.username))
    return jsonify({"success": True, "username": credentials.username})


@admin_bp.route("/logout", methods=["GET", "POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"success": True})


@admin_bp.route("/me")
@login_required
def me():
    return jsonify({"username": current_user.username})


@admin_bp.route("/wheels/<wheel_id>/spin-modes", methods=["GET"])
@login_required
def get_spin_modes(wheel_id: str):
    configs = run_coroutine_sync(_service().list_spin_configs(wheel_id))
    return jsonify({"spinModes": {str(c.spin_number): c.mode.value for c in configs}})


@admin_bp.route("/wheels/<wheel_id>/spin-modes", methods=["PUT"])
@login_required
def put_spin_modes(wheel_id: str):
    modes = json_body().get("spinModes")
    if not isinstance(modes, dict):
        raise ValidationError("spinModes must map spin numbers to 'random' or 'fixed'")
    configs = run_coroutine_sync(_service().set_spin_modes(wheel_id, modes))
    return jsonify({"spinModes": {str(c.spin_number): c.mode.value for c in configs}})


@admin_bp.route("/wheels/<wheel_id>/rigging", methods=["GET"])
@login_required
def get_rigging(wheel_id: str):
    configs = run_coroutine_sync(_service().list_spin_configs(wheel_id))
    return jsonify({"spins": [c.to_dict() for c in configs]})


@admin_bp.route("/wheels/<wheel_id>/rigging/<spin_number>", methods=["PUT"])
@login_required
def put_rigging(wheel_id: str, spin_number: str):
    target = IdentityTarget.from_payload(json_body())
    config = run_coroutine_sync(_service().set_rigged_winner(wheel_id, spin_number, target))
    return jsonify(config.to_dict())


@admin_bp.route("/wheels/<wheel_id>/rigging/<spin_number>", methods=["DELETE"])
@login_required
def delete_rigging(wheel_id: str, spin_number: str):
    cleared = run_coroutine_sync(_service().clear_rigged_winner(wheel_id, spin_number))
    return jsonify({"success": True, "cleared": cleared})


@admin_bp.route("/wheels/<wheel_id>/entries/import", methods=["POST"])
@login_required
def import_entries(wheel_id: str):
    rows = json_body().get("rows")
    if not isinstance(rows, list):
        raise ValidationError("rows must be a list")
    snapshot = run_coroutine_sync(_service().import_entries(wheel_id, rows))
    return jsonify({"success": True, "wheel": snapshot})


@admin_bp.route("/wheels/<wheel_id>/entries/remove", methods=["POST"])
@login_required
def remove_entry(wheel_id: str):
    payload = json_body()
    removed = run_coroutine_sync(
        _service().remove_entry(
            wheel_id,
            ticket_number=payload.get("ticketNumber"),
            display_name=payload.get("displayName"),
        )
    )
    return jsonify({"success": True, "removed": removed.to_dict()})


@admin_bp.route("/wheels/<wheel_id>/winners", methods=["GET"])
@login_required
def winners(wheel_id: str):
    return jsonify({"winners": run_coroutine_sync(_service().list_winners(wheel_id))})


@admin_bp.route("/wheels/<wheel_id>/winners", methods=["DELETE"])
@login_required
def clear_winners(wheel_id: str):
    cleared = run_coroutine_sync(_service().clear_winners(wheel_id))
    return jsonify({"success": True, "cleared": cleared})


@admin_bp.route("/wheels/<wheel_id>/removed-entries", methods=["GET"])
@login_required
def removed_entries(wheel_id: str):
    return jsonify({"removedEntries": run_coroutine_sync(_service().list_removed_entries(wheel_id))})


@admin_bp.route("/wheels/<wheel_id>/reset", methods=["POST"])
@login_required
def reset(wheel_id: str):
    snapshot = run_coroutine_sync(_service().reset_all(wheel_id))
    return jsonify({"success": True, "wheel": snapshot})
