"""Public wheel API: snapshots and the spin session."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from core.exceptions import ValidationError
from services import run_coroutine_sync
from services.wheel_service import WheelService
from web.config_middleware import SPINS_STARTED


wheel_bp = Blueprint("wheel", __name__, url_prefix="/api")


def _service() -> WheelService:
    return current_app.config["WHEEL_SERVICE"]


def json_body() -> Dict[str, Any]:
    """Request JSON object; an absent body counts as empty."""
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


@wheel_bp.route("/wheel/<wheel_id>", methods=["GET"])
def get_wheel(wheel_id: str):
    return jsonify(run_coroutine_sync(_service().get_snapshot(wheel_id)))


@wheel_bp.route("/wheel", methods=["POST"])
def save_wheel():
    snapshot = run_coroutine_sync(_service().save_snapshot(json_body()))
    return jsonify({"success": True, "wheelId": snapshot["wheelId"], "wheel": snapshot})


@wheel_bp.route("/wheel/<wheel_id>", methods=["PUT"])
def update_wheel(wheel_id: str):
    snapshot = run_coroutine_sync(_service().update_snapshot(wheel_id, json_body()))
    return jsonify({"success": True, "wheelId": snapshot["wheelId"], "wheel": snapshot})


@wheel_bp.route("/wheel/<wheel_id>", methods=["DELETE"])
def delete_wheel(wheel_id: str):
    return jsonify(run_coroutine_sync(_service().delete_wheel(wheel_id)))


@wheel_bp.route("/wheel/<wheel_id>/spin", methods=["POST"])
def spin(wheel_id: str):
    record = run_coroutine_sync(_service().start_spin(wheel_id))
    SPINS_STARTED.labels(mode=record.mode.value, rigging_status=record.rigging_status.value).inc()
    return jsonify(record.to_dict()), 201


@wheel_bp.route("/wheel/<wheel_id>/rotation", methods=["GET"])
def rotation(wheel_id: str):
    return jsonify(run_coroutine_sync(_service().rotation(wheel_id)))


@wheel_bp.route("/wheel/<wheel_id>/spin/complete", methods=["POST"])
def complete_spin(wheel_id: str):
    record = run_coroutine_sync(_service().complete_spin(wheel_id))
    return jsonify(record.to_dict())


@wheel_bp.route("/wheel/<wheel_id>/winner/remove", methods=["POST"])
def remove_winner(wheel_id: str):
    removed = run_coroutine_sync(_service().remove_winner(wheel_id))
    return jsonify({"success": True, "removed": removed.to_dict()})


@wheel_bp.route("/wheel/<wheel_id>/winner/dismiss", methods=["POST"])
def dismiss_winner(wheel_id: str):
    return jsonify(run_coroutine_sync(_service().dismiss_winner(wheel_id)))
