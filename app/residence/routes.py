from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from app.residence.bootstrap import load_all
from app.residence.engine import ResidenceStore
from app.residence.gateway import build_gateway, store_stats, store_status
from app.residence.serializers import action_from_dict, state_to_dict

residence_bp = Blueprint("residence", __name__, url_prefix="/api")


def current_store() -> ResidenceStore:
    return current_app.extensions["residence"]


@residence_bp.get("/state")
def state():
    return jsonify(state_to_dict(current_store().state))


@residence_bp.post("/actions")
def dispatch_action():
    body = request.get_json(silent=True)
    try:
        action = action_from_dict(body)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400
    new_state = current_store().dispatch(action)
    return jsonify(state_to_dict(new_state))


@residence_bp.get("/status")
def status():
    gateway = current_store().effects.gateway
    return jsonify({"status": store_status(gateway), "stats": store_stats(gateway)})


@residence_bp.post("/reload")
def reload():
    store = current_store()
    new_state = load_all(store, build_gateway(current_app._get_current_object()))
    return jsonify(state_to_dict(new_state))
