# Overview: Flask API routes for store administration; parses input and returns JSON responses.

"""
Store administration routes.

SECURITY: every route requires the super_admin role. Store-bound users never
see the store list; they only reach their own store through the session.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import SERVICE_ERRORS, error_response, require_login, require_super_admin
from ..services import reporting_service, seed_service, store_service
from ..services.storage_service import get_storage
from ..time_utils import utcnow


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


def _store_summary(storage, store, stats: dict | None, now) -> dict:
    owner = store_service.get_store_owner(storage, store.id)
    return {
        **store.to_dict(),
        "owner": owner.to_dict() if owner else None,
        "stats": stats,
        "expiration": store_service.expiration_status(store, now),
    }


@stores_bp.get("")
@require_login
@require_super_admin
def list_stores():
    """List all stores with owner, statistics and expiration status."""
    storage = get_storage()
    try:
        stores = store_service.list_stores(storage, g.ctx)
        stats = reporting_service.get_all_stores_stats(storage)
        now = utcnow()
        return jsonify([_store_summary(storage, s, stats.get(s.id), now) for s in stores]), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to list stores")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.post("")
@require_login
@require_super_admin
def create_store():
    """
    Create a store and its owner.

    Body: {name, email, phone?, address?, is_active?, expires_at?,
           owner: {name, email, password}}
    """
    data = request.get_json(silent=True) or {}
    owner = data.pop("owner", None)
    if not isinstance(owner, dict):
        return jsonify({"error": "owner is required"}), 400

    storage = get_storage()
    try:
        store, owner_user = store_service.create_store(storage, g.ctx, data, owner)
        if current_app.config.get("SEED_DEMO_DATA"):
            seed_service.seed_demo_data(storage, store.id)
        return jsonify({"store": store.to_dict(), "owner": owner_user.to_dict()}), 201
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.get("/<store_id>")
@require_login
@require_super_admin
def get_store(store_id: str):
    storage = get_storage()
    try:
        store = store_service.get_store(storage, g.ctx, store_id)
        stats = reporting_service.calculate_store_stats(storage, store_id)
        return jsonify(_store_summary(storage, store, stats, utcnow())), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to load store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.put("/<store_id>")
@require_login
@require_super_admin
def update_store(store_id: str):
    """Edit store fields. The owner is never created or changed here."""
    data = request.get_json(silent=True) or {}
    try:
        store = store_service.update_store(get_storage(), g.ctx, store_id, data)
        return jsonify(store.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update store")
        return jsonify({"error": "Internal server error"}), 500


@stores_bp.post("/<store_id>/block")
@require_login
@require_super_admin
def block_store(store_id: str):
    try:
        store = store_service.set_store_active(get_storage(), g.ctx, store_id, False)
        return jsonify(store.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@stores_bp.post("/<store_id>/unblock")
@require_login
@require_super_admin
def unblock_store(store_id: str):
    try:
        store = store_service.set_store_active(get_storage(), g.ctx, store_id, True)
        return jsonify(store.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@stores_bp.post("/<store_id>/extend")
@require_login
@require_super_admin
def extend_store(store_id: str):
    data = request.get_json(silent=True) or {}
    days = data.get("days")
    if not isinstance(days, int) or isinstance(days, bool):
        return jsonify({"error": "days must be an integer"}), 400

    try:
        store = store_service.extend_store_access(get_storage(), g.ctx, store_id, days)
        return jsonify(store.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@stores_bp.delete("/<store_id>")
@require_login
@require_super_admin
def delete_store(store_id: str):
    """Delete a store and its users. Products, customers and sales are kept."""
    storage = get_storage()
    try:
        removed = store_service.delete_store(storage, g.ctx, store_id)
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to delete store")
        return jsonify({"error": "Internal server error"}), 500

    # The super_admin may have been inspecting the deleted store
    if g.session.active_store and g.session.active_store.id == store_id:
        g.session.set_active_store(None)

    return jsonify({"ok": True, "users_removed": removed}), 200
