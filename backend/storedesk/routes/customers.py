# Overview: Flask API routes for customer records; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import SERVICE_ERRORS, error_response, require_active_store, require_login
from ..services import customer_service
from ..services.storage_service import get_storage


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_login
def list_customers():
    try:
        customers = customer_service.list_customers(
            get_storage(),
            g.ctx,
            store_id=request.args.get("store_id"),
            search=request.args.get("search"),
        )
        return jsonify([c.to_dict() for c in customers]), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@customers_bp.get("/<customer_id>")
@require_login
@require_active_store
def get_customer(customer_id: str):
    try:
        customer = customer_service.get_customer(get_storage(), g.ctx, customer_id)
        return jsonify(customer.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@customers_bp.post("")
@require_login
def create_customer():
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.create_customer(get_storage(), g.ctx, payload)
        return jsonify(customer.to_dict()), 201
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.put("/<customer_id>")
@require_login
@require_active_store
def update_customer(customer_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        customer = customer_service.update_customer(get_storage(), g.ctx, customer_id, payload)
        return jsonify(customer.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update customer")
        return jsonify({"error": "Internal server error"}), 500


@customers_bp.delete("/<customer_id>")
@require_login
@require_active_store
def delete_customer(customer_id: str):
    try:
        customer_service.delete_customer(get_storage(), g.ctx, customer_id)
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify({"ok": True}), 200
