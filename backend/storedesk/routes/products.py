# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes with multi-tenant support.

MULTI-TENANT: every route works on the session's active store. A product id
of another store is reported as not found on reads and denied on writes.
super_admin may pass ?store_id= on list to inspect another store.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import SERVICE_ERRORS, error_response, require_active_store, require_login
from ..services import products_service
from ..services.storage_service import get_storage


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_login
def list_products():
    """
    Query params:
    - store_id: super_admin only; other roles get 403 for a foreign store
    - search: matches name or SKU
    - category
    - active_only: "true" to hide inactive products
    """
    try:
        products = products_service.list_products(
            get_storage(),
            g.ctx,
            store_id=request.args.get("store_id"),
            search=request.args.get("search"),
            category=request.args.get("category"),
            active_only=request.args.get("active_only", "false").lower() == "true",
        )
        return jsonify([p.to_dict() for p in products]), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@products_bp.get("/categories")
@require_login
@require_active_store
def list_categories():
    try:
        return jsonify(products_service.list_categories(get_storage(), g.ctx)), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@products_bp.get("/<product_id>")
@require_login
@require_active_store
def get_product(product_id: str):
    try:
        product = products_service.get_product(get_storage(), g.ctx, product_id)
        return jsonify(product.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@products_bp.post("")
@require_login
def create_product():
    """Create a product in the active store (super_admin may name a store_id)."""
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.create_product(get_storage(), g.ctx, payload)
        return jsonify(product.to_dict()), 201
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.put("/<product_id>")
@require_login
@require_active_store
def update_product(product_id: str):
    payload = request.get_json(silent=True) or {}
    try:
        product = products_service.update_product(get_storage(), g.ctx, product_id, payload)
        return jsonify(product.to_dict()), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to update product")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<product_id>")
@require_login
@require_active_store
def delete_product(product_id: str):
    try:
        products_service.delete_product(get_storage(), g.ctx, product_id)
    except SERVICE_ERRORS as exc:
        return error_response(exc)
    return jsonify({"ok": True}), 200
