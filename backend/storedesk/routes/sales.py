# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/storedesk/routes/sales.py
"""Sales and receipt API routes, scoped to the active store"""

from flask import Blueprint, request, jsonify, g
from flask import current_app

from ..decorators import SERVICE_ERRORS, error_response, require_active_store, require_login
from ..services import sales_service
from ..services.receipt_service import format_receipt_code
from ..services.storage_service import get_storage


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _sale_payload(sale) -> dict:
    return {**sale.to_dict(), "receipt_display": format_receipt_code(sale.receipt_code)}


@sales_bp.get("")
@require_login
def list_sales_route():
    """Sales of the active store, newest first. ?status= filters."""
    try:
        sales = sales_service.list_sales(
            get_storage(),
            g.ctx,
            store_id=request.args.get("store_id"),
            status=request.args.get("status"),
        )
        return jsonify([_sale_payload(s) for s in sales]), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@sales_bp.post("")
@require_login
@require_active_store
def create_sale_route():
    """
    Check out a cart.

    Body: {items: [{product_id, quantity, discount?}], payment_method,
           discount?, customer_id?, notes?}
    """
    try:
        data = request.get_json(silent=True) or {}
        sale = sales_service.create_sale(get_storage(), g.ctx, data)
        return jsonify({"sale": _sale_payload(sale)}), 201

    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sales_bp.get("/receipts/<code>")
@require_login
@require_active_store
def get_receipt_route(code: str):
    """Look up a sale by receipt code (display form with spaces is accepted)."""
    try:
        sale = sales_service.find_sale_by_receipt_code(get_storage(), g.ctx, code)
        return jsonify({"sale": _sale_payload(sale)}), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@sales_bp.get("/<sale_id>")
@require_login
@require_active_store
def get_sale_route(sale_id: str):
    try:
        sale = sales_service.get_sale(get_storage(), g.ctx, sale_id)
        return jsonify({"sale": _sale_payload(sale)}), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)


@sales_bp.post("/<sale_id>/cancel")
@require_login
@require_active_store
def cancel_sale_route(sale_id: str):
    """Cancel a completed sale and put its items back in stock."""
    try:
        sale = sales_service.cancel_sale(get_storage(), g.ctx, sale_id)
        return jsonify({"sale": _sale_payload(sale)}), 200

    except SERVICE_ERRORS as exc:
        return error_response(exc)
    except Exception:
        current_app.logger.exception("Failed to cancel sale")
        return jsonify({"error": "Internal server error"}), 500
