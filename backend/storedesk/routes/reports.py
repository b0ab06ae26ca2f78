from flask import Blueprint, g, jsonify, request

from ..decorators import SERVICE_ERRORS, error_response, require_login
from ..services import reporting_service
from ..services.storage_service import get_storage


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_login
def dashboard():
    """Dashboard figures for the active store (super_admin: ?store_id=)."""
    try:
        stats = reporting_service.dashboard_for_context(
            get_storage(),
            g.ctx,
            store_id=request.args.get("store_id"),
        )
        return jsonify(stats), 200
    except SERVICE_ERRORS as exc:
        return error_response(exc)
