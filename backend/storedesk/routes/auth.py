# Overview: Flask API routes for login, logout and the active store; returns JSON responses.

"""
Authentication routes.

Every API client owns its own Session, addressed by the bearer token issued
at login (see session_service.open_session):

    POST /api/auth/login         {email, password} -> {token, user, active_store}
    POST /api/auth/logout        Authorization: Bearer <token>
    GET  /api/auth/session       current user, active store and state
    PUT  /api/auth/active-store  {store_id}  (null clears the active store)
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import access_error_response, bearer_token, require_login
from ..models import StorageDecodeError
from ..services.access_control import AccessErrorKind
from ..services.session_service import SessionState, generate_token, open_session


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _session_payload(session) -> dict:
    return {
        "state": session.state.value,
        "user": session.current_user.to_dict() if session.current_user else None,
        "active_store": session.active_store.to_dict() if session.active_store else None,
    }


@auth_bp.post("/login")
def login():
    """
    Authenticate and open a new session.

    The token in the response is the only copy; storage keeps its hash.
    """
    data = request.get_json(silent=True) or {}
    token = generate_token()
    session = open_session(token)

    try:
        result = session.login(data.get("email"), data.get("password"))
    except StorageDecodeError:
        current_app.logger.exception("Stored users or stores are malformed")
        return jsonify({"error": "Internal server error"}), 500

    if not result.success:
        return access_error_response(result.error)

    return jsonify({**result.to_dict(), "token": token, "state": session.state.value}), 200


@auth_bp.post("/logout")
def logout():
    """Clear the caller's session slots. Always succeeds."""
    token = bearer_token()
    if token is not None:
        open_session(token).logout()
    return jsonify({"ok": True}), 200


@auth_bp.get("/session")
def current_session():
    token = bearer_token()
    session = open_session(token) if token else None
    if session is None or session.current_user is None:
        return jsonify({"state": SessionState.LOGGED_OUT.value, "user": None, "active_store": None, "session_ready": True}), 200
    return jsonify({**_session_payload(session), "session_ready": session.session_ready}), 200


@auth_bp.put("/active-store")
@require_login
def set_active_store():
    """
    Select (or clear) the active store.

    Store-bound users may only re-select their own accessible store;
    super_admin may select any store.
    """
    data = request.get_json(silent=True) or {}
    store_id = data.get("store_id")

    store = None
    if store_id:
        try:
            store = g.session.storage.stores.get_by_id(store_id)
        except StorageDecodeError:
            current_app.logger.exception("Failed to load stores")
            return jsonify({"error": "Internal server error"}), 500
        if store is None:
            return access_error_response(AccessErrorKind.STORE_NOT_FOUND)

    result = g.session.set_active_store(store)
    if not result.valid:
        return access_error_response(result.error)

    return jsonify(_session_payload(g.session)), 200
