# Overview: Request decorators and error translation for API routes.

from functools import wraps
from flask import g, jsonify, request

from .services.access_control import AccessErrorKind, TenantAccessError
from .services.session_service import open_session
from .validation import ConflictError, NotFoundError, ValidationError


SERVICE_ERRORS = (TenantAccessError, ValidationError, NotFoundError, ConflictError)

_ACCESS_STATUS = {
    AccessErrorKind.UNAUTHENTICATED: 401,
    AccessErrorKind.MISSING_CREDENTIALS: 400,
    AccessErrorKind.INVALID_CREDENTIALS: 401,
    AccessErrorKind.NO_ACTIVE_STORE: 409,
    AccessErrorKind.STORE_NOT_FOUND: 404,
}


def access_error_response(kind: AccessErrorKind):
    """JSON body and status for an access-control failure (403 unless listed)."""
    status = _ACCESS_STATUS.get(kind, 403)
    return jsonify({"error": kind.message, "code": kind.value}), status


def error_response(exc: Exception):
    """Translate a service-layer exception into a JSON error response."""
    if isinstance(exc, TenantAccessError):
        return access_error_response(exc.kind)
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, ConflictError):
        return jsonify({"error": str(exc)}), 409
    return jsonify({"error": str(exc)}), 400


def bearer_token() -> str | None:
    """Token from "Authorization: Bearer <token>", or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


def require_login(f):
    """
    Require an authenticated session.

    Restores the Session of the calling client from its bearer token; the
    user and their store are revalidated on every request.

    Sets the following Flask g attributes:
    - g.session: the client's Session
    - g.ctx: AccessContext snapshot (user + active store) for service calls
    - g.current_user: the authenticated User

    SECURITY: Returns 401 if the header is missing or the token is unknown
    (logged out, or malformed persisted session data). A store-bound user
    whose store is no longer usable gets 403 (404 once it is gone).
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = bearer_token()
        if token is None:
            return access_error_response(AccessErrorKind.UNAUTHENTICATED)

        session = open_session(token)
        if session.current_user is None:
            return access_error_response(AccessErrorKind.UNAUTHENTICATED)
        if session.store_error is not None:
            return access_error_response(session.store_error)

        g.session = session
        g.ctx = session.context()
        g.current_user = session.current_user
        return f(*args, **kwargs)

    return decorated_function


def require_active_store(f):
    """
    Require a logged-in session with an active store.

    Must be applied after @require_login. super_admin passes as well, provided
    a store has been selected.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "ctx"):
            return access_error_response(AccessErrorKind.UNAUTHENTICATED)
        if g.ctx.active_store is None:
            return access_error_response(AccessErrorKind.NO_ACTIVE_STORE)
        return f(*args, **kwargs)

    return decorated_function


def require_super_admin(f):
    """Require the super_admin role. Must be applied after @require_login."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not hasattr(g, "current_user"):
            return access_error_response(AccessErrorKind.UNAUTHENTICATED)
        if not g.current_user.is_super_admin:
            return access_error_response(AccessErrorKind.FORBIDDEN_ROLE)
        return f(*args, **kwargs)

    return decorated_function
