# Overview: Session / authentication state machine with tenant resolution.

"""
Session State Machine with Multi-Tenant Support

A Session holds the current authenticated user and the active tenant
("store"), persists both in the two session slots of the storage, and
restores them on start.

STATES:
    LOGGED_OUT -> AUTHENTICATING -> LOGGED_IN_NO_STORE    (super_admin)
                                 -> LOGGED_IN_WITH_STORE  (store-bound roles)
    any -> LOGGED_OUT on logout()

MULTI-TENANT: a store-bound user only ever gets their own store as active
store, and only while it is accessible (active and not expired). This is
checked at login, at restore time and on every explicit store switch.

FAILURE SEMANTICS:
- login() and set_active_store() return result values; credential and
  store problems are never raised
- restore_session() never fails visibly: malformed or stale persisted state
  degrades to LOGGED_OUT or to "logged in, no store"

API CLIENTS: every client owns a Session keyed by its bearer token. The token
is generated at login and only its SHA-256 hash names the session slots;
open_session(token) rebuilds and revalidates the Session on each request.

USAGE:
    token = generate_token()
    session = open_session(token)
    result = session.login(email, password)
    if result.success:
        products = list_products(session.storage, session.context())
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass
from enum import Enum

from ..models import Store, StorageDecodeError, User
from .access_control import AccessContext, AccessErrorKind, AccessResult
from .auth_service import build_super_admin, is_super_admin_login, verify_password
from .storage_service import Storage, get_storage
from storedesk.time_utils import utcnow

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    AUTHENTICATING = "authenticating"
    LOGGED_IN_NO_STORE = "logged_in_no_store"
    LOGGED_IN_WITH_STORE = "logged_in_with_store"


@dataclass(frozen=True)
class LoginResult:
    success: bool
    error: AccessErrorKind | None = None
    user: User | None = None
    store: Store | None = None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "error": self.error.value if self.error else None,
            "message": self.message,
            "user": self.user.to_dict() if self.user else None,
            "active_store": self.store.to_dict() if self.store else None,
        }


def store_access_error(store: Store) -> AccessErrorKind | None:
    """Why a store cannot be used right now; blocked takes precedence over expired."""
    if not store.is_active:
        return AccessErrorKind.STORE_BLOCKED
    if not store.is_accessible(utcnow()):
        return AccessErrorKind.STORE_EXPIRED
    return None


class Session:
    """
    Explicit session context for one storage origin.

    Exposes current_user, active_store, session_ready, login(), logout()
    and set_active_store(). No state lives outside the instance and its
    storage.
    """

    def __init__(self, storage: Storage):
        self.storage = storage
        self._user: User | None = None
        self._active_store: Store | None = None
        self._authenticating = False
        self.session_ready = False
        # Why the restored user's own store is unusable right now, if it is
        self.store_error: AccessErrorKind | None = None

    @property
    def current_user(self) -> User | None:
        return self._user

    @property
    def active_store(self) -> Store | None:
        return self._active_store

    @property
    def state(self) -> SessionState:
        if self._authenticating:
            return SessionState.AUTHENTICATING
        if self._user is None:
            return SessionState.LOGGED_OUT
        if self._active_store is None:
            return SessionState.LOGGED_IN_NO_STORE
        return SessionState.LOGGED_IN_WITH_STORE

    def context(self) -> AccessContext:
        return AccessContext(user=self._user, active_store=self._active_store)

    # -------------------------------------------------------------------------
    # Restore
    # -------------------------------------------------------------------------

    def restore_session(self) -> SessionState:
        """
        Load the persisted user and active store.

        For store-bound users the store is re-read from the stores collection
        and re-validated; if it is gone, foreign or no longer accessible only
        the active-store slot is cleared. A store-bound user whose record was
        deleted is logged out.

        store_error is set when a store-bound user's own store can no longer
        be used (see store_access_error); callers refuse the request.
        """
        self.store_error = None
        try:
            self._restore()
        except StorageDecodeError as exc:
            logger.warning("Discarding malformed session state: %s", exc)
            self._reset()
        self.session_ready = True
        return self.state

    def _restore(self) -> None:
        saved_user = self.storage.get_session_user()
        saved_store = self.storage.get_active_store()

        if saved_user is None:
            self._user = None
            self._active_store = None
            if saved_store is not None:
                self.storage.clear_active_store()
            return

        if saved_user.is_super_admin:
            self._user = saved_user
            self._active_store = saved_store
            return

        user = self.storage.users.get_by_id(saved_user.id)
        if user is None:
            logger.info("Persisted user %s no longer exists; logging out", saved_user.id)
            self._reset()
            return

        self._user = user
        self._active_store = None
        self.store_error = self._bound_store_error(user)
        if saved_store is None:
            return

        store = self.storage.stores.get_by_id(saved_store.id)
        if store is None or store.id != user.store_id or store_access_error(store) is not None:
            logger.info("Clearing stale active store %s for user %s", saved_store.id, user.id)
            self.storage.clear_active_store()
            return

        self._active_store = store
        self.storage.set_active_store(store)

    def _bound_store_error(self, user: User) -> AccessErrorKind | None:
        if user.store_id is None:
            return None
        store = self.storage.stores.get_by_id(user.store_id)
        if store is None:
            return AccessErrorKind.STORE_NOT_FOUND
        return store_access_error(store)

    # -------------------------------------------------------------------------
    # Login / logout
    # -------------------------------------------------------------------------

    def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate and resolve the tenant.

        Errors, in order of evaluation: MISSING_CREDENTIALS,
        INVALID_CREDENTIALS, STORE_NOT_FOUND, STORE_BLOCKED, STORE_EXPIRED.
        """
        if not isinstance(email, str) or not isinstance(password, str):
            return LoginResult(success=False, error=AccessErrorKind.MISSING_CREDENTIALS)
        email = email.strip()
        if not email or not password:
            return LoginResult(success=False, error=AccessErrorKind.MISSING_CREDENTIALS)

        self._authenticating = True
        try:
            return self._login(email, password)
        finally:
            self._authenticating = False

    def _login(self, email: str, password: str) -> LoginResult:
        if is_super_admin_login(email, password):
            user = build_super_admin(email)
            self._establish(user, None)
            logger.info("super_admin logged in")
            return LoginResult(success=True, user=user)

        wanted = email.lower()
        candidates = [u for u in self.storage.users.get_all() if u.email.lower() == wanted]
        user = next((u for u in candidates if verify_password(password, u.password)), None)

        if user is None:
            logger.info("Failed login for %s", email)
            return LoginResult(success=False, error=AccessErrorKind.INVALID_CREDENTIALS)

        if user.store_id is None:
            self._establish(user, None)
            logger.info("User %s logged in without a store", user.id)
            return LoginResult(success=True, user=user)

        store = self.storage.stores.get_by_id(user.store_id)
        if store is None:
            logger.warning("User %s is bound to missing store %s", user.id, user.store_id)
            return LoginResult(success=False, error=AccessErrorKind.STORE_NOT_FOUND)

        error = store_access_error(store)
        if error is not None:
            logger.info("Login refused for user %s: %s", user.id, error.value)
            return LoginResult(success=False, error=error)

        self._establish(user, store)
        logger.info("User %s logged in to store %s", user.id, store.id)
        return LoginResult(success=True, user=user, store=store)

    def logout(self) -> None:
        self._reset()

    def _establish(self, user: User, store: Store | None) -> None:
        self._user = user
        self._active_store = store
        self.storage.set_session_user(user)
        if store is None:
            self.storage.clear_active_store()
        else:
            self.storage.set_active_store(store)

    def _reset(self) -> None:
        self._user = None
        self._active_store = None
        self.store_error = None
        self.storage.clear_session_user()
        self.storage.clear_active_store()

    # -------------------------------------------------------------------------
    # Tenant switch
    # -------------------------------------------------------------------------

    def set_active_store(self, store: Store | None) -> AccessResult[Store]:
        """
        Switch (or clear, with None) the active tenant.

        super_admin may select any store, including blocked or expired ones,
        to inspect it. Store-bound users may only re-select their own store,
        and only while it is accessible.
        """
        if self._user is None:
            return AccessResult.fail(AccessErrorKind.UNAUTHENTICATED)

        if store is None:
            self._active_store = None
            self.storage.clear_active_store()
            return AccessResult.ok()

        if not self._user.is_super_admin:
            if store.id != self._user.store_id:
                logger.warning("User %s tried to switch to foreign store %s", self._user.id, store.id)
                return AccessResult.fail(AccessErrorKind.CROSS_TENANT_ACCESS)
            error = store_access_error(store)
            if error is not None:
                return AccessResult.fail(error)

        self._active_store = store
        self.storage.set_active_store(store)
        return AccessResult.ok(store)


def generate_token() -> str:
    """64 hex characters from the OS CSPRNG; handed to the client once."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """
    SHA-256 of a session token.

    The hash, never the token, names the session slots in storage. Tokens
    carry 256 bits of entropy, so a fast hash is enough.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def open_session(token: str, storage: Storage | None = None) -> Session:
    """
    The Session of one API client, restored and revalidated.

    Called on every authenticated request: the user record and its store are
    re-read from storage each time, so blocking or deleting a store takes
    effect on the owner's next request. An unknown token gives a logged-out
    Session.
    """
    storage = storage or get_storage()
    session = Session(storage.for_session(hash_token(token)))
    session.restore_session()
    return session
