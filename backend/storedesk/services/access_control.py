# Overview: Tenant resolver and access-control guards for store-scoped records.

"""
Multi-Tenant Access Control

WHY: Single authority deciding whether a {user, active store, record} triple
permits a read, write or delete. Tenant isolation is enforced at the write
boundary: the key-value store performs no filtering, so every mutation of a
tenant-scoped collection must pass enforce_store_id before it is persisted.

SECURITY INVARIANTS:
1. A missing user never passes any check
2. super_admin is exempt from store matching
3. Every other role only reaches records whose store_id equals the active
   store id
4. Failures are returned as AccessResult values, never raised
5. Cross-tenant attempts are logged

USAGE:
    from storedesk.services.access_control import enforce_store_id, require_access

    result = enforce_store_id(product, ctx)
    product = require_access(result)   # raises TenantAccessError if denied
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Iterable, TypeVar

from ..models import RoleName, Store, User

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AccessErrorKind(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    NO_ACTIVE_STORE = "no_active_store"
    INVALID_CONTEXT = "invalid_context"
    CROSS_TENANT_ACCESS = "cross_tenant_access"
    CROSS_TENANT_WRITE = "cross_tenant_write"
    FORBIDDEN_ROLE = "forbidden_role"
    MISSING_CREDENTIALS = "missing_credentials"
    INVALID_CREDENTIALS = "invalid_credentials"
    STORE_NOT_FOUND = "store_not_found"
    STORE_BLOCKED = "store_blocked"
    STORE_EXPIRED = "store_expired"

    @property
    def message(self) -> str:
        return ERROR_MESSAGES[self]


ERROR_MESSAGES = {
    AccessErrorKind.UNAUTHENTICATED: "User not authenticated",
    AccessErrorKind.NO_ACTIVE_STORE: "No active store selected",
    AccessErrorKind.INVALID_CONTEXT: "Invalid authentication context",
    AccessErrorKind.CROSS_TENANT_ACCESS: "Access denied: you are not allowed to access data of this store",
    AccessErrorKind.CROSS_TENANT_WRITE: "Access denied: you can only create or modify data of your own store",
    AccessErrorKind.FORBIDDEN_ROLE: "Access denied: your role does not allow this operation",
    AccessErrorKind.MISSING_CREDENTIALS: "Email and password are required",
    AccessErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    AccessErrorKind.STORE_NOT_FOUND: "Store not found",
    AccessErrorKind.STORE_BLOCKED: "This store is blocked. Contact the administrator.",
    AccessErrorKind.STORE_EXPIRED: "Access to this store has expired. Contact the administrator.",
}


@dataclass(frozen=True)
class AccessContext:
    """
    Snapshot of who is acting and against which tenant.

    Built by the session (Session.context()) and passed explicitly into every
    access-control and service call.
    """
    user: User | None
    active_store: Store | None

    @property
    def active_store_id(self) -> str | None:
        return self.active_store.id if self.active_store else None


@dataclass(frozen=True)
class AccessResult(Generic[T]):
    valid: bool
    error: AccessErrorKind | None = None
    data: T | None = None

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None

    @classmethod
    def ok(cls, data: T | None = None) -> "AccessResult[T]":
        return cls(valid=True, data=data)

    @classmethod
    def fail(cls, error: AccessErrorKind) -> "AccessResult[T]":
        return cls(valid=False, error=error)

    def to_dict(self) -> dict:
        return {"valid": self.valid, "error": self.error.value if self.error else None, "message": self.message}


class TenantAccessError(Exception):
    """Raised by the service layer when an access check fails."""

    def __init__(self, kind: AccessErrorKind, message: str | None = None):
        self.kind = kind
        super().__init__(message or kind.message)


def require_access(result: AccessResult[T]) -> T | None:
    """Unwrap a result, raising TenantAccessError if it is not valid."""
    if not result.valid:
        raise TenantAccessError(result.error)
    return result.data


def is_admin(user: User | None) -> bool:
    if user is None:
        return False
    return user.is_super_admin


def can_access_store(user: User | None, store_id: str) -> bool:
    """super_admin reaches every store; other roles only their bound store."""
    if user is None:
        return False
    if user.is_super_admin:
        return True
    return user.store_id == store_id


def validate_store_access(record_store_id: str, ctx: AccessContext) -> AccessResult:
    """
    Validate that a record's store matches the active store.

    Check order: authentication, then active store, then the super_admin
    exemption, then the store match.
    """
    if ctx.user is None:
        return AccessResult.fail(AccessErrorKind.UNAUTHENTICATED)

    if ctx.active_store is None:
        return AccessResult.fail(AccessErrorKind.NO_ACTIVE_STORE)

    if ctx.user.is_super_admin:
        return AccessResult.ok()

    if record_store_id != ctx.active_store.id:
        _log_cross_tenant_attempt("read", ctx, record_store_id)
        return AccessResult.fail(AccessErrorKind.CROSS_TENANT_ACCESS)

    return AccessResult.ok()


def enforce_store_id(record: T, ctx: AccessContext) -> AccessResult[T]:
    """
    Ensure a record about to be created/updated carries the right store_id.

    - No user -> INVALID_CONTEXT
    - super_admin: any store_id is accepted and the record is returned
      unchanged. Without an active store the record must name its target
      store explicitly, otherwise INVALID_CONTEXT.
    - Other roles: requires an active store, and record.store_id must equal
      it, otherwise CROSS_TENANT_WRITE.

    Callers acting for non-admin users set record.store_id from the active
    store before calling, so a valid result never carries a foreign store.
    """
    user = ctx.user
    store_id = getattr(record, "store_id", None)

    if user is None:
        return AccessResult.fail(AccessErrorKind.INVALID_CONTEXT)

    if user.is_super_admin:
        if ctx.active_store is None and not store_id:
            return AccessResult.fail(AccessErrorKind.INVALID_CONTEXT)
        return AccessResult.ok(record)

    if ctx.active_store is None:
        return AccessResult.fail(AccessErrorKind.INVALID_CONTEXT)

    if store_id != ctx.active_store.id:
        _log_cross_tenant_attempt("write", ctx, store_id)
        return AccessResult.fail(AccessErrorKind.CROSS_TENANT_WRITE)

    return AccessResult.ok(record)


def can_modify_record(record_store_id: str, ctx: AccessContext) -> bool:
    return validate_store_access(record_store_id, ctx).valid


def can_delete_record(record_store_id: str, ctx: AccessContext) -> bool:
    # Same rule as modify; there is no delete-specific policy
    return can_modify_record(record_store_id, ctx)


def has_role(user: User | None, roles: Iterable[RoleName | str]) -> bool:
    if user is None:
        return False
    # Plain membership: unknown role names simply never match
    allowed = {r.value if isinstance(r, RoleName) else str(r) for r in roles}
    return user.role_name.value in allowed


def resolve_read_store_id(ctx: AccessContext, requested: str | None = None) -> AccessResult[str]:
    """
    Store id a scoped read should filter on.

    super_admin may name any store (falls back to the active store); other
    roles always read their active store and naming another one is denied.
    """
    if ctx.user is None:
        return AccessResult.fail(AccessErrorKind.UNAUTHENTICATED)

    if ctx.user.is_super_admin:
        store_id = requested or ctx.active_store_id
        if not store_id:
            return AccessResult.fail(AccessErrorKind.NO_ACTIVE_STORE)
        return AccessResult.ok(store_id)

    if ctx.active_store is None:
        return AccessResult.fail(AccessErrorKind.NO_ACTIVE_STORE)

    if requested and requested != ctx.active_store.id:
        _log_cross_tenant_attempt("read", ctx, requested)
        return AccessResult.fail(AccessErrorKind.CROSS_TENANT_ACCESS)

    return AccessResult.ok(ctx.active_store.id)


def resolve_write_store_id(ctx: AccessContext, requested: str | None = None) -> str | None:
    """Store id a new record is bound to before enforce_store_id checks it."""
    return requested or ctx.active_store_id


def _log_cross_tenant_attempt(action: str, ctx: AccessContext, attempted_store_id: Any) -> None:
    logger.warning(
        "Cross-tenant %s denied: user=%s active_store=%s attempted_store=%s",
        action,
        ctx.user.id if ctx.user else None,
        ctx.active_store_id,
        attempted_store_id,
    )
