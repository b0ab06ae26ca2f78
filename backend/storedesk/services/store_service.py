from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timedelta

from ..models import RoleName, Store, StoreOwner, User, new_id
from ..validation import (
    BOOLEAN,
    DATETIME,
    ConflictError,
    Field,
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    validate_payload,
)
from .access_control import AccessContext, AccessErrorKind, TenantAccessError
from .auth_service import PasswordValidationError, hash_password
from .storage_service import Storage
from storedesk.time_utils import utcnow

logger = logging.getLogger(__name__)

EXPIRING_SOON_DAYS = 7

STORE_POLICY = ModelValidationPolicy(
    fields={
        "name": Field(nullable=False, max_length=120),
        "email": Field(nullable=False, max_length=255),
        "phone": Field(max_length=50),
        "address": Field(max_length=255),
        "is_active": Field(BOOLEAN, nullable=False),
        "expires_at": Field(DATETIME),
    },
    required_on_create=frozenset({"name", "email"}),
)

OWNER_POLICY = ModelValidationPolicy(
    fields={
        "name": Field(nullable=False, max_length=120),
        "email": Field(nullable=False, max_length=255),
        "password": Field(nullable=False),
    },
    required_on_create=frozenset({"name", "email", "password"}),
)


def require_super_admin(ctx: AccessContext) -> None:
    if ctx.user is None:
        raise TenantAccessError(AccessErrorKind.UNAUTHENTICATED)
    if not ctx.user.is_super_admin:
        logger.warning("User %s attempted a store administration action", ctx.user.id)
        raise TenantAccessError(AccessErrorKind.FORBIDDEN_ROLE)


def list_stores(storage: Storage, ctx: AccessContext) -> list[Store]:
    require_super_admin(ctx)
    return sorted(storage.stores.get_all(), key=lambda s: s.name.lower())


def get_store(storage: Storage, ctx: AccessContext, store_id: str) -> Store:
    require_super_admin(ctx)
    store = storage.stores.get_by_id(store_id)
    if store is None:
        raise NotFoundError("Store not found")
    return store


def get_store_owner(storage: Storage, store_id: str) -> User | None:
    return next(
        (u for u in storage.users.get_all_by_store(store_id) if u.role_name is RoleName.store_owner),
        None,
    )


def create_store(storage: Storage, ctx: AccessContext, payload: dict, owner: dict) -> tuple[Store, User]:
    """
    Create a store together with exactly one store_owner bound to it.

    The owner email must be unique across all users (and differ from the
    super_admin login). Nothing is written unless both records validate.
    """
    require_super_admin(ctx)

    data = validate_payload(payload=payload, policy=STORE_POLICY, partial=False)
    owner_data = validate_payload(payload=owner, policy=OWNER_POLICY, partial=False)

    owner_email = owner_data["email"].lower()
    if storage.users.get_by_email(owner_email) is not None:
        raise ConflictError("A user with this email already exists")
    if ctx.user.email.lower() == owner_email:
        raise ConflictError("A user with this email already exists")

    try:
        password_hash = hash_password(owner_data["password"])
    except PasswordValidationError as exc:
        raise ValidationError(str(exc))

    now = utcnow()
    store = Store(
        id=new_id(),
        name=data["name"],
        email=data["email"],
        phone=data.get("phone") or None,
        address=data.get("address") or None,
        is_active=data.get("is_active", True),
        expires_at=data.get("expires_at"),
        created_at=now,
        updated_at=now,
    )
    owner_user = User(
        id=new_id(),
        email=owner_email,
        password=password_hash,
        name=owner_data["name"],
        role=StoreOwner(store.id),
        created_at=now,
    )

    storage.stores.set_all([*storage.stores.get_all(), store])
    storage.users.set_all([*storage.users.get_all(), owner_user])

    logger.info("Created store %s (%s) with owner %s", store.id, store.name, owner_user.id)
    return store, owner_user


def update_store(storage: Storage, ctx: AccessContext, store_id: str, payload: dict) -> Store:
    """Edit store fields. Never creates or touches users."""
    require_super_admin(ctx)

    data = validate_payload(payload=payload, policy=STORE_POLICY, partial=True)

    stores = storage.stores.get_all()
    current = next((s for s in stores if s.id == store_id), None)
    if current is None:
        raise NotFoundError("Store not found")

    for key in ("phone", "address"):
        if key in data and data[key] == "":
            data[key] = None

    updated = replace(current, **data, updated_at=utcnow())
    storage.stores.set_all([updated if s.id == store_id else s for s in stores])

    logger.info("Updated store %s", store_id)
    return updated


def set_store_active(storage: Storage, ctx: AccessContext, store_id: str, active: bool) -> Store:
    """Block (active=False) or unblock a store."""
    store = update_store(storage, ctx, store_id, {"is_active": active})
    logger.info("Store %s %s", store_id, "unblocked" if active else "blocked")
    return store


def extend_store_access(storage: Storage, ctx: AccessContext, store_id: str, days: int) -> Store:
    """
    Push the expiration date `days` days forward.

    Counts from the current expiration, or from now if the store has no
    expiration or has already expired.
    """
    if days <= 0:
        raise ValidationError("days must be > 0")
    store = get_store(storage, ctx, store_id)
    now = utcnow()
    base = store.expires_at if store.expires_at and store.expires_at > now else now
    return update_store(storage, ctx, store_id, {"expires_at": base + timedelta(days=days)})


def delete_store(storage: Storage, ctx: AccessContext, store_id: str) -> int:
    """
    Delete a store and every user bound to it.

    Products, customers and sales of the store are retained; no scoped read
    reaches them afterwards. Returns the number of users removed.
    """
    require_super_admin(ctx)

    stores = storage.stores.get_all()
    if not any(s.id == store_id for s in stores):
        raise NotFoundError("Store not found")

    storage.stores.set_all([s for s in stores if s.id != store_id])

    users = storage.users.get_all()
    remaining = [u for u in users if u.store_id != store_id]
    storage.users.set_all(remaining)

    removed = len(users) - len(remaining)
    logger.info("Deleted store %s and %d bound user(s)", store_id, removed)
    return removed


# =============================================================================
# EXPIRATION
# =============================================================================


def days_until_expiration(store: Store, now: datetime | None = None) -> int | None:
    """Whole days left (rounded up); None when the store never expires."""
    if store.expires_at is None:
        return None
    now = now or utcnow()
    return math.ceil((store.expires_at - now).total_seconds() / 86400)


def expiration_status(store: Store, now: datetime | None = None) -> dict:
    """
    One of unlimited / expired / expiring_soon / active, plus a message.

    "expired" follows the same rule as Store.is_accessible, so a store is
    reported expired exactly when it can no longer be logged into for that
    reason.
    """
    now = now or utcnow()
    days = days_until_expiration(store, now)

    if days is None:
        return {"status": "unlimited", "message": "No expiration date", "days": None}

    if store.is_expired(now):
        return {"status": "expired", "message": "Expired", "days": days}

    if days <= EXPIRING_SOON_DAYS:
        plural = "s" if days != 1 else ""
        return {"status": "expiring_soon", "message": f"Expires in {days} day{plural}", "days": days}

    return {"status": "active", "message": f"Expires in {days} days", "days": days}
