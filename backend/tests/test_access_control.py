# Overview: Pytest coverage for the access-control guards.

"""
Access Control Tests

The guards are pure functions over {user, active store, record}; these tests
build users and stores in memory and need no database.
"""

import pytest
from datetime import timedelta

from storedesk.models import Manager, Product, RoleName, Seller, Store, StoreOwner, SuperAdmin, User, make_role
from storedesk.services.access_control import (
    AccessContext,
    AccessErrorKind,
    AccessResult,
    TenantAccessError,
    can_access_store,
    can_delete_record,
    can_modify_record,
    enforce_store_id,
    has_role,
    is_admin,
    require_access,
    resolve_read_store_id,
    resolve_write_store_id,
    validate_store_access,
)
from storedesk.time_utils import utcnow
from storedesk.validation import ValidationError


def _store(store_id, **kwargs):
    return Store(id=store_id, name=f"Store {store_id}", email=f"{store_id}@example.com", **kwargs)


def _user(role, user_id="u1"):
    return User(id=user_id, email=f"{user_id}@example.com", password="", name=user_id, role=role)


def _product(store_id):
    return Product(id="p1", store_id=store_id, name="Mouse", price=10.0)


ADMIN = _user(SuperAdmin(), "admin")
OWNER_S1 = _user(StoreOwner("s1"), "owner1")
SELLER_S1 = _user(Seller("s1"), "seller1")
S1 = _store("s1")
S2 = _store("s2")


class TestRoles:
    """The role variant binds every non-admin role to exactly one store."""

    def test_make_role_super_admin(self):
        assert make_role("super_admin") == SuperAdmin()

    def test_make_role_store_bound(self):
        assert make_role("manager", "s1") == Manager("s1")

    def test_super_admin_cannot_have_store(self):
        with pytest.raises(ValidationError):
            make_role("super_admin", "s1")

    def test_store_role_requires_store(self):
        with pytest.raises(ValidationError):
            make_role("seller", None)

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            make_role("cashier", "s1")


class TestBasicChecks:

    def test_is_admin(self):
        assert is_admin(ADMIN)
        assert not is_admin(OWNER_S1)
        assert not is_admin(None)

    def test_can_access_store(self):
        assert can_access_store(ADMIN, "anything")
        assert can_access_store(OWNER_S1, "s1")
        assert not can_access_store(OWNER_S1, "s2")
        assert not can_access_store(None, "s1")

    def test_has_role(self):
        assert has_role(SELLER_S1, ["seller", "manager"])
        assert not has_role(SELLER_S1, ["store_owner"])
        assert not has_role(None, ["seller"])

    def test_has_role_unknown_name_is_not_a_match(self):
        assert not has_role(SELLER_S1, ["cashier"])
        assert has_role(SELLER_S1, ["cashier", RoleName.seller])


class TestValidateStoreAccess:
    """Check order: authentication, active store, admin exemption, store match."""

    def test_unauthenticated(self):
        result = validate_store_access("s1", AccessContext(None, S1))
        assert not result.valid
        assert result.error is AccessErrorKind.UNAUTHENTICATED

    def test_no_active_store(self):
        result = validate_store_access("s1", AccessContext(OWNER_S1, None))
        assert result.error is AccessErrorKind.NO_ACTIVE_STORE

    def test_same_store_valid(self):
        assert validate_store_access("s1", AccessContext(OWNER_S1, S1)).valid

    def test_foreign_store_denied(self):
        result = validate_store_access("s2", AccessContext(OWNER_S1, S1))
        assert result.error is AccessErrorKind.CROSS_TENANT_ACCESS
        assert "not allowed" in result.message

    def test_super_admin_always_valid_with_store(self):
        assert validate_store_access("s2", AccessContext(ADMIN, S1)).valid

    def test_cross_tenant_attempt_logged(self, caplog):
        with caplog.at_level("WARNING"):
            validate_store_access("s2", AccessContext(OWNER_S1, S1))
        assert "Cross-tenant read denied" in caplog.text

    def test_modify_and_delete_follow_access(self):
        ctx = AccessContext(OWNER_S1, S1)
        assert can_modify_record("s1", ctx)
        assert can_delete_record("s1", ctx)
        assert not can_modify_record("s2", ctx)
        assert not can_delete_record("s2", ctx)


class TestEnforceStoreId:

    def test_no_user_is_invalid_context(self):
        result = enforce_store_id(_product("s1"), AccessContext(None, S1))
        assert result.error is AccessErrorKind.INVALID_CONTEXT

    def test_non_admin_without_store_is_invalid_context(self):
        result = enforce_store_id(_product("s1"), AccessContext(OWNER_S1, None))
        assert result.error is AccessErrorKind.INVALID_CONTEXT

    def test_owner_writes_own_store(self):
        product = _product("s1")
        result = enforce_store_id(product, AccessContext(OWNER_S1, S1))
        assert result.valid
        assert result.data is product

    def test_owner_cannot_write_foreign_store(self):
        """Owner bound to s1 saving a product of s2 while s1 is active."""
        result = enforce_store_id(_product("s2"), AccessContext(OWNER_S1, S1))
        assert not result.valid
        assert result.error is AccessErrorKind.CROSS_TENANT_WRITE

    def test_super_admin_record_unchanged(self):
        product = _product("s2")
        result = enforce_store_id(product, AccessContext(ADMIN, S1))
        assert result.valid
        assert result.data.store_id == "s2"

    def test_super_admin_without_store_needs_explicit_store_id(self):
        assert enforce_store_id(_product("s2"), AccessContext(ADMIN, None)).valid
        result = enforce_store_id(_product(""), AccessContext(ADMIN, None))
        assert result.error is AccessErrorKind.INVALID_CONTEXT


class TestResolveStoreId:

    def test_non_admin_reads_active_store(self):
        assert resolve_read_store_id(AccessContext(OWNER_S1, S1)).data == "s1"

    def test_non_admin_naming_foreign_store_denied(self):
        result = resolve_read_store_id(AccessContext(OWNER_S1, S1), "s2")
        assert result.error is AccessErrorKind.CROSS_TENANT_ACCESS

    def test_super_admin_may_name_store(self):
        assert resolve_read_store_id(AccessContext(ADMIN, None), "s2").data == "s2"

    def test_super_admin_without_any_store(self):
        result = resolve_read_store_id(AccessContext(ADMIN, None))
        assert result.error is AccessErrorKind.NO_ACTIVE_STORE

    def test_write_store_defaults_to_active(self):
        assert resolve_write_store_id(AccessContext(OWNER_S1, S1)) == "s1"
        assert resolve_write_store_id(AccessContext(OWNER_S1, S1), "s2") == "s2"


class TestRequireAccess:

    def test_valid_result_unwrapped(self):
        assert require_access(AccessResult.ok("data")) == "data"

    def test_invalid_result_raises_with_kind(self):
        with pytest.raises(TenantAccessError) as exc:
            require_access(AccessResult.fail(AccessErrorKind.CROSS_TENANT_WRITE))
        assert exc.value.kind is AccessErrorKind.CROSS_TENANT_WRITE

    def test_result_to_dict(self):
        payload = AccessResult.fail(AccessErrorKind.NO_ACTIVE_STORE).to_dict()
        assert payload == {
            "valid": False,
            "error": "no_active_store",
            "message": "No active store selected",
        }


class TestStoreAccessibility:

    def test_expired_store_not_accessible(self):
        """Active store whose expiration was yesterday."""
        store = _store("s1", is_active=True, expires_at=utcnow() - timedelta(days=1))
        assert not store.is_accessible()
        assert store.is_expired()

    def test_blocked_store_not_accessible(self):
        store = _store("s1", is_active=False, expires_at=None)
        assert not store.is_accessible()

    def test_unlimited_active_store_accessible(self):
        assert _store("s1").is_accessible()

    def test_future_expiration_accessible(self):
        store = _store("s1", expires_at=utcnow() + timedelta(days=3))
        assert store.is_accessible()
