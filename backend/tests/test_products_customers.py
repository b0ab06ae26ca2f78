# Overview: Pytest coverage for tenant isolation of product and customer services.

"""
Multi-Tenant Isolation Tests for Products and Customers

SECURITY TESTS: Prove that store-bound users only ever read and write records
of their active store:
1. Scoped reads never return another store's records
2. A foreign record id is reported as not found on reads and denied on writes
3. A foreign store_id in a create payload is rejected, never silently kept
4. super_admin may work on any store it names
"""

import pytest

from storedesk.services import customer_service, products_service
from storedesk.services.access_control import AccessContext, AccessErrorKind, TenantAccessError
from storedesk.validation import NotFoundError, ValidationError


class TestProductReads:

    def test_list_only_own_store(self, storage, ctx_a, product_a, product_b):
        products = products_service.list_products(storage, ctx_a)
        assert [p.id for p in products] == [product_a.id]

    def test_get_foreign_product_not_found(self, storage, ctx_a, product_b):
        with pytest.raises(NotFoundError):
            products_service.get_product(storage, ctx_a, product_b.id)

    def test_search_and_category(self, storage, ctx_a, product_a):
        products_service.create_product(storage, ctx_a, {"name": "Monitor LG", "price": 1299.9, "category": "Monitores"})
        assert [p.sku for p in products_service.list_products(storage, ctx_a, search="ms-log")] == ["MS-LOG-001"]
        assert [p.name for p in products_service.list_products(storage, ctx_a, category="Monitores")] == ["Monitor LG"]
        assert products_service.list_categories(storage, ctx_a) == ["Monitores", "Periféricos"]

    def test_active_only(self, storage, ctx_a, product_a):
        products_service.update_product(storage, ctx_a, product_a.id, {"active": False})
        assert products_service.list_products(storage, ctx_a, active_only=True) == []

    def test_naming_foreign_store_denied(self, storage, ctx_a, store_b):
        with pytest.raises(TenantAccessError) as exc:
            products_service.list_products(storage, ctx_a, store_id=store_b.id)
        assert exc.value.kind is AccessErrorKind.CROSS_TENANT_ACCESS

    def test_no_active_store(self, storage, owner_a, product_a):
        with pytest.raises(TenantAccessError) as exc:
            products_service.list_products(storage, AccessContext(owner_a, None))
        assert exc.value.kind is AccessErrorKind.NO_ACTIVE_STORE


class TestProductWrites:

    def test_create_binds_active_store(self, storage, ctx_a, store_a):
        product = products_service.create_product(storage, ctx_a, {"name": "Cabo HDMI", "price": 29.9})
        assert product.store_id == store_a.id
        assert product.stock == 0
        assert product.active is True

    def test_create_with_foreign_store_id_rejected(self, storage, ctx_a, store_b):
        with pytest.raises(TenantAccessError) as exc:
            products_service.create_product(storage, ctx_a, {"name": "X", "price": 1, "store_id": store_b.id})
        assert exc.value.kind is AccessErrorKind.CROSS_TENANT_WRITE
        assert storage.products.get_all_by_store(store_b.id) == []

    def test_update_foreign_product_denied(self, storage, ctx_a, product_b):
        with pytest.raises(TenantAccessError) as exc:
            products_service.update_product(storage, ctx_a, product_b.id, {"price": 1})
        assert exc.value.kind is AccessErrorKind.CROSS_TENANT_ACCESS
        assert storage.products.get_by_id(product_b.id).price == product_b.price

    def test_move_product_to_foreign_store_denied(self, storage, ctx_a, product_a, store_b):
        with pytest.raises(TenantAccessError) as exc:
            products_service.update_product(storage, ctx_a, product_a.id, {"store_id": store_b.id})
        assert exc.value.kind is AccessErrorKind.CROSS_TENANT_WRITE

    def test_delete_foreign_product_denied(self, storage, ctx_a, product_b):
        with pytest.raises(TenantAccessError):
            products_service.delete_product(storage, ctx_a, product_b.id)
        assert storage.products.get_by_id(product_b.id) is not None

    def test_update_and_delete_own(self, storage, ctx_a, product_a):
        updated = products_service.update_product(storage, ctx_a, product_a.id, {"price": "499,90", "stock": 3})
        assert updated.price == 499.9
        assert updated.stock == 3
        products_service.delete_product(storage, ctx_a, product_a.id)
        assert storage.products.get_all() == []

    @pytest.mark.parametrize("payload", [
        {"name": "X", "price": -1},
        {"name": "X", "price": 1, "stock": -2},
        {"name": "X", "price": 1, "stock": 1.5},
        {"name": "", "price": 1},
        {"price": 1},
        {"name": "X", "price": 1, "id": "chosen"},
    ])
    def test_invalid_payloads(self, storage, ctx_a, payload):
        with pytest.raises(ValidationError):
            products_service.create_product(storage, ctx_a, payload)

    def test_super_admin_creates_in_named_store(self, storage, admin_ctx, store_b):
        product = products_service.create_product(storage, admin_ctx, {"name": "X", "price": 1, "store_id": store_b.id})
        assert product.store_id == store_b.id

    def test_super_admin_without_store_must_name_one(self, storage, admin_ctx):
        with pytest.raises(TenantAccessError) as exc:
            products_service.create_product(storage, admin_ctx, {"name": "X", "price": 1})
        assert exc.value.kind is AccessErrorKind.INVALID_CONTEXT


class TestCustomers:

    @pytest.fixture
    def customer_b(self, storage, ctx_b):
        return customer_service.create_customer(storage, ctx_b, {"name": "Maria Santos", "email": "maria@x.com"})

    def test_create_and_search(self, storage, ctx_a, store_a):
        created = customer_service.create_customer(storage, ctx_a, {
            "name": "João Silva",
            "phone": "(11) 98765-4321",
            "email": "",
        })
        assert created.store_id == store_a.id
        assert created.email is None
        found = customer_service.list_customers(storage, ctx_a, search="98765")
        assert [c.id for c in found] == [created.id]

    def test_list_excludes_other_store(self, storage, ctx_a, customer_b):
        assert customer_service.list_customers(storage, ctx_a) == []

    def test_get_foreign_customer_not_found(self, storage, ctx_a, customer_b):
        with pytest.raises(NotFoundError):
            customer_service.get_customer(storage, ctx_a, customer_b.id)

    def test_update_foreign_customer_denied(self, storage, ctx_a, customer_b):
        with pytest.raises(TenantAccessError):
            customer_service.update_customer(storage, ctx_a, customer_b.id, {"name": "Hijacked"})
        assert storage.customers.get_by_id(customer_b.id).name == "Maria Santos"

    def test_delete_own_customer(self, storage, ctx_b, customer_b):
        customer_service.delete_customer(storage, ctx_b, customer_b.id)
        assert storage.customers.get_all() == []

    def test_name_required(self, storage, ctx_a):
        with pytest.raises(ValidationError):
            customer_service.create_customer(storage, ctx_a, {"email": "a@b.com"})
