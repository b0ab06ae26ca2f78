# Overview: Pytest coverage for the key-value store, record schemas and scoped collections.

import json

import pytest

from storedesk.extensions import db
from storedesk.models import Product, StorageDecodeError, StorageEntry, User
from storedesk.services.kv_store import KeyValueStore
from storedesk.services.storage_service import Storage


class TestKeyValueStore:

    def test_absent_key_returns_default(self, db_session):
        kv = KeyValueStore()
        assert kv.get("missing") is None
        assert kv.get("missing", []) == []

    def test_set_replaces_value(self, db_session):
        kv = KeyValueStore()
        kv.set("k", [1, 2])
        kv.set("k", {"a": 1})
        assert kv.get("k") == {"a": 1}
        assert kv.keys() == ["k"]

    def test_remove_is_idempotent(self, db_session):
        kv = KeyValueStore()
        kv.set("k", 1)
        kv.remove("k")
        kv.remove("k")
        assert kv.get("k") is None

    def test_invalid_json_raises(self, db_session):
        db.session.add(StorageEntry(key="broken", value="[{"))
        db.session.commit()
        with pytest.raises(StorageDecodeError):
            KeyValueStore().get("broken")


class TestStorageKeys:

    def test_default_prefix_matches_legacy_key_names(self, storage):
        assert storage.key_for("USERS") == "sales_app_users"
        assert storage.key_for("PRODUCTS") == "sales_app_products"
        assert storage.key_for("ACTIVE_STORE") == "sales_app_active_store"

    def test_prefixes_do_not_share_data(self, db_session, store_a, product_a):
        other = Storage(prefix="other_app")
        assert other.products.get_all() == []
        assert other.stores.get_all() == []


class TestRecordDecoding:
    """Persisted data uses camelCase names and fails loudly when malformed."""

    def test_product_persisted_in_camel_case(self, storage, product_a):
        raw = json.loads(db.session.get(StorageEntry, storage.key_for("PRODUCTS")).value)
        assert raw[0]["storeId"] == product_a.store_id
        assert raw[0]["createdAt"].endswith("Z")

    def test_missing_store_id_fails(self):
        with pytest.raises(StorageDecodeError) as exc:
            Product.from_storage({"id": "p1", "name": "x", "price": 1, "cost": 0, "stock": 0, "active": True})
        assert exc.value.collection == "products"

    def test_negative_stock_fails(self):
        data = {
            "id": "p1", "storeId": "s1", "name": "x", "price": 1, "cost": 0, "stock": -1,
            "active": True, "createdAt": "2024-01-01T00:00:00.000Z", "updatedAt": "2024-01-01T00:00:00.000Z",
        }
        with pytest.raises(StorageDecodeError):
            Product.from_storage(data)

    @pytest.mark.parametrize("field, value", [
        ("price", "449,90"),
        ("price", "449.90"),
        ("price", True),
        ("cost", None),
        ("stock", "3"),
        ("stock", 2.5),
    ])
    def test_stored_numbers_are_not_coerced(self, field, value):
        data = {
            "id": "p1", "storeId": "s1", "name": "x", "price": 449.9, "cost": 0, "stock": 3,
            "active": True, "createdAt": "2024-01-01T00:00:00.000Z", "updatedAt": "2024-01-01T00:00:00.000Z",
        }
        Product.from_storage(data)
        with pytest.raises(StorageDecodeError):
            Product.from_storage({**data, field: value})

    def test_super_admin_with_store_fails(self):
        data = {
            "id": "u1", "email": "a@b.c", "password": "", "name": "A",
            "role": "super_admin", "storeId": "s1", "createdAt": "2024-01-01T00:00:00.000Z",
        }
        with pytest.raises(StorageDecodeError):
            User.from_storage(data)

    def test_seller_without_store_fails(self):
        data = {
            "id": "u1", "email": "a@b.c", "password": "", "name": "A",
            "role": "seller", "createdAt": "2024-01-01T00:00:00.000Z",
        }
        with pytest.raises(StorageDecodeError):
            User.from_storage(data)

    def test_collection_that_is_not_a_list_fails(self, storage):
        storage.kv.set(storage.key_for("SALES"), {"oops": True})
        with pytest.raises(StorageDecodeError):
            storage.sales.get_all()

    def test_user_round_trip_keeps_role_binding(self, storage, owner_a, store_a):
        user = storage.users.get_by_id(owner_a.id)
        assert user.store_id == store_a.id
        assert user.role_name.value == "store_owner"
        assert "password" not in user.to_dict()


class TestScopedCollections:

    def test_get_all_by_store_filters(self, storage, store_a, store_b, product_a, product_b):
        assert [p.id for p in storage.products.get_all_by_store(store_a.id)] == [product_a.id]
        assert [p.id for p in storage.products.get_all_by_store(store_b.id)] == [product_b.id]
        assert len(storage.products.get_all()) == 2

    def test_get_all_by_store_is_idempotent(self, storage, store_a, product_a):
        first = storage.products.get_all_by_store(store_a.id)
        second = storage.products.get_all_by_store(store_a.id)
        assert first == second

    def test_get_by_id_in_store_hides_foreign_record(self, storage, store_a, product_b):
        assert storage.products.get_by_id_in_store(product_b.id, store_a.id) is None
        assert storage.products.get_by_id(product_b.id) is not None

    def test_scoped_read_filters_for_super_admin_too(self, storage, store_a, product_a, product_b):
        """An admin without an active store reading one store only gets that store."""
        products = storage.products.get_all_by_store(store_a.id)
        assert all(p.store_id == store_a.id for p in products)

    def test_users_by_email_case_insensitive(self, storage, owner_a):
        assert storage.users.get_by_email("OWNER_A@StoreA.com").id == owner_a.id

    def test_users_by_store(self, storage, store_a, owner_a, seller_a):
        ids = {u.id for u in storage.users.get_all_by_store(store_a.id)}
        assert ids == {owner_a.id, seller_a.id}
