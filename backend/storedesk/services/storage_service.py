# Overview: Tenant-scoped storage contract over the key-value store.

"""
Tenant-Scoped Storage Contract

Collection-level operations used by the services and routes. Each collection
is one key in the key-value store holding a JSON array.

Two families of reads:
- Unscoped: get_all / get_by_id. Used by super_admin views and by the
  write path, which always replaces the whole collection via set_all.
- Scoped: get_all_by_store / get_by_id_in_store. Filter by store_id
  equality; a record of another store is reported as absent, never as an
  error.

MULTI-TENANT: this layer does not know the current user. Callers obtain the
store id from the session (ctx.active_store.id) and every write must pass
through access_control.enforce_store_id first.

USAGE:
    storage = get_storage()
    products = storage.products.get_all_by_store(ctx.active_store.id)
"""

from __future__ import annotations

from typing import Callable, Generic, Iterable, TypeVar

from flask import current_app

from ..models import Customer, Product, Sale, Store, StorageDecodeError, User
from .kv_store import KeyValueStore


STORAGE_KEYS = {
    "USER": "user",
    "PRODUCTS": "products",
    "CUSTOMERS": "customers",
    "SALES": "sales",
    "STORES": "stores",
    "ACTIVE_STORE": "active_store",
    "USERS": "users",
}

T = TypeVar("T")


class Collection(Generic[T]):
    """Whole-collection reads and writes for one storage key."""

    def __init__(self, kv: KeyValueStore, key: str, decode: Callable[[object], T]):
        self.kv = kv
        self.key = key
        self._decode = decode

    def get_all(self) -> list[T]:
        raw = self.kv.get(self.key, [])
        if not isinstance(raw, list):
            raise StorageDecodeError(self.key, "expected a JSON array")
        return [self._decode(item) for item in raw]

    def set_all(self, records: Iterable[T]) -> None:
        self.kv.set(self.key, [record.to_storage() for record in records])

    def get_by_id(self, record_id: str) -> T | None:
        return next((r for r in self.get_all() if r.id == record_id), None)


class ScopedCollection(Collection[T]):
    """A collection whose records carry a store_id."""

    def get_all_by_store(self, store_id: str) -> list[T]:
        return [r for r in self.get_all() if r.store_id == store_id]

    def get_by_id_in_store(self, record_id: str, store_id: str) -> T | None:
        return next(
            (r for r in self.get_all() if r.id == record_id and r.store_id == store_id),
            None,
        )


class UserCollection(ScopedCollection[User]):
    def get_by_email(self, email: str) -> User | None:
        email = (email or "").strip().lower()
        return next((u for u in self.get_all() if u.email.lower() == email), None)


class Storage:
    """
    All persisted collections plus the two session slots.

    Built around a KeyValueStore and a key prefix so that two storage
    origins (e.g. two test apps) never share keys. The session slots are
    further keyed by session_id when one is given: every API client gets its
    own "user" and "active_store" slots, while the collections are shared.
    """

    def __init__(self, kv: KeyValueStore | None = None, prefix: str = "sales_app", session_id: str | None = None):
        self.kv = kv or KeyValueStore()
        self.prefix = prefix
        self.session_id = session_id

        self.users = UserCollection(self.kv, self.key_for("USERS"), User.from_storage)
        self.stores: Collection[Store] = Collection(self.kv, self.key_for("STORES"), Store.from_storage)
        self.products: ScopedCollection[Product] = ScopedCollection(
            self.kv, self.key_for("PRODUCTS"), Product.from_storage
        )
        self.customers: ScopedCollection[Customer] = ScopedCollection(
            self.kv, self.key_for("CUSTOMERS"), Customer.from_storage
        )
        self.sales: ScopedCollection[Sale] = ScopedCollection(
            self.kv, self.key_for("SALES"), Sale.from_storage
        )

    def key_for(self, name: str) -> str:
        return f"{self.prefix}_{STORAGE_KEYS[name]}"

    def slot_key(self, name: str) -> str:
        key = self.key_for(name)
        return f"{key}_{self.session_id}" if self.session_id else key

    def for_session(self, session_id: str) -> "Storage":
        """Same collections, session slots of one client."""
        return Storage(self.kv, self.prefix, session_id)

    # -------------------------------------------------------------------------
    # Session slots
    # -------------------------------------------------------------------------

    def get_session_user(self) -> User | None:
        raw = self.kv.get(self.slot_key("USER"))
        return User.from_storage(raw) if raw is not None else None

    def set_session_user(self, user: User) -> None:
        self.kv.set(self.slot_key("USER"), user.to_storage())

    def clear_session_user(self) -> None:
        self.kv.remove(self.slot_key("USER"))

    def get_active_store(self) -> Store | None:
        raw = self.kv.get(self.slot_key("ACTIVE_STORE"))
        return Store.from_storage(raw) if raw is not None else None

    def set_active_store(self, store: Store) -> None:
        self.kv.set(self.slot_key("ACTIVE_STORE"), store.to_storage())

    def clear_active_store(self) -> None:
        self.kv.remove(self.slot_key("ACTIVE_STORE"))


def get_storage() -> Storage:
    """Storage bound to the current app's key prefix."""
    return Storage(prefix=current_app.config.get("STORAGE_KEY_PREFIX", "sales_app"))
