"""
Record schemas for the persisted collections.

Every collection in the key-value storage is a JSON array of objects using the
camelCase field names of the browser data format. Each schema here owns the
round trip for one collection:

- ``from_storage(data)`` decodes one persisted object and raises
  ``StorageDecodeError`` on anything malformed (missing field, wrong type,
  impossible role binding). Nothing is silently defaulted except optional
  fields.
- ``to_storage()`` produces the persisted object.
- ``to_dict()`` produces the snake_case API representation.

ROLES: the user role is a closed variant. ``SuperAdmin`` has no store;
``StoreOwner``, ``Manager`` and ``Seller`` always carry a store id. A user
can therefore never be bound to a store and be a super admin at once.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Union

from storedesk.time_utils import to_utc_z, utcnow
from storedesk.validation import ValidationError, coerce_datetime


class StorageDecodeError(ValueError):
    """Persisted data does not match its collection schema."""

    def __init__(self, collection: str, detail: str):
        self.collection = collection
        self.detail = detail
        super().__init__(f"Malformed {collection} data: {detail}")


def new_id() -> str:
    return uuid.uuid4().hex


# =============================================================================
# ROLES
# =============================================================================


class RoleName(str, Enum):
    super_admin = "super_admin"
    store_owner = "store_owner"
    manager = "manager"
    seller = "seller"


@dataclass(frozen=True)
class SuperAdmin:
    role_name: ClassVar[RoleName] = RoleName.super_admin
    store_id: ClassVar[None] = None


@dataclass(frozen=True)
class _StoreBoundRole:
    store_id: str

    def __post_init__(self):
        if not isinstance(self.store_id, str) or not self.store_id:
            raise ValidationError(f"{self.role_name.value} requires a store id")


@dataclass(frozen=True)
class StoreOwner(_StoreBoundRole):
    role_name: ClassVar[RoleName] = RoleName.store_owner


@dataclass(frozen=True)
class Manager(_StoreBoundRole):
    role_name: ClassVar[RoleName] = RoleName.manager


@dataclass(frozen=True)
class Seller(_StoreBoundRole):
    role_name: ClassVar[RoleName] = RoleName.seller


Role = Union[SuperAdmin, StoreOwner, Manager, Seller]

_STORE_BOUND_ROLES = {
    RoleName.store_owner: StoreOwner,
    RoleName.manager: Manager,
    RoleName.seller: Seller,
}


def make_role(name: str | RoleName, store_id: str | None = None) -> Role:
    """
    Build a role from its serialized pair.

    Raises ValidationError if the pair breaks the binding rule: super_admin
    with a store, or any other role without one.
    """
    try:
        role_name = RoleName(name)
    except ValueError:
        raise ValidationError(f"Unknown role: {name}")

    if role_name is RoleName.super_admin:
        if store_id:
            raise ValidationError("super_admin cannot be bound to a store")
        return SuperAdmin()

    if not store_id:
        raise ValidationError(f"{role_name.value} requires a store id")
    return _STORE_BOUND_ROLES[role_name](store_id)


# =============================================================================
# DECODE HELPERS
# =============================================================================


def _require_mapping(collection: str, data: Any) -> dict:
    if not isinstance(data, dict):
        raise StorageDecodeError(collection, f"expected an object, got {type(data).__name__}")
    return data


def _text(collection: str, data: dict, key: str, *, required: bool = True) -> str | None:
    value = data.get(key)
    if value is None:
        if required:
            raise StorageDecodeError(collection, f"missing '{key}'")
        return None
    if not isinstance(value, str):
        raise StorageDecodeError(collection, f"'{key}' must be a string")
    return value


def _flag(collection: str, data: dict, key: str) -> bool:
    value = data.get(key)
    if not isinstance(value, bool):
        raise StorageDecodeError(collection, f"'{key}' must be a boolean")
    return value


def _amount(collection: str, data: dict, key: str, *, non_negative: bool = True) -> float:
    if key not in data:
        raise StorageDecodeError(collection, f"missing '{key}'")
    value = data[key]
    # Stored numbers are JSON numbers; strings such as "449,90" are not repaired
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise StorageDecodeError(collection, f"'{key}' must be a number")
    value = float(value)
    if non_negative and value < 0:
        raise StorageDecodeError(collection, f"'{key}' must be >= 0")
    return value


def _count(collection: str, data: dict, key: str) -> int:
    if key not in data:
        raise StorageDecodeError(collection, f"missing '{key}'")
    value = data[key]
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int):
        raise StorageDecodeError(collection, f"'{key}' must be an integer")
    return value


def _timestamp(collection: str, data: dict, key: str, *, required: bool = True) -> datetime | None:
    value = data.get(key)
    if value in (None, ""):
        if required:
            raise StorageDecodeError(collection, f"missing '{key}'")
        return None
    try:
        return coerce_datetime(key, value)
    except ValidationError as exc:
        raise StorageDecodeError(collection, str(exc))


def _drop_none(payload: dict) -> dict:
    return {k: v for k, v in payload.items() if v is not None}


# =============================================================================
# STORE
# =============================================================================


@dataclass
class Store:
    """A tenant. All products, customers, sales and non-admin users hang off one."""
    id: str
    name: str
    email: str
    phone: str | None = None
    address: str | None = None
    is_active: bool = True
    expires_at: datetime | None = None  # None means unlimited access
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    COLLECTION: ClassVar[str] = "stores"

    def is_accessible(self, now: datetime | None = None) -> bool:
        """Active and, if an expiration is set, not past it."""
        if not self.is_active:
            return False
        if self.expires_at is not None:
            if now is None:
                now = utcnow()
            if now > self.expires_at:
                return False
        return True

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) > self.expires_at

    @classmethod
    def from_storage(cls, data: Any) -> "Store":
        c = cls.COLLECTION
        data = _require_mapping(c, data)
        return cls(
            id=_text(c, data, "id"),
            name=_text(c, data, "name"),
            email=_text(c, data, "email"),
            phone=_text(c, data, "phone", required=False),
            address=_text(c, data, "address", required=False),
            is_active=_flag(c, data, "isActive"),
            expires_at=_timestamp(c, data, "expiresAt", required=False),
            created_at=_timestamp(c, data, "createdAt"),
            updated_at=_timestamp(c, data, "updatedAt"),
        )

    def to_storage(self) -> dict:
        return _drop_none({
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "isActive": self.is_active,
            "expiresAt": to_utc_z(self.expires_at),
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        })

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "is_active": self.is_active,
            "expires_at": to_utc_z(self.expires_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


# =============================================================================
# USER
# =============================================================================


@dataclass
class User:
    """
    A login identity.

    ``password`` holds the credential secret (a bcrypt hash); it is never
    included in ``to_dict``.
    """
    id: str
    email: str
    password: str
    name: str
    role: Role
    created_at: datetime = field(default_factory=utcnow)

    COLLECTION: ClassVar[str] = "users"

    @property
    def store_id(self) -> str | None:
        return self.role.store_id

    @property
    def role_name(self) -> RoleName:
        return self.role.role_name

    @property
    def is_super_admin(self) -> bool:
        return isinstance(self.role, SuperAdmin)

    @classmethod
    def from_storage(cls, data: Any) -> "User":
        c = cls.COLLECTION
        data = _require_mapping(c, data)
        try:
            role = make_role(_text(c, data, "role"), _text(c, data, "storeId", required=False))
        except ValidationError as exc:
            raise StorageDecodeError(c, str(exc))
        return cls(
            id=_text(c, data, "id"),
            email=_text(c, data, "email"),
            password=_text(c, data, "password"),
            name=_text(c, data, "name"),
            role=role,
            created_at=_timestamp(c, data, "createdAt"),
        )

    def to_storage(self) -> dict:
        return _drop_none({
            "id": self.id,
            "email": self.email,
            "password": self.password,
            "name": self.name,
            "role": self.role_name.value,
            "storeId": self.store_id,
            "createdAt": to_utc_z(self.created_at),
        })

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "role": self.role_name.value,
            "store_id": self.store_id,
            "created_at": to_utc_z(self.created_at),
        }


# =============================================================================
# PRODUCT / CUSTOMER
# =============================================================================


@dataclass
class Product:
    id: str
    store_id: str
    name: str
    description: str = ""
    sku: str = ""
    price: float = 0.0
    cost: float = 0.0
    stock: int = 0
    category: str = ""
    image: str | None = None
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    COLLECTION: ClassVar[str] = "products"

    @classmethod
    def from_storage(cls, data: Any) -> "Product":
        c = cls.COLLECTION
        data = _require_mapping(c, data)
        stock = _count(c, data, "stock")
        if stock < 0:
            raise StorageDecodeError(c, "'stock' must be >= 0")
        return cls(
            id=_text(c, data, "id"),
            store_id=_text(c, data, "storeId"),
            name=_text(c, data, "name"),
            description=_text(c, data, "description", required=False) or "",
            sku=_text(c, data, "sku", required=False) or "",
            price=_amount(c, data, "price"),
            cost=_amount(c, data, "cost"),
            stock=stock,
            category=_text(c, data, "category", required=False) or "",
            image=_text(c, data, "image", required=False),
            active=_flag(c, data, "active"),
            created_at=_timestamp(c, data, "createdAt"),
            updated_at=_timestamp(c, data, "updatedAt"),
        )

    def to_storage(self) -> dict:
        return _drop_none({
            "id": self.id,
            "storeId": self.store_id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "price": self.price,
            "cost": self.cost,
            "stock": self.stock,
            "category": self.category,
            "image": self.image,
            "active": self.active,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        })

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "name": self.name,
            "description": self.description,
            "sku": self.sku,
            "price": self.price,
            "cost": self.cost,
            "stock": self.stock,
            "category": self.category,
            "image": self.image,
            "active": self.active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


CUSTOMER_CONTACT_FIELDS = ("email", "phone", "cpf", "address", "city", "state", "zip_code", "notes")


@dataclass
class Customer:
    id: str
    store_id: str
    name: str
    email: str | None = None
    phone: str | None = None
    cpf: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    COLLECTION: ClassVar[str] = "customers"

    @classmethod
    def from_storage(cls, data: Any) -> "Customer":
        c = cls.COLLECTION
        data = _require_mapping(c, data)
        return cls(
            id=_text(c, data, "id"),
            store_id=_text(c, data, "storeId"),
            name=_text(c, data, "name"),
            email=_text(c, data, "email", required=False),
            phone=_text(c, data, "phone", required=False),
            cpf=_text(c, data, "cpf", required=False),
            address=_text(c, data, "address", required=False),
            city=_text(c, data, "city", required=False),
            state=_text(c, data, "state", required=False),
            zip_code=_text(c, data, "zipCode", required=False),
            notes=_text(c, data, "notes", required=False),
            created_at=_timestamp(c, data, "createdAt"),
            updated_at=_timestamp(c, data, "updatedAt"),
        )

    def to_storage(self) -> dict:
        return _drop_none({
            "id": self.id,
            "storeId": self.store_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "cpf": self.cpf,
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zipCode": self.zip_code,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
            "updatedAt": to_utc_z(self.updated_at),
        })

    def to_dict(self) -> dict:
        payload = {"id": self.id, "store_id": self.store_id, "name": self.name}
        for key in CUSTOMER_CONTACT_FIELDS:
            payload[key] = getattr(self, key)
        payload["created_at"] = to_utc_z(self.created_at)
        payload["updated_at"] = to_utc_z(self.updated_at)
        return payload


# =============================================================================
# SALE
# =============================================================================


PAYMENT_METHODS = ("cash", "credit", "debit", "pix")
SALE_STATUSES = ("completed", "cancelled", "pending")


@dataclass
class SaleItem:
    """Name and price snapshot of a product at the moment of sale."""
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    discount: float = 0.0
    total: float = 0.0

    @classmethod
    def from_storage(cls, data: Any) -> "SaleItem":
        c = "sale items"
        data = _require_mapping(c, data)
        quantity = _count(c, data, "quantity")
        if quantity <= 0:
            raise StorageDecodeError(c, "'quantity' must be > 0")
        return cls(
            product_id=_text(c, data, "productId"),
            product_name=_text(c, data, "productName"),
            quantity=quantity,
            unit_price=_amount(c, data, "unitPrice"),
            discount=_amount(c, data, "discount"),
            total=_amount(c, data, "total", non_negative=False),
        )

    def to_storage(self) -> dict:
        return {
            "productId": self.product_id,
            "productName": self.product_name,
            "quantity": self.quantity,
            "unitPrice": self.unit_price,
            "discount": self.discount,
            "total": self.total,
        }

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "discount": self.discount,
            "total": self.total,
        }


@dataclass
class Sale:
    id: str
    store_id: str
    receipt_code: str
    items: list[SaleItem]
    subtotal: float
    discount: float
    total: float
    payment_method: str
    status: str
    seller_id: str
    seller_name: str
    customer_id: str | None = None
    customer_name: str | None = None
    notes: str | None = None
    created_at: datetime = field(default_factory=utcnow)

    COLLECTION: ClassVar[str] = "sales"

    @classmethod
    def from_storage(cls, data: Any) -> "Sale":
        c = cls.COLLECTION
        data = _require_mapping(c, data)

        items = data.get("items")
        if not isinstance(items, list):
            raise StorageDecodeError(c, "'items' must be a list")

        payment_method = _text(c, data, "paymentMethod")
        if payment_method not in PAYMENT_METHODS:
            raise StorageDecodeError(c, f"unknown payment method {payment_method!r}")
        status = _text(c, data, "status")
        if status not in SALE_STATUSES:
            raise StorageDecodeError(c, f"unknown status {status!r}")

        return cls(
            id=_text(c, data, "id"),
            store_id=_text(c, data, "storeId"),
            receipt_code=_text(c, data, "receiptCode"),
            items=[SaleItem.from_storage(item) for item in items],
            subtotal=_amount(c, data, "subtotal", non_negative=False),
            discount=_amount(c, data, "discount"),
            total=_amount(c, data, "total", non_negative=False),
            payment_method=payment_method,
            status=status,
            seller_id=_text(c, data, "sellerId"),
            seller_name=_text(c, data, "sellerName"),
            customer_id=_text(c, data, "customerId", required=False),
            customer_name=_text(c, data, "customerName", required=False),
            notes=_text(c, data, "notes", required=False),
            created_at=_timestamp(c, data, "createdAt"),
        )

    def to_storage(self) -> dict:
        return _drop_none({
            "id": self.id,
            "storeId": self.store_id,
            "receiptCode": self.receipt_code,
            "customerId": self.customer_id,
            "customerName": self.customer_name,
            "items": [item.to_storage() for item in self.items],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "total": self.total,
            "paymentMethod": self.payment_method,
            "status": self.status,
            "sellerId": self.seller_id,
            "sellerName": self.seller_name,
            "notes": self.notes,
            "createdAt": to_utc_z(self.created_at),
        })

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "receipt_code": self.receipt_code,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "items": [item.to_dict() for item in self.items],
            "subtotal": self.subtotal,
            "discount": self.discount,
            "total": self.total,
            "payment_method": self.payment_method,
            "status": self.status,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
