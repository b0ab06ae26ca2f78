# backend/storedesk/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: All product operations are tenant-scoped.
- list_products / get_product read the active store only (super_admin may
  name a store)
- create_product binds the product to the active store and passes
  enforce_store_id before persisting
- update_product and delete_product validate store ownership of the
  existing record first; store_id is immutable for non-admins
"""
from __future__ import annotations

import logging
from dataclasses import replace

from ..models import Product, new_id
from ..validation import (
    AMOUNT,
    BOOLEAN,
    INTEGER,
    Field,
    ModelValidationPolicy,
    NotFoundError,
    require_non_negative,
    validate_payload,
)
from .access_control import (
    AccessContext,
    enforce_store_id,
    require_access,
    resolve_read_store_id,
    resolve_write_store_id,
    validate_store_access,
)
from .storage_service import Storage
from storedesk.time_utils import utcnow

logger = logging.getLogger(__name__)

PRODUCT_POLICY = ModelValidationPolicy(
    fields={
        "store_id": Field(nullable=False),
        "name": Field(nullable=False, max_length=255),
        "description": Field(max_length=2000),
        "sku": Field(max_length=100),
        "price": Field(AMOUNT, nullable=False),
        "cost": Field(AMOUNT, nullable=False),
        "stock": Field(INTEGER, nullable=False),
        "category": Field(max_length=100),
        "image": Field(max_length=2000),
        "active": Field(BOOLEAN, nullable=False),
    },
    required_on_create=frozenset({"name", "price"}),
)

TEXT_DEFAULTS = ("description", "sku", "category")


def _clean(payload: dict | None, *, partial: bool) -> dict:
    patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=partial)
    require_non_negative(patch, "price", "cost", "stock")
    for key in TEXT_DEFAULTS:
        if key in patch and patch[key] is None:
            patch[key] = ""
    return patch


def list_products(
    storage: Storage,
    ctx: AccessContext,
    *,
    store_id: str | None = None,
    search: str | None = None,
    category: str | None = None,
    active_only: bool = False,
) -> list[Product]:
    """
    Products of one store, sorted by name.

    search matches name or SKU (case-insensitive).
    """
    scope = require_access(resolve_read_store_id(ctx, store_id))
    products = storage.products.get_all_by_store(scope)

    if search:
        needle = search.strip().lower()
        products = [p for p in products if needle in p.name.lower() or needle in p.sku.lower()]
    if category:
        products = [p for p in products if p.category == category]
    if active_only:
        products = [p for p in products if p.active]

    return sorted(products, key=lambda p: (p.name.lower(), p.id))


def list_categories(storage: Storage, ctx: AccessContext) -> list[str]:
    return sorted({p.category for p in list_products(storage, ctx) if p.category})


def get_product(storage: Storage, ctx: AccessContext, product_id: str) -> Product:
    scope = require_access(resolve_read_store_id(ctx))
    product = storage.products.get_by_id_in_store(product_id, scope)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(storage: Storage, ctx: AccessContext, payload: dict) -> Product:
    patch = _clean(payload, partial=False)
    store_id = resolve_write_store_id(ctx, patch.pop("store_id", None))

    now = utcnow()
    product = Product(id=new_id(), store_id=store_id, created_at=now, updated_at=now, **patch)
    product = require_access(enforce_store_id(product, ctx))

    storage.products.set_all([*storage.products.get_all(), product])
    logger.info("Created product %s in store %s", product.id, product.store_id)
    return product


def update_product(storage: Storage, ctx: AccessContext, product_id: str, payload: dict) -> Product:
    patch = _clean(payload, partial=True)

    products = storage.products.get_all()
    existing = next((p for p in products if p.id == product_id), None)
    if existing is None:
        raise NotFoundError("Product not found")

    require_access(validate_store_access(existing.store_id, ctx))

    store_id = patch.pop("store_id", None) or existing.store_id
    updated = replace(existing, **patch, store_id=store_id, updated_at=utcnow())
    updated = require_access(enforce_store_id(updated, ctx))

    storage.products.set_all([updated if p.id == product_id else p for p in products])
    return updated


def delete_product(storage: Storage, ctx: AccessContext, product_id: str) -> None:
    products = storage.products.get_all()
    existing = next((p for p in products if p.id == product_id), None)
    if existing is None:
        raise NotFoundError("Product not found")

    require_access(validate_store_access(existing.store_id, ctx))

    storage.products.set_all([p for p in products if p.id != product_id])
    logger.info("Deleted product %s from store %s", product_id, existing.store_id)
