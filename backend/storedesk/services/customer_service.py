from __future__ import annotations

import logging
from dataclasses import replace

from ..models import Customer, new_id
from ..validation import Field, ModelValidationPolicy, NotFoundError, validate_payload
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

CUSTOMER_POLICY = ModelValidationPolicy(
    fields={
        "store_id": Field(nullable=False),
        "name": Field(nullable=False, max_length=255),
        "email": Field(max_length=255),
        "phone": Field(max_length=50),
        "cpf": Field(max_length=20),
        "address": Field(max_length=255),
        "city": Field(max_length=100),
        "state": Field(max_length=50),
        "zip_code": Field(max_length=20),
        "notes": Field(max_length=2000),
    },
    required_on_create=frozenset({"name"}),
)


def _clean(payload: dict | None, *, partial: bool) -> dict:
    patch = validate_payload(payload=payload, policy=CUSTOMER_POLICY, partial=partial)
    # Blank optional fields are stored as absent
    return {k: (None if v == "" else v) for k, v in patch.items()}


def list_customers(
    storage: Storage,
    ctx: AccessContext,
    *,
    store_id: str | None = None,
    search: str | None = None,
) -> list[Customer]:
    scope = require_access(resolve_read_store_id(ctx, store_id))
    customers = storage.customers.get_all_by_store(scope)

    if search:
        needle = search.strip().lower()
        customers = [
            c for c in customers
            if needle in c.name.lower()
            or needle in (c.email or "").lower()
            or needle in (c.phone or "")
        ]

    return sorted(customers, key=lambda c: (c.name.lower(), c.id))


def get_customer(storage: Storage, ctx: AccessContext, customer_id: str) -> Customer:
    scope = require_access(resolve_read_store_id(ctx))
    customer = storage.customers.get_by_id_in_store(customer_id, scope)
    if customer is None:
        raise NotFoundError("Customer not found")
    return customer


def create_customer(storage: Storage, ctx: AccessContext, payload: dict) -> Customer:
    patch = _clean(payload, partial=False)
    store_id = resolve_write_store_id(ctx, patch.pop("store_id", None))

    now = utcnow()
    customer = Customer(id=new_id(), store_id=store_id, created_at=now, updated_at=now, **patch)
    customer = require_access(enforce_store_id(customer, ctx))

    storage.customers.set_all([*storage.customers.get_all(), customer])
    logger.info("Created customer %s in store %s", customer.id, customer.store_id)
    return customer


def update_customer(storage: Storage, ctx: AccessContext, customer_id: str, payload: dict) -> Customer:
    patch = _clean(payload, partial=True)

    customers = storage.customers.get_all()
    existing = next((c for c in customers if c.id == customer_id), None)
    if existing is None:
        raise NotFoundError("Customer not found")

    require_access(validate_store_access(existing.store_id, ctx))

    store_id = patch.pop("store_id", None) or existing.store_id
    updated = replace(existing, **patch, store_id=store_id, updated_at=utcnow())
    updated = require_access(enforce_store_id(updated, ctx))

    storage.customers.set_all([updated if c.id == customer_id else c for c in customers])
    return updated


def delete_customer(storage: Storage, ctx: AccessContext, customer_id: str) -> None:
    customers = storage.customers.get_all()
    existing = next((c for c in customers if c.id == customer_id), None)
    if existing is None:
        raise NotFoundError("Customer not found")

    require_access(validate_store_access(existing.store_id, ctx))

    storage.customers.set_all([c for c in customers if c.id != customer_id])
    logger.info("Deleted customer %s from store %s", customer_id, existing.store_id)
