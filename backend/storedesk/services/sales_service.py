# backend/storedesk/services/sales_service.py
"""
Sales Service with Multi-Tenant Support

A sale is created in one step from a cart: each line names a product of the
active store and a quantity. Prices and names are copied into the sale at
that moment; later product edits never change a recorded sale.

MULTI-TENANT:
- Products and customers are only resolved inside the sale's store; a
  product id from another store is reported as unknown
- The sale passes enforce_store_id before it is persisted
- Stock is only decremented for products of the sale's store

TOTALS:
    item.total  = quantity * unit_price - item.discount
    subtotal    = sum(item.total)
    total       = subtotal - discount
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace

from ..models import PAYMENT_METHODS, SALE_STATUSES, Sale, SaleItem, new_id
from ..validation import (
    ConflictError,
    NotFoundError,
    ValidationError,
    coerce_amount,
    coerce_integer,
)
from .access_control import (
    AccessContext,
    AccessErrorKind,
    TenantAccessError,
    enforce_store_id,
    require_access,
    resolve_read_store_id,
    resolve_write_store_id,
    validate_store_access,
)
from .receipt_service import generate_receipt_code, normalize_receipt_code
from .storage_service import Storage
from storedesk.time_utils import utcnow

logger = logging.getLogger(__name__)

MAX_RECEIPT_ATTEMPTS = 5


def _money(value: float) -> float:
    return round(value + 0.0, 2)


def _parse_lines(raw_items) -> list[dict]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("Add at least one item to the sale")

    lines = []
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{index}] must be an object")
        product_id = raw.get("product_id")
        if not product_id or not isinstance(product_id, str):
            raise ValidationError(f"items[{index}].product_id is required")
        quantity = coerce_integer(f"items[{index}].quantity", raw.get("quantity", 1))
        if quantity <= 0:
            raise ValidationError(f"items[{index}].quantity must be > 0")
        discount = coerce_amount(f"items[{index}].discount", raw.get("discount", 0) or 0)
        if discount < 0:
            raise ValidationError(f"items[{index}].discount must be >= 0")
        lines.append({"product_id": product_id, "quantity": quantity, "discount": discount})
    return lines


def _unique_receipt_code(storage: Storage) -> str:
    taken = {s.receipt_code for s in storage.sales.get_all()}
    for _ in range(MAX_RECEIPT_ATTEMPTS):
        code = generate_receipt_code()
        if code not in taken:
            return code
    raise ConflictError("Could not generate a unique receipt code")


def create_sale(storage: Storage, ctx: AccessContext, payload: dict) -> Sale:
    """
    Record a completed sale and decrement stock.

    Payload:
        items: [{product_id, quantity, discount?}]   (required, non-empty)
        payment_method: cash | credit | debit | pix   (required)
        discount: sale-level discount (default 0)
        customer_id, notes, store_id (super_admin only) - optional

    Raises:
        TenantAccessError: no user / no store / foreign store
        ValidationError: bad lines, unknown product, insufficient stock
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    if ctx.user is None:
        raise TenantAccessError(AccessErrorKind.UNAUTHENTICATED)

    store_id = resolve_write_store_id(ctx, payload.get("store_id"))
    if not store_id:
        raise TenantAccessError(AccessErrorKind.NO_ACTIVE_STORE)
    # Reject a foreign store before any of its products are looked up
    if not ctx.user.is_super_admin and store_id != ctx.active_store_id:
        raise TenantAccessError(AccessErrorKind.CROSS_TENANT_WRITE)

    payment_method = payload.get("payment_method")
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    lines = _parse_lines(payload.get("items"))

    products = {p.id: p for p in storage.products.get_all_by_store(store_id)}
    requested: dict[str, int] = defaultdict(int)
    items: list[SaleItem] = []
    for line in lines:
        product = products.get(line["product_id"])
        if product is None:
            raise ValidationError(f"Product not found: {line['product_id']}")
        if not product.active:
            raise ValidationError(f"Product is inactive: {product.name}")

        requested[product.id] += line["quantity"]
        if requested[product.id] > product.stock:
            raise ValidationError(f"Insufficient stock for {product.name}")

        gross = line["quantity"] * product.price
        if line["discount"] > gross:
            raise ValidationError(f"Discount exceeds line amount for {product.name}")

        items.append(SaleItem(
            product_id=product.id,
            product_name=product.name,
            quantity=line["quantity"],
            unit_price=product.price,
            discount=_money(line["discount"]),
            total=_money(gross - line["discount"]),
        ))

    subtotal = _money(sum(item.total for item in items))
    discount = coerce_amount("discount", payload.get("discount", 0) or 0)
    if discount < 0:
        raise ValidationError("discount must be >= 0")
    if discount > subtotal:
        raise ValidationError("discount cannot exceed the subtotal")

    customer_id = payload.get("customer_id") or None
    customer_name = None
    if customer_id:
        customer = storage.customers.get_by_id_in_store(customer_id, store_id)
        if customer is None:
            raise ValidationError("Customer not found")
        customer_name = customer.name

    notes = (payload.get("notes") or "").strip() or None

    sale = Sale(
        id=new_id(),
        store_id=store_id,
        receipt_code=_unique_receipt_code(storage),
        items=items,
        subtotal=subtotal,
        discount=_money(discount),
        total=_money(subtotal - discount),
        payment_method=payment_method,
        status="completed",
        seller_id=ctx.user.id,
        seller_name=ctx.user.name,
        customer_id=customer_id,
        customer_name=customer_name,
        notes=notes,
        created_at=utcnow(),
    )
    sale = require_access(enforce_store_id(sale, ctx))

    storage.sales.set_all([*storage.sales.get_all(), sale])
    _adjust_stock(storage, store_id, {pid: -qty for pid, qty in requested.items()})

    logger.info("Created sale %s (%s) in store %s total=%.2f", sale.id, sale.receipt_code, store_id, sale.total)
    return sale


def _adjust_stock(storage: Storage, store_id: str, deltas: dict[str, int]) -> None:
    now = utcnow()
    updated = []
    for product in storage.products.get_all():
        delta = deltas.get(product.id)
        if delta and product.store_id == store_id:
            product = replace(product, stock=max(product.stock + delta, 0), updated_at=now)
        updated.append(product)
    storage.products.set_all(updated)


def cancel_sale(storage: Storage, ctx: AccessContext, sale_id: str) -> Sale:
    """Mark a completed sale cancelled and return its quantities to stock."""
    sales = storage.sales.get_all()
    existing = next((s for s in sales if s.id == sale_id), None)
    if existing is None:
        raise NotFoundError("Sale not found")

    require_access(validate_store_access(existing.store_id, ctx))

    if existing.status != "completed":
        raise ConflictError(f"Only completed sales can be cancelled (status: {existing.status})")

    cancelled = require_access(enforce_store_id(replace(existing, status="cancelled"), ctx))
    storage.sales.set_all([cancelled if s.id == sale_id else s for s in sales])

    restock: dict[str, int] = defaultdict(int)
    for item in existing.items:
        restock[item.product_id] += item.quantity
    _adjust_stock(storage, existing.store_id, dict(restock))

    logger.info("Cancelled sale %s in store %s", sale_id, existing.store_id)
    return cancelled


def list_sales(
    storage: Storage,
    ctx: AccessContext,
    *,
    store_id: str | None = None,
    status: str | None = None,
) -> list[Sale]:
    """Sales of one store, newest first, optionally filtered by status."""
    if status is not None and status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")

    scope = require_access(resolve_read_store_id(ctx, store_id))
    sales = storage.sales.get_all_by_store(scope)
    if status:
        sales = [s for s in sales if s.status == status]
    return sorted(sales, key=lambda s: s.created_at, reverse=True)


def get_sale(storage: Storage, ctx: AccessContext, sale_id: str) -> Sale:
    scope = require_access(resolve_read_store_id(ctx))
    sale = storage.sales.get_by_id_in_store(sale_id, scope)
    if sale is None:
        raise NotFoundError("Sale not found")
    return sale


def find_sale_by_receipt_code(storage: Storage, ctx: AccessContext, code: str) -> Sale:
    """Receipt lookup, restricted to the caller's store."""
    scope = require_access(resolve_read_store_id(ctx))
    wanted = normalize_receipt_code(code)
    sale = next((s for s in storage.sales.get_all_by_store(scope) if s.receipt_code == wanted), None)
    if sale is None:
        raise NotFoundError("Receipt not found")
    return sale
