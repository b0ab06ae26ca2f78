# Overview: Dashboard and per-store statistics computed from the stored collections.

from __future__ import annotations

from datetime import date, timedelta
from typing import Iterable

from ..models import Customer, Product, Sale
from .access_control import AccessContext, require_access, resolve_read_store_id
from .storage_service import Storage
from storedesk.time_utils import to_utc_z, utcnow

LOW_STOCK_THRESHOLD = 10
TOP_PRODUCTS_LIMIT = 5
SALES_BY_DAY_WINDOW = 7


def _completed(sales: Iterable[Sale]) -> list[Sale]:
    return [s for s in sales if s.status == "completed"]


def _sales_by_day(sales: list[Sale], today: date) -> list[dict]:
    days = [today - timedelta(days=offset) for offset in range(SALES_BY_DAY_WINDOW - 1, -1, -1)]
    rows = []
    for day in days:
        day_sales = [s for s in sales if s.created_at.date() == day]
        rows.append({
            "date": day.isoformat(),
            "total": sum(s.total for s in day_sales),
            "count": len(day_sales),
        })
    return rows


def _top_products(sales: list[Sale]) -> list[dict]:
    stats: dict[str, dict] = {}
    for sale in sales:
        for item in sale.items:
            entry = stats.get(item.product_id)
            if entry is None:
                stats[item.product_id] = {
                    "product_id": item.product_id,
                    "name": item.product_name,
                    "quantity": item.quantity,
                    "revenue": item.total,
                }
            else:
                entry["quantity"] += item.quantity
                entry["revenue"] += item.total
    # sorted() is stable, so ties keep first-seen order
    ranked = sorted(stats.values(), key=lambda row: row["revenue"], reverse=True)
    return ranked[:TOP_PRODUCTS_LIMIT]


def _sales_by_payment_method(sales: list[Sale]) -> list[dict]:
    methods: dict[str, dict] = {}
    for sale in sales:
        entry = methods.setdefault(sale.payment_method, {"method": sale.payment_method, "total": 0.0, "count": 0})
        entry["total"] += sale.total
        entry["count"] += 1
    return list(methods.values())


def calculate_dashboard_stats(
    sales: Iterable[Sale],
    products: Iterable[Product],
    customers: Iterable[Customer],
    *,
    today: date | None = None,
) -> dict:
    """
    Aggregate dashboard figures for one store's collections.

    Only completed sales count towards totals, profit and the series. Profit
    is item revenue minus the current product cost; an item whose product no
    longer exists contributes its full revenue (zero cost). Inputs are not
    mutated.
    """
    completed = _completed(sales)
    products = list(products)
    customers = list(customers)
    costs = {p.id: p.cost for p in products}

    total_profit = 0.0
    for sale in completed:
        for item in sale.items:
            total_profit += item.total - costs.get(item.product_id, 0.0) * item.quantity

    return {
        "total_sales": len(completed),
        "total_revenue": sum(s.total for s in completed),
        "total_profit": total_profit,
        "total_customers": len(customers),
        "total_products": sum(1 for p in products if p.active),
        "low_stock_products": sum(1 for p in products if p.active and p.stock < LOW_STOCK_THRESHOLD),
        "sales_by_day": _sales_by_day(completed, today or utcnow().date()),
        "top_products": _top_products(completed),
        "sales_by_payment_method": _sales_by_payment_method(completed),
    }


def dashboard_for_context(
    storage: Storage,
    ctx: AccessContext,
    *,
    store_id: str | None = None,
    today: date | None = None,
) -> dict:
    """Dashboard of the caller's store; super_admin may name another store."""
    scope = require_access(resolve_read_store_id(ctx, store_id))
    stats = calculate_dashboard_stats(
        storage.sales.get_all_by_store(scope),
        storage.products.get_all_by_store(scope),
        storage.customers.get_all_by_store(scope),
        today=today,
    )
    stats["store_id"] = scope
    return stats


def calculate_store_stats(storage: Storage, store_id: str) -> dict:
    sales = _completed(storage.sales.get_all_by_store(store_id))
    products = [p for p in storage.products.get_all_by_store(store_id) if p.active]
    customers = storage.customers.get_all_by_store(store_id)

    last_sale = max(sales, key=lambda s: s.created_at, default=None)

    return {
        "store_id": store_id,
        "total_revenue": sum(s.total for s in sales),
        "total_sales": len(sales),
        "total_products": len(products),
        "total_customers": len(customers),
        "last_activity": to_utc_z(last_sale.created_at) if last_sale else None,
    }


def get_all_stores_stats(storage: Storage) -> dict[str, dict]:
    return {store.id: calculate_store_stats(storage, store.id) for store in storage.stores.get_all()}
