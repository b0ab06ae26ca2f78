# Overview: Pytest coverage for sale checkout, cancellation and receipt lookup.

import pytest

from storedesk.services import customer_service, products_service, sales_service
from storedesk.services.access_control import AccessContext, AccessErrorKind, TenantAccessError
from storedesk.services.receipt_service import (
    format_receipt_code,
    generate_receipt_code,
    normalize_receipt_code,
    validate_receipt_code,
)
from storedesk.validation import ConflictError, NotFoundError, ValidationError


@pytest.fixture
def sale_a(storage, ctx_a, product_a):
    return sales_service.create_sale(storage, ctx_a, {
        "items": [{"product_id": product_a.id, "quantity": 2, "discount": 9.8}],
        "payment_method": "pix",
        "discount": 10,
    })


class TestCreateSale:

    def test_totals_and_snapshot(self, sale_a, product_a, store_a, owner_a):
        item = sale_a.items[0]
        assert item.product_name == product_a.name
        assert item.unit_price == 449.9
        assert item.total == 890.0
        assert sale_a.subtotal == 890.0
        assert sale_a.total == 880.0
        assert sale_a.status == "completed"
        assert sale_a.store_id == store_a.id
        assert sale_a.seller_id == owner_a.id
        assert sale_a.seller_name == owner_a.name

    def test_stock_decremented(self, storage, sale_a, product_a):
        assert storage.products.get_by_id(product_a.id).stock == product_a.stock - 2

    def test_price_snapshot_survives_product_edit(self, storage, ctx_a, sale_a, product_a):
        products_service.update_product(storage, ctx_a, product_a.id, {"price": 1.0, "name": "Renamed"})
        stored = sales_service.get_sale(storage, ctx_a, sale_a.id)
        assert stored.items[0].unit_price == 449.9
        assert stored.items[0].product_name == "Mouse Logitech MX Master"

    def test_seller_can_sell(self, storage, seller_a, store_a, product_a):
        ctx = AccessContext(seller_a, store_a)
        sale = sales_service.create_sale(storage, ctx, {
            "items": [{"product_id": product_a.id, "quantity": 1}],
            "payment_method": "cash",
        })
        assert sale.seller_name == "Seller A"

    def test_customer_snapshot(self, storage, ctx_a, product_a):
        customer = customer_service.create_customer(storage, ctx_a, {"name": "João Silva"})
        sale = sales_service.create_sale(storage, ctx_a, {
            "items": [{"product_id": product_a.id, "quantity": 1}],
            "payment_method": "debit",
            "customer_id": customer.id,
        })
        assert sale.customer_name == "João Silva"

    def test_foreign_product_is_unknown(self, storage, ctx_a, product_b):
        with pytest.raises(ValidationError):
            sales_service.create_sale(storage, ctx_a, {
                "items": [{"product_id": product_b.id, "quantity": 1}],
                "payment_method": "cash",
            })
        assert storage.products.get_by_id(product_b.id).stock == product_b.stock

    def test_foreign_store_id_rejected(self, storage, ctx_a, store_b, product_b):
        with pytest.raises(TenantAccessError) as exc:
            sales_service.create_sale(storage, ctx_a, {
                "items": [{"product_id": product_b.id, "quantity": 1}],
                "payment_method": "cash",
                "store_id": store_b.id,
            })
        assert exc.value.kind is AccessErrorKind.CROSS_TENANT_WRITE

    def test_quantity_above_stock(self, storage, ctx_a, product_a):
        with pytest.raises(ValidationError):
            sales_service.create_sale(storage, ctx_a, {
                "items": [{"product_id": product_a.id, "quantity": product_a.stock + 1}],
                "payment_method": "cash",
            })

    def test_repeated_lines_count_against_stock(self, storage, ctx_a, product_a):
        half = product_a.stock // 2 + 1
        with pytest.raises(ValidationError):
            sales_service.create_sale(storage, ctx_a, {
                "items": [
                    {"product_id": product_a.id, "quantity": half},
                    {"product_id": product_a.id, "quantity": half},
                ],
                "payment_method": "cash",
            })

    def test_inactive_product_rejected(self, storage, ctx_a, product_a):
        products_service.update_product(storage, ctx_a, product_a.id, {"active": False})
        with pytest.raises(ValidationError):
            sales_service.create_sale(storage, ctx_a, {
                "items": [{"product_id": product_a.id, "quantity": 1}],
                "payment_method": "cash",
            })

    @pytest.mark.parametrize("payload", [
        {"items": [], "payment_method": "cash"},
        {"items": [{"quantity": 1}], "payment_method": "cash"},
        {"items": [{"product_id": "x", "quantity": 0}], "payment_method": "cash"},
        {"items": [{"product_id": "x", "quantity": 1}], "payment_method": "cheque"},
    ])
    def test_invalid_carts(self, storage, ctx_a, payload):
        with pytest.raises(ValidationError):
            sales_service.create_sale(storage, ctx_a, payload)

    def test_discount_above_subtotal(self, storage, ctx_a, product_a):
        with pytest.raises(ValidationError):
            sales_service.create_sale(storage, ctx_a, {
                "items": [{"product_id": product_a.id, "quantity": 1}],
                "payment_method": "cash",
                "discount": 1000,
            })

    def test_requires_active_store(self, storage, owner_a, product_a):
        with pytest.raises(TenantAccessError) as exc:
            sales_service.create_sale(storage, AccessContext(owner_a, None), {
                "items": [{"product_id": product_a.id, "quantity": 1}],
                "payment_method": "cash",
            })
        assert exc.value.kind is AccessErrorKind.NO_ACTIVE_STORE


class TestCancelSale:

    def test_cancel_restocks(self, storage, ctx_a, sale_a, product_a):
        cancelled = sales_service.cancel_sale(storage, ctx_a, sale_a.id)
        assert cancelled.status == "cancelled"
        assert storage.products.get_by_id(product_a.id).stock == product_a.stock

    def test_cancel_twice_conflicts(self, storage, ctx_a, sale_a):
        sales_service.cancel_sale(storage, ctx_a, sale_a.id)
        with pytest.raises(ConflictError):
            sales_service.cancel_sale(storage, ctx_a, sale_a.id)

    def test_cancel_foreign_sale_denied(self, storage, ctx_b, sale_a):
        with pytest.raises(TenantAccessError):
            sales_service.cancel_sale(storage, ctx_b, sale_a.id)
        assert storage.sales.get_by_id(sale_a.id).status == "completed"


class TestSaleReads:

    def test_list_only_own_store(self, storage, ctx_a, ctx_b, sale_a):
        assert [s.id for s in sales_service.list_sales(storage, ctx_a)] == [sale_a.id]
        assert sales_service.list_sales(storage, ctx_b) == []

    def test_status_filter(self, storage, ctx_a, sale_a):
        assert sales_service.list_sales(storage, ctx_a, status="cancelled") == []
        with pytest.raises(ValidationError):
            sales_service.list_sales(storage, ctx_a, status="refunded")

    def test_get_foreign_sale_not_found(self, storage, ctx_b, sale_a):
        with pytest.raises(NotFoundError):
            sales_service.get_sale(storage, ctx_b, sale_a.id)

    def test_receipt_lookup_accepts_display_form(self, storage, ctx_a, sale_a):
        display = format_receipt_code(sale_a.receipt_code).lower()
        assert sales_service.find_sale_by_receipt_code(storage, ctx_a, display).id == sale_a.id

    def test_receipt_lookup_is_store_scoped(self, storage, ctx_b, sale_a):
        with pytest.raises(NotFoundError):
            sales_service.find_sale_by_receipt_code(storage, ctx_b, sale_a.receipt_code)


class TestReceiptCodes:

    def test_format(self):
        code = generate_receipt_code(now_ms=0)
        prefix, suffix = code.split("-")
        assert prefix == "0"
        assert len(suffix) == 4
        assert suffix == suffix.upper()

    def test_base36_timestamp(self):
        assert generate_receipt_code(now_ms=36 ** 2 + 35).startswith("10Z-")

    def test_format_receipt_code(self):
        assert format_receipt_code("LQ3K9Z0A-7F2X") == "LQ3K9Z0A 7F2X"
        assert format_receipt_code(None) == "N/A"

    def test_normalize(self):
        assert normalize_receipt_code(" lq3k9z0a 7f2x ") == "LQ3K9Z0A-7F2X"

    def test_validate(self, sale_a):
        assert validate_receipt_code(sale_a.receipt_code, [sale_a])
        assert not validate_receipt_code("NOPE-0000", [sale_a])
