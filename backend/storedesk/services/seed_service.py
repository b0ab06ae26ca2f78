# Overview: Demo catalog and customer data for a freshly provisioned store.

from __future__ import annotations

import logging

from ..models import Customer, Product, new_id
from ..validation import NotFoundError
from .storage_service import Storage
from storedesk.time_utils import utcnow

logger = logging.getLogger(__name__)

DEMO_PRODUCTS = [
    {
        "name": "Notebook Dell Inspiron",
        "description": "Notebook Dell Inspiron 15, Intel Core i5, 8GB RAM, 256GB SSD",
        "sku": "NB-DELL-001",
        "price": 3499.9,
        "cost": 2800.0,
        "stock": 15,
        "category": "Eletrônicos",
    },
    {
        "name": "Mouse Logitech MX Master",
        "description": "Mouse sem fio Logitech MX Master 3, ergonômico",
        "sku": "MS-LOG-001",
        "price": 449.9,
        "cost": 320.0,
        "stock": 45,
        "category": "Periféricos",
    },
    {
        "name": "Teclado Mecânico Keychron",
        "description": "Teclado mecânico Keychron K2, switches brown",
        "sku": "KB-KEY-001",
        "price": 599.9,
        "cost": 420.0,
        "stock": 8,
        "category": "Periféricos",
    },
    {
        "name": 'Monitor LG UltraWide 29"',
        "description": 'Monitor LG 29" UltraWide Full HD IPS',
        "sku": "MN-LG-001",
        "price": 1299.9,
        "cost": 950.0,
        "stock": 3,
        "category": "Monitores",
    },
    {
        "name": "Webcam Logitech C920",
        "description": "Webcam Full HD 1080p com microfone",
        "sku": "WC-LOG-001",
        "price": 399.9,
        "cost": 280.0,
        "stock": 22,
        "category": "Periféricos",
    },
]

DEMO_CUSTOMERS = [
    {
        "name": "João Silva",
        "email": "joao.silva@email.com",
        "phone": "(11) 98765-4321",
        "cpf": "123.456.789-00",
        "address": "Rua das Flores, 123",
        "city": "São Paulo",
        "state": "SP",
        "zip_code": "01234-567",
    },
    {
        "name": "Maria Santos",
        "email": "maria.santos@email.com",
        "phone": "(11) 91234-5678",
        "cpf": "987.654.321-00",
        "address": "Av. Paulista, 1000",
        "city": "São Paulo",
        "state": "SP",
        "zip_code": "01310-100",
    },
    {
        "name": "Pedro Oliveira",
        "email": "pedro.oliveira@email.com",
        "phone": "(21) 99876-5432",
        "city": "Rio de Janeiro",
        "state": "RJ",
    },
]


def seed_demo_data(storage: Storage, store_id: str) -> dict:
    """
    Add the demo products and customers to a store.

    Each collection is only seeded while the store has no records in it, so
    running this twice is a no-op. Returns the number of records added.
    """
    if storage.stores.get_by_id(store_id) is None:
        raise NotFoundError("Store not found")

    now = utcnow()
    added = {"products": 0, "customers": 0}

    if not storage.products.get_all_by_store(store_id):
        products = [
            Product(id=new_id(), store_id=store_id, created_at=now, updated_at=now, **row)
            for row in DEMO_PRODUCTS
        ]
        storage.products.set_all([*storage.products.get_all(), *products])
        added["products"] = len(products)

    if not storage.customers.get_all_by_store(store_id):
        customers = [
            Customer(id=new_id(), store_id=store_id, created_at=now, updated_at=now, **row)
            for row in DEMO_CUSTOMERS
        ]
        storage.customers.set_all([*storage.customers.get_all(), *customers])
        added["customers"] = len(customers)

    logger.info("Seeded store %s: %d products, %d customers", store_id, added["products"], added["customers"])
    return added
