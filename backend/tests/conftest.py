"""
Pytest fixtures for StoreDesk backend tests.

Provides an in-memory app, a storage cleared per test, two tenant stores with
their owners and products, and access contexts for each actor.
"""

import pytest
from storedesk import create_app
from storedesk.extensions import db
from storedesk.models import Seller, User, new_id
from storedesk.services import products_service, store_service
from storedesk.services.access_control import AccessContext
from storedesk.services.auth_service import build_super_admin, hash_password
from storedesk.services.storage_service import get_storage

OWNER_PASSWORD = "secret123"
SUPER_ADMIN_EMAIL = "admin@nova.com"
SUPER_ADMIN_PASSWORD = "admin123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'SUPER_ADMIN_EMAIL': SUPER_ADMIN_EMAIL,
        'SUPER_ADMIN_PASSWORD': SUPER_ADMIN_PASSWORD,
        'SEED_DEMO_DATA': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Fresh storage (collections and every session slot) for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def storage(db_session):
    return get_storage()


@pytest.fixture(scope='function')
def admin_ctx(db_session):
    """super_admin without an active store."""
    return AccessContext(user=build_super_admin(SUPER_ADMIN_EMAIL), active_store=None)


def _create_store(storage, admin_ctx, name, owner_email, **extra):
    store, owner = store_service.create_store(
        storage,
        admin_ctx,
        {"name": name, "email": f"contact@{name.lower().replace(' ', '')}.com", **extra},
        {"name": f"Owner of {name}", "email": owner_email, "password": OWNER_PASSWORD},
    )
    return store, owner


@pytest.fixture(scope='function')
def tenant_a(storage, admin_ctx):
    """Store A and its owner (first tenant)."""
    return _create_store(storage, admin_ctx, "Store A", "owner_a@storea.com")


@pytest.fixture(scope='function')
def tenant_b(storage, admin_ctx):
    """Store B and its owner (second tenant)."""
    return _create_store(storage, admin_ctx, "Store B", "owner_b@storeb.com")


@pytest.fixture(scope='function')
def store_a(tenant_a):
    return tenant_a[0]


@pytest.fixture(scope='function')
def store_b(tenant_b):
    return tenant_b[0]


@pytest.fixture(scope='function')
def owner_a(tenant_a):
    return tenant_a[1]


@pytest.fixture(scope='function')
def owner_b(tenant_b):
    return tenant_b[1]


@pytest.fixture(scope='function')
def ctx_a(owner_a, store_a):
    return AccessContext(user=owner_a, active_store=store_a)


@pytest.fixture(scope='function')
def ctx_b(owner_b, store_b):
    return AccessContext(user=owner_b, active_store=store_b)


@pytest.fixture(scope='function')
def seller_a(storage, store_a):
    """A seller bound to Store A, written straight to the users collection."""
    user = User(
        id=new_id(),
        email="seller_a@storea.com",
        password=hash_password(OWNER_PASSWORD),
        name="Seller A",
        role=Seller(store_a.id),
    )
    storage.users.set_all([*storage.users.get_all(), user])
    return user


@pytest.fixture(scope='function')
def product_a(storage, ctx_a):
    """Product in Store A."""
    return products_service.create_product(storage, ctx_a, {
        "name": "Mouse Logitech MX Master",
        "sku": "MS-LOG-001",
        "price": 449.9,
        "cost": 320.0,
        "stock": 45,
        "category": "Periféricos",
    })


@pytest.fixture(scope='function')
def product_b(storage, ctx_b):
    """Product in Store B."""
    return products_service.create_product(storage, ctx_b, {
        "name": "Webcam Logitech C920",
        "sku": "WC-LOG-001",
        "price": 399.9,
        "cost": 280.0,
        "stock": 22,
        "category": "Periféricos",
    })
