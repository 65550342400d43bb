"""
Pytest fixtures for POS backend tests.

Provides the app on in-memory SQLite, a per-test table wipe, staff/catalog
factories and bearer-token headers for the Flask test client.
"""

import itertools

import pytest

from posapp import create_app
from posapp.config import TestingConfig
from posapp.extensions import db
from posapp.services import catalog_service, customer_service, session_service, user_service


DEFAULT_PASSWORD = "secret1"

_sku_counter = itertools.count(1)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function', autouse=True)
def db_session(app):
    """Fresh data for each test; schema is kept."""
    with app.app_context():
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture
def make_user(db_session):
    def _make(username: str, role: str = "cashier", password: str = DEFAULT_PASSWORD, is_active: bool = True):
        user = user_service.create_user(
            username=username,
            email=f"{username}@pos.test",
            password=password,
            full_name=username.title(),
            role=role,
        )
        if not is_active:
            user_service.update_user_status(user.id, False)
        return user
    return _make


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="admin")


@pytest.fixture
def manager(make_user):
    return make_user("manager", role="manager")


@pytest.fixture
def cashier(make_user):
    return make_user("cashier", role="cashier")


@pytest.fixture
def customer(db_session):
    return customer_service.create_customer(name="Alice Buyer", email="alice@example.com")


@pytest.fixture
def make_variant(db_session):
    """Create a product + variant. Prices are in cents."""
    def _make(stock: int = 10, threshold: int = 5, price_cents: int = 1599, name: str = "T-Shirt"):
        n = next(_sku_counter)
        product = catalog_service.create_product(name=f"{name} {n}", base_price_cents=price_cents)
        return catalog_service.create_product_variant(
            product_id=product.id,
            variant_name=f"{name} {n} / M",
            sku=f"SKU-{n:05d}",
            price_cents=price_cents,
            stock_quantity=stock,
            low_stock_threshold=threshold,
            size="M",
        )
    return _make


@pytest.fixture
def variant(make_variant):
    return make_variant()


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def headers_for(db_session):
    def _headers(user) -> dict:
        _, token = session_service.create_session(user.id)
        return auth_headers(token)
    return _headers


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin)


@pytest.fixture
def manager_headers(manager, headers_for):
    return headers_for(manager)


@pytest.fixture
def cashier_headers(cashier, headers_for):
    return headers_for(cashier)
