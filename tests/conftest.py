# tests/conftest.py
import os

# Settings are read once on import; point them at an in-memory database first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("CRON_SECRET", "cron-test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel

from app.core import storage_utils
from app.database import engine
from app.main import app, bootstrap
from app.models.access import SYSTEM_ADMIN_LEVEL

from tests.factories import (
    FakeBucket,
    auth_headers,
    create_address,
    create_product,
    create_user,
)


@pytest.fixture(autouse=True)
def db():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        bootstrap(session)
    yield
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def storage(monkeypatch):
    bucket = FakeBucket()
    monkeypatch.setattr(storage_utils, "_bucket", lambda: bucket)
    return bucket


@pytest.fixture
def customer(session):
    return create_user(session, "somchai")


@pytest.fixture
def customer_headers(customer):
    return auth_headers(customer)


@pytest.fixture
def admin(session):
    return create_user(session, "admin", access_level=SYSTEM_ADMIN_LEVEL)


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def product(session):
    return create_product(session)


@pytest.fixture
def address(session, customer):
    return create_address(session, customer)


@pytest.fixture
def place_order(client, customer_headers, address):
    """Put `quantity` of a product in the cart and check out."""

    def _place(product_id: int, quantity: int = 2, payment_type: str = "bank_transfer") -> dict:
        r = client.post(
            "/api/cart",
            json={"product_id": product_id, "quantity": quantity},
            headers=customer_headers,
        )
        assert r.status_code == 200, r.text
        r = client.post(
            "/api/orders",
            json={"address_id": address.id, "payment_type": payment_type},
            headers=customer_headers,
        )
        assert r.status_code == 201, r.text
        return r.json()

    return _place
