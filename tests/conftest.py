import os

os.environ.setdefault("POSTGRES_DSN", "sqlite://")
os.environ.setdefault("KAFKA_ENABLED", "false")

from decimal import Decimal
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from order_service.api import deps
from order_service.core.errors import PaymentSessionError, ProductLookupError
from order_service.db.session import Base
from order_service.main import app
from order_service.schemas import ProductRef
from order_service.services.orders import OrderService
from order_service.store.order_store import OrderStore


class FakeCatalog:
    """In-memory stand-in for the catalog collaborator."""

    def __init__(self, products=()):
        self.products = {p.id: p for p in products}
        self.calls = []
        self.fail = False

    def lookup(self, product_ids):
        ids = sorted(set(product_ids))
        self.calls.append(ids)
        if self.fail:
            raise ProductLookupError()
        return [self.products[i] for i in ids if i in self.products]


class FakePayments:
    def __init__(self):
        self.calls = []
        self.fail = False

    def create_session(self, order_id, currency, items):
        self.calls.append({"order_id": order_id, "currency": currency, "items": items})
        if self.fail:
            raise PaymentSessionError()
        return {"id": f"cs_{order_id}", "url": "https://pay.example.com/session", "currency": currency}


@pytest.fixture
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def catalog():
    return FakeCatalog([
        ProductRef(id=1, name="Widget", price=Decimal("5.0")),
        ProductRef(id=2, name="Gadget", price=Decimal("2.5")),
        ProductRef(id=3, name="Gizmo", price=Decimal("19.99")),
    ])


@pytest.fixture
def payments():
    return FakePayments()


@pytest.fixture
def store(db):
    return OrderStore(db)


@pytest.fixture
def service(store, catalog, payments):
    return OrderService(store, catalog, payments, currency="usd")


@pytest.fixture
def client(session_factory, catalog, payments):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_catalog_client] = lambda: catalog
    app.dependency_overrides[deps.get_payment_client] = lambda: payments
    yield TestClient(app)
    app.dependency_overrides.clear()
