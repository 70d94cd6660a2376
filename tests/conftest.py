"""Shared fixtures.

Every test gets its own SQLite file, so sessions on separate threads see
the same data and contend for the same write lock.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from stockroom.config import settings
from stockroom.database import build_engine, build_session_factory, init_db
from stockroom.main import create_app
from stockroom.models.product import Product


@pytest.fixture(autouse=True)
def audit_log(tmp_path, monkeypatch):
    path = tmp_path / "transactions.log"
    monkeypatch.setattr(settings, "AUDIT_LOG_PATH", str(path))
    return path


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'ledger.db'}"


@pytest.fixture
def engine(database_url):
    engine = build_engine(database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_product(session_factory):
    """Insert a product through its own short-lived session."""

    def _make(product_id="p1", name="Widget", price="2.50", stock=5, category="tools"):
        with session_factory() as session:
            session.add(Product(id=product_id, name=name, price=Decimal(price), stock=stock, category=category))
            session.commit()
        return product_id

    return _make


@pytest.fixture
def stock_of(session_factory):
    def _stock(product_id):
        with session_factory() as session:
            return session.get(Product, product_id).stock

    return _stock


@pytest.fixture
def client(database_url):
    with TestClient(create_app(database_url)) as c:
        yield c
