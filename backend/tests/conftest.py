"""
Pytest fixtures for the stock ledger tests.

Every test gets a fresh in-memory SQLite database. Ledger-level tests use
the ``db`` session directly; API tests go through ``client``, whose requests
open their own sessions on the same database.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from models.log import Log  # noqa: F401
from models.product import Product
from models.stock import StockBalance, StockMovement
from models.users import User
from models.warehouse import Warehouse
from services.ledger import StockLedger
from utils.tokenJWT import create_access_token


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def owner(db):
    user = User(email="owner@example.com", name="Owner")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def stranger(db):
    """Another account; nothing it owns may leak into the owner's ledger."""
    user = User(email="stranger@example.com", name="Stranger")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def p1(db, owner):
    product = Product(name="Widget", sku="WID-001", owner_id=owner.id)
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def p2(db, owner):
    product = Product(name="Gadget", sku="GAD-001", owner_id=owner.id)
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def w1(db, owner):
    warehouse = Warehouse(name="Main", owner_id=owner.id)
    db.add(warehouse)
    db.commit()
    return warehouse


@pytest.fixture
def w2(db, owner):
    warehouse = Warehouse(name="Store", owner_id=owner.id)
    db.add(warehouse)
    db.commit()
    return warehouse


@pytest.fixture
def foreign_product(db, stranger):
    product = Product(name="Not yours", sku="FOREIGN-001", owner_id=stranger.id)
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def foreign_warehouse(db, stranger):
    warehouse = Warehouse(name="Elsewhere", owner_id=stranger.id)
    db.add(warehouse)
    db.commit()
    return warehouse


@pytest.fixture
def ledger(db):
    return StockLedger(db, policy="reject", max_retries=3)


@pytest.fixture
def clamping_ledger(db):
    return StockLedger(db, policy="clamp", max_retries=3)


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(owner):
    return {"Authorization": f"Bearer {create_access_token({'sub': owner.id})}"}


@pytest.fixture
def stranger_headers(stranger):
    return {"Authorization": f"Bearer {create_access_token({'sub': stranger.id})}"}


# ---- helpers ----

def balance_of(db, product_id, warehouse_id):
    """Stored quantity of a pair; a missing row reads as zero."""
    row = (
        db.query(StockBalance)
        .filter(StockBalance.product_id == product_id, StockBalance.warehouse_id == warehouse_id)
        .first()
    )
    return row.quantity if row is not None else 0


def movement_count(db):
    return db.query(StockMovement).count()
