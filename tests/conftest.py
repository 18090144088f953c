"""
Pytest configuration and fixtures.

The engine is built from DATABASE_URL at import time, so the in-memory
SQLite URL has to be in place before the application is imported.
"""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.pop("ACCESS_KEY", None)
os.environ.pop("ORDER_WEBHOOK_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel  # noqa: E402

from gourmetflow import crud  # noqa: E402
from gourmetflow.database import engine, get_session  # noqa: E402
from gourmetflow.main import app  # noqa: E402
from gourmetflow.models import (  # noqa: E402
    Category,
    Coupon,
    Customer,
    DiningTable,
    ItemVariation,
    MenuItem,
)


@pytest.fixture(scope="function")
def db_session():
    """Fresh tables for every test."""
    SQLModel.metadata.create_all(engine)
    session = Session(engine)
    try:
        yield session
    finally:
        session.close()
        SQLModel.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def client(db_session):
    def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def restaurant_settings(db_session):
    settings = crud.get_restaurant_settings(db_session)
    return crud.update_record(
        db_session,
        settings,
        {"name": "Cantina Teste", "delivery_fee": 5.0, "service_fee_rate": 0.10},
    )


@pytest.fixture
def menu(db_session, restaurant_settings):
    """Burger 20.00, pizza 40.00 on promotion at 35.00 with options, soda 5.00."""
    category = crud.create_record(db_session, Category, {"name": "Lanches"})
    burger = crud.create_record(
        db_session, MenuItem, {"name": "X-Burger", "price": 20.0, "category_id": category.id}
    )
    pizza = crud.create_record(
        db_session,
        MenuItem,
        {"name": "Pizza", "price": 40.0, "promotional_price": 35.0, "category_id": category.id},
    )
    soda = crud.create_record(db_session, MenuItem, {"name": "Refrigerante", "price": 5.0})
    large = crud.create_record(
        db_session,
        ItemVariation,
        {"menu_item_id": pizza.id, "name": "Grande", "type": "size", "price_adjustment": 10.0},
    )
    border = crud.create_record(
        db_session,
        ItemVariation,
        {"menu_item_id": pizza.id, "name": "Borda Catupiry", "type": "border", "price_adjustment": 5.0},
    )
    return {
        "category": category,
        "burger": burger,
        "pizza": pizza,
        "soda": soda,
        "large": large,
        "border": border,
    }


@pytest.fixture
def free_table(db_session):
    return crud.create_record(db_session, DiningTable, {"number": 7, "capacity": 4, "status": "free"})


@pytest.fixture
def loyal_customer(db_session):
    return crud.create_record(
        db_session,
        Customer,
        {"name": "Maria", "phone": "11999990000", "loyalty_points": 150},
    )


@pytest.fixture
def coupons(db_session):
    def make(code, **values):
        return crud.create_coupon(db_session, {"code": code, **values})

    return {
        "save10": make("SAVE10", type="percentage", discount_value=10, min_order_value=0),
        "fixed50": make("FIXED50", type="fixed", discount_value=50),
        "freeship": make("FRETEGRATIS", type="free_shipping", discount_value=0),
        "exhausted": make("ACABOU", type="fixed", discount_value=5, max_uses=1, current_uses=1),
        "min100": make("MIN100", type="fixed", discount_value=15, min_order_value=100),
        "inactive": make("VELHO", type="percentage", discount_value=20, is_active=False),
    }
