"""Pytest configuration and fixtures for Food Costing tests."""

from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from food_costing.models import Base
from food_costing.services.database import seed_units
from food_costing.utils.config import reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    """Run every test without FOOD_COSTING_* overrides and a fresh Config."""
    for var in (
        "FOOD_COSTING_ENV",
        "FOOD_COSTING_DATABASE_URL",
        "FOOD_COSTING_API_URL",
        "FOOD_COSTING_API_TIMEOUT",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables and seeds the standard units
    3. Points the global session factory at it
    4. Drops all tables after the test completes
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import food_costing.services.database as db_module

    original_get_session_factory = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    session = Session()
    seed_units(session)
    session.commit()

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session_factory


@pytest.fixture(scope="function")
def flour(test_db):
    """Flour: 10.00 per 1 kg bag -> 0.01 per gram."""
    from food_costing.services import item_service

    return item_service.create_item(
        {"name": "Flour", "purchase_unit": "kg", "purchase_cost": Decimal("10.00")}
    )


@pytest.fixture(scope="function")
def sugar(test_db):
    """Sugar: 3.00 per 1 kg bag -> 0.003 per gram."""
    from food_costing.services import item_service

    return item_service.create_item(
        {"name": "Sugar", "purchase_unit": "kg", "purchase_cost": Decimal("3.00")}
    )


@pytest.fixture(scope="function")
def butter(test_db):
    """Butter: 8.00 per 500 g block -> 0.016 per gram."""
    from food_costing.services import item_service

    return item_service.create_item(
        {
            "name": "Butter",
            "purchase_unit": "g",
            "purchase_qty": 500,
            "purchase_cost": Decimal("8.00"),
        }
    )


@pytest.fixture(scope="function")
def dough(test_db, flour, sugar):
    """Dough: 500 g flour + 100 g sugar, yields 600 g -> total 5.30."""
    from food_costing.services import recipe_service

    return recipe_service.create_recipe(
        {"name": "Sweet Dough", "yield_qty_g": 600},
        ingredients=[
            {"item_id": flour.id, "qty_g": 500},
            {"item_id": sugar.id, "qty_g": 100, "waste_pct": 5},
        ],
    )


@pytest.fixture(scope="function")
def pastry(test_db, dough, butter):
    """Pastry: 300 g of dough + 50 g butter -> 2.65 + 0.80 = 3.45."""
    from food_costing.services import product_service

    return product_service.create_product(
        {"name": "Butter Pastry"},
        recipes=[{"recipe_id": dough.id, "qty_g": 300}],
        items=[{"item_id": butter.id, "qty_g": 50}],
    )
