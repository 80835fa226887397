"""Tests for database setup and reset against a file-backed SQLite database."""

import pytest

from food_costing.services import item_service
from food_costing.services.database import (
    close_connections,
    initialize_app_database,
    reset_database,
    verify_database,
)


@pytest.fixture
def file_db(tmp_path, monkeypatch):
    db_file = tmp_path / "costing.db"
    monkeypatch.setenv("FOOD_COSTING_DATABASE_URL", f"sqlite:///{db_file.as_posix()}")
    close_connections()
    initialize_app_database()
    yield db_file
    close_connections()


def test_reset_requires_confirmation(file_db):
    item_service.create_item({"name": "Flour", "purchase_unit": "kg", "purchase_cost": "10.00"})

    with pytest.raises(ValueError):
        reset_database()

    assert [item.name for item in item_service.list_items()] == ["Flour"]


def test_reset_deletes_data_and_reseeds_units(file_db):
    item_service.create_item({"name": "Flour", "purchase_unit": "kg", "purchase_cost": "10.00"})

    reset_database(confirm=True)

    assert verify_database()
    assert item_service.list_items() == []
    assert "kg" in {unit.symbol for unit in item_service.list_units()}
