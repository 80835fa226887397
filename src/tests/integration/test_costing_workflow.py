"""Integration tests for costing items, recipes and products end to end.

Each test builds its data through the services into the local database and
costs it back out, checking both the fresh engine result and the stored totals.
"""

from decimal import Decimal

import pytest

from food_costing.services import costing_service, item_service, product_service, recipe_service
from food_costing.services.exceptions import ValidationError


def _item(name, cost_per_kg):
    return item_service.create_item(
        {
            "name": name,
            "purchase_unit": "g",
            "purchase_qty": 1000,
            "purchase_cost": Decimal(cost_per_kg),
        }
    )


@pytest.fixture
def base_recipe(test_db):
    item_a = _item("Item A", "10.00")
    item_b = _item("Item B", "20.00")
    return recipe_service.create_recipe(
        {"name": "Base", "yield_qty_g": 1000},
        ingredients=[
            {"item_id": item_a.id, "qty_g": 500},
            {"item_id": item_b.id, "qty_g": 500},
        ],
    )


def test_item_cost_per_gram(test_db):
    """10.00 per 1000 g costs 0.01 per gram."""
    item = _item("Item A", "10.00")

    assert costing_service.cost_item(item.id).cost_per_base_unit == Decimal("0.01")


def test_recipe_totals(base_recipe):
    """500 g at 0.01 plus 500 g at 0.02, yielding 1000 g."""
    result = costing_service.cost_recipe(base_recipe.id)

    assert result.total_recipe_cost == Decimal("15.00")
    assert result.recipe_cost_per_gram == Decimal("0.015")
    assert [line.line_cost for line in result.lines] == [Decimal("5.00"), Decimal("10.00")]

    stored = recipe_service.get_recipe(base_recipe.id)
    assert stored.total_recipe_cost == Decimal("15.00")


def test_product_totals(base_recipe):
    """200 g of the recipe plus 100 g of an item at 0.05."""
    item_c = _item("Item C", "50.00")
    product = product_service.create_product(
        {"name": "Plate"},
        recipes=[{"recipe_id": base_recipe.id, "qty_g": 200}],
        items=[{"item_id": item_c.id, "qty_g": 100}],
    )

    result = costing_service.cost_product(product.id)
    assert result.total_recipes_cost == Decimal("3.00")
    assert result.total_direct_items_cost == Decimal("5.00")
    assert result.total_finished_product_cost == Decimal("8.00")

    stored = product_service.get_product(product.id)
    assert stored.total_finished_product_cost == Decimal("8.00")

    breakdown = product_service.get_product_with_costs(product.id)
    assert breakdown["total_finished_product_cost"] == "8.00"
    assert breakdown["recipes"][0]["cost_for_recipe_in_product"] == "3.00"
    assert breakdown["direct_items"][0]["cost_for_item_in_product"] == "5.00"


def test_zero_yield_rejected(base_recipe):
    """A zero yield never reaches the aggregator through the services."""
    with pytest.raises(ValidationError):
        recipe_service.create_recipe({"name": "Broken", "yield_qty_g": 0})

    with pytest.raises(ValidationError):
        recipe_service.update_recipe(base_recipe.id, {"yield_qty_g": 0})

    assert recipe_service.get_recipe(base_recipe.id).yield_qty_g == Decimal("1000")


def test_empty_product_rejected(test_db):
    """A product with no usage lines is never stored."""
    with pytest.raises(ValidationError):
        product_service.create_product({"name": "Empty"})

    assert product_service.list_products() == []
