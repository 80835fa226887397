"""
Tests for costing_service against the local database.

Stored recipe and product totals must always match what the engine computes
from the current lines and item prices.
"""

from decimal import Decimal

import pytest

from food_costing.services import (
    costing_service,
    item_service,
    product_service,
    recipe_service,
)
from food_costing.services.cost_sources import DatabaseCostSource
from food_costing.services.database import session_scope
from food_costing.services.exceptions import ItemNotFound, ProductNotFound, RecipeNotFound

CENT = Decimal("0.01")

# Stored totals are Numeric(16, 6)
COLUMN_STEP = Decimal("0.000001")


def assert_close(stored, computed):
    assert abs(stored - computed) <= COLUMN_STEP, f"{stored} != {computed}"


def assert_snapshots_match_engine(product_id, recipe_ids):
    """Stored totals equal fresh engine results to the column scale."""
    for recipe_id in recipe_ids:
        recipe = recipe_service.get_recipe(recipe_id)
        result = costing_service.cost_recipe(recipe_id)
        assert_close(recipe.total_recipe_cost, result.total_recipe_cost)

    product = product_service.get_product(product_id)
    result = costing_service.cost_product(product_id)
    assert_close(product.total_recipes_cost, result.total_recipes_cost)
    assert_close(product.total_direct_items_cost, result.total_direct_items_cost)
    assert_close(product.total_finished_product_cost, result.total_finished_product_cost)


class TestCostReads:
    def test_cost_item(self, test_db, butter):
        result = costing_service.cost_item(butter.id)
        assert result.cost_per_base_unit == Decimal("0.016")
        assert result.to_dict() == {
            "item_id": butter.id,
            "name": "Butter",
            "base_unit": "g",
            "cost_per_base_unit": "0.016000",
        }

    def test_cost_recipe(self, test_db, dough):
        result = costing_service.cost_recipe(dough.id)
        assert result.total_recipe_cost == Decimal("5.30")
        assert result.to_dict()["recipe_cost_per_gram"] == "0.008833"

    def test_cost_product(self, test_db, pastry):
        result = costing_service.cost_product(pastry.id)
        assert result.name == "Butter Pastry"
        assert result.total_recipes_cost.quantize(CENT) == Decimal("2.65")
        assert result.total_direct_items_cost == Decimal("0.80")
        assert result.total_finished_product_cost == (
            result.total_recipes_cost + result.total_direct_items_cost
        )

    def test_not_found(self, test_db):
        with pytest.raises(ItemNotFound):
            costing_service.cost_item(1)
        with pytest.raises(RecipeNotFound):
            costing_service.cost_recipe(1)
        with pytest.raises(ProductNotFound):
            costing_service.cost_product(1)

    def test_with_explicit_session(self, test_db, pastry):
        with session_scope() as session:
            result = costing_service.cost_product(pastry.id, session=session)
            assert result.product_id == pastry.id

    def test_with_database_source(self, test_db, dough):
        with session_scope() as session:
            result = costing_service.cost_recipe(dough.id, source=DatabaseCostSource(session))
            assert result.total_recipe_cost == Decimal("5.30")

    def test_cost_all_products_sorted_by_name(self, test_db, pastry, butter):
        product_service.create_product(
            {"name": "A Butter Pat"}, items=[{"item_id": butter.id, "qty_g": 10}]
        )
        results = costing_service.cost_all_products()
        assert [r.name for r in results] == ["A Butter Pat", "Butter Pastry"]

    def test_cost_all_products_selected_ids(self, test_db, pastry):
        results = costing_service.cost_all_products(product_ids=[pastry.id])
        assert [r.product_id for r in results] == [pastry.id]


class TestSnapshots:
    """Stored totals track the engine through a sequence of edits."""

    def test_full_edit_sequence(self, test_db, flour, sugar, butter, dough, pastry):
        assert_snapshots_match_engine(pastry.id, [dough.id])

        item_service.update_item(sugar.id, {"purchase_cost": "4.50"})
        assert_snapshots_match_engine(pastry.id, [dough.id])

        recipe_service.upsert_recipe_item(dough.id, butter.id, 40, waste_pct=2)
        assert_snapshots_match_engine(pastry.id, [dough.id])

        recipe_service.update_recipe(dough.id, {"yield_qty_g": 640})
        assert_snapshots_match_engine(pastry.id, [dough.id])

        product_service.upsert_product_item(pastry.id, flour.id, 15)
        assert_snapshots_match_engine(pastry.id, [dough.id])

        recipe_service.remove_recipe_item(dough.id, sugar.id)
        assert_snapshots_match_engine(pastry.id, [dough.id])

    def test_refresh_after_item_change_counts_products(self, test_db, flour, butter, pastry):
        with session_scope() as session:
            assert costing_service.refresh_after_item_change(flour.id, session) == 1
            assert costing_service.refresh_after_item_change(butter.id, session) == 1

    def test_refresh_unknown_recipe_is_noop(self, test_db):
        with session_scope() as session:
            assert costing_service.refresh_after_recipe_change(404, session) == 0
