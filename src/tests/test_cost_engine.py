"""
Tests for the cost engine.

Covers item cost per base unit, recipe cost aggregation and product cost
aggregation, including worked examples (flour at 10.00/kg, a 1 kg recipe
costing 15.00, a product mixing recipe and direct item usage) and the error
paths (zero yield, malformed inputs).
"""

import logging
from decimal import Decimal
from itertools import permutations
from types import SimpleNamespace

import pytest

from food_costing.services.cost_engine import (
    IngredientLineInput,
    ItemCostInput,
    ItemUsageInput,
    ProductCostInput,
    RecipeCostInput,
    RecipeUsageInput,
    compute_item_cost_per_base_unit,
    compute_product_cost,
    compute_recipe_cost,
    sum_ingredient_costs,
    to_decimal,
)
from food_costing.services.exceptions import DivisionByZeroError, ValidationError


def _item(item_id, name, rate=None, cost=None, base_qty=None):
    return ItemCostInput(
        item_id=item_id,
        name=name,
        purchase_cost=Decimal(cost) if cost is not None else None,
        base_qty_per_purchase=Decimal(base_qty) if base_qty is not None else None,
        cost_per_base_unit=Decimal(rate) if rate is not None else None,
    )


@pytest.fixture
def item_a():
    return _item(1, "Item A", rate="0.01")


@pytest.fixture
def item_b():
    return _item(2, "Item B", rate="0.02")


@pytest.fixture
def item_c():
    return _item(3, "Item C", rate="0.05")


@pytest.fixture
def recipe_b():
    return RecipeCostInput(recipe_id=10, name="Base", yield_qty_g=Decimal("1000"))


@pytest.fixture
def recipe_b_lines(item_a, item_b):
    return [
        IngredientLineInput(item=item_a, qty_g=Decimal("500")),
        IngredientLineInput(item=item_b, qty_g=Decimal("500")),
    ]


class TestToDecimal:
    """Tests for numeric input coercion."""

    def test_passes_decimal_through(self):
        value = Decimal("1.25")
        assert to_decimal(value) is value

    def test_float_uses_shortest_repr(self):
        assert to_decimal(0.1) == Decimal("0.1")

    def test_int_and_string(self):
        assert to_decimal(5) == Decimal(5)
        assert to_decimal(" 2.50 ") == Decimal("2.50")

    @pytest.mark.parametrize("bad", [None, True, "abc", "NaN", "Infinity", float("inf")])
    def test_rejects_non_numbers(self, bad):
        with pytest.raises(ValidationError):
            to_decimal(bad, "Qty")


class TestComputeItemCostPerBaseUnit:
    """Tests for the unit/quantity normalizer."""

    def test_purchase_cost_over_base_qty(self):
        """10.00 for 1000 g costs 0.01 per gram."""
        item = _item(1, "Flour", cost="10.00", base_qty="1000")
        assert compute_item_cost_per_base_unit(item) == Decimal("0.01")

    def test_precomputed_rate_used_without_base_qty(self):
        item = _item(1, "Flour", rate="0.0125")
        assert compute_item_cost_per_base_unit(item) == Decimal("0.0125")

    def test_purchase_fields_win_over_precomputed_rate(self):
        item = _item(1, "Flour", rate="99", cost="10.00", base_qty="1000")
        assert compute_item_cost_per_base_unit(item) == Decimal("0.01")

    def test_accepts_orm_like_objects(self):
        item = SimpleNamespace(name="Salt", purchase_cost=2, base_qty_per_purchase="500")
        assert compute_item_cost_per_base_unit(item) == Decimal("0.004")

    def test_zero_cost_is_allowed(self):
        item = _item(1, "Water", cost="0", base_qty="1000")
        assert compute_item_cost_per_base_unit(item) == 0

    @pytest.mark.parametrize("base_qty", ["0", "-1"])
    def test_non_positive_base_qty_rejected(self, base_qty):
        item = _item(1, "Flour", cost="10.00", base_qty=base_qty)
        with pytest.raises(ValidationError) as exc_info:
            compute_item_cost_per_base_unit(item)
        assert "greater than zero" in str(exc_info.value)

    def test_negative_cost_rejected(self):
        item = _item(1, "Flour", cost="-1", base_qty="1000")
        with pytest.raises(ValidationError):
            compute_item_cost_per_base_unit(item)

    def test_negative_precomputed_rate_rejected(self):
        with pytest.raises(ValidationError):
            compute_item_cost_per_base_unit(_item(1, "Flour", rate="-0.01"))

    def test_missing_cost_data_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            compute_item_cost_per_base_unit(_item(1, "Mystery"))
        assert "Mystery" in str(exc_info.value)

    def test_division_is_not_rounded_to_money(self):
        item = _item(1, "Nuts", cost="10.00", base_qty="3")
        rate = compute_item_cost_per_base_unit(item)
        assert str(rate) == "3." + "3" * 33


class TestComputeRecipeCost:
    """Tests for the recipe cost aggregator."""

    def test_two_line_recipe(self, recipe_b, recipe_b_lines):
        """500 g at 0.01 plus 500 g at 0.02 over a 1000 g yield."""
        result = compute_recipe_cost(recipe_b, recipe_b_lines)

        assert result.total_recipe_cost == Decimal("15.00")
        assert result.recipe_cost_per_gram == Decimal("0.015")
        assert [line.line_cost for line in result.lines] == [Decimal("5.00"), Decimal("10.00")]

    def test_line_order_does_not_change_total(self, recipe_b, item_a, item_b, item_c):
        lines = [
            IngredientLineInput(item=item_a, qty_g=Decimal("333.333")),
            IngredientLineInput(item=item_b, qty_g=Decimal("0.7")),
            IngredientLineInput(item=item_c, qty_g=Decimal("12.345")),
        ]
        results = {
            (
                compute_recipe_cost(recipe_b, order).total_recipe_cost,
                compute_recipe_cost(recipe_b, order).recipe_cost_per_gram,
            )
            for order in permutations(lines)
        }
        assert len(results) == 1

    def test_recomputing_gives_identical_result(self, recipe_b, recipe_b_lines):
        first = compute_recipe_cost(recipe_b, recipe_b_lines)
        second = compute_recipe_cost(recipe_b, recipe_b_lines)
        assert first == second
        assert str(first.recipe_cost_per_gram) == str(second.recipe_cost_per_gram)

    def test_total_is_exact_sum_of_lines(self, recipe_b, item_a, item_b):
        lines = [
            IngredientLineInput(item=item_a, qty_g=Decimal("0.1")),
            IngredientLineInput(item=item_b, qty_g=Decimal("0.2")),
        ]
        result = compute_recipe_cost(recipe_b, lines)
        assert result.total_recipe_cost == Decimal("0.001") + Decimal("0.004")

    def test_repeating_rates_total_does_not_depend_on_order(self, recipe_b):
        lines = [
            IngredientLineInput(_item(21, "Thirds", cost="10.00", base_qty="3"), Decimal("240000")),
            IngredientLineInput(_item(22, "Sevenths", cost="1.00", base_qty="7"), Decimal("333.3")),
            IngredientLineInput(_item(23, "Saffron", cost="999.99", base_qty="13"), Decimal("43")),
            IngredientLineInput(_item(24, "Salt", cost="0.01", base_qty="11"), Decimal("0.7")),
        ]
        totals = {
            compute_recipe_cost(recipe_b, order).total_recipe_cost for order in permutations(lines)
        }
        assert len(totals) == 1

    def test_line_costs_share_one_scale(self, recipe_b):
        lines = [
            IngredientLineInput(_item(21, "Thirds", cost="10.00", base_qty="3"), Decimal("1")),
            IngredientLineInput(_item(22, "Sevenths", cost="1.00", base_qty="7"), Decimal("1")),
        ]
        result = compute_recipe_cost(recipe_b, lines)

        assert [line.line_cost for line in result.lines] == [
            Decimal("3.333333333333"),
            Decimal("0.142857142857"),
        ]
        assert result.total_recipe_cost == Decimal("3.476190476190")
        assert str(result.lines[0].cost_per_base_unit) == "3." + "3" * 33

    def test_waste_out_of_range_message(self, recipe_b, item_a):
        lines = [IngredientLineInput(item=item_a, qty_g=Decimal("1"), waste_pct=Decimal("101"))]
        with pytest.raises(ValidationError) as exc_info:
            compute_recipe_cost(recipe_b, lines)
        assert "Must be between 0 and 100" in str(exc_info.value)

    @pytest.mark.parametrize("yield_qty", ["0", "-5"])
    def test_non_positive_yield_raises_division_by_zero(self, recipe_b_lines, yield_qty):
        recipe = RecipeCostInput(recipe_id=11, name="Broken", yield_qty_g=Decimal(yield_qty))
        with pytest.raises(DivisionByZeroError) as exc_info:
            compute_recipe_cost(recipe, recipe_b_lines)
        assert exc_info.value.what == "yield_qty_g"
        assert "Broken" in str(exc_info.value)

    def test_zero_yield_is_logged(self, recipe_b_lines, caplog):
        recipe = RecipeCostInput(recipe_id=11, name="Broken", yield_qty_g=Decimal("0"))
        with caplog.at_level(logging.WARNING, logger="food_costing.services.cost_engine"):
            with pytest.raises(DivisionByZeroError):
                compute_recipe_cost(recipe, recipe_b_lines)
        record = caplog.records[-1]
        assert record.operation == "compute_recipe_cost"
        assert record.outcome == "zero_yield"
        assert record.recipe_id == 11

    def test_waste_pct_is_reported_but_not_costed(self, recipe_b, item_a):
        plain = compute_recipe_cost(recipe_b, [IngredientLineInput(item_a, Decimal("100"))])
        wasted = compute_recipe_cost(
            recipe_b, [IngredientLineInput(item_a, Decimal("100"), Decimal("25"))]
        )
        assert plain.total_recipe_cost == wasted.total_recipe_cost == Decimal("1.00")
        assert wasted.lines[0].waste_pct == Decimal("25")

    def test_negative_quantity_rejected(self, recipe_b, item_a):
        with pytest.raises(ValidationError):
            compute_recipe_cost(recipe_b, [IngredientLineInput(item_a, Decimal("-1"))])

    @pytest.mark.parametrize("waste", ["-1", "100.01"])
    def test_waste_out_of_range_rejected(self, recipe_b, item_a, waste):
        with pytest.raises(ValidationError):
            compute_recipe_cost(
                recipe_b, [IngredientLineInput(item_a, Decimal("10"), Decimal(waste))]
            )

    def test_no_lines_costs_zero(self, recipe_b):
        result = compute_recipe_cost(recipe_b, [])
        assert result.total_recipe_cost == 0
        assert result.recipe_cost_per_gram == 0
        assert result.lines == []

    def test_uses_item_purchase_data(self, recipe_b):
        flour = _item(1, "Flour", cost="10.00", base_qty="1000")
        result = compute_recipe_cost(recipe_b, [IngredientLineInput(flour, Decimal("250"))])
        assert result.total_recipe_cost == Decimal("2.50")

    def test_sum_ingredient_costs_keeps_input_order(self, item_a, item_b):
        total, lines = sum_ingredient_costs(
            [IngredientLineInput(item_b, Decimal("1")), IngredientLineInput(item_a, Decimal("1"))]
        )
        assert total == Decimal("0.03")
        assert [line.item_id for line in lines] == [2, 1]

    def test_to_dict_formats_for_display(self, recipe_b, recipe_b_lines):
        data = compute_recipe_cost(recipe_b, recipe_b_lines).to_dict()

        assert data["total_recipe_cost"] == "15.00"
        assert data["recipe_cost_per_gram"] == "0.015000"
        assert data["items"][0] == {
            "item_id": 1,
            "item_name": "Item A",
            "qty_g": "500",
            "waste_pct": "0",
            "cost_per_base_unit": "0.010000",
            "line_cost": "5.00",
        }


class TestComputeProductCost:
    """Tests for the product cost aggregator."""

    @pytest.fixture
    def product(self):
        return ProductCostInput(product_id=100, name="Plate")

    def test_recipe_and_direct_item(self, product, recipe_b, recipe_b_lines, item_c):
        """200 g of a 0.015/g recipe plus 100 g of a 0.05/g item."""
        result = compute_product_cost(
            product,
            [RecipeUsageInput(recipe_b, Decimal("200"), tuple(recipe_b_lines))],
            [ItemUsageInput(item_c, Decimal("100"))],
        )

        assert result.total_recipes_cost == Decimal("3.00")
        assert result.total_direct_items_cost == Decimal("5.00")
        assert result.total_finished_product_cost == Decimal("8.00")

    def test_grand_total_is_exact_sum(self, product, recipe_b, item_a, item_b, item_c):
        recipe = RecipeCostInput(recipe_id=12, name="Odd", yield_qty_g=Decimal("7"))
        lines = (
            IngredientLineInput(item_a, Decimal("1.1")),
            IngredientLineInput(item_b, Decimal("2.2")),
        )
        result = compute_product_cost(
            product,
            [RecipeUsageInput(recipe, Decimal("3.3"), lines)],
            [ItemUsageInput(item_c, Decimal("0.07")), ItemUsageInput(item_a, Decimal("9"))],
        )
        assert (
            result.total_finished_product_cost
            == result.total_recipes_cost + result.total_direct_items_cost
        )
        assert result.total_direct_items_cost == Decimal("0.0035") + Decimal("0.09")

    def test_breakdown_lines_sum_to_parent(self, product, recipe_b, recipe_b_lines, item_c):
        result = compute_product_cost(
            product,
            [RecipeUsageInput(recipe_b, Decimal("200"), tuple(recipe_b_lines))],
            [ItemUsageInput(item_c, Decimal("100"))],
        )
        recipe = result.recipes[0]

        assert [i.cost_in_product for i in recipe.items] == [Decimal("1.00"), Decimal("2.00")]
        assert sum(i.cost_in_product for i in recipe.items) == recipe.cost_for_recipe_in_product
        assert sum(i.cost_in_full_recipe for i in recipe.items) == recipe.total_recipe_cost
        assert sum(d.cost_for_item_in_product for d in result.direct_items) == (
            result.total_direct_items_cost
        )

    def test_recipe_with_zero_yield_propagates(self, product, recipe_b_lines):
        broken = RecipeCostInput(recipe_id=13, name="Broken", yield_qty_g=Decimal("0"))
        with pytest.raises(DivisionByZeroError):
            compute_product_cost(
                product, [RecipeUsageInput(broken, Decimal("10"), tuple(recipe_b_lines))], []
            )

    def test_negative_usage_rejected(self, product, item_c):
        with pytest.raises(ValidationError):
            compute_product_cost(product, [], [ItemUsageInput(item_c, Decimal("-1"))])

    def test_empty_usage_lists_cost_zero(self, product):
        """The at-least-one-usage rule lives in validation, not here."""
        result = compute_product_cost(product, [], [])
        assert result.total_finished_product_cost == 0

    def test_recomputing_gives_identical_result(
        self, product, recipe_b, recipe_b_lines, item_c
    ):
        usages = [RecipeUsageInput(recipe_b, Decimal("123.4"), tuple(recipe_b_lines))]
        items = [ItemUsageInput(item_c, Decimal("56.7"))]
        assert compute_product_cost(product, usages, items) == compute_product_cost(
            product, usages, items
        )

    def test_to_dict(self, product, recipe_b, recipe_b_lines, item_c):
        data = compute_product_cost(
            product,
            [RecipeUsageInput(recipe_b, Decimal("200"), tuple(recipe_b_lines))],
            [ItemUsageInput(item_c, Decimal("100"))],
        ).to_dict()

        assert data["product_id"] == 100
        assert data["total_recipes_cost"] == "3.00"
        assert data["total_direct_items_cost"] == "5.00"
        assert data["total_finished_product_cost"] == "8.00"
        assert data["recipes"][0]["cost_for_recipe_in_product"] == "3.00"
        assert data["recipes"][0]["items"][1]["cost_in_product"] == "2.00"
        assert data["direct_items"][0] == {
            "item_id": 3,
            "name": "Item C",
            "qty_g": "100",
            "cost_per_base_unit": "0.050000",
            "cost_for_item_in_product": "5.00",
        }
