"""Tests for costing against the REST API through ApiCostSource."""

from decimal import Decimal

import httpx
import pytest

from food_costing.api.client import ApiClient
from food_costing.api.session import AuthOrganization, AuthSession, AuthUser
from food_costing.services import costing_service
from food_costing.services.cost_sources import ApiCostSource
from food_costing.services.exceptions import (
    DivisionByZeroError,
    ItemNotFound,
    ProductNotFound,
    RecipeNotFound,
    ValidationError,
)

ITEMS = [
    {"id": 1, "name": "Item A", "base_unit": "g", "cost_per_base_unit": "0.01"},
    {"id": 2, "name": "Item B", "base_unit": "g", "cost_per_base_unit": "0.02"},
    {"id": 3, "name": "Item C", "base_unit": "g", "cost_per_base_unit": "0.05"},
    {"id": 4, "name": "Unpriced", "base_unit": "g", "cost_per_base_unit": None},
]

RECIPES = {
    "10": {"id": 10, "name": "Base", "yield_qty_g": "1000"},
    "11": {"id": 11, "name": "Broken", "yield_qty_g": "0"},
}

RECIPE_ITEMS = {
    "10": [
        {"item_id": 1, "item_name": "Item A", "qty_g": "500", "waste_pct": "0"},
        {"item_id": 2, "item_name": "Item B", "qty_g": "500", "waste_pct": "10"},
    ],
    "11": [{"item_id": 1, "item_name": "Item A", "qty_g": "5"}],
}

PRODUCTS = {
    "100": {
        "id": 100,
        "name": "Plate",
        # Stale figures from the backend; the engine recomputes
        "total_finished_product_cost": "1.00",
        "recipes": [{"recipe_id": 10, "name": "Base", "qty_g_in_product": "200"}],
        "direct_items": [{"item_id": 3, "name": "Item C", "qty_g": "100"}],
    },
    "101": {
        "id": 101,
        "name": "Broken Plate",
        "recipes": [{"recipe_id": 11, "qty_g_in_product": "10"}],
        "direct_items": [],
    },
    "102": {
        "id": 102,
        "name": "Special",
        "recipes": [],
        "direct_items": [
            {"item_id": 99, "name": "Off-list", "qty_g": "10", "cost_per_base_unit": "0.5"}
        ],
    },
    "103": {
        "id": 103,
        "name": "Side",
        "recipes": [],
        # Cached line rate is ignored in favour of the item list
        "direct_items": [
            {"item_id": 1, "name": "Item A", "qty_g": "500", "cost_per_base_unit": "0.99"}
        ],
    },
}


class FakeBackend:
    """Routes org 3 requests to the fixture tables above and counts calls."""

    def __init__(self):
        self.calls = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)
        parts = path.strip("/").split("/")

        if path == "/items/3/items/get":
            return httpx.Response(200, json=ITEMS)
        if path == "/products/3/return_product_list":
            summaries = [{"id": p["id"], "name": p["name"]} for p in PRODUCTS.values()]
            return httpx.Response(200, json=summaries)
        if parts[:3] == ["recipes", "3", "recipes"] and parts[-1] == "return_single_recipe":
            recipe = RECIPES.get(parts[3])
            return httpx.Response(200, json=recipe) if recipe else httpx.Response(404)
        if parts[:3] == ["recipes", "3", "recipes"] and parts[-1] == "items":
            lines = RECIPE_ITEMS.get(parts[3])
            return httpx.Response(200, json=lines) if lines is not None else httpx.Response(404)
        if parts[:3] == ["products", "3", "products"] and parts[-1] == "return_single_product":
            product = PRODUCTS.get(parts[3])
            return httpx.Response(200, json=product) if product else httpx.Response(404)
        return httpx.Response(404)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def source(backend):
    session = AuthSession(
        token="tok", user=AuthUser(id=7, email="o@example.com"), organization=AuthOrganization(id=3)
    )
    client = ApiClient(session, base_url="https://api.test", transport=httpx.MockTransport(backend))
    yield ApiCostSource(client)
    client.close()


class TestApiCostSource:
    def test_item_cost(self, source):
        result = costing_service.cost_item(2, source=source)
        assert result.cost_per_base_unit == Decimal("0.02")
        assert result.name == "Item B"

    def test_unknown_item(self, source):
        with pytest.raises(ItemNotFound):
            costing_service.cost_item(42, source=source)

    def test_recipe_cost(self, source):
        result = costing_service.cost_recipe(10, source=source)
        assert result.total_recipe_cost == Decimal("15.00")
        assert result.recipe_cost_per_gram == Decimal("0.015")
        assert result.lines[1].waste_pct == Decimal("10")

    def test_unknown_recipe(self, source):
        with pytest.raises(RecipeNotFound):
            costing_service.cost_recipe(404, source=source)

    def test_product_cost_is_recomputed(self, source):
        result = costing_service.cost_product(100, source=source)
        assert result.name == "Plate"
        assert result.total_recipes_cost == Decimal("3.00")
        assert result.total_direct_items_cost == Decimal("5.00")
        assert result.total_finished_product_cost == Decimal("8.00")

    def test_zero_yield_recipe_in_product(self, source):
        with pytest.raises(DivisionByZeroError):
            costing_service.cost_product(101, source=source)

    def test_item_without_cost_is_rejected(self, source):
        with pytest.raises(ValidationError) as exc_info:
            costing_service.cost_item(4, source=source)
        assert "Unpriced" in str(exc_info.value)

    def test_items_missing_from_list_are_not_costed_from_line_rate(self, source):
        with pytest.raises(ItemNotFound):
            costing_service.cost_product(102, source=source)

    def test_current_item_rate_wins_over_cached_line_rate(self, source):
        result = costing_service.cost_product(103, source=source)
        assert result.total_direct_items_cost == Decimal("5.00")

    def test_unknown_product(self, source):
        with pytest.raises(ProductNotFound):
            costing_service.cost_product(404, source=source)

    def test_item_list_fetched_once(self, source, backend):
        costing_service.cost_product(100, source=source)
        costing_service.cost_recipe(10, source=source)
        assert backend.calls.count("/items/3/items/get") == 1

    def test_cost_all_products_requires_ids(self, source):
        with pytest.raises(ValueError):
            costing_service.cost_all_products(source=source)

    def test_cost_all_products(self, source):
        results = costing_service.cost_all_products(source=source, product_ids=[100, 103])
        assert [r.total_finished_product_cost for r in results] == [
            Decimal("8.00"),
            Decimal("5.00"),
        ]
