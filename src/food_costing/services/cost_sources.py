"""
Data sources that feed the cost engine.

The engine in cost_engine.py is pure: it costs whatever inputs it is given.
A CostDataSource resolves ids into those inputs from a backing store, with
current item costs, so every computation sees one consistent snapshot:

- DatabaseCostSource reads the local SQLAlchemy store inside one session
- ApiCostSource reads the backend REST API through an ApiClient

Unknown ids raise the matching NotFoundError subclass.
"""

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from food_costing.models.item import Item
from food_costing.models.product import Product
from food_costing.models.recipe import Recipe
from food_costing.services.cost_engine import (
    ZERO,
    IngredientLineInput,
    ItemCostInput,
    ItemUsageInput,
    RecipeCostInput,
    RecipeUsageInput,
)
from food_costing.services.exceptions import (
    ItemNotFound,
    ProductNotFound,
    RecipeNotFound,
    ValidationError,
)
from food_costing.utils.constants import BASE_UNIT

if TYPE_CHECKING:
    from food_costing.api.client import ApiClient
    from food_costing.api.schemas import ItemDetail, ProductDetail


class CostDataSource(Protocol):
    """Resolves ids into cost engine inputs."""

    def get_item(self, item_id: Any) -> ItemCostInput:
        ...

    def get_recipe(self, recipe_id: Any) -> RecipeCostInput:
        ...

    def get_recipe_ingredient_lines(self, recipe_id: Any) -> List[IngredientLineInput]:
        ...

    def get_recipe_usages(self, product_id: Any) -> List[RecipeUsageInput]:
        ...

    def get_item_usages(self, product_id: Any) -> List[ItemUsageInput]:
        ...

    def get_product_name(self, product_id: Any) -> str:
        ...


# ============================================================================
# Local store
# ============================================================================


def item_input_from_model(item: Item) -> ItemCostInput:
    return ItemCostInput(
        item_id=item.id,
        name=item.name,
        purchase_cost=item.purchase_cost,
        base_qty_per_purchase=item.base_qty_per_purchase,
        base_unit=item.base_unit,
    )


def recipe_input_from_model(recipe: Recipe) -> RecipeCostInput:
    return RecipeCostInput(recipe_id=recipe.id, name=recipe.name, yield_qty_g=recipe.yield_qty_g)


class DatabaseCostSource:
    """
    CostDataSource over the local database.

    Args:
        session: Open session; all reads go through it
    """

    def __init__(self, session: Session):
        self.session = session

    def _item(self, item_id: Any) -> Item:
        item = self.session.get(Item, item_id)
        if item is None:
            raise ItemNotFound(item_id)
        return item

    def _recipe(self, recipe_id: Any) -> Recipe:
        recipe = self.session.get(Recipe, recipe_id)
        if recipe is None:
            raise RecipeNotFound(recipe_id)
        return recipe

    def _product(self, product_id: Any) -> Product:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    def get_item(self, item_id: Any) -> ItemCostInput:
        return item_input_from_model(self._item(item_id))

    def get_recipe(self, recipe_id: Any) -> RecipeCostInput:
        return recipe_input_from_model(self._recipe(recipe_id))

    def get_recipe_ingredient_lines(self, recipe_id: Any) -> List[IngredientLineInput]:
        recipe = self._recipe(recipe_id)
        return [
            IngredientLineInput(
                item=item_input_from_model(line.item),
                qty_g=line.qty_g,
                waste_pct=line.waste_pct if line.waste_pct is not None else ZERO,
            )
            for line in recipe.recipe_ingredients
        ]

    def get_recipe_usages(self, product_id: Any) -> List[RecipeUsageInput]:
        product = self._product(product_id)
        return [
            RecipeUsageInput(
                recipe=recipe_input_from_model(usage.recipe),
                qty_g=usage.qty_g,
                ingredient_lines=tuple(self.get_recipe_ingredient_lines(usage.recipe_id)),
            )
            for usage in product.product_recipes
        ]

    def get_item_usages(self, product_id: Any) -> List[ItemUsageInput]:
        product = self._product(product_id)
        return [
            ItemUsageInput(item=item_input_from_model(usage.item), qty_g=usage.qty_g)
            for usage in product.product_items
        ]

    def get_product_name(self, product_id: Any) -> str:
        return self._product(product_id).name


# ============================================================================
# REST API
# ============================================================================


class ApiCostSource:
    """
    CostDataSource over the backend REST API.

    Item costs come from one fetch of the item list per instance, so all
    lines of a computation use the same item prices. Create a new instance
    to pick up price changes.

    Args:
        client: Signed-in ApiClient
    """

    def __init__(self, client: "ApiClient"):
        self.client = client
        self._items: Optional[Dict[str, "ItemDetail"]] = None
        self._products: Dict[str, "ProductDetail"] = {}

    def _item_index(self) -> Dict[str, "ItemDetail"]:
        if self._items is None:
            self._items = {str(item.id): item for item in self.client.list_items()}
        return self._items

    def _product(self, product_id: Any) -> "ProductDetail":
        key = str(product_id)
        if key not in self._products:
            self._products[key] = self.client.get_product(product_id)
        return self._products[key]

    def _item_input(self, item_id: Any) -> ItemCostInput:
        """
        Current cost data for an item from the item list.

        Rates cached on recipe and product lines are never used; they may
        predate the latest price change.

        Raises:
            ItemNotFound: If the item is not in the organization's item list
            ValidationError: If the item has no cost per base unit
        """
        detail = self._item_index().get(str(item_id))
        if detail is None:
            raise ItemNotFound(item_id)
        if detail.cost_per_base_unit is None:
            raise ValidationError(f"Item '{detail.name}': cost per base unit is missing")
        return ItemCostInput(
            item_id=detail.id,
            name=detail.name,
            cost_per_base_unit=detail.cost_per_base_unit,
            base_unit=detail.base_unit or BASE_UNIT,
        )

    def get_item(self, item_id: Any) -> ItemCostInput:
        return self._item_input(item_id)

    def get_recipe(self, recipe_id: Any) -> RecipeCostInput:
        detail = self.client.get_recipe(recipe_id)
        return RecipeCostInput(recipe_id=detail.id, name=detail.name, yield_qty_g=detail.yield_qty_g)

    def get_recipe_ingredient_lines(self, recipe_id: Any) -> List[IngredientLineInput]:
        return [
            IngredientLineInput(
                item=self._item_input(line.item_id),
                qty_g=line.qty_g,
                waste_pct=line.waste_pct,
            )
            for line in self.client.get_recipe_items(recipe_id)
        ]

    def get_recipe_usages(self, product_id: Any) -> List[RecipeUsageInput]:
        return [
            RecipeUsageInput(
                recipe=self.get_recipe(usage.recipe_id),
                qty_g=usage.qty_g_in_product,
                ingredient_lines=tuple(self.get_recipe_ingredient_lines(usage.recipe_id)),
            )
            for usage in self._product(product_id).recipes
        ]

    def get_item_usages(self, product_id: Any) -> List[ItemUsageInput]:
        return [
            ItemUsageInput(
                item=self._item_input(usage.item_id),
                qty_g=usage.qty_g,
            )
            for usage in self._product(product_id).direct_items
        ]

    def get_product_name(self, product_id: Any) -> str:
        return self._product(product_id).name
