"""
Costing Service - resolve inputs from a data source and run the cost engine.

This module is the seam between the stores and the pure engine:

- cost_item / cost_recipe / cost_product read current data from a
  CostDataSource (the local database by default) and return engine results
- refresh_* functions write engine results back onto the stored recipe and
  product cost columns, so those columns never drift from the engine

Session Management Pattern:
- Functions accept an optional `session` parameter
- If session is provided, use it directly (caller owns the transaction)
- If session is None, a new session_scope is opened for the operation
- Passing `source` (e.g. an ApiCostSource) bypasses the database entirely
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Set

from sqlalchemy.orm import Session

from food_costing.models.product import Product, ProductItem, ProductRecipe
from food_costing.models.recipe import Recipe, RecipeIngredient
from food_costing.services.cost_engine import (
    ProductCostInput,
    ProductCostResult,
    RecipeCostResult,
    compute_item_cost_per_base_unit,
    compute_product_cost,
    compute_recipe_cost,
)
from food_costing.services.cost_sources import CostDataSource, DatabaseCostSource
from food_costing.services.database import session_scope
from food_costing.services.dto_utils import rate_to_string
from food_costing.services.logging_utils import get_service_logger, log_operation

logger = get_service_logger(__name__)


@dataclass(frozen=True)
class ItemCostResult:
    item_id: Any
    name: str
    base_unit: str
    cost_per_base_unit: Decimal

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "base_unit": self.base_unit,
            "cost_per_base_unit": rate_to_string(self.cost_per_base_unit),
        }


# ============================================================================
# Cost reads
# ============================================================================


def _cost_item(source: CostDataSource, item_id: Any) -> ItemCostResult:
    item = source.get_item(item_id)
    return ItemCostResult(
        item_id=item.item_id,
        name=item.name,
        base_unit=item.base_unit,
        cost_per_base_unit=compute_item_cost_per_base_unit(item),
    )


def _cost_recipe(source: CostDataSource, recipe_id: Any) -> RecipeCostResult:
    recipe = source.get_recipe(recipe_id)
    return compute_recipe_cost(recipe, source.get_recipe_ingredient_lines(recipe_id))


def _cost_product(source: CostDataSource, product_id: Any) -> ProductCostResult:
    product = ProductCostInput(product_id=product_id, name=source.get_product_name(product_id))
    return compute_product_cost(
        product, source.get_recipe_usages(product_id), source.get_item_usages(product_id)
    )


def _run(operation, key: Any, source: Optional[CostDataSource], session: Optional[Session]):
    if source is not None:
        return operation(source, key)

    if session is not None:
        return operation(DatabaseCostSource(session), key)

    with session_scope() as sess:
        return operation(DatabaseCostSource(sess), key)


def cost_item(
    item_id: Any,
    source: Optional[CostDataSource] = None,
    session: Optional[Session] = None,
) -> ItemCostResult:
    """
    Current cost per base unit of one item.

    Raises:
        ItemNotFound: If the item doesn't exist
        ValidationError: If the item's purchase data can't yield a rate
    """
    return _run(_cost_item, item_id, source, session)


def cost_recipe(
    recipe_id: Any,
    source: Optional[CostDataSource] = None,
    session: Optional[Session] = None,
) -> RecipeCostResult:
    """
    Recipe total and cost per gram from its current ingredient lines.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        DivisionByZeroError: If the recipe's yield is not positive
    """
    return _run(_cost_recipe, recipe_id, source, session)


def cost_product(
    product_id: Any,
    source: Optional[CostDataSource] = None,
    session: Optional[Session] = None,
) -> ProductCostResult:
    """
    Full product cost breakdown from its current recipe and item usages.

    Raises:
        ProductNotFound: If the product doesn't exist
        DivisionByZeroError: If a used recipe has a non-positive yield
    """
    return _run(_cost_product, product_id, source, session)


def cost_all_products(
    source: Optional[CostDataSource] = None,
    product_ids: Optional[Iterable[Any]] = None,
    session: Optional[Session] = None,
) -> List[ProductCostResult]:
    """
    Cost every product (or the given ids) against one snapshot of the store.

    Args:
        source: Data source; defaults to the local database
        product_ids: Ids to cost; defaults to every product in the local
            database (required when a non-database source is given)
        session: Optional database session
    """
    if source is not None:
        if product_ids is None:
            raise ValueError("product_ids is required with an explicit source")
        return [_cost_product(source, product_id) for product_id in product_ids]

    def _impl(sess: Session) -> List[ProductCostResult]:
        db_source = DatabaseCostSource(sess)
        ids = product_ids
        if ids is None:
            ids = [row.id for row in sess.query(Product.id).order_by(Product.name).all()]
        return [_cost_product(db_source, product_id) for product_id in ids]

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


# ============================================================================
# Stored snapshot refresh
# ============================================================================


def refresh_recipe_snapshot(recipe: Recipe, session: Session) -> RecipeCostResult:
    """
    Recompute a recipe through the engine and store its totals.

    Pending line changes are flushed first so the engine sees them.
    """
    session.flush()
    session.expire(recipe, ["recipe_ingredients"])
    result = _cost_recipe(DatabaseCostSource(session), recipe.id)
    recipe.total_recipe_cost = result.total_recipe_cost
    recipe.cost_per_gram = result.recipe_cost_per_gram
    log_operation(
        logger,
        operation="refresh_recipe_snapshot",
        outcome="success",
        level=logging.DEBUG,
        recipe_id=recipe.id,
        total_recipe_cost=str(result.total_recipe_cost),
    )
    return result


def refresh_product_snapshot(product: Product, session: Session) -> ProductCostResult:
    """Recompute a product through the engine and store its three totals."""
    session.flush()
    session.expire(product, ["product_recipes", "product_items"])
    result = _cost_product(DatabaseCostSource(session), product.id)
    product.total_recipes_cost = result.total_recipes_cost
    product.total_direct_items_cost = result.total_direct_items_cost
    product.total_finished_product_cost = result.total_finished_product_cost
    log_operation(
        logger,
        operation="refresh_product_snapshot",
        outcome="success",
        level=logging.DEBUG,
        product_id=product.id,
        total_finished_product_cost=str(result.total_finished_product_cost),
    )
    return result


def _products_using_recipes(session: Session, recipe_ids: Set[Any]) -> Set[Any]:
    if not recipe_ids:
        return set()
    rows = (
        session.query(ProductRecipe.product_id)
        .filter(ProductRecipe.recipe_id.in_(recipe_ids))
        .distinct()
        .all()
    )
    return {row.product_id for row in rows}


def _refresh_products(session: Session, product_ids: Set[Any]) -> int:
    for product_id in sorted(product_ids):
        product = session.get(Product, product_id)
        if product is not None:
            refresh_product_snapshot(product, session)
    return len(product_ids)


def refresh_after_recipe_change(recipe_id: Any, session: Session) -> int:
    """
    Refresh a recipe's stored totals and every product that uses it.

    Returns:
        Number of products refreshed
    """
    recipe = session.get(Recipe, recipe_id)
    if recipe is None:
        return 0
    refresh_recipe_snapshot(recipe, session)
    return _refresh_products(session, _products_using_recipes(session, {recipe_id}))


def refresh_after_item_change(item_id: Any, session: Session) -> int:
    """
    Refresh every recipe that uses an item, then every product that uses
    the item directly or through one of those recipes.

    Returns:
        Number of products refreshed
    """
    session.flush()
    recipe_ids = {
        row.recipe_id
        for row in session.query(RecipeIngredient.recipe_id)
        .filter(RecipeIngredient.item_id == item_id)
        .distinct()
        .all()
    }
    for recipe_id in sorted(recipe_ids):
        recipe = session.get(Recipe, recipe_id)
        if recipe is not None:
            refresh_recipe_snapshot(recipe, session)

    product_ids = _products_using_recipes(session, recipe_ids)
    product_ids |= {
        row.product_id
        for row in session.query(ProductItem.product_id)
        .filter(ProductItem.item_id == item_id)
        .distinct()
        .all()
    }
    refreshed = _refresh_products(session, product_ids)
    log_operation(
        logger,
        operation="refresh_after_item_change",
        outcome="success",
        item_id=item_id,
        recipe_count=len(recipe_ids),
        product_count=refreshed,
    )
    return refreshed
