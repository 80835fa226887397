"""
Recipe Service - CRUD operations for recipes and their ingredient lines.

A recipe turns grams of items into yield_qty_g grams of a preparation. Its
stored total_recipe_cost and cost_per_gram are written from the cost engine
whenever a line or the yield changes, and every product that uses the
recipe is refreshed in the same transaction.

Deletion policy: a recipe used by a product cannot be deleted (RecipeInUse).
Deleting a recipe removes its ingredient lines.

Session Management Pattern:
- All functions accept optional `session` parameter
- If session is provided, use it directly (allows callers to manage transactions)
- If session is None, create a new session_scope for the operation
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from food_costing.models.item import Item
from food_costing.models.product import ProductRecipe
from food_costing.models.recipe import Recipe, RecipeIngredient
from food_costing.services import costing_service
from food_costing.services.cost_engine import ZERO, to_decimal
from food_costing.services.database import session_scope
from food_costing.services.exceptions import (
    DatabaseError,
    ItemNotFound,
    RecipeInUse,
    RecipeNotFound,
    ServiceError,
    ValidationError,
)
from food_costing.services.logging_utils import get_service_logger, log_operation
from food_costing.utils.constants import DEFAULT_ORG_ID
from food_costing.utils.validators import (
    sanitize_string,
    validate_recipe_data,
    validate_recipe_item_data,
)

logger = get_service_logger(__name__)


def _get_recipe(session: Session, recipe_id: int) -> Recipe:
    recipe = session.get(Recipe, recipe_id)
    if recipe is None:
        raise RecipeNotFound(recipe_id)
    return recipe


def _validate_line(line: Dict[str, Any]) -> None:
    is_valid, errors = validate_recipe_item_data(line)
    if not is_valid:
        raise ValidationError(errors)


def _run(impl, session: Optional[Session], failure: str):
    try:
        if session is not None:
            return impl(session)
        with session_scope() as sess:
            return impl(sess)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(failure, e)


# ============================================================================
# Recipes
# ============================================================================


def create_recipe(
    recipe_data: Dict[str, Any],
    ingredients: Optional[List[Dict[str, Any]]] = None,
    org_id: int = DEFAULT_ORG_ID,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> Recipe:
    """
    Create a recipe with optional ingredient lines.

    Args:
        recipe_data: Dictionary with name (required), yield_qty_g (required,
            > 0) and description (optional)
        ingredients: Lines with item_id, qty_g and optional waste_pct; each
            item may appear once
        org_id: Owning organization
        user_code: Audit user recorded as created_by
        session: Optional database session

    Returns:
        Created Recipe with its cost totals stored

    Raises:
        ValidationError: If recipe or line data is invalid
        ItemNotFound: If a line references a missing item
        DatabaseError: If database operation fails
    """
    _, errors = validate_recipe_data(recipe_data)
    ingredients = ingredients or []
    seen = set()
    for index, line in enumerate(ingredients, start=1):
        _, line_errors = validate_recipe_item_data(line)
        errors.extend(f"Ingredient #{index}: {error}" for error in line_errors)
        if line.get("item_id") in seen:
            errors.append(f"Ingredient #{index}: Item {line['item_id']} is listed twice")
        seen.add(line.get("item_id"))
    if errors:
        log_operation(
            logger, "create_recipe", "validation_failed", level=logging.WARNING, errors=errors
        )
        raise ValidationError(errors)

    def _impl(sess: Session) -> Recipe:
        recipe = Recipe(
            org_id=org_id,
            name=sanitize_string(recipe_data["name"]),
            description=sanitize_string(recipe_data.get("description")),
            yield_qty_g=to_decimal(recipe_data["yield_qty_g"], "Yield Quantity"),
            created_by=user_code,
            updated_by=user_code,
        )
        sess.add(recipe)
        sess.flush()

        for line in ingredients:
            if sess.get(Item, line["item_id"]) is None:
                raise ItemNotFound(line["item_id"])
            recipe.recipe_ingredients.append(
                RecipeIngredient(
                    item_id=line["item_id"],
                    qty_g=to_decimal(line["qty_g"], "Quantity (g)"),
                    waste_pct=to_decimal(line.get("waste_pct") or ZERO, "Waste %"),
                )
            )

        costing_service.refresh_recipe_snapshot(recipe, sess)
        sess.flush()
        sess.refresh(recipe)
        log_operation(
            logger,
            "create_recipe",
            "success",
            recipe_id=recipe.id,
            line_count=len(ingredients),
            total_recipe_cost=str(recipe.total_recipe_cost),
        )
        return recipe

    return _run(_impl, session, "Failed to create recipe")


def get_recipe(recipe_id: int, session: Optional[Session] = None) -> Recipe:
    """
    Retrieve a recipe (with its ingredient lines) by ID.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
    """

    def _impl(sess: Session) -> Recipe:
        return _get_recipe(sess, recipe_id)

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def list_recipes(
    org_id: Optional[int] = None,
    name_search: Optional[str] = None,
    session: Optional[Session] = None,
) -> List[Recipe]:
    """List recipes ordered by name, optionally filtered by organization and name."""

    def _impl(sess: Session) -> List[Recipe]:
        query = sess.query(Recipe)
        if org_id is not None:
            query = query.filter(Recipe.org_id == org_id)
        if name_search:
            query = query.filter(Recipe.name.ilike(f"%{name_search}%"))
        return query.order_by(Recipe.name).all()

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def update_recipe(
    recipe_id: int,
    recipe_data: Dict[str, Any],
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> Recipe:
    """
    Update a recipe's name, description or yield.

    A yield change re-costs the recipe and every product that uses it.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_recipe_data(recipe_data, partial=True)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Recipe:
        recipe = _get_recipe(sess, recipe_id)
        if "name" in recipe_data:
            recipe.name = sanitize_string(recipe_data["name"])
        if "description" in recipe_data:
            recipe.description = sanitize_string(recipe_data["description"])

        yield_changed = False
        if "yield_qty_g" in recipe_data:
            new_yield = to_decimal(recipe_data["yield_qty_g"], "Yield Quantity")
            yield_changed = new_yield != recipe.yield_qty_g
            recipe.yield_qty_g = new_yield

        recipe.stamp(user_code)

        refreshed = 0
        if yield_changed:
            refreshed = costing_service.refresh_after_recipe_change(recipe.id, sess)
        sess.flush()
        sess.refresh(recipe)
        log_operation(
            logger,
            "update_recipe",
            "success",
            recipe_id=recipe.id,
            yield_changed=yield_changed,
            products_refreshed=refreshed,
        )
        return recipe

    return _run(_impl, session, f"Failed to update recipe {recipe_id}")


def delete_recipe(recipe_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a recipe and its ingredient lines.

    Returns:
        True if deleted

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        RecipeInUse: If a product uses the recipe
        DatabaseError: If database operation fails
    """

    def _impl(sess: Session) -> bool:
        recipe = _get_recipe(sess, recipe_id)
        product_count = (
            sess.query(ProductRecipe.product_id)
            .filter(ProductRecipe.recipe_id == recipe_id)
            .distinct()
            .count()
        )
        if product_count:
            log_operation(
                logger,
                "delete_recipe",
                "in_use",
                level=logging.WARNING,
                recipe_id=recipe_id,
                product_count=product_count,
            )
            raise RecipeInUse(recipe_id, product_count)

        sess.delete(recipe)
        sess.flush()
        log_operation(logger, "delete_recipe", "success", recipe_id=recipe_id)
        return True

    return _run(_impl, session, f"Failed to delete recipe {recipe_id}")


# ============================================================================
# Ingredient lines
# ============================================================================


def get_recipe_items(recipe_id: int, session: Optional[Session] = None) -> List[RecipeIngredient]:
    """
    Ingredient lines of a recipe, in insertion order.

    Raises:
        RecipeNotFound: If the recipe doesn't exist
    """

    def _impl(sess: Session) -> List[RecipeIngredient]:
        return list(_get_recipe(sess, recipe_id).recipe_ingredients)

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def upsert_recipe_item(
    recipe_id: int,
    item_id: int,
    qty_g: Any,
    waste_pct: Any = None,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> RecipeIngredient:
    """
    Add an ingredient line, or update it if the item is already in the recipe.

    Calling it twice with the same arguments leaves the recipe unchanged.

    Args:
        recipe_id: Recipe ID
        item_id: Item ID
        qty_g: Grams of the item per batch (>= 0)
        waste_pct: 0..100; defaults to 0 for new lines, and keeps the current
            value for existing lines when omitted
        user_code: Audit user recorded as the recipe's updated_by

    Returns:
        The created or updated RecipeIngredient

    Raises:
        RecipeNotFound / ItemNotFound: If either doesn't exist
        ValidationError: If quantity or waste is out of range
    """
    _validate_line({"item_id": item_id, "qty_g": qty_g, "waste_pct": waste_pct})

    def _impl(sess: Session) -> RecipeIngredient:
        recipe = _get_recipe(sess, recipe_id)
        if sess.get(Item, item_id) is None:
            raise ItemNotFound(item_id)

        line = (
            sess.query(RecipeIngredient)
            .filter(RecipeIngredient.recipe_id == recipe_id, RecipeIngredient.item_id == item_id)
            .first()
        )
        created = line is None
        if created:
            line = RecipeIngredient(item_id=item_id, waste_pct=ZERO)
            recipe.recipe_ingredients.append(line)

        line.qty_g = to_decimal(qty_g, "Quantity (g)")
        if waste_pct is not None:
            line.waste_pct = to_decimal(waste_pct, "Waste %")
        recipe.stamp(user_code)

        costing_service.refresh_after_recipe_change(recipe_id, sess)
        sess.flush()
        sess.refresh(line)
        log_operation(
            logger,
            "upsert_recipe_item",
            "created" if created else "updated",
            recipe_id=recipe_id,
            item_id=item_id,
        )
        return line

    return _run(_impl, session, "Failed to save recipe ingredient")


def remove_recipe_item(
    recipe_id: int,
    item_id: int,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> bool:
    """
    Remove an ingredient line from a recipe.

    Returns:
        True if a line was removed, False if the item wasn't in the recipe

    Raises:
        RecipeNotFound: If the recipe doesn't exist
    """

    def _impl(sess: Session) -> bool:
        recipe = _get_recipe(sess, recipe_id)
        line = next((ln for ln in recipe.recipe_ingredients if ln.item_id == item_id), None)
        if line is None:
            return False
        recipe.recipe_ingredients.remove(line)
        recipe.stamp(user_code)
        costing_service.refresh_after_recipe_change(recipe_id, sess)
        log_operation(
            logger, "remove_recipe_item", "success", recipe_id=recipe_id, item_id=item_id
        )
        return True

    return _run(_impl, session, "Failed to remove recipe ingredient")


# ============================================================================
# Costs and queries
# ============================================================================


def get_recipe_with_costs(recipe_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Recipe fields plus a fresh engine cost breakdown.

    Returns:
        Recipe dict with "total_recipe_cost", "recipe_cost_per_gram" and
        "items" (per-line cost breakdown) taken from the engine, not from
        the stored snapshot

    Raises:
        RecipeNotFound: If the recipe doesn't exist
        DivisionByZeroError: If the stored yield is not positive
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        recipe = _get_recipe(sess, recipe_id)
        result = recipe.to_dict()
        result.update(costing_service.cost_recipe(recipe_id, session=sess).to_dict())
        return result

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def get_recipes_using_item(item_id: int, session: Optional[Session] = None) -> List[Recipe]:
    def _impl(sess: Session) -> List[Recipe]:
        return (
            sess.query(Recipe)
            .join(RecipeIngredient, RecipeIngredient.recipe_id == Recipe.id)
            .filter(RecipeIngredient.item_id == item_id)
            .order_by(Recipe.name)
            .all()
        )

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def get_recipe_count(org_id: Optional[int] = None, session: Optional[Session] = None) -> int:
    def _impl(sess: Session) -> int:
        query = sess.query(Recipe)
        if org_id is not None:
            query = query.filter(Recipe.org_id == org_id)
        return query.count()

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)

