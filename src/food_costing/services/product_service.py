"""
Product Service - CRUD operations for finished products and their usage lines.

A product combines recipe usages (grams of a recipe's yield) and direct item
usages (grams of a raw item). It must keep at least one usage line: creating
an empty product or removing the last line is rejected.

Stored totals (total_recipes_cost, total_direct_items_cost,
total_finished_product_cost) are written from the cost engine after every
line change; get_product_with_costs() always recomputes.

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
from food_costing.models.product import Product, ProductItem, ProductRecipe
from food_costing.models.recipe import Recipe
from food_costing.services import costing_service
from food_costing.services.cost_engine import to_decimal
from food_costing.services.database import session_scope
from food_costing.services.exceptions import (
    DatabaseError,
    ItemNotFound,
    ProductNotFound,
    RecipeNotFound,
    ServiceError,
    ValidationError,
)
from food_costing.services.logging_utils import get_service_logger, log_operation
from food_costing.utils.constants import DEFAULT_ORG_ID, ERROR_PRODUCT_EMPTY
from food_costing.utils.validators import (
    sanitize_string,
    validate_non_negative_number,
    validate_product_data,
)

logger = get_service_logger(__name__)


def _get_product(session: Session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def _check_qty(qty_g: Any) -> None:
    is_valid, error = validate_non_negative_number(qty_g, "Quantity (g)")
    if not is_valid:
        raise ValidationError([error])


def _duplicates(lines: List[Dict[str, Any]], key: str, label: str) -> List[str]:
    seen = set()
    errors = []
    for line in lines:
        ref = line.get(key)
        if ref in seen:
            errors.append(f"{label} {ref} is listed twice")
        seen.add(ref)
    return errors


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
# Products
# ============================================================================


def create_product(
    product_data: Dict[str, Any],
    recipes: Optional[List[Dict[str, Any]]] = None,
    items: Optional[List[Dict[str, Any]]] = None,
    org_id: int = DEFAULT_ORG_ID,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> Product:
    """
    Create a product from recipe usages and direct item usages.

    Args:
        product_data: Dictionary with name (required) and description
        recipes: Lines with recipe_id and qty_g (grams of recipe yield)
        items: Lines with item_id and qty_g (grams of raw item)
        org_id: Owning organization
        user_code: Audit user recorded as created_by
        session: Optional database session

    Returns:
        Created Product with its cost totals stored

    Raises:
        ValidationError: If fields are invalid or there are no usage lines
        RecipeNotFound / ItemNotFound: If a line references a missing record
        DatabaseError: If database operation fails
    """
    recipes = recipes or []
    items = items or []
    _, errors = validate_product_data(product_data, recipes, items)
    errors.extend(_duplicates(recipes, "recipe_id", "Recipe"))
    errors.extend(_duplicates(items, "item_id", "Item"))
    if errors:
        log_operation(
            logger, "create_product", "validation_failed", level=logging.WARNING, errors=errors
        )
        raise ValidationError(errors)

    def _impl(sess: Session) -> Product:
        product = Product(
            org_id=org_id,
            name=sanitize_string(product_data["name"]),
            description=sanitize_string(product_data.get("description")),
            created_by=user_code,
            updated_by=user_code,
        )
        sess.add(product)
        sess.flush()

        for line in recipes:
            if sess.get(Recipe, line["recipe_id"]) is None:
                raise RecipeNotFound(line["recipe_id"])
            product.product_recipes.append(
                ProductRecipe(
                    recipe_id=line["recipe_id"], qty_g=to_decimal(line["qty_g"], "Quantity (g)")
                )
            )
        for line in items:
            if sess.get(Item, line["item_id"]) is None:
                raise ItemNotFound(line["item_id"])
            product.product_items.append(
                ProductItem(
                    item_id=line["item_id"], qty_g=to_decimal(line["qty_g"], "Quantity (g)")
                )
            )

        costing_service.refresh_product_snapshot(product, sess)
        sess.flush()
        sess.refresh(product)
        log_operation(
            logger,
            "create_product",
            "success",
            product_id=product.id,
            recipe_count=len(recipes),
            item_count=len(items),
            total_finished_product_cost=str(product.total_finished_product_cost),
        )
        return product

    return _run(_impl, session, "Failed to create product")


def get_product(product_id: int, session: Optional[Session] = None) -> Product:
    """
    Retrieve a product (with its usage lines) by ID.

    Raises:
        ProductNotFound: If the product doesn't exist
    """

    def _impl(sess: Session) -> Product:
        return _get_product(sess, product_id)

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def list_products(
    org_id: Optional[int] = None,
    name_search: Optional[str] = None,
    session: Optional[Session] = None,
) -> List[Product]:
    """List products ordered by name, optionally filtered by organization and name."""

    def _impl(sess: Session) -> List[Product]:
        query = sess.query(Product)
        if org_id is not None:
            query = query.filter(Product.org_id == org_id)
        if name_search:
            query = query.filter(Product.name.ilike(f"%{name_search}%"))
        return query.order_by(Product.name).all()

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def update_product(
    product_id: int,
    product_data: Dict[str, Any],
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> Product:
    """
    Update a product's name or description.

    Usage lines change through the upsert_/remove_ functions.

    Raises:
        ProductNotFound: If the product doesn't exist
        ValidationError: If data validation fails
    """
    is_valid, errors = validate_product_data(product_data, require_usage=False)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Product:
        product = _get_product(sess, product_id)
        if "name" in product_data:
            product.name = sanitize_string(product_data["name"])
        if "description" in product_data:
            product.description = sanitize_string(product_data["description"])
        product.stamp(user_code)
        sess.flush()
        log_operation(logger, "update_product", "success", product_id=product_id)
        return product

    return _run(_impl, session, f"Failed to update product {product_id}")


def delete_product(product_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete a product and its usage lines.

    Raises:
        ProductNotFound: If the product doesn't exist
    """

    def _impl(sess: Session) -> bool:
        product = _get_product(sess, product_id)
        sess.delete(product)
        sess.flush()
        log_operation(logger, "delete_product", "success", product_id=product_id)
        return True

    return _run(_impl, session, f"Failed to delete product {product_id}")


# ============================================================================
# Usage lines
# ============================================================================


def get_product_recipes(product_id: int, session: Optional[Session] = None) -> List[ProductRecipe]:
    def _impl(sess: Session) -> List[ProductRecipe]:
        return list(_get_product(sess, product_id).product_recipes)

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def get_product_items(product_id: int, session: Optional[Session] = None) -> List[ProductItem]:
    def _impl(sess: Session) -> List[ProductItem]:
        return list(_get_product(sess, product_id).product_items)

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def upsert_product_recipe(
    product_id: int,
    recipe_id: int,
    qty_g: Any,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> ProductRecipe:
    """
    Add a recipe usage to a product, or change its quantity if present.

    user_code, when given, is recorded as the product's updated_by.

    Raises:
        ProductNotFound / RecipeNotFound: If either doesn't exist
        ValidationError: If qty_g is negative or not a number
    """
    _check_qty(qty_g)

    def _impl(sess: Session) -> ProductRecipe:
        product = _get_product(sess, product_id)
        if sess.get(Recipe, recipe_id) is None:
            raise RecipeNotFound(recipe_id)

        usage = next((u for u in product.product_recipes if u.recipe_id == recipe_id), None)
        created = usage is None
        if created:
            usage = ProductRecipe(recipe_id=recipe_id)
            product.product_recipes.append(usage)
        usage.qty_g = to_decimal(qty_g, "Quantity (g)")
        product.stamp(user_code)

        costing_service.refresh_product_snapshot(product, sess)
        sess.flush()
        sess.refresh(usage)
        log_operation(
            logger,
            "upsert_product_recipe",
            "created" if created else "updated",
            product_id=product_id,
            recipe_id=recipe_id,
        )
        return usage

    return _run(_impl, session, "Failed to save product recipe")


def upsert_product_item(
    product_id: int,
    item_id: int,
    qty_g: Any,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> ProductItem:
    """
    Add a direct item usage to a product, or change its quantity if present.

    user_code, when given, is recorded as the product's updated_by.

    Raises:
        ProductNotFound / ItemNotFound: If either doesn't exist
        ValidationError: If qty_g is negative or not a number
    """
    _check_qty(qty_g)

    def _impl(sess: Session) -> ProductItem:
        product = _get_product(sess, product_id)
        if sess.get(Item, item_id) is None:
            raise ItemNotFound(item_id)

        usage = next((u for u in product.product_items if u.item_id == item_id), None)
        created = usage is None
        if created:
            usage = ProductItem(item_id=item_id)
            product.product_items.append(usage)
        usage.qty_g = to_decimal(qty_g, "Quantity (g)")
        product.stamp(user_code)

        costing_service.refresh_product_snapshot(product, sess)
        sess.flush()
        sess.refresh(usage)
        log_operation(
            logger,
            "upsert_product_item",
            "created" if created else "updated",
            product_id=product_id,
            item_id=item_id,
        )
        return usage

    return _run(_impl, session, "Failed to save product item")


def _remove_usage(
    sess: Session, product: Product, collection: list, usage: Any, user_code: Optional[str]
) -> None:
    if len(product.product_recipes) + len(product.product_items) <= 1:
        log_operation(
            logger,
            "remove_product_usage",
            "last_usage",
            level=logging.WARNING,
            product_id=product.id,
        )
        raise ValidationError([ERROR_PRODUCT_EMPTY])
    collection.remove(usage)
    product.stamp(user_code)
    costing_service.refresh_product_snapshot(product, sess)


def remove_product_recipe(
    product_id: int,
    recipe_id: int,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> bool:
    """
    Remove a recipe usage from a product.

    Returns:
        True if removed, False if the recipe wasn't used by the product

    Raises:
        ProductNotFound: If the product doesn't exist
        ValidationError: If it is the product's last usage line
    """

    def _impl(sess: Session) -> bool:
        product = _get_product(sess, product_id)
        usage = next((u for u in product.product_recipes if u.recipe_id == recipe_id), None)
        if usage is None:
            return False
        _remove_usage(sess, product, product.product_recipes, usage, user_code)
        log_operation(
            logger, "remove_product_recipe", "success", product_id=product_id, recipe_id=recipe_id
        )
        return True

    return _run(_impl, session, "Failed to remove product recipe")


def remove_product_item(
    product_id: int,
    item_id: int,
    user_code: Optional[str] = None,
    session: Optional[Session] = None,
) -> bool:
    """
    Remove a direct item usage from a product.

    Returns:
        True if removed, False if the item wasn't used directly by the product

    Raises:
        ProductNotFound: If the product doesn't exist
        ValidationError: If it is the product's last usage line
    """

    def _impl(sess: Session) -> bool:
        product = _get_product(sess, product_id)
        usage = next((u for u in product.product_items if u.item_id == item_id), None)
        if usage is None:
            return False
        _remove_usage(sess, product, product.product_items, usage, user_code)
        log_operation(
            logger, "remove_product_item", "success", product_id=product_id, item_id=item_id
        )
        return True

    return _run(_impl, session, "Failed to remove product item")


# ============================================================================
# Costs and queries
# ============================================================================


def get_product_with_costs(product_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Product fields plus a fresh engine cost breakdown.

    Returns:
        Product dict with total_recipes_cost, total_direct_items_cost,
        total_finished_product_cost, "recipes" (each with its per-ingredient
        share) and "direct_items", all recomputed from current lines

    Raises:
        ProductNotFound: If the product doesn't exist
        DivisionByZeroError: If a used recipe has a non-positive yield
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        product = _get_product(sess, product_id)
        result = product.to_dict()
        result.update(costing_service.cost_product(product_id, session=sess).to_dict())
        return result

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def get_product_count(org_id: Optional[int] = None, session: Optional[Session] = None) -> int:
    def _impl(sess: Session) -> int:
        query = sess.query(Product)
        if org_id is not None:
            query = query.filter(Product.org_id == org_id)
        return query.count()

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)
