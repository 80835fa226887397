"""
Item Service - CRUD operations for inventory items, units and categories.

Items are the leaves of the cost graph. Changing an item's purchase cost
or base quantity changes the cost of every recipe and product that uses it,
so update_item() refreshes their stored totals through costing_service.

Deletion policy: an item referenced by a recipe ingredient line or a product
direct-item line cannot be deleted (ItemInUse).

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
from food_costing.models.product import ProductItem
from food_costing.models.recipe import RecipeIngredient
from food_costing.models.unit import Category, Unit
from food_costing.services import costing_service
from food_costing.services.cost_engine import compute_item_cost_per_base_unit, to_decimal
from food_costing.services.database import session_scope
from food_costing.services.dto_utils import cost_to_string, rate_to_string
from food_costing.services.exceptions import (
    CategoryNotFound,
    DatabaseError,
    ItemInUse,
    ItemNotFound,
    ServiceError,
    UnitNotFound,
    ValidationError,
)
from food_costing.services.logging_utils import get_service_logger, log_operation
from food_costing.services.unit_converter import derive_base_qty_per_purchase, get_unit_type
from food_costing.utils.constants import BASE_UNIT, DEFAULT_ORG_ID
from food_costing.utils.validators import sanitize_string, validate_item_data

logger = get_service_logger(__name__)

# Changing any of these changes cost_per_base_unit
COST_FIELDS = ("purchase_cost", "base_qty_per_purchase")

DECIMAL_FIELDS = ("purchase_qty", "purchase_cost", "base_qty_per_purchase")


def _prepare_item_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Normalize item input.

    Fills base_unit with grams and, for weight purchase units, derives
    base_qty_per_purchase from purchase_qty when it was left out.
    """
    prepared = dict(data)
    for key in ("name", "sku"):
        if key in prepared:
            prepared[key] = sanitize_string(prepared[key])
    if not partial:
        prepared.setdefault("base_unit", BASE_UNIT)
        prepared.setdefault("purchase_qty", 1)

    if (
        prepared.get("base_qty_per_purchase") is None
        and prepared.get("purchase_unit")
        and prepared.get("purchase_qty") is not None
        and get_unit_type(prepared["purchase_unit"]) == "weight"
        and (not partial or "purchase_unit" in data or "purchase_qty" in data)
    ):
        prepared["base_qty_per_purchase"] = derive_base_qty_per_purchase(
            prepared["purchase_qty"], prepared["purchase_unit"]
        )
    return prepared


def _require_unit(session: Session, symbol: str) -> None:
    if session.query(Unit).filter(Unit.symbol == symbol).first() is None:
        raise UnitNotFound(symbol)


def _require_category(session: Session, category_id: Optional[int]) -> None:
    if category_id is not None and session.get(Category, category_id) is None:
        raise CategoryNotFound(category_id)


def _get_item(session: Session, item_id: int) -> Item:
    item = session.get(Item, item_id)
    if item is None:
        raise ItemNotFound(item_id)
    return item


# ============================================================================
# Items
# ============================================================================


def create_item(
    item_data: Dict[str, Any],
    org_id: int = DEFAULT_ORG_ID,
    session: Optional[Session] = None,
) -> Item:
    """
    Create an inventory item.

    Args:
        item_data: Dictionary with:
            - name (str, required)
            - sku (str, optional)
            - purchase_unit (str, required): unit symbol it is bought in
            - purchase_qty (Decimal, default 1)
            - purchase_cost (Decimal, required, >= 0)
            - base_unit (str, default "g")
            - base_qty_per_purchase (Decimal, > 0): grams per purchase;
              derived from purchase_qty for weight purchase units
            - category_id (int, optional)
            - active (bool, default True)
        org_id: Owning organization
        session: Optional database session

    Returns:
        Created Item

    Raises:
        ValidationError: If data validation fails
        UnitNotFound: If a unit symbol isn't in the units table
        CategoryNotFound: If category_id doesn't exist
        DatabaseError: If database operation fails
    """
    data = _prepare_item_data(item_data)
    is_valid, errors = validate_item_data(data)
    if not is_valid:
        log_operation(
            logger, "create_item", "validation_failed", level=logging.WARNING, errors=errors
        )
        raise ValidationError(errors)

    def _impl(sess: Session) -> Item:
        _require_unit(sess, data["purchase_unit"])
        _require_unit(sess, data["base_unit"])
        _require_category(sess, data.get("category_id"))

        item = Item(
            org_id=org_id,
            name=data["name"],
            sku=data.get("sku"),
            purchase_unit=data["purchase_unit"],
            purchase_qty=to_decimal(data["purchase_qty"], "Purchase Quantity"),
            purchase_cost=to_decimal(data["purchase_cost"], "Purchase Cost"),
            base_unit=data["base_unit"],
            base_qty_per_purchase=to_decimal(
                data["base_qty_per_purchase"], "Base Qty Per Purchase"
            ),
            category_id=data.get("category_id"),
            active=data.get("active", True),
        )
        sess.add(item)
        sess.flush()
        sess.refresh(item)
        log_operation(logger, "create_item", "success", item_id=item.id, item_name=item.name)
        return item

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create item", e)


def get_item(item_id: int, session: Optional[Session] = None) -> Item:
    """
    Retrieve an item by ID.

    Raises:
        ItemNotFound: If the item doesn't exist
    """

    def _impl(sess: Session) -> Item:
        return _get_item(sess, item_id)

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def list_items(
    org_id: Optional[int] = None,
    active_only: bool = False,
    name_search: Optional[str] = None,
    category_id: Optional[int] = None,
    session: Optional[Session] = None,
) -> List[Item]:
    """
    List items ordered by name, with optional filters.

    Args:
        org_id: Only items of this organization
        active_only: Skip inactive items
        name_search: Case-insensitive substring of the name
        category_id: Only items in this category
        session: Optional database session
    """

    def _impl(sess: Session) -> List[Item]:
        query = sess.query(Item)
        if org_id is not None:
            query = query.filter(Item.org_id == org_id)
        if active_only:
            query = query.filter(Item.active.is_(True))
        if name_search:
            query = query.filter(Item.name.ilike(f"%{name_search}%"))
        if category_id is not None:
            query = query.filter(Item.category_id == category_id)
        return query.order_by(Item.name).all()

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def update_item(
    item_id: int,
    item_data: Dict[str, Any],
    session: Optional[Session] = None,
) -> Item:
    """
    Update an item's fields.

    When purchase_cost or base_qty_per_purchase changes, every recipe and
    product that uses the item gets its stored totals recomputed in the same
    transaction.

    Raises:
        ItemNotFound: If the item doesn't exist
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    data = _prepare_item_data(item_data, partial=True)
    is_valid, errors = validate_item_data(data, partial=True)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Item:
        item = _get_item(sess, item_id)
        for key in ("purchase_unit", "base_unit"):
            if key in data:
                _require_unit(sess, data[key])
        if "category_id" in data:
            _require_category(sess, data["category_id"])

        cost_changed = False
        for key, value in data.items():
            if key in ("id", "uuid", "org_id", "created_at", "updated_at"):
                continue
            if key not in Item.__table__.columns:
                continue
            if key in DECIMAL_FIELDS:
                value = to_decimal(value, key)
                if key in COST_FIELDS and value != getattr(item, key):
                    cost_changed = True
            setattr(item, key, value)

        sess.flush()
        refreshed = 0
        if cost_changed:
            refreshed = costing_service.refresh_after_item_change(item.id, sess)
        sess.flush()
        sess.refresh(item)

        log_operation(
            logger,
            "update_item",
            "success",
            item_id=item.id,
            cost_changed=cost_changed,
            products_refreshed=refreshed,
        )
        return item

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update item {item_id}", e)


def check_item_dependencies(item_id: int, session: Optional[Session] = None) -> Dict[str, int]:
    """
    Count the recipes and products that reference an item.

    Returns:
        {"recipes": n, "products": m}
    """

    def _impl(sess: Session) -> Dict[str, int]:
        recipes = (
            sess.query(RecipeIngredient.recipe_id)
            .filter(RecipeIngredient.item_id == item_id)
            .distinct()
            .count()
        )
        products = (
            sess.query(ProductItem.product_id)
            .filter(ProductItem.item_id == item_id)
            .distinct()
            .count()
        )
        return {"recipes": recipes, "products": products}

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def delete_item(item_id: int, session: Optional[Session] = None) -> None:
    """
    Delete an item that nothing references.

    Raises:
        ItemNotFound: If the item doesn't exist
        ItemInUse: If a recipe or product uses the item
        DatabaseError: If database operation fails
    """

    def _impl(sess: Session) -> None:
        item = _get_item(sess, item_id)
        deps = check_item_dependencies(item_id, session=sess)
        if deps["recipes"] or deps["products"]:
            log_operation(
                logger,
                "delete_item",
                "in_use",
                level=logging.WARNING,
                item_id=item_id,
                **deps,
            )
            raise ItemInUse(item_id, deps)
        sess.delete(item)
        sess.flush()
        log_operation(logger, "delete_item", "success", item_id=item_id)

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete item {item_id}", e)


def get_item_with_cost(item_id: int, session: Optional[Session] = None) -> Dict[str, Any]:
    """
    Item fields plus its derived cost per base unit, display-formatted.

    Returns:
        Item dict with "cost_per_base_unit" (6 decimals) and
        "purchase_cost_display" (2 decimals)
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        item = _get_item(sess, item_id)
        result = item.to_dict()
        result["cost_per_base_unit"] = rate_to_string(compute_item_cost_per_base_unit(item))
        result["purchase_cost_display"] = cost_to_string(item.purchase_cost)
        return result

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


# ============================================================================
# Units and categories
# ============================================================================


def list_units(unit_type: Optional[str] = None, session: Optional[Session] = None) -> List[Unit]:
    """List units ordered by type then symbol, optionally of one type."""

    def _impl(sess: Session) -> List[Unit]:
        query = sess.query(Unit)
        if unit_type:
            query = query.filter(Unit.unit_type == unit_type)
        return query.order_by(Unit.unit_type, Unit.symbol).all()

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def list_categories(
    org_id: int = DEFAULT_ORG_ID, session: Optional[Session] = None
) -> List[Category]:
    def _impl(sess: Session) -> List[Category]:
        return (
            sess.query(Category).filter(Category.org_id == org_id).order_by(Category.name).all()
        )

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def create_category(
    name: str, org_id: int = DEFAULT_ORG_ID, session: Optional[Session] = None
) -> Category:
    """
    Create an item category.

    Raises:
        ValidationError: If name is empty or already used in the organization
    """
    clean_name = sanitize_string(name)
    if not clean_name:
        raise ValidationError(["Category name cannot be empty"])

    def _impl(sess: Session) -> Category:
        existing = (
            sess.query(Category)
            .filter(Category.org_id == org_id, Category.name == clean_name)
            .first()
        )
        if existing:
            raise ValidationError([f"Category with name '{clean_name}' already exists"])
        category = Category(org_id=org_id, name=clean_name)
        sess.add(category)
        sess.flush()
        return category

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)
