"""
Dashboard Service - summary figures for the organization overview.

Averages are computed on Decimal and returned unrounded; format with
dto_utils for display.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from food_costing.models.employee import Employee
from food_costing.models.item import Item
from food_costing.models.product import Product
from food_costing.models.recipe import Recipe
from food_costing.services.cost_engine import (
    ZERO,
    COST_CONTEXT,
    compute_item_cost_per_base_unit,
)
from food_costing.services.database import session_scope
from food_costing.services.dto_utils import cost_to_string, rate_to_string


def _average(values: List[Decimal]) -> Decimal:
    if not values:
        return ZERO
    total = ZERO
    for value in values:
        total = COST_CONTEXT.add(total, value)
    return COST_CONTEXT.divide(total, Decimal(len(values)))


def _scoped(query, model, org_id: Optional[int]):
    if org_id is not None:
        query = query.filter(model.org_id == org_id)
    return query


def get_dashboard_stats(
    org_id: Optional[int] = None, session: Optional[Session] = None
) -> Dict[str, Any]:
    """
    Counts and average costs for the dashboard.

    Returns:
        Dictionary with:
        - item_count, recipe_count, product_count, employee_count
        - average_item_cost_per_base_unit: mean engine rate over active items
        - average_product_cost: mean stored total_finished_product_cost
        - *_display variants formatted for output
    """

    def _impl(sess: Session) -> Dict[str, Any]:
        items = _scoped(sess.query(Item), Item, org_id).filter(Item.active.is_(True)).all()
        products = _scoped(sess.query(Product), Product, org_id).all()

        avg_item_rate = _average([compute_item_cost_per_base_unit(item) for item in items])
        avg_product_cost = _average(
            [product.total_finished_product_cost or ZERO for product in products]
        )

        return {
            "item_count": _scoped(sess.query(Item), Item, org_id).count(),
            "recipe_count": _scoped(sess.query(Recipe), Recipe, org_id).count(),
            "product_count": len(products),
            "employee_count": _scoped(sess.query(Employee), Employee, org_id)
            .filter(Employee.active.is_(True))
            .count(),
            "average_item_cost_per_base_unit": avg_item_rate,
            "average_item_cost_per_base_unit_display": rate_to_string(avg_item_rate),
            "average_product_cost": avg_product_cost,
            "average_product_cost_display": cost_to_string(avg_product_cost),
        }

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def get_recent_activity(
    limit: int = 5, org_id: Optional[int] = None, session: Optional[Session] = None
) -> List[Dict[str, Any]]:
    """
    Most recently changed items, recipes and products, newest first.

    Returns:
        List of {"type", "id", "name", "updated_at"} dicts
    """

    def _impl(sess: Session) -> List[Dict[str, Any]]:
        activity = []
        for kind, model in (("item", Item), ("recipe", Recipe), ("product", Product)):
            rows = (
                _scoped(sess.query(model), model, org_id)
                .order_by(model.updated_at.desc())
                .limit(limit)
                .all()
            )
            activity.extend(
                {"type": kind, "id": row.id, "name": row.name, "updated_at": row.updated_at}
                for row in rows
            )
        activity.sort(key=lambda entry: entry["updated_at"], reverse=True)
        return activity[:limit]

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)
