"""
Cost Engine - pure cost aggregation for items, recipes and products.

Costs flow one way: Item -> Recipe (ingredient lines) -> Product (recipe
usages and direct item usages). Every function here is a pure function of
its inputs; callers resolve current item and recipe data (see
cost_sources.py) and pass it in.

Formulas:
    cost_per_base_unit        = purchase_cost / base_qty_per_purchase
    total_recipe_cost         = sum(qty_g * item.cost_per_base_unit)
    recipe_cost_per_gram      = total_recipe_cost / yield_qty_g
    cost_for_recipe_in_product = qty_g_in_product * recipe_cost_per_gram
    cost_for_item_in_product  = qty_g * item.cost_per_base_unit
    total_finished_product_cost = total_recipes_cost + total_direct_items_cost

Waste percentage is carried on ingredient lines and reported in the
breakdown; it does not enter the cost formula.

All arithmetic runs on Decimal inside a fixed context (COST_PRECISION
significant digits, banker's rounding). Rates (cost per gram) keep full
precision, but every line cost is quantized to LINE_QUANTUM before it is
summed. Additions at one fixed scale are exact, so totals do not depend on
line order or on the caller's decimal context. Rounding for display happens
only in to_dict() via dto_utils.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_EVEN, Context, Decimal, InvalidOperation, localcontext
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from food_costing.services.dto_utils import cost_to_string, rate_to_string
from food_costing.services.exceptions import DivisionByZeroError, ValidationError
from food_costing.services.logging_utils import get_service_logger, log_operation
from food_costing.utils.constants import (
    BASE_UNIT,
    COST_PRECISION,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_REQUIRED_FIELD,
    ERROR_WASTE_RANGE,
    LINE_QUANTUM,
    MAX_WASTE_PCT,
    MIN_WASTE_PCT,
)

logger = get_service_logger(__name__)

COST_CONTEXT = Context(prec=COST_PRECISION, rounding=ROUND_HALF_EVEN)

ZERO = Decimal(0)


# ============================================================================
# Inputs
# ============================================================================


@dataclass(frozen=True)
class ItemCostInput:
    """
    Cost-relevant snapshot of an inventory item.

    Either purchase_cost with base_qty_per_purchase, or a precomputed
    cost_per_base_unit, must be present. When both are given the purchase
    fields win.
    """

    item_id: Any
    name: str
    purchase_cost: Optional[Decimal] = None
    base_qty_per_purchase: Optional[Decimal] = None
    cost_per_base_unit: Optional[Decimal] = None
    base_unit: str = BASE_UNIT


@dataclass(frozen=True)
class IngredientLineInput:
    """One recipe ingredient line: qty_g of an item, with its waste percentage."""

    item: ItemCostInput
    qty_g: Decimal
    waste_pct: Decimal = ZERO


@dataclass(frozen=True)
class RecipeCostInput:
    recipe_id: Any
    name: str
    yield_qty_g: Decimal


@dataclass(frozen=True)
class RecipeUsageInput:
    """A recipe used in a product: qty_g of the recipe's yield per product."""

    recipe: RecipeCostInput
    qty_g: Decimal
    ingredient_lines: Sequence[IngredientLineInput] = field(default_factory=tuple)


@dataclass(frozen=True)
class ItemUsageInput:
    """A raw item used directly in a product, bypassing any recipe."""

    item: ItemCostInput
    qty_g: Decimal


@dataclass(frozen=True)
class ProductCostInput:
    product_id: Any
    name: str


# ============================================================================
# Results
# ============================================================================


@dataclass(frozen=True)
class IngredientCost:
    item_id: Any
    item_name: str
    qty_g: Decimal
    waste_pct: Decimal
    cost_per_base_unit: Decimal
    line_cost: Decimal

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "qty_g": str(self.qty_g),
            "waste_pct": str(self.waste_pct),
            "cost_per_base_unit": rate_to_string(self.cost_per_base_unit),
            "line_cost": cost_to_string(self.line_cost),
        }


@dataclass(frozen=True)
class RecipeCostResult:
    recipe_id: Any
    name: str
    yield_qty_g: Decimal
    total_recipe_cost: Decimal
    recipe_cost_per_gram: Decimal
    lines: List[IngredientCost]

    def to_dict(self) -> dict:
        return {
            "recipe_id": self.recipe_id,
            "name": self.name,
            "yield_qty_g": str(self.yield_qty_g),
            "total_recipe_cost": cost_to_string(self.total_recipe_cost),
            "recipe_cost_per_gram": rate_to_string(self.recipe_cost_per_gram),
            "items": [line.to_dict() for line in self.lines],
        }


@dataclass(frozen=True)
class RecipeItemInProduct:
    item_id: Any
    item_name: str
    qty_g_in_recipe: Decimal
    waste_pct: Decimal
    cost_per_base_unit: Decimal
    cost_in_full_recipe: Decimal
    cost_in_product: Decimal

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "item_name": self.item_name,
            "qty_g_in_recipe": str(self.qty_g_in_recipe),
            "waste_pct": str(self.waste_pct),
            "cost_per_base_unit": rate_to_string(self.cost_per_base_unit),
            "cost_in_full_recipe": cost_to_string(self.cost_in_full_recipe),
            "cost_in_product": cost_to_string(self.cost_in_product),
        }


@dataclass(frozen=True)
class RecipeInProduct:
    recipe_id: Any
    name: str
    qty_g_in_product: Decimal
    yield_qty_g: Decimal
    total_recipe_cost: Decimal
    recipe_cost_per_gram: Decimal
    cost_for_recipe_in_product: Decimal
    items: List[RecipeItemInProduct]

    def to_dict(self) -> dict:
        return {
            "recipe_id": self.recipe_id,
            "name": self.name,
            "qty_g_in_product": str(self.qty_g_in_product),
            "yield_qty_g": str(self.yield_qty_g),
            "total_recipe_cost": cost_to_string(self.total_recipe_cost),
            "recipe_cost_per_gram": rate_to_string(self.recipe_cost_per_gram),
            "cost_for_recipe_in_product": cost_to_string(self.cost_for_recipe_in_product),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass(frozen=True)
class DirectItemInProduct:
    item_id: Any
    name: str
    qty_g: Decimal
    cost_per_base_unit: Decimal
    cost_for_item_in_product: Decimal

    def to_dict(self) -> dict:
        return {
            "item_id": self.item_id,
            "name": self.name,
            "qty_g": str(self.qty_g),
            "cost_per_base_unit": rate_to_string(self.cost_per_base_unit),
            "cost_for_item_in_product": cost_to_string(self.cost_for_item_in_product),
        }


@dataclass(frozen=True)
class ProductCostResult:
    product_id: Any
    name: str
    total_recipes_cost: Decimal
    total_direct_items_cost: Decimal
    total_finished_product_cost: Decimal
    recipes: List[RecipeInProduct]
    direct_items: List[DirectItemInProduct]

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "total_recipes_cost": cost_to_string(self.total_recipes_cost),
            "total_direct_items_cost": cost_to_string(self.total_direct_items_cost),
            "total_finished_product_cost": cost_to_string(self.total_finished_product_cost),
            "recipes": [recipe.to_dict() for recipe in self.recipes],
            "direct_items": [item.to_dict() for item in self.direct_items],
        }


# ============================================================================
# Helpers
# ============================================================================


def to_decimal(value: Any, field_name: str = "Value") -> Decimal:
    """
    Convert a numeric input to a finite Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1") rather than its
    binary expansion.

    Raises:
        ValidationError: If value is missing, boolean, or not a finite number
    """
    if value is None:
        raise ValidationError(f"{field_name}: {ERROR_REQUIRED_FIELD}")
    if isinstance(value, bool):
        raise ValidationError(f"{field_name}: {ERROR_INVALID_NUMBER}")
    if isinstance(value, Decimal):
        number = value
    elif isinstance(value, int):
        number = Decimal(value)
    else:
        try:
            number = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"{field_name}: {ERROR_INVALID_NUMBER}")
    if not number.is_finite():
        raise ValidationError(f"{field_name}: {ERROR_INVALID_NUMBER}")
    return number


def _non_negative(value: Any, field_name: str) -> Decimal:
    number = to_decimal(value, field_name)
    if number < 0:
        raise ValidationError(f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}")
    return number


def _waste_pct(value: Any, field_name: str) -> Decimal:
    if value is None:
        return ZERO
    number = to_decimal(value, field_name)
    if number < MIN_WASTE_PCT or number > MAX_WASTE_PCT:
        raise ValidationError(f"{field_name}: {ERROR_WASTE_RANGE}")
    return number


def _line(value: Decimal) -> Decimal:
    try:
        return value.quantize(LINE_QUANTUM, context=COST_CONTEXT)
    except InvalidOperation:
        raise ValidationError(f"Line cost {value} is too large to cost")


def _sum(values: Iterable[Decimal]) -> Decimal:
    total = ZERO
    for value in values:
        total += value
    return total


# ============================================================================
# Unit/Quantity Normalizer
# ============================================================================


def compute_item_cost_per_base_unit(item: Any) -> Decimal:
    """
    Derive an item's cost per base unit (per gram).

    Accepts an ItemCostInput or any object with ``purchase_cost`` and
    ``base_qty_per_purchase`` attributes (e.g. the Item ORM model). When
    ``base_qty_per_purchase`` is absent, a precomputed ``cost_per_base_unit``
    attribute is used instead.

    Args:
        item: Item-like object

    Returns:
        purchase_cost / base_qty_per_purchase

    Raises:
        ValidationError: If base_qty_per_purchase <= 0, cost is negative,
            or neither form of cost data is present

    Example:
        >>> compute_item_cost_per_base_unit(
        ...     ItemCostInput(1, "Flour", Decimal("10.00"), Decimal("1000"))
        ... )
        Decimal('0.01')
    """
    label = f"Item '{getattr(item, 'name', '?')}'"
    base_qty = getattr(item, "base_qty_per_purchase", None)

    with localcontext(COST_CONTEXT):
        if base_qty is None:
            precomputed = getattr(item, "cost_per_base_unit", None)
            if precomputed is None:
                raise ValidationError(
                    f"{label}: purchase cost and base quantity per purchase are required"
                )
            return _non_negative(precomputed, f"{label} cost per base unit")

        base_qty = to_decimal(base_qty, f"{label} base qty per purchase")
        if base_qty <= 0:
            raise ValidationError(f"{label} base qty per purchase: {ERROR_INVALID_POSITIVE}")
        purchase_cost = _non_negative(
            getattr(item, "purchase_cost", None), f"{label} purchase cost"
        )
        return purchase_cost / base_qty


# ============================================================================
# Recipe Cost Aggregator
# ============================================================================


def sum_ingredient_costs(
    ingredient_lines: Iterable[IngredientLineInput],
) -> Tuple[Decimal, List[IngredientCost]]:
    """
    Cost each ingredient line and total them, without touching the yield.

    Returns:
        (total_recipe_cost, per-line breakdown in input order)

    Raises:
        ValidationError: On negative qty_g or waste_pct outside 0..100
    """
    lines = []
    with localcontext(COST_CONTEXT):
        for line in ingredient_lines:
            item = line.item
            label = f"Ingredient '{item.name}'"
            qty_g = _non_negative(line.qty_g, f"{label} quantity (g)")
            waste_pct = _waste_pct(line.waste_pct, f"{label} waste %")
            rate = compute_item_cost_per_base_unit(item)
            lines.append(
                IngredientCost(
                    item_id=item.item_id,
                    item_name=item.name,
                    qty_g=qty_g,
                    waste_pct=waste_pct,
                    cost_per_base_unit=rate,
                    line_cost=_line(qty_g * rate),
                )
            )
        total = _sum(line.line_cost for line in lines)
    return total, lines


def compute_recipe_cost(
    recipe: RecipeCostInput, ingredient_lines: Iterable[IngredientLineInput]
) -> RecipeCostResult:
    """
    Compute a recipe's total cost and cost per gram of yield.

    Args:
        recipe: Recipe identity and yield_qty_g
        ingredient_lines: Lines with current item costs

    Returns:
        RecipeCostResult with total_recipe_cost, recipe_cost_per_gram and
        the per-line breakdown

    Raises:
        DivisionByZeroError: If yield_qty_g <= 0
        ValidationError: On malformed lines or item cost data
    """
    yield_qty_g = to_decimal(recipe.yield_qty_g, f"Recipe '{recipe.name}' yield")
    if yield_qty_g <= 0:
        log_operation(
            logger,
            operation="compute_recipe_cost",
            outcome="zero_yield",
            level=logging.WARNING,
            recipe_id=recipe.recipe_id,
            yield_qty_g=str(yield_qty_g),
        )
        raise DivisionByZeroError("yield_qty_g", yield_qty_g, f"recipe '{recipe.name}'")

    total, lines = sum_ingredient_costs(ingredient_lines)
    with localcontext(COST_CONTEXT):
        cost_per_gram = total / yield_qty_g

    log_operation(
        logger,
        operation="compute_recipe_cost",
        outcome="success",
        level=logging.DEBUG,
        recipe_id=recipe.recipe_id,
        line_count=len(lines),
        total_recipe_cost=str(total),
    )
    return RecipeCostResult(
        recipe_id=recipe.recipe_id,
        name=recipe.name,
        yield_qty_g=yield_qty_g,
        total_recipe_cost=total,
        recipe_cost_per_gram=cost_per_gram,
        lines=lines,
    )


# ============================================================================
# Product Cost Aggregator
# ============================================================================


def _cost_recipe_usage(usage: RecipeUsageInput) -> RecipeInProduct:
    recipe_cost = compute_recipe_cost(usage.recipe, usage.ingredient_lines)
    qty_in_product = _non_negative(usage.qty_g, f"Recipe '{usage.recipe.name}' quantity (g)")

    with localcontext(COST_CONTEXT):
        share = qty_in_product / recipe_cost.yield_qty_g
        items = [
            RecipeItemInProduct(
                item_id=line.item_id,
                item_name=line.item_name,
                qty_g_in_recipe=line.qty_g,
                waste_pct=line.waste_pct,
                cost_per_base_unit=line.cost_per_base_unit,
                cost_in_full_recipe=line.line_cost,
                cost_in_product=_line(line.line_cost * share),
            )
            for line in recipe_cost.lines
        ]
        cost_in_product = _line(qty_in_product * recipe_cost.recipe_cost_per_gram)

    return RecipeInProduct(
        recipe_id=recipe_cost.recipe_id,
        name=recipe_cost.name,
        qty_g_in_product=qty_in_product,
        yield_qty_g=recipe_cost.yield_qty_g,
        total_recipe_cost=recipe_cost.total_recipe_cost,
        recipe_cost_per_gram=recipe_cost.recipe_cost_per_gram,
        cost_for_recipe_in_product=cost_in_product,
        items=items,
    )


def _cost_item_usage(usage: ItemUsageInput) -> DirectItemInProduct:
    qty_g = _non_negative(usage.qty_g, f"Item '{usage.item.name}' quantity (g)")
    rate = compute_item_cost_per_base_unit(usage.item)
    with localcontext(COST_CONTEXT):
        cost = _line(qty_g * rate)
    return DirectItemInProduct(
        item_id=usage.item.item_id,
        name=usage.item.name,
        qty_g=qty_g,
        cost_per_base_unit=rate,
        cost_for_item_in_product=cost,
    )


def compute_product_cost(
    product: ProductCostInput,
    recipe_usages: Iterable[RecipeUsageInput],
    item_usages: Iterable[ItemUsageInput],
) -> ProductCostResult:
    """
    Compute a product's cost from its recipe usages and direct item usages.

    Each recipe usage is costed through compute_recipe_cost() from its
    current ingredient lines. The "at least one usage" rule belongs to
    validate_product_data() and is not re-checked here.

    Args:
        product: Product identity
        recipe_usages: Recipes used, each with qty_g and its ingredient lines
        item_usages: Raw items used directly, each with qty_g

    Returns:
        ProductCostResult with subtotals, grand total and full breakdown

    Raises:
        DivisionByZeroError: If a used recipe has yield_qty_g <= 0
        ValidationError: On negative quantities or malformed item cost data
    """
    recipes = [_cost_recipe_usage(usage) for usage in recipe_usages]
    direct_items = [_cost_item_usage(usage) for usage in item_usages]

    with localcontext(COST_CONTEXT):
        total_recipes = _sum(r.cost_for_recipe_in_product for r in recipes)
        total_direct = _sum(i.cost_for_item_in_product for i in direct_items)
        total = total_recipes + total_direct

    log_operation(
        logger,
        operation="compute_product_cost",
        outcome="success",
        level=logging.DEBUG,
        product_id=product.product_id,
        recipe_count=len(recipes),
        direct_item_count=len(direct_items),
        total_finished_product_cost=str(total),
    )
    return ProductCostResult(
        product_id=product.product_id,
        name=product.name,
        total_recipes_cost=total_recipes,
        total_direct_items_cost=total_direct,
        total_finished_product_cost=total,
        recipes=recipes,
        direct_items=direct_items,
    )
