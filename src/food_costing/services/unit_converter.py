"""
Unit conversion for purchase quantities.

Recipe and product quantities are always in grams (the base unit). Items are
bought in purchase units; this module converts weight quantities into grams
so the item form can derive ``base_qty_per_purchase`` from what is printed on
the package.

Conversion Strategy:
- Weight units convert through grams (base unit) with exact Decimal factors
- Volume and count units have no fixed gram equivalent; callers enter
  base_qty_per_purchase by hand for those
"""

from decimal import Decimal
from typing import Any

from food_costing.services.cost_engine import to_decimal
from food_costing.services.exceptions import ValidationError
from food_costing.utils.constants import (
    ALL_UNITS,
    BASE_UNIT,
    COUNT_UNITS,
    VOLUME_UNITS,
    WEIGHT_TO_GRAMS,
)


def get_unit_type(unit: str) -> str:
    """
    Determine the type of a unit.

    Returns:
        "weight", "volume", "count", or "unknown"
    """
    unit_lower = unit.strip().lower()
    if unit_lower in WEIGHT_TO_GRAMS:
        return "weight"
    elif unit_lower in VOLUME_UNITS:
        return "volume"
    elif unit_lower in COUNT_UNITS:
        return "count"
    return "unknown"


def to_base_quantity(quantity: Any, unit: str) -> Decimal:
    """
    Convert a weight quantity into grams.

    Args:
        quantity: Amount in ``unit`` (Decimal, int, str or float)
        unit: Weight unit symbol ("g", "kg", "oz", "lb")

    Returns:
        Equivalent quantity in grams

    Raises:
        ValidationError: If the unit is unknown or not a weight unit, or
            the quantity is negative or not a number

    Example:
        >>> to_base_quantity("2.5", "kg")
        Decimal('2500.0')
    """
    amount = to_decimal(quantity, "Quantity")
    if amount < 0:
        raise ValidationError("Quantity: Value must be zero or greater")

    unit_lower = (unit or "").strip().lower()
    if unit_lower not in ALL_UNITS:
        raise ValidationError(f"Unit: Invalid unit '{unit}'")
    if unit_lower not in WEIGHT_TO_GRAMS:
        raise ValidationError(
            f"Unit: '{unit}' is a {get_unit_type(unit_lower)} unit and has no fixed "
            f"{BASE_UNIT} equivalent"
        )
    return amount * WEIGHT_TO_GRAMS[unit_lower]


def derive_base_qty_per_purchase(purchase_qty: Any, purchase_unit: str) -> Decimal:
    """
    Base quantity (grams) contained in one purchase, for weight purchase units.

    Example:
        >>> derive_base_qty_per_purchase(5, "lb")
        Decimal('2267.96185')
    """
    return to_base_quantity(purchase_qty, purchase_unit)
