"""
Input validation functions for the Food Costing application.

This module provides validation functions for all user inputs including:
- Numeric validation (positive, non-negative, ranges)
- String validation (length, required fields, email)
- Unit and role validation
- Complete record validation (item, recipe, recipe line, product, employee)

Field validators return ``(is_valid, error_message)``; record validators
return ``(is_valid, list_of_errors)``. Services turn a failed record
validation into a ``ValidationError``.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Tuple

from .constants import (
    ALL_UNITS,
    BASE_QTY_DECIMAL_PLACES,
    EMPLOYEE_ROLES,
    ERROR_INVALID_EMAIL,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_INVALID_ROLE,
    ERROR_INVALID_UNIT,
    ERROR_PRODUCT_EMPTY,
    ERROR_QUANTITY_TOO_LARGE,
    ERROR_REQUIRED_FIELD,
    ERROR_TOO_MANY_DECIMALS,
    MAX_DESCRIPTION_LENGTH,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    MAX_QUANTITY,
    MAX_SKU_LENGTH,
    MAX_WASTE_PCT,
    MIN_WASTE_PCT,
    PURCHASE_COST_DECIMAL_PLACES,
    QTY_DECIMAL_PLACES,
    WASTE_DECIMAL_PLACES,
)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool) or value is None:
        raise InvalidOperation(value)
    number = Decimal(str(value))
    if not number.is_finite():
        raise InvalidOperation(value)
    return number


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """Validate that a string doesn't exceed maximum length."""
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_positive_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a positive number (> 0).

    Args:
        value: The value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        number = _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number <= 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """Validate that a value is a non-negative number (>= 0)."""
    try:
        number = _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_number_range(
    value: Any, min_value: Any, max_value: Any, field_name: str = "Field"
) -> Tuple[bool, str]:
    """Validate that a number is within [min_value, max_value]."""
    try:
        number = _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if number < Decimal(str(min_value)) or number > Decimal(str(max_value)):
        return False, f"{field_name}: Must be between {min_value} and {max_value}"
    return True, ""


def validate_decimal_places(value: Any, places: int, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a number fits a column storing ``places`` decimal places.

    Non-numeric values pass here; the number validators report them.

    Example:
        >>> validate_decimal_places("10.12345", 4, "Purchase Cost")
        (False, 'Purchase Cost: Must have at most 4 decimal places')
    """
    try:
        number = _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return True, ""
    # normalize() drops trailing zeros, so "1.5000" fits one place
    if number.normalize().as_tuple().exponent < -places:
        return False, f"{field_name}: {ERROR_TOO_MANY_DECIMALS.format(places=places)}"
    return True, ""


def _validate_quantity(
    errors: list,
    value: Any,
    field_name: str,
    places: int = QTY_DECIMAL_PLACES,
    positive: bool = False,
) -> None:
    """Sign, upper bound and stored scale of a quantity, in that order."""
    check = validate_positive_number if positive else validate_non_negative_number
    if not _collect(errors, check(value, field_name)):
        return
    if _to_decimal(value) > MAX_QUANTITY:
        errors.append(f"{field_name}: {ERROR_QUANTITY_TOO_LARGE}")
        return
    _collect(errors, validate_decimal_places(value, places, field_name))


def validate_unit(unit: Optional[str], field_name: str = "Unit") -> Tuple[bool, str]:
    """Validate that a unit symbol is one of the known units."""
    is_valid, error = validate_required_string(unit, field_name)
    if not is_valid:
        return is_valid, error
    if unit.strip().lower() not in ALL_UNITS:
        return False, f"{field_name}: {ERROR_INVALID_UNIT} '{unit}'"
    return True, ""


def validate_email(email: Optional[str], field_name: str = "Email") -> Tuple[bool, str]:
    """Validate a required email address."""
    is_valid, error = validate_required_string(email, field_name)
    if not is_valid:
        return is_valid, error
    if len(email) > MAX_EMAIL_LENGTH or not _EMAIL_RE.match(email.strip()):
        return False, f"{field_name}: {ERROR_INVALID_EMAIL}"
    return True, ""


def validate_role(role: Optional[str], field_name: str = "Role") -> Tuple[bool, str]:
    """Validate an employee role (case-insensitive)."""
    if not role or str(role).upper() not in EMPLOYEE_ROLES:
        return False, f"{field_name}: {ERROR_INVALID_ROLE}"
    return True, ""


def _collect(errors: list, result: Tuple[bool, str]) -> bool:
    is_valid, error = result
    if not is_valid:
        errors.append(error)
    return is_valid


def _validate_name(errors: list, value: Optional[str], field_name: str) -> None:
    if _collect(errors, validate_required_string(value, field_name)):
        _collect(errors, validate_string_length(value, MAX_NAME_LENGTH, field_name))


def validate_item_data(data: dict, partial: bool = False) -> Tuple[bool, list]:  # noqa: C901
    """
    Validate all fields for an inventory item.

    Args:
        data: Dictionary containing item fields
        partial: If True, only validate the fields present (used by updates)

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    def present(key: str) -> bool:
        return not partial or key in data

    if present("name"):
        _validate_name(errors, data.get("name"), "Item Name")

    if data.get("sku"):
        _collect(errors, validate_string_length(data.get("sku"), MAX_SKU_LENGTH, "SKU"))

    if present("purchase_unit"):
        _collect(errors, validate_unit(data.get("purchase_unit"), "Purchase Unit"))

    if present("base_unit"):
        _collect(errors, validate_unit(data.get("base_unit"), "Base Unit"))

    if present("purchase_qty"):
        _validate_quantity(errors, data.get("purchase_qty"), "Purchase Quantity", positive=True)

    if present("purchase_cost"):
        cost = data.get("purchase_cost")
        if _collect(errors, validate_non_negative_number(cost, "Purchase Cost")):
            _collect(
                errors,
                validate_decimal_places(cost, PURCHASE_COST_DECIMAL_PLACES, "Purchase Cost"),
            )

    # The conversion factor is a divisor for cost_per_base_unit, so it must
    # still be positive once stored at the column scale
    if present("base_qty_per_purchase"):
        _validate_quantity(
            errors,
            data.get("base_qty_per_purchase"),
            "Base Qty Per Purchase",
            places=BASE_QTY_DECIMAL_PLACES,
            positive=True,
        )

    return len(errors) == 0, errors


def validate_recipe_data(data: dict, partial: bool = False) -> Tuple[bool, list]:
    """
    Validate all fields for a recipe.

    Args:
        data: Dictionary containing recipe fields
        partial: If True, only validate the fields present (used by updates)

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    if not partial or "name" in data:
        _validate_name(errors, data.get("name"), "Recipe Name")

    # Yield is the divisor for cost per gram
    if not partial or "yield_qty_g" in data:
        _validate_quantity(errors, data.get("yield_qty_g"), "Yield Quantity", positive=True)

    if data.get("description"):
        _collect(
            errors,
            validate_string_length(data.get("description"), MAX_DESCRIPTION_LENGTH, "Description"),
        )

    return len(errors) == 0, errors


def validate_recipe_item_data(data: dict) -> Tuple[bool, list]:
    """
    Validate one recipe ingredient line.

    Args:
        data: Dictionary with item_id, qty_g and optional waste_pct

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    if data.get("item_id") is None:
        errors.append(f"Item: {ERROR_REQUIRED_FIELD}")

    _validate_quantity(errors, data.get("qty_g"), "Quantity (g)")

    waste_pct = data.get("waste_pct")
    if waste_pct is not None:
        in_range = validate_number_range(waste_pct, MIN_WASTE_PCT, MAX_WASTE_PCT, "Waste %")
        if _collect(errors, in_range):
            _collect(errors, validate_decimal_places(waste_pct, WASTE_DECIMAL_PLACES, "Waste %"))

    return len(errors) == 0, errors


def validate_usage_lines(lines: Iterable[dict], key: str, label: str) -> list:
    """Validate product usage lines (recipe or item references with qty_g)."""
    errors = []
    for index, line in enumerate(lines, start=1):
        if line.get(key) is None:
            errors.append(f"{label} #{index}: {ERROR_REQUIRED_FIELD}")
        _validate_quantity(errors, line.get("qty_g"), f"{label} #{index} Quantity (g)")
    return errors


def validate_product_data(
    data: dict,
    recipes: Optional[list] = None,
    items: Optional[list] = None,
    require_usage: bool = True,
) -> Tuple[bool, list]:
    """
    Validate a product and its usage lines.

    A product must resolve to at least one recipe usage or item usage; that
    rule is checked here so the cost aggregator never sees an empty product.

    Args:
        data: Dictionary containing product fields (name, description)
        recipes: Recipe usage lines, dicts with recipe_id and qty_g
        items: Direct item usage lines, dicts with item_id and qty_g
        require_usage: If False, skip the at-least-one-usage rule (updates
            that leave usage lines untouched)

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []
    recipes = recipes or []
    items = items or []

    if "name" in data or require_usage:
        _validate_name(errors, data.get("name"), "Product Name")

    if data.get("description"):
        _collect(
            errors,
            validate_string_length(data.get("description"), MAX_DESCRIPTION_LENGTH, "Description"),
        )

    if require_usage and not recipes and not items:
        errors.append(ERROR_PRODUCT_EMPTY)

    errors.extend(validate_usage_lines(recipes, "recipe_id", "Recipe"))
    errors.extend(validate_usage_lines(items, "item_id", "Item"))

    return len(errors) == 0, errors


def validate_employee_data(data: dict, partial: bool = False) -> Tuple[bool, list]:
    """Validate employee fields (email, full_name, role)."""
    errors = []

    if not partial or "email" in data:
        _collect(errors, validate_email(data.get("email")))

    if not partial or "full_name" in data:
        _validate_name(errors, data.get("full_name"), "Full Name")

    if not partial or "role" in data:
        _collect(errors, validate_role(data.get("role")))

    return len(errors) == 0, errors


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Strip whitespace and convert empty strings to None.

    Args:
        value: The string to sanitize

    Returns:
        Sanitized string or None
    """
    if value is None:
        return None
    value = str(value).strip()
    return value if value else None


def parse_decimal(value: Any, default: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Parse a value to Decimal, falling back to default when it isn't a number.

    Floats go through str() so 0.1 parses as Decimal("0.1").
    """
    try:
        return _to_decimal(value)
    except (InvalidOperation, ValueError, TypeError):
        return default
