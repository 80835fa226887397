"""DTO utilities for service layer.

Provides standardized formatting functions for data transfer objects,
ensuring consistent JSON serialization of money and cost rates.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from food_costing.utils.constants import MONEY_QUANTUM, RATE_QUANTUM

Number = Union[Decimal, float, int, str, None]


def _quantize(value: Number, quantum: Decimal) -> str:
    if value is None:
        return str(Decimal(0).quantize(quantum))
    decimal_value = value if isinstance(value, Decimal) else Decimal(str(value))
    return str(decimal_value.quantize(quantum, rounding=ROUND_HALF_UP))


def cost_to_string(value: Number) -> str:
    """
    Convert a cost value to a 2-decimal string format.

    Args:
        value: Cost value (Decimal, float, int, str, or None)

    Returns:
        String formatted as "12.34". Returns "0.00" if value is None.

    Examples:
        >>> cost_to_string(Decimal("12.345"))
        '12.35'
        >>> cost_to_string(None)
        '0.00'
    """
    return _quantize(value, MONEY_QUANTUM)


def rate_to_string(value: Number) -> str:
    """
    Convert a per-gram or per-base-unit cost rate to a 6-decimal string.

    Examples:
        >>> rate_to_string(Decimal("0.015"))
        '0.015000'
    """
    return _quantize(value, RATE_QUANTUM)
