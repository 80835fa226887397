"""Tests for purchase quantity conversion into grams."""

from decimal import Decimal

import pytest

from food_costing.services.exceptions import ValidationError
from food_costing.services.unit_converter import (
    derive_base_qty_per_purchase,
    get_unit_type,
    to_base_quantity,
)


class TestGetUnitType:
    @pytest.mark.parametrize(
        "unit, expected",
        [("kg", "weight"), ("LB", "weight"), ("ml", "volume"), ("case", "count"), ("x", "unknown")],
    )
    def test_unit_types(self, unit, expected):
        assert get_unit_type(unit) == expected


class TestToBaseQuantity:
    def test_kilograms(self):
        assert to_base_quantity("2.5", "kg") == Decimal("2500")

    def test_pounds_are_exact(self):
        assert to_base_quantity(5, "lb") == Decimal("2267.96185")

    def test_ounces(self):
        assert to_base_quantity(16, "oz") == Decimal("453.59237")

    def test_grams_unchanged(self):
        assert to_base_quantity(Decimal("750"), "g") == Decimal("750")

    def test_volume_unit_has_no_gram_equivalent(self):
        with pytest.raises(ValidationError) as exc_info:
            to_base_quantity(1, "l")
        assert "volume" in str(exc_info.value)

    def test_unknown_unit(self):
        with pytest.raises(ValidationError):
            to_base_quantity(1, "furlong")

    def test_negative_quantity(self):
        with pytest.raises(ValidationError):
            to_base_quantity(-1, "kg")

    def test_derive_base_qty_per_purchase(self):
        assert derive_base_qty_per_purchase(1, "kg") == Decimal("1000")
