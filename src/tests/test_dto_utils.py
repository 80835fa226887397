"""Tests for DTO utility functions."""

import json
from decimal import Decimal

from food_costing.services.dto_utils import cost_to_string, rate_to_string


class TestCostToString:
    """Tests for cost_to_string function."""

    def test_none_returns_zero(self):
        """None value returns '0.00'."""
        assert cost_to_string(None) == "0.00"

    def test_decimal_rounding(self):
        """Decimal values are rounded to 2 places using ROUND_HALF_UP."""
        assert cost_to_string(Decimal("12.345")) == "12.35"
        assert cost_to_string(Decimal("12.344")) == "12.34"
        assert cost_to_string(Decimal("0.005")) == "0.01"

    def test_float_and_int(self):
        assert cost_to_string(12.3) == "12.30"
        assert cost_to_string(100) == "100.00"

    def test_string_value(self):
        assert cost_to_string("15.999") == "16.00"

    def test_negative_values(self):
        assert cost_to_string(Decimal("-12.345")) == "-12.35"

    def test_high_precision_engine_values(self):
        assert cost_to_string(Decimal("2.649999999999999999999999999999999")) == "2.65"

    def test_json_serializable(self):
        assert json.dumps({"cost": cost_to_string(Decimal("1.5"))}) == '{"cost": "1.50"}'


class TestRateToString:
    """Tests for rate_to_string function."""

    def test_six_places(self):
        assert rate_to_string(Decimal("0.015")) == "0.015000"
        assert rate_to_string(Decimal("0.0088333333")) == "0.008833"

    def test_none_returns_zero(self):
        assert rate_to_string(None) == "0.000000"

    def test_rounds_half_up(self):
        assert rate_to_string("0.0000005") == "0.000001"
