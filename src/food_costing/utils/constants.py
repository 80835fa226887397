"""
Constants and enumerations for the Food Costing application.

This module defines all system-wide constants including:
- Application metadata
- Unit tables (weight, volume, count) and the base unit
- Employee roles
- Validation limits and error messages
- Money formatting quanta
"""

from decimal import Decimal
from typing import Dict, List

# ============================================================================
# Application Metadata
# ============================================================================

APP_NAME = "Food Costing"
DATABASE_FILENAME = "food_costing.db"

# Environment variables read by utils.config
ENV_ENVIRONMENT = "FOOD_COSTING_ENV"
ENV_DATABASE_URL = "FOOD_COSTING_DATABASE_URL"
ENV_API_URL = "FOOD_COSTING_API_URL"
ENV_API_TIMEOUT = "FOOD_COSTING_API_TIMEOUT"

DEFAULT_API_URL = "http://localhost:4000"
DEFAULT_API_TIMEOUT = 10.0

# Organization used by the local store when none is given
DEFAULT_ORG_ID = 1

# ============================================================================
# Units
# ============================================================================

# All recipe and product quantities are expressed in this unit
BASE_UNIT = "g"

WEIGHT_UNITS: List[str] = [
    "g",  # Gram
    "kg",  # Kilogram
    "oz",  # Ounce
    "lb",  # Pound
]

VOLUME_UNITS: List[str] = [
    "ml",  # Milliliter
    "l",  # Liter
]

COUNT_UNITS: List[str] = [
    "each",
    "dozen",
    "case",
]

ALL_UNITS: List[str] = WEIGHT_UNITS + VOLUME_UNITS + COUNT_UNITS

# Seed rows for the units table: (name, symbol, unit_type)
STANDARD_UNITS: List[tuple] = [
    ("Gram", "g", "weight"),
    ("Kilogram", "kg", "weight"),
    ("Ounce", "oz", "weight"),
    ("Pound", "lb", "weight"),
    ("Milliliter", "ml", "volume"),
    ("Liter", "l", "volume"),
    ("Each", "each", "count"),
    ("Dozen", "dozen", "count"),
    ("Case", "case", "count"),
]

# Weight conversions to grams (exact, as strings for Decimal)
WEIGHT_TO_GRAMS: Dict[str, Decimal] = {
    "g": Decimal("1"),
    "kg": Decimal("1000"),
    "oz": Decimal("28.349523125"),
    "lb": Decimal("453.59237"),
}

# ============================================================================
# Employees
# ============================================================================

EMPLOYEE_ROLES: List[str] = ["OWNER", "MANAGER", "STAFF"]
DEFAULT_EMPLOYEE_ROLE = "STAFF"

# ============================================================================
# Validation Limits
# ============================================================================

MAX_NAME_LENGTH = 200
MAX_SKU_LENGTH = 64
MAX_EMAIL_LENGTH = 254
MAX_DESCRIPTION_LENGTH = 1000

# Largest quantity in grams (or purchase units) a record may carry
MAX_QUANTITY = 999999999
MIN_WASTE_PCT = 0
MAX_WASTE_PCT = 100

# Decimal places stored per column; inputs with more places are rejected
QTY_DECIMAL_PLACES = 3
PURCHASE_COST_DECIMAL_PLACES = 4
BASE_QTY_DECIMAL_PLACES = 12
WASTE_DECIMAL_PLACES = 2

# ============================================================================
# Money
# ============================================================================

# Display quantum for money totals
MONEY_QUANTUM = Decimal("0.01")

# Display quantum for per-gram and per-base-unit rates
RATE_QUANTUM = Decimal("0.000001")

# Working precision for cost arithmetic
COST_PRECISION = 34

# Fixed scale of every line cost before it is summed
LINE_QUANTUM = Decimal("1e-12")

# ============================================================================
# Error Messages
# ============================================================================

ERROR_REQUIRED_FIELD = "This field is required"
ERROR_INVALID_NUMBER = "Please enter a valid number"
ERROR_INVALID_POSITIVE = "Value must be greater than zero"
ERROR_INVALID_NON_NEGATIVE = "Value must be zero or greater"
ERROR_INVALID_UNIT = "Invalid unit"
ERROR_INVALID_ROLE = f"Role must be one of {', '.join(EMPLOYEE_ROLES)}"
ERROR_INVALID_EMAIL = "Please enter a valid email address"
ERROR_WASTE_RANGE = f"Must be between {MIN_WASTE_PCT} and {MAX_WASTE_PCT}"
ERROR_TOO_MANY_DECIMALS = "Must have at most {places} decimal places"
ERROR_QUANTITY_TOO_LARGE = f"Must be {MAX_QUANTITY} or less"
ERROR_PRODUCT_EMPTY = "A product needs at least one recipe or item"
