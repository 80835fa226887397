"""Services package - cost engine and business logic layer for Food Costing.

Architecture:
- Cost engine: Pure Decimal functions, Item -> Recipe -> Product
- Cost sources: Resolve ids into engine inputs (local database or REST API)
- Services: Stateless functions organized by domain (item, recipe, product, employee)
- Transactions: Managed via session_scope() context manager
- Exceptions: Consistent error handling via ServiceError hierarchy
- Validation: Input validation before database operations

Service Modules:
- cost_engine: compute_item_cost_per_base_unit, compute_recipe_cost, compute_product_cost
- cost_sources: CostDataSource protocol, DatabaseCostSource, ApiCostSource
- costing_service: cost_item/cost_recipe/cost_product and stored total refresh
- item_service: Items, units and categories
- recipe_service: Recipes and ingredient lines
- product_service: Products with recipe and direct item usages
- employee_service: Organization members
- dashboard_service: Counts and averages

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- unit_converter: Weight conversion into grams
- logging_utils / dto_utils: Structured logging and display formatting
"""

from . import (
    exceptions,
    logging_utils,
    dto_utils,
    cost_engine,
    unit_converter,
    database,
    cost_sources,
    costing_service,
    item_service,
    recipe_service,
    product_service,
    employee_service,
    dashboard_service,
)

__all__ = [
    "exceptions",
    "logging_utils",
    "dto_utils",
    "cost_engine",
    "unit_converter",
    "database",
    "cost_sources",
    "costing_service",
    "item_service",
    "recipe_service",
    "product_service",
    "employee_service",
    "dashboard_service",
]
