"""Service layer exception classes for Food Costing.

This module defines all custom exceptions used by the service layer, the
cost engine and the REST client, to provide consistent error handling
across the application.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    ├── DivisionByZeroError
    ├── NotFoundError
    │   ├── ItemNotFound
    │   ├── RecipeNotFound
    │   ├── ProductNotFound
    │   ├── EmployeeNotFound
    │   ├── UnitNotFound
    │   └── CategoryNotFound
    ├── ItemInUse
    ├── RecipeInUse
    ├── DuplicateEmployee
    ├── DatabaseError
    └── ApiError
        └── AuthenticationError
"""

from typing import Any, Optional


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class ValidationError(ServiceError):
    """Raised when input validation fails.

    Args:
        errors: List of human-readable error messages (or a single string)

    Example:
        >>> raise ValidationError(["Yield Quantity: Value must be greater than zero"])
        ValidationError: Validation failed: Yield Quantity: Value must be greater than zero
    """

    def __init__(self, errors):
        if isinstance(errors, str):
            errors = [errors]
        self.errors = list(errors)
        super().__init__(f"Validation failed: {'; '.join(self.errors)}")


class DivisionByZeroError(ServiceError):
    """Raised when a cost rate would divide by a zero or negative quantity.

    Args:
        what: The divisor that was not positive (e.g. "yield_qty_g")
        value: Its offending value
        entity: Optional label of the record it belongs to
    """

    def __init__(self, what: str, value: Any, entity: Optional[str] = None):
        self.what = what
        self.value = value
        self.entity = entity
        where = f" for {entity}" if entity else ""
        super().__init__(f"Cannot divide by {what}={value}{where}: must be greater than zero")


class NotFoundError(ServiceError):
    """Raised when a referenced record cannot be resolved."""

    entity = "Record"

    def __init__(self, identifier: Any):
        self.identifier = identifier
        super().__init__(f"{self.entity} with ID {identifier} not found")


class ItemNotFound(NotFoundError):
    """Raised when an inventory item cannot be found by ID."""

    entity = "Item"

    @property
    def item_id(self):
        return self.identifier


class RecipeNotFound(NotFoundError):
    """Raised when a recipe cannot be found by ID."""

    entity = "Recipe"

    @property
    def recipe_id(self):
        return self.identifier


class ProductNotFound(NotFoundError):
    """Raised when a product cannot be found by ID."""

    entity = "Product"

    @property
    def product_id(self):
        return self.identifier


class EmployeeNotFound(NotFoundError):
    """Raised when an employee cannot be found by ID."""

    entity = "Employee"


class UnitNotFound(NotFoundError):
    """Raised when a unit symbol is not in the units table."""

    entity = "Unit"


class CategoryNotFound(NotFoundError):
    """Raised when an item category cannot be found by ID."""

    entity = "Category"


class ItemInUse(ServiceError):
    """Raised when attempting to delete an item that recipes or products reference.

    Args:
        item_id: Item identifier
        deps: Dependency counts, e.g. {'recipes': 2, 'products': 1}
    """

    def __init__(self, item_id: Any, deps: dict):
        self.item_id = item_id
        self.deps = deps
        parts = []
        if deps.get("recipes", 0) > 0:
            parts.append(f"{deps['recipes']} recipe(s)")
        if deps.get("products", 0) > 0:
            parts.append(f"{deps['products']} product(s)")
        deps_msg = ", ".join(parts) if parts else "related records"
        super().__init__(f"Cannot delete item {item_id}: used in {deps_msg}")


class RecipeInUse(ServiceError):
    """Raised when attempting to delete a recipe that products reference."""

    def __init__(self, recipe_id: Any, product_count: int):
        self.recipe_id = recipe_id
        self.product_count = product_count
        super().__init__(f"Cannot delete recipe {recipe_id}: used in {product_count} product(s)")


class DuplicateEmployee(ServiceError):
    """Raised when an email is already registered in the organization."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(f"Employee with email '{email}' already exists")


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")


class ApiError(ServiceError):
    """Raised when the backend REST API answers with an error status.

    Args:
        status_code: HTTP status code (None for transport failures)
        message: Error message from the response body, or a generic one
    """

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        prefix = f"API error {status_code}" if status_code is not None else "API error"
        super().__init__(f"{prefix}: {message}")


class AuthenticationError(ApiError):
    """Raised when the API rejects (or we lack) the bearer token."""

    pass
