"""Service layer logging utilities.

Provides structured logging functions for service operations, enabling
consistent log format and context across cost computations and CRUD
operations.

Usage:
    from food_costing.services.logging_utils import get_service_logger, log_operation

    logger = get_service_logger(__name__)

    log_operation(
        logger,
        operation="compute_recipe_cost",
        outcome="success",
        recipe_id=12,
        total_recipe_cost="15.00",
    )
"""

import logging
from typing import Any


def get_service_logger(name: str) -> logging.Logger:
    """
    Get a logger configured for service operations.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger named 'food_costing.services.<module>'

    Example:
        >>> logger = get_service_logger("food_costing.services.cost_engine")
        >>> logger.name
        'food_costing.services.cost_engine'
    """
    if "." in name:
        name = name.split(".")[-1]
    return logging.getLogger(f"food_costing.services.{name}")


def log_operation(
    logger: logging.Logger,
    operation: str,
    outcome: str,
    level: int = logging.INFO,
    **context: Any,
) -> None:
    """
    Log a service operation with structured context.

    The message is "<operation>: <outcome>"; the context fields travel in the
    record's ``extra`` so handlers can format them.

    Args:
        logger: Logger instance to use
        operation: Operation name (e.g., "create_recipe", "compute_product_cost")
        outcome: Outcome description (e.g., "success", "validation_failed")
        level: Log level (default: INFO). Use DEBUG for frequent logs.
        **context: Additional context fields (entity IDs, totals, errors)
    """
    extra = {
        "operation": operation,
        "outcome": outcome,
        **context,
    }
    logger.log(level, f"{operation}: {outcome}", extra=extra)
