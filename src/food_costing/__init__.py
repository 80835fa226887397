"""Food Costing - inventory, recipe and product cost tracking for restaurants."""

__version__ = "0.1.0"
