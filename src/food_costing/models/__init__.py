"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .unit import Unit, Category
from .item import Item
from .recipe import Recipe, RecipeIngredient
from .product import Product, ProductRecipe, ProductItem
from .employee import Employee, EmployeeRole

__all__ = [
    "Base",
    "BaseModel",
    "Unit",
    "Category",
    "Item",
    "Recipe",
    "RecipeIngredient",
    "Product",
    "ProductRecipe",
    "ProductItem",
    "Employee",
    "EmployeeRole",
]
