"""
Product models for finished, sellable items.

This module contains:
- Product: A finished item built from recipes and raw items
- ProductRecipe: Grams of a recipe's yield used in one product
- ProductItem: Grams of a raw item used directly in one product
"""

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from food_costing.utils.constants import QTY_DECIMAL_PLACES

from .base import AuditMixin, BaseModel, OrgScopedMixin


class Product(OrgScopedMixin, AuditMixin, BaseModel):
    """
    Finished product.

    Attributes:
        org_id: Owning organization
        name: Product name
        description: Free-text description
        total_recipes_cost: Snapshot of the recipe usage subtotal
        total_direct_items_cost: Snapshot of the direct item subtotal
        total_finished_product_cost: Snapshot of the grand total
        created_by / updated_by: Audit user codes
    """

    __tablename__ = "products"

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    total_recipes_cost = Column(Numeric(16, 6), nullable=False, default=0)
    total_direct_items_cost = Column(Numeric(16, 6), nullable=False, default=0)
    total_finished_product_cost = Column(Numeric(16, 6), nullable=False, default=0)

    product_recipes = relationship(
        "ProductRecipe",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="joined",
        order_by="ProductRecipe.id",
    )
    product_items = relationship(
        "ProductItem",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="joined",
        order_by="ProductItem.id",
    )

    __table_args__ = (
        Index("idx_product_org", "org_id"),
        Index("idx_product_name", "name"),
    )


class ProductRecipe(BaseModel):
    """Recipe usage line of a product, unique per (product, recipe)."""

    __tablename__ = "product_recipes"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="RESTRICT"), nullable=False)
    qty_g = Column(Numeric(12, QTY_DECIMAL_PLACES), nullable=False)

    product = relationship("Product", back_populates="product_recipes")
    recipe = relationship("Recipe", back_populates="product_usages", lazy="joined")

    __table_args__ = (
        UniqueConstraint("product_id", "recipe_id", name="uq_product_recipe"),
        CheckConstraint("qty_g >= 0", name="ck_product_recipe_qty_non_negative"),
        Index("idx_product_recipe_recipe", "recipe_id"),
    )


class ProductItem(BaseModel):
    """Direct item usage line of a product, unique per (product, item)."""

    __tablename__ = "product_items"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    qty_g = Column(Numeric(12, QTY_DECIMAL_PLACES), nullable=False)

    product = relationship("Product", back_populates="product_items")
    item = relationship("Item", back_populates="product_lines", lazy="joined")

    __table_args__ = (
        UniqueConstraint("product_id", "item_id", name="uq_product_item"),
        CheckConstraint("qty_g >= 0", name="ck_product_item_qty_non_negative"),
        Index("idx_product_item_item", "item_id"),
    )
