"""
Recipe models.

This module contains:
- Recipe: A named preparation with a yield in grams
- RecipeIngredient: Junction table linking recipes to items, with the
  grams of the item consumed and a waste percentage

Cost totals stored on Recipe are snapshots written from
services.cost_engine results whenever a line or a used item changes; the
engine recomputes them on every cost read.
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

from food_costing.utils.constants import QTY_DECIMAL_PLACES, WASTE_DECIMAL_PLACES

from .base import AuditMixin, BaseModel, OrgScopedMixin


class Recipe(OrgScopedMixin, AuditMixin, BaseModel):
    """
    Recipe model.

    Attributes:
        org_id: Owning organization
        name: Recipe name
        description: Free-text description
        yield_qty_g: Grams produced by one batch (> 0)
        total_recipe_cost: Snapshot of the summed ingredient cost
        cost_per_gram: Snapshot of total_recipe_cost / yield_qty_g
        created_by / updated_by: Audit user codes
    """

    __tablename__ = "recipes"

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    yield_qty_g = Column(Numeric(12, QTY_DECIMAL_PLACES), nullable=False)

    total_recipe_cost = Column(Numeric(16, 6), nullable=False, default=0)
    cost_per_gram = Column(Numeric(16, 8), nullable=False, default=0)

    recipe_ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        cascade="all, delete-orphan",
        lazy="joined",
        order_by="RecipeIngredient.id",
    )
    product_usages = relationship("ProductRecipe", back_populates="recipe")

    __table_args__ = (
        CheckConstraint("yield_qty_g > 0", name="ck_recipe_yield_positive"),
        Index("idx_recipe_org", "org_id"),
        Index("idx_recipe_name", "name"),
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        result = super().to_dict(include_relationships)
        result["ingredients_count"] = len(self.recipe_ingredients)
        return result


class RecipeIngredient(BaseModel):
    """
    One ingredient line of a recipe, unique per (recipe, item).

    Attributes:
        recipe_id: Parent recipe
        item_id: Item consumed
        qty_g: Grams of the item consumed per batch (>= 0)
        waste_pct: Preparation waste percentage (0..100), informational
    """

    __tablename__ = "recipe_ingredients"

    recipe_id = Column(Integer, ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    qty_g = Column(Numeric(12, QTY_DECIMAL_PLACES), nullable=False)
    waste_pct = Column(Numeric(5, WASTE_DECIMAL_PLACES), nullable=False, default=0)

    recipe = relationship("Recipe", back_populates="recipe_ingredients")
    item = relationship("Item", back_populates="recipe_lines", lazy="joined")

    __table_args__ = (
        UniqueConstraint("recipe_id", "item_id", name="uq_recipe_ingredient"),
        CheckConstraint("qty_g >= 0", name="ck_recipe_ingredient_qty_non_negative"),
        CheckConstraint(
            "waste_pct >= 0 AND waste_pct <= 100", name="ck_recipe_ingredient_waste_range"
        ),
        Index("idx_recipe_ingredient_recipe", "recipe_id"),
        Index("idx_recipe_ingredient_item", "item_id"),
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        result = super().to_dict(include_relationships)
        result["item_name"] = self.item.name if self.item else None
        return result
