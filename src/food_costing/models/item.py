"""
Item model for purchasable inventory ingredients.

An item is bought in a purchase unit (a 1 kg bag, a 5 lb case) at a
purchase cost, and converts to ``base_qty_per_purchase`` grams. Recipes and
products consume items in grams, so the per-gram rate is
``purchase_cost / base_qty_per_purchase`` (see services.cost_engine).

Example: "All-purpose flour", bought as 1 bag of 1000 g for 10.00
         -> 0.01 per gram.
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from food_costing.utils.constants import (
    BASE_QTY_DECIMAL_PLACES,
    PURCHASE_COST_DECIMAL_PLACES,
    QTY_DECIMAL_PLACES,
)

from .base import BaseModel, OrgScopedMixin


class Item(OrgScopedMixin, BaseModel):
    """
    Purchasable ingredient.

    Attributes:
        org_id: Owning organization
        name: Item name
        sku: Stock keeping unit (optional)
        purchase_unit: Unit symbol it is bought in (e.g., "kg", "case")
        purchase_qty: Number of purchase units in one purchase
        purchase_cost: Cost of one purchase
        base_unit: Base unit symbol (grams)
        base_qty_per_purchase: Base units contained in one purchase (> 0)
        category_id: Optional category
        active: Whether the item is offered in pickers

    Relationships:
        category: Category
        recipe_lines: RecipeIngredient lines that use this item
        product_lines: ProductItem lines that use this item directly
    """

    __tablename__ = "items"

    name = Column(String(200), nullable=False)
    sku = Column(String(64), nullable=True)

    purchase_unit = Column(String(20), nullable=False)
    purchase_qty = Column(Numeric(12, QTY_DECIMAL_PLACES), nullable=False, default=1)
    purchase_cost = Column(Numeric(12, PURCHASE_COST_DECIMAL_PLACES), nullable=False)

    base_unit = Column(String(20), nullable=False, default="g")
    base_qty_per_purchase = Column(Numeric(24, BASE_QTY_DECIMAL_PLACES), nullable=False)

    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    active = Column(Boolean, nullable=False, default=True)

    category = relationship("Category", back_populates="items", lazy="joined")
    recipe_lines = relationship("RecipeIngredient", back_populates="item")
    product_lines = relationship("ProductItem", back_populates="item")

    __table_args__ = (
        CheckConstraint("base_qty_per_purchase > 0", name="ck_item_base_qty_positive"),
        CheckConstraint("purchase_cost >= 0", name="ck_item_cost_non_negative"),
        CheckConstraint("purchase_qty > 0", name="ck_item_purchase_qty_positive"),
        Index("idx_item_org", "org_id"),
        Index("idx_item_name", "name"),
    )

    def to_dict(self, include_relationships: bool = False) -> dict:
        result = super().to_dict(include_relationships)
        result["category_name"] = self.category.name if self.category else None
        return result
