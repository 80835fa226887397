"""
Unit and Category lookup models.

Units are global reference data (seeded from constants.STANDARD_UNITS);
categories are per-organization labels for grouping items.
"""

from sqlalchemy import Column, Index, String, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel, OrgScopedMixin


class Unit(BaseModel):
    """
    Measurement unit.

    Attributes:
        name: Display name (e.g., "Kilogram")
        symbol: Short symbol used on items (e.g., "kg"), unique
        unit_type: "weight", "volume" or "count"
    """

    __tablename__ = "units"

    name = Column(String(50), nullable=False)
    symbol = Column(String(20), nullable=False, unique=True)
    unit_type = Column(String(20), nullable=False)

    def __repr__(self) -> str:
        return f"Unit(symbol='{self.symbol}', unit_type='{self.unit_type}')"


class Category(OrgScopedMixin, BaseModel):
    """
    Item category within an organization.

    Attributes:
        org_id: Owning organization
        name: Category name, unique per organization
    """

    __tablename__ = "categories"

    name = Column(String(100), nullable=False)

    items = relationship("Item", back_populates="category")

    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_category_org_name"),
        Index("idx_category_org", "org_id"),
    )
