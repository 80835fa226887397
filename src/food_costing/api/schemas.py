"""
Pydantic schemas for the backend REST API.

Response schemas parse what the backend returns (unknown fields are
ignored); request schemas shape what we send. Money and quantities are
Decimal on our side and serialized as strings by model_dump(mode="json").
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from food_costing.models.employee import EmployeeRole

Identifier = Union[int, str]


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# =============================================================================
# AUTH
# =============================================================================


class UserOut(ApiModel):
    id: Identifier
    email: str
    full_name: Optional[str] = Field(default=None, alias="fullName")


class OrganizationOut(ApiModel):
    id: Identifier
    name: Optional[str] = None


class AuthResponse(ApiModel):
    """Body of /auth/login and /auth/register-owner."""

    token: str
    user: UserOut
    organization: OrganizationOut


class MeResponse(ApiModel):
    """Body of /auth/me."""

    user: UserOut
    organization: OrganizationOut


class LoginRequest(ApiModel):
    email: str
    password: str


class RegisterOwnerRequest(ApiModel):
    email: str
    password: str
    full_name: str = Field(serialization_alias="fullName")
    organization_name: str = Field(serialization_alias="organizationName")


# =============================================================================
# ITEMS
# =============================================================================


class UnitOut(ApiModel):
    id: Identifier
    name: str
    symbol: str
    unit_type: str


class CategoryOut(ApiModel):
    id: Identifier
    name: str


class ItemDetail(ApiModel):
    """One row of the item list, with the backend's cost per base unit."""

    id: Identifier
    name: str
    sku: Optional[str] = None
    purchase_unit: Optional[str] = None
    base_unit: Optional[str] = None
    purchase_cost: Optional[Decimal] = None
    cost_per_base_unit: Optional[Decimal] = None
    category_name: Optional[str] = None
    active: bool = True


class ItemRecord(ApiModel):
    """Single item as returned by get_by_id (the editable fields)."""

    id: Optional[Identifier] = None
    name: str
    sku: Optional[str] = None
    purchase_unit_id: Optional[Identifier] = None
    purchase_qty: Optional[Decimal] = None
    purchase_cost: Optional[Decimal] = None
    base_unit_id: Optional[Identifier] = None
    base_qty_per_purchase: Optional[Decimal] = None
    category_id: Optional[Identifier] = None
    active: bool = True


class ItemWrite(ApiModel):
    name: str
    sku: Optional[str] = None
    purchase_unit_id: Identifier
    purchase_qty: Decimal = Field(gt=0)
    purchase_cost: Decimal = Field(ge=0)
    base_unit_id: Identifier
    base_qty_per_purchase: Decimal = Field(gt=0)
    category_id: Optional[Identifier] = None
    active: bool = True


# =============================================================================
# RECIPES
# =============================================================================


class RecipeItemDetail(ApiModel):
    item_id: Identifier
    item_name: Optional[str] = None
    qty_g: Decimal
    waste_pct: Decimal = Decimal(0)
    cost_per_base_unit: Optional[Decimal] = None


class RecipeDetail(ApiModel):
    id: Identifier
    name: str
    yield_qty_g: Decimal
    ingredients_count: Optional[int] = None
    description: Optional[str] = None
    created_by: Optional[Identifier] = None
    created_at: Optional[datetime] = None
    updated_by: Optional[Identifier] = None
    updated_at: Optional[datetime] = None
    total_recipe_cost: Optional[Decimal] = None
    recipe_cost_per_gram: Optional[Decimal] = None


class RecipeWrite(ApiModel):
    name: str
    description: Optional[str] = None
    yield_qty_g: Decimal = Field(gt=0)


class RecipeItemWrite(ApiModel):
    qty_g: Decimal = Field(ge=0)
    waste_pct: Decimal = Field(default=Decimal(0), ge=0, le=100)


# =============================================================================
# PRODUCTS
# =============================================================================


class ProductRecipeRef(ApiModel):
    recipe_id: Identifier
    qty_g: Decimal
    name: Optional[str] = None


class ProductItemRef(ApiModel):
    item_id: Identifier
    qty_g: Decimal
    name: Optional[str] = None
    unit: Optional[str] = None
    cost_per_base_unit: Optional[Decimal] = None


class ProductSummary(ApiModel):
    """One row of the product list."""

    id: Identifier
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[Identifier] = None
    updated_by: Optional[Identifier] = None
    total_finished_product_cost: Optional[Decimal] = None
    recipes: List[ProductRecipeRef] = []
    items: List[ProductItemRef] = []


class RecipeItemInProductOut(ApiModel):
    item_id: Identifier
    item_name: Optional[str] = None
    qty_g_in_recipe: Decimal
    cost_per_base_unit: Optional[Decimal] = None
    cost_in_full_recipe: Optional[Decimal] = None
    cost_in_product: Optional[Decimal] = None


class RecipeInProductOut(ApiModel):
    recipe_id: Identifier
    name: Optional[str] = None
    qty_g_in_product: Decimal
    yield_qty_g: Optional[Decimal] = None
    total_recipe_cost: Optional[Decimal] = None
    recipe_cost_per_gram: Optional[Decimal] = Field(default=None, alias="recipe_cost_per_g")
    cost_for_recipe_in_product: Optional[Decimal] = None
    items: List[RecipeItemInProductOut] = []


class DirectItemInProductOut(ApiModel):
    item_id: Identifier
    name: Optional[str] = None
    qty_g: Decimal
    cost_per_base_unit: Optional[Decimal] = None
    cost_for_item_in_product: Optional[Decimal] = None


class ProductDetail(ApiModel):
    """Single product with the backend's cost breakdown."""

    id: Identifier
    org_id: Optional[Identifier] = None
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[Identifier] = None
    updated_by: Optional[Identifier] = None
    total_direct_items_cost: Optional[Decimal] = None
    total_recipes_cost: Optional[Decimal] = None
    total_finished_product_cost: Optional[Decimal] = None
    recipes: List[RecipeInProductOut] = []
    direct_items: List[DirectItemInProductOut] = []


class UsageWrite(ApiModel):
    qty_g: Decimal = Field(ge=0)


class ProductRecipeLine(ApiModel):
    recipe_id: Identifier
    qty_g: Decimal = Field(ge=0)


class ProductItemLine(ApiModel):
    item_id: Identifier
    qty_g: Decimal = Field(ge=0)


class ProductWrite(ApiModel):
    name: str
    description: Optional[str] = None
    recipes: List[ProductRecipeLine] = []
    items: List[ProductItemLine] = []


class ProductUpdate(ApiModel):
    name: Optional[str] = None
    description: Optional[str] = None


# =============================================================================
# EMPLOYEES
# =============================================================================


class EmployeeOut(ApiModel):
    id: Identifier
    email: str
    full_name: Optional[str] = None
    role: EmployeeRole


class EmployeeWrite(ApiModel):
    email: str
    full_name: str
    role: EmployeeRole = EmployeeRole.STAFF


class EmployeeUpdate(ApiModel):
    email: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[EmployeeRole] = None
