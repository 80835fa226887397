"""
Employee model for organization members.

Employees carry a role used by the backend for access decisions; this
application only stores and edits them.
"""

from enum import Enum

from sqlalchemy import Boolean, Column, Index, String, UniqueConstraint

from .base import BaseModel, OrgScopedMixin


class EmployeeRole(str, Enum):
    """
    Organization role.

    Values:
        OWNER: Created with the organization, full control
        MANAGER: Manages items, recipes and products
        STAFF: Day-to-day user
    """

    OWNER = "OWNER"
    MANAGER = "MANAGER"
    STAFF = "STAFF"


class Employee(OrgScopedMixin, BaseModel):
    """
    Employee model.

    Attributes:
        org_id: Owning organization
        email: Login email, unique per organization
        full_name: Display name
        role: EmployeeRole value
        active: Soft delete flag
    """

    __tablename__ = "employees"

    email = Column(String(254), nullable=False)
    full_name = Column(String(200), nullable=False)
    role = Column(String(20), nullable=False, default=EmployeeRole.STAFF.value)
    active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("org_id", "email", name="uq_employee_org_email"),
        Index("idx_employee_org", "org_id"),
    )

    def __repr__(self) -> str:
        return f"Employee(id={self.id}, email='{self.email}', role='{self.role}')"
