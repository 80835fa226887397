"""
Base model class and column mixins for all database models.

- Base: SQLAlchemy declarative base
- BaseModel: id, uuid, created_at/updated_at and a JSON-safe to_dict()
- OrgScopedMixin: org_id of the owning organization
- AuditMixin: created_by/updated_by user codes sent by the backend
"""

import uuid as uuid_lib
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import declarative_base

from food_costing.utils.datetime_utils import utc_now

Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model.

    All models get an integer primary key, a UUID that stays stable when
    records are exchanged with the REST backend, and audit timestamps.
    """

    __abstract__ = True

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Stored as string for SQLite compatibility
    uuid = Column(
        String(36), unique=True, nullable=False, default=lambda: str(uuid_lib.uuid4()), index=True
    )

    created_at = Column(DateTime, nullable=False, default=utc_now)
    updated_at = Column(DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    def to_dict(self, include_relationships: bool = False) -> Dict[str, Any]:
        """
        Column values as a JSON-safe dict.

        Datetimes become ISO strings and Decimal money columns become
        strings, so cost snapshots keep their exact digits.

        Args:
            include_relationships: Also serialize loaded related records
        """
        result = {}
        for column in self.__table__.columns:
            result[column.name] = _json_safe(getattr(self, column.name))

        if include_relationships:
            for relationship in self.__mapper__.relationships:
                related = getattr(self, relationship.key)
                if related is None:
                    result[relationship.key] = None
                elif isinstance(related, list):
                    result[relationship.key] = [record.to_dict() for record in related]
                else:
                    result[relationship.key] = related.to_dict()

        return result

    def __repr__(self) -> str:
        name = getattr(self, "name", None)
        label = f", name='{name}'" if name is not None else ""
        return f"{self.__class__.__name__}(id={self.id}{label})"


class OrgScopedMixin:
    """Records that belong to one organization."""

    org_id = Column(Integer, nullable=False)


class AuditMixin:
    """Records that remember which user created and last changed them."""

    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)

    def stamp(self, user_code: Optional[str], created: bool = False) -> None:
        """Record user_code as the editor (and creator when created=True)."""
        if user_code is None:
            return
        if created:
            self.created_by = user_code
        self.updated_by = user_code


def _json_safe(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return value
