"""
Employee Service - CRUD operations for organization members.

Emails are unique per organization and stored lower-cased. Roles are one of
OWNER, MANAGER or STAFF.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from food_costing.models.employee import Employee, EmployeeRole
from food_costing.services.database import session_scope
from food_costing.services.exceptions import (
    DatabaseError,
    DuplicateEmployee,
    EmployeeNotFound,
    ServiceError,
    ValidationError,
)
from food_costing.services.logging_utils import get_service_logger, log_operation
from food_costing.utils.constants import DEFAULT_EMPLOYEE_ROLE, DEFAULT_ORG_ID
from food_costing.utils.validators import sanitize_string, validate_employee_data

logger = get_service_logger(__name__)


def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(data)
    if normalized.get("email") is not None:
        normalized["email"] = str(normalized["email"]).strip().lower()
    if "full_name" in normalized:
        normalized["full_name"] = sanitize_string(normalized["full_name"])
    if isinstance(normalized.get("role"), EmployeeRole):
        normalized["role"] = normalized["role"].value
    elif normalized.get("role") is not None:
        normalized["role"] = str(normalized["role"]).strip().upper()
    return normalized


def _email_taken(
    session: Session, org_id: int, email: str, exclude_id: Optional[int] = None
) -> bool:
    query = session.query(Employee).filter(Employee.org_id == org_id, Employee.email == email)
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    return query.first() is not None


def _get_employee(session: Session, employee_id: int) -> Employee:
    employee = session.get(Employee, employee_id)
    if employee is None:
        raise EmployeeNotFound(employee_id)
    return employee


def create_employee(
    employee_data: Dict[str, Any],
    org_id: int = DEFAULT_ORG_ID,
    session: Optional[Session] = None,
) -> Employee:
    """
    Create an employee.

    Args:
        employee_data: Dictionary with email, full_name and role (defaults
            to STAFF)
        org_id: Owning organization
        session: Optional database session

    Raises:
        ValidationError: If email, name or role is invalid
        DuplicateEmployee: If the email is already used in the organization
    """
    data = _normalize(employee_data)
    data.setdefault("role", DEFAULT_EMPLOYEE_ROLE)
    is_valid, errors = validate_employee_data(data)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Employee:
        if _email_taken(sess, org_id, data["email"]):
            log_operation(
                logger,
                "create_employee",
                "duplicate_email",
                level=logging.WARNING,
                org_id=org_id,
            )
            raise DuplicateEmployee(data["email"])
        employee = Employee(
            org_id=org_id,
            email=data["email"],
            full_name=data["full_name"],
            role=data["role"],
            active=data.get("active", True),
        )
        sess.add(employee)
        sess.flush()
        log_operation(logger, "create_employee", "success", employee_id=employee.id)
        return employee

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError("Failed to create employee", e)


def get_employee(employee_id: int, session: Optional[Session] = None) -> Employee:
    """
    Retrieve an employee by ID.

    Raises:
        EmployeeNotFound: If the employee doesn't exist
    """

    def _impl(sess: Session) -> Employee:
        return _get_employee(sess, employee_id)

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def list_employees(
    org_id: Optional[int] = None,
    role: Optional[str] = None,
    include_inactive: bool = False,
    session: Optional[Session] = None,
) -> List[Employee]:
    """List employees ordered by name."""

    def _impl(sess: Session) -> List[Employee]:
        query = sess.query(Employee)
        if org_id is not None:
            query = query.filter(Employee.org_id == org_id)
        if role:
            query = query.filter(Employee.role == str(role).upper())
        if not include_inactive:
            query = query.filter(Employee.active.is_(True))
        return query.order_by(Employee.full_name).all()

    if session is not None:
        return _impl(session)

    with session_scope() as sess:
        return _impl(sess)


def update_employee(
    employee_id: int,
    employee_data: Dict[str, Any],
    session: Optional[Session] = None,
) -> Employee:
    """
    Update an employee's email, name, role or active flag.

    Raises:
        EmployeeNotFound: If the employee doesn't exist
        ValidationError: If a field is invalid
        DuplicateEmployee: If the new email is taken in the organization
    """
    data = _normalize(employee_data)
    is_valid, errors = validate_employee_data(data, partial=True)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(sess: Session) -> Employee:
        employee = _get_employee(sess, employee_id)
        if "email" in data and _email_taken(sess, employee.org_id, data["email"], employee.id):
            raise DuplicateEmployee(data["email"])
        for key in ("email", "full_name", "role", "active"):
            if key in data:
                setattr(employee, key, data[key])
        sess.flush()
        log_operation(logger, "update_employee", "success", employee_id=employee.id)
        return employee

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to update employee {employee_id}", e)


def delete_employee(employee_id: int, session: Optional[Session] = None) -> bool:
    """
    Delete an employee.

    Raises:
        EmployeeNotFound: If the employee doesn't exist
    """

    def _impl(sess: Session) -> bool:
        sess.delete(_get_employee(sess, employee_id))
        sess.flush()
        log_operation(logger, "delete_employee", "success", employee_id=employee_id)
        return True

    try:
        if session is not None:
            return _impl(session)
        with session_scope() as sess:
            return _impl(sess)
    except ServiceError:
        raise
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to delete employee {employee_id}", e)
