"""
Employee service - the thin employee registry the leave/attendance engine reads from
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from hrms.core.exceptions import Conflict, EmployeeInactive, NotFound, ValidationError
from hrms.models.attendance import AttendanceRecord
from hrms.models.employee import Employee, EmployeeStatus
from hrms.models.leave import LeaveRequest
from hrms.schemas.employee import EmployeeCreate, EmployeeUpdate
from hrms.services.audit_service import log_audit
from hrms.utils.datetime_utils import Clock, system_clock

logger = logging.getLogger(__name__)


def get_employee(db: Session, employee_id: int) -> Employee:
    """Fetch an employee or raise NotFound"""
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise NotFound(f"Employee with id {employee_id} not found")
    return employee


def get_active_employee(db: Session, employee_id: int, purpose: str) -> Employee:
    """Fetch an employee that must be active for the given purpose"""
    employee = get_employee(db, employee_id)
    if not employee.is_active:
        raise EmployeeInactive(f"Only active employees can {purpose}")
    return employee


SORT_OPTIONS = ("name", "department")


def list_employees(
    db: Session,
    status: Optional[EmployeeStatus] = None,
    department: Optional[str] = None,
    sort: Optional[str] = None,
) -> List[Employee]:
    """
    Filtered employee listing

    sort: None (newest first), "name" or "department"
    """
    if sort is not None and sort not in SORT_OPTIONS:
        raise ValidationError(f"sort must be one of {list(SORT_OPTIONS)}")

    query = db.query(Employee)
    if status is not None:
        query = query.filter(Employee.status == status)
    if department is not None:
        query = query.filter(Employee.department == department)

    if sort == "name":
        query = query.order_by(Employee.name, Employee.id)
    elif sort == "department":
        query = query.order_by(Employee.department, Employee.name, Employee.id)
    else:
        query = query.order_by(Employee.created_at.desc(), Employee.id.desc())
    return query.all()


def create_employee(
    db: Session,
    payload: EmployeeCreate,
    actor_id: int,
    clock: Clock = system_clock,
) -> Employee:
    employee = Employee(**payload.model_dump(), created_at=clock.now())
    db.add(employee)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(f"Employee with email {payload.email} already exists", code="duplicate_email")
    db.refresh(employee)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="EMPLOYEE_CREATE",
        entity_type="employees",
        entity_id=employee.id,
        meta={"email": employee.email, "status": employee.status},
        clock=clock,
    )
    logger.info("Employee %s created by user %s", employee.id, actor_id)
    return employee


def update_employee(
    db: Session,
    employee_id: int,
    payload: EmployeeUpdate,
    actor_id: int,
    clock: Clock = system_clock,
) -> Employee:
    employee = get_employee(db, employee_id)
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(employee, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Another employee already uses this email", code="duplicate_email")
    db.refresh(employee)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="EMPLOYEE_UPDATE",
        entity_type="employees",
        entity_id=employee.id,
        meta=changes,
        clock=clock,
    )
    return employee


def delete_employee(
    db: Session,
    employee_id: int,
    actor_id: int,
    clock: Clock = system_clock,
) -> None:
    """
    Remove an employee that has no attendance or leave history

    Raises:
        NotFound: unknown employee
        Conflict: attendance or leave rows still reference the employee;
            deactivate instead
    """
    employee = get_employee(db, employee_id)

    has_attendance = db.query(AttendanceRecord.id).filter(
        AttendanceRecord.employee_id == employee_id
    ).first() is not None
    has_leave = db.query(LeaveRequest.id).filter(
        LeaveRequest.employee_id == employee_id
    ).first() is not None
    if has_attendance or has_leave:
        raise Conflict(
            "Employee has attendance or leave records; set status to inactive instead",
            code="employee_has_records",
        )

    meta = {"email": employee.email, "name": employee.name}
    db.delete(employee)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict(
            "Employee has attendance or leave records; set status to inactive instead",
            code="employee_has_records",
        )

    log_audit(
        db=db,
        actor_id=actor_id,
        action="EMPLOYEE_DELETE",
        entity_type="employees",
        entity_id=employee_id,
        meta=meta,
        clock=clock,
    )
    logger.info("Employee %s deleted by user %s", employee_id, actor_id)
