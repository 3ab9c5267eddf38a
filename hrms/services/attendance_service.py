"""
Attendance service - the attendance store.

Holds the one-record-per-employee-per-day invariant. Manual entries go through
create_attendance(), which refuses to overwrite; the reconciler goes through
upsert_attendance(), a single conditional write keyed by (employee_id, day).
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from hrms.core.exceptions import DuplicateRecord, InvalidRange, NotFound, ValidationError
from hrms.models.attendance import AttendanceRecord, AttendanceStatus
from hrms.models.leave import LeaveRequest, LeaveStatus
from hrms.services.audit_service import log_audit
from hrms.services.employee_service import get_active_employee
from hrms.utils.datetime_utils import Clock, system_clock

logger = logging.getLogger(__name__)

_DIALECT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

SORT_OPTIONS = ("date", "employee", "status")


def find_attendance(db: Session, employee_id: int, day: date) -> Optional[AttendanceRecord]:
    """Point lookup of the record for one employee-day"""
    return db.query(AttendanceRecord).populate_existing().filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.day == day
    ).first()


def get_attendance(db: Session, record_id: int) -> AttendanceRecord:
    record = db.query(AttendanceRecord).options(
        joinedload(AttendanceRecord.employee)
    ).filter(AttendanceRecord.id == record_id).first()
    if record is None:
        raise NotFound("Attendance record not found")
    return record


def upsert_attendance(
    db: Session,
    employee_id: int,
    day: date,
    status: AttendanceStatus,
    actor_id: int,
    clock: Clock = system_clock,
    commit: bool = True,
) -> AttendanceRecord:
    """
    Insert the employee-day record, or overwrite its status if one exists

    On SQLite and PostgreSQL this is one INSERT ... ON CONFLICT DO UPDATE statement,
    so a concurrent manual entry for the same day can never produce a second row.
    An overwrite is recorded through updated_by/updated_at; created_by is kept.
    """
    now = clock.now()
    insert = _DIALECT_INSERTS.get(db.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(AttendanceRecord).values(
            employee_id=employee_id,
            day=day,
            status=status,
            created_by=actor_id,
            created_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[AttendanceRecord.employee_id, AttendanceRecord.day],
            set_={
                "status": stmt.excluded.status,
                "updated_by": stmt.excluded.created_by,
                "updated_at": stmt.excluded.created_at,
            },
        )
        db.execute(stmt)
    else:
        # Conditional write for dialects without ON CONFLICT: the unique constraint decides
        try:
            with db.begin_nested():
                db.add(AttendanceRecord(
                    employee_id=employee_id,
                    day=day,
                    status=status,
                    created_by=actor_id,
                    created_at=now,
                ))
        except IntegrityError:
            db.execute(
                update(AttendanceRecord)
                .where(AttendanceRecord.employee_id == employee_id, AttendanceRecord.day == day)
                .values(status=status, updated_by=actor_id, updated_at=now)
            )

    if commit:
        db.commit()
    return find_attendance(db, employee_id, day)


def create_attendance(
    db: Session,
    employee_id: int,
    day: date,
    status: AttendanceStatus,
    actor_id: int,
    clock: Clock = system_clock,
) -> AttendanceRecord:
    """
    Manual attendance entry

    Raises:
        NotFound: unknown employee
        EmployeeInactive: employee is not active
        DuplicateRecord: a record already exists for the employee on that day
    """
    get_active_employee(db, employee_id, "have attendance records")

    record = AttendanceRecord(
        employee_id=employee_id,
        day=day,
        status=status,
        created_by=actor_id,
        created_at=clock.now(),
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        if find_attendance(db, employee_id, day) is not None:
            raise DuplicateRecord("Attendance record already exists for this employee on this date")
        raise
    db.refresh(record)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="ATTENDANCE_CREATE",
        entity_type="attendance_records",
        entity_id=record.id,
        meta={"employee_id": employee_id, "day": day, "status": status},
        clock=clock,
    )
    return record


def _flag_covering_leave(db: Session, employee_id: int, day: date, change: str) -> Optional[LeaveRequest]:
    """Mark the approved leave covering day as out of sync; caller commits"""
    leave = db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status == LeaveStatus.APPROVED,
        LeaveRequest.start_day <= day,
        LeaveRequest.end_day >= day,
    ).first()
    if leave is None:
        return None

    leave.needs_reconciliation = True
    leave.last_sync_error = f"Attendance on {day.isoformat()} was {change} manually"
    logger.warning(
        "Manual attendance change on %s for employee %s under approved leave %s; leave flagged",
        day, employee_id, leave.id,
    )
    return leave


def update_attendance_status(
    db: Session,
    record_id: int,
    status: AttendanceStatus,
    actor_id: int,
    clock: Clock = system_clock,
) -> AttendanceRecord:
    """
    Overwrite the status of an existing record (manual correction)

    Moving a day off 'leave' while an approved leave covers it flags that leave
    for reconciliation in the same commit.
    """
    record = get_attendance(db, record_id)
    previous = record.status
    record.status = status
    record.updated_by = actor_id
    record.updated_at = clock.now()
    if status != AttendanceStatus.LEAVE:
        _flag_covering_leave(db, record.employee_id, record.day, "changed")
    db.commit()
    db.refresh(record)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="ATTENDANCE_UPDATE",
        entity_type="attendance_records",
        entity_id=record.id,
        meta={"from": previous, "to": status, "day": record.day},
        clock=clock,
    )
    return record


def delete_attendance(
    db: Session,
    record_id: int,
    actor_id: int,
    clock: Clock = system_clock,
) -> None:
    record = get_attendance(db, record_id)
    meta = {"employee_id": record.employee_id, "day": record.day, "status": record.status}
    _flag_covering_leave(db, record.employee_id, record.day, "deleted")
    db.delete(record)
    db.commit()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="ATTENDANCE_DELETE",
        entity_type="attendance_records",
        entity_id=record_id,
        meta=meta,
        clock=clock,
    )


def query_attendance(
    db: Session,
    employee_id: Optional[int] = None,
    status: Optional[AttendanceStatus] = None,
    day: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    sort: Optional[str] = None,
) -> List[AttendanceRecord]:
    """
    Filtered attendance listing

    Args:
        day: exact calendar day
        start, end: inclusive day window (either bound may be omitted)
        sort: "date" (default, newest first), "employee" or "status"
    """
    if start is not None and end is not None and start > end:
        raise InvalidRange("startDate must be on or before endDate")
    if sort is not None and sort not in SORT_OPTIONS:
        raise ValidationError(f"sort must be one of {list(SORT_OPTIONS)}")

    query = db.query(AttendanceRecord).options(joinedload(AttendanceRecord.employee))
    if employee_id is not None:
        query = query.filter(AttendanceRecord.employee_id == employee_id)
    if status is not None:
        query = query.filter(AttendanceRecord.status == status)
    if day is not None:
        query = query.filter(AttendanceRecord.day == day)
    if start is not None:
        query = query.filter(AttendanceRecord.day >= start)
    if end is not None:
        query = query.filter(AttendanceRecord.day <= end)

    if sort == "employee":
        query = query.order_by(AttendanceRecord.employee_id, AttendanceRecord.day.desc())
    elif sort == "status":
        query = query.order_by(AttendanceRecord.status, AttendanceRecord.day.desc())
    else:
        query = query.order_by(AttendanceRecord.day.desc(), AttendanceRecord.employee_id)

    return query.all()


def has_present_attendance(db: Session, employee_id: int) -> bool:
    """True when the employee has at least one 'present' record"""
    return db.query(AttendanceRecord.id).filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.status == AttendanceStatus.PRESENT
    ).first() is not None
