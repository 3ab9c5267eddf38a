"""
Leave service - the leave store and its approval workflow
"""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from hrms.core.config import settings
from hrms.core.exceptions import (
    InvalidRange,
    InvalidTransition,
    NoAttendanceHistory,
    NotFound,
    OverlappingLeave,
    ValidationError,
)
from hrms.models.leave import LeaveDayClaim, LeaveRequest, LeaveStatus, LeaveType
from hrms.services import reconciler
from hrms.services.attendance_service import has_present_attendance
from hrms.services.audit_service import log_audit
from hrms.services.employee_service import get_active_employee
from hrms.utils.date_range import expand, overlap_clause
from hrms.utils.datetime_utils import Clock, system_clock

logger = logging.getLogger(__name__)

# Statuses that hold calendar days; rejected leave never blocks another request
BLOCKING_STATUSES = (LeaveStatus.PENDING, LeaveStatus.APPROVED)

ALLOWED_TRANSITIONS = {
    LeaveStatus.PENDING: {LeaveStatus.PENDING, LeaveStatus.APPROVED, LeaveStatus.REJECTED},
    LeaveStatus.APPROVED: {LeaveStatus.APPROVED},
    LeaveStatus.REJECTED: {LeaveStatus.REJECTED},
}

SORT_OPTIONS = ("employee", "startDate")


def get_leave(db: Session, leave_id: int) -> LeaveRequest:
    leave = db.query(LeaveRequest).options(
        joinedload(LeaveRequest.employee)
    ).filter(LeaveRequest.id == leave_id).first()
    if leave is None:
        raise NotFound("Leave not found")
    return leave


def find_overlapping_leave(
    db: Session,
    employee_id: int,
    start: date,
    end: date,
    exclude_leave_id: Optional[int] = None
) -> Optional[LeaveRequest]:
    """First non-rejected leave of the employee whose span overlaps [start, end]"""
    query = db.query(LeaveRequest).filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status.in_(BLOCKING_STATUSES),
        overlap_clause(LeaveRequest.start_day, LeaveRequest.end_day, start, end),
    )
    if exclude_leave_id is not None:
        query = query.filter(LeaveRequest.id != exclude_leave_id)
    return query.order_by(LeaveRequest.start_day).first()


def _overlap_error(existing: LeaveRequest) -> OverlappingLeave:
    return OverlappingLeave(
        f"Leave application overlaps with existing leave from {existing.start_day} to {existing.end_day}"
    )


def create_leave(
    db: Session,
    employee_id: int,
    start: date,
    end: date,
    reason: str,
    leave_type: LeaveType,
    actor_id: int,
    document: Optional[str] = None,
    clock: Clock = system_clock,
) -> LeaveRequest:
    """
    Create a PENDING leave request

    Validations, in order:
    - reason present, start <= end, span within MAX_LEAVE_SPAN_DAYS
    - employee exists and is active
    - employee has at least one 'present' attendance record
    - no overlap with the employee's pending/approved leave

    The overlap query gives the caller a precise message; the leave_day_claims
    unique constraint is what actually rules out a concurrent overlapping insert.

    Raises:
        ValidationError, InvalidRange, NotFound, EmployeeInactive,
        NoAttendanceHistory, OverlappingLeave
    """
    if not reason or not reason.strip():
        raise ValidationError("Reason is required")
    if (end - start).days + 1 > settings.MAX_LEAVE_SPAN_DAYS:
        raise ValidationError(
            f"Leave may span at most {settings.MAX_LEAVE_SPAN_DAYS} days",
            code="leave_span_too_long",
        )
    days = expand(start, end)

    get_active_employee(db, employee_id, "apply for leave")

    if not has_present_attendance(db, employee_id):
        raise NoAttendanceHistory("Only employees with attendance records can apply for leave")

    existing = find_overlapping_leave(db, employee_id, start, end)
    if existing is not None:
        raise _overlap_error(existing)

    leave = LeaveRequest(
        employee_id=employee_id,
        start_day=start,
        end_day=end,
        reason=reason.strip(),
        leave_type=leave_type,
        status=LeaveStatus.PENDING,
        document=document or None,
        created_by=actor_id,
        created_at=clock.now(),
    )
    leave.day_claims = [LeaveDayClaim(employee_id=employee_id, day=day) for day in days]
    db.add(leave)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_overlapping_leave(db, employee_id, start, end)
        if existing is not None:
            raise _overlap_error(existing)
        raise
    db.refresh(leave)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="LEAVE_CREATE",
        entity_type="leave_requests",
        entity_id=leave.id,
        meta={
            "employee_id": employee_id,
            "leave_type": leave_type,
            "start_day": start,
            "end_day": end,
            "status": LeaveStatus.PENDING,
        },
        clock=clock,
    )
    logger.info(
        "Leave %s created for employee %s (%s..%s, %s)",
        leave.id, employee_id, start, end, leave_type.value
    )
    return leave


def transition_leave(
    db: Session,
    leave_id: int,
    actor_id: int,
    new_status: Optional[LeaveStatus] = None,
    document: Optional[str] = None,
    clock: Clock = system_clock,
) -> LeaveRequest:
    """
    Update a leave's status and/or document

    - pending -> approved: status is persisted, then the attendance span is synced
    - pending -> rejected: the leave releases its calendar days, attendance untouched
    - approved -> approved: re-runs the sync; upserts make this idempotent
    - anything else that changes an approved or rejected status is refused

    The write is conditional on the status that was read, so of two concurrent
    transitions from the same status only the first to commit succeeds.

    Raises:
        NotFound, InvalidTransition, SyncFailure (retryable; leave stays approved
        and is flagged needs_reconciliation)
    """
    leave = get_leave(db, leave_id)
    previous = leave.status

    if new_status is not None and new_status not in ALLOWED_TRANSITIONS[previous]:
        raise InvalidTransition(f"Cannot change leave status from {previous.value} to {new_status.value}")

    values = {"updated_by": actor_id, "updated_at": clock.now()}
    if new_status is not None:
        values["status"] = new_status
    if document is not None:
        values["document"] = document or None

    # Conditional on the status read above: a concurrent transition makes this match no row
    result = db.execute(
        update(LeaveRequest)
        .where(LeaveRequest.id == leave_id, LeaveRequest.status == previous)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        current = db.query(LeaveRequest.status).filter(LeaveRequest.id == leave_id).scalar()
        if current is None:
            raise NotFound("Leave not found")
        raise InvalidTransition(
            f"Leave status changed from {previous.value} to {LeaveStatus(current).value} "
            f"while this update was in progress"
        )
    if new_status == LeaveStatus.REJECTED and previous != LeaveStatus.REJECTED:
        db.query(LeaveDayClaim).filter(
            LeaveDayClaim.leave_id == leave_id
        ).delete(synchronize_session=False)
    db.commit()
    db.refresh(leave)

    if new_status is not None and new_status != previous:
        log_audit(
            db=db,
            actor_id=actor_id,
            action=f"LEAVE_{new_status.value.upper()}",
            entity_type="leave_requests",
            entity_id=leave.id,
            meta={"from": previous, "to": new_status},
            clock=clock,
        )
        logger.info("Leave %s moved %s -> %s by user %s", leave.id, previous.value, new_status.value, actor_id)

    if new_status == LeaveStatus.APPROVED:
        reconciler.sync_with_retry(
            db,
            leave,
            actor_id=actor_id,
            clock=clock,
            max_attempts=settings.SYNC_MAX_ATTEMPTS,
            backoff_seconds=settings.SYNC_RETRY_BACKOFF_SECONDS,
        )
        db.refresh(leave)

    return leave


def delete_leave(
    db: Session,
    leave_id: int,
    actor_id: int,
    clock: Clock = system_clock,
) -> None:
    """Remove a leave and its day claims; attendance already written is kept"""
    leave = get_leave(db, leave_id)
    meta = {
        "employee_id": leave.employee_id,
        "status": leave.status,
        "start_day": leave.start_day,
        "end_day": leave.end_day,
    }
    db.delete(leave)
    db.commit()

    log_audit(
        db=db,
        actor_id=actor_id,
        action="LEAVE_DELETE",
        entity_type="leave_requests",
        entity_id=leave_id,
        meta=meta,
        clock=clock,
    )


def query_leaves(
    db: Session,
    employee_id: Optional[int] = None,
    status: Optional[LeaveStatus] = None,
    leave_type: Optional[LeaveType] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    needs_reconciliation: Optional[bool] = None,
    sort: Optional[str] = None,
) -> List[LeaveRequest]:
    """
    Filtered leave listing

    The date window keeps leaves whose span overlaps [start, end]; when only one
    bound is given the window is open on the other side.
    sort: None (newest first), "employee" or "startDate"
    """
    if sort is not None and sort not in SORT_OPTIONS:
        raise ValidationError(f"sort must be one of {list(SORT_OPTIONS)}")

    query = db.query(LeaveRequest).options(joinedload(LeaveRequest.employee))
    if employee_id is not None:
        query = query.filter(LeaveRequest.employee_id == employee_id)
    if status is not None:
        query = query.filter(LeaveRequest.status == status)
    if leave_type is not None:
        query = query.filter(LeaveRequest.leave_type == leave_type)
    if needs_reconciliation is not None:
        query = query.filter(LeaveRequest.needs_reconciliation == needs_reconciliation)
    if start is not None and end is not None:
        if start > end:
            raise InvalidRange("startDate must be on or before endDate")
        query = query.filter(overlap_clause(LeaveRequest.start_day, LeaveRequest.end_day, start, end))
    elif start is not None:
        query = query.filter(LeaveRequest.end_day >= start)
    elif end is not None:
        query = query.filter(LeaveRequest.start_day <= end)

    if sort == "employee":
        query = query.order_by(LeaveRequest.employee_id, LeaveRequest.id)
    elif sort == "startDate":
        query = query.order_by(LeaveRequest.start_day, LeaveRequest.id)
    else:
        query = query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc())

    return query.all()
