"""
Reconciler - materialises an approved leave into the attendance calendar.

Each day of the leave span is upserted to status 'leave' in its own transaction.
The whole span is not atomic: a failure part-way leaves some days written, and
the fix is to run the sync again, which converges because every write is an
upsert keyed by (employee_id, day).
"""
import logging
import time
from typing import Callable, Dict, Optional

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from hrms.core.config import settings
from hrms.core.exceptions import DomainError, StoreUnavailable, SyncFailure, ValidationError
from hrms.models.attendance import AttendanceStatus
from hrms.models.leave import LeaveRequest, LeaveStatus
from hrms.services.attendance_service import upsert_attendance
from hrms.services.audit_service import log_audit
from hrms.utils.date_range import expand
from hrms.utils.datetime_utils import Clock, system_clock

logger = logging.getLogger(__name__)


def sync_leave_attendance(
    db: Session,
    leave: LeaveRequest,
    actor_id: int,
    clock: Clock = system_clock,
) -> int:
    """
    Upsert a 'leave' attendance record for every day of an approved leave

    Returns:
        Number of days written

    Raises:
        ValidationError: the leave is not approved
        StoreUnavailable: transient storage fault part-way through the span
        SyncFailure: any other storage failure part-way through the span
    """
    if leave.status != LeaveStatus.APPROVED:
        raise ValidationError(f"Only approved leave can be synced (leave {leave.id} is {leave.status.value})")

    leave_id = leave.id
    employee_id = leave.employee_id
    days = expand(leave.start_day, leave.end_day)

    written = 0
    for day in days:
        try:
            upsert_attendance(db, employee_id, day, AttendanceStatus.LEAVE, actor_id, clock=clock)
        except OperationalError as exc:
            db.rollback()
            raise StoreUnavailable(
                f"Store unavailable while syncing leave {leave_id} on {day}: {exc.orig}"
            ) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            raise SyncFailure(
                f"Attendance sync for leave {leave_id} stopped at {day} after {written} of {len(days)} days",
                leave_id=leave_id,
                days_written=written,
            ) from exc
        written += 1

    logger.debug("Leave %s synced: %s days written for employee %s", leave_id, written, employee_id)
    return written


def sync_with_retry(
    db: Session,
    leave: LeaveRequest,
    actor_id: int,
    clock: Clock = system_clock,
    max_attempts: int = 3,
    backoff_seconds: float = 0.0,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Run sync_leave_attendance until it completes or max_attempts is exhausted

    On success the leave's needs_reconciliation flag is cleared. After the last
    failed attempt the leave stays approved, is flagged needs_reconciliation with
    the last error recorded, and SyncFailure is raised to the caller.
    """
    leave_id = leave.id
    last_error: Optional[DomainError] = None

    for attempt in range(1, max_attempts + 1):
        try:
            written = sync_leave_attendance(db, leave, actor_id, clock=clock)
        except (SyncFailure, StoreUnavailable) as exc:
            last_error = exc
            logger.warning(
                "Sync of leave %s failed on attempt %s/%s: %s",
                leave_id, attempt, max_attempts, exc.detail
            )
            if attempt < max_attempts and backoff_seconds > 0:
                sleep(backoff_seconds * attempt)
            continue

        leave.needs_reconciliation = False
        leave.sync_attempts = attempt
        leave.last_sync_error = None
        leave.synced_at = clock.now()
        db.commit()
        logger.info("Leave %s synced to attendance in %s attempt(s), %s days", leave_id, attempt, written)
        return written

    _flag_for_reconciliation(db, leave_id, max_attempts, last_error, actor_id, clock)
    raise SyncFailure(
        f"Leave {leave_id} is approved but its attendance could not be written after "
        f"{max_attempts} attempts; retry the approval to reconcile",
        leave_id=leave_id,
        days_written=getattr(last_error, "days_written", 0),
    )


def _flag_for_reconciliation(
    db: Session,
    leave_id: int,
    attempts: int,
    error: Optional[DomainError],
    actor_id: int,
    clock: Clock,
) -> None:
    detail = error.detail if error is not None else "unknown error"
    logger.error("Leave %s needs reconciliation after %s attempts: %s", leave_id, attempts, detail)
    try:
        leave = db.get(LeaveRequest, leave_id)
        leave.needs_reconciliation = True
        leave.sync_attempts = attempts
        leave.last_sync_error = detail
        log_audit(
            db=db,
            actor_id=actor_id,
            action="LEAVE_SYNC_EXHAUSTED",
            entity_type="leave_requests",
            entity_id=leave_id,
            meta={"attempts": attempts, "error": detail},
            clock=clock,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not flag leave %s for reconciliation", leave_id)


def reconcile_flagged(
    db: Session,
    actor_id: int,
    clock: Clock = system_clock,
) -> Dict[str, int]:
    """
    Re-run the sync for every approved leave flagged needs_reconciliation

    Returns:
        Counts of leaves checked, repaired and still failing
    """
    flagged_ids = [
        leave_id for (leave_id,) in db.query(LeaveRequest.id).filter(
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.needs_reconciliation.is_(True),
        ).order_by(LeaveRequest.id).all()
    ]

    repaired = 0
    failing = 0
    for leave_id in flagged_ids:
        leave = db.get(LeaveRequest, leave_id)
        try:
            sync_with_retry(
                db,
                leave,
                actor_id=actor_id,
                clock=clock,
                max_attempts=settings.SYNC_MAX_ATTEMPTS,
                backoff_seconds=settings.SYNC_RETRY_BACKOFF_SECONDS,
            )
        except SyncFailure:
            failing += 1
            continue
        repaired += 1

    if flagged_ids:
        logger.info("Reconciliation run: %s checked, %s repaired, %s failing", len(flagged_ids), repaired, failing)
    return {"checked": len(flagged_ids), "repaired": repaired, "failing": failing}
