"""
Leave endpoints
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrms.core.deps import get_clock, get_current_user, get_db
from hrms.models.leave import LeaveStatus, LeaveType
from hrms.models.user import User
from hrms.schemas.leave import (
    LeaveCalendarEntry,
    LeaveCreate,
    LeaveListResponse,
    LeaveOut,
    LeaveUpdate,
    ReconcileResult,
)
from hrms.services.leave_service import (
    create_leave,
    delete_leave,
    get_leave,
    query_leaves,
    transition_leave,
)
from hrms.services.reconciler import reconcile_flagged
from hrms.services.report_service import leave_calendar
from hrms.utils.datetime_utils import Clock

router = APIRouter()


@router.get("", response_model=LeaveListResponse)
async def list_leaves_endpoint(
    employee: Optional[int] = Query(None, description="Employee ID"),
    status: Optional[LeaveStatus] = Query(None, description="pending, approved or rejected"),
    leave_type: Optional[LeaveType] = Query(None, alias="type", description="sick, casual, annual or other"),
    start_date: Optional[date] = Query(None, alias="startDate", description="Keep leaves overlapping this window"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Keep leaves overlapping this window"),
    needs_reconciliation: Optional[bool] = Query(None, description="Only leaves whose attendance sync is outstanding"),
    sort: Optional[str] = Query(None, description="employee or startDate; newest first by default"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List leave requests

    The date window keeps every leave whose span overlaps [startDate, endDate].
    """
    leaves = query_leaves(
        db,
        employee_id=employee,
        status=status,
        leave_type=leave_type,
        start=start_date,
        end=end_date,
        needs_reconciliation=needs_reconciliation,
        sort=sort,
    )
    return LeaveListResponse(
        items=[LeaveOut.model_validate(leave) for leave in leaves],
        total=len(leaves),
    )


@router.post("", response_model=LeaveOut, status_code=201)
async def create_leave_endpoint(
    payload: LeaveCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """
    Apply for leave (creates a pending request)

    Validations:
    - startDate <= endDate
    - employee exists and is active (409 employee_inactive)
    - employee has at least one 'present' attendance record (409 no_attendance_history)
    - no overlap with the employee's pending/approved leave (409 overlapping_leave)
    """
    return create_leave(
        db,
        employee_id=payload.employee,
        start=payload.start_date,
        end=payload.end_date,
        reason=payload.reason,
        leave_type=payload.leave_type,
        actor_id=current_user.id,
        document=payload.document,
        clock=clock,
    )


@router.get("/calendar", response_model=List[LeaveCalendarEntry])
async def leave_calendar_endpoint(
    month: int = Query(..., ge=1, le=12, description="Month (1-12)"),
    year: int = Query(..., ge=1, le=9999, description="Year"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Approved leave projected onto the days of one month, one entry per employee-day
    """
    return leave_calendar(db, month, year)


@router.post("/reconcile", response_model=ReconcileResult)
async def reconcile_endpoint(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """
    Re-run the attendance sync for approved leaves flagged needs_reconciliation
    """
    return reconcile_flagged(db, actor_id=current_user.id, clock=clock)


@router.get("/{leave_id}", response_model=LeaveOut)
async def get_leave_endpoint(
    leave_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_leave(db, leave_id)


@router.put("/{leave_id}", response_model=LeaveOut)
async def update_leave_endpoint(
    leave_id: int,
    payload: LeaveUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """
    Update status and/or document

    Approving writes a 'leave' attendance record for every day of the span,
    overriding manual entries. Approving again re-runs the same writes. If the
    writes cannot complete the leave stays approved, is flagged
    needs_reconciliation, and 503 sync_failure is returned (retryable).
    """
    return transition_leave(
        db,
        leave_id,
        actor_id=current_user.id,
        new_status=payload.status,
        document=payload.document,
        clock=clock,
    )


@router.delete("/{leave_id}")
async def delete_leave_endpoint(
    leave_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    delete_leave(db, leave_id, actor_id=current_user.id, clock=clock)
    return {"message": "Leave removed"}
