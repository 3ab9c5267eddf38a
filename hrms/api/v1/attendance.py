"""
Attendance endpoints (manual entry CRUD and the attendance report)
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from hrms.core.deps import get_clock, get_current_user, get_db
from hrms.models.attendance import AttendanceStatus
from hrms.models.user import User
from hrms.schemas.attendance import (
    AttendanceCreate,
    AttendanceListResponse,
    AttendanceOut,
    AttendanceReportItem,
    AttendanceUpdate,
)
from hrms.services.attendance_service import (
    create_attendance,
    delete_attendance,
    get_attendance,
    query_attendance,
    update_attendance_status,
)
from hrms.services.report_service import attendance_report
from hrms.utils.datetime_utils import Clock

router = APIRouter()


@router.get("", response_model=AttendanceListResponse)
async def list_attendance_endpoint(
    day: Optional[date] = Query(None, alias="date", description="Exact day (YYYY-MM-DD)"),
    employee: Optional[int] = Query(None, description="Employee ID"),
    status: Optional[AttendanceStatus] = Query(None, description="present, absent, half-day or leave"),
    start_date: Optional[date] = Query(None, alias="startDate", description="Window start (inclusive)"),
    end_date: Optional[date] = Query(None, alias="endDate", description="Window end (inclusive)"),
    sort: Optional[str] = Query(None, description="date (default), employee or status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List attendance records, newest day first unless another sort is requested
    """
    records = query_attendance(
        db,
        employee_id=employee,
        status=status,
        day=day,
        start=start_date,
        end=end_date,
        sort=sort,
    )
    return AttendanceListResponse(
        items=[AttendanceOut.model_validate(r) for r in records],
        total=len(records),
    )


@router.post("", response_model=AttendanceOut, status_code=201)
async def create_attendance_endpoint(
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    """
    Record attendance for an active employee

    Never overwrites: a second entry for the same employee and day returns 409.
    """
    return create_attendance(
        db,
        employee_id=payload.employee,
        day=payload.day,
        status=payload.status,
        actor_id=current_user.id,
        clock=clock,
    )


@router.get("/report", response_model=List[AttendanceReportItem])
async def attendance_report_endpoint(
    start_date: date = Query(..., alias="startDate", description="Report start (inclusive)"),
    end_date: date = Query(..., alias="endDate", description="Report end (inclusive)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Per active employee counts of present, absent, half-day and leave records in the window
    """
    return attendance_report(db, start_date, end_date)


@router.get("/{record_id}", response_model=AttendanceOut)
async def get_attendance_endpoint(
    record_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return get_attendance(db, record_id)


@router.put("/{record_id}", response_model=AttendanceOut)
async def update_attendance_endpoint(
    record_id: int,
    payload: AttendanceUpdate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    return update_attendance_status(db, record_id, payload.status, actor_id=current_user.id, clock=clock)


@router.delete("/{record_id}")
async def delete_attendance_endpoint(
    record_id: int,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
    current_user: User = Depends(get_current_user),
):
    delete_attendance(db, record_id, actor_id=current_user.id, clock=clock)
    return {"message": "Attendance record removed"}
