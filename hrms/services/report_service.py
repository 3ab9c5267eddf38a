"""
Report service - read-only aggregations over attendance and approved leave
"""
from datetime import date
from typing import Dict, Iterator, List

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from hrms.core.exceptions import InvalidRange
from hrms.models.attendance import AttendanceRecord, AttendanceStatus
from hrms.models.employee import Employee, EmployeeStatus
from hrms.models.leave import LeaveRequest, LeaveStatus
from hrms.utils.date_range import clip, expand, month_window, overlap_clause

# Tally keys in output order
TALLY_KEYS = {
    AttendanceStatus.PRESENT: "present",
    AttendanceStatus.ABSENT: "absent",
    AttendanceStatus.HALF_DAY: "half_day",
    AttendanceStatus.LEAVE: "leave",
}

_BATCH_SIZE = 200


def _empty_tally() -> Dict[str, int]:
    tally = {key: 0 for key in TALLY_KEYS.values()}
    tally["total"] = 0
    return tally


def iter_attendance_report(db: Session, start: date, end: date) -> Iterator[Dict]:
    """
    Per active employee, count of attendance records in [start, end] by status

    Employees with no records in the window are included with zero counts.
    Rows are yielded one employee at a time in name order; a consumer that stops
    iterating simply stops the read.

    Raises:
        InvalidRange: start is after end
    """
    if start > end:
        raise InvalidRange("startDate must be on or before endDate")

    counts = db.query(
        AttendanceRecord.employee_id,
        AttendanceRecord.status,
        func.count(AttendanceRecord.id),
    ).join(
        Employee, AttendanceRecord.employee_id == Employee.id
    ).filter(
        Employee.status == EmployeeStatus.ACTIVE,
        AttendanceRecord.day >= start,
        AttendanceRecord.day <= end,
    ).group_by(
        AttendanceRecord.employee_id, AttendanceRecord.status
    ).all()

    tallies: Dict[int, Dict[str, int]] = {}
    for employee_id, status, count in counts:
        tally = tallies.setdefault(employee_id, _empty_tally())
        tally[TALLY_KEYS[AttendanceStatus(status)]] += count
        tally["total"] += count

    employees = db.query(Employee).filter(
        Employee.status == EmployeeStatus.ACTIVE
    ).order_by(Employee.name, Employee.id).yield_per(_BATCH_SIZE)

    for employee in employees:
        yield {
            "employee": employee,
            "attendance": tallies.get(employee.id, _empty_tally()),
        }


def attendance_report(db: Session, start: date, end: date) -> List[Dict]:
    return list(iter_attendance_report(db, start, end))


def iter_leave_calendar(db: Session, month: int, year: int) -> Iterator[Dict]:
    """
    One entry per calendar day of every approved leave overlapping the month

    Leave spans are clipped to the month. Entries come leave by leave (id order),
    then day by day within each leave.
    """
    window_start, window_end = month_window(month, year)

    leaves = db.query(LeaveRequest).options(
        joinedload(LeaveRequest.employee)
    ).filter(
        LeaveRequest.status == LeaveStatus.APPROVED,
        overlap_clause(LeaveRequest.start_day, LeaveRequest.end_day, window_start, window_end),
    ).order_by(LeaveRequest.id).yield_per(_BATCH_SIZE)

    for leave in leaves:
        span = clip(leave.start_day, leave.end_day, window_start, window_end)
        if span is None:
            continue
        for day in expand(*span):
            yield {
                "date": day,
                "employee": leave.employee.name,
                "type": leave.leave_type,
            }


def leave_calendar(db: Session, month: int, year: int) -> List[Dict]:
    return list(iter_leave_calendar(db, month, year))
