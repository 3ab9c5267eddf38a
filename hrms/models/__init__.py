"""
Database models
"""
from hrms.models.user import User
from hrms.models.employee import Employee, EmployeeStatus
from hrms.models.attendance import AttendanceRecord, AttendanceStatus
from hrms.models.leave import LeaveRequest, LeaveDayClaim, LeaveType, LeaveStatus
from hrms.models.audit_log import AuditLog

__all__ = [
    "User",
    "Employee",
    "EmployeeStatus",
    "AttendanceRecord",
    "AttendanceStatus",
    "LeaveRequest",
    "LeaveDayClaim",
    "LeaveType",
    "LeaveStatus",
    "AuditLog",
]
