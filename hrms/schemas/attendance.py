"""
Attendance schemas
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from hrms.models.attendance import AttendanceStatus
from hrms.schemas.common import to_calendar_day
from hrms.schemas.employee import EmployeeBrief
from hrms.utils.datetime_utils import iso_8601_utc


class AttendanceCreate(BaseModel):
    """Manual attendance entry; refused when the employee already has a record that day"""
    employee: int = Field(..., description="Employee ID")
    day: date = Field(..., alias="date", description="Calendar day (time of day is discarded)")
    status: AttendanceStatus = Field(..., description="present, absent, half-day or leave")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("day", mode="before")
    @classmethod
    def normalize_day(cls, value):
        return to_calendar_day(value)


class AttendanceUpdate(BaseModel):
    status: AttendanceStatus = Field(..., description="New status")


class AttendanceOut(BaseModel):
    id: int
    employee_id: int
    employee: Optional[EmployeeBrief] = None
    day: date
    status: AttendanceStatus
    created_by: int
    created_at: datetime
    updated_by: Optional[int] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class AttendanceListResponse(BaseModel):
    items: List[AttendanceOut]
    total: int


class AttendanceTally(BaseModel):
    """Record counts by status; total is their sum"""
    present: int = 0
    absent: int = 0
    half_day: int = Field(0, serialization_alias="half-day")
    leave: int = 0
    total: int = 0


class AttendanceReportItem(BaseModel):
    employee: EmployeeBrief
    attendance: AttendanceTally
