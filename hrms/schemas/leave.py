"""
Leave schemas
"""
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from hrms.models.leave import LeaveStatus, LeaveType
from hrms.schemas.common import to_calendar_day
from hrms.schemas.employee import EmployeeBrief
from hrms.utils.datetime_utils import iso_8601_utc


class LeaveCreate(BaseModel):
    """Schema for creating a leave request"""
    employee: int = Field(..., description="Employee ID")
    start_date: date = Field(..., alias="startDate", description="First day of leave")
    end_date: date = Field(..., alias="endDate", description="Last day of leave (inclusive)")
    reason: str = Field(..., min_length=1, description="Reason for leave")
    leave_type: LeaveType = Field(..., alias="type", description="sick, casual, annual or other")
    document: Optional[str] = Field(None, description="Storage key or URL of a supporting document")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def normalize_days(cls, value):
        return to_calendar_day(value)


class LeaveUpdate(BaseModel):
    """Status change and/or document replacement"""
    status: Optional[LeaveStatus] = Field(None, description="pending, approved or rejected")
    document: Optional[str] = Field(None, description="Storage key or URL of a supporting document")

    @model_validator(mode="after")
    def require_change(self) -> "LeaveUpdate":
        if self.status is None and self.document is None:
            raise ValueError("Provide status or document")
        return self


class LeaveOut(BaseModel):
    id: int
    employee_id: int
    employee: Optional[EmployeeBrief] = None
    start_day: date
    end_day: date
    reason: str
    leave_type: LeaveType
    status: LeaveStatus
    document: Optional[str] = None
    created_by: int
    updated_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    needs_reconciliation: bool = False
    sync_attempts: int = 0
    last_sync_error: Optional[str] = None
    synced_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", "synced_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)


class LeaveListResponse(BaseModel):
    items: List[LeaveOut]
    total: int


class LeaveCalendarEntry(BaseModel):
    """One calendar day of an approved leave"""
    date: date
    employee: str
    type: LeaveType


class ReconcileResult(BaseModel):
    checked: int
    repaired: int
    failing: int
