"""
Employee schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from hrms.models.employee import EmployeeStatus
from hrms.utils.datetime_utils import iso_8601_utc


class EmployeeCreate(BaseModel):
    """Schema for creating an employee"""
    name: str = Field(..., min_length=1, description="Employee name")
    email: str = Field(..., min_length=3, description="Employee email (unique)")
    phone: str = Field(..., min_length=1, description="Phone number")
    position: str = Field(..., min_length=1, description="Job position")
    department: str = Field(..., min_length=1, description="Department name")
    joining_date: date = Field(..., description="Joining date")
    salary: Decimal = Field(..., ge=0, description="Salary")
    status: EmployeeStatus = Field(default=EmployeeStatus.ACTIVE, description="active or inactive")


class EmployeeUpdate(BaseModel):
    """Schema for updating an employee"""
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = Field(None, min_length=3)
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    joining_date: Optional[date] = None
    salary: Optional[Decimal] = Field(None, ge=0)
    status: Optional[EmployeeStatus] = None


class EmployeeBrief(BaseModel):
    """Employee fields embedded in leave, attendance and report payloads"""
    id: int
    name: str
    position: str
    department: str

    model_config = ConfigDict(from_attributes=True)


class EmployeeOut(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    position: str
    department: str
    joining_date: date
    salary: Decimal
    status: EmployeeStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_8601_utc(dt)
