"""
Employee model
"""
from sqlalchemy import Column, Integer, String, DateTime, Date, Numeric, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from hrms.db.base import Base


class EmployeeStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    phone = Column(String, nullable=False)
    position = Column(String, nullable=False)
    department = Column(String, nullable=False)
    joining_date = Column(Date, nullable=False)
    salary = Column(Numeric(12, 2), nullable=False)
    status = Column(
        SQLEnum(EmployeeStatus, name="employeestatus", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EmployeeStatus.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    # Relationships
    attendance_records = relationship("AttendanceRecord", back_populates="employee")
    leave_requests = relationship("LeaveRequest", back_populates="employee")

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE
