"""
Attendance record model
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from hrms.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    HALF_DAY = "half-day"
    LEAVE = "leave"


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    day = Column(Date, nullable=False, index=True)  # Calendar day in settings.CALENDAR_TZ
    status = Column(
        SQLEnum(AttendanceStatus, name="attendancestatus", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # One record per employee per calendar day
    __table_args__ = (
        UniqueConstraint("employee_id", "day", name="uq_attendance_employee_day"),
    )

    # Relationships
    employee = relationship("Employee", back_populates="attendance_records")
