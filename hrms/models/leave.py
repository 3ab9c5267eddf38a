"""
Leave models
"""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import false, func, text
import enum
from hrms.db.base import Base


class LeaveType(str, enum.Enum):
    SICK = "sick"
    CASUAL = "casual"
    ANNUAL = "annual"
    OTHER = "other"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LeaveRequest(Base):
    __tablename__ = "leave_requests"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    start_day = Column(Date, nullable=False)
    end_day = Column(Date, nullable=False)  # Inclusive
    reason = Column(Text, nullable=False)
    leave_type = Column(
        SQLEnum(LeaveType, name="leavetype", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    status = Column(
        SQLEnum(LeaveStatus, name="leavestatus", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        server_default=text("'pending'"),
    )
    document = Column(String, nullable=True)  # Opaque blob-storage key or URL
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Approval sync bookkeeping
    needs_reconciliation = Column(Boolean, nullable=False, default=False, server_default=false())
    sync_attempts = Column(Integer, nullable=False, default=0, server_default=text("0"))
    last_sync_error = Column(Text, nullable=True)
    synced_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    employee = relationship("Employee", back_populates="leave_requests")
    day_claims = relationship("LeaveDayClaim", back_populates="leave_request", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_leave_requests_employee_days", "employee_id", "start_day", "end_day"),
        CheckConstraint("start_day <= end_day", name="check_start_day_le_end_day"),
    )


class LeaveDayClaim(Base):
    """
    One row per calendar day covered by a non-rejected leave.

    The unique (employee_id, day) constraint makes overlapping leave impossible at
    the storage layer, including for concurrent creates.
    """
    __tablename__ = "leave_day_claims"

    id = Column(Integer, primary_key=True, index=True)
    leave_id = Column(Integer, ForeignKey("leave_requests.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    day = Column(Date, nullable=False)

    leave_request = relationship("LeaveRequest", back_populates="day_claims")

    __table_args__ = (
        UniqueConstraint("employee_id", "day", name="uq_leave_claim_employee_day"),
    )
