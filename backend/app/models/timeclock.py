"""Time entry model.

One row per clocked range for one employee, one date and one hour category.
Clock times are stored as time-of-day strings ("08:00:00"); rows imported from
older clients may carry "08:00", "08:00:00+07" or malformed text, which the
overlap detector tolerates.
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Date, Numeric, Text, Enum, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class HourCategory(str, enum.Enum):
    REGULAR = "regular"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"
    OVERTIME = "overtime"
    BONUS = "bonus"
    WORK_FROM_HOME = "wfh"
    ON_LEAVE = "on_leave"


class ApprovalStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


# on_leave markers carry these fixed clock values and zero hours
LEAVE_SENTINEL_TIME = "00:00:00"


class TimeEntry(Base):
    """Individual clocked time range."""
    __tablename__ = "time_entries"
    __table_args__ = (
        Index("ix_time_entries_conflict_key", "employee_id", "date", "category"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)

    # Date of this entry
    date = Column(Date, nullable=False, index=True)

    # Clock times (time-of-day, second resolution)
    clock_in = Column(String(32), nullable=False)
    clock_out = Column(String(32), nullable=False)
    hours = Column(Numeric(6, 2), nullable=False, default=0)

    category = Column(Enum(HourCategory), nullable=False, default=HourCategory.REGULAR)
    notes = Column(Text, nullable=True)

    # Proof of work (reference into the blob store)
    proof_url = Column(String, nullable=True)
    proof_name = Column(String, nullable=True)
    proof_mime_type = Column(String, nullable=True)

    # Approval
    status = Column(Enum(ApprovalStatus), default=ApprovalStatus.PENDING, nullable=False, index=True)
    approved_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    employee = relationship("Employee", foreign_keys=[employee_id], backref="time_entries")
    approver = relationship("Employee", foreign_keys=[approved_by])
