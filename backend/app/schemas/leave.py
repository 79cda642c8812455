from pydantic import BaseModel
from typing import Optional
from datetime import date, datetime
from app.models.leave import LeaveType
from app.models.timeclock import ApprovalStatus


class LeaveRequestCreate(BaseModel):
    leave_type: LeaveType
    start_date: date
    end_date: date
    reason: Optional[str] = None
    # Admins and managers may file leave on someone's behalf
    employee_id: Optional[int] = None


class LeaveRequest(BaseModel):
    id: int
    employee_id: int
    leave_type: LeaveType
    start_date: date
    end_date: date
    days_count: int
    reason: Optional[str]
    status: ApprovalStatus
    approved_by: Optional[int]
    approved_at: Optional[datetime]
    rejection_reason: Optional[str]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
