from app.models.employee import Employee, EmployeeRole
from app.models.timeclock import TimeEntry, HourCategory, ApprovalStatus, LEAVE_SENTINEL_TIME
from app.models.leave import LeaveRequest, LeaveType

__all__ = [
    "Employee",
    "EmployeeRole",
    "TimeEntry",
    "HourCategory",
    "ApprovalStatus",
    "LEAVE_SENTINEL_TIME",
    "LeaveRequest",
    "LeaveType",
]
