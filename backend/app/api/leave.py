"""Leave Requests API: file, list, approve, reject."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.employee import Employee
from app.models.timeclock import ApprovalStatus
from app.schemas.leave import LeaveRequest as LeaveRequestSchema, LeaveRequestCreate
from app.schemas.timeclock import StatusChange
from app.services.approval import ApprovalService
from app.services.leave import LeaveService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/leave-requests", tags=["leave"])


@router.post("", response_model=LeaveRequestSchema, status_code=201)
def create_leave_request(
    payload: LeaveRequestCreate,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """File a leave request (pending until approved)."""
    request = LeaveService(db).create_leave_request(payload, current_user)
    return LeaveRequestSchema.model_validate(request)


@router.get("", response_model=List[LeaveRequestSchema])
def list_leave_requests(
    employee_id: Optional[int] = None,
    year: Optional[int] = None,
    status: Optional[ApprovalStatus] = None,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List your own leave requests; admins and managers see everyone by default."""
    requests = LeaveService(db).list_leave_requests(
        employee_id,
        current_user,
        year=year,
        status=status,
    )
    return [LeaveRequestSchema.model_validate(r) for r in requests]


@router.post("/{request_id}/approve", response_model=LeaveRequestSchema)
def approve_leave(
    request_id: int,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    request = ApprovalService(db).approve_leave(request_id, current_user)
    return LeaveRequestSchema.model_validate(request)


@router.post("/{request_id}/reject", response_model=LeaveRequestSchema)
def reject_leave(
    request_id: int,
    body: Optional[StatusChange] = Body(None),
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Reject a leave request with an optional reason."""
    reason = body.reason if body else None
    request = ApprovalService(db).reject_leave(request_id, current_user, reason)
    return LeaveRequestSchema.model_validate(request)
