import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.employee import Employee
from app.models.leave import LeaveRequest
from app.models.timeclock import ApprovalStatus
from app.schemas.leave import LeaveRequestCreate
from app.services.store import RecordStore
from app.services.timeclock import is_staff

logger = logging.getLogger(__name__)


def inclusive_days(start, end) -> int:
    """Calendar days from start to end, both included. Weekends count."""
    return (end - start).days + 1


class LeaveService:

    def __init__(self, db: Session):
        self.db = db
        self.store = RecordStore(db)

    def create_leave_request(self, payload: LeaveRequestCreate, actor: Employee) -> LeaveRequest:
        owner_id = payload.employee_id if payload.employee_id is not None else actor.id
        if owner_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You can only request leave for yourself")

        if payload.end_date < payload.start_date:
            raise ValidationError("End date must be on or after start date")

        owner = self.store.get_employee(owner_id)
        if owner is None or not owner.is_active:
            raise NotFoundError(f"Employee {owner_id} not found")

        request = self.store.insert_leave_request(
            employee_id=owner_id,
            leave_type=payload.leave_type,
            start_date=payload.start_date,
            end_date=payload.end_date,
            days_count=inclusive_days(payload.start_date, payload.end_date),
            reason=payload.reason,
            status=ApprovalStatus.PENDING,
        )
        logger.info(
            f"Leave request {request.id} ({payload.leave_type.value}, {request.days_count} days) "
            f"filed for employee {owner_id} by {actor.id}"
        )
        return request

    def list_leave_requests(
        self,
        employee_id: Optional[int],
        actor: Employee,
        year: Optional[int] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> List[LeaveRequest]:
        if employee_id is None and not is_staff(actor):
            employee_id = actor.id
        if employee_id is not None and employee_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You can only view your own leave requests")
        return self.store.find_leave_requests(employee_id, year=year, status=status)
