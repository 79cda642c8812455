"""Approval workflow for time entries and leave requests.

pending -> approved and pending -> rejected are the only transitions; both end
states are final. Who may act depends on the actor's role relative to the
record owner's role:

- admin: any record
- manager: records owned by employees
- employee: never, not even their own
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ForbiddenError, NotFoundError
from app.models.employee import Employee, EmployeeRole
from app.models.timeclock import ApprovalStatus
from app.services.store import RecordKind, RecordStore

logger = logging.getLogger(__name__)


def can_transition(actor_role: EmployeeRole, owner_role: EmployeeRole) -> bool:
    actor_role = EmployeeRole(actor_role)
    owner_role = EmployeeRole(owner_role)
    if actor_role == EmployeeRole.ADMIN:
        return True
    if actor_role == EmployeeRole.MANAGER:
        return owner_role == EmployeeRole.EMPLOYEE
    if actor_role == EmployeeRole.EMPLOYEE:
        return False
    raise ValueError(f"Unclassified role: {actor_role!r}")


class ApprovalService:

    def __init__(self, db: Session):
        self.db = db
        self.store = RecordStore(db)

    def approve(self, kind: RecordKind, record_id: int, actor: Employee):
        return self._transition(kind, record_id, actor, ApprovalStatus.APPROVED)

    def reject(self, kind: RecordKind, record_id: int, actor: Employee, reason: Optional[str] = None):
        return self._transition(kind, record_id, actor, ApprovalStatus.REJECTED, reason)

    def approve_entry(self, entry_id: int, actor: Employee):
        return self.approve(RecordKind.ENTRY, entry_id, actor)

    def reject_entry(self, entry_id: int, actor: Employee, reason: Optional[str] = None):
        return self.reject(RecordKind.ENTRY, entry_id, actor, reason)

    def approve_leave(self, request_id: int, actor: Employee):
        return self.approve(RecordKind.LEAVE, request_id, actor)

    def reject_leave(self, request_id: int, actor: Employee, reason: Optional[str] = None):
        return self.reject(RecordKind.LEAVE, request_id, actor, reason)

    def _transition(
        self,
        kind: RecordKind,
        record_id: int,
        actor: Employee,
        status: ApprovalStatus,
        reason: Optional[str] = None,
    ):
        label = "Time entry" if kind == RecordKind.ENTRY else "Leave request"

        record = self.store.get_record(kind, record_id)
        if record is None:
            raise NotFoundError(f"{label} {record_id} not found")

        owner = self.store.get_employee(record.employee_id)
        if owner is None:
            raise NotFoundError(f"Employee {record.employee_id} not found")

        if not can_transition(actor.role, owner.role):
            logger.info(
                f"{actor.role.value} {actor.id} denied {status.value} on {kind.value} {record_id} "
                f"owned by {owner.role.value} {owner.id}"
            )
            raise ForbiddenError(
                f"A {actor.role.value} cannot {_verb(status)} records owned by a {owner.role.value}"
            )

        if record.status != ApprovalStatus.PENDING:
            raise ConflictError(
                f"{label} {record_id} is already {ApprovalStatus(record.status).value}",
                record_id=record_id,
            )

        if not self.store.update_status(kind, record_id, status, actor.id, reason):
            # Lost the race against another approver
            raise ConflictError(
                f"{label} {record_id} was already processed by another approver",
                record_id=record_id,
            )

        if reason and kind == RecordKind.ENTRY:
            logger.info(f"Time entry {record_id} rejected by {actor.id}: {reason}")
        logger.info(f"{label} {record_id} {status.value} by employee {actor.id}")

        self.db.expire(record)
        return self.store.get_record(kind, record_id)


def _verb(status: ApprovalStatus) -> str:
    return "approve" if status == ApprovalStatus.APPROVED else "reject"
