"""Record store for employees, time entries and leave requests.

Thin layer over a SQLAlchemy session. Driver timeouts and dropped connections
surface as TransientStoreError so callers can retry; everything else
propagates unchanged.
"""
import enum
import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.core.errors import TransientStoreError
from app.models.employee import Employee
from app.models.leave import LeaveRequest
from app.models.timeclock import ApprovalStatus, HourCategory, TimeEntry

logger = logging.getLogger(__name__)


class RecordKind(str, enum.Enum):
    ENTRY = "entry"
    LEAVE = "leave"


_MODELS = {
    RecordKind.ENTRY: TimeEntry,
    RecordKind.LEAVE: LeaveRequest,
}


class RecordStore:

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _io(self, action: str):
        try:
            yield
        except (OperationalError, PoolTimeoutError) as e:
            self.db.rollback()
            logger.warning(f"Record store {action} failed: {type(e).__name__}: {e}")
            raise TransientStoreError(f"Record store unavailable while trying to {action}") from e

    # ── Employees ────────────────────────────────────────────────────

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        with self._io("load employee"):
            return self.db.query(Employee).filter(Employee.id == employee_id).first()

    def get_employees(self, employee_ids: Iterable[int]) -> Dict[int, Employee]:
        ids = list(set(employee_ids))
        if not ids:
            return {}
        with self._io("load employees"):
            rows = self.db.query(Employee).filter(Employee.id.in_(ids)).all()
        return {e.id: e for e in rows}

    def list_employees(self, active_only: bool = True) -> List[Employee]:
        with self._io("list employees"):
            query = self.db.query(Employee)
            if active_only:
                query = query.filter(Employee.is_active == True)  # noqa: E712
            return query.order_by(Employee.name).all()

    def add_employee(self, **values) -> Employee:
        employee = Employee(**values)
        with self._io("create employee"):
            try:
                self.db.add(employee)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(employee)
        return employee

    # ── Time entries ─────────────────────────────────────────────────

    def find_entries(
        self,
        employee_id: Optional[int],
        start: date,
        end: date,
        category: Optional[HourCategory] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> List[TimeEntry]:
        """Entries with ``start <= date <= end``, for one employee or (``None``) everyone."""
        with self._io("find time entries"):
            query = self.db.query(TimeEntry).filter(
                TimeEntry.date >= start,
                TimeEntry.date <= end,
            )
            if employee_id is not None:
                query = query.filter(TimeEntry.employee_id == employee_id)
            if category is not None:
                query = query.filter(TimeEntry.category == category)
            if status is not None:
                query = query.filter(TimeEntry.status == status)
            return query.order_by(TimeEntry.date.desc(), TimeEntry.clock_in).all()

    def find_entries_for(
        self,
        employee_ids: Iterable[int],
        work_date: date,
        category: HourCategory,
    ) -> Dict[int, List[TimeEntry]]:
        """Existing entries per employee sharing a date and category."""
        ids = list(set(employee_ids))
        grouped: Dict[int, List[TimeEntry]] = {i: [] for i in ids}
        if not ids:
            return grouped
        with self._io("find time entries"):
            rows = self.db.query(TimeEntry).filter(
                TimeEntry.employee_id.in_(ids),
                TimeEntry.date == work_date,
                TimeEntry.category == category,
            ).all()
        for row in rows:
            grouped[row.employee_id].append(row)
        return grouped

    def get_entry(self, entry_id: int) -> Optional[TimeEntry]:
        with self._io("load time entry"):
            return self.db.query(TimeEntry).filter(TimeEntry.id == entry_id).first()

    def insert_entries(self, drafts: List[dict]) -> List[TimeEntry]:
        """Insert every draft in one transaction, or none of them."""
        entries = [TimeEntry(**values) for values in drafts]
        with self._io("insert time entries"):
            try:
                self.db.add_all(entries)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            for entry in entries:
                self.db.refresh(entry)
        return entries

    def delete_entry(self, entry_id: int) -> bool:
        with self._io("delete time entry"):
            deleted = self.db.query(TimeEntry).filter(TimeEntry.id == entry_id).delete(
                synchronize_session=False
            )
            self.db.commit()
        return deleted == 1

    def set_attachment(self, entry_id: int, url: Optional[str], name: Optional[str],
                       mime_type: Optional[str]) -> bool:
        with self._io("update proof attachment"):
            updated = self.db.query(TimeEntry).filter(TimeEntry.id == entry_id).update(
                {"proof_url": url, "proof_name": name, "proof_mime_type": mime_type},
                synchronize_session=False,
            )
            self.db.commit()
        return updated == 1

    def clear_attachment(self, entry_id: int) -> bool:
        return self.set_attachment(entry_id, None, None, None)

    # ── Leave requests ───────────────────────────────────────────────

    def get_leave_request(self, request_id: int) -> Optional[LeaveRequest]:
        with self._io("load leave request"):
            return self.db.query(LeaveRequest).filter(LeaveRequest.id == request_id).first()

    def find_leave_requests(
        self,
        employee_id: Optional[int],
        year: Optional[int] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> List[LeaveRequest]:
        """Leave requests for one employee or (``None``) everyone, optionally those starting in ``year``."""
        with self._io("find leave requests"):
            query = self.db.query(LeaveRequest)
            if employee_id is not None:
                query = query.filter(LeaveRequest.employee_id == employee_id)
            if year is not None:
                query = query.filter(
                    LeaveRequest.start_date >= date(year, 1, 1),
                    LeaveRequest.start_date <= date(year, 12, 31),
                )
            if status is not None:
                query = query.filter(LeaveRequest.status == status)
            return query.order_by(LeaveRequest.start_date.desc()).all()

    def insert_leave_request(self, **values) -> LeaveRequest:
        request = LeaveRequest(**values)
        with self._io("insert leave request"):
            try:
                self.db.add(request)
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(request)
        return request

    # ── Status transitions ───────────────────────────────────────────

    def get_record(self, kind: RecordKind, record_id: int):
        if kind == RecordKind.ENTRY:
            return self.get_entry(record_id)
        return self.get_leave_request(record_id)

    def update_status(
        self,
        kind: RecordKind,
        record_id: int,
        status: ApprovalStatus,
        actor_id: int,
        reason: Optional[str] = None,
    ) -> bool:
        """Compare-and-set a pending record to ``status``.

        Returns False when the record is gone or no longer pending, so of two
        concurrent transitions exactly one reports True.
        """
        model = _MODELS[kind]
        values = {
            "status": status,
            "approved_by": actor_id,
            "approved_at": datetime.utcnow(),
        }
        if kind == RecordKind.LEAVE and status == ApprovalStatus.REJECTED:
            values["rejection_reason"] = reason

        with self._io("update status"):
            updated = self.db.query(model).filter(
                model.id == record_id,
                model.status == ApprovalStatus.PENDING,
            ).update(values, synchronize_session=False)
            self.db.commit()
        return updated == 1

    def count_pending(self) -> Dict[str, int]:
        with self._io("count pending approvals"):
            entries = self.db.query(func.count(TimeEntry.id)).filter(
                TimeEntry.status == ApprovalStatus.PENDING
            ).scalar() or 0
            leave = self.db.query(func.count(LeaveRequest.id)).filter(
                LeaveRequest.status == ApprovalStatus.PENDING
            ).scalar() or 0
        return {
            "time_entries": entries,
            "leave_requests": leave,
            "total": entries + leave,
        }
