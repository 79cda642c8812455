"""Time entry submission, deletion and proof attachments.

Single and bulk submissions share one path: validate the draft, lock every
(employee, date, category) key involved, load existing entries, partition the
targets and insert the accepted drafts in one transaction.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    AllConflictingError, ConflictError, ForbiddenError, NotFoundError, ValidationError,
)
from app.core.locks import KeyedLocks, entry_locks
from app.models.employee import Employee, EmployeeRole
from app.models.timeclock import ApprovalStatus, HourCategory, LEAVE_SENTINEL_TIME, TimeEntry
from app.schemas.timeclock import ProofReference, TimeEntryDraft
from app.services.overlap import TimeRange, format_time_of_day, time_range
from app.services.partition import partition
from app.services.store import RecordStore

logger = logging.getLogger(__name__)

STAFF_ROLES = (EmployeeRole.ADMIN, EmployeeRole.MANAGER)


def is_staff(employee: Employee) -> bool:
    return employee.role in STAFF_ROLES


@dataclass
class PreparedDraft:
    """Validated draft: normalized clock strings, hours and the range to check."""
    draft: TimeEntryDraft
    clock_in: str
    clock_out: str
    hours: Decimal
    span: TimeRange


def validate_proof(proof: Optional[ProofReference]):
    if proof is None:
        return
    if proof.mime_type.lower() not in settings.PROOF_ALLOWED_MIME_TYPES:
        raise ValidationError(
            "Only PDF and image attachments are allowed",
            mime_type=proof.mime_type,
        )
    if proof.size is not None and proof.size > settings.PROOF_MAX_SIZE:
        raise ValidationError(
            f"Attachment must be smaller than {settings.PROOF_MAX_SIZE // (1024 * 1024)}MB",
            size=proof.size,
        )


def prepare_draft(draft: TimeEntryDraft) -> PreparedDraft:
    """Validate a draft and derive stored values. Raises ValidationError."""
    validate_proof(draft.proof)

    if draft.category == HourCategory.ON_LEAVE:
        span = time_range(draft.date, draft.category, LEAVE_SENTINEL_TIME, LEAVE_SENTINEL_TIME)
        return PreparedDraft(draft, LEAVE_SENTINEL_TIME, LEAVE_SENTINEL_TIME, Decimal("0.00"), span)

    if not draft.clock_in or not draft.clock_out:
        raise ValidationError("Please enter both clock in and clock out times")

    span = time_range(draft.date, draft.category, draft.clock_in, draft.clock_out)
    if span is None:
        raise ValidationError(
            "Clock times must look like HH:MM or HH:MM:SS",
            clock_in=draft.clock_in,
            clock_out=draft.clock_out,
        )
    if span.end_seconds <= span.start_seconds:
        raise ValidationError("Clock out time must be after clock in time")

    hours = (Decimal(span.end_seconds - span.start_seconds) / Decimal(3600)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
    if hours > settings.MAX_ENTRY_HOURS:
        raise ValidationError(f"Cannot exceed {settings.MAX_ENTRY_HOURS} hours in one entry")

    return PreparedDraft(
        draft,
        format_time_of_day(span.start_seconds),
        format_time_of_day(span.end_seconds),
        hours,
        span,
    )


class TimeEntryService:

    def __init__(self, db: Session, locks: KeyedLocks = entry_locks):
        self.db = db
        self.store = RecordStore(db)
        self.locks = locks

    @property
    def fail_closed(self) -> bool:
        return settings.UNPARSABLE_TIME_POLICY.lower() == "reject"

    # ── Submission ───────────────────────────────────────────────────

    def submit_entry(self, draft: TimeEntryDraft, actor: Employee,
                     employee_id: Optional[int] = None) -> TimeEntry:
        """Submit one entry, for the actor or (admins/managers) for someone else.

        Self-submitted entries start pending; entries made on someone else's
        behalf are approved immediately. Raises ConflictError on overlap.
        """
        owner_id = employee_id if employee_id is not None else actor.id
        on_behalf = owner_id != actor.id
        if on_behalf and not is_staff(actor):
            raise ForbiddenError("You can only submit time for yourself")

        prepared = prepare_draft(draft)
        owner = self._load_targets([owner_id])[owner_id]
        status = ApprovalStatus.APPROVED if on_behalf else ApprovalStatus.PENDING

        inserted, conflicting = self._insert_for(prepared, [owner], actor, status)
        if conflicting:
            raise ConflictError(
                "Time overlaps with existing entry on this date",
                employees=[owner.name],
                category=draft.category.value,
                work_date=draft.date,
            )

        logger.info(
            f"Time entry {inserted[0].id} ({draft.category.value} {draft.date}) "
            f"submitted for employee {owner_id} by {actor.id}"
        )
        return inserted[0]

    def submit_bulk_entry(self, draft: TimeEntryDraft, employee_ids: Sequence[int],
                          actor: Employee) -> dict:
        """Submit the same entry for several employees.

        Conflicting employees are skipped and reported; if every target
        conflicts nothing is inserted and AllConflictingError is raised.
        """
        if not employee_ids:
            raise ValidationError("Select at least one employee")
        if not is_staff(actor) and set(employee_ids) != {actor.id}:
            raise ForbiddenError("You can only submit time for yourself")

        prepared = prepare_draft(draft)
        targets = self._load_targets(employee_ids)
        ordered = [targets[i] for i in dict.fromkeys(employee_ids)]
        status = ApprovalStatus.APPROVED if is_staff(actor) else ApprovalStatus.PENDING

        inserted, conflicting = self._insert_for(prepared, ordered, actor, status)
        category = draft.category.value

        if not inserted:
            names = [e.name for e in conflicting]
            raise AllConflictingError(
                f"All selected employees already have {category} entries that overlap on "
                f"{draft.date.isoformat()}: {', '.join(names)}",
                employees=names,
                category=category,
                work_date=draft.date,
            )

        skipped = [
            {
                "employee_id": e.id,
                "employee_name": e.name,
                "reason": f"Overlapping {category} entry on {draft.date.isoformat()}",
            }
            for e in conflicting
        ]
        warning = None
        if skipped:
            warning = (
                f"Added {len(inserted)} entries. Skipped {len(skipped)} employee(s) with "
                f"conflicting {category} entries on {draft.date.isoformat()}: "
                + ", ".join(s["employee_name"] for s in skipped)
            )
            logger.warning(warning)
        else:
            logger.info(f"Bulk {category} entry on {draft.date} added for {len(inserted)} employees by {actor.id}")

        return {"accepted": inserted, "skipped": skipped, "warning": warning}

    def _load_targets(self, employee_ids: Sequence[int]) -> dict:
        found = self.store.get_employees(employee_ids)
        missing = sorted(i for i in set(employee_ids) if i not in found or not found[i].is_active)
        if missing:
            raise NotFoundError("Employee not found", employee_ids=missing)
        return found

    def _insert_for(
        self,
        prepared: PreparedDraft,
        targets: List[Employee],
        actor: Employee,
        status: ApprovalStatus,
    ) -> Tuple[List[TimeEntry], List[Employee]]:
        draft = prepared.draft
        keys = [(e.id, draft.date, draft.category.value) for e in targets]

        with self.locks.hold(keys):
            existing = self.store.find_entries_for([e.id for e in targets], draft.date, draft.category)
            split = partition(prepared.span, [e.id for e in targets], existing, fail_closed=self.fail_closed)
            by_id = {e.id: e for e in targets}

            if not split.accepted:
                return [], [by_id[i] for i in split.conflicting]

            notes = draft.notes
            if not notes and status == ApprovalStatus.APPROVED:
                notes = f"Entered by admin: {actor.name}"

            proof = draft.proof
            rows = [
                {
                    "employee_id": employee_id,
                    "date": draft.date,
                    "clock_in": prepared.clock_in,
                    "clock_out": prepared.clock_out,
                    "hours": prepared.hours,
                    "category": draft.category,
                    "notes": notes,
                    "proof_url": proof.url if proof else None,
                    "proof_name": proof.name if proof else None,
                    "proof_mime_type": proof.mime_type if proof else None,
                    "status": status,
                    "approved_by": actor.id if status == ApprovalStatus.APPROVED else None,
                    "approved_at": datetime.utcnow() if status == ApprovalStatus.APPROVED else None,
                }
                for employee_id in split.accepted
            ]
            inserted = self.store.insert_entries(rows)

        return inserted, [by_id[i] for i in split.conflicting]

    # ── Queries ──────────────────────────────────────────────────────

    def list_entries(
        self,
        employee_id: Optional[int],
        actor: Employee,
        start: Optional[date] = None,
        end: Optional[date] = None,
        category: Optional[HourCategory] = None,
        status: Optional[ApprovalStatus] = None,
    ) -> List[TimeEntry]:
        """Entries of one employee. Admins and managers may pass ``None`` to see
        everyone's, e.g. the pending approval queue."""
        if employee_id is None and not is_staff(actor):
            employee_id = actor.id
        if employee_id is not None and employee_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You can only view your own time entries")
        return self.store.find_entries(
            employee_id,
            start or date.min,
            end or date.max,
            category=category,
            status=status,
        )

    # ── Deletion and attachments ─────────────────────────────────────

    def _owned_entry(self, entry_id: int, actor: Employee) -> TimeEntry:
        entry = self.store.get_entry(entry_id)
        if entry is None:
            raise NotFoundError(f"Time entry {entry_id} not found")
        if entry.employee_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You can only change your own time entries")
        return entry

    def delete_entry(self, entry_id: int, actor: Employee) -> dict:
        """Remove an entry together with its proof reference."""
        entry = self._owned_entry(entry_id, actor)
        proof_url = entry.proof_url
        if not self.store.delete_entry(entry_id):
            raise NotFoundError(f"Time entry {entry_id} not found")
        self.db.expunge(entry)
        logger.info(f"Time entry {entry_id} deleted by {actor.id}")
        return {"id": entry_id, "deleted": True, "removed_proof_url": proof_url}

    def delete_attachment(self, entry_id: int, actor: Employee) -> TimeEntry:
        """Drop only the proof reference; the entry stays."""
        entry = self._owned_entry(entry_id, actor)
        if entry.proof_url is None:
            raise NotFoundError(f"Time entry {entry_id} has no attachment")
        self.store.clear_attachment(entry_id)
        self.db.expire(entry)
        logger.info(f"Proof attachment removed from time entry {entry_id} by {actor.id}")
        return self.store.get_entry(entry_id)

    def attach_proof(self, entry_id: int, proof: ProofReference, actor: Employee) -> TimeEntry:
        entry = self._owned_entry(entry_id, actor)
        validate_proof(proof)
        self.store.set_attachment(entry_id, proof.url, proof.name, proof.mime_type)
        self.db.expire(entry)
        return self.store.get_entry(entry_id)
