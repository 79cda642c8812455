"""Time Entries API: submit (single and bulk), list, delete, attachments, approvals.

Rules:
- Employees submit their own time; those entries wait for approval.
- Admins/managers may enter time for others (one or many at once); those
  entries are approved immediately. Employees whose existing entries overlap
  are skipped and listed in the response.
- Admin approves anything; manager approves entries of employees only.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user
from app.models.employee import Employee
from app.models.timeclock import ApprovalStatus, HourCategory
from app.schemas.timeclock import (
    BulkEntryCreate, BulkSubmissionResult, ProofReference, SkippedTarget,
    StatusChange, TimeEntry as TimeEntrySchema, TimeEntryCreate,
)
from app.services.approval import ApprovalService
from app.services.timeclock import TimeEntryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/time-entries", tags=["time-entries"])


# ── Submit ───────────────────────────────────────────────────────────

@router.post("", response_model=TimeEntrySchema, status_code=201)
def submit_entry(
    payload: TimeEntryCreate,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Submit a time entry for yourself, or for an employee (admin/manager)."""
    entry = TimeEntryService(db).submit_entry(payload, current_user, employee_id=payload.employee_id)
    return TimeEntrySchema.model_validate(entry)


@router.post("/bulk", response_model=BulkSubmissionResult, status_code=201)
def submit_bulk_entry(
    payload: BulkEntryCreate,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Add the same entry for several employees, skipping those with overlaps."""
    result = TimeEntryService(db).submit_bulk_entry(payload, payload.employee_ids, current_user)
    return BulkSubmissionResult(
        accepted=[TimeEntrySchema.model_validate(e) for e in result["accepted"]],
        skipped=[SkippedTarget(**s) for s in result["skipped"]],
        warning=result["warning"],
    )


# ── List ─────────────────────────────────────────────────────────────

@router.get("", response_model=List[TimeEntrySchema])
def list_entries(
    employee_id: Optional[int] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    category: Optional[HourCategory] = None,
    status: Optional[ApprovalStatus] = None,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List your own entries. Admins and managers see any employee, or everyone
    when ``employee_id`` is omitted (e.g. ``?status=pending`` for the approval queue)."""
    entries = TimeEntryService(db).list_entries(
        employee_id,
        current_user,
        start=start,
        end=end,
        category=category,
        status=status,
    )
    return [TimeEntrySchema.model_validate(e) for e in entries]


# ── Delete / Attachments ─────────────────────────────────────────────

@router.delete("/{entry_id}")
def delete_entry(
    entry_id: int,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete an entry and its proof reference."""
    return TimeEntryService(db).delete_entry(entry_id, current_user)


@router.put("/{entry_id}/attachment", response_model=TimeEntrySchema)
def attach_proof(
    entry_id: int,
    proof: ProofReference,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Attach (or replace) the proof-of-work reference of an entry."""
    entry = TimeEntryService(db).attach_proof(entry_id, proof, current_user)
    return TimeEntrySchema.model_validate(entry)


@router.delete("/{entry_id}/attachment", response_model=TimeEntrySchema)
def delete_attachment(
    entry_id: int,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Remove only the proof reference; the entry is kept."""
    entry = TimeEntryService(db).delete_attachment(entry_id, current_user)
    return TimeEntrySchema.model_validate(entry)


# ── Approvals ────────────────────────────────────────────────────────

@router.post("/{entry_id}/approve", response_model=TimeEntrySchema)
def approve_entry(
    entry_id: int,
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    entry = ApprovalService(db).approve_entry(entry_id, current_user)
    return TimeEntrySchema.model_validate(entry)


@router.post("/{entry_id}/reject", response_model=TimeEntrySchema)
def reject_entry(
    entry_id: int,
    body: Optional[StatusChange] = Body(None),
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    reason = body.reason if body else None
    entry = ApprovalService(db).reject_entry(entry_id, current_user, reason)
    return TimeEntrySchema.model_validate(entry)
