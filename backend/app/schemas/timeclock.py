from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from app.models.timeclock import ApprovalStatus, HourCategory
from app.services.categories import normalize_category


class ProofReference(BaseModel):
    url: str
    name: str
    mime_type: str
    size: Optional[int] = Field(None, ge=0)  # bytes, when the uploader reports it


class TimeEntryDraft(BaseModel):
    """A time range not yet stored. Clock fields are ignored for on_leave."""
    date: date
    clock_in: Optional[str] = None
    clock_out: Optional[str] = None
    category: HourCategory = HourCategory.REGULAR
    notes: Optional[str] = None
    proof: Optional[ProofReference] = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, value):
        category = normalize_category(value)
        if category is None:
            raise ValueError(f"Unknown hour category: {value!r}")
        return category


class TimeEntryCreate(TimeEntryDraft):
    # Admins and managers may enter time for someone else
    employee_id: Optional[int] = None


class BulkEntryCreate(TimeEntryDraft):
    employee_ids: List[int] = Field(..., min_length=1)


class TimeEntry(BaseModel):
    id: int
    employee_id: int
    date: date
    clock_in: str
    clock_out: str
    hours: Decimal
    category: HourCategory
    notes: Optional[str]
    proof_url: Optional[str]
    proof_name: Optional[str]
    proof_mime_type: Optional[str]
    status: ApprovalStatus
    approved_by: Optional[int]
    approved_at: Optional[datetime]
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SkippedTarget(BaseModel):
    employee_id: int
    employee_name: str
    reason: str


class BulkSubmissionResult(BaseModel):
    accepted: List[TimeEntry]
    skipped: List[SkippedTarget] = []
    warning: Optional[str] = None


class StatusChange(BaseModel):
    reason: Optional[str] = None
