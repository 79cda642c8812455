"""Error kinds raised by the attendance services.

Every error carries the HTTP status it maps to and a ``detail`` payload, so the
API layer can render them without per-route try/except blocks.
"""
from datetime import date
from typing import Any, List, Optional


class AttendanceError(Exception):
    status_code = 400

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    @property
    def detail(self):
        if not self.context:
            return self.message
        return {"message": self.message, **self.context}


class ValidationError(AttendanceError):
    """Malformed time range, end before start, missing required field."""
    status_code = 422


class NotFoundError(AttendanceError):
    status_code = 404


class ForbiddenError(AttendanceError):
    status_code = 403


class ConflictError(AttendanceError):
    """An overlapping entry already exists, or a record changed underneath us."""
    status_code = 409

    def __init__(
        self,
        message: str,
        employees: Optional[List[str]] = None,
        category: Optional[str] = None,
        work_date: Optional[date] = None,
        **context: Any,
    ):
        if employees is not None:
            context["employees"] = employees
        if category is not None:
            context["category"] = category
        if work_date is not None:
            context["date"] = work_date.isoformat()
        super().__init__(message, **context)
        self.employees = employees or []
        self.category = category
        self.work_date = work_date


class AllConflictingError(ConflictError):
    """Bulk submission where every target employee conflicted."""


class TransientStoreError(AttendanceError):
    """Retryable I/O failure (timeout, dropped connection) from the record store."""
    status_code = 503
