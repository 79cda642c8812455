"""Summary API: per-employee period summaries, team overview, approvals dashboard."""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.security import get_current_user, require_staff
from app.models.employee import Employee
from app.services.summary import SummaryService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["summary"])


def _period(month: Optional[int], year: Optional[int]):
    now = datetime.utcnow()
    return (
        month if month is not None else now.month,
        year if year is not None else now.year,
    )


@router.get("/summary")
def all_employees_summary(
    month: Optional[int] = None,
    year: Optional[int] = None,
    expected_working_days: Optional[int] = Query(None, ge=0),
    current_user: Employee = Depends(require_staff),
    db: Session = Depends(get_db),
):
    """Summaries for every active employee (admin/manager)."""
    m, y = _period(month, year)
    return {
        "period": f"{y:04d}-{m:02d}",
        "employees": SummaryService(db).get_all_summaries(m, y, expected_working_days),
    }


@router.get("/summary/{employee_id}")
def period_summary(
    employee_id: int,
    month: Optional[int] = None,
    year: Optional[int] = None,
    expected_working_days: Optional[int] = Query(None, ge=0),
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Monthly summary for one employee, recomputed from entries and leave."""
    m, y = _period(month, year)
    summary = SummaryService(db).get_summary_for(employee_id, m, y, current_user, expected_working_days)
    return summary.display()


@router.get("/summary/{employee_id}/hours")
def hour_totals(
    employee_id: int,
    period: str = "week",
    current_user: Employee = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Approved hours per category for the current week or month."""
    return SummaryService(db).get_hour_totals(employee_id, current_user, period=period)


@router.get("/approvals/pending-count")
def pending_approvals_count(
    current_user: Employee = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return SummaryService(db).pending_counts()


# ── Dashboard (cached, refreshed in the background) ─────────────────

@router.get("/dashboard")
def dashboard(request: Request, current_user: Employee = Depends(require_staff)):
    return request.app.state.dashboard.snapshot()


@router.post("/dashboard/refresh")
def refresh_dashboard(request: Request, current_user: Employee = Depends(require_staff)):
    """Rebuild the dashboard snapshot now."""
    logger.info(f"Dashboard refresh requested by {current_user.id}")
    return request.app.state.dashboard.refresh()
