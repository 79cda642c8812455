"""Period summaries and the cached approvals dashboard."""
import calendar
import logging
import threading
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.employee import Employee
from app.models.timeclock import ApprovalStatus
from app.services.aggregation import PeriodSummary, aggregate, hour_totals
from app.services.refresh import RefreshCoordinator, register_for_refresh
from app.services.store import RecordStore
from app.services.timeclock import is_staff

logger = logging.getLogger(__name__)


def month_bounds(month: int, year: int):
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", month=month)
    if not 1 <= year <= 9999:
        raise ValidationError("Year is out of range", year=year)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def period_window(period: str, today: date):
    """Current calendar week (Sunday to Saturday) or month containing ``today``."""
    if period == "week":
        start = today - timedelta(days=(today.weekday() + 1) % 7)
        return start, start + timedelta(days=6)
    if period == "month":
        return month_bounds(today.month, today.year)
    raise ValidationError("Period must be 'week' or 'month'", period=period)


class SummaryService:

    def __init__(self, db: Session):
        self.db = db
        self.store = RecordStore(db)

    def get_period_summary(
        self,
        employee_id: int,
        month: int,
        year: int,
        expected_working_days: Optional[int] = None,
    ) -> PeriodSummary:
        start, end = month_bounds(month, year)

        employee = self.store.get_employee(employee_id)
        if employee is None:
            raise NotFoundError(f"Employee {employee_id} not found")

        entries = self.store.find_entries(employee_id, start, end)
        leave_requests = self.store.find_leave_requests(employee_id, year=year)

        if expected_working_days is None:
            expected_working_days = settings.EXPECTED_WORKING_DAYS

        return aggregate(
            entries,
            leave_requests,
            month,
            year,
            expected_working_days=expected_working_days,
            employee_id=employee_id,
        )

    def get_summary_for(self, employee_id: int, month: int, year: int, actor: Employee,
                        expected_working_days: Optional[int] = None) -> PeriodSummary:
        if employee_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You can only view your own summary")
        return self.get_period_summary(employee_id, month, year, expected_working_days)

    def get_all_summaries(self, month: int, year: int,
                          expected_working_days: Optional[int] = None) -> List[dict]:
        month_bounds(month, year)
        results = []
        for employee in self.store.list_employees():
            summary = self.get_period_summary(employee.id, month, year, expected_working_days).display()
            summary["name"] = employee.name
            summary["role"] = employee.role.value
            results.append(summary)
        results.sort(key=lambda s: s["total_hours"], reverse=True)
        return results

    def get_hour_totals(self, employee_id: int, actor: Employee, period: str = "week",
                        today: Optional[date] = None) -> dict:
        """Approved hours per category for the current week or month."""
        if employee_id != actor.id and not is_staff(actor):
            raise ForbiddenError("You can only view your own hours")
        start, end = period_window(period, today or datetime.utcnow().date())
        if self.store.get_employee(employee_id) is None:
            raise NotFoundError(f"Employee {employee_id} not found")

        entries = self.store.find_entries(employee_id, start, end, status=ApprovalStatus.APPROVED)
        return {
            "employee_id": employee_id,
            "period": period,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "totals": hour_totals(entries),
        }

    def pending_counts(self) -> dict:
        return self.store.count_pending()


class DashboardCache:
    """Pending-approval counts and current-month summaries, refreshed in the background."""

    def __init__(self, session_factory: Callable[[], Session], stale_time: float = None,
                 start: bool = True):
        self._session_factory = session_factory
        self._lock = threading.Lock()
        self._snapshot: Optional[dict] = None
        self.coordinator: RefreshCoordinator = register_for_refresh(
            self.rebuild,
            {
                "stale_time": stale_time or settings.DASHBOARD_STALE_SECONDS,
                "start": start,
            },
        )

    def rebuild(self):
        today = datetime.utcnow().date()
        db = self._session_factory()
        try:
            service = SummaryService(db)
            snapshot = {
                "period": f"{today.year:04d}-{today.month:02d}",
                "pending": service.pending_counts(),
                "employees": service.get_all_summaries(today.month, today.year),
                "generated_at": datetime.utcnow().isoformat(),
            }
        finally:
            db.close()
        with self._lock:
            self._snapshot = snapshot
        logger.info(f"Dashboard snapshot rebuilt for {snapshot['period']}")

    def snapshot(self) -> dict:
        with self._lock:
            current = self._snapshot
        if current is None:
            self.coordinator.manual_refresh()
            with self._lock:
                current = self._snapshot
        return current

    def refresh(self) -> dict:
        self.coordinator.manual_refresh()
        with self._lock:
            return self._snapshot

    def stop(self):
        self.coordinator.stop()
