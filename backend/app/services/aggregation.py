"""Fold time entries and leave requests into a per-employee monthly summary.

Bucket rules:
- regular hours: regular, bonus, wfh
- overtime hours: weekend, overtime
- holiday overtime hours: holiday
- on_leave entries are leave markers and contribute no hours or worked days

Rejected entries and leave requests are ignored everywhere.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

from app.models.timeclock import ApprovalStatus, HourCategory

REGULAR = "regular"
OVERTIME = "overtime"
HOLIDAY_OVERTIME = "holiday_overtime"
LEAVE_MARKER = "leave_marker"

CATEGORY_BUCKETS = {
    HourCategory.REGULAR: REGULAR,
    HourCategory.BONUS: REGULAR,
    HourCategory.WORK_FROM_HOME: REGULAR,
    HourCategory.WEEKEND: OVERTIME,
    HourCategory.OVERTIME: OVERTIME,
    HourCategory.HOLIDAY: HOLIDAY_OVERTIME,
    HourCategory.ON_LEAVE: LEAVE_MARKER,
}

_unclassified = set(HourCategory) - set(CATEGORY_BUCKETS)
if _unclassified:
    raise RuntimeError(f"Hour categories without an aggregation bucket: {sorted(c.value for c in _unclassified)}")

ZERO = Decimal("0")
_CENT = Decimal("0.01")


@dataclass
class PeriodSummary:
    employee_id: Optional[int]
    month: int
    year: int
    days_worked: int = 0
    regular_hours: Decimal = ZERO
    overtime_hours: Decimal = ZERO
    holiday_overtime_hours: Decimal = ZERO
    total_hours: Decimal = ZERO
    leave_days: int = 0
    attendance_rate: Decimal = ZERO
    expected_working_days: int = 0

    def display(self) -> dict:
        """Rounded copy for API responses; the summary itself keeps full precision."""
        def r(value: Decimal) -> float:
            return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))

        return {
            "employee_id": self.employee_id,
            "month": self.month,
            "year": self.year,
            "days_worked": self.days_worked,
            "regular_hours": r(self.regular_hours),
            "overtime_hours": r(self.overtime_hours),
            "holiday_overtime_hours": r(self.holiday_overtime_hours),
            "total_hours": r(self.total_hours),
            "leave_days": self.leave_days,
            "attendance_rate": r(self.attendance_rate),
            "expected_working_days": self.expected_working_days,
        }


def _as_decimal(value) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _in_period(day, month: int, year: int) -> bool:
    return day is not None and day.month == month and day.year == year


def attendance_rate(days_worked: int, expected_working_days: int) -> Decimal:
    """Percentage of expected working days actually worked; 0 when nothing is expected."""
    if expected_working_days <= 0:
        return ZERO
    return Decimal(days_worked) * 100 / Decimal(expected_working_days)


def aggregate(
    entries: Iterable,
    leave_requests: Iterable,
    month: int,
    year: int,
    expected_working_days: int = 0,
    employee_id: Optional[int] = None,
) -> PeriodSummary:
    summary = PeriodSummary(
        employee_id=employee_id,
        month=month,
        year=year,
        expected_working_days=expected_working_days,
    )

    for entry in entries:
        if entry.status == ApprovalStatus.REJECTED or not _in_period(entry.date, month, year):
            continue

        bucket = CATEGORY_BUCKETS[HourCategory(entry.category)]
        if bucket == LEAVE_MARKER:
            continue

        summary.days_worked += 1
        hours = _as_decimal(entry.hours)
        if bucket == REGULAR:
            summary.regular_hours += hours
        elif bucket == OVERTIME:
            summary.overtime_hours += hours
        elif bucket == HOLIDAY_OVERTIME:
            summary.holiday_overtime_hours += hours
        else:
            raise AssertionError(f"Unhandled bucket {bucket!r}")

    for leave in leave_requests:
        if leave.status == ApprovalStatus.REJECTED or not _in_period(leave.start_date, month, year):
            continue
        summary.leave_days += leave.days_count or 0

    summary.total_hours = summary.regular_hours + summary.overtime_hours + summary.holiday_overtime_hours
    summary.attendance_rate = attendance_rate(summary.days_worked, expected_working_days)
    return summary


def hour_totals(entries: Iterable) -> Dict[str, float]:
    """Approved hours per category plus a grand ``total``, rounded for display."""
    totals = {category.value: ZERO for category in HourCategory}
    for entry in entries:
        if entry.status != ApprovalStatus.APPROVED:
            continue
        totals[HourCategory(entry.category).value] += _as_decimal(entry.hours)
    totals["total"] = sum(totals.values(), ZERO)
    return {k: float(v.quantize(_CENT, rounding=ROUND_HALF_UP)) for k, v in totals.items()}
