from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from app.models.timeclock import ApprovalStatus, HourCategory
from app.services.aggregation import CATEGORY_BUCKETS, aggregate, hour_totals


def entry(category, hours, day=date(2025, 6, 10), status=ApprovalStatus.APPROVED):
    return SimpleNamespace(category=category, hours=Decimal(str(hours)), date=day, status=status)


def leave(start, end, status=ApprovalStatus.PENDING):
    return SimpleNamespace(start_date=start, end_date=end, days_count=(end - start).days + 1, status=status)


def test_empty_inputs_give_all_zero_summary():
    summary = aggregate([], [], 6, 2025, expected_working_days=22)
    assert summary.days_worked == 0
    assert summary.regular_hours == 0
    assert summary.overtime_hours == 0
    assert summary.holiday_overtime_hours == 0
    assert summary.total_hours == 0
    assert summary.leave_days == 0
    assert summary.attendance_rate == 0


def test_hours_land_in_their_buckets():
    entries = [
        entry(HourCategory.REGULAR, 8),
        entry(HourCategory.BONUS, 1.5),
        entry(HourCategory.WORK_FROM_HOME, 4),
        entry(HourCategory.WEEKEND, 5),
        entry(HourCategory.OVERTIME, 2.25),
        entry(HourCategory.HOLIDAY, 8),
        entry(HourCategory.ON_LEAVE, 0),
    ]
    summary = aggregate(entries, [], 6, 2025)
    assert summary.regular_hours == Decimal("13.5")
    assert summary.overtime_hours == Decimal("7.25")
    assert summary.holiday_overtime_hours == Decimal("8")
    assert summary.total_hours == summary.regular_hours + summary.overtime_hours + summary.holiday_overtime_hours
    assert summary.days_worked == 6


def test_rejected_records_are_excluded_everywhere():
    entries = [
        entry(HourCategory.REGULAR, 8),
        entry(HourCategory.OVERTIME, 3, status=ApprovalStatus.REJECTED),
    ]
    leaves = [leave(date(2025, 6, 2), date(2025, 6, 3), status=ApprovalStatus.REJECTED)]
    summary = aggregate(entries, leaves, 6, 2025, expected_working_days=20)
    assert summary.days_worked == 1
    assert summary.overtime_hours == 0
    assert summary.total_hours == Decimal("8")
    assert summary.leave_days == 0


def test_leave_days_count_requests_starting_in_month():
    leaves = [
        leave(date(2025, 6, 1), date(2025, 6, 5)),
        leave(date(2025, 6, 30), date(2025, 7, 2), status=ApprovalStatus.APPROVED),
        leave(date(2025, 5, 30), date(2025, 6, 2)),
        leave(date(2024, 6, 3), date(2024, 6, 3)),
    ]
    summary = aggregate([], leaves, 6, 2025)
    assert summary.leave_days == 5 + 3


def test_entries_outside_the_month_are_ignored():
    summary = aggregate([entry(HourCategory.REGULAR, 8, day=date(2025, 7, 1))], [], 6, 2025)
    assert summary.days_worked == 0


def test_attendance_rate_uses_configured_denominator():
    entries = [entry(HourCategory.REGULAR, 8, day=date(2025, 6, d)) for d in range(2, 13)]
    summary = aggregate(entries, [], 6, 2025, expected_working_days=22)
    assert summary.attendance_rate == Decimal("50")
    assert aggregate(entries, [], 6, 2025, expected_working_days=0).attendance_rate == 0


def test_display_rounds_without_touching_stored_values():
    entries = [entry(HourCategory.REGULAR, "0.333"), entry(HourCategory.REGULAR, "0.333")]
    summary = aggregate(entries, [], 6, 2025, expected_working_days=3)
    assert summary.regular_hours == Decimal("0.666")
    shown = summary.display()
    assert shown["regular_hours"] == 0.67
    assert shown["attendance_rate"] == 66.67


def test_every_category_has_a_bucket():
    assert set(CATEGORY_BUCKETS) == set(HourCategory)


def test_hour_totals_only_count_approved_entries():
    totals = hour_totals([
        entry(HourCategory.REGULAR, 7.5),
        entry(HourCategory.REGULAR, "0.333"),
        entry(HourCategory.WEEKEND, 4),
        entry(HourCategory.BONUS, 2, status=ApprovalStatus.PENDING),
        entry(HourCategory.HOLIDAY, 8, status=ApprovalStatus.REJECTED),
    ])
    assert totals["regular"] == 7.83
    assert totals["weekend"] == 4.0
    assert totals["bonus"] == 0.0
    assert totals["holiday"] == 0.0
    assert totals["total"] == 11.83
    assert set(totals) == {c.value for c in HourCategory} | {"total"}
