from datetime import date

import pytest

from app.core.errors import ForbiddenError, NotFoundError, ValidationError
from app.models.leave import LeaveType
from app.models.timeclock import ApprovalStatus, HourCategory
from app.schemas.leave import LeaveRequestCreate
from app.services.approval import ApprovalService
from app.services.leave import LeaveService, inclusive_days
from app.services.summary import DashboardCache, SummaryService, month_bounds, period_window


def leave(start, end, **extra):
    return LeaveRequestCreate(leave_type=LeaveType.VACATION, start_date=start, end_date=end, **extra)


# ── Leave requests ───────────────────────────────────────────────────

def test_inclusive_days_counts_both_ends():
    assert inclusive_days(date(2025, 6, 1), date(2025, 6, 5)) == 5
    assert inclusive_days(date(2025, 6, 1), date(2025, 6, 1)) == 1


def test_leave_request_starts_pending(db, staff):
    request = LeaveService(db).create_leave_request(leave(date(2025, 6, 1), date(2025, 6, 5)), staff["a"])
    assert request.status == ApprovalStatus.PENDING
    assert request.days_count == 5
    assert request.employee_id == staff["a"].id


def test_leave_end_before_start_is_rejected(db, staff):
    with pytest.raises(ValidationError):
        LeaveService(db).create_leave_request(leave(date(2025, 6, 5), date(2025, 6, 1)), staff["a"])


def test_leave_on_behalf_needs_staff(db, staff):
    service = LeaveService(db)
    with pytest.raises(ForbiddenError):
        service.create_leave_request(leave(date(2025, 6, 1), date(2025, 6, 2), employee_id=staff["b"].id), staff["a"])

    request = service.create_leave_request(
        leave(date(2025, 6, 1), date(2025, 6, 2), employee_id=staff["b"].id), staff["manager"],
    )
    assert request.employee_id == staff["b"].id


def test_list_leave_requests_filters_by_year_and_status(db, staff, make_leave):
    make_leave(staff["a"], date(2024, 12, 30), date(2024, 12, 31))
    make_leave(staff["a"], date(2025, 3, 3), date(2025, 3, 3), status=ApprovalStatus.APPROVED)
    make_leave(staff["a"], date(2025, 8, 1), date(2025, 8, 2))

    service = LeaveService(db)
    assert len(service.list_leave_requests(staff["a"].id, staff["a"], year=2025)) == 2
    approved = service.list_leave_requests(staff["a"].id, staff["a"], status=ApprovalStatus.APPROVED)
    assert [r.start_date for r in approved] == [date(2025, 3, 3)]

    with pytest.raises(ForbiddenError):
        service.list_leave_requests(staff["a"].id, staff["b"])


# ── Period summaries ─────────────────────────────────────────────────

def test_month_bounds():
    assert month_bounds(2, 2024) == (date(2024, 2, 1), date(2024, 2, 29))
    with pytest.raises(ValidationError):
        month_bounds(13, 2025)


def test_leave_days_follow_the_request_lifecycle(db, staff):
    alice = staff["a"]
    request = LeaveService(db).create_leave_request(leave(date(2025, 6, 1), date(2025, 6, 5)), alice)
    summaries = SummaryService(db)

    assert summaries.get_period_summary(alice.id, 6, 2025).leave_days == 5

    ApprovalService(db).reject_leave(request.id, staff["manager"], "Team offsite")
    assert summaries.get_period_summary(alice.id, 6, 2025).leave_days == 0


def test_summary_is_recomputed_from_entries(db, staff, make_entry):
    bob = staff["b"]
    make_entry(bob, date(2025, 6, 2), "09:00:00", "17:00:00", hours=8)
    make_entry(bob, date(2025, 6, 3), "09:00:00", "17:00:00", hours=8)
    make_entry(bob, date(2025, 6, 3), "18:00:00", "20:00:00", category=HourCategory.OVERTIME, hours=2)
    make_entry(bob, date(2025, 6, 4), "09:00:00", "13:00:00", status=ApprovalStatus.REJECTED, hours=4)
    make_entry(bob, date(2025, 7, 1), "09:00:00", "17:00:00", hours=8)

    summary = SummaryService(db).get_period_summary(bob.id, 6, 2025, expected_working_days=20)
    shown = summary.display()
    assert shown["regular_hours"] == 16.0
    assert shown["overtime_hours"] == 2.0
    assert shown["total_hours"] == 18.0
    assert shown["days_worked"] == 3
    assert shown["attendance_rate"] == 15.0


def test_summary_defaults_to_configured_working_days(db, staff, make_entry):
    from app.core.config import settings

    make_entry(staff["c"], date(2025, 6, 2), "09:00:00", "17:00:00", hours=8)
    summary = SummaryService(db).get_period_summary(staff["c"].id, 6, 2025)
    assert summary.expected_working_days == settings.EXPECTED_WORKING_DAYS


def test_summary_for_unknown_employee(db, staff):
    with pytest.raises(NotFoundError):
        SummaryService(db).get_period_summary(999, 6, 2025)


def test_employee_can_only_see_own_summary(db, staff):
    service = SummaryService(db)
    assert service.get_summary_for(staff["a"].id, 6, 2025, staff["a"]).employee_id == staff["a"].id
    with pytest.raises(ForbiddenError):
        service.get_summary_for(staff["b"].id, 6, 2025, staff["a"])
    assert service.get_summary_for(staff["b"].id, 6, 2025, staff["manager"]).employee_id == staff["b"].id


def test_all_summaries_sorted_by_total_hours(db, staff, make_entry):
    make_entry(staff["c"], date(2025, 6, 2), "09:00:00", "12:00:00", hours=3)
    make_entry(staff["d"], date(2025, 6, 2), "09:00:00", "17:00:00", hours=8)

    rows = SummaryService(db).get_all_summaries(6, 2025)
    assert [r["name"] for r in rows[:2]] == ["Dan", "Carol"]
    assert len(rows) == len(staff)


def test_pending_counts(db, staff, make_entry, make_leave):
    make_entry(staff["a"], date(2025, 6, 2), "09:00:00", "17:00:00", status=ApprovalStatus.PENDING)
    make_entry(staff["b"], date(2025, 6, 2), "09:00:00", "17:00:00")
    make_leave(staff["a"], date(2025, 6, 9), date(2025, 6, 10))

    assert SummaryService(db).pending_counts() == {"time_entries": 1, "leave_requests": 1, "total": 2}


# ── Dashboard cache ──────────────────────────────────────────────────

def test_dashboard_builds_snapshot_on_first_use(db, staff, make_leave):
    from app.core.database import SessionLocal

    make_leave(staff["a"], date(2025, 6, 9), date(2025, 6, 10))
    cache = DashboardCache(SessionLocal, start=False)
    try:
        snapshot = cache.snapshot()
        assert snapshot["pending"]["leave_requests"] == 1
        assert len(snapshot["employees"]) == len(staff)

        make_leave(staff["b"], date(2025, 6, 11), date(2025, 6, 11))
        assert cache.snapshot()["pending"]["leave_requests"] == 1
        assert cache.refresh()["pending"]["leave_requests"] == 2
    finally:
        cache.stop()


def test_month_bounds_rejects_month_zero_and_bad_year():
    with pytest.raises(ValidationError):
        month_bounds(0, 2025)
    with pytest.raises(ValidationError):
        month_bounds(6, 0)


def test_staff_list_leave_requests_for_everyone(db, staff, make_leave):
    make_leave(staff["a"], date(2025, 6, 2), date(2025, 6, 2))
    make_leave(staff["b"], date(2025, 6, 3), date(2025, 6, 3), status=ApprovalStatus.APPROVED)

    service = LeaveService(db)
    everyone = service.list_leave_requests(None, staff["manager"])
    assert {r.employee_id for r in everyone} == {staff["a"].id, staff["b"].id}

    pending = service.list_leave_requests(None, staff["admin"], status=ApprovalStatus.PENDING)
    assert [r.employee_id for r in pending] == [staff["a"].id]

    assert [r.employee_id for r in service.list_leave_requests(None, staff["b"])] == [staff["b"].id]


# ── Hour totals ──────────────────────────────────────────────────────

WEDNESDAY = date(2025, 6, 11)


def test_period_window():
    assert period_window("week", WEDNESDAY) == (date(2025, 6, 8), date(2025, 6, 14))
    assert period_window("week", date(2025, 6, 8)) == (date(2025, 6, 8), date(2025, 6, 14))
    assert period_window("month", WEDNESDAY) == (date(2025, 6, 1), date(2025, 6, 30))
    with pytest.raises(ValidationError):
        period_window("fortnight", WEDNESDAY)


def test_hour_totals_count_approved_hours_in_the_window(db, staff, make_entry):
    alice = staff["a"]
    make_entry(alice, date(2025, 6, 8), "09:00:00", "17:00:00", hours=8)
    make_entry(alice, date(2025, 6, 10), "09:00:00", "13:00:00", category=HourCategory.HOLIDAY, hours=4)
    make_entry(alice, date(2025, 6, 11), "09:00:00", "12:00:00", status=ApprovalStatus.PENDING, hours=3)
    make_entry(alice, date(2025, 6, 7), "09:00:00", "17:00:00", hours=8)
    make_entry(alice, date(2025, 6, 15), "09:00:00", "17:00:00", hours=8)

    service = SummaryService(db)
    week = service.get_hour_totals(alice.id, alice, "week", today=WEDNESDAY)
    assert week["start"] == "2025-06-08"
    assert week["totals"]["regular"] == 8.0
    assert week["totals"]["holiday"] == 4.0
    assert week["totals"]["total"] == 12.0

    month = service.get_hour_totals(alice.id, staff["manager"], "month", today=WEDNESDAY)
    assert month["totals"]["regular"] == 24.0
    assert month["totals"]["total"] == 28.0

    with pytest.raises(ForbiddenError):
        service.get_hour_totals(alice.id, staff["b"], "week", today=WEDNESDAY)
    with pytest.raises(NotFoundError):
        service.get_hour_totals(999, staff["admin"], "week", today=WEDNESDAY)
