"""Interval overlap detection for time entries.

Two ranges conflict when they share a date and hour category and their
half-open ``[start, end)`` intervals intersect, so back-to-back entries
(08:00-10:00 then 10:00-12:00) are fine. ``on_leave`` markers never conflict
here; duplicate leave markers are caught by the partitioner instead.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from app.models.timeclock import ApprovalStatus, HourCategory

# HH:MM, HH:MM:SS, HH:MM:SS.ffffff, optionally followed by Z or +HH[:MM] / -HH[:MM]
_TIME_RE = re.compile(
    r"^\s*(\d{1,2}):(\d{2})(?::(\d{2})(?:\.\d+)?)?\s*(?:Z|[+-]\d{2}(?::?\d{2})?)?\s*$",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class TimeRange:
    date: date
    category: HourCategory
    start_seconds: int
    end_seconds: int


def parse_time_of_day(value) -> Optional[int]:
    """Seconds since midnight for a time-of-day string, or None if it does not parse.

    The timezone suffix, when present, is accepted and ignored: entries are
    wall-clock times on their own calendar date.
    """
    if value is None:
        return None
    if hasattr(value, "hour") and hasattr(value, "minute"):
        return value.hour * 3600 + value.minute * 60 + getattr(value, "second", 0)

    match = _TIME_RE.match(str(value))
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    seconds = int(match.group(3) or 0)
    if hours > 23 or minutes > 59 or seconds > 59:
        return None
    return hours * 3600 + minutes * 60 + seconds


def format_time_of_day(seconds: int) -> str:
    return f"{seconds // 3600:02d}:{seconds % 3600 // 60:02d}:{seconds % 60:02d}"


def time_range(work_date: date, category: HourCategory, clock_in, clock_out) -> Optional[TimeRange]:
    """Build a TimeRange, or None when either clock value fails to parse."""
    if category == HourCategory.ON_LEAVE:
        return TimeRange(work_date, category, 0, 0)

    start = parse_time_of_day(clock_in)
    end = parse_time_of_day(clock_out)
    if start is None or end is None:
        return None
    return TimeRange(work_date, category, start, end)


def overlaps(existing: TimeRange, candidate: TimeRange) -> bool:
    if existing.date != candidate.date or existing.category != candidate.category:
        return False
    if candidate.category == HourCategory.ON_LEAVE:
        return False
    return candidate.start_seconds < existing.end_seconds and candidate.end_seconds > existing.start_seconds


def entry_conflicts(existing_entry, candidate: TimeRange, fail_closed: bool = False) -> bool:
    """Check a stored entry (anything with date/category/clock_in/clock_out/status) against a candidate.

    Rejected entries never conflict. When the stored clock values do not parse
    the pair is skipped unless ``fail_closed`` is set.
    """
    if existing_entry.status == ApprovalStatus.REJECTED:
        return False

    existing = time_range(
        existing_entry.date, existing_entry.category,
        existing_entry.clock_in, existing_entry.clock_out,
    )
    if existing is None:
        return fail_closed and existing_entry.date == candidate.date \
            and existing_entry.category == candidate.category
    return overlaps(existing, candidate)
