"""Split a submission's target employees into accepted and conflicting groups.

Pure: the caller loads each target's existing entries for the candidate date,
calls ``partition`` and inserts only for ``accepted``.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence

from app.models.timeclock import ApprovalStatus, HourCategory
from app.services.overlap import TimeRange, entry_conflicts


@dataclass
class PartitionResult:
    accepted: List[int] = field(default_factory=list)
    conflicting: List[int] = field(default_factory=list)


def _relevant(entries: Iterable, candidate: TimeRange) -> List:
    return [
        e for e in entries
        if e.date == candidate.date
        and e.category == candidate.category
        and e.status != ApprovalStatus.REJECTED
    ]


def target_conflicts(candidate: TimeRange, existing: Iterable, fail_closed: bool = False) -> bool:
    """True when ``candidate`` collides with any of one employee's existing entries."""
    relevant = _relevant(existing, candidate)
    if candidate.category == HourCategory.ON_LEAVE:
        # at most one leave marker per employee per day
        return bool(relevant)
    return any(entry_conflicts(e, candidate, fail_closed=fail_closed) for e in relevant)


def partition(
    candidate: TimeRange,
    targets: Sequence[int],
    existing_by_employee: Dict[int, List],
    fail_closed: bool = False,
) -> PartitionResult:
    """Disjoint, exhaustive split of ``targets``; order follows ``targets``."""
    result = PartitionResult()
    seen = set()
    for employee_id in targets:
        if employee_id in seen:
            continue
        seen.add(employee_id)

        existing = existing_by_employee.get(employee_id, [])
        if target_conflicts(candidate, existing, fail_closed=fail_closed):
            result.conflicting.append(employee_id)
        else:
            result.accepted.append(employee_id)
    return result
