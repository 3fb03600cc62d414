"""Filtering and sorting of project, feedback and deadline collections.

Records may be model instances or plain dicts; both are read through
``_field``. Input order is preserved unless a function sorts explicitly.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from utils.dates import parse_datetime

ALL = "all"
ACTIVE_PROJECT_STATUSES = frozenset({"in_progress", "needs_review"})
DEFAULT_UPCOMING_DAYS = 7


def _field(record: Any, name: str) -> Any:
    if isinstance(record, dict):
        return record.get(name)
    return getattr(record, name, None)


def _filter_by(records: Iterable[Any], name: str, value: Optional[str]) -> list[Any]:
    items = list(records)
    if not value or value == ALL:
        return items
    return [record for record in items if _field(record, name) == value]


def filter_by_status(records: Iterable[Any], status: Optional[str]) -> list[Any]:
    """Records whose status equals ``status``; ``"all"`` or empty keeps everything."""
    return _filter_by(records, "status", status)


def filter_by_priority(records: Iterable[Any], priority: Optional[str]) -> list[Any]:
    return _filter_by(records, "priority", priority)


def sort_by_due_date(records: Iterable[Any]) -> list[Any]:
    """Stable ascending sort on due_date; undated records go last."""

    def _key(record: Any):
        due = parse_datetime(_field(record, "due_date"))
        return (due is None, due or datetime.min)

    return sorted(records, key=_key)


def upcoming_deadlines(
    deadlines: Iterable[Any],
    now: Optional[datetime] = None,
    days: int = DEFAULT_UPCOMING_DAYS,
) -> list[Any]:
    """Deadlines due between ``now`` and ``now + days``, both bounds inclusive."""
    now = parse_datetime(now) or datetime.utcnow()
    horizon = now + timedelta(days=days)
    selected = []
    for deadline in deadlines:
        due = parse_datetime(_field(deadline, "due_date"))
        if due is not None and now <= due <= horizon:
            selected.append(deadline)
    return selected


def pending_upcoming_deadlines(deadlines: Iterable[Any], now: Optional[datetime] = None) -> list[Any]:
    """Pending deadlines that are not yet past, soonest first."""
    now = parse_datetime(now) or datetime.utcnow()
    selected = []
    for deadline in deadlines:
        if _field(deadline, "status") != "pending":
            continue
        due = parse_datetime(_field(deadline, "due_date"))
        if due is not None and due >= now:
            selected.append(deadline)
    return sort_by_due_date(selected)


def pending_feedback(items: Iterable[Any]) -> list[Any]:
    return filter_by_status(items, "pending")


def active_projects(projects: Iterable[Any]) -> list[Any]:
    return [project for project in projects if _field(project, "status") in ACTIVE_PROJECT_STATUSES]


def dashboard_stats(
    projects: Sequence[Any],
    feedback: Sequence[Any],
    deadlines: Sequence[Any],
    now: Optional[datetime] = None,
    days: int = DEFAULT_UPCOMING_DAYS,
) -> dict[str, int]:
    """Counts shown on the dashboard tiles."""
    return {
        "total_projects": len(projects),
        "active_projects": len(active_projects(projects)),
        "completed_projects": len(filter_by_status(projects, "completed")),
        "pending_feedback": len(pending_feedback(feedback)),
        "upcoming_deadlines": len(upcoming_deadlines(deadlines, now, days)),
    }
