"""Due-date risk evaluation for projects, deadlines and workflow steps.

``now`` is always an argument (defaulting to the current UTC time) so the
results are reproducible for a fixed (due date, now) pair. Dates are compared
by calendar day: both sides are truncated to midnight before subtracting.
"""
from __future__ import annotations

import math
from datetime import datetime
from typing import Any, NamedTuple, Optional

from services.progress_service import round_half_up
from services.status_service import NEUTRAL_COLORS, StatusColors
from utils.dates import parse_datetime, to_calendar_day

ICON_CLOCK = "ri-time-line"
ICON_WARNING = "ri-error-warning-line"
ICON_DONE = "ri-checkbox-circle-line"

COLOR_DANGER = "text-danger"
COLOR_WARNING = "text-warning"
COLOR_NEUTRAL = "text-slate-400"
COLOR_DONE = "text-primary"

AT_RISK_DAYS = 3


class DueDateInfo(NamedTuple):
    text: str
    color: str
    icon: str
    level: str
    risk: str

    def to_dict(self) -> dict[str, str]:
        return self._asdict()


class ScheduleBadge(NamedTuple):
    label: str
    risk: str
    icon: str

    def to_dict(self) -> dict[str, str]:
        return self._asdict()


def _now(now: Optional[datetime]) -> datetime:
    return parse_datetime(now) or datetime.utcnow()


def calculate_days_until(due_date: Any, now: Optional[datetime] = None) -> int:
    """Whole calendar days from ``now`` until ``due_date``; negative when past.

    Missing or unparseable dates yield 0.
    """
    due_day = to_calendar_day(due_date)
    if due_day is None:
        return 0
    return (due_day - _now(now).date()).days


def _classify(days: int, tomorrow_text: str, future_text: str) -> DueDateInfo:
    if days < 0:
        return DueDateInfo(f"Overdue by {abs(days)} days", COLOR_DANGER, ICON_WARNING, "danger", "overdue")
    if days == 0:
        return DueDateInfo("Due today", COLOR_DANGER, ICON_CLOCK, "danger", "due_soon")
    if days == 1:
        return DueDateInfo(tomorrow_text, COLOR_DANGER, ICON_CLOCK, "danger", "due_soon")
    text = future_text.format(days=days)
    if days <= AT_RISK_DAYS:
        return DueDateInfo(text, COLOR_WARNING, ICON_CLOCK, "warning", "at_risk")
    return DueDateInfo(text, COLOR_NEUTRAL, ICON_CLOCK, "neutral", "on_track")


def get_due_date_info(due_date: Any, now: Optional[datetime] = None) -> DueDateInfo:
    if parse_datetime(due_date) is None:
        return DueDateInfo("No date set", COLOR_NEUTRAL, ICON_CLOCK, "neutral", "no_date")
    return _classify(calculate_days_until(due_date, now), "Tomorrow", "In {days} days")


def get_project_due_info(status: Any, due_date: Any, now: Optional[datetime] = None) -> DueDateInfo:
    """Due-date text as shown on a project card; completed projects short-circuit."""
    if status == "completed":
        return DueDateInfo("Completed", COLOR_DONE, ICON_DONE, "primary", "completed")
    if parse_datetime(due_date) is None:
        return DueDateInfo("No date set", COLOR_NEUTRAL, ICON_CLOCK, "neutral", "no_date")
    return _classify(calculate_days_until(due_date, now), "Due tomorrow", "Due in {days} days")


def get_schedule_badge(status: Any, due_date: Any, now: Optional[datetime] = None) -> ScheduleBadge:
    if status == "completed":
        return ScheduleBadge("Completed", "completed", "check-circle")
    if parse_datetime(due_date) is not None:
        days = calculate_days_until(due_date, now)
        if days < 0:
            return ScheduleBadge("Behind Schedule", "behind", "alert-circle")
        if days <= AT_RISK_DAYS:
            return ScheduleBadge("At Risk", "at_risk", "alert-triangle")
    return ScheduleBadge("On Schedule", "on_track", "clock")


def _ceil_days(delta_seconds: float) -> int:
    return math.ceil(delta_seconds / 86400)


def get_talent_progress_status(
    total_pages: int,
    completed_pages: int,
    pages_per_week: int,
    start_date: Any,
    due_date: Any,
    now: Optional[datetime] = None,
) -> str:
    """Return ``on_time``, ``one_day_late`` or ``behind_schedule`` for a talent's pace.

    The expected page count assumes a five-day working week. Missing dates or
    a non-positive weekly rate are treated as on time.
    """
    start = parse_datetime(start_date)
    due = parse_datetime(due_date)
    if start is None or due is None:
        return "on_time"
    try:
        pages_per_day = float(pages_per_week) / 5
        total = float(total_pages or 0)
        completed = float(completed_pages or 0)
    except (TypeError, ValueError):
        return "on_time"
    if pages_per_day <= 0:
        return "on_time"

    days_passed = _ceil_days((_now(now) - start).total_seconds())
    working_days_passed = max(round_half_up(days_passed * 5 / 7), 0)
    expected_pages = min(total, math.floor(working_days_passed * pages_per_day))
    days_behind = math.ceil((expected_pages - completed) / pages_per_day)

    if days_behind <= 0:
        return "on_time"
    if days_behind == 1:
        return "one_day_late"
    return "behind_schedule"


TALENT_PROGRESS_COLORS = {
    "on_time": StatusColors("bg-success", "text-success", "bg-success/10"),
    "one_day_late": StatusColors("bg-warning", "text-warning", "bg-warning/10"),
    "behind_schedule": StatusColors("bg-danger", "text-danger", "bg-danger/10"),
}


def get_talent_progress_color(status: Any) -> StatusColors:
    if not isinstance(status, str):
        return NEUTRAL_COLORS
    return TALENT_PROGRESS_COLORS.get(status, NEUTRAL_COLORS)
