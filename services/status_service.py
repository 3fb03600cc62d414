"""Display semantics for project statuses and feedback priorities.

Every function here is total: unknown, empty or non-string input degrades to
the neutral palette and never raises.
"""
from __future__ import annotations

from typing import Any, NamedTuple


class StatusColors(NamedTuple):
    bg: str
    text: str
    bg_light: str

    def to_dict(self) -> dict[str, str]:
        return {"bg": self.bg, "text": self.text, "bg_light": self.bg_light}


class Classification(NamedTuple):
    colors: StatusColors
    label: str

    def to_dict(self) -> dict[str, Any]:
        return {"colors": self.colors.to_dict(), "label": self.label}


def _palette(tone: str) -> StatusColors:
    return StatusColors(f"bg-{tone}", f"text-{tone}", f"bg-{tone}/10")


NEUTRAL_COLORS = StatusColors("bg-slate-500", "text-slate-500", "bg-slate-100")

STATUS_COLORS = {
    "in_progress": _palette("success"),
    "needs_review": _palette("warning"),
    "delayed": _palette("danger"),
    "completed": _palette("primary"),
}

PRIORITY_COLORS = {
    "high": _palette("danger"),
    "medium": _palette("warning"),
    "low": _palette("success"),
}

STATUS_LABELS = {
    "needs_review": "Needs Review",
    "in_progress": "In Progress",
    "completed": "Completed",
    "delayed": "Delayed",
}


def _lookup(table: dict[str, StatusColors], value: Any) -> StatusColors:
    if not isinstance(value, str):
        return NEUTRAL_COLORS
    return table.get(value, NEUTRAL_COLORS)


def get_status_color(status: Any) -> StatusColors:
    return _lookup(STATUS_COLORS, status)


def get_priority_color(priority: Any) -> StatusColors:
    return _lookup(PRIORITY_COLORS, priority)


def _title_words(value: str) -> str:
    return " ".join(word[:1].upper() + word[1:] for word in value.split("_"))


def format_status_label(status: Any) -> str:
    """Return the human label for a status value, e.g. ``not_started`` -> ``Not Started``."""
    if not status or not isinstance(status, str):
        return ""
    return STATUS_LABELS.get(status) or _title_words(status)


def format_priority_label(priority: Any) -> str:
    if not priority or not isinstance(priority, str):
        return ""
    return _title_words(priority)


def classify_status(status: Any) -> Classification:
    return Classification(get_status_color(status), format_status_label(status))


def classify_priority(priority: Any) -> Classification:
    return Classification(get_priority_color(priority), format_priority_label(priority))
