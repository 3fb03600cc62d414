"""Completion percentages for workflow steps and projects."""
from __future__ import annotations

import math
from typing import Any, Iterable, Optional

# Plot and script are signed off in one go; they never hold partial progress.
BINARY_STEP_TYPES = frozenset({"plot_development", "script"})

PAGE_STEP_TYPES = frozenset({"pencils", "inks", "colors", "letters"})
ASSEMBLY_STEP_TYPES = frozenset({"proofs", "final_editorial", "production"})

# Progress is stored as a whole percentage. Up to 200 units every page still
# moves the percentage and converting back recovers the count within one page.
MAX_TRACKED_UNITS = 200


def round_half_up(value: float) -> int:
    """Round halves away from negative infinity (2.5 -> 3, -2.5 -> -2).

    ``round()`` uses banker's rounding, which would report 11.5 pages as 12 but
    12.5 pages as 12.
    """
    return math.floor(value + 0.5)


def _clamp_percent(value: int) -> int:
    return max(0, min(100, value))


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def is_binary_step(step_type: Any) -> bool:
    return step_type in BINARY_STEP_TYPES


def percent_from_count(count: Any, total: Any, step_type: Any = None) -> int:
    """Percentage for ``count`` completed units out of ``total``.

    Binary steps report 100 as soon as any unit is complete.
    """
    completed = _as_number(count)
    if completed is None:
        return 0
    if is_binary_step(step_type):
        return 100 if completed > 0 else 0
    units = _as_number(total)
    if units is None or units <= 0:
        return 0
    return _clamp_percent(round_half_up(completed * 100 / units))


def count_from_percent(percent: Any, total: Any) -> int:
    """Completed units implied by a persisted percentage."""
    value = _as_number(percent)
    units = _as_number(total)
    if value is None or units is None or units <= 0:
        return 0
    return max(0, min(int(units), round_half_up(value * units / 100)))


def total_units_for_step(step_type: Any, project: Any = None) -> int:
    """Number of trackable units (pages or covers) a step works through."""
    if is_binary_step(step_type):
        return 1
    if project is None:
        return 1
    interior = getattr(project, "interior_page_count", None) or 0
    filler = getattr(project, "filler_page_count", None) or 0
    if step_type in PAGE_STEP_TYPES:
        total = interior
    elif step_type == "covers":
        total = getattr(project, "cover_count", None) or 0
    elif step_type == "editorial":
        total = filler
    elif step_type in ASSEMBLY_STEP_TYPES:
        total = interior + filler
    else:
        total = 1
    return max(int(total), 1)


def completion_options(step_type: Any, total: int) -> list[tuple[int, str]]:
    """Selectable (value, label) pairs for the completion tracker."""
    if is_binary_step(step_type):
        return [(0, "Not Started"), (100, "Completed")]
    if total <= 0:
        return [(0, "0 of 0 (0%)")]
    return [
        (count, f"{count} of {total} ({percent_from_count(count, total)}%)")
        for count in range(total + 1)
    ]


def step_progress_label(step_type: Any, progress: Any, total: Optional[int] = None) -> str:
    percent = _clamp_percent(round_half_up(_as_number(progress) or 0))
    if is_binary_step(step_type):
        return "Completed" if percent >= 100 else "Not Started"
    if total:
        return f"{count_from_percent(percent, total)} of {total} ({percent}%)"
    return f"{percent}%"


def aggregate_progress(values: Iterable[Any]) -> int:
    """Rounded mean of step percentages; 0 when there are no steps."""
    numbers = [number for number in (_as_number(value) for value in values) if number is not None]
    if not numbers:
        return 0
    return _clamp_percent(round_half_up(sum(numbers) / len(numbers)))


def validate_step_progress(step_type: Any, progress: Any) -> int:
    """Return ``progress`` as an int or raise ``ValueError`` when it is not allowed."""
    if isinstance(progress, bool):
        raise ValueError("Progress must be a whole number.")
    if isinstance(progress, float) and progress.is_integer():
        progress = int(progress)
    if not isinstance(progress, int):
        raise ValueError("Progress must be a whole number.")
    if progress < 0 or progress > 100:
        raise ValueError("Progress must be between 0 and 100.")
    if is_binary_step(step_type) and progress not in (0, 100):
        raise ValueError("This step is either complete or not; progress must be 0 or 100.")
    return progress
