"""Workflow step ordering, status transitions and production planning."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Sequence

from database import db
from models.file_link import FileUpload
from models.project import Project
from models.workflow_step import QUALITY_RATING_FIELDS, StepStatus, StepType, WorkflowStep
from services.progress_service import (
    is_binary_step,
    percent_from_count,
    step_progress_label,
    total_units_for_step,
    validate_step_progress,
)
from services.schedule_service import (
    get_due_date_info,
    get_talent_progress_color,
    get_talent_progress_status,
)
from services.status_service import classify_status
from utils.dates import parse_datetime

SORT_ORDER_STEP = 10

ALLOWED_TRANSITIONS: dict[StepStatus, frozenset[StepStatus]] = {
    StepStatus.NOT_STARTED: frozenset(
        {StepStatus.IN_PROGRESS, StepStatus.REVIEW, StepStatus.COMPLETED}
    ),
    StepStatus.IN_PROGRESS: frozenset(
        {StepStatus.REVIEW, StepStatus.COMPLETED, StepStatus.DELAYED}
    ),
    StepStatus.REVIEW: frozenset(
        {StepStatus.COMPLETED, StepStatus.DELAYED, StepStatus.IN_PROGRESS}
    ),
    StepStatus.COMPLETED: frozenset({StepStatus.IN_PROGRESS}),
    StepStatus.DELAYED: frozenset(
        {StepStatus.IN_PROGRESS, StepStatus.REVIEW, StepStatus.COMPLETED}
    ),
}

# Weekly throughput column used to pace each page-based step.
STEP_RATE_FIELDS = {
    StepType.PENCILS.value: "penciler_pages_per_week",
    StepType.INKS.value: "inker_pages_per_week",
    StepType.COLORS.value: "colorist_pages_per_week",
    StepType.LETTERS.value: "letterer_pages_per_week",
}

EDITABLE_STEP_FIELDS = ("title", "description", "assigned_to", "start_date", "due_date")


def _coerce_status(value: Any) -> StepStatus:
    try:
        return StepStatus(value)
    except ValueError as exc:
        raise ValueError(f"Unknown workflow status '{value}'.") from exc


def can_transition(current: Any, target: Any) -> bool:
    """True when a step may move from ``current`` to ``target`` status."""
    try:
        current_status = StepStatus(current)
        target_status = StepStatus(target)
    except ValueError:
        return False
    if current_status == target_status:
        return True
    return target_status in ALLOWED_TRANSITIONS[current_status]


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def ordered_steps(steps: Iterable[Any]) -> list[Any]:
    """Steps sorted by sort_order; ties fall back to id for a stable result."""
    return sorted(
        steps,
        key=lambda step: (getattr(step, "sort_order", 0) or 0, getattr(step, "id", 0) or 0),
    )


def step_neighbours(step: Any, steps: Iterable[Any]) -> tuple[Optional[Any], Optional[Any]]:
    """Return the (previous, next) steps around ``step`` within ``steps``."""
    ordered = ordered_steps(steps)
    for index, candidate in enumerate(ordered):
        if candidate is step or (
            getattr(step, "id", None) is not None and candidate.id == step.id
        ):
            previous_step = ordered[index - 1] if index > 0 else None
            next_step = ordered[index + 1] if index + 1 < len(ordered) else None
            return previous_step, next_step
    return None, None


def chain_links(steps: Iterable[Any]) -> dict[int, tuple[Optional[int], Optional[int]]]:
    """Map each step id to its (prev_step_id, next_step_id) pair."""
    ordered = ordered_steps(steps)
    links: dict[int, tuple[Optional[int], Optional[int]]] = {}
    for index, step in enumerate(ordered):
        prev_id = ordered[index - 1].id if index > 0 else None
        next_id = ordered[index + 1].id if index + 1 < len(ordered) else None
        links[step.id] = (prev_id, next_id)
    return links


def _renumber(steps: Sequence[WorkflowStep]) -> None:
    """Assign sort orders 10, 20, 30 ... in list order.

    Rows are first parked on negative values so the per-project unique
    constraint is never violated mid-flush.
    """
    for index, step in enumerate(steps):
        step.sort_order = -(index + 1)
    db.session.flush()
    for index, step in enumerate(steps):
        step.sort_order = (index + 1) * SORT_ORDER_STEP
    db.session.flush()


def _clamp_position(position: Optional[int], length: int) -> int:
    if position is None:
        return length
    return max(0, min(int(position), length))


def insert_step(project: Project, step: WorkflowStep, position: Optional[int] = None) -> WorkflowStep:
    """Insert ``step`` into the project's sequence at ``position`` (append when None)."""
    siblings = [existing for existing in ordered_steps(project.workflow_steps) if existing is not step]
    index = _clamp_position(position, len(siblings))
    siblings.insert(index, step)
    if step.project is not project:
        step.project = project
    db.session.add(step)
    _renumber(siblings)
    return step


def move_step(step: WorkflowStep, position: int) -> WorkflowStep:
    """Move ``step`` to the zero-based ``position`` within its project."""
    siblings = [existing for existing in ordered_steps(step.project.workflow_steps) if existing is not step]
    siblings.insert(_clamp_position(position, len(siblings)), step)
    _renumber(siblings)
    return step


def _detach_uploads(step_ids: Sequence[int]) -> None:
    """Uploads outlive their step; they stay filed under the project."""
    if step_ids:
        FileUpload.query.filter(FileUpload.workflow_step_id.in_(step_ids)).update(
            {"workflow_step_id": None}, synchronize_session="fetch"
        )


def remove_step(step: WorkflowStep) -> None:
    """Delete ``step`` and close the gap it leaves in the sequence."""
    project = step.project
    remaining = [existing for existing in ordered_steps(project.workflow_steps) if existing is not step]
    _detach_uploads([step.id])
    # delete-orphan removes the row once it leaves the collection
    project.workflow_steps.remove(step)
    db.session.flush()
    if remaining:
        _renumber(remaining)


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


def _status_for_progress(progress: int) -> Optional[StepStatus]:
    if progress >= 100:
        return StepStatus.COMPLETED
    if progress > 0:
        return StepStatus.IN_PROGRESS
    return None


def _current_status(step: WorkflowStep) -> Optional[StepStatus]:
    try:
        return StepStatus(step.status)
    except ValueError:
        return None


def _check_transition(step: WorkflowStep, target: StepStatus) -> None:
    current = _current_status(step)
    if current is not None and not can_transition(current, target):
        raise ValueError(
            f"A step cannot move from {current.value} to {target.value}."
        )


def _set_status(step: WorkflowStep, target: StepStatus, now: datetime) -> None:
    current = _current_status(step)
    if current == target:
        return
    _check_transition(step, target)
    if current == StepStatus.COMPLETED:
        step.completed_date = None
    if target == StepStatus.COMPLETED:
        step.completed_date = now
    if target == StepStatus.IN_PROGRESS and step.start_date is None:
        step.start_date = now
    step.status_enum = target


def apply_step_update(
    step: WorkflowStep,
    changes: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> WorkflowStep:
    """Apply an editor's partial update to ``step``.

    When progress is sent without a status, or while the step has not been
    started, the status follows the progress value. A completed status does
    not touch progress.
    """
    now = now or datetime.utcnow()
    target: Optional[StepStatus] = None
    if changes.get("status"):
        target = _coerce_status(changes["status"])

    progress = None
    if changes.get("progress") is not None:
        progress = validate_step_progress(step.step_type, changes["progress"])
        if target is None or step.status == StepStatus.NOT_STARTED.value:
            target = _status_for_progress(progress) or target

    # Nothing is written until the whole update is known to be valid.
    if target is not None:
        _check_transition(step, target)

    for field in EDITABLE_STEP_FIELDS:
        if field in changes:
            setattr(step, field, changes[field])

    if target is not None:
        _set_status(step, target, now)
    if progress is not None:
        step.progress = progress
    return step


def update_step_count(
    step: WorkflowStep,
    count: Any,
    project: Optional[Project] = None,
    now: Optional[datetime] = None,
) -> WorkflowStep:
    """Record ``count`` completed units (pages, covers) for ``step``."""
    total = total_units_for_step(step.step_type, project or step.project)
    if isinstance(count, bool) or not isinstance(count, int):
        raise ValueError("Completed count must be a whole number.")
    if count < 0 or count > total:
        raise ValueError(f"Completed count must be between 0 and {total}.")
    percent = percent_from_count(count, total, step.step_type)
    return apply_step_update(step, {"progress": percent}, now=now)


def _rating_field(name: str) -> str:
    field = name if name.startswith("rating_") else f"rating_{name}"
    if field not in QUALITY_RATING_FIELDS:
        raise ValueError(f"Unknown quality rating '{name}'.")
    return field


def record_quality_ratings(step: WorkflowStep, ratings: Mapping[str, Any]) -> WorkflowStep:
    """Store 1-10 quality ratings on a completed step."""
    if step.status != StepStatus.COMPLETED.value:
        raise ValueError("Quality ratings can only be recorded on completed steps.")
    resolved: dict[str, Optional[int]] = {}
    for name, value in ratings.items():
        field = _rating_field(name)
        if value is None:
            resolved[field] = None
            continue
        if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 10:
            raise ValueError(f"{field.removeprefix('rating_').title()} rating must be a whole number from 1 to 10.")
        resolved[field] = value
    for field, value in resolved.items():
        setattr(step, field, value)
    return step


# ---------------------------------------------------------------------------
# Production planning
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StepPlan:
    step_type: str
    title: str
    description: str
    sort_order: int
    due_date: datetime


_METRIC_DEFAULTS = {
    "interior_page_count": 22,
    "cover_count": 1,
    "filler_page_count": 0,
    "penciler_pages_per_week": 5,
    "inker_pages_per_week": 7,
    "colorist_pages_per_week": 10,
    "letterer_pages_per_week": 15,
    "pencil_batch_size": 5,
    "ink_batch_size": 5,
    "letter_batch_size": 5,
    "approval_days": 2,
}


def _metric(source: Any, name: str) -> int:
    if isinstance(source, Mapping):
        value = source.get(name)
    else:
        value = getattr(source, name, None)
    if value is None:
        return _METRIC_DEFAULTS[name]
    return int(value)


def _metric_date(source: Any, name: str) -> Optional[datetime]:
    value = source.get(name) if isinstance(source, Mapping) else getattr(source, name, None)
    return parse_datetime(value)


def _days_for(pages: int, pages_per_week: int) -> int:
    return math.ceil(pages / (max(pages_per_week, 1) / 7))


def plan_workflow(metrics: Any, today: Optional[datetime] = None) -> list[StepPlan]:
    """Build the standard eleven-step production plan for a project.

    ``metrics`` is a Project or a mapping carrying the same production fields.
    """
    today = today or datetime.utcnow()
    interior = _metric(metrics, "interior_page_count")
    covers = _metric(metrics, "cover_count")
    filler = _metric(metrics, "filler_page_count")
    pencil_rate = _metric(metrics, "penciler_pages_per_week")
    ink_rate = _metric(metrics, "inker_pages_per_week")
    color_rate = _metric(metrics, "colorist_pages_per_week")
    letter_rate = _metric(metrics, "letterer_pages_per_week")
    ink_batch = _metric(metrics, "ink_batch_size")
    approval = timedelta(days=_metric(metrics, "approval_days"))

    plot_end = _metric_date(metrics, "plot_deadline") or today + timedelta(days=7)
    cover_days = max(7, covers * 7)
    cover_end = _metric_date(metrics, "cover_deadline") or today + timedelta(days=cover_days)
    script_end = plot_end + timedelta(days=14)

    first_pencil_batch = timedelta(days=_days_for(_metric(metrics, "pencil_batch_size"), pencil_rate))
    first_ink_batch = timedelta(days=_days_for(ink_batch, ink_rate))
    letter_batch = timedelta(days=_days_for(_metric(metrics, "letter_batch_size"), letter_rate))

    pencil_start = script_end + approval
    pencil_end = pencil_start + timedelta(days=_days_for(interior, pencil_rate))
    ink_end = pencil_end + first_ink_batch + approval
    color_end = ink_end + timedelta(days=_days_for(ink_batch, color_rate)) + approval
    letter_end = color_end + letter_batch
    production_end = color_end + timedelta(days=14)

    project_due = _metric_date(metrics, "due_date")
    if project_due and production_end > project_due:
        logging.warning(
            "Planned completion %s is after the project due date %s",
            production_end.isoformat(),
            project_due.isoformat(),
        )
    logging.debug(
        "Planned workflow: pencils start %s, inks start %s",
        pencil_start.isoformat(),
        (pencil_start + first_pencil_batch + approval).isoformat(),
    )

    total_pages = interior + filler
    return [
        StepPlan(
            StepType.PLOT_DEVELOPMENT.value,
            "Plot Development",
            "Create and approve the story outline and plot points",
            10,
            plot_end,
        ),
        StepPlan(StepType.COVERS.value, "Cover Art", f"Create {covers} covers for the issue", 20, cover_end),
        StepPlan(
            StepType.SCRIPT.value,
            "Script Writing",
            "Convert approved plot into full script with dialogue and panel descriptions",
            30,
            script_end,
        ),
        StepPlan(
            StepType.PENCILS.value,
            "Pencils/Roughs",
            f"Initial sketches and layouts for {interior} interior pages ({pencil_rate} pages/week)",
            40,
            pencil_end,
        ),
        StepPlan(
            StepType.INKS.value,
            "Inks/Finishes",
            f"Final line work over the pencils for {interior} pages ({ink_rate} pages/week)",
            50,
            ink_end,
        ),
        StepPlan(
            StepType.COLORS.value,
            "Colors",
            f"Coloring {interior} interior pages ({color_rate} pages/week)",
            60,
            color_end,
        ),
        StepPlan(
            StepType.LETTERS.value,
            "Letters",
            f"Adding text, speech bubbles, and sound effects to {interior} pages ({letter_rate} pages/week)",
            70,
            letter_end,
        ),
        StepPlan(
            StepType.PROOFS.value,
            "Final Assembled Reader Proof",
            f"Editorial review of {interior} colored pages before final approval",
            75,
            letter_end + timedelta(days=7),
        ),
        StepPlan(
            StepType.EDITORIAL.value,
            "Editorial Pages",
            f"Create {filler} supplementary editorial pages",
            80,
            color_end,
        ),
        StepPlan(
            StepType.FINAL_EDITORIAL.value,
            "Final Editorial Pages",
            f"Final editorial review and approval of all {total_pages} pages",
            85,
            color_end + timedelta(days=7),
        ),
        StepPlan(
            StepType.PRODUCTION.value,
            "Final Production",
            f"Final assembly, file preparation and prepress for {total_pages} total pages",
            90,
            production_end,
        ),
    ]


def initialize_project_workflow(project: Project, today: Optional[datetime] = None) -> list[WorkflowStep]:
    """Replace the project's steps with a freshly planned workflow."""
    plan = plan_workflow(project, today)
    existing = list(project.workflow_steps)
    if existing:
        logging.info("Replacing %s workflow steps on project %s", len(existing), project.id)
        _detach_uploads([step.id for step in existing if step.id is not None])
        for step in existing:
            project.workflow_steps.remove(step)
        db.session.flush()

    steps = []
    for item in plan:
        step = WorkflowStep(
            step_type=item.step_type,
            title=item.title,
            description=item.description,
            status=StepStatus.NOT_STARTED.value,
            progress=0,
            sort_order=item.sort_order,
            due_date=item.due_date,
        )
        project.workflow_steps.append(step)
        steps.append(step)
    db.session.flush()
    return steps


def reinitialize_workflow(project: Project, today: Optional[datetime] = None) -> list[WorkflowStep]:
    """Re-plan due dates after the project's metrics change.

    Existing steps keep their id, progress, status and files; only the planned
    due date and description move. Planned step types that are missing are
    added back.
    """
    by_type = {step.step_type: step for step in project.workflow_steps}
    taken = {step.sort_order for step in project.workflow_steps}
    for item in plan_workflow(project, today):
        step = by_type.get(item.step_type)
        if step is not None:
            step.due_date = item.due_date
            step.description = item.description
            continue
        step = WorkflowStep(
            step_type=item.step_type,
            title=item.title,
            description=item.description,
            status=StepStatus.NOT_STARTED.value,
            progress=0,
            due_date=item.due_date,
        )
        if item.sort_order in taken:
            insert_step(project, step)
        else:
            step.sort_order = item.sort_order
            project.workflow_steps.append(step)
            db.session.flush()
        taken = {existing.sort_order for existing in project.workflow_steps}
    return ordered_steps(project.workflow_steps)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def _talent_display(step: WorkflowStep, project: Optional[Project], total: int, now: Optional[datetime]):
    rate_field = STEP_RATE_FIELDS.get(step.step_type)
    if project is None or rate_field is None or step.start_date is None or step.due_date is None:
        return None
    completed_pages = math.floor((step.progress or 0) * total / 100)
    status = get_talent_progress_status(
        total,
        completed_pages,
        getattr(project, rate_field),
        step.start_date,
        step.due_date,
        now,
    )
    return {"status": status, "colors": get_talent_progress_color(status).to_dict()}


def serialize_step(
    step: WorkflowStep,
    steps: Optional[Iterable[WorkflowStep]] = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Serialize a step with its derived neighbours and display state."""
    project = step.project
    siblings = list(steps) if steps is not None else list(project.workflow_steps if project else [step])
    previous_step, next_step = step_neighbours(step, siblings)
    total = total_units_for_step(step.step_type, project)

    payload = step.to_dict()
    payload["prev_step_id"] = previous_step.id if previous_step is not None else None
    payload["next_step_id"] = next_step.id if next_step is not None else None
    payload["display"] = {
        "status": classify_status(step.status).to_dict(),
        "due": get_due_date_info(step.due_date, now).to_dict(),
        "is_binary": is_binary_step(step.step_type),
        "total_units": total,
        "progress_label": step_progress_label(step.step_type, step.progress, total),
        "talent_progress": _talent_display(step, project, total, now),
    }
    return payload


def serialize_steps(steps: Iterable[WorkflowStep], now: Optional[datetime] = None) -> list[dict[str, Any]]:
    ordered = ordered_steps(steps)
    return [
        serialize_step(
            step,
            [sibling for sibling in ordered if sibling.project_id == step.project_id],
            now,
        )
        for step in ordered
    ]
