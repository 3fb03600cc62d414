"""Deadline endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from flask import Blueprint, g
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import DeadlineForm, bind_form, form_changes
from models.deadline import Deadline, DeadlineStatus
from models.feedback import Priority
from routes import (
    form_error,
    json_error,
    json_payload,
    json_success,
    load_project,
    require_csrf,
    save_failed,
)
from services.collection_service import pending_upcoming_deadlines, sort_by_due_date
from services.project_service import visible_projects_query
from services.schedule_service import get_due_date_info
from services.status_service import classify_priority, classify_status

deadlines_bp = Blueprint("deadlines", __name__, url_prefix="/api")


def serialize_deadline(deadline: Deadline, now: datetime | None = None) -> dict[str, Any]:
    payload = deadline.to_dict()
    payload["project_title"] = deadline.project.title if deadline.project else None
    payload["display"] = {
        "due": get_due_date_info(deadline.due_date, now).to_dict(),
        "priority": classify_priority(deadline.priority).to_dict(),
        "status": classify_status(deadline.status).to_dict(),
    }
    return payload


@deadlines_bp.route("/deadlines", methods=["GET"])
def list_upcoming_deadlines():
    """Pending deadlines that are still ahead, soonest first."""
    project_ids = [project.id for project in visible_projects_query(g.user).all()]
    deadlines = Deadline.query.filter(Deadline.project_id.in_(project_ids)).all()
    now = datetime.utcnow()
    return json_success(
        deadlines=[serialize_deadline(deadline, now) for deadline in pending_upcoming_deadlines(deadlines, now)]
    )


@deadlines_bp.route("/projects/<int:project_id>/deadlines", methods=["GET"])
def list_project_deadlines(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    now = datetime.utcnow()
    return json_success(
        deadlines=[serialize_deadline(deadline, now) for deadline in sort_by_due_date(project.deadlines)]
    )


@deadlines_bp.route("/deadlines", methods=["POST"])
def create_deadline():
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    form = bind_form(DeadlineForm, payload)
    if not form.validate():
        return form_error(form)
    project, error = load_project(form.project_id.data, edit=True)
    if error:
        return error

    deadline = Deadline(
        title=form.title.data,
        description=form.description.data or None,
        due_date=form.due_date.data,
        priority=form.priority.data or Priority.MEDIUM.value,
        status=form.status.data or DeadlineStatus.PENDING.value,
    )
    try:
        project.deadlines.append(deadline)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the deadline.")

    return json_success(201, "Deadline created.", deadline=serialize_deadline(deadline))


@deadlines_bp.route("/deadlines/<int:deadline_id>", methods=["PATCH"])
def update_deadline(deadline_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    deadline = db.session.get(Deadline, deadline_id)
    if deadline is None:
        return json_error("Deadline not found.", 404)
    _, error = load_project(deadline.project_id, edit=True)
    if error:
        return error

    form = bind_form(DeadlineForm, payload, obj=deadline)
    if not form.validate():
        return form_error(form)

    changes = form_changes(form, payload, ("description",))
    changes.pop("project_id", None)
    try:
        for name, value in changes.items():
            setattr(deadline, name, value)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the deadline.")

    return json_success(message="Deadline updated.", deadline=serialize_deadline(deadline))


@deadlines_bp.route("/deadlines/<int:deadline_id>", methods=["DELETE"])
def delete_deadline(deadline_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    deadline = db.session.get(Deadline, deadline_id)
    if deadline is None:
        return json_error("Deadline not found.", 404)
    _, error = load_project(deadline.project_id, edit=True)
    if error:
        return error

    try:
        db.session.delete(deadline)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to delete the deadline.")

    return json_success(message="Deadline deleted.")
