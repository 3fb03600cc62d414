"""Feedback item and comment endpoints."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, g, request
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import CommentForm, FeedbackItemForm, bind_form, form_changes
from models.asset import Asset
from models.feedback import Comment, FeedbackItem, FeedbackStatus, Priority
from routes import (
    form_error,
    json_error,
    json_payload,
    json_success,
    load_project,
    require_csrf,
    save_failed,
)
from services.collection_service import filter_by_priority, filter_by_status, pending_feedback
from services.project_service import (
    user_can_edit_project,
    visible_projects_query,
)
from services.status_service import classify_priority, classify_status

feedback_bp = Blueprint("feedback", __name__, url_prefix="/api")

FEEDBACK_CLEARABLE_FIELDS = ("description", "asset_id", "thumbnail_url")


def _load_feedback(feedback_id: int, *, edit: bool = False):
    item = db.session.get(FeedbackItem, feedback_id)
    if item is None:
        return None, json_error("Feedback item not found.", 404)
    _, error = load_project(item.project_id, edit=edit)
    if error:
        return None, error
    return item, None


def _asset_error(project_id: int, asset_id):
    """Error response unless ``asset_id`` is empty or names an asset of the project."""
    if asset_id is None:
        return None
    asset = db.session.get(Asset, asset_id)
    if asset is None or asset.project_id != project_id:
        return json_error("Asset not found on this project.", 404)
    return None


def serialize_feedback(item: FeedbackItem) -> dict[str, Any]:
    payload = item.to_dict()
    payload["requester"] = item.requester.display_name if item.requester else None
    payload["comment_count"] = len(item.comments)
    payload["display"] = {
        "priority": classify_priority(item.priority).to_dict(),
        "status": classify_status(item.status).to_dict(),
    }
    return payload


def _visible_feedback_query():
    project_ids = [project.id for project in visible_projects_query(g.user).all()]
    return FeedbackItem.query.filter(FeedbackItem.project_id.in_(project_ids))


@feedback_bp.route("/feedback", methods=["GET"])
def list_pending_feedback():
    items = _visible_feedback_query().order_by(FeedbackItem.created_at.desc(), FeedbackItem.id.desc()).all()
    return json_success(feedback=[serialize_feedback(item) for item in pending_feedback(items)])


@feedback_bp.route("/projects/<int:project_id>/feedback", methods=["GET"])
def list_project_feedback(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    items = sorted(project.feedback_items, key=lambda item: (item.created_at, item.id), reverse=True)
    items = filter_by_status(items, request.args.get("status"))
    items = filter_by_priority(items, request.args.get("priority"))
    return json_success(feedback=[serialize_feedback(item) for item in items])


@feedback_bp.route("/feedback", methods=["POST"])
def create_feedback():
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    form = bind_form(FeedbackItemForm, payload)
    if not form.validate():
        return form_error(form)
    project, error = load_project(form.project_id.data, edit=True)
    if error:
        return error
    error = _asset_error(project.id, form.asset_id.data)
    if error:
        return error

    item = FeedbackItem(
        title=form.title.data,
        description=form.description.data or None,
        priority=form.priority.data or Priority.MEDIUM.value,
        status=form.status.data or FeedbackStatus.PENDING.value,
        asset_type=form.asset_type.data,
        asset_id=form.asset_id.data,
        thumbnail_url=form.thumbnail_url.data or None,
        requested_by=g.user.id,
    )
    try:
        project.feedback_items.append(item)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the feedback item.")

    return json_success(201, "Feedback item created.", feedback_item=serialize_feedback(item))


@feedback_bp.route("/feedback/<int:feedback_id>", methods=["GET"])
def get_feedback(feedback_id: int):
    item, error = _load_feedback(feedback_id)
    if error:
        return error
    payload = serialize_feedback(item)
    payload["comments"] = [comment.to_dict() for comment in item.comments]
    return json_success(feedback_item=payload)


@feedback_bp.route("/feedback/<int:feedback_id>", methods=["PATCH"])
def update_feedback(feedback_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    item, error = _load_feedback(feedback_id, edit=True)
    if error:
        return error

    form = bind_form(FeedbackItemForm, payload, obj=item)
    if not form.validate():
        return form_error(form)

    changes = form_changes(form, payload, FEEDBACK_CLEARABLE_FIELDS)
    changes.pop("project_id", None)
    error = _asset_error(item.project_id, changes.get("asset_id"))
    if error:
        return error
    try:
        for name, value in changes.items():
            setattr(item, name, value)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the feedback item.")

    return json_success(message="Feedback item updated.", feedback_item=serialize_feedback(item))


# Comments
# ------------------------------


@feedback_bp.route("/feedback/<int:feedback_id>/comments", methods=["GET"])
def list_comments(feedback_id: int):
    item, error = _load_feedback(feedback_id)
    if error:
        return error
    return json_success(comments=[comment.to_dict() for comment in item.comments])


@feedback_bp.route("/comments", methods=["POST"])
def create_comment():
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    form = bind_form(CommentForm, payload)
    if not form.validate():
        return form_error(form)
    item, error = _load_feedback(form.feedback_id.data)
    if error:
        return error

    comment = Comment(user_id=g.user.id, content=form.content.data)
    try:
        item.comments.append(comment)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the comment.")

    return json_success(201, "Comment added.", comment=comment.to_dict())


@feedback_bp.route("/comments/<int:comment_id>", methods=["DELETE"])
def delete_comment(comment_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    comment = db.session.get(Comment, comment_id)
    if comment is None:
        return json_error("Comment not found.", 404)
    item, error = _load_feedback(comment.feedback_id)
    if error:
        return error
    if comment.user_id != g.user.id and not user_can_edit_project(g.user, item.project):
        return json_error("You can only delete your own comments.", 403)

    try:
        item.comments.remove(comment)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to delete the comment.")

    return json_success(message="Comment deleted.")
