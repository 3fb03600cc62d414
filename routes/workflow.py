"""Workflow step endpoints: sequencing, progress tracking, ratings and files."""
from __future__ import annotations

import logging

from flask import Blueprint, g
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import (
    FileLinkForm,
    FileUploadForm,
    MoveStepForm,
    QualityRatingForm,
    StepProgressForm,
    WorkflowStepForm,
    bind_form,
    form_changes,
)
from models.feedback import FeedbackItem
from models.file_link import FileCategory, FileLink, FileUpload
from models.workflow_step import StepStatus, WorkflowStep
from routes import (
    form_error,
    json_error,
    json_payload,
    json_success,
    load_project,
    require_csrf,
    save_failed,
    service_error,
)
from services.project_service import user_can_edit_project, visible_projects_query
from services.workflow_service import (
    apply_step_update,
    initialize_project_workflow,
    insert_step,
    move_step,
    record_quality_ratings,
    remove_step,
    serialize_step,
    serialize_steps,
    update_step_count,
)

workflow_bp = Blueprint("workflow", __name__, url_prefix="/api")

STEP_CLEARABLE_FIELDS = ("description", "assigned_to", "start_date", "due_date")


def _load_step(step_id: int, *, edit: bool = False):
    """Return ``(step, None)`` or ``(None, error_response)``."""
    step = db.session.get(WorkflowStep, step_id)
    if step is None:
        return None, json_error("Workflow step not found.", 404)
    _, error = load_project(step.project_id, edit=edit)
    if error:
        return None, error
    return step, None


@workflow_bp.route("/workflow-steps", methods=["GET"])
def list_workflow_steps():
    project_ids = [project.id for project in visible_projects_query(g.user).all()]
    steps = WorkflowStep.query.filter(WorkflowStep.project_id.in_(project_ids)).all() if project_ids else []
    return json_success(workflow_steps=serialize_steps(steps))


@workflow_bp.route("/projects/<int:project_id>/workflow-steps", methods=["GET"])
def list_project_workflow_steps(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    return json_success(workflow_steps=serialize_steps(project.workflow_steps))


@workflow_bp.route("/projects/<int:project_id>/initialize-workflow", methods=["POST"])
def initialize_workflow(project_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    project, error = load_project(project_id, edit=True)
    if error:
        return error

    try:
        steps = initialize_project_workflow(project)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to initialize the workflow.")

    logging.info("Initialized %s workflow steps on project %s", len(steps), project.id)
    return json_success(201, "Workflow initialized.", workflow_steps=serialize_steps(project.workflow_steps))


@workflow_bp.route("/workflow-steps", methods=["POST"])
def create_workflow_step():
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    form = bind_form(WorkflowStepForm, payload)
    if not form.validate():
        return form_error(form)
    project, error = load_project(form.project_id.data, edit=True)
    if error:
        return error

    step = WorkflowStep(
        step_type=form.step_type.data,
        title=form.title.data,
        status=StepStatus.NOT_STARTED.value,
        progress=0,
    )
    changes = form_changes(form, payload, STEP_CLEARABLE_FIELDS)
    try:
        apply_step_update(step, changes)
        insert_step(project, step, form.position.data)
        db.session.commit()
    except ValueError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to save the workflow step.")

    return json_success(201, "Workflow step created.", workflow_step=serialize_step(step))


@workflow_bp.route("/workflow-steps/<int:step_id>", methods=["GET"])
def get_workflow_step(step_id: int):
    step, error = _load_step(step_id)
    if error:
        return error
    payload = serialize_step(step)
    payload["file_links"] = [link.to_dict() for link in step.file_links]
    return json_success(workflow_step=payload)


@workflow_bp.route("/workflow-steps/<int:step_id>", methods=["PATCH"])
def update_workflow_step(step_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    step, error = _load_step(step_id, edit=True)
    if error:
        return error

    form = bind_form(WorkflowStepForm, payload, obj=step)
    if not form.validate():
        return form_error(form)

    changes = form_changes(form, payload, STEP_CLEARABLE_FIELDS)
    position = changes.pop("position", None)
    try:
        apply_step_update(step, changes)
        if position is not None:
            move_step(step, position)
        db.session.commit()
    except ValueError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to save the workflow step.")

    return json_success(message="Workflow step updated.", workflow_step=serialize_step(step))


@workflow_bp.route("/workflow-steps/<int:step_id>", methods=["DELETE"])
def delete_workflow_step(step_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    step, error = _load_step(step_id, edit=True)
    if error:
        return error

    try:
        remove_step(step)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to delete the workflow step.")

    return json_success(message="Workflow step deleted.")


@workflow_bp.route("/workflow-steps/<int:step_id>/progress", methods=["POST"])
def update_workflow_step_progress(step_id: int):
    """Completion tracker: record how many pages (or covers) are done."""
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    step, error = _load_step(step_id, edit=True)
    if error:
        return error

    form = bind_form(StepProgressForm, payload)
    if not form.validate():
        return form_error(form)

    try:
        update_step_count(step, form.count.data)
        db.session.commit()
    except ValueError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to save the workflow step.")

    return json_success(message="Progress updated.", workflow_step=serialize_step(step))


@workflow_bp.route("/workflow-steps/<int:step_id>/move", methods=["POST"])
def move_workflow_step(step_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    step, error = _load_step(step_id, edit=True)
    if error:
        return error

    form = bind_form(MoveStepForm, payload)
    if not form.validate():
        return form_error(form)

    try:
        move_step(step, form.position.data)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to reorder the workflow.")

    return json_success(
        message="Workflow step moved.",
        workflow_steps=serialize_steps(step.project.workflow_steps),
    )


@workflow_bp.route("/workflow-steps/<int:step_id>/quality-ratings", methods=["POST"])
def rate_workflow_step(step_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    step, error = _load_step(step_id, edit=True)
    if error:
        return error

    ratings = {
        (name if name.startswith("rating_") else f"rating_{name}"): value
        for name, value in payload.items()
    }
    form = bind_form(QualityRatingForm, ratings)
    if not form.validate():
        return form_error(form)

    try:
        record_quality_ratings(step, form_changes(form, ratings))
        db.session.commit()
    except ValueError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to save the quality ratings.")

    return json_success(message="Quality ratings saved.", workflow_step=serialize_step(step))


# File links and uploads
# ------------------------------


@workflow_bp.route("/workflow-steps/<int:step_id>/file-links", methods=["GET"])
def list_file_links(step_id: int):
    step, error = _load_step(step_id)
    if error:
        return error
    return json_success(file_links=[link.to_dict() for link in step.file_links])


@workflow_bp.route("/workflow-steps/<int:step_id>/file-links", methods=["POST"])
def create_file_link(step_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    step, error = _load_step(step_id, edit=True)
    if error:
        return error

    form = bind_form(FileLinkForm, payload)
    if not form.validate():
        return form_error(form)

    link = FileLink(
        url=form.url.data,
        title=form.title.data or None,
        category=form.category.data or FileCategory.MISC.value,
        added_by=g.user.id,
    )
    try:
        step.file_links.append(link)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the file link.")

    return json_success(201, "File link added.", file_link=link.to_dict())


@workflow_bp.route("/file-links/<int:link_id>", methods=["DELETE"])
def delete_file_link(link_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    link = db.session.get(FileLink, link_id)
    if link is None:
        return json_error("File link not found.", 404)
    _, error = _load_step(link.workflow_step_id, edit=True)
    if error:
        return error

    try:
        db.session.delete(link)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to delete the file link.")

    return json_success(message="File link deleted.")


@workflow_bp.route("/projects/<int:project_id>/file-links", methods=["GET"])
def list_project_file_links(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    links = [link for step in project.workflow_steps for link in step.file_links]
    return json_success(file_links=[link.to_dict() for link in links])


@workflow_bp.route("/workflow-steps/<int:step_id>/file-uploads", methods=["GET"])
def list_step_file_uploads(step_id: int):
    step, error = _load_step(step_id)
    if error:
        return error
    uploads = FileUpload.query.filter_by(workflow_step_id=step.id).order_by(FileUpload.uploaded_at).all()
    return json_success(file_uploads=[upload.to_dict() for upload in uploads])


@workflow_bp.route("/file-uploads", methods=["POST"])
def create_file_upload():
    """Record an uploaded file; the bytes are stored by the upload service."""
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    form = bind_form(FileUploadForm, payload)
    if not form.validate():
        return form_error(form)
    project, error = load_project(form.project_id.data, edit=True)
    if error:
        return error

    step_id = form.workflow_step_id.data
    if step_id is not None:
        step = db.session.get(WorkflowStep, step_id)
        if step is None or step.project_id != project.id:
            return json_error("Workflow step not found on this project.", 404)
    feedback_id = form.feedback_item_id.data
    if feedback_id is not None:
        feedback = db.session.get(FeedbackItem, feedback_id)
        if feedback is None or feedback.project_id != project.id:
            return json_error("Feedback item not found on this project.", 404)

    upload = FileUpload(
        workflow_step_id=step_id,
        feedback_item_id=feedback_id,
        file_name=form.file_name.data,
        original_name=form.original_name.data,
        file_path=form.file_path.data,
        file_type=form.file_type.data or None,
        file_size=form.file_size.data,
        category=form.category.data or FileCategory.MISC.value,
        uploaded_by=g.user.id,
    )
    try:
        project.file_uploads.append(upload)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the file upload.")

    return json_success(201, "File recorded.", file_upload=upload.to_dict())


@workflow_bp.route("/projects/<int:project_id>/file-uploads", methods=["GET"])
def list_project_file_uploads(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    uploads = FileUpload.query.filter_by(project_id=project.id).order_by(FileUpload.uploaded_at, FileUpload.id).all()
    return json_success(file_uploads=[upload.to_dict() for upload in uploads])


@workflow_bp.route("/feedback/<int:feedback_id>/file-uploads", methods=["GET"])
def list_feedback_file_uploads(feedback_id: int):
    feedback = db.session.get(FeedbackItem, feedback_id)
    if feedback is None:
        return json_error("Feedback item not found.", 404)
    _, error = load_project(feedback.project_id)
    if error:
        return error
    uploads = (
        FileUpload.query.filter_by(feedback_item_id=feedback.id)
        .order_by(FileUpload.uploaded_at, FileUpload.id)
        .all()
    )
    return json_success(file_uploads=[upload.to_dict() for upload in uploads])


@workflow_bp.route("/file-uploads/<int:upload_id>", methods=["DELETE"])
def delete_file_upload(upload_id: int):
    """Forget an upload record; the uploader or a project editor may do this."""
    error = require_csrf(json_payload())
    if error:
        return error
    upload = db.session.get(FileUpload, upload_id)
    if upload is None:
        return json_error("File upload not found.", 404)
    project, error = load_project(upload.project_id)
    if error:
        return error
    if upload.uploaded_by != g.user.id and not user_can_edit_project(g.user, project):
        return json_error("You can only delete your own uploads.", 403)

    try:
        project.file_uploads.remove(upload)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to delete the file upload.")

    logging.info("File upload %s deleted by user %s", upload_id, g.user.id)
    return json_success(message="File upload deleted.")
