"""Project, editor, collaborator and panel layout endpoints."""
from __future__ import annotations

import logging

from flask import Blueprint, g, request
from sqlalchemy.exc import SQLAlchemyError

from database import db
from forms import (
    CollaboratorForm,
    PanelLayoutForm,
    ProjectEditorForm,
    ProjectForm,
    bind_form,
    form_changes,
)
from models.panel_layout import PanelLayout
from models.user import User
from routes import (
    form_error,
    json_error,
    json_payload,
    json_success,
    load_project,
    require_csrf,
    require_project_manager,
    save_failed,
    service_error,
)
from services.collection_service import filter_by_status
from services.project_service import (
    add_collaborator,
    assign_editor,
    create_project,
    remove_collaborator,
    remove_editor,
    serialize_project,
    update_project,
    user_can_assign_editors,
    user_can_delete_project,
    user_can_remove_editor,
    visible_projects_query,
)
from services.workflow_service import initialize_project_workflow, serialize_steps

projects_bp = Blueprint("projects", __name__, url_prefix="/api")

PROJECT_CLEARABLE_FIELDS = ("issue", "description", "cover_image", "due_date", "plot_deadline", "cover_deadline")


@projects_bp.route("/projects", methods=["GET"])
def list_projects():
    projects = filter_by_status(visible_projects_query(g.user).all(), request.args.get("status"))
    return json_success(projects=[serialize_project(project, g.user) for project in projects])


@projects_bp.route("/projects", methods=["POST"])
def create_project_route():
    payload = json_payload()
    error = require_csrf(payload) or require_project_manager()
    if error:
        return error

    form = bind_form(ProjectForm, payload)
    if not form.validate():
        return form_error(form)

    fields = {name: value for name, value in form.data.items() if name != "csrf_token"}
    try:
        project = create_project(g.user, fields)
        if payload.get("initialize_workflow"):
            initialize_project_workflow(project)
        db.session.commit()
    except PermissionError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to save the project.")

    logging.info("Project %s created by user %s", project.id, g.user.id)
    return json_success(201, "Project created.", project=serialize_project(project, g.user))


@projects_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    payload = serialize_project(project, g.user)
    payload["workflow_steps"] = serialize_steps(project.workflow_steps)
    payload["editors"] = [assignment.to_dict() for assignment in project.editors]
    payload["collaborators"] = [collaborator.to_dict() for collaborator in project.collaborators]
    return json_success(project=payload)


@projects_bp.route("/projects/<int:project_id>", methods=["PATCH"])
def update_project_route(project_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    project, error = load_project(project_id, edit=True)
    if error:
        return error

    form = bind_form(ProjectForm, payload, obj=project)
    if not form.validate():
        return form_error(form)

    try:
        replanned = update_project(project, form_changes(form, payload, PROJECT_CLEARABLE_FIELDS))
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the project.")

    return json_success(
        message="Project updated.",
        project=serialize_project(project, g.user),
        workflow_replanned=replanned,
    )


@projects_bp.route("/projects/<int:project_id>", methods=["DELETE"])
def delete_project(project_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    project, error = load_project(project_id)
    if error:
        return error
    if not user_can_delete_project(g.user, project):
        return json_error("You do not have permission to delete this project.", 403)

    try:
        db.session.delete(project)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to delete the project.")

    logging.info("Project %s deleted by user %s", project_id, g.user.id)
    return json_success(message="Project deleted.")


# Editors
# ------------------------------


@projects_bp.route("/projects/<int:project_id>/editors", methods=["GET"])
def list_editors(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    return json_success(editors=[assignment.to_dict() for assignment in project.editors])


@projects_bp.route("/projects/<int:project_id>/editors", methods=["POST"])
def add_editor(project_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    project, error = load_project(project_id)
    if error:
        return error
    if not user_can_assign_editors(g.user, project):
        return json_error("Only the project creator or a site admin can assign editors.", 403)

    form = bind_form(ProjectEditorForm, payload)
    if not form.validate():
        return form_error(form)
    editor = db.session.get(User, form.user_id.data)
    if editor is None:
        return json_error("User not found.", 404)

    try:
        assignment = assign_editor(
            project,
            editor,
            assigned_by=g.user,
            assignment_role=form.assignment_role.data or editor.editor_role or "editor",
        )
        db.session.commit()
    except ValueError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to assign the editor.")

    return json_success(201, "Editor assigned.", editor=assignment.to_dict())


@projects_bp.route("/projects/<int:project_id>/editors/<int:user_id>", methods=["DELETE"])
def delete_editor(project_id: int, user_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    project, error = load_project(project_id)
    if error:
        return error
    if not user_can_remove_editor(g.user, project, user_id):
        return json_error("You do not have permission to remove this editor.", 403)

    try:
        remove_editor(project, user_id)
        db.session.commit()
    except LookupError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to remove the editor.")

    return json_success(message="Editor removed.")


# Collaborators
# ------------------------------


@projects_bp.route("/projects/<int:project_id>/collaborators", methods=["GET"])
def list_collaborators(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    return json_success(collaborators=[collaborator.to_dict() for collaborator in project.collaborators])


@projects_bp.route("/projects/<int:project_id>/collaborators", methods=["POST"])
def add_collaborator_route(project_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    project, error = load_project(project_id, edit=True)
    if error:
        return error

    form = bind_form(CollaboratorForm, payload)
    if not form.validate():
        return form_error(form)
    user = db.session.get(User, form.user_id.data)
    if user is None:
        return json_error("User not found.", 404)

    try:
        collaborator = add_collaborator(project, user, form.role.data)
        db.session.commit()
    except ValueError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to add the collaborator.")

    return json_success(201, "Collaborator added.", collaborator=collaborator.to_dict())


@projects_bp.route("/projects/<int:project_id>/collaborators/<int:user_id>", methods=["DELETE"])
def delete_collaborator(project_id: int, user_id: int):
    error = require_csrf(json_payload())
    if error:
        return error
    project, error = load_project(project_id, edit=True)
    if error:
        return error

    try:
        remove_collaborator(project, user_id)
        db.session.commit()
    except LookupError as exc:
        db.session.rollback()
        return service_error(exc)
    except SQLAlchemyError:
        return save_failed("Unable to remove the collaborator.")

    return json_success(message="Collaborator removed.")


# Panel layouts
# ------------------------------


@projects_bp.route("/projects/<int:project_id>/panel-layouts", methods=["GET"])
def list_panel_layouts(project_id: int):
    project, error = load_project(project_id)
    if error:
        return error
    layouts = sorted(project.panel_layouts, key=lambda layout: (layout.page_number, layout.id))
    return json_success(panel_layouts=[layout.to_dict() for layout in layouts])


@projects_bp.route("/projects/<int:project_id>/panel-layouts", methods=["POST"])
def create_panel_layout(project_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    project, error = load_project(project_id, edit=True)
    if error:
        return error

    form = bind_form(PanelLayoutForm, payload)
    if not form.validate():
        return form_error(form)

    layout = PanelLayout(
        page_number=form.page_number.data,
        layout=form.layout.data,
        created_by=g.user.id,
    )
    try:
        project.panel_layouts.append(layout)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the panel layout.")

    return json_success(201, "Panel layout saved.", panel_layout=layout.to_dict())


@projects_bp.route("/panel-layouts/<int:layout_id>", methods=["PATCH"])
def update_panel_layout(layout_id: int):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    layout = db.session.get(PanelLayout, layout_id)
    if layout is None:
        return json_error("Panel layout not found.", 404)
    _, error = load_project(layout.project_id, edit=True)
    if error:
        return error

    form = bind_form(PanelLayoutForm, payload, obj=layout)
    if not form.validate():
        return form_error(form)

    try:
        for name, value in form_changes(form, payload).items():
            setattr(layout, name, value)
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to save the panel layout.")

    return json_success(message="Panel layout updated.", panel_layout=layout.to_dict())
