"""Project access control, editor assignment and presentation."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy import or_

from database import db
from models.collaborator import Collaborator, ProjectEditor
from models.project import SCHEDULE_METRIC_FIELDS, Project
from models.user import EditorRole, User
from services.progress_service import aggregate_progress
from services.schedule_service import get_project_due_info, get_schedule_badge
from services.status_service import classify_status
from services.workflow_service import reinitialize_workflow


def _is_assigned_editor(user: User, project: Project) -> bool:
    return any(assignment.user_id == user.id for assignment in project.editors)


def _is_collaborator(user: User, project: Project) -> bool:
    return any(collaborator.user_id == user.id for collaborator in project.collaborators)


def user_can_view_project(user: User | None, project: Project | None) -> bool:
    """True for site admins, the creator, assigned editors and collaborators."""
    if user is None or project is None:
        return False
    if user.is_site_admin or project.created_by == user.id:
        return True
    return _is_assigned_editor(user, project) or _is_collaborator(user, project)


def user_can_edit_project(user: User | None, project: Project | None) -> bool:
    if user is None or project is None:
        return False
    if user.is_site_admin:
        return True
    if not user.can_manage_projects:
        return False
    return project.created_by == user.id or _is_assigned_editor(user, project)


def user_can_delete_project(user: User | None, project: Project | None) -> bool:
    """Deletion follows editorial seniority.

    The editor-in-chief may delete anything, a senior editor may delete their
    own projects and those created by regular editors, and a regular editor
    only their own.
    """
    if user is None or project is None:
        return False
    if user.is_site_admin:
        return True
    if not user.is_editor:
        return False

    role = user.editor_role_enum or EditorRole.EDITOR
    if role == EditorRole.EDITOR_IN_CHIEF:
        return True
    if project.created_by == user.id:
        return True
    if role == EditorRole.SENIOR_EDITOR:
        creator = project.creator
        if creator is None:
            return False
        creator_role = creator.editor_role_enum or EditorRole.EDITOR
        return creator_role == EditorRole.EDITOR and not creator.is_site_admin
    return False


def user_can_assign_editors(user: User | None, project: Project | None) -> bool:
    if user is None or project is None:
        return False
    return bool(user.is_site_admin or project.created_by == user.id)


def user_can_remove_editor(user: User | None, project: Project | None, editor_user_id: int) -> bool:
    """Creators and site admins manage the editor list; editors may leave on their own."""
    if user is None or project is None:
        return False
    return user_can_assign_editors(user, project) or user.id == editor_user_id


def visible_projects_query(user: User):
    """Query of the projects ``user`` may see, newest first."""
    query = Project.query
    if not user.is_site_admin:
        editor_ids = db.session.query(ProjectEditor.project_id).filter(ProjectEditor.user_id == user.id)
        collaborator_ids = db.session.query(Collaborator.project_id).filter(Collaborator.user_id == user.id)
        query = query.filter(
            or_(
                Project.created_by == user.id,
                Project.id.in_(editor_ids),
                Project.id.in_(collaborator_ids),
            )
        )
    return query.order_by(Project.created_at.desc(), Project.id.desc())


def get_project_for_user(project_id: int, user: User | None, *, edit: bool = False) -> Project:
    """Load a project or raise ``LookupError`` / ``PermissionError``."""
    project = db.session.get(Project, project_id)
    if project is None:
        raise LookupError("Project not found.")
    if not user_can_view_project(user, project):
        raise PermissionError("You do not have access to this project.")
    if edit and not user_can_edit_project(user, project):
        raise PermissionError("You do not have permission to modify this project.")
    return project


def create_project(user: User, fields: Mapping[str, Any]) -> Project:
    """Create a project owned by ``user`` and assign them as its first editor."""
    if not user.can_manage_projects:
        raise PermissionError("Only editors with edit access can create projects.")
    project = Project(created_by=user.id)
    for name, value in fields.items():
        if value is not None:
            setattr(project, name, value)
    db.session.add(project)
    db.session.flush()
    assign_editor(project, user, assigned_by=user, assignment_role=user.editor_role or EditorRole.EDITOR.value)
    return project


def update_project(project: Project, changes: Mapping[str, Any], today: Optional[datetime] = None) -> bool:
    """Apply ``changes``; re-plan the workflow when a schedule metric moved.

    Returns True when the workflow was re-planned.
    """
    schedule_changed = any(
        name in changes and changes[name] is not None and changes[name] != getattr(project, name)
        for name in SCHEDULE_METRIC_FIELDS
    )
    for name, value in changes.items():
        setattr(project, name, value)
    if schedule_changed and project.workflow_steps:
        logging.info("Schedule metrics changed on project %s; re-planning workflow", project.id)
        reinitialize_workflow(project, today)
        return True
    return False


def assign_editor(
    project: Project,
    editor: User,
    *,
    assigned_by: User | None,
    assignment_role: str = EditorRole.EDITOR.value,
) -> ProjectEditor:
    if not (editor.is_editor or editor.is_site_admin):
        raise ValueError("Only editorial staff can be assigned as project editors.")
    if any(existing.user_id == editor.id for existing in project.editors):
        raise ValueError("This user is already an editor on the project.")
    assignment = ProjectEditor(
        user=editor,
        assigned_by=assigned_by.id if assigned_by else None,
        assignment_role=assignment_role,
    )
    project.editors.append(assignment)
    return assignment


def remove_editor(project: Project, editor_user_id: int) -> None:
    for assignment in list(project.editors):
        if assignment.user_id == editor_user_id:
            project.editors.remove(assignment)
            return
    raise LookupError("Editor assignment not found.")


def add_collaborator(project: Project, user: User, role: str) -> Collaborator:
    if _is_collaborator(user, project):
        raise ValueError("This user is already a collaborator on the project.")
    collaborator = Collaborator(user=user, role=role)
    project.collaborators.append(collaborator)
    return collaborator


def remove_collaborator(project: Project, user_id: int) -> None:
    for collaborator in list(project.collaborators):
        if collaborator.user_id == user_id:
            project.collaborators.remove(collaborator)
            return
    raise LookupError("Collaborator not found.")


def serialize_project(
    project: Project,
    current_user: User | None = None,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """Return the project as JSON with its derived display state."""
    payload = project.to_dict()
    payload["creator"] = project.creator.display_name if project.creator else None
    payload["total_page_count"] = project.total_page_count
    payload["display"] = {
        "status": classify_status(project.status).to_dict(),
        "due": get_project_due_info(project.status, project.due_date, now).to_dict(),
        "schedule": get_schedule_badge(project.status, project.due_date, now).to_dict(),
        "workflow_progress": aggregate_progress(step.progress for step in project.workflow_steps),
    }
    if current_user is not None:
        payload["permissions"] = {
            "can_edit": user_can_edit_project(current_user, project),
            "can_delete": user_can_delete_project(current_user, project),
            "can_assign_editors": user_can_assign_editors(current_user, project),
        }
    return payload
