"""Shared helpers for route blueprints."""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app, g, jsonify, request
from flask_wtf.csrf import generate_csrf, validate_csrf
from wtforms.validators import ValidationError

from database import db
from services.project_service import get_project_for_user

__all__ = [
    "csrf_token_value",
    "form_error",
    "json_error",
    "json_payload",
    "json_success",
    "load_project",
    "require_csrf",
    "require_project_manager",
    "save_failed",
    "service_error",
    "validate_request_csrf",
]


def validate_request_csrf(token: str | None) -> tuple[bool, str | None]:
    """Validate CSRF tokens supplied with JSON payloads."""
    if not current_app.config.get("WTF_CSRF_ENABLED", True):
        return True, None
    if not token:
        return False, "The CSRF token is missing."
    try:
        validate_csrf(token)
    except ValidationError:
        return (
            False,
            "The CSRF token is invalid or has expired. Please refresh and try again.",
        )
    return True, None


def csrf_token_value() -> str:
    """Return a fresh CSRF token for subsequent submissions."""
    return generate_csrf()


def json_payload() -> dict[str, Any]:
    """Return the JSON body as a dict; anything else becomes an empty payload."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def json_error(message: str, status: int = 400, **extra):
    body = {"success": False, "message": message, "csrf_token": csrf_token_value()}
    body.update(extra)
    return jsonify(body), status


def json_success(status: int = 200, message: str | None = None, **payload):
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    body.update(payload)
    body["csrf_token"] = csrf_token_value()
    return jsonify(body), status


def form_error(form, message: str | None = None, status: int = 400):
    """Return a JSON response detailing form errors."""
    return json_error(
        message or "Please correct the highlighted fields.",
        status,
        errors=form.errors,
    )


def service_error(exc: Exception):
    """Map the exceptions raised by the service layer onto HTTP responses."""
    if isinstance(exc, PermissionError):
        return json_error(str(exc) or "You do not have access to this resource.", 403)
    if isinstance(exc, LookupError):
        return json_error(str(exc) or "Not found.", 404)
    return json_error(str(exc) or "Invalid request.", 400)


def load_project(project_id: int, *, edit: bool = False):
    """Return ``(project, None)`` or ``(None, error_response)`` for the signed-in user."""
    try:
        return get_project_for_user(project_id, g.user, edit=edit), None
    except (LookupError, PermissionError) as exc:
        return None, service_error(exc)


def save_failed(message: str):
    """Roll back the session, log the database error and answer with a 500."""
    db.session.rollback()
    logging.error(message, exc_info=True)
    return json_error(message, 500)


def require_csrf(payload: dict[str, Any]):
    """Return an error response when the payload's CSRF token does not validate."""
    token = payload.get("csrf_token") or request.headers.get("X-CSRFToken")
    valid, message = validate_request_csrf(token)
    if not valid:
        logging.warning("Rejected %s %s: %s", request.method, request.path, message)
        return json_error(message or "The CSRF token is invalid.", 400)
    return None


def require_project_manager():
    """Return a 403 response unless the signed-in user may manage projects."""
    user = getattr(g, "user", None)
    if user is None or not user.can_manage_projects:
        return json_error("Editor access is required for this action.", 403)
    return None
