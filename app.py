import logging
import os
import sys

import click
from flask import Flask, g, jsonify, request
from flask_migrate import Migrate
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from config import config
from database import db


def configure_logging(app):
    """Attach one stream handler to the root logger at the configured level."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if not any(getattr(handler, "_panelpeace", False) for handler in root.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        )
        handler._panelpeace = True
        root.addHandler(handler)
    # Werkzeug's request log is noisy at DEBUG
    logging.getLogger("werkzeug").setLevel(max(level, logging.INFO))


# Initialize Flask app
app = Flask(__name__)
config_name = os.getenv("PANELPEACE_ENV", "default")
app.config.from_object(config.get(config_name, config["default"]))
configure_logging(app)

db.init_app(app)

# Models import should be after initializing db
from models.user import User, EditorRole
from models.project import Project
from models.workflow_step import WorkflowStep
from models.asset import Asset
from models.feedback import FeedbackItem, Comment
from models.deadline import Deadline
from models.collaborator import Collaborator, ProjectEditor
from models.file_link import FileLink, FileUpload
from models.panel_layout import PanelLayout

from forms import ChangePasswordForm, LoginForm, SignupForm, UserProfileForm, bind_form, form_changes
from routes import form_error, json_error, json_payload, json_success, require_csrf, save_failed
from routes.assets import assets_bp
from routes.projects import projects_bp
from routes.workflow import workflow_bp
from routes.feedback import feedback_bp
from routes.deadlines import deadlines_bp
from routes.dashboard import dashboard_bp
from services.auth_service import auth_context

# Create flask command lines to update the db based on the model
# Useage:
# Create a migration script in ./migrations/versions
# > flask db migrate -m "Update comments"
# Run the update
# > flask db upgrade
migrate = Migrate(app, db)
app.register_blueprint(projects_bp)
app.register_blueprint(assets_bp)
app.register_blueprint(workflow_bp)
app.register_blueprint(feedback_bp)
app.register_blueprint(deadlines_bp)
app.register_blueprint(dashboard_bp)

# User Authentication
# ------------------------------
login_exempt_routes = ["login", "signup", "health", "static"]


@app.before_request
def require_login():
    """All routes require a User logged in, except the ones listed in login_exempt_routes

    The signed-in user is resolved through the auth context and stored in g.user
    for the rest of the request.

    Returns:
        A JSON 401 response when no user is found in session
    """
    g.user = auth_context.current_user()
    if g.user is None and request.endpoint and request.endpoint not in login_exempt_routes:
        return json_error("Please log in.", 401)


@app.route("/api/health", methods=["GET"])
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logging.error("Health check could not reach the database", exc_info=True)
        return jsonify({"status": "error", "database": "unavailable"}), 503
    return jsonify({"status": "ok", "database": "ok"})


@app.route("/api/signup", methods=["POST"])
def signup():
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    signup_form = bind_form(SignupForm, payload)
    if not signup_form.validate():
        return form_error(signup_form)

    user = User(
        username=signup_form.username.data,
        full_name=signup_form.full_name.data or None,
        email=signup_form.email.data or None,
        role=signup_form.role.data or None,
        is_editor=bool(signup_form.is_editor.data),
    )
    if user.is_editor:
        user.editor_role = signup_form.editor_role.data or EditorRole.EDITOR.value
    user.set_password(signup_form.password.data)
    try:
        db.session.add(user)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()  # Roll back the transaction
        logging.error("Unable to register user %s", user.username, exc_info=True)
        return json_error("Unable to complete registration.", 500)

    auth_context.login(user)
    return json_success(201, "Registration successful!", user=user.to_dict())


@app.route("/api/login", methods=["POST"])
def login():
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error

    login_form = bind_form(LoginForm, payload)
    if not login_form.validate():
        return form_error(login_form)

    user = auth_context.authenticate(login_form.username.data, login_form.password.data)
    if user is None:
        logging.info("Failed login for %s", login_form.username.data)
        return json_error("Invalid username or password", 401)
    auth_context.login(user)
    return json_success(message="Logged in.", user=user.to_dict())


@app.route("/api/logout", methods=["POST"])
def logout():
    auth_context.logout()
    g.user = None
    return json_success(message="Logged out.")


@app.route("/api/auth/user", methods=["GET"])
def current_user():
    return json_success(user=g.user.to_dict())


@app.route("/api/users", methods=["GET"])
def list_users():
    """Directory used when picking collaborators and editors."""
    query = User.query
    if request.args.get("editors") in ("1", "true"):
        query = query.filter(User.is_editor.is_(True))
    users = query.order_by(User.username).all()
    return json_success(users=[user.to_dict() for user in users])


# Profile fields a user may blank out; the editor flags are reserved for site admins.
USER_CLEARABLE_FIELDS = ("full_name", "email", "role", "avatar_url")
USER_ADMIN_FIELDS = ("is_editor", "editor_role", "has_edit_access")


@app.route("/api/users/<int:user_id>", methods=["GET"])
def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        return json_error("User not found.", 404)
    return json_success(user=user.to_dict())


@app.route("/api/users/<int:user_id>", methods=["PATCH"])
def update_user(user_id):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    user = db.session.get(User, user_id)
    if user is None:
        return json_error("User not found.", 404)
    if user.id != g.user.id and not g.user.is_site_admin:
        return json_error("You can only update your own profile.", 403)
    if not g.user.is_site_admin and any(name in payload for name in USER_ADMIN_FIELDS):
        return json_error("Only a site admin can change editor access.", 403)

    profile_form = bind_form(UserProfileForm, payload, obj=user)
    profile_form.user_id = user.id
    if not profile_form.validate():
        return form_error(profile_form)

    for name, value in form_changes(profile_form, payload, USER_CLEARABLE_FIELDS).items():
        if name in USER_CLEARABLE_FIELDS:
            value = value or None
        setattr(user, name, value)
    if not user.is_editor:
        user.editor_role = None
    elif not user.editor_role:
        user.editor_role = EditorRole.EDITOR.value
    try:
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to update the profile.")

    return json_success(message="Profile updated.", user=user.to_dict())


@app.route("/api/users/<int:user_id>/change-password", methods=["POST"])
def change_password(user_id):
    payload = json_payload()
    error = require_csrf(payload)
    if error:
        return error
    if user_id != g.user.id:
        return json_error("You can only change your own password.", 403)

    password_form = bind_form(ChangePasswordForm, payload)
    if not password_form.validate():
        return form_error(password_form)
    if not g.user.check_password(password_form.current_password.data):
        password_form.current_password.errors.append("Current password is incorrect.")
        return form_error(password_form)

    g.user.set_password(password_form.new_password.data)
    try:
        db.session.commit()
    except SQLAlchemyError:
        return save_failed("Unable to change the password.")

    logging.info("User %s changed their password", g.user.id)
    return json_success(message="Password changed successfully.")


# CLI
# ------------------------------


@app.cli.command("create-admin")
@click.argument("username")
@click.password_option()
@click.option("--full-name", default=None, help="Display name for the account.")
def create_admin(username, password, full_name):
    """Create a site admin with editor-in-chief rights."""
    if User.query.filter_by(username=username).first():
        raise click.ClickException(f"User '{username}' already exists.")
    user = User(
        username=username,
        full_name=full_name,
        is_editor=True,
        is_site_admin=True,
        editor_role=EditorRole.EDITOR_IN_CHIEF.value,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f"Created site admin '{username}'.")


# Application Execution
# ------------------------------
if __name__ == "__main__":
    app.run(debug=app.config.get("DEBUG", False))
