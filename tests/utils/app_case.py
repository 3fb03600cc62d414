"""Shared fixture for tests that drive the JSON API through the Flask test client."""

import os
import unittest

os.environ.setdefault("PANELPEACE_ENV", "testing")

from app import app, db  # noqa: E402
from models.user import EditorRole, User  # noqa: E402
from tests.utils.db import (  # noqa: E402
    cleanup_test_database,
    provision_test_database,
    rebuild_database_engine,
)


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self._original_database_uri = app.config.get("SQLALCHEMY_DATABASE_URI")
        self._original_testing = app.config.get("TESTING", False)
        self._original_csrf_enabled = app.config.get("WTF_CSRF_ENABLED", True)
        (
            self._test_db_name,
            test_database_uri,
            self._managed_test_db,
        ) = provision_test_database()
        app.config["TESTING"] = True
        app.config["SQLALCHEMY_DATABASE_URI"] = test_database_uri
        app.config["WTF_CSRF_ENABLED"] = False

        with app.app_context():
            db.session.remove()
            rebuild_database_engine(db, app.config["SQLALCHEMY_DATABASE_URI"])
            db.drop_all()
            db.create_all()

        self.client = app.test_client()

    def tearDown(self):
        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()

        if self._managed_test_db:
            cleanup_test_database(self._test_db_name)
        if self._original_database_uri is not None:
            app.config["SQLALCHEMY_DATABASE_URI"] = self._original_database_uri
        app.config["TESTING"] = self._original_testing
        app.config["WTF_CSRF_ENABLED"] = self._original_csrf_enabled

    def _create_user(self, username, *, is_editor=True, editor_role=EditorRole.EDITOR.value, **fields):
        with app.app_context():
            user = User(
                username=username,
                full_name=fields.pop("full_name", username.title()),
                email=fields.pop("email", f"{username}@example.com"),
                is_editor=is_editor,
                editor_role=editor_role if is_editor else None,
                **fields,
            )
            user.set_password("password123")
            db.session.add(user)
            db.session.commit()
            return user.id

    def _login(self, user_id):
        with self.client.session_transaction() as client_session:
            client_session["user_id"] = user_id

    def _logout(self):
        with self.client.session_transaction() as client_session:
            client_session.clear()

    def _create_project(self, **fields):
        payload = {"title": "Night Shift", "issue": "#1"}
        payload.update(fields)
        response = self.client.post("/api/projects", json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["project"]["id"]

    def _initialize_workflow(self, project_id):
        response = self.client.post(f"/api/projects/{project_id}/initialize-workflow", json={})
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["workflow_steps"]

    @staticmethod
    def _step_of_type(steps, step_type):
        return next(step for step in steps if step["step_type"] == step_type)
