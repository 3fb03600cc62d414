import unittest
from datetime import datetime

from tests.utils.app_case import ApiTestCase
from app import app, db
from models.collaborator import ProjectEditor
from models.project import Project
from models.workflow_step import WorkflowStep


class ProjectAccessTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.editor_id = self._create_user("editor")
        self.other_editor_id = self._create_user("other_editor")
        self.senior_id = self._create_user("senior", editor_role="senior_editor")
        self.chief_id = self._create_user("chief", editor_role="editor_in_chief")
        self.talent_id = self._create_user("penciler", is_editor=False, role="penciler")

    def test_creator_is_assigned_as_first_editor(self):
        self._login(self.editor_id)
        project_id = self._create_project(due_date="2027-03-01T00:00:00Z", interior_page_count=24)

        with app.app_context():
            project = db.session.get(Project, project_id)
            self.assertEqual(project.created_by, self.editor_id)
            self.assertEqual(project.interior_page_count, 24)
            self.assertEqual(project.due_date, datetime(2027, 3, 1))
            self.assertEqual(project.status, "in_progress")
            self.assertEqual([assignment.user_id for assignment in project.editors], [self.editor_id])

    def test_talent_cannot_create_projects(self):
        self._login(self.talent_id)
        response = self.client.post("/api/projects", json={"title": "Side Quest"})
        self.assertEqual(response.status_code, 403)

    def test_title_is_required(self):
        self._login(self.editor_id)
        response = self.client.post("/api/projects", json={"issue": "#2"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("title", response.get_json()["errors"])

    def test_page_counts_are_capped(self):
        self._login(self.editor_id)
        too_long = self.client.post("/api/projects", json={"title": "Omnibus", "interior_page_count": 1000})
        self.assertEqual(too_long.status_code, 400)
        self.assertIn("interior_page_count", too_long.get_json()["errors"])

        project_id = self._create_project(interior_page_count=150)
        combined = self.client.patch(f"/api/projects/{project_id}", json={"filler_page_count": 60})
        self.assertEqual(combined.status_code, 400)
        self.assertIn("filler_page_count", combined.get_json()["errors"])

        at_cap = self.client.patch(f"/api/projects/{project_id}", json={"filler_page_count": 50})
        self.assertEqual(at_cap.status_code, 200, at_cap.get_json())

    def test_visibility_follows_membership(self):
        self._login(self.editor_id)
        project_id = self._create_project()

        self._login(self.other_editor_id)
        self.assertEqual(self.client.get("/api/projects").get_json()["projects"], [])
        self.assertEqual(self.client.get(f"/api/projects/{project_id}").status_code, 403)
        self.assertEqual(self.client.get("/api/projects/9999").status_code, 404)

        self._login(self.editor_id)
        added = self.client.post(
            f"/api/projects/{project_id}/collaborators",
            json={"user_id": self.talent_id, "role": "penciler"},
        )
        self.assertEqual(added.status_code, 201, added.get_json())

        self._login(self.talent_id)
        listed = self.client.get("/api/projects").get_json()["projects"]
        self.assertEqual([project["id"] for project in listed], [project_id])
        self.assertFalse(listed[0]["permissions"]["can_edit"])

        # Collaborators can look but not change the project.
        patch = self.client.patch(f"/api/projects/{project_id}", json={"title": "Renamed"})
        self.assertEqual(patch.status_code, 403)

    def test_status_filter(self):
        self._login(self.editor_id)
        self._create_project(title="Active")
        self._create_project(title="Shipped", status="completed")

        completed = self.client.get("/api/projects?status=completed").get_json()["projects"]
        self.assertEqual([project["title"] for project in completed], ["Shipped"])
        self.assertEqual(completed[0]["display"]["due"]["text"], "Completed")
        self.assertEqual(len(self.client.get("/api/projects?status=all").get_json()["projects"]), 2)

    def test_patch_can_clear_optional_fields(self):
        self._login(self.editor_id)
        project_id = self._create_project(description="Draft", due_date="2027-01-15T00:00:00")

        response = self.client.patch(
            f"/api/projects/{project_id}",
            json={"description": None, "due_date": None, "status": "needs_review"},
        )
        self.assertEqual(response.status_code, 200, response.get_json())
        project = response.get_json()["project"]
        self.assertIsNone(project["description"])
        self.assertIsNone(project["due_date"])
        self.assertEqual(project["status"], "needs_review")
        self.assertEqual(project["title"], "Night Shift")


class ProjectDeletionTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.editor_id = self._create_user("editor")
        self.other_editor_id = self._create_user("other_editor")
        self.senior_id = self._create_user("senior", editor_role="senior_editor")
        self.chief_id = self._create_user("chief", editor_role="editor_in_chief")

    def _share(self, project_id, user_id):
        response = self.client.post(f"/api/projects/{project_id}/editors", json={"user_id": user_id})
        self.assertEqual(response.status_code, 201, response.get_json())

    def test_regular_editor_cannot_delete_someone_elses_project(self):
        self._login(self.senior_id)
        project_id = self._create_project()
        self._share(project_id, self.editor_id)

        self._login(self.editor_id)
        self.assertEqual(self.client.delete(f"/api/projects/{project_id}").status_code, 403)

    def test_senior_editor_can_delete_regular_editors_project(self):
        self._login(self.editor_id)
        project_id = self._create_project()
        self._share(project_id, self.senior_id)

        self._login(self.senior_id)
        response = self.client.delete(f"/api/projects/{project_id}")
        self.assertEqual(response.status_code, 200)
        with app.app_context():
            self.assertIsNone(db.session.get(Project, project_id))

    def test_senior_editor_cannot_delete_chiefs_project(self):
        self._login(self.chief_id)
        project_id = self._create_project()
        self._share(project_id, self.senior_id)

        self._login(self.senior_id)
        self.assertEqual(self.client.delete(f"/api/projects/{project_id}").status_code, 403)

    def test_editor_in_chief_can_delete_anything_they_can_see(self):
        self._login(self.other_editor_id)
        project_id = self._create_project()
        self._initialize_workflow(project_id)
        self._share(project_id, self.chief_id)

        self._login(self.chief_id)
        self.assertEqual(self.client.delete(f"/api/projects/{project_id}").status_code, 200)
        with app.app_context():
            self.assertEqual(WorkflowStep.query.filter_by(project_id=project_id).count(), 0)


class ProjectEditorTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner_id = self._create_user("owner")
        self.editor_id = self._create_user("assistant_editor")
        self.talent_id = self._create_user("inker", is_editor=False)
        self._login(self.owner_id)
        self.project_id = self._create_project()

    def test_assign_and_remove_editor(self):
        response = self.client.post(
            f"/api/projects/{self.project_id}/editors",
            json={"user_id": self.editor_id, "assignment_role": "senior_editor"},
        )
        self.assertEqual(response.status_code, 201, response.get_json())
        self.assertEqual(response.get_json()["editor"]["assigned_by"], self.owner_id)

        duplicate = self.client.post(f"/api/projects/{self.project_id}/editors", json={"user_id": self.editor_id})
        self.assertEqual(duplicate.status_code, 400)

        editors = self.client.get(f"/api/projects/{self.project_id}/editors").get_json()["editors"]
        self.assertEqual({editor["user_id"] for editor in editors}, {self.owner_id, self.editor_id})

        # An assigned editor may leave on their own.
        self._login(self.editor_id)
        self.assertEqual(
            self.client.delete(f"/api/projects/{self.project_id}/editors/{self.editor_id}").status_code,
            200,
        )
        with app.app_context():
            self.assertIsNone(
                ProjectEditor.query.filter_by(project_id=self.project_id, user_id=self.editor_id).first()
            )

    def test_only_editorial_staff_can_be_assigned(self):
        response = self.client.post(f"/api/projects/{self.project_id}/editors", json={"user_id": self.talent_id})
        self.assertEqual(response.status_code, 400)

    def test_assigned_editor_cannot_manage_editor_list(self):
        self.client.post(f"/api/projects/{self.project_id}/editors", json={"user_id": self.editor_id})
        third_id = self._create_user("third_editor")

        self._login(self.editor_id)
        response = self.client.post(f"/api/projects/{self.project_id}/editors", json={"user_id": third_id})
        self.assertEqual(response.status_code, 403)
        removal = self.client.delete(f"/api/projects/{self.project_id}/editors/{self.owner_id}")
        self.assertEqual(removal.status_code, 403)

    def test_collaborator_lifecycle(self):
        added = self.client.post(
            f"/api/projects/{self.project_id}/collaborators",
            json={"user_id": self.talent_id, "role": "inker"},
        )
        self.assertEqual(added.status_code, 201)
        self.assertEqual(added.get_json()["collaborator"]["user"]["username"], "inker")

        again = self.client.post(
            f"/api/projects/{self.project_id}/collaborators",
            json={"user_id": self.talent_id, "role": "inker"},
        )
        self.assertEqual(again.status_code, 400)

        removed = self.client.delete(f"/api/projects/{self.project_id}/collaborators/{self.talent_id}")
        self.assertEqual(removed.status_code, 200)
        missing = self.client.delete(f"/api/projects/{self.project_id}/collaborators/{self.talent_id}")
        self.assertEqual(missing.status_code, 404)


class ReplanningTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.editor_id = self._create_user("editor")
        self._login(self.editor_id)
        self.project_id = self._create_project(initialize_workflow=True)

    def test_changing_page_count_replans_in_place(self):
        steps = self.client.get(f"/api/projects/{self.project_id}/workflow-steps").get_json()["workflow_steps"]
        self.assertEqual(len(steps), 11)
        pencils = self._step_of_type(steps, "pencils")
        progress = self.client.post(f"/api/workflow-steps/{pencils['id']}/progress", json={"count": 11})
        self.assertEqual(progress.status_code, 200, progress.get_json())

        response = self.client.patch(f"/api/projects/{self.project_id}", json={"interior_page_count": 30})
        self.assertEqual(response.status_code, 200, response.get_json())
        self.assertTrue(response.get_json()["workflow_replanned"])

        replanned = self.client.get(f"/api/projects/{self.project_id}/workflow-steps").get_json()["workflow_steps"]
        self.assertEqual([step["id"] for step in replanned], [step["id"] for step in steps])
        updated_pencils = self._step_of_type(replanned, "pencils")
        self.assertEqual(updated_pencils["progress"], 50)
        self.assertEqual(updated_pencils["status"], "in_progress")
        self.assertIn("30 interior pages", updated_pencils["description"])
        self.assertGreater(
            datetime.fromisoformat(updated_pencils["due_date"]),
            datetime.fromisoformat(pencils["due_date"]),
        )

    def test_unrelated_changes_do_not_replan(self):
        response = self.client.patch(f"/api/projects/{self.project_id}", json={"title": "Day Shift"})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.get_json()["workflow_replanned"])


class PanelLayoutTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.editor_id = self._create_user("editor")
        self._login(self.editor_id)
        self.project_id = self._create_project()

    def test_save_and_update_layout(self):
        layout = {"panels": [{"x": 0, "y": 0, "width": 100, "height": 50}]}
        created = self.client.post(
            f"/api/projects/{self.project_id}/panel-layouts",
            json={"page_number": 3, "layout": layout},
        )
        self.assertEqual(created.status_code, 201, created.get_json())
        layout_id = created.get_json()["panel_layout"]["id"]
        self.assertEqual(created.get_json()["panel_layout"]["layout"], layout)

        updated = self.client.patch(
            f"/api/panel-layouts/{layout_id}",
            json={"layout": [{"x": 10, "y": 10, "width": 40, "height": 40}]},
        )
        self.assertEqual(updated.status_code, 200, updated.get_json())
        self.assertEqual(updated.get_json()["panel_layout"]["page_number"], 3)

        listed = self.client.get(f"/api/projects/{self.project_id}/panel-layouts").get_json()["panel_layouts"]
        self.assertEqual(len(listed), 1)
        self.assertEqual(listed[0]["layout"][0]["x"], 10)

    def test_rejects_malformed_layouts(self):
        for layout in ({"panels": [{"x": 0, "y": 0, "width": -5, "height": 10}]}, {"rows": 3}, [1, 2]):
            with self.subTest(layout=layout):
                response = self.client.post(
                    f"/api/projects/{self.project_id}/panel-layouts",
                    json={"page_number": 1, "layout": layout},
                )
                self.assertEqual(response.status_code, 400)
                self.assertIn("layout", response.get_json()["errors"])


if __name__ == "__main__":
    unittest.main()
