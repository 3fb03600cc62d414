import unittest

from tests.utils.app_case import ApiTestCase
from app import app, db
from models.asset import Asset
from models.feedback import FeedbackItem


class AssetTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.editor_id = self._create_user("editor")
        self.talent_id = self._create_user("penciler", is_editor=False)
        self.outsider_id = self._create_user("outsider", is_editor=False)
        self._login(self.editor_id)
        self.project_id = self._create_project()
        self.client.post(
            f"/api/projects/{self.project_id}/collaborators",
            json={"user_id": self.talent_id, "role": "penciler"},
        )

    def _create_asset(self, project_id=None, **fields):
        payload = {"project_id": project_id or self.project_id, "name": "Issue 1 Script", "asset_type": "script"}
        payload.update(fields)
        response = self.client.post("/api/assets", json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["asset"]

    def test_create_and_list_assets(self):
        script = self._create_asset(file_path="scripts/issue-1.fdx")
        cover = self._create_asset(name="Cover A", asset_type="cover", thumbnail_url="https://cdn.example.com/a.png")
        self.assertEqual(script["created_by"], self.editor_id)

        assets = self.client.get(f"/api/projects/{self.project_id}/assets").get_json()["assets"]
        self.assertEqual([asset["id"] for asset in assets], [script["id"], cover["id"]])
        self.assertEqual(assets[0]["file_path"], "scripts/issue-1.fdx")

    def test_name_and_type_are_required(self):
        response = self.client.post("/api/assets", json={"project_id": self.project_id})
        self.assertEqual(response.status_code, 400)
        errors = response.get_json()["errors"]
        self.assertIn("name", errors)
        self.assertIn("asset_type", errors)

    def test_collaborators_read_but_do_not_create(self):
        asset = self._create_asset()
        self._login(self.talent_id)
        self.assertEqual(self.client.get(f"/api/assets/{asset['id']}").status_code, 200)
        response = self.client.post(
            "/api/assets",
            json={"project_id": self.project_id, "name": "Pages", "asset_type": "artwork"},
        )
        self.assertEqual(response.status_code, 403)

        self._login(self.outsider_id)
        self.assertEqual(self.client.get(f"/api/projects/{self.project_id}/assets").status_code, 403)

    def test_update_can_clear_file_path(self):
        asset = self._create_asset(file_path="scripts/draft.fdx")
        response = self.client.patch(f"/api/assets/{asset['id']}", json={"name": "Final Script", "file_path": None})
        self.assertEqual(response.status_code, 200, response.get_json())
        updated = response.get_json()["asset"]
        self.assertEqual(updated["name"], "Final Script")
        self.assertIsNone(updated["file_path"])
        self.assertEqual(updated["asset_type"], "script")

    def test_feedback_must_point_at_an_asset_of_the_project(self):
        other_project_id = self._create_project(title="Other Book")
        foreign = self._create_asset(project_id=other_project_id)

        response = self.client.post(
            "/api/feedback",
            json={"project_id": self.project_id, "title": "Typo", "asset_type": "script", "asset_id": foreign["id"]},
        )
        self.assertEqual(response.status_code, 404)

        missing = self.client.post(
            "/api/feedback",
            json={"project_id": self.project_id, "title": "Typo", "asset_type": "script", "asset_id": 9999},
        )
        self.assertEqual(missing.status_code, 404)

    def test_deleting_an_asset_unlinks_its_feedback(self):
        asset = self._create_asset()
        feedback = self.client.post(
            "/api/feedback",
            json={"project_id": self.project_id, "title": "Typo", "asset_type": "script", "asset_id": asset["id"]},
        ).get_json()["feedback_item"]
        self.assertEqual(feedback["asset_name"], "Issue 1 Script")

        self.assertEqual(self.client.delete(f"/api/assets/{asset['id']}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/assets/{asset['id']}").status_code, 404)
        with app.app_context():
            self.assertIsNone(db.session.get(Asset, asset["id"]))
            item = db.session.get(FeedbackItem, feedback["id"])
            self.assertIsNotNone(item)
            self.assertIsNone(item.asset_id)

    def test_deleting_the_project_removes_its_assets(self):
        asset = self._create_asset()
        self.assertEqual(self.client.delete(f"/api/projects/{self.project_id}").status_code, 200)
        with app.app_context():
            self.assertIsNone(db.session.get(Asset, asset["id"]))


if __name__ == "__main__":
    unittest.main()
