import unittest
from datetime import datetime, timedelta

from tests.utils.app_case import ApiTestCase
from app import app, db
from models.deadline import Deadline
from models.feedback import FeedbackItem


class FeedbackTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.editor_id = self._create_user("editor")
        self.talent_id = self._create_user("inker", is_editor=False)
        self.outsider_id = self._create_user("letterer", is_editor=False)
        self._login(self.editor_id)
        self.project_id = self._create_project()
        self.client.post(
            f"/api/projects/{self.project_id}/collaborators",
            json={"user_id": self.talent_id, "role": "inker"},
        )
        self.asset_id = self.client.post(
            "/api/assets",
            json={"project_id": self.project_id, "name": "Page 3", "asset_type": "page"},
        ).get_json()["asset"]["id"]

    def _create_feedback(self, **fields):
        payload = {
            "project_id": self.project_id,
            "title": "Tighten panel 3",
            "description": "Line weight on **panel 3** is too thin.",
            "asset_type": "page",
            "asset_id": self.asset_id,
        }
        payload.update(fields)
        response = self.client.post("/api/feedback", json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["feedback_item"]

    def test_create_renders_markdown(self):
        item = self._create_feedback(priority="high")
        self.assertEqual(item["status"], "pending")
        self.assertEqual(item["requested_by"], self.editor_id)
        self.assertIn("<strong>panel 3</strong>", item["description_html"])
        self.assertEqual(item["display"]["priority"]["label"], "High")
        self.assertEqual(item["asset_name"], "Page 3")

    def test_markdown_is_sanitized(self):
        item = self._create_feedback(description="<script>alert(1)</script> ok")
        self.assertNotIn("<script>", item["description_html"])

    def test_collaborators_cannot_raise_feedback(self):
        self._login(self.talent_id)
        response = self.client.post(
            "/api/feedback",
            json={"project_id": self.project_id, "title": "Mine", "asset_type": "page"},
        )
        self.assertEqual(response.status_code, 403)

    def test_project_feedback_filters(self):
        self._create_feedback(title="Urgent", priority="high")
        self._create_feedback(title="Minor", priority="low")
        resolved = self._create_feedback(title="Done", priority="high")
        self.client.patch(f"/api/feedback/{resolved['id']}", json={"status": "resolved"})

        high = self.client.get(f"/api/projects/{self.project_id}/feedback?priority=high").get_json()["feedback"]
        self.assertEqual({item["title"] for item in high}, {"Urgent", "Done"})

        pending_high = self.client.get(
            f"/api/projects/{self.project_id}/feedback?priority=high&status=pending"
        ).get_json()["feedback"]
        self.assertEqual([item["title"] for item in pending_high], ["Urgent"])

        everything = self.client.get(f"/api/projects/{self.project_id}/feedback?status=all").get_json()["feedback"]
        self.assertEqual(len(everything), 3)

        pending = self.client.get("/api/feedback").get_json()["feedback"]
        self.assertEqual({item["title"] for item in pending}, {"Urgent", "Minor"})

    def test_patch_validates_choices(self):
        item = self._create_feedback()
        response = self.client.patch(f"/api/feedback/{item['id']}", json={"priority": "critical"})
        self.assertEqual(response.status_code, 400)
        cleared = self.client.patch(f"/api/feedback/{item['id']}", json={"description": None})
        self.assertEqual(cleared.status_code, 200)
        self.assertIsNone(cleared.get_json()["feedback_item"]["description"])

    def test_comment_thread(self):
        item = self._create_feedback()

        self._login(self.talent_id)
        first = self.client.post("/api/comments", json={"feedback_id": item["id"], "content": "On it."})
        self.assertEqual(first.status_code, 201, first.get_json())

        self._login(self.editor_id)
        second = self.client.post("/api/comments", json={"feedback_id": item["id"], "content": "Thanks!"})
        self.assertEqual(second.status_code, 201)

        comments = self.client.get(f"/api/feedback/{item['id']}/comments").get_json()["comments"]
        self.assertEqual([comment["content"] for comment in comments], ["On it.", "Thanks!"])
        self.assertEqual(comments[0]["author"], "Inker")

        detail = self.client.get(f"/api/feedback/{item['id']}").get_json()["feedback_item"]
        self.assertEqual(detail["comment_count"], 2)

        empty = self.client.post("/api/comments", json={"feedback_id": item["id"], "content": ""})
        self.assertEqual(empty.status_code, 400)

    def test_comment_deletion_rules(self):
        item = self._create_feedback()
        editor_comment = self.client.post(
            "/api/comments", json={"feedback_id": item["id"], "content": "Editor note"}
        ).get_json()["comment"]

        self._login(self.talent_id)
        talent_comment = self.client.post(
            "/api/comments", json={"feedback_id": item["id"], "content": "Talent note"}
        ).get_json()["comment"]
        self.assertEqual(self.client.delete(f"/api/comments/{editor_comment['id']}").status_code, 403)
        self.assertEqual(self.client.delete(f"/api/comments/{talent_comment['id']}").status_code, 200)

        self._login(self.editor_id)
        self.assertEqual(self.client.delete(f"/api/comments/{editor_comment['id']}").status_code, 200)

    def test_outsiders_cannot_see_feedback(self):
        item = self._create_feedback()
        self._login(self.outsider_id)
        self.assertEqual(self.client.get(f"/api/feedback/{item['id']}").status_code, 403)
        self.assertEqual(self.client.get("/api/feedback").get_json()["feedback"], [])
        response = self.client.post("/api/comments", json={"feedback_id": item["id"], "content": "Hi"})
        self.assertEqual(response.status_code, 403)

    def test_deleting_project_removes_feedback(self):
        item = self._create_feedback()
        self.client.post("/api/comments", json={"feedback_id": item["id"], "content": "note"})
        self.assertEqual(self.client.delete(f"/api/projects/{self.project_id}").status_code, 200)
        with app.app_context():
            self.assertIsNone(db.session.get(FeedbackItem, item["id"]))


class DeadlineTestCase(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.editor_id = self._create_user("editor")
        self._login(self.editor_id)
        self.project_id = self._create_project()
        self.now = datetime.utcnow()

    def _create_deadline(self, title, due_date, **fields):
        payload = {"project_id": self.project_id, "title": title, "due_date": due_date.isoformat()}
        payload.update(fields)
        response = self.client.post("/api/deadlines", json=payload)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["deadline"]

    def test_deadlines_are_sorted_by_due_date(self):
        self._create_deadline("Letters", self.now + timedelta(days=20))
        self._create_deadline("Plot", self.now + timedelta(days=2))
        self._create_deadline("Covers", self.now + timedelta(days=10))

        deadlines = self.client.get(f"/api/projects/{self.project_id}/deadlines").get_json()["deadlines"]
        self.assertEqual([deadline["title"] for deadline in deadlines], ["Plot", "Covers", "Letters"])
        self.assertEqual(deadlines[0]["display"]["due"]["risk"], "at_risk")

    def test_upcoming_list_skips_past_and_completed(self):
        self._create_deadline("Past", self.now - timedelta(days=3))
        self._create_deadline("Finished", self.now + timedelta(days=2), status="completed")
        soon = self._create_deadline("Soon", self.now + timedelta(days=4), priority="high")

        upcoming = self.client.get("/api/deadlines").get_json()["deadlines"]
        self.assertEqual([deadline["id"] for deadline in upcoming], [soon["id"]])
        self.assertEqual(upcoming[0]["project_title"], "Night Shift")

    def test_due_date_is_required(self):
        response = self.client.post("/api/deadlines", json={"project_id": self.project_id, "title": "Undated"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("due_date", response.get_json()["errors"])

        garbled = self.client.post(
            "/api/deadlines",
            json={"project_id": self.project_id, "title": "Bad", "due_date": "next tuesday"},
        )
        self.assertEqual(garbled.status_code, 400)

    def test_update_and_delete(self):
        deadline = self._create_deadline("Pencils", self.now + timedelta(days=5))
        updated = self.client.patch(f"/api/deadlines/{deadline['id']}", json={"status": "missed"})
        self.assertEqual(updated.status_code, 200, updated.get_json())
        self.assertEqual(updated.get_json()["deadline"]["status"], "missed")
        self.assertEqual(updated.get_json()["deadline"]["title"], "Pencils")

        self.assertEqual(self.client.delete(f"/api/deadlines/{deadline['id']}").status_code, 200)
        with app.app_context():
            self.assertIsNone(db.session.get(Deadline, deadline["id"]))
        self.assertEqual(self.client.delete(f"/api/deadlines/{deadline['id']}").status_code, 404)


class DashboardTestCase(ApiTestCase):
    def test_stats_cover_visible_projects_only(self):
        editor_id = self._create_user("editor")
        other_id = self._create_user("other_editor")
        now = datetime.utcnow()

        self._login(other_id)
        hidden_project = self._create_project(title="Hidden")
        self.client.post(
            "/api/deadlines",
            json={"project_id": hidden_project, "title": "Hidden", "due_date": (now + timedelta(days=1)).isoformat()},
        )

        self._login(editor_id)
        active = self._create_project(title="Active")
        self._create_project(title="Shipped", status="completed")
        self._create_project(title="Stalled", status="delayed")
        self.client.post(
            "/api/feedback",
            json={"project_id": active, "title": "Fix colors", "asset_type": "page"},
        )
        for days in (1, 3, 12):
            self.client.post(
                "/api/deadlines",
                json={"project_id": active, "title": f"In {days}", "due_date": (now + timedelta(days=days)).isoformat()},
            )

        stats = self.client.get("/api/dashboard/stats").get_json()["stats"]
        self.assertEqual(
            stats,
            {
                "total_projects": 3,
                "active_projects": 1,
                "completed_projects": 1,
                "pending_feedback": 1,
                "upcoming_deadlines": 2,
            },
        )


if __name__ == "__main__":
    unittest.main()
