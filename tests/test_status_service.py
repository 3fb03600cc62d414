import unittest

from services.status_service import (
    NEUTRAL_COLORS,
    classify_priority,
    classify_status,
    format_priority_label,
    format_status_label,
    get_priority_color,
    get_status_color,
)


class StatusColorTestCase(unittest.TestCase):
    def test_known_statuses_map_to_their_palette(self):
        self.assertEqual(get_status_color("in_progress").bg, "bg-success")
        self.assertEqual(get_status_color("needs_review").text, "text-warning")
        self.assertEqual(get_status_color("delayed").bg_light, "bg-danger/10")
        self.assertEqual(get_status_color("completed").bg, "bg-primary")

    def test_unknown_or_malformed_status_is_neutral(self):
        for value in ("overdue", "", None, 42, ["in_progress"]):
            with self.subTest(value=value):
                self.assertEqual(get_status_color(value), NEUTRAL_COLORS)

    def test_priority_palette(self):
        self.assertEqual(get_priority_color("high").text, "text-danger")
        self.assertEqual(get_priority_color("medium").text, "text-warning")
        self.assertEqual(get_priority_color("low").text, "text-success")
        self.assertEqual(get_priority_color("urgent"), NEUTRAL_COLORS)


class StatusLabelTestCase(unittest.TestCase):
    def test_fixed_and_derived_labels(self):
        self.assertEqual(format_status_label("needs_review"), "Needs Review")
        self.assertEqual(format_status_label("in_progress"), "In Progress")
        self.assertEqual(format_status_label("not_started"), "Not Started")
        self.assertEqual(format_status_label("review"), "Review")

    def test_empty_labels(self):
        self.assertEqual(format_status_label(""), "")
        self.assertEqual(format_status_label(None), "")
        self.assertEqual(format_priority_label(None), "")

    def test_priority_label(self):
        self.assertEqual(format_priority_label("high"), "High")

    def test_classification_serializes_colors_and_label(self):
        payload = classify_priority("high").to_dict()
        self.assertEqual(payload["label"], "High")
        self.assertEqual(payload["colors"]["bg"], "bg-danger")

        neutral = classify_status(None).to_dict()
        self.assertEqual(neutral["label"], "")
        self.assertEqual(neutral["colors"]["bg"], NEUTRAL_COLORS.bg)


if __name__ == "__main__":
    unittest.main()
