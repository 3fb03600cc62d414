import unittest
from datetime import datetime, timedelta

from services.schedule_service import (
    TALENT_PROGRESS_COLORS,
    calculate_days_until,
    get_due_date_info,
    get_project_due_info,
    get_schedule_badge,
    get_talent_progress_color,
    get_talent_progress_status,
)
from services.status_service import NEUTRAL_COLORS

NOW = datetime(2026, 10, 18, 12, 0)


class DueDateInfoTestCase(unittest.TestCase):
    def test_days_are_counted_by_calendar_day(self):
        self.assertEqual(calculate_days_until(datetime(2026, 10, 19, 1, 0), NOW), 1)
        self.assertEqual(calculate_days_until(datetime(2026, 10, 18, 23, 0), NOW), 0)
        self.assertEqual(calculate_days_until(datetime(2026, 10, 16, 23, 0), NOW), -2)
        self.assertEqual(calculate_days_until(None, NOW), 0)

    def test_overdue(self):
        info = get_due_date_info(NOW - timedelta(days=2), NOW)
        self.assertEqual(info.text, "Overdue by 2 days")
        self.assertEqual(info.level, "danger")
        self.assertEqual(info.risk, "overdue")
        self.assertEqual(info.icon, "ri-error-warning-line")

    def test_near_dates(self):
        self.assertEqual(get_due_date_info(datetime(2026, 10, 18, 23, 0), NOW).text, "Due today")
        self.assertEqual(get_due_date_info(NOW + timedelta(days=1), NOW).text, "Tomorrow")

        at_risk = get_due_date_info(NOW + timedelta(days=3), NOW)
        self.assertEqual(at_risk.text, "In 3 days")
        self.assertEqual(at_risk.level, "warning")
        self.assertEqual(at_risk.risk, "at_risk")

        later = get_due_date_info(NOW + timedelta(days=10), NOW)
        self.assertEqual(later.level, "neutral")
        self.assertEqual(later.risk, "on_track")

    def test_missing_and_unparseable_dates(self):
        self.assertEqual(get_due_date_info(None, NOW).text, "No date set")
        self.assertEqual(get_due_date_info("not a date", NOW).risk, "no_date")

    def test_iso_strings_with_offsets_are_read_as_utc(self):
        info = get_due_date_info("2026-10-20T01:00:00+02:00", NOW)
        self.assertEqual(info.text, "Tomorrow")
        self.assertEqual(get_due_date_info("2026-10-21T00:00:00Z", NOW).text, "In 3 days")


class ProjectDueInfoTestCase(unittest.TestCase):
    def test_completed_projects_short_circuit(self):
        info = get_project_due_info("completed", NOW - timedelta(days=30), NOW)
        self.assertEqual(info.text, "Completed")

    def test_project_wording(self):
        self.assertEqual(get_project_due_info("in_progress", NOW + timedelta(days=1), NOW).text, "Due tomorrow")
        self.assertEqual(get_project_due_info("in_progress", NOW + timedelta(days=6), NOW).text, "Due in 6 days")
        self.assertEqual(get_project_due_info("delayed", None, NOW).text, "No date set")

    def test_schedule_badge(self):
        self.assertEqual(get_schedule_badge("completed", None, NOW).label, "Completed")
        self.assertEqual(get_schedule_badge("in_progress", NOW - timedelta(days=1), NOW).label, "Behind Schedule")
        self.assertEqual(get_schedule_badge("in_progress", NOW + timedelta(days=3), NOW).label, "At Risk")
        self.assertEqual(get_schedule_badge("in_progress", NOW + timedelta(days=4), NOW).label, "On Schedule")
        self.assertEqual(get_schedule_badge("in_progress", None, NOW).risk, "on_track")


class TalentProgressTestCase(unittest.TestCase):
    def setUp(self):
        # Two weeks in at one page a working day: ten pages are expected.
        self.start = NOW - timedelta(days=14)
        self.due = NOW + timedelta(days=14)

    def test_on_pace(self):
        self.assertEqual(get_talent_progress_status(22, 10, 5, self.start, self.due, NOW), "on_time")
        self.assertEqual(get_talent_progress_status(22, 15, 5, self.start, self.due, NOW), "on_time")

    def test_one_day_late(self):
        self.assertEqual(get_talent_progress_status(22, 9, 5, self.start, self.due, NOW), "one_day_late")

    def test_behind_schedule(self):
        self.assertEqual(get_talent_progress_status(22, 5, 5, self.start, self.due, NOW), "behind_schedule")

    def test_expected_pages_are_capped_at_total(self):
        start = NOW - timedelta(days=70)
        self.assertEqual(get_talent_progress_status(22, 22, 5, start, self.due, NOW), "on_time")

    def test_missing_inputs_are_on_time(self):
        self.assertEqual(get_talent_progress_status(22, 0, 5, None, self.due, NOW), "on_time")
        self.assertEqual(get_talent_progress_status(22, 0, 0, self.start, self.due, NOW), "on_time")

    def test_colors(self):
        self.assertEqual(get_talent_progress_color("one_day_late"), TALENT_PROGRESS_COLORS["one_day_late"])
        self.assertEqual(get_talent_progress_color("unknown"), NEUTRAL_COLORS)


if __name__ == "__main__":
    unittest.main()
