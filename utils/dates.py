"""
utils/dates.py
Lenient date parsing shared by the forms and the schedule helpers.
"""

from datetime import date, datetime, timezone
from typing import Optional

FORM_DATETIME_FORMAT = "%Y-%m-%dT%H:%M:%S"


def parse_datetime(value) -> Optional[datetime]:
    """Return a naive UTC datetime for ``value`` or None when it cannot be parsed.

    Accepts datetimes, dates and ISO-8601 strings (a trailing ``Z`` is allowed).
    Aware values are converted to UTC before the timezone is dropped, matching
    the naive UTC timestamps stored in the database.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def to_calendar_day(value) -> Optional[date]:
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def format_for_form(value) -> str:
    """Render a parsed value the way the WTForms datetime fields expect it."""
    parsed = parse_datetime(value)
    return parsed.strftime(FORM_DATETIME_FORMAT) if parsed else ""


def isoformat_or_none(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
