"""
Calendar-day handling in the school's timezone.

Badge records are keyed by calendar day, so every submitted timestamp is
moved into SCHOOL_TIMEZONE before its time of day is dropped. Naive
datetimes are taken to be school-local already.
"""

from datetime import date, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from flask import current_app

from error_handler import ValidationError


def school_timezone(app=None):
    """Return the configured school timezone, UTC if unset or unknown."""
    app = app or current_app
    tz_name = app.config.get('SCHOOL_TIMEZONE') or 'UTC'
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        app.logger.warning(f"Unknown SCHOOL_TIMEZONE {tz_name!r}, using UTC")
        return ZoneInfo('UTC')


def today_in_school_tz(app=None):
    return datetime.now(school_timezone(app)).date()


def normalize_day(value, app=None):
    """
    Reduce a day given as date, datetime or ISO string to a calendar date
    in the school timezone. None or an empty string means today.
    """
    if value is None or value == '':
        return today_in_school_tz(app)
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(school_timezone(app))
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"Invalid day: {value!r}")
        return normalize_day(parsed, app)
    raise ValidationError(f"Invalid day: {value!r}")
