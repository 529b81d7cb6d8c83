"""
Student badge reports for the dashboard and the bot: recent records,
aggregated stats, per-kind warnings and a text rendering.
"""

from flask import current_app

from services.badge_stats import aggregate_badge_stats, format_badge_report
from services.badge_warnings import warnings_for_student
from services.daily_badges import get_records_for_student


def build_student_badge_report(student_id, limit=None):
    """Aggregate the student's latest records, oldest first so per-kind order is stable."""
    limit = limit or current_app.config.get('BADGE_REPORT_LIMIT', 30)
    records = get_records_for_student(student_id, limit=limit)
    records.reverse()
    stats = aggregate_badge_stats(records)
    return {
        'records': records,
        'stats': stats,
        'warnings': warnings_for_student(student_id),
        'report_text': format_badge_report(stats),
    }
