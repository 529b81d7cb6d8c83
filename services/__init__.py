"""
Business logic and services. Keeps app.py as glue-only (config, blueprints, extensions).
"""

from .badge_catalog import (
    list_badge_kinds,
    get_badge_kind,
    create_badge_kind,
    update_badge_kind,
    deactivate_badge_kind,
    badge_kind_usage_stats,
)
from .daily_badges import (
    upsert_daily_record,
    upsert_daily_record_bulk,
    get_records_for_student,
    list_daily_records,
)
from .badge_stats import aggregate_badge_stats, format_badge_report, percentage
from .badge_warnings import evaluate_warning, warnings_for_student
from .badge_reports import build_student_badge_report
from .notifications import (
    create_notification,
    dispatch_badge_notification,
    send_bulk_message,
    list_notifications,
    mark_notification_read,
)
from .parent_linking import claim_student_for_parent
from .activity_log import log_activity, get_activity_log

__all__ = [
    'list_badge_kinds',
    'get_badge_kind',
    'create_badge_kind',
    'update_badge_kind',
    'deactivate_badge_kind',
    'badge_kind_usage_stats',
    'upsert_daily_record',
    'upsert_daily_record_bulk',
    'get_records_for_student',
    'list_daily_records',
    'aggregate_badge_stats',
    'format_badge_report',
    'percentage',
    'evaluate_warning',
    'warnings_for_student',
    'build_student_badge_report',
    'create_notification',
    'dispatch_badge_notification',
    'send_bulk_message',
    'list_notifications',
    'mark_notification_read',
    'claim_student_for_parent',
    'log_activity',
    'get_activity_log',
]
