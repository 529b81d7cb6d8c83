"""
Activity logging for auditing: logins, badge writes and parent assignment.
"""

import json

from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from models import ActivityLog


def _request_metadata():
    if not has_request_context():
        return None, None
    return request.remote_addr, request.headers.get('User-Agent')


def log_activity(user_id, action, details=None, success=True, error_message=None):
    """Log one activity entry. Audit failures never break the caller."""
    ip_address, user_agent = _request_metadata()
    try:
        log_entry = ActivityLog(
            user_id=user_id,
            action=action,
            ip_address=ip_address,
            user_agent=user_agent,
            success=success,
            error_message=error_message,
        )
        if details:
            log_entry.details = json.dumps(details, default=str)
        db.session.add(log_entry)
        db.session.commit()
        return log_entry
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to log activity {action}: {e}")
        return None


def get_activity_log(user_id=None, action=None, start_date=None, end_date=None, limit=100):
    """Retrieve activity log entries with optional filters, newest first."""
    query = ActivityLog.query
    if user_id:
        query = query.filter_by(user_id=user_id)
    if action:
        query = query.filter_by(action=action)
    if start_date:
        query = query.filter(ActivityLog.timestamp >= start_date)
    if end_date:
        query = query.filter(ActivityLog.timestamp <= end_date)
    return query.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()


def activity_to_dict(entry):
    return {
        'id': entry.id,
        'user_id': entry.user_id,
        'action': entry.action,
        'details': json.loads(entry.details) if entry.details else None,
        'success': entry.success,
        'error_message': entry.error_message,
        'timestamp': entry.timestamp.isoformat() if entry.timestamp else None,
    }
