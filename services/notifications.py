"""
Notification creation helpers: the badge update dispatcher, bulk messages
to parents or teachers, and the read side used by the dashboard and bot.
"""

from flask import current_app

from error_handler import NotFound, ValidationError, commit_or_raise
from extensions import db
from models import (
    Notification,
    User,
    NOTIFICATION_TYPES,
    OUTCOME_EARNED,
    OUTCOME_ABSENT,
    DEFAULT_COLOR_EMOJI,
)
from services.badge_stats import percentage
from services.telegram import deliver_notification

BADGE_UPDATE_TITLE = '🏆 Badge Update'
OUTCOME_SYMBOLS = {
    OUTCOME_EARNED: '✅',
    OUTCOME_ABSENT: '⚪',
}
NOT_EARNED_SYMBOL = '❌'

MAX_TITLE_LENGTH = 100
MAX_MESSAGE_LENGTH = 1000


def _truncate(text, limit):
    if text is None or len(text) <= limit:
        return text
    return text[:limit - 1] + '…'


def _deliver(notification):
    try:
        deliver_notification(notification)
    except Exception as e:
        # Delivery belongs to the transport; the stored event stands.
        current_app.logger.error(f"Delivery of notification {notification.id} failed: {e}")


def create_notification(parent_id, notification_type, title, message, student_id=None, data=None):
    """Create one notification, commit it, then hand it to the transport."""
    if notification_type not in NOTIFICATION_TYPES:
        raise ValidationError(f"Unknown notification type: {notification_type}")
    if not message:
        raise ValidationError("Notification message is required")

    notification = Notification(
        parent_id=parent_id,
        student_id=student_id,
        type=notification_type,
        title=_truncate(title, MAX_TITLE_LENGTH),
        message=_truncate(message, MAX_MESSAGE_LENGTH),
    )
    notification.data = data
    db.session.add(notification)
    commit_or_raise('notification')
    current_app.logger.info(f"Notification {notification.id} ({notification_type}) created for parent {parent_id}")
    _deliver(notification)
    return notification


def _entry_line(entry):
    kind = entry.badge_kind
    emoji = kind.emoji if kind else DEFAULT_COLOR_EMOJI
    name = kind.name if kind else 'Badge'
    symbol = OUTCOME_SYMBOLS.get(entry.outcome, NOT_EARNED_SYMBOL)
    return f"{emoji} {name}: {symbol}"


def compose_badge_message(record, student, warnings=None):
    """
    Message text and payload for a just-written daily record. Counts come
    from the record's own entries, not from history.
    """
    entries = list(record.entries)
    earned_count = sum(1 for entry in entries if entry.outcome == OUTCOME_EARNED)
    total_count = len(entries)
    percent = percentage(earned_count, total_count)

    message = (
        f"{student.full_name} earned {earned_count}/{total_count} badges "
        f"on {record.day.isoformat()} ({percent}%)\n\n"
    )
    message += "\n".join(_entry_line(entry) for entry in entries)

    exceeded = [w for w in (warnings or []) if w['exceeded']]
    if exceeded:
        message += "\n\n" + "\n".join(f"⚠️ {w['message']}" for w in exceeded)

    data = {
        'record_id': record.id,
        'day': record.day.isoformat(),
        'entries': [
            {'badge_kind_id': entry.badge_kind_id, 'outcome': entry.outcome}
            for entry in entries
        ],
        'earned': earned_count,
        'total': total_count,
        'percentage': percent,
        'warnings': exceeded,
    }
    return message, data


def dispatch_badge_notification(record, student, warnings=None):
    """
    Create the badge_update notification for the student's parent.
    Returns None, without creating anything, when no parent is linked.
    """
    parent = student.parent
    if parent is None:
        current_app.logger.debug(f"Student {student.id} has no linked parent; badge notification skipped")
        return None

    message, data = compose_badge_message(record, student, warnings)
    return create_notification(
        parent.id,
        'badge_update',
        BADGE_UPDATE_TITLE,
        message,
        student_id=student.id,
        data=data,
    )


def send_bulk_message(recipient_type, title, message, recipients=None, sender_id=None):
    """
    Message every active parent, every active teacher, or a specific list
    of users. Parents are stored as the notification's parent; other
    recipients are kept in the payload.
    """
    if not title or not message:
        raise ValidationError("Title and message are required")
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must not exceed {MAX_TITLE_LENGTH} characters")
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f"Message must not exceed {MAX_MESSAGE_LENGTH} characters")

    query = User.query.filter_by(is_active_account=True)
    if recipient_type == 'parents':
        targets = query.filter_by(role='parent').all()
    elif recipient_type == 'teachers':
        targets = query.filter_by(role='teacher').all()
    elif recipient_type == 'specific' and recipients:
        targets = query.filter(User.id.in_(recipients)).all()
    else:
        raise ValidationError("Invalid recipient type or recipients")

    notifications = []
    for user in targets:
        notification = Notification(
            parent_id=user.id if user.role == 'parent' else None,
            type='bulk_message',
            title=title,
            message=message,
        )
        notification.data = {
            'sent_by': sender_id,
            'recipient_type': recipient_type,
            'recipient_id': user.id,
        }
        db.session.add(notification)
        notifications.append(notification)
    commit_or_raise('bulk message')
    current_app.logger.info(f"Bulk message sent to {len(notifications)} {recipient_type} recipient(s)")

    for notification in notifications:
        _deliver(notification)
    return notifications


def list_notifications(parent_id=None, notification_type=None, read=None, page=1, limit=20):
    """Paginated notifications, newest first, with the unread count for the same filter."""
    query = Notification.query
    if parent_id is not None:
        query = query.filter_by(parent_id=parent_id)
    if notification_type:
        query = query.filter_by(type=notification_type)

    unread_count = query.filter_by(is_read=False).count()
    if read is not None:
        query = query.filter_by(is_read=read)

    pagination = query.order_by(Notification.created_at.desc(), Notification.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    return {
        'notifications': pagination.items,
        'total': pagination.total,
        'total_pages': pagination.pages,
        'current_page': pagination.page,
        'unread_count': unread_count,
    }


def get_notification(notification_id):
    notification = db.session.get(Notification, notification_id)
    if notification is None:
        raise NotFound(f"Notification {notification_id} not found")
    return notification


def mark_notification_read(notification_id):
    notification = get_notification(notification_id)
    notification.is_read = True
    commit_or_raise('notification')
    return notification
