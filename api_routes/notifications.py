"""
Notification routes: inbox listing, read receipts and staff bulk messages.
"""

from flask import Blueprint, jsonify, request, abort
from flask_login import login_required, current_user

from decorators import staff_required, has_role
from models import STAFF_ROLES
from services.notifications import (
    list_notifications,
    get_notification,
    mark_notification_read,
    send_bulk_message,
)
from .utils import json_body, int_arg, bool_arg, pagination_meta

bp = Blueprint('notifications', __name__)


@bp.route('/notifications')
@login_required
def notifications_inbox():
    if has_role(current_user, STAFF_ROLES):
        parent_id = request.args.get('parent', type=int)
    else:
        # Parents only ever see their own notifications
        parent_id = current_user.id

    page_data = list_notifications(
        parent_id=parent_id,
        notification_type=request.args.get('type'),
        read=bool_arg('read'),
        page=int_arg('page', 1, maximum=10000),
        limit=int_arg('limit', 20),
    )
    meta = pagination_meta(page_data)
    meta['unread_count'] = page_data['unread_count']
    return jsonify({
        'success': True,
        'notifications': [n.to_dict() for n in page_data['notifications']],
        'pagination': meta,
    })


@bp.route('/notifications/<int:notification_id>/read', methods=['PUT'])
@login_required
def read_notification(notification_id):
    notification = get_notification(notification_id)
    if not has_role(current_user, STAFF_ROLES) and notification.parent_id != current_user.id:
        abort(403)
    notification = mark_notification_read(notification_id)
    return jsonify({'success': True, 'message': 'Notification marked as read', 'notification': notification.to_dict()})


@bp.route('/notifications/bulk', methods=['POST'])
@login_required
@staff_required
def bulk_message():
    data = json_body()
    notifications = send_bulk_message(
        data.get('recipient_type'),
        data.get('title'),
        data.get('message'),
        recipients=data.get('recipients'),
        sender_id=current_user.id,
    )
    return jsonify({
        'success': True,
        'message': f"{len(notifications)} messages sent",
        'sent': len(notifications),
    })
