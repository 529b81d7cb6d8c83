from unittest.mock import MagicMock, patch

import pytest
import requests

from error_handler import NotFound, ValidationError
from models import Notification
from services.daily_badges import upsert_daily_record, upsert_daily_record_bulk
from services.notifications import (
    BADGE_UPDATE_TITLE,
    create_notification,
    dispatch_badge_notification,
    list_notifications,
    mark_notification_read,
    send_bulk_message,
)


def test_no_parent_means_no_notification(teacher, make_student, homework):
    student = make_student()
    record = upsert_daily_record(
        student.id, '2026-10-19', [{'badge_kind_id': homework.id, 'outcome': 'earned'}], actor_id=teacher.id
    )

    assert dispatch_badge_notification(record, student) is None
    assert Notification.query.count() == 0


def test_badge_update_message(teacher, parent, make_student, homework, behavior):
    student = make_student(parent=parent, full_name='Ali Karimov')
    record = upsert_daily_record(student.id, '2026-10-19', [
        {'badge_kind_id': homework.id, 'outcome': 'earned'},
        {'badge_kind_id': behavior.id, 'outcome': 'not_earned'},
        {'badge_kind_id': behavior.id, 'outcome': 'absent'},
    ], actor_id=teacher.id)

    notification = Notification.query.filter_by(type='badge_update').one()
    assert notification.parent_id == parent.id
    assert notification.student_id == student.id
    assert notification.title == BADGE_UPDATE_TITLE
    assert notification.message.startswith('Ali Karimov earned 1/3 badges on 2026-10-19 (33%)')
    assert '🟢 Homework: ✅' in notification.message
    assert '🔵 Behavior: ❌' in notification.message
    assert '🔵 Behavior: ⚪' in notification.message
    assert notification.data['record_id'] == record.id
    assert notification.data['earned'] == 1
    assert notification.data['total'] == 3
    assert notification.data['percentage'] == 33


def test_exceeded_warning_is_appended(teacher, parent, make_student, homework):
    student = make_student(parent=parent)
    for day in ('2026-10-18', '2026-10-19'):
        upsert_daily_record(
            student.id, day, [{'badge_kind_id': homework.id, 'outcome': 'not_earned'}], actor_id=teacher.id
        )

    first, second = Notification.query.order_by(Notification.id).all()
    assert '⚠️' not in first.message
    assert '⚠️ Homework: not earned 2 times (limit 2)' in second.message
    assert second.data['warnings'][0]['count'] == 2


def test_bulk_write_notifies_only_linked_parents(teacher, parent, make_student, homework):
    linked = make_student(parent=parent)
    unlinked = make_student()
    results = upsert_daily_record_bulk(
        [unlinked.id, linked.id], '2026-10-19',
        [{'badge_kind_id': homework.id, 'outcome': 'earned'}], actor_id=teacher.id,
    )

    assert all(r['success'] for r in results)
    assert Notification.query.count() == 1
    assert Notification.query.one().student_id == linked.id


def test_create_notification_validates_type(parent):
    with pytest.raises(ValidationError):
        create_notification(parent.id, 'gossip', 'Hi', 'Hello')
    with pytest.raises(ValidationError):
        create_notification(parent.id, 'general', 'Hi', '')


def test_long_title_is_truncated(parent):
    notification = create_notification(parent.id, 'general', 'T' * 150, 'Hello')
    assert len(notification.title) == 100


def test_delivery_posts_to_telegram(app, parent):
    app.config['NOTIFICATION_DELIVERY_ENABLED'] = True
    app.config['TELEGRAM_BOT_TOKEN'] = 'test-token'

    with patch('services.telegram.requests.post') as post:
        post.return_value = MagicMock(status_code=200)
        create_notification(parent.id, 'general', 'Closed', 'No lessons tomorrow')

    post.assert_called_once()
    url = post.call_args.args[0]
    assert url == 'https://api.telegram.org/bottest-token/sendMessage'
    payload = post.call_args.kwargs['json']
    assert payload['chat_id'] == '555001'
    assert 'No lessons tomorrow' in payload['text']


def test_delivery_failure_keeps_notification(app, parent):
    app.config['NOTIFICATION_DELIVERY_ENABLED'] = True
    app.config['TELEGRAM_BOT_TOKEN'] = 'test-token'

    with patch('services.telegram.requests.post', side_effect=requests.ConnectionError('offline')):
        notification = create_notification(parent.id, 'general', 'Closed', 'No lessons tomorrow')

    assert notification.id is not None
    assert Notification.query.count() == 1


def test_delivery_disabled_never_calls_telegram(parent):
    with patch('services.telegram.requests.post') as post:
        create_notification(parent.id, 'general', 'Closed', 'No lessons tomorrow')
    post.assert_not_called()


def test_bulk_message_to_parents(admin, parent, make_user):
    make_user('parent', active=False)
    notifications = send_bulk_message('parents', 'Holiday', 'Closed on Monday', sender_id=admin.id)

    assert len(notifications) == 1
    assert notifications[0].parent_id == parent.id
    assert notifications[0].type == 'bulk_message'
    assert notifications[0].data == {'sent_by': admin.id, 'recipient_type': 'parents', 'recipient_id': parent.id}


def test_bulk_message_to_teachers_keeps_recipient_in_payload(admin, teacher):
    notifications = send_bulk_message('teachers', 'Meeting', 'Staff meeting at 5')
    assert len(notifications) == 1
    assert notifications[0].parent_id is None
    assert notifications[0].data['recipient_id'] == teacher.id


def test_bulk_message_rejects_bad_input(admin):
    with pytest.raises(ValidationError):
        send_bulk_message('parents', '', 'Body')
    with pytest.raises(ValidationError):
        send_bulk_message('everyone', 'Title', 'Body')
    with pytest.raises(ValidationError):
        send_bulk_message('specific', 'Title', 'Body', recipients=[])


def test_inbox_listing_and_mark_read(parent, make_user):
    other = make_user('parent')
    first = create_notification(parent.id, 'general', 'One', 'First')
    create_notification(parent.id, 'homework', 'Two', 'Second')
    create_notification(other.id, 'general', 'Other', 'Not yours')

    inbox = list_notifications(parent_id=parent.id)
    assert inbox['total'] == 2
    assert inbox['unread_count'] == 2
    assert [n.title for n in inbox['notifications']] == ['Two', 'One']

    mark_notification_read(first.id)
    assert list_notifications(parent_id=parent.id)['unread_count'] == 1
    assert list_notifications(parent_id=parent.id, read=False)['total'] == 1
    assert list_notifications(parent_id=parent.id, notification_type='homework')['total'] == 1

    with pytest.raises(NotFound):
        mark_notification_read(9999)
