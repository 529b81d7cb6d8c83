import pytest

from models import ActivityLog, DailyBadgeRecord, Notification
from services.daily_badges import upsert_daily_record
from services.notifications import create_notification


@pytest.fixture
def anonymous(app):
    return app.test_client()


@pytest.fixture
def teacher_client(app, teacher):
    return app.test_client(user=teacher)


@pytest.fixture
def admin_client(app, admin):
    return app.test_client(user=admin)


@pytest.fixture
def parent_client(app, parent):
    return app.test_client(user=parent)


def _entries(*pairs):
    return [{'badge_kind_id': kind.id, 'outcome': outcome} for kind, outcome in pairs]


def test_home(anonymous):
    response = anonymous.get('/')
    assert response.status_code == 200
    assert response.get_json()['endpoints']['daily-badges'] == '/api/daily-badges'


def test_login_required(anonymous):
    response = anonymous.get('/api/daily-badges')
    assert response.status_code == 401
    assert response.get_json()['error_type'] == 'unauthorized'


def test_login_logout(anonymous, teacher):
    response = anonymous.post('/api/auth/login', json={'username': teacher.username, 'password': 'secret'})
    assert response.status_code == 200
    assert response.get_json()['user']['role'] == 'teacher'
    assert anonymous.get('/api/auth/me').status_code == 200

    assert anonymous.post('/api/auth/logout').status_code == 200
    assert anonymous.get('/api/auth/me').status_code == 401
    assert ActivityLog.query.filter_by(action='login', user_id=teacher.id).count() == 1


def test_login_rejects_bad_password(anonymous, teacher, make_user):
    response = anonymous.post('/api/auth/login', json={'username': teacher.username, 'password': 'nope'})
    assert response.status_code == 401

    inactive = make_user('teacher', active=False)
    response = anonymous.post('/api/auth/login', json={'username': inactive.username, 'password': 'secret'})
    assert response.status_code == 401
    assert ActivityLog.query.filter_by(action='login_failed').count() == 2


def test_parent_cannot_write_badges(parent_client, make_student, homework):
    student = make_student()
    response = parent_client.post('/api/daily-badges', json={
        'student_id': student.id, 'date': '2026-10-19', 'entries': _entries((homework, 'earned')),
    })
    assert response.status_code == 403
    assert DailyBadgeRecord.query.count() == 0


def test_teacher_saves_daily_badges(teacher_client, teacher, make_student, homework, behavior):
    student = make_student()
    response = teacher_client.post('/api/daily-badges', json={
        'student_id': student.id,
        'date': '2026-10-19',
        'entries': _entries((homework, 'earned'), (behavior, 'absent')),
        'notes': 'Good day',
    })
    assert response.status_code == 201
    body = response.get_json()['daily_badge']
    assert body['day'] == '2026-10-19'
    assert body['created_by'] == teacher.id
    assert [e['outcome'] for e in body['entries']] == ['earned', 'absent']


def test_invalid_payload_returns_400(teacher_client, make_student):
    student = make_student()
    response = teacher_client.post('/api/daily-badges', json={
        'student_id': student.id, 'date': '2026-10-19', 'entries': [],
    })
    assert response.status_code == 400
    assert response.get_json()['error_type'] == 'validation_error'


def test_unknown_student_returns_404(teacher_client, homework):
    response = teacher_client.post('/api/daily-badges', json={
        'student_id': 9999, 'date': '2026-10-19', 'entries': _entries((homework, 'earned')),
    })
    assert response.status_code == 404
    assert response.get_json()['error_type'] == 'not_found'


def test_bulk_reports_each_student(teacher_client, make_student, homework):
    first = make_student()
    last = make_student()
    response = teacher_client.post('/api/daily-badges/bulk', json={
        'student_ids': [first.id, 9999, last.id],
        'date': '2026-10-19',
        'entries': _entries((homework, 'not_earned')),
    })
    assert response.status_code == 200
    body = response.get_json()
    assert body['succeeded'] == 2
    assert body['failed'] == 1
    assert [r['success'] for r in body['results']] == [True, False, True]
    assert body['results'][0]['record']['student_id'] == first.id
    assert body['results'][1]['error_type'] == 'not_found'


def test_parent_sees_only_own_children(app, teacher, parent, parent_client, make_student, homework):
    mine = make_student(parent=parent)
    other = make_student()
    for student in (mine, other):
        upsert_daily_record(student.id, '2026-10-19', _entries((homework, 'earned')), actor_id=teacher.id)

    body = parent_client.get('/api/daily-badges').get_json()
    assert [r['student_id'] for r in body['daily_badges']] == [mine.id]
    assert body['pagination']['total'] == 1

    assert parent_client.get(f'/api/students/{mine.id}/badge-stats').status_code == 200
    assert parent_client.get(f'/api/students/{other.id}/badge-stats').status_code == 403


def test_student_badge_stats(teacher_client, teacher, make_student, homework):
    student = make_student()
    upsert_daily_record(student.id, '2026-10-18', _entries((homework, 'earned')), actor_id=teacher.id)
    upsert_daily_record(student.id, '2026-10-19', _entries((homework, 'not_earned')), actor_id=teacher.id)

    body = teacher_client.get(f'/api/students/{student.id}/badge-stats').get_json()
    assert body['stats']['per_kind']['Homework']['percentage'] == 50
    assert body['records_count'] == 2

    warning = teacher_client.get(f'/api/students/{student.id}/warnings/{homework.id}').get_json()['warning']
    assert warning == {
        'badge_kind_id': homework.id,
        'badge_name': 'Homework',
        'exceeded': False,
        'count': 1,
        'limit': 2,
        'message': None,
    }


def test_badge_catalog_admin_only(admin_client, teacher_client):
    response = teacher_client.post('/api/badges', json={'name': 'Homework'})
    assert response.status_code == 403

    response = admin_client.post('/api/badges', json={'name': 'Homework', 'color': 'blue'})
    assert response.status_code == 201
    badge_id = response.get_json()['badge']['id']

    response = admin_client.put(f'/api/badges/{badge_id}', json={'negative_limit': 4})
    assert response.get_json()['badge']['negative_limit'] == 4

    assert admin_client.delete(f'/api/badges/{badge_id}').status_code == 200
    assert teacher_client.get('/api/badges').get_json()['badges'] == []
    assert len(teacher_client.get('/api/badges?include_inactive=true').get_json()['badges']) == 1


def test_notification_inbox_is_per_parent(parent, parent_client, make_user):
    other = make_user('parent')
    mine = create_notification(parent.id, 'general', 'Mine', 'For you')
    theirs = create_notification(other.id, 'general', 'Theirs', 'Not for you')

    body = parent_client.get('/api/notifications?parent=%d' % other.id).get_json()
    assert [n['id'] for n in body['notifications']] == [mine.id]
    assert body['pagination']['unread_count'] == 1

    assert parent_client.put(f'/api/notifications/{theirs.id}/read').status_code == 403
    response = parent_client.put(f'/api/notifications/{mine.id}/read')
    assert response.status_code == 200
    assert response.get_json()['notification']['read'] is True


def test_staff_bulk_message(teacher_client, parent_client, parent):
    assert parent_client.post('/api/notifications/bulk', json={
        'recipient_type': 'parents', 'title': 'Hi', 'message': 'Hello',
    }).status_code == 403

    response = teacher_client.post('/api/notifications/bulk', json={
        'recipient_type': 'parents', 'title': 'Holiday', 'message': 'Closed on Monday',
    })
    assert response.status_code == 200
    assert response.get_json()['sent'] == 1
    assert Notification.query.filter_by(parent_id=parent.id, type='bulk_message').count() == 1


def test_bot_lookup_claims_unassigned_student(anonymous, teacher, parent, make_student, homework):
    student = make_student(code='1234')
    upsert_daily_record(student.id, '2026-10-19', _entries((homework, 'not_earned')), actor_id=teacher.id)

    body = anonymous.get('/api/bot/students/1234?parent=555001').get_json()
    assert body['parent_assigned'] is True
    assert body['student']['parent_id'] == parent.id
    assert body['stats']['overall']['percentage'] == 0
    assert 'Homework' in body['report_text']
    assert body['warnings'] == []

    again = anonymous.get('/api/bot/students/1234?parent=555001').get_json()
    assert again['parent_assigned'] is False

    children = anonymous.get('/api/bot/parents/555001/children').get_json()['children']
    assert [c['student_code'] for c in children] == ['1234']


def test_bot_lookups_not_found(anonymous):
    assert anonymous.get('/api/bot/students/12').status_code == 404
    assert anonymous.get('/api/bot/students/9876').status_code == 404
    assert anonymous.get('/api/bot/users/000').status_code == 404


def test_bot_token_is_enforced(app, anonymous, parent):
    app.config['BOT_API_TOKEN'] = 's3cret'
    assert anonymous.get('/api/bot/users/555001').status_code == 401
    response = anonymous.get('/api/bot/users/555001', headers={'X-Bot-Token': 's3cret'})
    assert response.status_code == 200
    assert response.get_json()['user']['id'] == parent.id


def test_activity_log_is_admin_only(admin_client, teacher_client, teacher, make_student, homework):
    student = make_student()
    upsert_daily_record(student.id, '2026-10-19', _entries((homework, 'earned')), actor_id=teacher.id)

    assert teacher_client.get('/api/activity-log').status_code == 403
    entries = admin_client.get('/api/activity-log?action=daily_badges_saved').get_json()['entries']
    assert len(entries) == 1
    assert entries[0]['details']['student_id'] == student.id
