import itertools

import pytest
from flask import g
from flask_login import FlaskLoginClient
from werkzeug.security import generate_password_hash

from app import create_app
from config import TestingConfig
from extensions import db
from models import BadgeKind, Group, Student, User


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.test_client_class = FlaskLoginClient

    # Requests reuse the fixture's app context, so drop the cached login
    @app.before_request
    def _forget_loaded_user():
        g.pop('_login_user', None)

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def make_user(app):
    counter = itertools.count(1)

    def _make(role='parent', full_name=None, telegram_id=None, password='secret', active=True):
        n = next(counter)
        user = User(
            username=f"{role}{n}",
            full_name=full_name or f"{role.title()} {n}",
            role=role,
            telegram_id=telegram_id,
            is_active_account=active,
            password_hash=generate_password_hash(password, method='pbkdf2:sha256:1000'),
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user('admin', full_name='Admin User')


@pytest.fixture
def teacher(make_user):
    return make_user('teacher', full_name='Teacher User')


@pytest.fixture
def group(app, teacher):
    group = Group(name='Math A', teacher_id=teacher.id)
    db.session.add(group)
    db.session.commit()
    return group


@pytest.fixture
def make_student(app, make_user, group):
    counter = itertools.count(1001)

    def _make(parent=None, full_name=None, code=None, in_group=True):
        n = next(counter)
        profile = make_user('student', full_name=full_name or f"Student {n}")
        student = Student(
            student_code=code or str(n),
            user_id=profile.id,
            group_id=group.id if in_group else None,
            parent_id=parent.id if parent else None,
            monthly_fee=500000,
        )
        db.session.add(student)
        db.session.commit()
        return student

    return _make


@pytest.fixture
def make_badge(app):
    def _make(name, color='green', negative_limit=2, is_active=True, priority=1, warning_template=None):
        kind = BadgeKind(
            name=name,
            color=color,
            negative_limit=negative_limit,
            is_active=is_active,
            priority=priority,
            warning_template=warning_template,
        )
        db.session.add(kind)
        db.session.commit()
        return kind

    return _make


@pytest.fixture
def homework(make_badge):
    return make_badge('Homework', color='green', priority=5)


@pytest.fixture
def behavior(make_badge):
    return make_badge('Behavior', color='blue', priority=3)


@pytest.fixture
def parent(make_user):
    return make_user('parent', full_name='Parent One', telegram_id='555001')
