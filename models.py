import json
import re
from datetime import datetime, timezone

from flask_login import UserMixin
from extensions import db


def utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


ROLES = ('admin', 'teacher', 'parent', 'student')
STAFF_ROLES = ('admin', 'teacher')

STUDENT_STATUSES = ('active', 'inactive', 'graduated', 'dropped')
STUDENT_CODE_PATTERN = re.compile(r'\d{3,4}')

BADGE_COLORS = ('green', 'blue', 'yellow', 'purple', 'orange', 'red')
BADGE_CATEGORIES = ('academic', 'behavior', 'attendance', 'participation', 'homework')
COLOR_EMOJIS = {
    'green': '🟢',
    'blue': '🔵',
    'yellow': '🟡',
    'purple': '🟣',
    'orange': '🟠',
    'red': '🔴',
}
DEFAULT_COLOR_EMOJI = '⚪'

OUTCOME_EARNED = 'earned'
OUTCOME_NOT_EARNED = 'not_earned'
OUTCOME_ABSENT = 'absent'
OUTCOMES = (OUTCOME_EARNED, OUTCOME_NOT_EARNED, OUTCOME_ABSENT)

NOTIFICATION_TYPES = ('badge_update', 'payment_reminder', 'homework', 'general', 'bulk_message')

DEFAULT_WARNING_TEMPLATE = '{name}: not earned {count} times (limit {limit})'


def color_emoji(color):
    return COLOR_EMOJIS.get(color, DEFAULT_COLOR_EMOJI)


class User(db.Model, UserMixin):
    """
    Login account for every role. Parents are reached on Telegram through
    telegram_id; students get a profile row in Student.
    """
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    full_name = db.Column(db.String(200), nullable=False)
    role = db.Column(db.String(20), nullable=False)  # admin, teacher, parent, student
    phone = db.Column(db.String(20), nullable=True)
    telegram_id = db.Column(db.String(50), unique=True, nullable=True, index=True)
    is_active_account = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    @property
    def is_active(self):
        return self.is_active_account

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'full_name': self.full_name,
            'role': self.role,
            'phone': self.phone,
            'telegram_id': self.telegram_id,
            'is_active': self.is_active_account,
        }

    def __repr__(self):
        return f"User('{self.username}', '{self.role}')"


class Group(db.Model):
    """
    Teaching group a student belongs to. Managed elsewhere; only read here.
    """
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    teacher = db.relationship('User', backref='teaching_groups', lazy=True)

    def __repr__(self):
        return f"Group('{self.name}')"


class Student(db.Model):
    """
    Model for storing student information.
    """
    id = db.Column(db.Integer, primary_key=True)
    student_code = db.Column(db.String(4), unique=True, nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    group_id = db.Column(db.Integer, db.ForeignKey('group.id'), nullable=True, index=True)
    # Parent may stay unassigned until a bot session claims the student.
    parent_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True, index=True)
    status = db.Column(db.String(20), default='active', nullable=False)
    monthly_fee = db.Column(db.Integer, default=0, nullable=False)
    total_debt = db.Column(db.Integer, default=0, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    enrolled_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user = db.relationship('User', foreign_keys=[user_id], backref=db.backref('student_profile', uselist=False))
    parent = db.relationship('User', foreign_keys=[parent_id], backref='children')
    group = db.relationship('Group', backref='students')

    __table_args__ = (
        db.CheckConstraint('total_debt >= 0', name='student_debt_non_negative'),
    )

    @property
    def full_name(self):
        return self.user.full_name if self.user else f"Student {self.student_code}"

    @property
    def debt_status(self):
        if not self.total_debt:
            return 'clear'
        if self.total_debt <= self.monthly_fee:
            return 'low'
        if self.total_debt <= self.monthly_fee * 2:
            return 'medium'
        return 'high'

    @staticmethod
    def is_valid_code(code):
        return bool(code) and bool(STUDENT_CODE_PATTERN.fullmatch(str(code)))

    @classmethod
    def find_by_code(cls, code):
        """Active student by 3-4 digit code, or None for malformed codes."""
        if not cls.is_valid_code(code):
            return None
        return cls.query.filter_by(student_code=str(code), is_active=True).first()

    def to_dict(self):
        return {
            'id': self.id,
            'student_code': self.student_code,
            'full_name': self.full_name,
            'group': self.group.name if self.group else None,
            'group_id': self.group_id,
            'parent_id': self.parent_id,
            'parent_name': self.parent.full_name if self.parent else None,
            'status': self.status,
            'monthly_fee': self.monthly_fee,
            'total_debt': self.total_debt,
            'debt_status': self.debt_status,
        }

    def __repr__(self):
        return f"Student('{self.student_code}', Status: '{self.status}')"


class BadgeKind(db.Model):
    """
    Catalog entry for a badge type. Kinds are deactivated, never deleted,
    so historical records can still resolve them.
    """
    __tablename__ = 'badge_kind'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), nullable=False, index=True)
    description = db.Column(db.String(200), nullable=True)
    color = db.Column(db.String(10), default='green', nullable=False)
    category = db.Column(db.String(20), default='academic', nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    priority = db.Column(db.Integer, default=1, nullable=False)  # higher = more important
    negative_limit = db.Column(db.Integer, default=2, nullable=False)
    warning_template = db.Column(db.String(300), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def emoji(self):
        return color_emoji(self.color)

    def warning_message(self, count):
        template = self.warning_template or DEFAULT_WARNING_TEMPLATE
        try:
            return template.format(name=self.name, count=count, limit=self.negative_limit)
        except (KeyError, IndexError, ValueError, AttributeError, TypeError):
            # Template with unknown placeholders is shown as written
            return template

    def display_data(self):
        return {'id': self.id, 'name': self.name, 'color': self.color, 'emoji': self.emoji}

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'color': self.color,
            'emoji': self.emoji,
            'category': self.category,
            'is_active': self.is_active,
            'priority': self.priority,
            'negative_limit': self.negative_limit,
            'warning_template': self.warning_template or DEFAULT_WARNING_TEMPLATE,
        }

    def __repr__(self):
        return f"BadgeKind('{self.name}', Active: {self.is_active})"


class DailyBadgeRecord(db.Model):
    """
    One row per student per calendar day. A later write for the same day
    replaces the entries list instead of merging into it.
    """
    __tablename__ = 'daily_badge_record'

    id = db.Column(db.Integer, primary_key=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=False)
    day = db.Column(db.Date, nullable=False)
    notes = db.Column(db.Text, nullable=True)
    created_by = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    student = db.relationship('Student', backref='daily_badge_records')
    creator = db.relationship('User', foreign_keys=[created_by])
    entries = db.relationship(
        'DailyBadgeEntry',
        backref='record',
        order_by='DailyBadgeEntry.position',
        cascade='all, delete-orphan',
        lazy='selectin',
    )

    # Ensure one record per student per day
    __table_args__ = (
        db.UniqueConstraint('student_id', 'day', name='unique_student_badge_day'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'student_code': self.student.student_code if self.student else None,
            'student_name': self.student.full_name if self.student else None,
            'day': self.day.isoformat(),
            'notes': self.notes,
            'created_by': self.created_by,
            'created_by_name': self.creator.full_name if self.creator else None,
            'entries': [entry.to_dict() for entry in self.entries],
        }

    def __repr__(self):
        return f"DailyBadgeRecord(Student: {self.student_id}, Day: {self.day}, Entries: {len(self.entries)})"


class DailyBadgeEntry(db.Model):
    """
    A single (badge kind, outcome) pair inside a daily record.
    """
    __tablename__ = 'daily_badge_entry'

    id = db.Column(db.Integer, primary_key=True)
    record_id = db.Column(db.Integer, db.ForeignKey('daily_badge_record.id'), nullable=False, index=True)
    badge_kind_id = db.Column(db.Integer, db.ForeignKey('badge_kind.id'), nullable=False, index=True)
    outcome = db.Column(db.String(16), nullable=False)  # earned, not_earned, absent
    position = db.Column(db.Integer, nullable=False, default=0)

    badge_kind = db.relationship('BadgeKind', lazy='joined')

    def to_dict(self):
        kind = self.badge_kind
        return {
            'badge_kind_id': self.badge_kind_id,
            'name': kind.name if kind else None,
            'color': kind.color if kind else None,
            'emoji': kind.emoji if kind else DEFAULT_COLOR_EMOJI,
            'outcome': self.outcome,
        }

    def __repr__(self):
        return f"DailyBadgeEntry(Kind: {self.badge_kind_id}, Outcome: {self.outcome})"


class Notification(db.Model):
    """
    Parent-facing notification. Delivery over Telegram happens after the row
    is committed and never changes it.
    """
    id = db.Column(db.Integer, primary_key=True)
    parent_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('student.id'), nullable=True)
    type = db.Column(db.String(32), default='general', nullable=False)
    title = db.Column(db.String(100), nullable=True)
    message = db.Column(db.String(1000), nullable=False)
    data_json = db.Column(db.Text, nullable=True)
    is_read = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    parent = db.relationship('User', backref='notifications', lazy=True)
    student = db.relationship('Student', backref='notifications', lazy=True)

    @property
    def data(self):
        if not self.data_json:
            return None
        return json.loads(self.data_json)

    @data.setter
    def data(self, value):
        self.data_json = json.dumps(value, default=str) if value is not None else None

    def to_dict(self):
        return {
            'id': self.id,
            'parent_id': self.parent_id,
            'parent_name': self.parent.full_name if self.parent else None,
            'student_id': self.student_id,
            'student_code': self.student.student_code if self.student else None,
            'type': self.type,
            'title': self.title,
            'message': self.message,
            'data': self.data,
            'read': self.is_read,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"Notification(Parent: {self.parent_id}, Type: {self.type}, Title: {self.title})"


class ActivityLog(db.Model):
    """
    Model for tracking user activities for auditing and security purposes.
    """
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True)
    action = db.Column(db.String(100), nullable=False)
    details = db.Column(db.Text, nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)
    user_agent = db.Column(db.Text, nullable=True)
    success = db.Column(db.Boolean, default=True)
    error_message = db.Column(db.Text, nullable=True)
    timestamp = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', backref='activity_logs', lazy=True)

    def __repr__(self):
        return f"ActivityLog(User: {self.user_id}, Action: {self.action}, Success: {self.success})"
