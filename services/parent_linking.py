"""
Lazy parent assignment from bot sessions.

The first parent whose Telegram id looks up a student without a parent
claims that student. Later claims never overwrite it. Both outcomes are
written to the activity log.
"""

from flask import current_app

from error_handler import commit_or_raise
from extensions import db
from models import Student, User
from services.activity_log import log_activity


def find_parent_by_telegram_id(telegram_id):
    if not telegram_id:
        return None
    return User.query.filter_by(
        telegram_id=str(telegram_id), role='parent', is_active_account=True
    ).first()


def claim_student_for_parent(student, telegram_id):
    """
    Link the parent behind telegram_id to the student if the student has no
    parent yet. Returns True only when this call made the assignment.
    """
    if student.parent_id is not None:
        return False
    parent = find_parent_by_telegram_id(telegram_id)
    if parent is None:
        return False

    # Conditional update: only one of two racing claimants can match.
    updated = Student.query.filter(
        Student.id == student.id, Student.parent_id.is_(None)
    ).update({Student.parent_id: parent.id}, synchronize_session=False)
    commit_or_raise('parent assignment')
    db.session.refresh(student)

    if updated:
        current_app.logger.info(
            f"Auto-parent assigned: {parent.full_name} -> {student.student_code}"
        )
        log_activity(parent.id, 'parent_auto_assigned', details={
            'student_id': student.id,
            'student_code': student.student_code,
            'telegram_id': str(telegram_id),
        })
        return True

    log_activity(
        parent.id,
        'parent_claim_rejected',
        details={'student_id': student.id, 'current_parent_id': student.parent_id},
        success=False,
        error_message='Student already has a parent',
    )
    return False
