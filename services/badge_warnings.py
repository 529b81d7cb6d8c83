"""
Repeated negative outcome warnings.

Only `not_earned` counts toward a kind's limit; `absent` never does.
Evaluation is read-only and never blocks a badge write.
"""

from flask import current_app
from sqlalchemy import func

from error_handler import NotFound
from extensions import db
from models import BadgeKind, DailyBadgeEntry, DailyBadgeRecord, Student, OUTCOME_NOT_EARNED


def count_negative_outcomes(student_id, badge_kind_id):
    """Number of not_earned entries for a student and kind across all days."""
    count = db.session.query(func.count(DailyBadgeEntry.id)).join(
        DailyBadgeRecord, DailyBadgeEntry.record_id == DailyBadgeRecord.id
    ).filter(
        DailyBadgeRecord.student_id == student_id,
        DailyBadgeEntry.badge_kind_id == badge_kind_id,
        DailyBadgeEntry.outcome == OUTCOME_NOT_EARNED,
    ).scalar()
    return count or 0


def build_warning(kind, count):
    exceeded = count >= kind.negative_limit
    return {
        'badge_kind_id': kind.id,
        'badge_name': kind.name,
        'exceeded': exceeded,
        'count': count,
        'limit': kind.negative_limit,
        'message': kind.warning_message(count) if exceeded else None,
    }


def evaluate_warning(student_id, badge_kind_id):
    """
    Compare a student's not_earned count for one kind with the kind's limit.

    Returns a dict with exceeded, count, limit and message (None unless
    exceeded), plus the kind's id and name.
    """
    if db.session.get(Student, student_id) is None:
        raise NotFound(f"Student {student_id} not found")
    kind = db.session.get(BadgeKind, badge_kind_id)
    if kind is None:
        raise NotFound(f"Badge kind {badge_kind_id} not found")
    return build_warning(kind, count_negative_outcomes(student_id, badge_kind_id))


def evaluate_record_warnings(record):
    """Warnings for every distinct kind in a freshly written record, in entry order."""
    warnings = []
    seen = set()
    for entry in record.entries:
        if entry.badge_kind_id in seen:
            continue
        seen.add(entry.badge_kind_id)
        warning = build_warning(
            entry.badge_kind,
            count_negative_outcomes(record.student_id, entry.badge_kind_id),
        )
        if warning['exceeded']:
            current_app.logger.info(
                f"Badge warning for student {record.student_id}: "
                f"{warning['badge_name']} {warning['count']}/{warning['limit']}"
            )
        warnings.append(warning)
    return warnings


def warnings_for_student(student_id):
    """Warnings for every kind the student has at least one entry for."""
    kind_ids = [
        row[0] for row in db.session.query(DailyBadgeEntry.badge_kind_id).join(
            DailyBadgeRecord, DailyBadgeEntry.record_id == DailyBadgeRecord.id
        ).filter(DailyBadgeRecord.student_id == student_id).distinct().all()
    ]
    if not kind_ids:
        return []
    kinds = BadgeKind.query.filter(BadgeKind.id.in_(kind_ids)).order_by(
        BadgeKind.priority.desc(), BadgeKind.name.asc()
    ).all()
    return [build_warning(kind, count_negative_outcomes(student_id, kind.id)) for kind in kinds]
