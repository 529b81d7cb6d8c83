"""
Daily badge record store.

One record per (student, calendar day). A second write for the same day
replaces the record's entries, notes and author in one commit; readers
never see a half-written entries list. After every successful write the
warning evaluator and the parent notification run, and neither can undo
the write.
"""

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from error_handler import NotFound, StorageError, ValidationError, error_result
from extensions import db
from models import (
    BadgeKind,
    DailyBadgeEntry,
    DailyBadgeRecord,
    Student,
    User,
    OUTCOMES,
)
from services.activity_log import log_activity
from services.badge_warnings import evaluate_record_warnings
from services.notifications import dispatch_badge_notification
from services.school_time import normalize_day


def _as_id(value, field):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id")


def resolve_student(student_id):
    student_id = _as_id(student_id, 'student_id')
    try:
        student = db.session.get(Student, student_id)
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Storage failure loading student {student_id}: {e}")
        raise StorageError(f"Could not load student {student_id}") from e
    if student is None:
        raise NotFound(f"Student {student_id} not found")
    return student


def _validate_notes(notes):
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("notes must be a string")
    return notes or None


def _resolve_actor(actor_id):
    if actor_id is None:
        raise ValidationError("actor_id is required")
    actor = db.session.get(User, _as_id(actor_id, 'actor_id'))
    if actor is None:
        raise ValidationError(f"Actor {actor_id} not found")
    return actor


def validate_entries(entries):
    """
    Check an ordered entries list and resolve its badge kinds.

    Returns a list of (BadgeKind, outcome) pairs in the submitted order.
    Inactive kinds are accepted.
    """
    if not isinstance(entries, (list, tuple)) or not entries:
        raise ValidationError("entries must be a non-empty list")

    parsed = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise ValidationError(f"entries[{position}] must be an object")
        outcome = entry.get('outcome')
        if outcome not in OUTCOMES:
            raise ValidationError(
                f"entries[{position}].outcome must be one of: {', '.join(OUTCOMES)}"
            )
        kind_id = _as_id(entry.get('badge_kind_id'), f"entries[{position}].badge_kind_id")
        parsed.append((kind_id, outcome))

    kind_ids = {kind_id for kind_id, _ in parsed}
    kinds = {kind.id: kind for kind in BadgeKind.query.filter(BadgeKind.id.in_(kind_ids)).all()}
    missing = sorted(kind_ids - set(kinds))
    if missing:
        raise NotFound(f"Badge kind(s) not found: {', '.join(str(k) for k in missing)}")

    return [(kinds[kind_id], outcome) for kind_id, outcome in parsed]


def _write_record(student, record_day, kinds, notes, actor_id):
    """
    Insert or replace the record for (student, day). If a concurrent writer
    inserts the same key first, the insert is retried as a replace, so the
    last commit wins. Any store failure, read or write, becomes StorageError.
    """
    for attempt in range(2):
        created = False
        try:
            record = DailyBadgeRecord.query.filter_by(student_id=student.id, day=record_day).first()
            created = record is None
            if created:
                record = DailyBadgeRecord(student_id=student.id, day=record_day)
                db.session.add(record)

            record.entries = [
                DailyBadgeEntry(badge_kind=kind, outcome=outcome, position=position)
                for position, (kind, outcome) in enumerate(kinds)
            ]
            record.notes = notes
            record.created_by = actor_id
            db.session.commit()
            return record, created
        except IntegrityError as e:
            db.session.rollback()
            if created and attempt == 0:
                current_app.logger.info(
                    f"Concurrent insert for student {student.id} on {record_day}; retrying as replace"
                )
                continue
            raise StorageError(f"Could not save daily badges for student {student.id}") from e
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error(f"Storage failure saving daily badges for student {student.id}: {e}")
            raise StorageError(f"Could not save daily badges for student {student.id}") from e
    raise StorageError(f"Could not save daily badges for student {student.id}")


def _after_write(record, student):
    """Warning evaluation and parent notification. Failures are logged only."""
    warnings = []
    try:
        warnings = evaluate_record_warnings(record)
    except Exception as e:
        current_app.logger.error(f"Warning evaluation failed for record {record.id}: {e}")
    try:
        dispatch_badge_notification(record, student, warnings=warnings)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Badge notification failed for record {record.id}: {e}")
    return warnings


def _save(student, record_day, kinds, notes, actor):
    record, created = _write_record(student, record_day, kinds, notes, actor.id)
    current_app.logger.info(
        f"Daily badges {'created' if created else 'replaced'} for student {student.id} "
        f"on {record_day} by user {actor.id} ({len(kinds)} entries)"
    )
    _after_write(record, student)
    return record


def upsert_daily_record(student_id, day, entries, notes=None, actor_id=None):
    """
    Write one student's badges for a day and return the stored record.

    Raises ValidationError (NotFound for missing references) before
    anything is written, or StorageError if the store refuses the write.
    """
    student = resolve_student(student_id)
    kinds = validate_entries(entries)
    notes = _validate_notes(notes)
    record_day = normalize_day(day)
    actor = _resolve_actor(actor_id)

    record = _save(student, record_day, kinds, notes, actor)
    log_activity(actor.id, 'daily_badges_saved', details={
        'student_id': student.id,
        'day': record_day.isoformat(),
        'entries': len(kinds),
    })
    return record


def upsert_daily_record_bulk(student_ids, day, entries, notes=None, actor_id=None):
    """
    Apply the same entries to every student in order. Each student is
    handled on its own: a failure is reported in that student's result
    and the rest of the list is still processed.

    The shared inputs (entries, notes, day, actor) are validated once up front.
    Returns one dict per student id, in input order::

        {'student_id': ..., 'success': True, 'record': DailyBadgeRecord}
        {'student_id': ..., 'success': False, 'error': ..., 'error_type': ...}
    """
    if not isinstance(student_ids, (list, tuple)) or not student_ids:
        raise ValidationError("student_ids must be a non-empty list")
    kinds = validate_entries(entries)
    notes = _validate_notes(notes)
    record_day = normalize_day(day)
    actor = _resolve_actor(actor_id)

    results = []
    for student_id in student_ids:
        try:
            student = resolve_student(student_id)
            record = _save(student, record_day, kinds, notes, actor)
            results.append({'student_id': student_id, 'success': True, 'record': record})
        except (ValidationError, StorageError) as e:
            current_app.logger.warning(f"Bulk badge write failed for student {student_id}: {e}")
            result = error_result(e)
            result['student_id'] = student_id
            results.append(result)

    succeeded = sum(1 for result in results if result['success'])
    log_activity(actor.id, 'daily_badges_bulk_saved', details={
        'day': record_day.isoformat(),
        'students': len(results),
        'succeeded': succeeded,
    })
    return results


def get_records_for_student(student_id, since_day=None, limit=None):
    """A student's records, newest day first, optionally bounded by day and count."""
    student = resolve_student(student_id)
    query = DailyBadgeRecord.query.filter_by(student_id=student.id)
    if since_day is not None:
        query = query.filter(DailyBadgeRecord.day >= normalize_day(since_day))
    query = query.order_by(DailyBadgeRecord.day.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def list_daily_records(student_id=None, student_ids=None, group_id=None, day=None, page=1, limit=10):
    """
    Paginated records filtered by student, a set of students, group or a
    single calendar day, newest day first.
    """
    query = DailyBadgeRecord.query
    if student_id is not None:
        query = query.filter(DailyBadgeRecord.student_id == _as_id(student_id, 'student'))
    if student_ids is not None:
        query = query.filter(DailyBadgeRecord.student_id.in_(student_ids))
    if group_id is not None:
        group_students = db.select(Student.id).where(
            Student.group_id == _as_id(group_id, 'group'),
            Student.is_active.is_(True),
        )
        query = query.filter(DailyBadgeRecord.student_id.in_(group_students))
    if day:
        query = query.filter(DailyBadgeRecord.day == normalize_day(day))

    pagination = query.order_by(DailyBadgeRecord.day.desc(), DailyBadgeRecord.id.desc()).paginate(
        page=page, per_page=limit, error_out=False
    )
    return {
        'records': pagination.items,
        'total': pagination.total,
        'total_pages': pagination.pages,
        'current_page': pagination.page,
    }
