"""
Daily badge routes: writing a day's badges for one student or a list of
students, browsing records, and per-student reports and warnings.
"""

from flask import Blueprint, jsonify, request, abort
from flask_login import login_required, current_user

from decorators import staff_required, has_role
from models import STAFF_ROLES
from services.badge_reports import build_student_badge_report
from services.badge_warnings import evaluate_warning
from services.daily_badges import (
    upsert_daily_record,
    upsert_daily_record_bulk,
    list_daily_records,
    resolve_student,
)
from .utils import json_body, int_arg, pagination_meta

bp = Blueprint('daily_badges', __name__)


def _check_student_access(student):
    """Staff see every student; parents only their own children."""
    if has_role(current_user, STAFF_ROLES):
        return
    if current_user.role == 'parent' and student.parent_id == current_user.id:
        return
    abort(403)


@bp.route('/daily-badges')
@login_required
def list_records():
    student_ids = None
    if not has_role(current_user, STAFF_ROLES):
        if current_user.role != 'parent':
            abort(403)
        student_ids = [child.id for child in current_user.children]

    page_data = list_daily_records(
        student_id=request.args.get('student'),
        student_ids=student_ids,
        group_id=request.args.get('group'),
        day=request.args.get('date'),
        page=int_arg('page', 1, maximum=10000),
        limit=int_arg('limit', 10),
    )
    return jsonify({
        'success': True,
        'daily_badges': [record.to_dict() for record in page_data['records']],
        'pagination': pagination_meta(page_data),
    })


@bp.route('/daily-badges', methods=['POST'])
@login_required
@staff_required
def save_record():
    data = json_body()
    record = upsert_daily_record(
        data.get('student_id'),
        data.get('date'),
        data.get('entries'),
        notes=data.get('notes'),
        actor_id=current_user.id,
    )
    return jsonify({
        'success': True,
        'message': 'Daily badges saved',
        'daily_badge': record.to_dict(),
    }), 201


@bp.route('/daily-badges/bulk', methods=['POST'])
@login_required
@staff_required
def save_records_bulk():
    data = json_body()
    results = upsert_daily_record_bulk(
        data.get('student_ids'),
        data.get('date'),
        data.get('entries'),
        notes=data.get('notes'),
        actor_id=current_user.id,
    )
    payload = []
    for result in results:
        item = dict(result)
        if 'record' in item:
            item['record'] = item['record'].to_dict()
        payload.append(item)
    succeeded = sum(1 for item in payload if item['success'])
    return jsonify({
        'success': True,
        'message': f"Badges saved for {succeeded} of {len(payload)} students",
        'succeeded': succeeded,
        'failed': len(payload) - succeeded,
        'results': payload,
    })


@bp.route('/students/<int:student_id>/badge-stats')
@login_required
def student_badge_stats(student_id):
    student = resolve_student(student_id)
    _check_student_access(student)
    report = build_student_badge_report(student.id, limit=int_arg('limit', None, maximum=365))
    return jsonify({
        'success': True,
        'student': student.to_dict(),
        'stats': report['stats'],
        'warnings': report['warnings'],
        'records_count': len(report['records']),
    })


@bp.route('/students/<int:student_id>/warnings/<int:badge_kind_id>')
@login_required
def student_badge_warning(student_id, badge_kind_id):
    student = resolve_student(student_id)
    _check_student_access(student)
    return jsonify({'success': True, 'warning': evaluate_warning(student.id, badge_kind_id)})
