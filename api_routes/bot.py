"""
Endpoints the Telegram bot front-end calls on behalf of its users.
"""

from flask import Blueprint, jsonify, request

from decorators import bot_token_required
from error_handler import NotFound
from models import Student, User
from services.badge_reports import build_student_badge_report
from services.parent_linking import claim_student_for_parent, find_parent_by_telegram_id

bp = Blueprint('bot', __name__)


@bp.route('/users/<telegram_id>')
@bot_token_required
def user_by_telegram_id(telegram_id):
    user = User.query.filter_by(telegram_id=str(telegram_id)).first()
    if user is None:
        raise NotFound('User not found')
    return jsonify({'success': True, 'user': user.to_dict()})


@bp.route('/students/<code>')
@bot_token_required
def student_by_code(code):
    """
    Student card with recent badge report. When the caller passes the
    chatting parent's Telegram id and the student has no parent yet, that
    parent claims the student.
    """
    student = Student.find_by_code(code)
    if student is None:
        raise NotFound('Student not found')

    parent_assigned = False
    telegram_id = request.args.get('parent')
    if telegram_id:
        parent_assigned = claim_student_for_parent(student, telegram_id)

    report = build_student_badge_report(student.id)
    return jsonify({
        'success': True,
        'student': student.to_dict(),
        'parent_assigned': parent_assigned,
        'badges': [record.to_dict() for record in report['records']],
        'stats': report['stats'],
        'warnings': [w for w in report['warnings'] if w['exceeded']],
        'report_text': report['report_text'],
    })


@bp.route('/parents/<telegram_id>/children')
@bot_token_required
def parent_children(telegram_id):
    parent = find_parent_by_telegram_id(telegram_id)
    if parent is None:
        raise NotFound('Parent not found')
    children = Student.query.filter_by(parent_id=parent.id, is_active=True).order_by(
        Student.enrolled_at.desc()
    ).all()
    return jsonify({'success': True, 'children': [child.to_dict() for child in children]})
