"""
Session login for dashboard users, plus the audit trail view.
"""

from flask import Blueprint, jsonify, abort, request
from flask_login import login_user, logout_user, login_required, current_user
from werkzeug.security import check_password_hash

from decorators import admin_required
from models import User
from services.activity_log import log_activity, get_activity_log, activity_to_dict
from .utils import json_body, int_arg

bp = Blueprint('auth', __name__)


@bp.route('/auth/login', methods=['POST'])
def login():
    data = json_body()
    username = data.get('username')
    password = data.get('password')
    if not username or not password:
        abort(400, description='Username and password are required')

    user = User.query.filter_by(username=username).first()
    if user is None or not user.is_active or not check_password_hash(user.password_hash, password):
        log_activity(
            user.id if user else None,
            'login_failed',
            details={'username': username},
            success=False,
            error_message='Invalid credentials',
        )
        abort(401, description='Invalid username or password')

    login_user(user)
    log_activity(user.id, 'login', details={'role': user.role})
    return jsonify({'success': True, 'user': user.to_dict()})


@bp.route('/auth/logout', methods=['POST'])
@login_required
def logout():
    log_activity(current_user.id, 'logout')
    logout_user()
    return jsonify({'success': True})


@bp.route('/auth/me')
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})


@bp.route('/activity-log')
@login_required
@admin_required
def activity_log():
    entries = get_activity_log(
        user_id=request.args.get('user_id', type=int),
        action=request.args.get('action'),
        limit=int_arg('limit', 100, maximum=500),
    )
    return jsonify({'success': True, 'entries': [activity_to_dict(e) for e in entries]})
