"""
Badge catalog routes. Anyone logged in can read; only admins change it.
"""

from flask import Blueprint, jsonify
from flask_login import login_required

from decorators import admin_required
from services.badge_catalog import (
    list_badge_kinds,
    create_badge_kind,
    update_badge_kind,
    deactivate_badge_kind,
    badge_kind_usage_stats,
)
from .utils import json_body, bool_arg

bp = Blueprint('badges', __name__)


@bp.route('/badges')
@login_required
def list_badges():
    kinds = list_badge_kinds(include_inactive=bool(bool_arg('include_inactive')))
    return jsonify({'success': True, 'badges': [kind.to_dict() for kind in kinds]})


@bp.route('/badges/stats')
@login_required
def badge_stats():
    return jsonify({'success': True, 'badges': badge_kind_usage_stats()})


@bp.route('/badges', methods=['POST'])
@login_required
@admin_required
def create_badge():
    kind = create_badge_kind(json_body())
    return jsonify({'success': True, 'message': 'Badge created', 'badge': kind.to_dict()}), 201


@bp.route('/badges/<int:badge_kind_id>', methods=['PUT'])
@login_required
@admin_required
def update_badge(badge_kind_id):
    kind = update_badge_kind(badge_kind_id, json_body())
    return jsonify({'success': True, 'message': 'Badge updated', 'badge': kind.to_dict()})


@bp.route('/badges/<int:badge_kind_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_badge(badge_kind_id):
    deactivate_badge_kind(badge_kind_id)
    return jsonify({'success': True, 'message': 'Badge deactivated'})
