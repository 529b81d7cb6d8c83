"""
Badge catalog: the kinds of badge a teacher can award, their colors and
negative-outcome limits. Kinds are soft-deactivated so old daily records
keep resolving them.
"""

from flask import current_app
from sqlalchemy import case, func

from error_handler import NotFound, ValidationError, commit_or_raise
from extensions import db
from models import (
    BadgeKind,
    DailyBadgeEntry,
    BADGE_CATEGORIES,
    BADGE_COLORS,
    OUTCOME_EARNED,
)

EDITABLE_FIELDS = (
    'name', 'description', 'color', 'category', 'is_active',
    'priority', 'negative_limit', 'warning_template',
)


def _validate_int(value, field, minimum, maximum):
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer")
    if number != value and not isinstance(value, str):
        raise ValidationError(f"{field} must be an integer")
    if not minimum <= number <= maximum:
        raise ValidationError(f"{field} must be between {minimum} and {maximum}")
    return number


def _clean_fields(data, partial):
    unknown = set(data) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

    cleaned = {}
    if 'name' in data or not partial:
        name = data.get('name')
        name = name.strip() if isinstance(name, str) else ''
        if not name:
            raise ValidationError("Badge name is required")
        if len(name) > 50:
            raise ValidationError("Badge name must not exceed 50 characters")
        cleaned['name'] = name
    if 'description' in data:
        description = data.get('description')
        if description and len(description) > 200:
            raise ValidationError("Description must not exceed 200 characters")
        cleaned['description'] = description
    if 'color' in data:
        if data['color'] not in BADGE_COLORS:
            raise ValidationError(f"Color must be one of: {', '.join(BADGE_COLORS)}")
        cleaned['color'] = data['color']
    if 'category' in data:
        if data['category'] not in BADGE_CATEGORIES:
            raise ValidationError(f"Category must be one of: {', '.join(BADGE_CATEGORIES)}")
        cleaned['category'] = data['category']
    if 'priority' in data:
        cleaned['priority'] = _validate_int(data['priority'], 'priority', 1, 10)
    if 'negative_limit' in data:
        cleaned['negative_limit'] = _validate_int(data['negative_limit'], 'negative_limit', 1, 10)
    if 'warning_template' in data:
        template = data.get('warning_template')
        if template is not None and not isinstance(template, str):
            raise ValidationError("Warning template must be a string")
        if template and len(template) > 300:
            raise ValidationError("Warning template must not exceed 300 characters")
        if template:
            _check_template(template)
        cleaned['warning_template'] = template or None
    if 'is_active' in data:
        cleaned['is_active'] = _parse_flag(data['is_active'], 'is_active')
    return cleaned


def _check_template(template):
    """Templates may only use the {name}, {count} and {limit} placeholders."""
    try:
        template.format(name='Homework', count=2, limit=2)
    except (KeyError, IndexError, ValueError, AttributeError, TypeError):
        raise ValidationError(
            "Warning template may only use {name}, {count} and {limit} placeholders"
        )


def _parse_flag(value, field):
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ('true', '1', 'yes'):
        return True
    if isinstance(value, str) and value.strip().lower() in ('false', '0', 'no'):
        return False
    raise ValidationError(f"{field} must be true or false")


def _ensure_unique_active_name(name, exclude_id=None):
    query = BadgeKind.query.filter(BadgeKind.is_active.is_(True), BadgeKind.name == name)
    if exclude_id is not None:
        query = query.filter(BadgeKind.id != exclude_id)
    if query.first():
        raise ValidationError(f"An active badge named '{name}' already exists")


def list_badge_kinds(include_inactive=False):
    """Badge kinds by priority (highest first), then name."""
    query = BadgeKind.query
    if not include_inactive:
        query = query.filter_by(is_active=True)
    return query.order_by(BadgeKind.priority.desc(), BadgeKind.name.asc()).all()


def get_badge_kind(badge_kind_id):
    kind = db.session.get(BadgeKind, badge_kind_id)
    if kind is None:
        raise NotFound(f"Badge kind {badge_kind_id} not found")
    return kind


def create_badge_kind(data):
    """Create a badge kind from request data."""
    cleaned = _clean_fields(data or {}, partial=False)
    if cleaned.get('is_active', True):
        _ensure_unique_active_name(cleaned['name'])
    kind = BadgeKind(**cleaned)
    db.session.add(kind)
    commit_or_raise('badge kind')
    current_app.logger.info(f"Badge kind created: {kind.name} (id {kind.id})")
    return kind


def update_badge_kind(badge_kind_id, data):
    """Apply a partial update. Reactivating checks name uniqueness again."""
    kind = get_badge_kind(badge_kind_id)
    cleaned = _clean_fields(data or {}, partial=True)
    name = cleaned.get('name', kind.name)
    is_active = cleaned.get('is_active', kind.is_active)
    if is_active and (name != kind.name or not kind.is_active):
        _ensure_unique_active_name(name, exclude_id=kind.id)
    for field, value in cleaned.items():
        setattr(kind, field, value)
    commit_or_raise('badge kind')
    return kind


def deactivate_badge_kind(badge_kind_id):
    """Soft delete. Historical entries still point at the row."""
    kind = get_badge_kind(badge_kind_id)
    kind.is_active = False
    commit_or_raise('badge kind')
    current_app.logger.info(f"Badge kind deactivated: {kind.name} (id {kind.id})")
    return kind


def badge_kind_usage_stats():
    """
    For every active kind: how many daily records use it and how many of
    its entries were earned.
    """
    usage_rows = db.session.query(
        DailyBadgeEntry.badge_kind_id,
        func.count(func.distinct(DailyBadgeEntry.record_id)),
        func.coalesce(func.sum(case((DailyBadgeEntry.outcome == OUTCOME_EARNED, 1), else_=0)), 0),
    ).group_by(DailyBadgeEntry.badge_kind_id).all()
    usage = {kind_id: (records, earned) for kind_id, records, earned in usage_rows}

    stats = []
    for kind in list_badge_kinds():
        records, earned = usage.get(kind.id, (0, 0))
        item = kind.to_dict()
        item['total_usage'] = records
        item['earned_count'] = earned
        stats.append(item)
    return stats
