from flask import request

from error_handler import ValidationError


def json_body():
    """Request JSON as a dict; anything else is a validation error."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def int_arg(name, default, minimum=1, maximum=100):
    """Integer query parameter clamped to [minimum, maximum]."""
    raw = request.args.get(name)
    if raw in (None, ''):
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer")
    return max(minimum, min(value, maximum))


def bool_arg(name):
    raw = request.args.get(name)
    if raw is None:
        return None
    return raw.lower() in ('true', '1', 'yes')


def pagination_meta(page_data):
    return {
        'total_pages': page_data['total_pages'],
        'current_page': page_data['current_page'],
        'total': page_data['total'],
    }
