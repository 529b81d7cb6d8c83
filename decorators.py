import hmac
from functools import wraps

from flask import abort, current_app, request
from flask_login import current_user

from models import STAFF_ROLES


def has_role(user, roles):
    """Check whether an authenticated user holds one of the given roles."""
    if not user or not user.is_authenticated:
        return False
    role = str(user.role).strip().lower() if user.role else None
    return role in roles


def admin_required(f):
    """Restricts access to users with the 'admin' role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)  # Unauthorized - not logged in
        if not has_role(current_user, ('admin',)):
            abort(403)  # Forbidden - wrong role
        return f(*args, **kwargs)
    return decorated_function


def staff_required(f):
    """Restricts access to admins and teachers, the roles allowed to write badges."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        if not has_role(current_user, STAFF_ROLES):
            abort(403)
        return f(*args, **kwargs)
    return decorated_function


def bot_token_required(f):
    """
    Guards the bot endpoints with a shared secret in the X-Bot-Token header.
    Open when BOT_API_TOKEN is not configured.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        expected = current_app.config.get('BOT_API_TOKEN')
        if expected:
            supplied = request.headers.get('X-Bot-Token', '')
            if not hmac.compare_digest(supplied, expected):
                abort(401)
        return f(*args, **kwargs)
    return decorated_function
