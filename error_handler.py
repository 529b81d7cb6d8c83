"""
Error types for the badge services and the JSON error handlers that turn
them into API responses.
"""

import logging
import traceback

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from extensions import db

logger = logging.getLogger(__name__)


class BadgeServiceError(Exception):
    """Base class for errors raised by the services package."""
    error_type = 'application_error'
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        payload = {'success': False, 'error': self.message, 'error_type': self.error_type}
        if self.details:
            payload['details'] = self.details
        return payload


class ValidationError(BadgeServiceError):
    """Malformed input. Nothing has been written."""
    error_type = 'validation_error'
    status_code = 400


class NotFound(ValidationError):
    """A referenced student, badge kind or notification does not exist."""
    error_type = 'not_found'
    status_code = 404


class StorageError(BadgeServiceError):
    """The store was unavailable or refused the write."""
    error_type = 'storage_error'
    status_code = 503


def error_result(error):
    """Per-item result body for bulk operations."""
    if isinstance(error, BadgeServiceError):
        return {'success': False, 'error': error.message, 'error_type': error.error_type}
    return {'success': False, 'error': str(error), 'error_type': 'application_error'}


def commit_or_raise(context):
    """Commit the session, converting store failures into StorageError."""
    try:
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Storage failure during {context}: {e}")
        raise StorageError(f"Could not save {context}") from e


def register_error_handlers(app):
    """Attach JSON error handlers to the application."""

    @app.errorhandler(BadgeServiceError)
    def handle_service_error(error):
        if isinstance(error, StorageError):
            db.session.rollback()
            app.logger.error(f"Storage error: {error.message}")
        else:
            app.logger.info(f"{error.error_type}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        error_types = {
            400: 'bad_request',
            401: 'unauthorized',
            403: 'forbidden',
            404: 'not_found',
            405: 'method_not_allowed',
        }
        return jsonify({
            'success': False,
            'error': error.description,
            'error_type': error_types.get(error.code, 'http_error'),
        }), error.code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        db.session.rollback()
        app.logger.error(f"Database error: {error}")
        app.logger.debug(traceback.format_exc())
        return jsonify({
            'success': False,
            'error': 'Storage is unavailable',
            'error_type': StorageError.error_type,
        }), StorageError.status_code

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f"Server Error: {error}")
        return jsonify({'success': False, 'error': 'Server error', 'error_type': 'server_error'}), 500
