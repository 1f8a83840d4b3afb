"""
Error handling helpers and decorators for Flask routes and database access
Turns the domain error hierarchy into JSON responses and wraps SQLAlchemy
failures into PersistenceError
"""

import hmac
from functools import wraps
from flask import jsonify, request, current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

from core.errors import MarketError, ConflictError, PersistenceError, AuthenticationError

logger = logging.getLogger(__name__)


def api_error_handler(func):
    """
    Decorator for API endpoints that automatically handles exceptions
    and returns proper JSON error responses

    Usage:
        @app.route('/api/data')
        @api_error_handler
        def get_data():
            return json_success(data)
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except MarketError as e:
            if e.status_code >= 500:
                logger.error(f"{e.__class__.__name__} in {func.__name__}: {e}", exc_info=True)
            else:
                logger.warning(f"{e.__class__.__name__} in {func.__name__}: {e}")
            body = {'success': False}
            body.update(e.to_dict())
            return jsonify(body), e.status_code
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {e}", exc_info=True)
            return jsonify({'success': False, 'error': 'InternalError',
                            'message': 'Internal server error'}), 500
    return wrapper


def db_error_handler(func):
    """
    Decorator for store methods
    Unique violations become ConflictError, any other SQLAlchemy failure
    becomes PersistenceError. Domain errors pass through untouched.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except IntegrityError as e:
            logger.warning(f"Integrity error in {func.__name__}: {e.orig}")
            raise ConflictError("Record already exists", ConflictError.DUPLICATE) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error in {func.__name__}: {e}", exc_info=True)
            raise PersistenceError(f"Database error in {func.__name__}", original=e) from e
    return wrapper


def require_admin(func):
    """
    Route decorator checking the admin password

    Accepts either ``X-Admin-Password: <password>`` or
    ``Authorization: Bearer <password>``. Must sit below api_error_handler.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        expected = current_app.config.get('ADMIN_PASSWORD')
        if not expected:
            logger.error("ADMIN_PASSWORD is not configured, refusing admin request")
            raise AuthenticationError("Admin access is not configured")

        provided = request.headers.get('X-Admin-Password')
        if not provided:
            auth_header = request.headers.get('Authorization', '')
            if auth_header.startswith('Bearer '):
                provided = auth_header[len('Bearer '):].strip()

        if not provided or not hmac.compare_digest(provided, expected):
            logger.warning(f"Rejected admin request to {request.path} from {request.remote_addr}")
            raise AuthenticationError("Invalid admin credentials")
        return func(*args, **kwargs)
    return wrapper


# Helper functions for common response patterns

def json_success(data=None, message=None, status_code=200, **kwargs):
    """
    Create standardized success JSON response

    Args:
        data: Optional data to include
        message: Optional success message
        status_code: HTTP status code (default 200)
        **kwargs: Additional fields to include
    """
    response = {'success': True}
    if data is not None:
        response['data'] = data
    if message:
        response['message'] = message
    response.update(kwargs)
    return jsonify(response), status_code


def validate_required_fields(data, required_fields):
    """
    Validate that all required fields are present in data dict

    Returns:
        tuple: (is_valid: bool, missing_fields: list)
    """
    missing = [field for field in required_fields if data.get(field) in (None, '')]
    return (len(missing) == 0, missing)


def safe_int(value, default=0):
    """Safely convert value to integer with fallback"""
    try:
        return int(value)
    except (ValueError, TypeError):
        return default
