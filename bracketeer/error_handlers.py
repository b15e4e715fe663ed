"""JSON error handlers for the application."""

from flask import Blueprint, current_app, jsonify
from pymongo.errors import DuplicateKeyError, PyMongoError
from werkzeug.exceptions import HTTPException

from .errors import AppError

error_handlers_bp = Blueprint("error_handlers", __name__)

INTERNAL_ERROR_MESSAGE = "An internal server error occurred."


def _error_response(message, status_code):
    return jsonify({"message": message}), status_code


@error_handlers_bp.app_errorhandler(AppError)
def handle_app_error(error):
    """Handles application errors raised by services and decorators."""
    if error.status_code >= 500:
        current_app.logger.error(f"Application Error: {error.message}")
    else:
        current_app.logger.warning(
            f"{type(error).__name__} ({error.status_code}): {error.message}"
        )
    return _error_response(error.message, error.status_code)


@error_handlers_bp.app_errorhandler(DuplicateKeyError)
def handle_duplicate_key_error(error):
    """Handles unique index violations that escaped the service layer."""
    current_app.logger.warning(f"Duplicate Key Error: {error}")
    return _error_response("Resource already exists.", 409)


@error_handlers_bp.app_errorhandler(PyMongoError)
def handle_db_error(error):
    """Handles database errors."""
    current_app.logger.error(f"Database Error: {error}")
    # Avoid exposing raw database error details to the user
    return _error_response("A database error occurred. Please try again later.", 500)


@error_handlers_bp.app_errorhandler(HTTPException)
def handle_http_exception(error):
    """Renders werkzeug HTTP errors (404 routes, 405 methods) as JSON."""
    return _error_response(error.description, error.code)


@error_handlers_bp.app_errorhandler(Exception)
def handle_unexpected_error(error):
    """Handles unexpected server errors."""
    current_app.logger.exception(f"Internal Server Error: {error}")
    if current_app.config.get("APP_ENV") == "production":
        return _error_response(INTERNAL_ERROR_MESSAGE, 500)
    return _error_response(str(error) or INTERNAL_ERROR_MESSAGE, 500)
