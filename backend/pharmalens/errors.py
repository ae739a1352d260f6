"""
Application error taxonomy and their JSON mapping.
Every error response body is {"error": "<human readable message>"}.
"""

import logging

from flask import jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from pharmalens.database import db

logger = logging.getLogger("pharmalens.errors")


class PharmaLensError(Exception):
    """Base exception for all PharmaLens errors."""

    status_code = 500
    default_message = "Server error"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(PharmaLensError):
    """Missing or malformed input."""

    status_code = 400
    default_message = "Invalid request"


class AuthError(PharmaLensError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_message = "Access token required"


class ForbiddenError(AuthError):
    status_code = 403
    default_message = "Forbidden"


class ConflictError(PharmaLensError):
    status_code = 409
    default_message = "Resource already exists"


class NotFoundError(PharmaLensError):
    status_code = 404
    default_message = "Not found"


class ExternalServiceError(PharmaLensError):
    """An OCR or AI API call failed. `stage` names which one."""

    status_code = 500
    default_message = "External service error"

    def __init__(self, message: str | None = None, stage: str = ""):
        self.stage = stage
        super().__init__(message)


class StorageError(PharmaLensError):
    status_code = 500
    default_message = "Failed to save data"


def register_error_handlers(app) -> None:
    """Map the taxonomy above (plus upload/DB failures) onto JSON responses."""

    @app.errorhandler(PharmaLensError)
    def _handle_app_error(exc: PharmaLensError):
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        return jsonify({"error": exc.message}), exc.status_code

    @app.errorhandler(RequestEntityTooLarge)
    def _handle_too_large(_exc):
        return jsonify({"error": "File too large"}), 400

    @app.errorhandler(SQLAlchemyError)
    def _handle_db_error(exc: SQLAlchemyError):
        logger.exception("Database error: %s", exc)
        db.session.rollback()
        return jsonify({"error": "Database error"}), 500

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        # Routing errors and redirects pass through untouched
        if isinstance(exc, HTTPException):
            return exc
        logger.exception("Unhandled error: %s", exc)
        db.session.rollback()
        return jsonify({"error": "Server error"}), 500
