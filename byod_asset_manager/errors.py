"""
Error taxonomy for the lifecycle engine and the Flask handlers that turn
it into JSON responses.
"""

import logging
from typing import Optional

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception for application errors."""
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.payload = payload or {}

    def to_dict(self):
        rv = dict(self.payload)
        rv['error'] = self.message
        rv['status'] = self.status_code
        rv['type'] = type(self).__name__
        return rv


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400


class PermissionDenied(AppError):
    """The permission matrix lacks the required capability."""
    status_code = 403


class NotFound(AppError):
    """A referenced entity does not exist."""
    status_code = 404


class InvalidState(AppError):
    """The entity is not in a state that allows the operation."""
    status_code = 409


class InvalidTransition(InvalidState):
    """The requested status change is not a legal transition."""


class PolicyViolation(AppError):
    """The operation would break a cross-entity invariant."""
    status_code = 422


class DuplicateRequest(AppError):
    """A BYOD request is already outstanding for the user."""
    status_code = 409


class Fatal(AppError):
    """A persistence or audit write failed; the unit of work was rolled back."""
    status_code = 500


def register_error_handlers(app: Flask):
    """Register JSON error handlers with the Flask app."""

    @app.errorhandler(AppError)
    def handle_app_error(error: AppError):
        if isinstance(error, Fatal):
            logger.error(f"Fatal error: {error.message}")
        else:
            logger.warning(f"{type(error).__name__}: {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        logger.info(f"HTTP {error.code}: {error.description}")
        return jsonify({'error': error.description, 'status': error.code}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):
        logger.critical(f"Unexpected error: {type(error).__name__}: {error}", exc_info=True)
        return jsonify({'error': 'An unexpected error occurred', 'status': 500}), 500
