"""
Error taxonomy — every failure a request can end in.
Handlers registered by register_error_handlers() turn them into
{"success": false, "message": ...} with the matching status code.
"""

import logging
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing."""


class ServiceError(Exception):
    status_code = 500
    message = 'Internal server error.'

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(ServiceError):
    status_code = 400
    message = 'Invalid request.'


class PreconditionError(ServiceError):
    status_code = 400
    message = 'Precondition failed.'


class AuthError(ServiceError):
    status_code = 401
    message = 'Invalid credentials.'


class ForbiddenError(ServiceError):
    status_code = 403
    message = 'Forbidden.'


class NotFoundError(ServiceError):
    status_code = 404
    message = 'Not found.'


class ConflictError(ServiceError):
    status_code = 409
    message = 'Conflict.'


class DeliveryError(ServiceError):
    status_code = 500
    message = 'Error sending OTP.'


class InternalFault(ServiceError):
    status_code = 500


def error_response(message, status_code):
    return jsonify({'success': False, 'message': message}), status_code


def register_error_handlers(app):
    from transitpass.extensions import db

    @app.errorhandler(ServiceError)
    def handle_service_error(error):
        if error.status_code >= 500:
            logger.error(f"{request.method} {request.path} failed: {error!r}", exc_info=error.__cause__)
        else:
            logger.warning(f"{request.method} {request.path} rejected ({error.status_code}): {error.message}")
        return error_response(error.message, error.status_code)

    @app.errorhandler(404)
    def handle_not_found(error):
        return error_response('Endpoint not found.', 404)

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return error_response('Method not allowed.', 405)

    @app.errorhandler(413)
    def handle_too_large(error):
        logger.warning(f"{request.method} {request.path} rejected (413): body over {request.max_content_length} bytes")
        return error_response('Request body too large.', 413)

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return error_response(error.description, error.code)

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return error_response('Internal server error.', 500)
