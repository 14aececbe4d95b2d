"""Error handling middleware.

Maps the CoopEngineError hierarchy onto HTTP status codes and makes every
error response a JSON body of the same shape.
"""

import logging

from flask import jsonify
from werkzeug.exceptions import HTTPException

from coopengine.core.errors import CoopEngineError

logger = logging.getLogger(__name__)

ERROR_CODE_TO_HTTP_STATUS = {
    "VALIDATION_ERROR": 400,
    "INVALID_INPUT": 400,
    "SCHEMA_VALIDATION": 400,
    "PROVIDER_AUTH": 401,
    "NOT_FOUND": 404,
    "PROVIDER_RATE_LIMIT": 429,
    "PROVIDER_UNAVAILABLE": 503,
    "PROVIDER_NOT_CONFIGURED": 503,
    "PROVIDER_TIMEOUT": 504,
}


def status_for(error: CoopEngineError) -> int:
    return ERROR_CODE_TO_HTTP_STATUS.get(error.error_code, 500)


def register_error_handlers(app):
    """Register error handlers with Flask app."""

    @app.errorhandler(CoopEngineError)
    def handle_app_error(e: CoopEngineError):
        status = status_for(e)
        if status >= 500:
            logger.error("%s: %s", e.error_code, e.message)
        return jsonify(e.to_dict()), status

    @app.errorhandler(429)
    def rate_limit_exceeded(e):
        logger.warning("Rate limit exceeded on %s", getattr(e, "description", ""))
        body = {
            "error": True,
            "error_code": "RATE_LIMIT_EXCEEDED",
            "message": "Too many requests. Please try again later.",
            "retry_after": e.description,
        }
        return jsonify(body), 429, {"Retry-After": str(e.description)}

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        body = {
            "error": True,
            "error_code": e.name.upper().replace(" ", "_"),
            "message": e.description,
        }
        return jsonify(body), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        logger.exception("Unhandled exception: %s", e)
        body = {
            "error": True,
            "error_code": "INTERNAL_ERROR",
            "message": "Internal server error",
        }
        return jsonify(body), 500
