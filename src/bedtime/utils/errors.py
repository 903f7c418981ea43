"""
API exceptions and the JSON error format.

Every failure that reaches a client is rendered as
``{"error": ..., "error_code": ..., "details": {...}}``. Subclasses of
``APIError`` fix the code and HTTP status; handlers registered by
``register_error_handlers`` turn them (and anything unexpected) into that
shape.
"""

import logging
import traceback
from typing import Any, Dict, Optional, Tuple

from flask import Response, jsonify, request
from werkzeug.exceptions import HTTPException

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong while handling the request."


class APIError(Exception):
    """An error with a client-facing message, a stable code and a status."""

    error_code = "API_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message, "error_code": self.error_code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(APIError):
    """Bad client input. The message is shown to the user as-is."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class AuthenticationError(APIError):
    """Owner-scoped operation without a signed-in user."""

    error_code = "NOT_AUTHENTICATED"
    status_code = 401

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class NotFoundError(APIError):
    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, kind: str, identifier: str):
        super().__init__(f"{kind} not found", details={"kind": kind, "id": identifier})


class UpstreamServiceError(APIError):
    """
    A collaborator (language model, database) failed.

    The message stays generic; the underlying error text travels in
    ``details["reason"]``.
    """

    error_code = "UPSTREAM_ERROR"
    status_code = 500

    def __init__(self, message: str, reason: Optional[str] = None):
        super().__init__(message, details={"reason": reason} if reason else None)


class ImageFetchError(APIError):
    """A proxied image URL answered with a non-success status."""

    error_code = "IMAGE_FETCH_FAILED"

    def __init__(self, upstream_status: int, url: str):
        # Redirects and other non-error statuses are reported as a bad gateway
        status = upstream_status if 400 <= upstream_status <= 599 else 502
        super().__init__(
            "Failed to fetch image",
            status_code=status,
            details={"upstream_status": upstream_status, "url": url},
        )


class RateLimitError(APIError):
    error_code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(self, limit: Optional[str] = None):
        details = {"limit": limit} if limit else None
        super().__init__("Too many requests, slow down and try again shortly.", details=details)


class ServiceUnavailableError(APIError):
    """An external service is not configured or cannot be reached."""

    error_code = "SERVICE_UNAVAILABLE"
    status_code = 503

    def __init__(self, service: str, message: Optional[str] = None):
        super().__init__(message or f"{service} is not available right now.", details={"service": service})


class MissingDependencyError(APIError):
    """An optional export library is not installed."""

    error_code = "MISSING_DEPENDENCY"
    status_code = 503

    def __init__(self, dependency: str, install_command: str):
        super().__init__(
            f"The '{dependency}' package is needed for this export ({install_command}).",
            details={"dependency": dependency, "install": install_command},
        )


def _log_error(error: Exception, status: int) -> None:
    where = f"{request.method} {request.path}"
    if status < 500:
        logger.info(f"{where} -> {status} {type(error).__name__}: {error}")
    else:
        logger.error(f"{where} -> {status} {type(error).__name__}: {error}", exc_info=True)


def create_error_response(error: Exception, include_traceback: bool = False) -> Tuple[Response, int]:
    """
    Render ``error`` as a JSON response.

    ``APIError`` instances keep their message and status. Anything else is an
    internal error whose text is only revealed when ``include_traceback`` is
    set (development).
    """
    if isinstance(error, APIError):
        status = error.status_code
        body = error.to_dict()
    else:
        status = 500
        body = {
            "error": str(error) if include_traceback else GENERIC_ERROR_MESSAGE,
            "error_code": "INTERNAL_ERROR",
        }

    _log_error(error, status)
    if include_traceback:
        body["traceback"] = traceback.format_exc()
    return jsonify(body), status


def register_error_handlers(app, debug: bool = False) -> None:
    """Install the JSON error handlers on ``app``."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        return create_error_response(error, include_traceback=debug)

    @app.errorhandler(404)
    def handle_not_found(error):
        return create_error_response(NotFoundError("Endpoint", request.path))

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return jsonify({
            "error": f"{request.method} is not supported on {request.path}",
            "error_code": "METHOD_NOT_ALLOWED",
        }), 405

    @app.errorhandler(429)
    def handle_rate_limit(error):
        return create_error_response(RateLimitError(getattr(error, "description", None)))

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        # Bad JSON, oversized bodies and the like keep werkzeug's status
        return jsonify({
            "error": error.description,
            "error_code": (error.name or "HTTP_ERROR").upper().replace(" ", "_"),
        }), error.code or 500

    @app.errorhandler(Exception)
    def handle_generic_exception(error: Exception):
        return create_error_response(error, include_traceback=debug)
