"""RFC 7807 (``application/problem+json``) rendering for every error the API returns.

Services raise framework-free errors; ``BaseService.translate_exceptions``
turns them into the :class:`APIError` subclasses below, and the handlers
registered by :func:`init_app` serialise those, plus Werkzeug, marshmallow
and SQLAlchemy errors, into one problem shape carrying the request id.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any

from flask import Flask, Response, jsonify, request
from marshmallow import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError
from werkzeug.exceptions import HTTPException

from authcore.core.logger import ensure_request_id

log = logging.getLogger(__name__)

PROBLEM_MIMETYPE = "application/problem+json"

_CODE_BY_STATUS = {
    HTTPStatus.BAD_REQUEST: "bad_request",
    HTTPStatus.UNAUTHORIZED: "unauthorized",
    HTTPStatus.FORBIDDEN: "forbidden",
    HTTPStatus.NOT_FOUND: "not_found",
    HTTPStatus.METHOD_NOT_ALLOWED: "method_not_allowed",
    HTTPStatus.CONFLICT: "conflict",
    HTTPStatus.UNSUPPORTED_MEDIA_TYPE: "unsupported_media_type",
    HTTPStatus.UNPROCESSABLE_ENTITY: "unprocessable_entity",
    HTTPStatus.INTERNAL_SERVER_ERROR: "internal_server_error",
    HTTPStatus.SERVICE_UNAVAILABLE: "service_unavailable",
}


class APIError(Exception):
    """
    Error with a client-safe message, an HTTP status and a stable ``code``.

    Subclasses fix ``status_code``/``code`` and a default message; any of
    them can still be overridden per instance.
    """

    status_code: int = HTTPStatus.BAD_REQUEST
    code: str = "bad_request"
    default_message: str = "Bad request"

    def __init__(
        self,
        message: str | None = None,
        status_code: int | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        if status_code is not None:
            self.status_code = int(status_code)
        if code is not None:
            self.code = code
        self.details = details or {}

    def to_problem(self) -> dict[str, Any]:
        return problem_body(
            status=self.status_code,
            code=self.code,
            message=self.message,
            details=self.details or None,
        )


class NotFound(APIError):
    status_code = HTTPStatus.NOT_FOUND
    code = "not_found"
    default_message = "Resource not found"


class Conflict(APIError):
    status_code = HTTPStatus.CONFLICT
    code = "conflict"
    default_message = "Conflict"


class Unauthorized(APIError):
    """401 for every credential or token failure; the message never says which."""

    status_code = HTTPStatus.UNAUTHORIZED
    code = "unauthorized"
    default_message = "Authentication failed"


class ServiceUnavailable(APIError):
    status_code = HTTPStatus.SERVICE_UNAVAILABLE
    code = "service_unavailable"
    default_message = "Service temporarily unavailable"


def problem_body(
    *, status: int, code: str, message: str, details: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Problem details dict; ``code`` and ``request_id`` extend the RFC members."""
    body: dict[str, Any] = {
        "type": "about:blank",
        "title": HTTPStatus(status).phrase,
        "status": int(status),
        "detail": message,
        "instance": request.path if request else None,
        "code": code,
        "request_id": ensure_request_id(),
    }
    if details:
        body["details"] = details
    return body


def _respond(
    status: int,
    code: str,
    message: str,
    *,
    details: dict[str, Any] | None = None,
    exc_info: bool = False,
) -> tuple[Response, int]:
    body = problem_body(status=status, code=code, message=message, details=details)
    level = logging.ERROR if status >= 500 else logging.WARNING
    log.log(
        level,
        "problem status=%s code=%s request_id=%s",
        status,
        code,
        body["request_id"],
        exc_info=exc_info,
    )
    resp = jsonify(body)
    resp.mimetype = PROBLEM_MIMETYPE
    return resp, int(status)


def _on_api_error(err: APIError):
    return _respond(err.status_code, err.code, err.message, details=err.details or None)


def _on_http_exception(err: HTTPException):
    status = int(err.code or HTTPStatus.INTERNAL_SERVER_ERROR)
    code = _CODE_BY_STATUS.get(status, "error")
    if status == HTTPStatus.NOT_FOUND:
        message = f"Route '{request.path}' not found"
    else:
        message = (err.description or code.replace("_", " ").capitalize()).strip()
    return _respond(status, code, message)


def _on_validation_error(err: ValidationError):
    return _respond(
        HTTPStatus.UNPROCESSABLE_ENTITY,
        "validation_error",
        "Validation failed",
        details={"errors": err.messages},
    )


def _on_integrity_error(err: IntegrityError):
    # The driver message may echo submitted values; it stays in the log only.
    return _respond(HTTPStatus.CONFLICT, "conflict", "Resource conflict", exc_info=True)


def _on_operational_error(err: OperationalError):
    return _respond(
        HTTPStatus.SERVICE_UNAVAILABLE,
        "service_unavailable",
        ServiceUnavailable.default_message,
        exc_info=True,
    )


def _on_unexpected(err: Exception):
    return _respond(
        HTTPStatus.INTERNAL_SERVER_ERROR, "internal_server_error", "Unexpected error", exc_info=True
    )


def init_app(app: Flask) -> None:
    """Register the problem+json handlers; the most specific type wins."""
    app.register_error_handler(APIError, _on_api_error)
    app.register_error_handler(HTTPException, _on_http_exception)
    app.register_error_handler(ValidationError, _on_validation_error)
    app.register_error_handler(IntegrityError, _on_integrity_error)
    app.register_error_handler(OperationalError, _on_operational_error)
    app.register_error_handler(Exception, _on_unexpected)
