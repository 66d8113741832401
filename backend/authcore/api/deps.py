"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request

from authcore.core.errors import Unauthorized
from authcore.services.auth import AuthService
from authcore.services.tokens.dto import AccessTokenClaims

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "bearer "


def bearer_token() -> str:
    """
    Extract the access token from ``Authorization: Bearer <token>``.

    :raises Unauthorized: Header missing or not a bearer credential.
    """
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        raise Unauthorized()
    token = header[len(BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthorized()
    return token


def require_auth(func: F) -> F:
    """Ensure the request carries a valid access token; exposes claims on ``g``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.access_claims = AuthService().verify_access(bearer_token())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_claims() -> AccessTokenClaims:
    """Return the claims verified by :func:`require_auth`."""

    claims = g.get("access_claims")
    if claims is None:
        raise Unauthorized()
    return claims  # type: ignore[no-any-return]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def no_store(response: Response) -> Response:
    """Forbid caching of responses that carry credentials."""

    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
