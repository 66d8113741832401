"""JSON logging with request correlation.

Every record becomes one JSON object on stdout. Token-lifecycle code logs
through ``extra=`` using the keys in :data:`EXTRA_FIELDS`; raw refresh
secrets and their digests are never passed to a logger.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from flask import Flask, Response, g, has_request_context, request

REQUEST_ID_HEADER = "X-Request-ID"
CORRELATION_HEADERS = (REQUEST_ID_HEADER, "X-Correlation-ID")

EXTRA_FIELDS = (
    "event",
    "reason",
    "user_id",
    "token_family",
    "affected",
    "endpoint",
    "elapsed_ms",
)


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.now(UTC).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        payload.update({k: getattr(record, k) for k in EXTRA_FIELDS if hasattr(record, k)})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class RequestIdFilter(logging.Filter):
    """Stamp ``request_id`` on records emitted while a request is active."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.request_id = ensure_request_id() if has_request_context() else None
        return True


def ensure_request_id() -> str:
    """
    Correlation id of the current request.

    Taken from the first correlation header present, otherwise generated, and
    cached on ``g``. Outside a request a fresh id is returned each call.
    """
    if not has_request_context():
        return str(uuid4())
    rid = g.get("request_id")
    if rid is None:
        rid = next(
            (request.headers[h] for h in CORRELATION_HEADERS if request.headers.get(h)),
            str(uuid4()),
        )
        g.request_id = rid
    return rid  # type: ignore[no-any-return]


def configure_logging(level: str | int = "INFO") -> None:
    """Replace the root handlers with a single JSON stdout handler at ``level``."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)


def init_app(app: Flask) -> None:
    """Seed a request id per request and echo it in ``X-Request-ID``."""
    app.logger.addFilter(RequestIdFilter())

    @app.before_request
    def _seed_request_id() -> None:  # pragma: no cover - integration glue
        # ``g`` outlives the request when an app context was already pushed.
        g.pop("request_id", None)
        ensure_request_id()

    @app.after_request
    def _echo_request_id(response: Response) -> Response:  # pragma: no cover - integration glue
        response.headers.setdefault(REQUEST_ID_HEADER, ensure_request_id())
        return response


__all__ = ["EXTRA_FIELDS", "JSONFormatter", "configure_logging", "ensure_request_id", "init_app"]
