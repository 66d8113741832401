"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic**: they never import Flask or HTTP
types. The translation to HTTP responses (RFC 7807) is handled by
``BaseService.translate_exceptions()``.

Token failures share one base, :class:`AuthenticationError`, whose ``kind``
is logged for security monitoring but never exposed to clients.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError


def violates(exc: IntegrityError, constraint_name: str) -> bool:
    """
    Check whether an IntegrityError originates from a specific constraint.

    :param exc: The exception raised by SQLAlchemy during flush/commit.
    :param constraint_name: Constraint (or column) name to look for.
    :returns: True if the error message mentions the constraint.
    """
    message = str(exc.orig).lower() if exc.orig else ""
    return constraint_name.lower() in message


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    These are *not* HTTP errors; the API layer translates them.
    """


# --------------------------------------------------------------------------- #
# Token lifecycle
# --------------------------------------------------------------------------- #


class AuthenticationError(ServiceError):
    """Base class for every refresh/access token failure."""

    kind = "authentication_failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.kind.replace("_", " "))


class InvalidTokenError(AuthenticationError):
    """Unknown, malformed or badly signed token."""

    kind = "invalid_token"


class TokenExpiredError(AuthenticationError):
    kind = "token_expired"


class TokenRevokedError(AuthenticationError):
    kind = "token_revoked"


class TokenReuseDetectedError(AuthenticationError):
    """An already-rotated refresh token was presented again; its family is revoked."""

    kind = "reuse_detected"


class InvalidCredentialsError(ServiceError):
    """Email/password pair did not match a user."""

    kind = "invalid_credentials"


# --------------------------------------------------------------------------- #
# Persistence
# --------------------------------------------------------------------------- #


class StorageError(ServiceError):
    """Backing store failure (database or Redis unavailable, unexpected error)."""

    kind = "internal_storage_error"


class DuplicateTokenHashError(StorageError):
    """Two secrets produced the same digest. Treated as a fatal anomaly."""

    kind = "duplicate_hash"


# --------------------------------------------------------------------------- #
# Generic
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the repository.

    :param entity: Entity name (e.g., "User").
    :param key: Identifier or search key.
    """

    entity: str
    key: str | int

    def __str__(self) -> str:
        return f"{self.entity} not found: {self.key}"


@dataclass(slots=True)
class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :param detail: Short human-readable explanation.
    """

    entity: str
    detail: str

    def __str__(self) -> str:
        return f"Conflict on {self.entity}: {self.detail}"
