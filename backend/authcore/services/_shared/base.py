# authcore/services/_shared/base.py
from __future__ import annotations

from dataclasses import dataclass

from authcore.core import errors as api_errors
from authcore.services._shared.errors import (
    AuthenticationError,
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    ServiceError,
    StorageError,
)
from authcore.uow.sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork


@dataclass(slots=True)
class ServiceContext:
    """Request-scoped data a service may log or authorise against."""

    actor_id: str | None = None
    request_id: str | None = None


class BaseService:
    """
    Shared plumbing for application services.

    Services orchestrate repositories and token components inside Units of
    Work and never touch Flask or the ORM session directly; errors leave
    through :meth:`translate_exceptions`.
    """

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork()

    def ro_uow(self) -> SQLAlchemyReadOnlyUnitOfWork:
        return SQLAlchemyReadOnlyUnitOfWork()

    @staticmethod
    def translate_exceptions(exc: Exception) -> Exception:
        """
        Map a service error onto the HTTP error the API should return.

        Credential and token failures of every kind collapse into one bare
        401; storage failures become 503. Anything that is not a
        :class:`ServiceError` is returned unchanged.

        :param exc: Exception raised within the service.
        :returns: Exception to re-raise.
        """
        if isinstance(exc, AuthenticationError | InvalidCredentialsError):
            return api_errors.Unauthorized()
        if isinstance(exc, StorageError):
            return api_errors.ServiceUnavailable()
        if isinstance(exc, NotFoundError):
            return api_errors.NotFound(str(exc))
        if isinstance(exc, ConflictError):
            return api_errors.Conflict(str(exc))
        if isinstance(exc, ServiceError):
            return api_errors.APIError(str(exc))
        return exc
