"""Transaction boundary contract shared by services and storage adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from authcore.repositories import RefreshTokenRepository, UserRepository


class UnitOfWork(ABC):
    """
    One transaction, entered with ``with``.

    Repositories exposed by an implementation share its session, so every
    statement issued inside the block commits or rolls back together.
    """

    users: UserRepository
    refresh_tokens: RefreshTokenRepository

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...

    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...
