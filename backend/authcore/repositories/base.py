"""Shared plumbing for SQLAlchemy 2.x repositories.

Repositories translate between rows and Python objects and nothing else:
they hold no token policy and never commit or roll back. The surrounding
Unit of Work owns the transaction.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy.orm import Session

from authcore.core.extensions import db

E = TypeVar("E")


class BaseRepository(Generic[E]):
    """Repository for one mapped class; subclasses set :attr:`model`."""

    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """
        :param session: Session of the enclosing Unit of Work. When omitted,
            every access resolves the Flask-scoped ``db.session`` lazily.
        """
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else cast(Session, db.session)

    def get(self, pk: Any) -> E | None:
        return self.session.get(self.model, pk)

    def add(self, instance: E) -> E:
        """Stage ``instance`` and flush at once so constraint errors surface here."""
        self.session.add(instance)
        self.session.flush()
        return instance
