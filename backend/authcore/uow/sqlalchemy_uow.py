"""Units of Work over the Flask-scoped SQLAlchemy session."""

from __future__ import annotations

from sqlalchemy import event
from sqlalchemy.orm import Session, scoped_session

from authcore.core.extensions import db
from authcore.repositories import RefreshTokenRepository, UserRepository
from authcore.uow.base import UnitOfWork


class SQLAlchemyRepositoryContainer:
    """Repositories bound to one session."""

    def __init__(self, *, session: Session) -> None:
        self.session = session
        self.users = UserRepository(session=session)
        self.refresh_tokens = RefreshTokenRepository(session=session)


class SQLAlchemyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-write UoW over the Flask-scoped session.

    Commits on clean exit, rolls back when the block raises.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)

    def __enter__(self) -> SQLAlchemyUnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
            return
        try:
            self.commit()
        except BaseException:
            self.rollback()
            raise

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()


class SQLAlchemyReadOnlyUnitOfWork(SQLAlchemyRepositoryContainer, UnitOfWork):
    """
    Read-only UoW over the Flask-scoped session.

    A ``before_flush`` guard rejects any pending ORM write. When the session is
    idle on entry the UoW owns the transaction and rolls it back on exit; when a
    transaction is already open (outer UoW, test fixture) it attaches to it and
    leaves it untouched.
    """

    def __init__(self) -> None:
        super().__init__(session=db.session)
        self._owns_transaction = False
        self._guarded: Session | None = None

    def __enter__(self) -> SQLAlchemyReadOnlyUnitOfWork:
        # The scoped registry proxies neither ``in_transaction`` nor events.
        target = self.session
        self._guarded = target() if isinstance(target, scoped_session) else target
        self._owns_transaction = not self._guarded.in_transaction()
        event.listen(self._guarded, "before_flush", self._reject_flush)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if self._owns_transaction:
                self.session.rollback()
        finally:
            if self._guarded is not None:
                event.remove(self._guarded, "before_flush", self._reject_flush)
            self._guarded = None
            self._owns_transaction = False

    def commit(self) -> None:
        """
        Disallow commit in read-only Unit of Work.

        :raises RuntimeError: always.
        """
        raise RuntimeError("Read-only UnitOfWork does not allow commit().")

    def rollback(self) -> None:
        self.session.rollback()

    @staticmethod
    def _reject_flush(session, flush_context, instances) -> None:
        if session.new or session.dirty or session.deleted:
            raise RuntimeError("Read-only UnitOfWork: ORM flush blocked.")
