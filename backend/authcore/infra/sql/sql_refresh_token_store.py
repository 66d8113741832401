# authcore/infra/sql/sql_refresh_token_store.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from authcore.services._shared.errors import DuplicateTokenHashError, StorageError, violates
from authcore.services._shared.ports import RefreshTokenRecord, RefreshTokenStore
from authcore.uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

log = logging.getLogger(__name__)


@contextmanager
def _storage_errors(op: str) -> Iterator[None]:
    """Re-raise driver failures as :class:`StorageError`."""
    try:
        yield
    except IntegrityError as exc:
        if violates(exc, "token_hash"):
            log.error("refresh_token.duplicate_hash", extra={"event": "store." + op})
            raise DuplicateTokenHashError() from exc
        raise StorageError(f"Refresh-token store failed during {op}.") from exc
    except SQLAlchemyError as exc:
        log.exception("refresh_token.store_failure", extra={"event": "store." + op})
        raise StorageError(f"Refresh-token store failed during {op}.") from exc


class SQLAlchemyRefreshTokenStore(RefreshTokenStore):
    """
    Relational refresh-token store.

    Each call runs in its own Unit of Work and commits before returning, so a
    successful ``claim_for_rotation`` is durable before any new token is
    issued. Atomicity of the claim comes from the conditional ``UPDATE``
    issued by :meth:`RefreshTokenRepository.claim`.

    :param uow_factory: Read-write UoW constructor (injectable for tests).
    :param ro_uow_factory: Read-only UoW constructor.
    """

    def __init__(
        self,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
        ro_uow_factory: Callable[[], SQLAlchemyReadOnlyUnitOfWork] = SQLAlchemyReadOnlyUnitOfWork,
    ) -> None:
        self._uow = uow_factory
        self._ro_uow = ro_uow_factory

    def insert(self, record: RefreshTokenRecord) -> None:
        with _storage_errors("insert"), self._uow() as uow:
            uow.refresh_tokens.insert(record)

    def find_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        with _storage_errors("find_by_hash"), self._ro_uow() as uow:
            return uow.refresh_tokens.find_by_hash(token_hash)

    def claim_for_rotation(
        self, token_hash: str, now: datetime
    ) -> tuple[RefreshTokenRecord | None, bool]:
        with _storage_errors("claim_for_rotation"), self._uow() as uow:
            return uow.refresh_tokens.claim(token_hash, now)

    def revoke_family(self, family_id: str, now: datetime) -> int:
        with _storage_errors("revoke_family"), self._uow() as uow:
            return uow.refresh_tokens.revoke_family(family_id, now)

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        with _storage_errors("revoke_all_for_user"), self._uow() as uow:
            return uow.refresh_tokens.revoke_active_for_user(user_id, now)

    def list_family(self, family_id: str) -> list[RefreshTokenRecord]:
        with _storage_errors("list_family"), self._ro_uow() as uow:
            return uow.refresh_tokens.list_family(family_id)
