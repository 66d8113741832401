# comments in English; reST docstrings
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import redis  # type: ignore[import-untyped]

from authcore.services._shared.errors import DuplicateTokenHashError, StorageError
from authcore.services._shared.ports import RefreshTokenRecord, RefreshTokenStore

log = logging.getLogger(__name__)


def _b(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value.decode() if isinstance(value, bytes | bytearray) else str(value)


def _dt(value: Any) -> datetime | None:
    raw = _b(value)
    return datetime.fromisoformat(raw) if raw else None


@contextmanager
def _storage_errors(op: str) -> Iterator[None]:
    try:
        yield
    except redis.RedisError as exc:
        log.exception("refresh_token.store_failure", extra={"event": "store." + op})
        raise StorageError(f"Refresh-token store failed during {op}.") from exc


@dataclass(slots=True)
class RedisRefreshTokenStore(RefreshTokenStore):
    """
    Redis-backed refresh token store.

    Layout
    ------
    ``rt:{hash}``       hash with the record fields (timestamps in ISO 8601)
    ``rt:f:{family}``   set of digests in the family
    ``rt:u:{user_id}``  set of digests owned by the user

    Keys carry no TTL: used and revoked records must outlive their expiry so
    a late replay is still recognised as reuse.

    State transitions use WATCH/MULTI/EXEC (optimistic locking). A
    :class:`redis.WatchError` means another client touched a watched key and
    the transition is re-evaluated against the fresh state.

    :param r: A Redis client (already connected).
    """

    r: redis.Redis

    # -------------------- helpers --------------------

    @staticmethod
    def _k(token_hash: str) -> str:
        return f"rt:{token_hash}"

    @staticmethod
    def _kf(family_id: str) -> str:
        return f"rt:f:{family_id}"

    @staticmethod
    def _ku(user_id: str) -> str:
        return f"rt:u:{user_id}"

    @staticmethod
    def _to_mapping(record: RefreshTokenRecord) -> dict[str, str]:
        return {
            "id": record.id,
            "user_id": record.user_id,
            "token_family": record.token_family,
            "expires_at": record.expires_at.isoformat(),
            "created_at": record.created_at.isoformat(),
            "used_at": record.used_at.isoformat() if record.used_at else "",
            "revoked_at": record.revoked_at.isoformat() if record.revoked_at else "",
        }

    @staticmethod
    def _from_hash(token_hash: str, h: dict[Any, Any]) -> RefreshTokenRecord:
        # Keys are bytes unless the client was built with ``decode_responses=True``.
        fields = {_b(k): v for k, v in h.items()}
        return RefreshTokenRecord(
            id=_b(fields.get("id")),
            user_id=_b(fields.get("user_id")),
            token_hash=token_hash,
            token_family=_b(fields.get("token_family")),
            expires_at=datetime.fromisoformat(_b(fields.get("expires_at"))),
            created_at=datetime.fromisoformat(_b(fields.get("created_at"))),
            used_at=_dt(fields.get("used_at")),
            revoked_at=_dt(fields.get("revoked_at")),
        )

    def _members(self, key: str) -> list[str]:
        return sorted(_b(m) for m in self.r.smembers(key))

    def _revoke_where(
        self,
        index_key: str,
        now: datetime,
        should_revoke: Callable[[RefreshTokenRecord], bool],
    ) -> int:
        """Set ``revoked_at`` on every indexed record matching ``should_revoke``."""
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(index_key)
                    hashes = [_b(m) for m in p.smembers(index_key)]
                    if hashes:
                        p.watch(*(self._k(h) for h in hashes))
                    targets = []
                    for h in hashes:
                        raw = p.hgetall(self._k(h))
                        if raw and should_revoke(self._from_hash(h, raw)):
                            targets.append(h)
                    if not targets:
                        p.unwatch()
                        return 0
                    p.multi()
                    for h in targets:
                        p.hset(self._k(h), "revoked_at", now.isoformat())
                    p.execute()
                    return len(targets)
            except redis.WatchError:
                continue

    # -------------------- API ------------------------

    def insert(self, record: RefreshTokenRecord) -> None:
        """
        Insert the record *before* the secret is handed to the client.

        :raises DuplicateTokenHashError: If the digest already exists.
        """
        key = self._k(record.token_hash)
        with _storage_errors("insert"):
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        if p.exists(key):
                            p.unwatch()
                            raise DuplicateTokenHashError()
                        p.multi()
                        p.hset(key, mapping=self._to_mapping(record))
                        p.sadd(self._kf(record.token_family), record.token_hash)
                        p.sadd(self._ku(record.user_id), record.token_hash)
                        p.execute()
                        return
                except redis.WatchError:
                    continue

    def find_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        with _storage_errors("find_by_hash"):
            h = self.r.hgetall(self._k(token_hash))
        return self._from_hash(token_hash, h) if h else None

    def claim_for_rotation(
        self, token_hash: str, now: datetime
    ) -> tuple[RefreshTokenRecord | None, bool]:
        """
        Atomically set ``used_at`` iff the record is neither used nor revoked.

        Losing a WATCH race re-reads the record; the winner's ``used_at`` is
        then visible and this call reports ``claimed=False``.
        """
        key = self._k(token_hash)
        with _storage_errors("claim_for_rotation"):
            while True:
                try:
                    with self.r.pipeline() as p:
                        p.watch(key)
                        h = p.hgetall(key)
                        if not h:
                            p.unwatch()
                            return None, False
                        before = self._from_hash(token_hash, h)
                        if before.used_at is not None or before.revoked_at is not None:
                            p.unwatch()
                            return before, False
                        p.multi()
                        p.hset(key, "used_at", now.isoformat())
                        p.execute()
                        return before, True
                except redis.WatchError:
                    continue

    def revoke_family(self, family_id: str, now: datetime) -> int:
        with _storage_errors("revoke_family"):
            return self._revoke_where(
                self._kf(family_id), now, lambda rec: rec.revoked_at is None
            )

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        with _storage_errors("revoke_all_for_user"):
            return self._revoke_where(self._ku(user_id), now, lambda rec: rec.is_active(now))

    def list_family(self, family_id: str) -> list[RefreshTokenRecord]:
        with _storage_errors("list_family"):
            out = []
            for h in self._members(self._kf(family_id)):
                raw = self.r.hgetall(self._k(h))
                if raw:
                    out.append(self._from_hash(h, raw))
        return sorted(out, key=lambda rec: (rec.created_at, rec.id))
