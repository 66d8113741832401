from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Protocol

from authcore.services._shared.errors import DuplicateTokenHashError


class TokenState(Enum):
    """Derived lifecycle state of a refresh-token record at a given instant."""

    ACTIVE = "active"
    USED = "used"
    REVOKED = "revoked"
    EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Read-model for one persisted refresh token.

    :ivar id: Opaque record identifier (UUID string).
    :ivar user_id: Owning principal.
    :ivar token_hash: Hex digest of the raw secret.
    :ivar token_family: Lineage identifier shared with ancestors/descendants.
    :ivar expires_at: Absolute expiration (UTC).
    :ivar used_at: When the token was rotated, if ever.
    :ivar revoked_at: When the token was revoked, if ever.
    :ivar created_at: Issuance time (UTC).
    """

    id: str
    user_id: str
    token_hash: str
    token_family: str
    expires_at: datetime
    created_at: datetime
    used_at: datetime | None = None
    revoked_at: datetime | None = None

    def state(self, now: datetime) -> TokenState:
        if self.revoked_at is not None:
            return TokenState.REVOKED
        if self.used_at is not None:
            return TokenState.USED
        if now >= self.expires_at:
            return TokenState.EXPIRED
        return TokenState.ACTIVE

    def is_active(self, now: datetime) -> bool:
        return self.state(now) is TokenState.ACTIVE


class RefreshTokenStore(Protocol):
    """
    Persistence port for refresh-token records.

    ``claim_for_rotation`` MUST be atomic: under any interleaving, at most one
    caller observes ``claimed=True`` for a given digest. Backend failures are
    raised as :class:`~authcore.services._shared.errors.StorageError`.
    """

    def insert(self, record: RefreshTokenRecord) -> None:
        """
        Persist a new record.

        :raises DuplicateTokenHashError: If ``token_hash`` already exists.
        """

    def find_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        """Return the record for ``token_hash`` or ``None``."""

    def claim_for_rotation(
        self, token_hash: str, now: datetime
    ) -> tuple[RefreshTokenRecord | None, bool]:
        """
        Set ``used_at = now`` iff the record is neither used nor revoked.

        :returns: The record as it was *before* the call and whether this call
            performed the claim. ``(None, False)`` when the digest is unknown.
        """

    def revoke_family(self, family_id: str, now: datetime) -> int:
        """Set ``revoked_at`` on every unrevoked record of the family. Returns count."""

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        """Set ``revoked_at`` on every active record of the user. Returns count."""

    def list_family(self, family_id: str) -> list[RefreshTokenRecord]:
        """Return every record of the family, oldest first."""


class InMemoryRefreshTokenStore(RefreshTokenStore):
    """
    Process-local store; a single lock makes every operation atomic.

    .. note::
       Suitable for tests and single-process deployments only.
    """

    def __init__(self) -> None:
        self._by_hash: dict[str, RefreshTokenRecord] = {}
        self._lock = threading.Lock()

    def insert(self, record: RefreshTokenRecord) -> None:
        with self._lock:
            if record.token_hash in self._by_hash:
                raise DuplicateTokenHashError()
            self._by_hash[record.token_hash] = record

    def find_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        with self._lock:
            return self._by_hash.get(token_hash)

    def claim_for_rotation(
        self, token_hash: str, now: datetime
    ) -> tuple[RefreshTokenRecord | None, bool]:
        with self._lock:
            before = self._by_hash.get(token_hash)
            if before is None:
                return None, False
            if before.used_at is not None or before.revoked_at is not None:
                return before, False
            self._by_hash[token_hash] = replace(before, used_at=now)
            return before, True

    def revoke_family(self, family_id: str, now: datetime) -> int:
        with self._lock:
            hits = [
                r
                for r in self._by_hash.values()
                if r.token_family == family_id and r.revoked_at is None
            ]
            for r in hits:
                self._by_hash[r.token_hash] = replace(r, revoked_at=now)
            return len(hits)

    def revoke_all_for_user(self, user_id: str, now: datetime) -> int:
        with self._lock:
            hits = [
                r for r in self._by_hash.values() if r.user_id == user_id and r.is_active(now)
            ]
            for r in hits:
                self._by_hash[r.token_hash] = replace(r, revoked_at=now)
            return len(hits)

    def list_family(self, family_id: str) -> list[RefreshTokenRecord]:
        with self._lock:
            rows = [r for r in self._by_hash.values() if r.token_family == family_id]
        return sorted(rows, key=lambda r: r.created_at)
