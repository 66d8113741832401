"""Refresh-token repository: conditional single-statement writes only."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from sqlalchemy import select, update

from authcore.models.refresh_token import RefreshToken
from authcore.repositories.base import BaseRepository
from authcore.services._shared.ports.refresh_token_store import RefreshTokenRecord


def to_record(row: RefreshToken) -> RefreshTokenRecord:
    """Map an ORM row to the service-layer read-model."""
    return RefreshTokenRecord(
        id=row.id,
        user_id=row.user_id,
        token_hash=row.token_hash,
        token_family=row.token_family,
        expires_at=row.expires_at,
        created_at=row.created_at,
        used_at=row.used_at,
        revoked_at=row.revoked_at,
    )


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Persistence-only repository for :class:`RefreshToken`.

    Every state transition is a single ``UPDATE ... WHERE <precondition>``
    whose affected-row count is the outcome; no read-then-write sequences.
    Reads use ``populate_existing`` because bulk updates bypass the identity map.
    """

    model = RefreshToken

    def insert(self, record: RefreshTokenRecord) -> None:
        self.add(
            RefreshToken(
                id=record.id,
                user_id=record.user_id,
                token_hash=record.token_hash,
                token_family=record.token_family,
                expires_at=record.expires_at,
                created_at=record.created_at,
                used_at=record.used_at,
                revoked_at=record.revoked_at,
            )
        )

    def find_by_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token_hash == token_hash)
            .execution_options(populate_existing=True)
        )
        row = self.session.execute(stmt).scalars().first()
        return to_record(row) if row is not None else None

    def claim(self, token_hash: str, now: datetime) -> tuple[RefreshTokenRecord | None, bool]:
        """Mark the token used iff it is neither used nor revoked.

        :returns: ``(record_before_update, claimed)``.
        """
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.token_hash == token_hash,
                RefreshToken.used_at.is_(None),
                RefreshToken.revoked_at.is_(None),
            )
            .values(used_at=now)
            .execution_options(synchronize_session=False)
        )
        claimed = self.session.execute(stmt).rowcount == 1
        current = self.find_by_hash(token_hash)
        if current is None:
            return None, False
        if claimed:
            # Only this statement wrote used_at; the prior image had it unset.
            return replace(current, used_at=None), True
        return current, False

    def revoke_family(self, family_id: str, now: datetime) -> int:
        stmt = (
            update(RefreshToken)
            .where(RefreshToken.token_family == family_id, RefreshToken.revoked_at.is_(None))
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount)

    def revoke_active_for_user(self, user_id: str, now: datetime) -> int:
        stmt = (
            update(RefreshToken)
            .where(
                RefreshToken.user_id == user_id,
                RefreshToken.used_at.is_(None),
                RefreshToken.revoked_at.is_(None),
                RefreshToken.expires_at > now,
            )
            .values(revoked_at=now)
            .execution_options(synchronize_session=False)
        )
        return int(self.session.execute(stmt).rowcount)

    def list_family(self, family_id: str) -> list[RefreshTokenRecord]:
        stmt = (
            select(RefreshToken)
            .where(RefreshToken.token_family == family_id)
            .order_by(RefreshToken.created_at.asc(), RefreshToken.id.asc())
            .execution_options(populate_existing=True)
        )
        return [to_record(row) for row in self.session.execute(stmt).scalars()]
