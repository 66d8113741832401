"""Persistence model for refresh-token records (append-only per family)."""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from authcore.core.extensions import db

from .base import ReprMixin
from .types import UTCDateTime


class RefreshToken(ReprMixin, db.Model):
    """
    One issued refresh token, identified by the digest of its secret.

    Rows are never deleted. ``used_at`` and ``revoked_at`` are terminal markers
    written at most once; the raw secret is never stored.

    Fields
    ------
    id : str
        UUID primary key.
    user_id : str
        Owning principal identifier.
    token_hash : str
        SHA-256 hex digest of the secret (unique).
    token_family : str
        Identifier shared by every token descended from one login.
    expires_at : datetime
        Absolute expiry (UTC).
    used_at : datetime | None
        Set once, when the token is rotated.
    revoked_at : datetime | None
        Set on logout or family revocation.
    created_at : datetime
        Issuance timestamp.
    """

    __tablename__ = "refresh_tokens"
    __repr_attrs__ = ("id", "user_id", "token_family")

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    token_family: Mapped[str] = mapped_column(String(36), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    revoked_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    __table_args__ = (
        Index("ix_refresh_tokens_user_id", "user_id"),
        Index("ix_refresh_tokens_token_family", "token_family"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )
