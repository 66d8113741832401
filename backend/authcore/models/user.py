"""User model: the principal that owns refresh-token families."""

from __future__ import annotations

from collections.abc import Iterable
from typing import NoReturn

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, validates
from werkzeug.security import check_password_hash, generate_password_hash

from authcore.core.extensions import db

from .base import PKMixin, ReprMixin, TimestampMixin

DEFAULT_ROLE = "user"


def normalize_email(value: str) -> str:
    """Canonical form used for storage and lookups (trimmed, lowercase)."""
    return value.strip().lower()


class User(PKMixin, ReprMixin, TimestampMixin, db.Model):
    """
    Account that can log in and hold refresh tokens.

    Roles are stored as one space-separated column and read back through
    :attr:`role_set`; they are copied into every access token at issue time,
    so a role change takes effect on the next login or rotation.
    """

    __tablename__ = "users"
    __repr_attrs__ = ("id", "username")

    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    full_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(254), nullable=False)
    roles: Mapped[str] = mapped_column(String(255), nullable=False, default=DEFAULT_ROLE)

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("username", name="uq_users_username"),
    )

    # -------------------- credentials --------------------

    @property
    def password(self) -> NoReturn:  # pragma: no cover - write-only
        raise AttributeError("Password is write-only.")

    @password.setter
    def password(self, raw: str) -> None:
        if not isinstance(raw, str) or not raw:
            raise ValueError("Password must be a non-empty string.")
        self.password_hash = generate_password_hash(raw)

    def verify_password(self, raw: str) -> bool:
        """``True`` when ``raw`` matches the stored hash; never raises."""
        return bool(self.password_hash) and check_password_hash(self.password_hash, raw)

    # -------------------- identity --------------------

    @property
    def role_set(self) -> frozenset[str]:
        return frozenset((self.roles or "").split())

    @role_set.setter
    def role_set(self, values: Iterable[str]) -> None:
        cleaned = {str(v).strip() for v in values}
        self.roles = " ".join(sorted(r for r in cleaned if r))

    @property
    def display_name(self) -> str:
        """Full name when set, otherwise the username."""
        return self.full_name or self.username

    # -------------------- validation --------------------

    @validates("email")
    def _validate_email(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Email is required.")
        email = normalize_email(value)
        local, _, domain = email.partition("@")
        if not local or "." not in domain:
            raise ValueError("Email format looks invalid.")
        return email

    @validates("username")
    def _validate_username(self, key: str, value: str) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Username is required.")
        return value.strip()
