"""Lookups and credential checks for :class:`User`."""

from __future__ import annotations

from sqlalchemy import or_, select

from authcore.models.user import User, normalize_email
from authcore.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    model = User

    def get_by_email(self, email: str) -> User | None:
        stmt = select(User).where(User.email == normalize_email(email))
        return self.session.execute(stmt).scalars().first()

    def exists_by_email_or_username(self, email: str, username: str) -> bool:
        """Whether either identifier is already taken (pre-check before insert)."""
        stmt = select(User.id).where(
            or_(User.email == normalize_email(email), User.username == username.strip())
        ).limit(1)
        return self.session.execute(stmt).first() is not None

    def authenticate(self, email: str, password: str) -> User | None:
        """
        Resolve a login attempt.

        Unknown email and wrong password both return ``None`` so callers
        cannot distinguish them.
        """
        user = self.get_by_email(email)
        if user is None or not user.verify_password(password):
            return None
        return user
