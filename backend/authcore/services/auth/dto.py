# authcore/services/auth/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-registration.

    :param email: Login email (normalized by the model).
    :param username: Public handle (unique).
    :param password: Raw password (hashed by the model setter).
    :param full_name: Optional display name.
    """

    email: str
    username: str
    password: str
    full_name: str | None = None


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email.
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    """

    email: str
    password: str


@dataclass(frozen=True, slots=True)
class RefreshIn:
    """
    Input DTO for token refresh.

    :param refresh_token: Opaque refresh secret issued at login or last rotation.
    :type refresh_token: str
    """

    refresh_token: str


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class UserOut:
    """Public-safe user representation."""

    id: int
    email: str
    username: str
    full_name: str | None
    roles: list[str] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class WhoAmIOut:
    """Identity view derived from verified access-token claims only."""

    id: str
    email: str
    name: str
    roles: list[str]
    expires_at: datetime
