# authcore/services/tokens/dto.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from authcore.services._shared.ports.refresh_token_store import RefreshTokenRecord

# --------------------------- Config --------------------------------------- #


@dataclass(frozen=True, slots=True)
class AuthTokenConfig:
    """
    Token emission configuration.

    :param access_expires: Access token lifetime.
    :type access_expires: timedelta
    :param refresh_expires: Refresh token lifetime.
    :type refresh_expires: timedelta
    """

    access_expires: timedelta = timedelta(minutes=15)
    refresh_expires: timedelta = timedelta(days=7)

    @classmethod
    def from_mapping(cls, cfg) -> AuthTokenConfig:
        """Build from a Flask config (``*_TTL_SECONDS`` keys)."""
        return cls(
            access_expires=timedelta(seconds=int(cfg["ACCESS_TOKEN_TTL_SECONDS"])),
            refresh_expires=timedelta(seconds=int(cfg["REFRESH_TOKEN_TTL_SECONDS"])),
        )


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class IssuedTokens:
    """
    A freshly issued access/refresh pair.

    :param access_token: Signed access token.
    :param refresh_token: Raw refresh secret; never retrievable again.
    :param record: Persisted refresh-token record (digest only).
    :param expires_in: Access token lifetime in seconds.
    """

    access_token: str
    refresh_token: str
    record: RefreshTokenRecord = field(repr=False)
    expires_in: int

    def __repr__(self) -> str:
        # Secrets must not leak through logs or tracebacks.
        return f"IssuedTokens(family={self.record.token_family!r}, expires_in={self.expires_in})"


@dataclass(frozen=True, slots=True)
class AccessTokenClaims:
    """
    Verified access-token claims.

    :param subject: User id (``sub``).
    :param email: User email.
    :param name: Display name.
    :param roles: Granted roles.
    :param issued_at: ``iat`` (UTC).
    :param expires_at: ``exp`` (UTC).
    """

    subject: str
    email: str
    name: str
    roles: frozenset[str]
    issued_at: datetime
    expires_at: datetime
