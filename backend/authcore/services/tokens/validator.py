"""Access-token verification for protected endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from authcore.services._shared.errors import InvalidTokenError
from authcore.services._shared.ports import TokenProvider
from authcore.services.tokens.dto import AccessTokenClaims


class AccessTokenValidator:
    """
    Verify signature, expiry and type of an access token.

    Pure function of the token and the signing key: the refresh-token store is
    never consulted, so access tokens stay valid until ``exp`` even after
    logout.
    """

    def __init__(self, token_provider: TokenProvider) -> None:
        self.tokens = token_provider

    def validate(self, token: str) -> AccessTokenClaims:
        """
        :raises TokenExpiredError: ``exp`` has lapsed.
        :raises InvalidTokenError: Bad signature, wrong type or missing claims.
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError("Missing access token.")

        payload = self.tokens.decode(token)
        if payload.get("type") != "access":
            raise InvalidTokenError("Not an access token.")
        return _claims_from_payload(payload)


def _claims_from_payload(payload: dict[str, Any]) -> AccessTokenClaims:
    try:
        return AccessTokenClaims(
            subject=str(payload["sub"]),
            email=str(payload.get("email", "")),
            name=str(payload.get("name", "")),
            roles=frozenset(payload.get("roles") or ()),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise InvalidTokenError("Malformed access token claims.") from exc
