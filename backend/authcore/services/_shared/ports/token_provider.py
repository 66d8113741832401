from __future__ import annotations

import itertools
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any, Protocol

from authcore.services._shared.errors import InvalidTokenError, TokenExpiredError
from authcore.services._shared.ports.clock import utc_now


class TokenProvider(Protocol):
    """
    Port for signing and verifying access tokens.

    ``decode`` raises :class:`TokenExpiredError` when ``exp`` has lapsed and
    :class:`InvalidTokenError` for any other verification failure, so callers
    never see library-specific exceptions.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta,
    ) -> str: ...

    def decode(self, token: str) -> dict[str, Any]: ...


class StubTokenProvider(TokenProvider):
    """Deterministic, unsigned token provider used in unit tests."""

    def __init__(self, clock: Callable[[], datetime] = utc_now) -> None:
        self._clock = clock
        self._seq = itertools.count(1)
        self._issued: dict[str, dict[str, Any]] = {}

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta,
    ) -> str:
        seq = next(self._seq)
        now = self._clock()
        token = f"access.{identity}.{seq}"
        payload: dict[str, Any] = {
            "sub": identity,
            "type": "access",
            "jti": f"jti-{seq}",
            "iat": int(now.timestamp()),
            "exp": int((now + expires_delta).timestamp()),
        }
        if additional_claims:
            payload.update(additional_claims)
        self._issued[token] = payload
        return token

    def decode(self, token: str) -> dict[str, Any]:
        payload = self._issued.get(token)
        if payload is None:
            raise InvalidTokenError("Unknown access token.")
        if int(self._clock().timestamp()) >= int(payload["exp"]):
            raise TokenExpiredError("Access token expired.")
        return dict(payload)
