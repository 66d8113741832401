# authcore/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

import jwt as pyjwt
from flask_jwt_extended import create_access_token as _create_access
from flask_jwt_extended import decode_token as _decode
from flask_jwt_extended.exceptions import JWTExtendedException

from authcore.services._shared.errors import InvalidTokenError, TokenExpiredError
from authcore.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Library exceptions are mapped to the service-level token errors so the
    rest of the code never imports PyJWT.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        additional_claims: dict[str, Any] | None = None,
        expires_delta: timedelta,
    ) -> str:
        # PyJWT rejects non-string ``sub`` on decode.
        return cast(
            str,
            _create_access(
                identity=str(identity),
                additional_claims=dict(additional_claims or {}),
                expires_delta=expires_delta,
            ),
        )

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], _decode(token))
        except pyjwt.ExpiredSignatureError as exc:
            raise TokenExpiredError("Access token expired.") from exc
        except (pyjwt.PyJWTError, JWTExtendedException) as exc:
            raise InvalidTokenError("Access token could not be verified.") from exc
