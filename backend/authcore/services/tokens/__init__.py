"""
authcore.services.tokens
========================

Refresh-token lifecycle: issue, rotate (with reuse detection), revoke, and
access-token validation.
"""

from __future__ import annotations

from .dto import AccessTokenClaims, AuthTokenConfig, IssuedTokens
from .hasher import generate_secret, hash_secret
from .issuer import TokenIssuer, new_family_id
from .revocation import RevocationService
from .rotation import RotationEngine
from .validator import AccessTokenValidator

__all__ = [
    "AccessTokenClaims",
    "AuthTokenConfig",
    "IssuedTokens",
    "generate_secret",
    "hash_secret",
    "TokenIssuer",
    "new_family_id",
    "RevocationService",
    "RotationEngine",
    "AccessTokenValidator",
]
