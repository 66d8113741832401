"""
authcore.services._shared.ports
===============================

*Ports* (hexagonal interfaces) that the token services depend on.

Modules
-------
- :mod:`refresh_token_store`:
    :class:`~.RefreshTokenStore` with its atomic ``claim_for_rotation``
    primitive, the :class:`~.RefreshTokenRecord` read-model and an in-memory
    adapter.
- :mod:`token_provider`:
    :class:`~.TokenProvider`: signing and verification of access tokens.
- :mod:`principal_loader`:
    :class:`~.PrincipalLoader`: user id to current identity and roles.
- :mod:`clock`:
    :data:`~.Clock`: injectable source of "now".

Concrete adapters (SQLAlchemy, Redis, flask-jwt-extended) live under
``authcore.infra``.
"""

from __future__ import annotations

from .clock import Clock, utc_now
from .principal_loader import InMemoryPrincipalLoader, Principal, PrincipalLoader
from .refresh_token_store import (
    InMemoryRefreshTokenStore,
    RefreshTokenRecord,
    RefreshTokenStore,
    TokenState,
)
from .token_provider import StubTokenProvider, TokenProvider

__all__ = [
    "Clock",
    "utc_now",
    "Principal",
    "PrincipalLoader",
    "InMemoryPrincipalLoader",
    "RefreshTokenRecord",
    "RefreshTokenStore",
    "InMemoryRefreshTokenStore",
    "TokenState",
    "TokenProvider",
    "StubTokenProvider",
]
