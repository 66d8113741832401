"""Per-application wiring of the token services.

Adapters are chosen from configuration once, at app creation, and stored in
``app.extensions`` so request handlers and CLI commands share one instance of
each collaborator.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from authcore.core.config import TOKEN_STORE_BACKENDS
from authcore.core.extensions import get_redis
from authcore.infra.jwt import JWTTokenProvider
from authcore.infra.redis import RedisRefreshTokenStore
from authcore.infra.sql import SQLAlchemyPrincipalLoader, SQLAlchemyRefreshTokenStore
from authcore.services._shared.ports import (
    Clock,
    InMemoryRefreshTokenStore,
    PrincipalLoader,
    RefreshTokenStore,
    TokenProvider,
    utc_now,
)
from authcore.services.tokens import (
    AccessTokenValidator,
    AuthTokenConfig,
    RevocationService,
    RotationEngine,
    TokenIssuer,
)

EXTENSION_KEY = "authcore.tokens"


@dataclass(frozen=True, slots=True)
class TokenServices:
    """Bundle of token-lifecycle components sharing one store and clock."""

    store: RefreshTokenStore
    token_provider: TokenProvider
    principals: PrincipalLoader
    issuer: TokenIssuer
    rotation: RotationEngine
    revocation: RevocationService
    validator: AccessTokenValidator
    clock: Clock


def build_store(backend: str, app: Flask | None = None) -> RefreshTokenStore:
    """
    Instantiate the refresh-token store named by ``TOKEN_STORE_BACKEND``.

    :param app: Application owning the Redis client; defaults to the current one.
    :raises RuntimeError: If the backend name is unknown.
    """
    if backend not in TOKEN_STORE_BACKENDS:
        raise RuntimeError(
            f"Unknown TOKEN_STORE_BACKEND {backend!r}; expected one of {sorted(TOKEN_STORE_BACKENDS)}."
        )
    if backend == "redis":
        return RedisRefreshTokenStore(get_redis(app))
    if backend == "memory":
        return InMemoryRefreshTokenStore()
    return SQLAlchemyRefreshTokenStore()


def build_token_services(
    *,
    store: RefreshTokenStore,
    token_provider: TokenProvider,
    principals: PrincipalLoader,
    token_cfg: AuthTokenConfig | None = None,
    clock: Clock = utc_now,
) -> TokenServices:
    """Assemble the services around already-built adapters."""
    issuer = TokenIssuer(store=store, token_provider=token_provider, token_cfg=token_cfg, clock=clock)
    return TokenServices(
        store=store,
        token_provider=token_provider,
        principals=principals,
        issuer=issuer,
        rotation=RotationEngine(store=store, issuer=issuer, principals=principals, clock=clock),
        revocation=RevocationService(store=store, clock=clock),
        validator=AccessTokenValidator(token_provider),
        clock=clock,
    )


def init_app(app: Flask) -> None:
    """Build the token services for ``app`` from its configuration."""
    backend = str(app.config.get("TOKEN_STORE_BACKEND", "sql")).strip().lower()
    services = build_token_services(
        store=build_store(backend, app),
        token_provider=JWTTokenProvider(),
        principals=SQLAlchemyPrincipalLoader(),
        token_cfg=AuthTokenConfig.from_mapping(app.config),
    )
    app.extensions[EXTENSION_KEY] = services
    app.logger.info("token services ready", extra={"event": "tokens.init", "reason": backend})


def get_token_services() -> TokenServices:
    """Return the token services of the current application."""
    try:
        return current_app.extensions[EXTENSION_KEY]  # type: ignore[no-any-return]
    except KeyError as exc:
        raise RuntimeError("Token services are not initialized. Call init_app() first.") from exc
