"""In-memory collaborators for token-service unit tests."""

from __future__ import annotations

import pytest

from authcore.core.container import TokenServices, build_token_services
from authcore.services._shared.ports import (
    InMemoryPrincipalLoader,
    InMemoryRefreshTokenStore,
    Principal,
    StubTokenProvider,
)
from authcore.services.tokens import AuthTokenConfig
from tests.helpers.clock import ACCESS_TTL, REFRESH_TTL, FrozenClock


@pytest.fixture()
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture()
def store() -> InMemoryRefreshTokenStore:
    return InMemoryRefreshTokenStore()


@pytest.fixture()
def alice() -> Principal:
    return Principal(
        user_id="u-alice",
        email="alice@example.com",
        display_name="Alice",
        roles=frozenset({"user"}),
    )


@pytest.fixture()
def principals(alice) -> InMemoryPrincipalLoader:
    return InMemoryPrincipalLoader([alice])


@pytest.fixture()
def services(store, principals, clock) -> TokenServices:
    """Token services over the in-memory store, a stub signer and a frozen clock."""
    return build_token_services(
        store=store,
        token_provider=StubTokenProvider(clock=clock),
        principals=principals,
        token_cfg=AuthTokenConfig(access_expires=ACCESS_TTL, refresh_expires=REFRESH_TTL),
        clock=clock,
    )
