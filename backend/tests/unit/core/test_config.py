"""Unit tests for environment-driven configuration helpers."""

from __future__ import annotations

from datetime import timedelta

import pytest

from authcore.core.config import (
    DevelopmentConfig,
    ProductionConfig,
    env_bool,
    env_int,
    get_config,
    validate_config,
)
from authcore.services.tokens import AuthTokenConfig


@pytest.mark.parametrize("raw,expected", [("1", True), ("YES", True), ("off", False), ("", False)])
def test_env_bool(monkeypatch, raw, expected) -> None:
    monkeypatch.setenv("AUTHCORE_FLAG", raw)
    assert env_bool("AUTHCORE_FLAG") is expected


def test_env_bool_default_when_unset(monkeypatch) -> None:
    monkeypatch.delenv("AUTHCORE_FLAG", raising=False)
    assert env_bool("AUTHCORE_FLAG", True) is True


def test_env_int(monkeypatch) -> None:
    monkeypatch.setenv("AUTHCORE_TTL", " 60 ")
    assert env_int("AUTHCORE_TTL", 5) == 60
    monkeypatch.setenv("AUTHCORE_TTL", "")
    assert env_int("AUTHCORE_TTL", 5) == 5


@pytest.mark.parametrize("raw", ["0", "-3", "abc"])
def test_env_int_rejects_non_positive(monkeypatch, raw) -> None:
    monkeypatch.setenv("AUTHCORE_TTL", raw)
    with pytest.raises(ValueError):
        env_int("AUTHCORE_TTL", 5)


def test_get_config_selects_by_app_env(monkeypatch) -> None:
    monkeypatch.setenv("APP_ENV", "production")
    assert get_config() is ProductionConfig
    monkeypatch.setenv("APP_ENV", "unknown")
    assert get_config() is DevelopmentConfig


def test_token_lifetimes_from_mapping() -> None:
    cfg = AuthTokenConfig.from_mapping(
        {"ACCESS_TOKEN_TTL_SECONDS": 60, "REFRESH_TOKEN_TTL_SECONDS": 3600}
    )
    assert cfg.access_expires == timedelta(seconds=60)
    assert cfg.refresh_expires == timedelta(hours=1)


def _cfg(**overrides) -> dict:
    base = {
        "TOKEN_STORE_BACKEND": "sql",
        "SECRET_KEY": "s" * 32,
        "JWT_SECRET_KEY": "j" * 32,
        "DEBUG": False,
        "TESTING": False,
    }
    return {**base, **overrides}


def test_validate_config_accepts_sane_settings() -> None:
    validate_config(_cfg())
    validate_config(_cfg(TOKEN_STORE_BACKEND="redis", REDIS_URL="redis://localhost:6379/0"))


@pytest.mark.parametrize(
    "overrides",
    [
        {"TOKEN_STORE_BACKEND": "cassandra"},
        {"TOKEN_STORE_BACKEND": "redis", "REDIS_URL": None},
        {"JWT_SECRET_KEY": "CHANGE_ME_JWT"},
        {"SECRET_KEY": "CHANGE_ME"},
    ],
)
def test_validate_config_rejects(overrides) -> None:
    with pytest.raises(RuntimeError):
        validate_config(_cfg(**overrides))


def test_placeholder_secrets_tolerated_when_testing() -> None:
    validate_config(_cfg(JWT_SECRET_KEY="CHANGE_ME_JWT", TESTING=True))
