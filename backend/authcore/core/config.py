"""Environment-driven settings for the token service.

Three profiles (development, testing, production) are selected with
``APP_ENV``. Every value can be overridden through the environment or a
``.env`` file; :func:`validate_config` rejects combinations the app cannot
run with before any extension is initialised.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Final

from dotenv import load_dotenv

ENV_VAR: Final[str] = "APP_ENV"

TOKEN_STORE_BACKENDS: Final[frozenset[str]] = frozenset({"sql", "redis", "memory"})

_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "y", "on"})
_PLACEHOLDER_SECRETS: Final[frozenset[str]] = frozenset({"CHANGE_ME", "CHANGE_ME_JWT"})

load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    """Read a yes/no flag; unset means ``default``, anything unrecognised means no."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    """Read a strictly positive integer.

    :param name: Environment variable to inspect.
    :param default: Value used when unset or blank.
    :raises ValueError: If the value is not a positive integer.
    """
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = int(raw.strip())
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value}.")
    return value


class BaseConfig:
    """Settings shared by every profile.

    Attributes
    ----------
    JWT_SECRET_KEY: str
        HMAC key for access tokens (``flask-jwt-extended``).
    ACCESS_TOKEN_TTL_SECONDS / REFRESH_TOKEN_TTL_SECONDS: int
        Lifetimes of the signed access token and the opaque refresh secret.
    TOKEN_STORE_BACKEND: str
        Where refresh-token records live: ``sql``, ``redis`` or ``memory``.
        ``memory`` is per-process and only suitable for a single worker.
    REDIS_URL: str | None
        Required when the backend is ``redis``.
    """

    API_BASE_PREFIX = "/api"
    APP_VERSION = os.getenv("APP_VERSION", "dev")

    SECRET_KEY = os.getenv("SECRET_KEY", "CHANGE_ME")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "CHANGE_ME_JWT")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

    ACCESS_TOKEN_TTL_SECONDS = env_int("ACCESS_TOKEN_TTL_SECONDS", 15 * 60)
    REFRESH_TOKEN_TTL_SECONDS = env_int("REFRESH_TOKEN_TTL_SECONDS", 7 * 24 * 3600)

    TOKEN_STORE_BACKEND = os.getenv("TOKEN_STORE_BACKEND", "sql").strip().lower()
    REDIS_URL = os.getenv("REDIS_URL") or None

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///./dev.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = env_bool("SQLALCHEMY_ECHO", False)

    JSON_SORT_KEYS = False
    PROPAGATE_EXCEPTIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DEBUG = False
    TESTING = False


class DevelopmentConfig(BaseConfig):
    DEBUG = env_bool("FLASK_DEBUG", True)


class TestingConfig(BaseConfig):
    """In-memory SQLite (unless ``TEST_DATABASE_URL``) with propagated exceptions."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", "sqlite:///:memory:")
    TOKEN_STORE_BACKEND = "sql"
    PROPAGATE_EXCEPTIONS = True


class ProductionConfig(BaseConfig):
    """Production defaults; placeholder secrets are refused at startup."""

    SQLALCHEMY_ECHO = False


CONFIG_MAP: Mapping[str, type[BaseConfig]] = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
}


def get_config() -> type[BaseConfig]:
    """Pick the profile named by ``APP_ENV``; unknown or unset means development."""
    name = os.getenv(ENV_VAR, "development").strip().lower()
    return CONFIG_MAP.get(name, DevelopmentConfig)


def validate_config(cfg: Mapping[str, Any]) -> None:
    """Fail fast on settings the token service cannot run with.

    :param cfg: A loaded Flask config (or any mapping with the same keys).
    :raises RuntimeError: Unknown store backend, Redis backend without a URL,
        or placeholder signing keys outside debug/testing.
    """
    backend = str(cfg.get("TOKEN_STORE_BACKEND", "sql")).strip().lower()
    if backend not in TOKEN_STORE_BACKENDS:
        raise RuntimeError(
            f"Unknown TOKEN_STORE_BACKEND {backend!r}; "
            f"expected one of {sorted(TOKEN_STORE_BACKENDS)}."
        )
    if backend == "redis" and not cfg.get("REDIS_URL"):
        raise RuntimeError("TOKEN_STORE_BACKEND is 'redis' but REDIS_URL is not set.")
    if not (cfg.get("DEBUG") or cfg.get("TESTING")):
        weak = [k for k in ("SECRET_KEY", "JWT_SECRET_KEY") if cfg.get(k) in _PLACEHOLDER_SECRETS]
        if weak:
            raise RuntimeError(f"Refusing to start with placeholder secrets: {', '.join(weak)}.")
