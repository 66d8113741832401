"""Extension singletons shared by the whole package.

They are created unbound at import time and attached to an application by
:func:`init_app`, so models and repositories can import ``db`` freely.
"""

from __future__ import annotations

import redis  # type: ignore[import-untyped]
from flask import Flask
from flask_jwt_extended import JWTManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import MetaData

# Deterministic constraint names; the Alembic revisions rely on them.
NAMING_CONVENTION = {
    "pk": "pk_%(table_name)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ix": "ix_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
}

db: SQLAlchemy = SQLAlchemy(
    metadata=MetaData(naming_convention=NAMING_CONVENTION),
    session_options={"autoflush": False},
)
migrate = Migrate(render_as_batch=True)
jwt = JWTManager()

REDIS_EXTENSION_KEY = "redis_client"


def _connect_redis(url: str) -> redis.Redis:
    """Open a client and ping it so a bad URL fails at startup, not mid-rotation."""
    client = redis.Redis.from_url(url)
    try:
        client.ping()
    except RedisError as exc:
        raise RuntimeError(f"Failed to connect to Redis at {url!r}") from exc
    return client


def init_app(app: Flask) -> None:
    """Bind SQLAlchemy, Alembic and JWT to ``app``; connect Redis if it holds tokens.

    Models are imported here so ``flask db`` sees the full metadata.
    """
    db.init_app(app)
    from authcore import models  # noqa: F401

    migrate.init_app(app, db)
    jwt.init_app(app)

    if app.config.get("TOKEN_STORE_BACKEND") == "redis":
        app.extensions[REDIS_EXTENSION_KEY] = _connect_redis(app.config["REDIS_URL"])
    else:
        app.extensions.pop(REDIS_EXTENSION_KEY, None)


def get_redis(app: Flask | None = None) -> redis.Redis:
    """Return the Redis client bound to ``app`` (default: the current app)."""
    if app is None:
        from flask import current_app

        app = current_app
    try:
        return app.extensions[REDIS_EXTENSION_KEY]  # type: ignore[no-any-return]
    except KeyError as exc:
        raise RuntimeError("Redis client is not initialized for this app.") from exc
