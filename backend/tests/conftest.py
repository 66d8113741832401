"""Shared fixtures: one app per run, one rolled-back transaction per test.

The schema is created once on an in-memory SQLite database. Each test gets a
session bound to a single shared connection inside an outer transaction and
a SAVEPOINT; ``db.session`` is swapped for it, so services, stores and Units
of Work all write into the SAVEPOINT and nothing survives the test.
"""

from __future__ import annotations

import os

import pytest
from sqlalchemy import event
from sqlalchemy.orm import scoped_session, sessionmaker

from authcore.core.config import TestingConfig
from authcore.core.extensions import db as _db
from authcore.factory import create_app
from tests.factories import bind_session


class TestConfig(TestingConfig):
    """SQL token store on in-memory SQLite; a 32+ byte HMAC key keeps PyJWT quiet."""

    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    TOKEN_STORE_BACKEND = "sql"
    JWT_SECRET_KEY = "test-signing-key-0123456789abcdef0123456789"
    ACCESS_TOKEN_TTL_SECONDS = 900
    REFRESH_TOKEN_TTL_SECONDS = 7 * 24 * 3600
    LOG_LEVEL = "WARNING"


@pytest.fixture(scope="session")
def app():
    os.environ.pop("DATABASE_URL", None)
    return create_app(TestConfig)


@pytest.fixture(scope="session")
def db(app):
    """Schema for the whole run; the app context stays pushed until teardown."""
    with app.app_context():
        _db.create_all()
        yield _db
        _db.session.remove()
        _db.drop_all()


@pytest.fixture(scope="session")
def connection(db):
    with db.engine.connect() as conn:
        yield conn


@pytest.fixture()
def session(db, connection):
    """Scoped session living inside a per-test SAVEPOINT.

    Units of Work commit freely: a commit only ends the current SAVEPOINT,
    and the listener below opens a new one, so the outer transaction (rolled
    back at teardown) still holds every write.
    """
    outer = connection.begin()
    connection.begin_nested()
    scoped = scoped_session(sessionmaker(bind=connection, future=True))

    @event.listens_for(scoped(), "after_transaction_end")
    def _reopen_savepoint(sess, trans):  # pragma: no cover
        if trans.nested and not trans._parent.nested:
            connection.begin_nested()

    app_session = db.session
    app_session.remove()
    db.session = scoped
    try:
        yield scoped
    finally:
        scoped.remove()
        db.session = app_session
        outer.rollback()


@pytest.fixture()
def client(app, session):
    return app.test_client()


@pytest.fixture(scope="session")
def faker():
    from faker import Faker

    Faker.seed(1337)
    return Faker()


@pytest.fixture(autouse=True)
def _factories_session(session):
    bind_session(session)
    yield
    bind_session(None)
