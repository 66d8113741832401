"""factory_boy base wired to the per-test transactional session."""

from __future__ import annotations

import factory

_session = None


def bind_session(session) -> None:
    """Point every factory at ``session`` (called by the autouse fixture)."""
    global _session
    _session = session


def current_session():
    if _session is None:
        raise RuntimeError("No session bound for factories; request the 'session' fixture.")
    return _session


class BaseFactory(factory.alchemy.SQLAlchemyModelFactory):
    """Flush-only persistence: rows vanish with the test's SAVEPOINT."""

    class Meta:
        abstract = True
        sqlalchemy_session_factory = current_session
        sqlalchemy_session_persistence = "flush"
