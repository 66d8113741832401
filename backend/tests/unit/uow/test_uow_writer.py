"""Read-write Unit of Work: commit on success, rollback on error."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from authcore.models import User
from authcore.uow import SQLAlchemyUnitOfWork
from tests.factories.user import UserFactory


def _user_count(session) -> int:
    return session.execute(select(func.count()).select_from(User)).scalar_one()


def test_clean_exit_commits(session):
    before = _user_count(session)

    with SQLAlchemyUnitOfWork() as uow:
        uow.users.add(UserFactory.build())

    assert _user_count(session) == before + 1


def test_exception_rolls_back_and_propagates(session):
    before = _user_count(session)

    with pytest.raises(LookupError), SQLAlchemyUnitOfWork() as uow:
        uow.users.add(UserFactory.build())
        raise LookupError("abort")

    assert _user_count(session) == before


def test_failed_commit_rolls_back(session):
    UserFactory(username="taken")
    session.commit()

    with pytest.raises(Exception), SQLAlchemyUnitOfWork() as uow:  # noqa: B017
        uow.session.add(User(email="other@example.com", username="taken", password_hash="x"))

    assert not session.new
    assert session.execute(select(User).where(User.email == "other@example.com")).first() is None


def test_repositories_share_the_session(session):
    with SQLAlchemyUnitOfWork() as uow:
        assert uow.users.session is uow.refresh_tokens.session is uow.session
