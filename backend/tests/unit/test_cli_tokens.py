"""Tests for the ``flask tokens`` incident-response commands."""

from __future__ import annotations

import pytest

from authcore.core.container import get_token_services
from authcore.services._shared.ports import Principal


@pytest.fixture()
def runner(app, session):
    return app.test_cli_runner()


@pytest.fixture()
def family(app, session) -> str:
    """Rotate once so the family holds a used and an active record."""
    services = get_token_services()
    principal = Principal(user_id="7", email="ops@example.com", display_name="ops", roles=frozenset())
    issued = services.issuer.issue(principal)
    services.issuer.issue(principal, family=issued.record.token_family)
    services.store.claim_for_rotation(issued.record.token_hash, services.clock())
    return issued.record.token_family


def test_show_family_lists_states(runner, family) -> None:
    result = runner.invoke(args=["tokens", "show-family", family])
    assert result.exit_code == 0, result.output
    assert f"Family {family} (user 7)" in result.output
    assert "used" in result.output
    assert "active" in result.output


def test_show_unknown_family(runner) -> None:
    result = runner.invoke(args=["tokens", "show-family", "missing"])
    assert result.exit_code == 0
    assert "No tokens in family missing." in result.output


def test_revoke_family(runner, family) -> None:
    result = runner.invoke(args=["tokens", "revoke-family", family])
    assert result.exit_code == 0, result.output
    assert f"Revoked 2 token(s) in family {family}." in result.output

    again = runner.invoke(args=["tokens", "revoke-family", family])
    assert "Revoked 0 token(s)" in again.output


def test_revoke_user(runner, family) -> None:
    result = runner.invoke(args=["tokens", "revoke-user", "7"])
    assert result.exit_code == 0, result.output
    assert "Revoked 1 active token(s) for user 7." in result.output
