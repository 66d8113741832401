"""Flask CLI commands for refresh-token incident response."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authcore.core.container import get_token_services
from authcore.services._shared.errors import StorageError

LOGGER = logging.getLogger(__name__)


@click.group("tokens")
def tokens_cli() -> None:
    """Inspect and revoke refresh-token families."""


@tokens_cli.command("revoke-family")
@click.argument("family_id")
@with_appcontext
def revoke_family_command(family_id: str) -> None:
    """Revoke every refresh token of FAMILY_ID."""
    services = get_token_services()
    try:
        affected = services.revocation.revoke_family(family_id)
    except StorageError as exc:
        raise click.ClickException(f"Revocation failed: {exc}") from exc
    click.echo(f"Revoked {affected} token(s) in family {family_id}.")


@tokens_cli.command("revoke-user")
@click.argument("user_id")
@with_appcontext
def revoke_user_command(user_id: str) -> None:
    """Revoke every active refresh token of USER_ID (forced logout)."""
    services = get_token_services()
    try:
        affected = services.revocation.logout(user_id)
    except StorageError as exc:
        raise click.ClickException(f"Revocation failed: {exc}") from exc
    click.echo(f"Revoked {affected} active token(s) for user {user_id}.")


@tokens_cli.command("show-family")
@click.argument("family_id")
@with_appcontext
def show_family_command(family_id: str) -> None:
    """List the records of FAMILY_ID, oldest first."""
    services = get_token_services()
    try:
        records = services.store.list_family(family_id)
    except StorageError as exc:
        raise click.ClickException(f"Lookup failed: {exc}") from exc
    if not records:
        click.echo(f"No tokens in family {family_id}.")
        return
    now = services.clock()
    click.echo(f"Family {family_id} (user {records[0].user_id}):")
    for rec in records:
        click.echo(
            f"  {rec.id}  {rec.state(now).value:<8}  created={rec.created_at.isoformat()}"
            f"  expires={rec.expires_at.isoformat()}"
        )
