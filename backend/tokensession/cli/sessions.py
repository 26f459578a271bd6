"""Flask CLI commands for inspecting and revoking sessions."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from tokensession.factory import get_sessions
from tokensession.services._shared.errors import StoreUnavailable

LOGGER = logging.getLogger(__name__)


@click.group("sessions")
def sessions_cli() -> None:
    """Maintenance commands for token sessions."""


@sessions_cli.command("purge")
@with_appcontext
def purge_command() -> None:
    """Delete refresh records past their retention window."""
    try:
        removed = get_sessions().purge_expired()
    except StoreUnavailable as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Purged {removed} expired refresh token(s).")


@sessions_cli.command("revoke")
@click.option("--family", "family_id", help="Revoke one session by family id.")
@click.option("--principal", "principal_id", help="Revoke every session of a principal.")
@click.option("--reason", default="admin", show_default=True, help="Reason recorded in the logs.")
@with_appcontext
def revoke_command(family_id: str | None, principal_id: str | None, reason: str) -> None:
    """Revoke a single session or all sessions of a principal."""
    if bool(family_id) == bool(principal_id):
        raise click.UsageError("Pass exactly one of --family or --principal.")
    LOGGER.info(
        "sessions.admin_revoke",
        extra={
            "event": "sessions.admin_revoke",
            "family_id": family_id,
            "principal_id": principal_id,
            "reason": reason,
        },
    )
    revocation = get_sessions().revocation
    try:
        if family_id:
            changed = revocation.revoke_family(family_id, reason=reason)
            outcome = "revoked" if changed else "already revoked or unknown"
            click.echo(f"Family {family_id}: {outcome}.")
        else:
            count = revocation.revoke_principal(principal_id, reason=reason)
            click.echo(f"Revoked {count} session(s) for principal {principal_id}.")
    except StoreUnavailable as exc:
        raise click.ClickException(str(exc)) from exc


@sessions_cli.command("list")
@click.argument("principal_id")
@with_appcontext
def list_command(principal_id: str) -> None:
    """List the live sessions of PRINCIPAL_ID."""
    try:
        views = get_sessions().sessions(principal_id)
    except StoreUnavailable as exc:
        raise click.ClickException(str(exc)) from exc
    if not views:
        click.echo("  (no active sessions)")
        return
    for view in views:
        click.echo(
            f"  {view.family_id}  created={view.created_at.isoformat()}"
            f"  refreshed={view.last_refreshed_at.isoformat()}"
            f"  expires={view.expires_at.isoformat()}"
        )
