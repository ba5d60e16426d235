"""List and revoke consent grants, end login sessions."""

from __future__ import annotations

import typer
from rich.markup import escape
from rich.table import Table

from hydra_ldap.challenge import ChallengeClient
from hydra_ldap.cli.common import console, exit_error, get_config, print_json
from hydra_ldap.exceptions import HydraLdapError

sessions_app = typer.Typer(help="Manage consent and login sessions.", no_args_is_help=True)


@sessions_app.command("list")
def list_sessions(
    ctx: typer.Context,
    subject: str = typer.Argument(..., help="Subject (username)."),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON for automation."),
) -> None:
    """List the consents granted by a subject, one per client."""
    config = get_config(ctx)
    client = ChallengeClient(config.hydra)
    try:
        sessions = client.list_consent_sessions(subject)
    except HydraLdapError as exc:
        exit_error(str(exc))
    finally:
        client.close()

    if as_json:
        print_json(
            [
                {
                    "client_id": s.client.client_id,
                    "client_name": s.client.client_name,
                    "grant_scope": s.grant_scope,
                    "handled_at": s.handled_at.isoformat(),
                    "remember": s.remember,
                }
                for s in sessions
            ]
        )
        return

    if not sessions:
        console.print(f"[dim]No consent sessions for {escape(subject)}[/]")
        return

    table = Table(title=f"Consents of {escape(subject)}")
    table.add_column("Client ID", style="cyan")
    table.add_column("Client name")
    table.add_column("Scopes")
    table.add_column("Granted at", style="dim")
    for s in sessions:
        table.add_row(
            escape(s.client.client_id),
            escape(s.client.client_name),
            escape(" ".join(s.grant_scope)),
            s.handled_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
        )
    console.print(table)


@sessions_app.command("revoke")
def revoke(
    ctx: typer.Context,
    subject: str = typer.Argument(..., help="Subject (username)."),
    client_id: str = typer.Argument(..., metavar="CLIENT", help="Client id whose consent is revoked."),
) -> None:
    """Revoke the consent a subject granted to a client."""
    config = get_config(ctx)
    client = ChallengeClient(config.hydra)
    try:
        client.revoke_consent(subject, client_id)
    except HydraLdapError as exc:
        exit_error(str(exc))
    finally:
        client.close()
    console.print(f"[green]✓[/] Consent of {escape(subject)} for {escape(client_id)} revoked")


@sessions_app.command("logout")
def logout(
    ctx: typer.Context,
    subject: str = typer.Argument(..., help="Subject (username)."),
) -> None:
    """End every login session of a subject."""
    config = get_config(ctx)
    client = ChallengeClient(config.hydra)
    try:
        client.logout(subject)
    except HydraLdapError as exc:
        exit_error(str(exc))
    finally:
        client.close()
    console.print(f"[green]✓[/] {escape(subject)} logged out")


__all__ = ["sessions_app"]
