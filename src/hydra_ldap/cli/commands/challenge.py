"""Inspect pending login and consent challenges."""

from __future__ import annotations

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hydra_ldap.challenge import ChallengeClient, ChallengeKind
from hydra_ldap.cli.common import console, exit_error, get_config, print_json
from hydra_ldap.exceptions import HydraLdapError

challenge_app = typer.Typer(help="Inspect authorization server challenges.", no_args_is_help=True)


@challenge_app.command("show")
def show(
    ctx: typer.Context,
    kind: ChallengeKind = typer.Argument(..., help="Challenge kind."),
    challenge_id: str = typer.Argument(..., metavar="CHALLENGE", help="Challenge identifier."),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output the raw request as JSON."),
) -> None:
    """Fetch a pending challenge from the admin API and display it."""
    config = get_config(ctx)
    client = ChallengeClient(config.hydra)
    try:
        challenge = client.get(kind, challenge_id)
    except HydraLdapError as exc:
        exit_error(str(exc))
    finally:
        client.close()

    if as_json:
        print_json(challenge.raw)
        return

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Challenge", escape(challenge.challenge or challenge_id))
    table.add_row("Subject", escape(challenge.subject) or "[dim]unknown[/]")
    table.add_row("Client", escape(f"{challenge.client.client_name} ({challenge.client.client_id})"))
    table.add_row("Requested scopes", escape(", ".join(challenge.requested_scopes)) or "[dim]none[/]")
    table.add_row("Skip", "yes" if challenge.skip else "no")
    if challenge.request_url:
        table.add_row("Request URL", escape(challenge.request_url))
    console.print(Panel(table, title=f"{kind.value.capitalize()} request", style="cyan"))


__all__ = ["challenge_app"]
