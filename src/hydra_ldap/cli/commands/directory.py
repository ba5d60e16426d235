"""Query the directory: authorization checks and claim lookups."""

from __future__ import annotations

from typing import TYPE_CHECKING

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from hydra_ldap.claims import filter_claims
from hydra_ldap.cli.common import console, exit_error, get_config, print_json
from hydra_ldap.directory import DirectoryClient
from hydra_ldap.exceptions import HydraLdapError

if TYPE_CHECKING:
    from hydra_ldap.claims import Claim

directory_app = typer.Typer(help="Query the LDAP directory.", no_args_is_help=True)


def _render_claims(username: str, claims: Claim) -> None:
    """Render claims as a two-column table."""
    table = Table(show_header=False, box=None)
    table.add_column("Claim", style="dim")
    table.add_column("Value")
    for name, value in claims.details.items():
        table.add_row(name, escape(value))
    if claims.roles:
        table.add_row("roles", escape(", ".join(claims.roles)))
    if not claims.details and not claims.roles:
        table.add_row("[dim]none[/]", "")
    console.print(Panel(table, title=f"Claims of {escape(username)}", style="cyan"))


@directory_app.command("authorize")
def authorize(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Login name (uid, mail, userPrincipalName or sAMAccountName)."),
    app: str = typer.Option(..., "--app", "-a", help="Application (OAuth2 client) id."),
    password: str = typer.Option(
        ...,
        "--password",
        prompt=True,
        hide_input=True,
        help="Password (prompted when omitted).",
    ),
) -> None:
    """Check that a user can sign in to an application.

    Exit codes: 0 (authorized), 1 (refused or directory error), 2 (configuration error).
    """
    config = get_config(ctx)
    client = DirectoryClient(config.ldap)
    try:
        client.is_authorized(username, password, app)
    except HydraLdapError as exc:
        exit_error(str(exc))
    console.print(f"[green]✓[/] {escape(username)} is authorized for {escape(app)}")


@directory_app.command("claims")
def claims(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Login name."),
    app: str | None = typer.Option(None, "--app", "-a", help="Also collect the roles held for this application."),
    scope: list[str] | None = typer.Option(
        None,
        "--scope",
        "-s",
        help="Only show the claims these scopes disclose (repeatable).",
    ),
    as_json: bool = typer.Option(False, "--json", "-j", help="Output as JSON for automation."),
) -> None:
    """Show the claims the directory yields for a user."""
    config = get_config(ctx)
    client = DirectoryClient(config.ldap)
    try:
        result = client.fetch_claims(username, app_id=app)
    except HydraLdapError as exc:
        exit_error(str(exc))

    if scope:
        result = filter_claims(config.hydra.scope_map, result, scope)

    if as_json:
        print_json(result.to_id_token())
    else:
        _render_claims(username, result)


__all__ = ["directory_app"]
