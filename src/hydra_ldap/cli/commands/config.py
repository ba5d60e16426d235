"""Validate and display the effective configuration."""

from __future__ import annotations

import typer
from rich.panel import Panel
from rich.table import Table

from hydra_ldap.cli.common import console, get_config

config_app = typer.Typer(help="Inspect the configuration.", no_args_is_help=True)


@config_app.command("check")
def check(ctx: typer.Context) -> None:
    """Load and validate the configuration, then print a summary.

    Exit codes: 0 (valid), 2 (invalid configuration).
    """
    config = get_config(ctx)

    table = Table(show_header=False, box=None)
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    table.add_row("LDAP endpoint", config.ldap.endpoint)
    table.add_row("LDAP TLS", "yes" if config.ldap.tls else "no")
    if config.ldap.tls and not config.ldap.tls_verify:
        table.add_row("TLS verify", "[yellow]disabled[/]")
    table.add_row("Base DN", config.ldap.base_dn)
    table.add_row("Role base DN", config.ldap.role_base_dn or "[dim]none[/]")
    table.add_row("Attributes", ", ".join(f"{a} -> {c}" for a, c in config.ldap.attribute_map.items()))
    table.add_row("Hydra admin URL", config.hydra.url)
    table.add_row("Session TTL", f"{config.hydra.remember_for}s")
    for scope, claims in config.hydra.scope_map.items():
        table.add_row(f"Scope {scope}", ", ".join(claims))
    table.add_row("Log level", config.log.level + (" (systemd)" if config.log.use_systemd else ""))
    table.add_row("Self-service", config.selfservice.client_id if config.selfservice else "[dim]disabled[/]")

    console.print(Panel(table, title="Configuration VALID", style="green"))


__all__ = ["config_app"]
