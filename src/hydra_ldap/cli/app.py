"""Entry point of the ``hydra-ldap`` command."""

from __future__ import annotations

from pathlib import Path

import typer

from hydra_ldap import __version__
from hydra_ldap.cli.commands import challenge_app, config_app, directory_app, sessions_app
from hydra_ldap.cli.common import console

app = typer.Typer(
    name="hydra-ldap",
    help="LDAP identity provider for the Hydra login and consent flows.",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")
app.add_typer(directory_app, name="directory")
app.add_typer(challenge_app, name="challenge")
app.add_typer(sessions_app, name="sessions")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"hydra-ldap {__version__}")
        raise typer.Exit()


@app.callback()
def root(
    ctx: typer.Context,
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Configuration file (default: ./hydra-ldap.yml).",
        envvar="HYDRA_LDAP_CONFIG",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """LDAP identity provider for the Hydra login and consent flows."""
    ctx.obj = {"config_path": config}


def main() -> None:
    """Run the CLI."""
    app()


__all__ = ["app", "main"]
