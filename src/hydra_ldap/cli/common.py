"""Shared helpers for the hydra-ldap CLI commands."""

from __future__ import annotations

import json
import sys
from typing import TYPE_CHECKING, Any, NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from hydra_ldap.config import load_config
from hydra_ldap.exceptions import ConfigurationError
from hydra_ldap.logging import setup_logging

if TYPE_CHECKING:
    from hydra_ldap.config import AppConfig

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2

console = Console()
err_console = Console(stderr=True)


def exit_error(message: str, code: int = EXIT_ERROR) -> NoReturn:
    """Print an error message and exit.

    Args:
        message: Message to print (rich markup is escaped).
        code: Process exit code.
    """
    err_console.print(f"[red]Error:[/] {escape(message)}")
    raise typer.Exit(code=code)


def get_config(ctx: typer.Context) -> AppConfig:
    """Load the configuration selected by the global ``--config`` option.

    Also configures logging. Exits with code 2 on a configuration error.
    """
    path = (ctx.obj or {}).get("config_path")
    try:
        config = load_config(path)
    except ConfigurationError as exc:
        exit_error(f"invalid configuration: {exc}", code=EXIT_CONFIG_ERROR)
    setup_logging(config.log, dev=config.dev)
    return config


def print_json(data: Any) -> None:
    """Write data as indented JSON to stdout for automation."""
    sys.stdout.write(json.dumps(data, indent=2, default=str) + "\n")


__all__ = [
    "EXIT_CONFIG_ERROR",
    "EXIT_ERROR",
    "EXIT_OK",
    "console",
    "err_console",
    "exit_error",
    "get_config",
    "print_json",
]
