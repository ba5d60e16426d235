"""Command groups of the hydra-ldap CLI."""

from hydra_ldap.cli.commands.challenge import challenge_app
from hydra_ldap.cli.commands.config import config_app
from hydra_ldap.cli.commands.directory import directory_app
from hydra_ldap.cli.commands.sessions import sessions_app

__all__ = [
    "challenge_app",
    "config_app",
    "directory_app",
    "sessions_app",
]
