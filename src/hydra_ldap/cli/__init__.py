"""Operator command line interface."""

from hydra_ldap.cli.app import app, main

__all__ = ["app", "main"]
