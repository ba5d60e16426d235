"""Logging setup for hydra_ldap.

Modules log through ``logging.getLogger(__name__)``; :func:`setup_logging`
attaches a single handler to the ``hydra_ldap`` logger according to the
configuration:

- systemd mode: ``<N>`` syslog priority prefixes, no timestamps (journald
  adds its own)
- dev mode: colored console output through ``rich``
- otherwise: plain timestamped lines on stderr

A ``TRACE`` level (5) sits below DEBUG; request payloads are logged at TRACE.
Passwords are never logged.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.logging import RichHandler

if TYPE_CHECKING:
    from hydra_ldap.config import LoggingConfig

ROOT_LOGGER = "hydra_ldap"
TRACE_LEVEL = 5

logging.addLevelName(TRACE_LEVEL, "TRACE")

LEVELS = {
    "trace": TRACE_LEVEL,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "panic": logging.CRITICAL,
}

# syslog priorities understood by journald on stderr lines
SYSLOG_CRIT = 2
SYSLOG_ERR = 3
SYSLOG_WARNING = 4
SYSLOG_INFO = 6
SYSLOG_DEBUG = 7

PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
SYSTEMD_FORMAT = "%(levelname)s %(name)s: %(message)s"


def syslog_priority(levelno: int) -> int:
    """Map a logging level number to a syslog priority.

    Examples:
        >>> syslog_priority(logging.ERROR)
        3
        >>> syslog_priority(TRACE_LEVEL)
        7
    """
    if levelno >= logging.CRITICAL:
        return SYSLOG_CRIT
    if levelno >= logging.ERROR:
        return SYSLOG_ERR
    if levelno >= logging.WARNING:
        return SYSLOG_WARNING
    if levelno >= logging.INFO:
        return SYSLOG_INFO
    return SYSLOG_DEBUG


class SystemdFormatter(logging.Formatter):
    """Prefix each line with its ``<N>`` syslog priority."""

    def __init__(self) -> None:
        super().__init__(SYSTEMD_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        return f"<{syslog_priority(record.levelno)}>{super().format(record)}"


def resolve_level(name: str) -> int:
    """Return the logging level for a configured level name.

    Raises:
        ValueError: If the name is unknown.

    Examples:
        >>> resolve_level("warn") == logging.WARNING
        True
    """
    try:
        return LEVELS[name.lower()]
    except KeyError:
        raise ValueError(f"unknown log level {name!r}") from None


def setup_logging(config: LoggingConfig, dev: bool = False) -> logging.Logger:
    """Configure the ``hydra_ldap`` logger.

    Calling it again replaces the handler installed by a previous call.

    Args:
        config: Logging settings.
        dev: Use rich console output (ignored in systemd mode).

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for existing in list(logger.handlers):
        if getattr(existing, "_hydra_ldap", False):
            logger.removeHandler(existing)
            existing.close()

    handler: logging.Handler
    if config.use_systemd:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(SystemdFormatter())
    elif dev:
        handler = RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT))
    handler._hydra_ldap = True  # type: ignore[attr-defined]

    level = resolve_level(config.level)
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


__all__ = [
    "LEVELS",
    "ROOT_LOGGER",
    "TRACE_LEVEL",
    "SystemdFormatter",
    "resolve_level",
    "setup_logging",
    "syslog_priority",
]
