"""Shared pytest fixtures for the hydra_ldap test suite."""

from __future__ import annotations

# Disable Rich colors and force wide terminal BEFORE any imports
# Rich checks these at import time
import os

os.environ["NO_COLOR"] = "1"
os.environ["TERM"] = "dumb"
os.environ["FORCE_COLOR"] = "0"
os.environ["COLUMNS"] = "200"  # Prevent text wrapping in CLI output

import logging
from collections.abc import Callable, Generator, Sequence
from pathlib import Path
from typing import Any

import httpx
import pytest

from hydra_ldap.config import ChallengeConfig, DirectoryConfig
from hydra_ldap.directory.exceptions import InvalidCredentialsError
from hydra_ldap.directory.models import DirectoryEntry

# pylint: disable=redefined-outer-name

CONFIG_YAML = """\
ldap:
  endpoint: ldap.example.com:389
  base_dn: ou=people,dc=example,dc=com
  role_base_dn: ou=apps,dc=example,dc=com
hydra:
  url: http://hydra.example.com:4445
  session_ttl: 1h
log:
  level: info
"""


class FakeDirectoryConnection:
    """In-memory DirectoryConnection keyed on (base DN, filter)."""

    def __init__(
        self,
        results: dict[tuple[str, str], list[DirectoryEntry]] | None = None,
        passwords: dict[str, str] | None = None,
    ) -> None:
        self.results = results or {}
        self.passwords = passwords or {}
        self.searches: list[tuple[str, str, list[str]]] = []
        self.binds: list[str] = []
        self.closed = False
        self.search_error: Exception | None = None

    def search(self, base_dn: str, search_filter: str, attributes: Sequence[str]) -> list[DirectoryEntry]:
        self.searches.append((base_dn, search_filter, list(attributes)))
        if self.search_error is not None:
            raise self.search_error
        return list(self.results.get((base_dn, search_filter), []))

    def bind(self, dn: str, password: str) -> None:
        self.binds.append(dn)
        if self.passwords.get(dn) != password:
            raise InvalidCredentialsError("invalid credentials")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def directory_config() -> DirectoryConfig:
    """Directory settings with the default attribute mapping."""
    return DirectoryConfig(
        endpoint="ldap.example.com:389",
        base_dn="ou=people,dc=example,dc=com",
        role_base_dn="ou=apps,dc=example,dc=com",
    )


@pytest.fixture
def challenge_config() -> ChallengeConfig:
    """Admin API settings with a one hour session TTL."""
    return ChallengeConfig(url="http://hydra.example.com:4445", session_ttl="1h")


@pytest.fixture
def fake_connection() -> FakeDirectoryConnection:
    """An empty in-memory directory connection."""
    return FakeDirectoryConnection()


@pytest.fixture
def mock_http() -> Callable[..., httpx.Client]:
    """Build an httpx client answering through a handler function."""

    def _build(handler: Callable[[httpx.Request], httpx.Response], base_url: str = "") -> httpx.Client:
        return httpx.Client(base_url=base_url, transport=httpx.MockTransport(handler))

    return _build


@pytest.fixture
def config_file(tmp_path: Path) -> Callable[[str], Path]:
    """Write a configuration file and return its path."""

    def _write(content: str = CONFIG_YAML) -> Path:
        path = tmp_path / "hydra-ldap.yml"
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Restore the package logger after tests that configure logging."""
    logger = logging.getLogger("hydra_ldap")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
    logger.propagate = propagate


def make_entry(dn: str, **attributes: Any) -> DirectoryEntry:
    """Build a DirectoryEntry from keyword attributes."""
    return DirectoryEntry(dn=dn, attributes={k: v if isinstance(v, list) else [v] for k, v in attributes.items()})


@pytest.fixture
def entry() -> Callable[..., DirectoryEntry]:
    """Expose make_entry to tests."""
    return make_entry


@pytest.fixture
def fake_connection_class() -> type[FakeDirectoryConnection]:
    """Expose the fake connection class to tests."""
    return FakeDirectoryConnection
