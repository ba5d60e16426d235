"""Tests for the `hydra-ldap challenge` and `hydra-ldap sessions` commands."""

from __future__ import annotations

import importlib
import json
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from hydra_ldap.challenge import (
    Challenge,
    ChallengeKind,
    ChallengeNotFoundError,
    ClientInfo,
    ConsentSession,
    RemoteError,
)
from hydra_ldap.cli.app import app

pytestmark = pytest.mark.cli

runner = CliRunner()

challenge_module = importlib.import_module("hydra_ldap.cli.commands.challenge")
sessions_module = importlib.import_module("hydra_ldap.cli.commands.sessions")

LOGIN_BODY = {
    "challenge": "abc",
    "subject": "",
    "requested_scope": ["openid", "email"],
    "skip": False,
    "client": {"client_id": "my-app", "client_name": "My App"},
    "request_url": "http://hydra/oauth2/auth?client_id=my-app",
}


@pytest.fixture
def cfg(config_file: Callable[..., Path]) -> list[str]:
    """Global options selecting the test configuration."""
    return ["--config", str(config_file())]


@pytest.fixture
def challenge_client() -> Generator[MagicMock, None, None]:
    """Replace the ChallengeClient used by `challenge show`."""
    instance = MagicMock()
    instance.get.return_value = Challenge.from_response(ChallengeKind.LOGIN, LOGIN_BODY)
    with patch.object(challenge_module, "ChallengeClient", return_value=instance):
        yield instance


@pytest.fixture
def sessions_client() -> Generator[MagicMock, None, None]:
    """Replace the ChallengeClient used by the sessions commands."""
    instance = MagicMock()
    instance.list_consent_sessions.return_value = [
        ConsentSession(
            client=ClientInfo("my-app", "My App"),
            grant_scope=["openid", "email"],
            handled_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
            remember=True,
        )
    ]
    with patch.object(sessions_module, "ChallengeClient", return_value=instance):
        yield instance


class TestChallengeShow:
    """Tests for `challenge show`."""

    def test_table(self, cfg: list[str], challenge_client: MagicMock) -> None:
        """The request is rendered and the client closed."""
        result = runner.invoke(app, [*cfg, "challenge", "show", "login", "abc"])
        assert result.exit_code == 0
        assert "Login request" in result.output
        assert "My App (my-app)" in result.output
        assert "openid, email" in result.output
        challenge_client.get.assert_called_once_with(ChallengeKind.LOGIN, "abc")
        challenge_client.close.assert_called_once_with()

    def test_json(self, cfg: list[str], challenge_client: MagicMock) -> None:
        """--json prints the raw admin API body."""
        result = runner.invoke(app, [*cfg, "challenge", "show", "login", "abc", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == LOGIN_BODY

    def test_unknown_kind(self, cfg: list[str], challenge_client: MagicMock) -> None:
        """Only login and consent are accepted."""
        result = runner.invoke(app, [*cfg, "challenge", "show", "logout", "abc"])
        assert result.exit_code != 0
        challenge_client.get.assert_not_called()

    def test_not_found(self, cfg: list[str], challenge_client: MagicMock) -> None:
        """Admin API errors exit 1 and still close the client."""
        challenge_client.get.side_effect = ChallengeNotFoundError("challenge not found")
        result = runner.invoke(app, [*cfg, "challenge", "show", "consent", "zzz"])
        assert result.exit_code == 1
        assert "challenge not found" in result.output
        challenge_client.close.assert_called_once_with()


class TestSessionsList:
    """Tests for `sessions list`."""

    def test_table(self, cfg: list[str], sessions_client: MagicMock) -> None:
        """Sessions are listed one per row."""
        result = runner.invoke(app, [*cfg, "sessions", "list", "jdoe"])
        assert result.exit_code == 0
        assert "Consents of jdoe" in result.output
        assert "my-app" in result.output
        assert "2024-05-01 10:00:00 UTC" in result.output
        sessions_client.list_consent_sessions.assert_called_once_with("jdoe")

    def test_json(self, cfg: list[str], sessions_client: MagicMock) -> None:
        """--json prints one object per client."""
        result = runner.invoke(app, [*cfg, "sessions", "list", "jdoe", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.stdout) == [
            {
                "client_id": "my-app",
                "client_name": "My App",
                "grant_scope": ["openid", "email"],
                "handled_at": "2024-05-01T10:00:00+00:00",
                "remember": True,
            }
        ]

    def test_empty(self, cfg: list[str], sessions_client: MagicMock) -> None:
        """No sessions prints a notice."""
        sessions_client.list_consent_sessions.return_value = []
        result = runner.invoke(app, [*cfg, "sessions", "list", "jdoe"])
        assert result.exit_code == 0
        assert "No consent sessions for jdoe" in result.output

    def test_remote_error(self, cfg: list[str], sessions_client: MagicMock) -> None:
        """Admin API failures exit 1."""
        sessions_client.list_consent_sessions.side_effect = RemoteError(500, "internal_error")
        result = runner.invoke(app, [*cfg, "sessions", "list", "jdoe"])
        assert result.exit_code == 1
        assert "internal_error" in result.output


class TestSessionsRevokeAndLogout:
    """Tests for `sessions revoke` and `sessions logout`."""

    def test_revoke(self, cfg: list[str], sessions_client: MagicMock) -> None:
        """The consent of one client is revoked."""
        result = runner.invoke(app, [*cfg, "sessions", "revoke", "jdoe", "my-app"])
        assert result.exit_code == 0
        assert "Consent of jdoe for my-app revoked" in result.output
        sessions_client.revoke_consent.assert_called_once_with("jdoe", "my-app")
        sessions_client.close.assert_called_once_with()

    def test_logout(self, cfg: list[str], sessions_client: MagicMock) -> None:
        """Every login session of the subject ends."""
        result = runner.invoke(app, [*cfg, "sessions", "logout", "jdoe"])
        assert result.exit_code == 0
        assert "jdoe logged out" in result.output
        sessions_client.logout.assert_called_once_with("jdoe")

    def test_logout_failure(self, cfg: list[str], sessions_client: MagicMock) -> None:
        """Admin API failures exit 1."""
        sessions_client.logout.side_effect = RemoteError(503)
        result = runner.invoke(app, [*cfg, "sessions", "logout", "jdoe"])
        assert result.exit_code == 1
        assert "remote error 503" in result.output
