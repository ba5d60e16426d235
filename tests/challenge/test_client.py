"""Tests for hydra_ldap.challenge.client module."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from hydra_ldap.challenge import (
    ChallengeClient,
    ChallengeExpiredError,
    ChallengeKind,
    ChallengeMissingError,
    ChallengeNotFoundError,
    RemoteError,
    UnauthenticatedError,
)
from hydra_ldap.claims import Claim
from hydra_ldap.config import ChallengeConfig
from hydra_ldap.exceptions import ConnectionFailedError

LOGIN_BODY = {
    "challenge": "abc",
    "requested_scope": ["openid", "profile"],
    "skip": False,
    "subject": "",
    "client": {"client_id": "my-app", "client_name": "My App"},
    "request_url": "http://hydra/oauth2/auth?client_id=my-app",
}


class Recorder:
    """Handler answering with a fixed response and recording requests."""

    def __init__(self, status: int = 200, body: Any = None, content: bytes | None = None) -> None:
        self.status = status
        self.body = body
        self.content = content
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.content is not None:
            return httpx.Response(self.status, content=self.content)
        if self.body is None:
            return httpx.Response(self.status)
        return httpx.Response(self.status, json=self.body)

    @property
    def last_json(self) -> Any:
        return json.loads(self.requests[-1].content)


@pytest.fixture
def make_client(
    challenge_config: ChallengeConfig,
    mock_http: Callable[..., httpx.Client],
) -> Callable[[Recorder], ChallengeClient]:
    """Build a ChallengeClient answering through a Recorder."""

    def _make(recorder: Recorder) -> ChallengeClient:
        return ChallengeClient(challenge_config, http_client=mock_http(recorder, base_url=challenge_config.url))

    return _make


class TestGet:
    """Tests for fetching challenges."""

    def test_login_request(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """A login request is fetched with the login_challenge parameter."""
        recorder = Recorder(body=LOGIN_BODY)
        challenge = make_client(recorder).get_login_request("abc")

        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/oauth2/auth/requests/login"
        assert request.url.params["login_challenge"] == "abc"
        assert challenge.kind is ChallengeKind.LOGIN
        assert challenge.challenge == "abc"
        assert challenge.requested_scopes == ["openid", "profile"]
        assert challenge.client.client_name == "My App"
        assert challenge.skip is False
        assert challenge.raw == LOGIN_BODY

    def test_consent_request(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """A consent request uses the consent endpoint and parameter."""
        recorder = Recorder(body={**LOGIN_BODY, "skip": True, "subject": "jdoe"})
        challenge = make_client(recorder).get_consent_request("xyz")

        assert recorder.requests[0].url.path == "/oauth2/auth/requests/consent"
        assert recorder.requests[0].url.params["consent_challenge"] == "xyz"
        assert challenge.kind is ChallengeKind.CONSENT
        assert challenge.skip is True
        assert challenge.subject == "jdoe"

    def test_kind_from_string(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """The kind may be given by its value."""
        recorder = Recorder(body=LOGIN_BODY)
        challenge = make_client(recorder).get("login", "abc")  # type: ignore[arg-type]
        assert challenge.kind is ChallengeKind.LOGIN

    @pytest.mark.parametrize("kind", list(ChallengeKind))
    def test_empty_challenge_sends_nothing(
        self,
        make_client: Callable[[Recorder], ChallengeClient],
        kind: ChallengeKind,
    ) -> None:
        """An empty challenge id fails before any network call."""
        recorder = Recorder(body=LOGIN_BODY)
        with pytest.raises(ChallengeMissingError):
            make_client(recorder).get(kind, "")
        assert recorder.requests == []

    def test_non_object_body(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """A JSON array is not a challenge."""
        with pytest.raises(RemoteError):
            make_client(Recorder(body=[1, 2])).get_login_request("abc")


class TestStatusMapping:
    """Tests for HTTP status handling."""

    @pytest.mark.parametrize(
        ("status", "error"),
        [
            (401, UnauthenticatedError),
            (404, ChallengeNotFoundError),
            (409, ChallengeExpiredError),
        ],
    )
    def test_dedicated_errors(
        self,
        make_client: Callable[[Recorder], ChallengeClient],
        status: int,
        error: type[Exception],
    ) -> None:
        """401, 404 and 409 have dedicated errors."""
        with pytest.raises(error):
            make_client(Recorder(status=status, body={"error": "x"})).get_login_request("abc")

    def test_remote_error_keeps_message(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Other statuses carry the body's error field verbatim."""
        recorder = Recorder(status=503, body={"error": "Service Unavailable", "error_description": "later"})
        with pytest.raises(RemoteError) as exc_info:
            make_client(recorder).get_login_request("abc")
        assert exc_info.value.status_code == 503
        assert exc_info.value.remote_message == "Service Unavailable"

    @pytest.mark.parametrize("content", [b"", b"<html>oops</html>", b'{"message": "no error field"}'])
    def test_remote_error_without_error_field(
        self,
        make_client: Callable[[Recorder], ChallengeClient],
        content: bytes,
    ) -> None:
        """Missing or unparseable bodies give an empty remote message."""
        with pytest.raises(RemoteError) as exc_info:
            make_client(Recorder(status=500, content=content)).get_login_request("abc")
        assert exc_info.value.status_code == 500
        assert exc_info.value.remote_message == ""

    def test_redirect_status_is_success(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Statuses up to 302 count as success."""
        challenge = make_client(Recorder(status=302, body=LOGIN_BODY)).get_login_request("abc")
        assert challenge.challenge == "abc"

    def test_invalid_json_success_body(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """A success body that is not JSON is a RemoteError."""
        with pytest.raises(RemoteError) as exc_info:
            make_client(Recorder(status=200, content=b"not json")).get_login_request("abc")
        assert exc_info.value.status_code == 200

    def test_transport_failure(self, challenge_config: ChallengeConfig, mock_http: Callable[..., httpx.Client]) -> None:
        """Transport errors become ConnectionFailedError."""

        def _refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ChallengeClient(challenge_config, http_client=mock_http(_refuse, base_url=challenge_config.url))
        with pytest.raises(ConnectionFailedError) as exc_info:
            client.get_login_request("abc")
        assert exc_info.value.target == "http://hydra.example.com:4445/"
        assert exc_info.value.operation == "get login request"


class TestAccept:
    """Tests for accepting challenges."""

    def test_accept_login(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Login acceptance sends subject, remember and the session TTL."""
        recorder = Recorder(body={"redirect_to": "http://hydra/next"})
        redirect = make_client(recorder).accept_login_request("abc", "jdoe", remember=True)

        request = recorder.requests[0]
        assert redirect == "http://hydra/next"
        assert request.method == "PUT"
        assert request.url.path == "/oauth2/auth/requests/login/accept"
        assert request.url.params["login_challenge"] == "abc"
        assert recorder.last_json == {"remember": True, "remember_for": 3600, "subject": "jdoe"}

    def test_accept_consent(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Consent acceptance embeds the claims in the ID token session."""
        recorder = Recorder(body={"redirect_to": "http://hydra/done"})
        claims = Claim(details={"email": "jdoe@example.com"}, roles=["admin"])
        redirect = make_client(recorder).accept_consent_request("xyz", ["openid", "email"], claims)

        request = recorder.requests[0]
        assert redirect == "http://hydra/done"
        assert request.url.path == "/oauth2/auth/requests/consent/accept"
        assert request.url.params["consent_challenge"] == "xyz"
        assert recorder.last_json == {
            "grant_scope": ["openid", "email"],
            "remember": False,
            "remember_for": 3600,
            "session": {"id_token": {"email": "jdoe@example.com", "roles": ["admin"]}},
        }

    def test_accept_empty_challenge_sends_nothing(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """An empty challenge id fails before any network call."""
        recorder = Recorder(body={"redirect_to": "x"})
        with pytest.raises(ChallengeMissingError):
            make_client(recorder).accept_login_request("", "jdoe")
        assert recorder.requests == []

    def test_accept_expired(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """A used challenge reports expiry."""
        with pytest.raises(ChallengeExpiredError):
            make_client(Recorder(status=409, body={"error": "used"})).accept_login_request("abc", "jdoe")

    def test_accept_without_redirect(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """A success body without redirect_to is unusable."""
        with pytest.raises(RemoteError, match="redirect_to"):
            make_client(Recorder(body={})).accept_login_request("abc", "jdoe")


class TestSessions:
    """Tests for consent and login session endpoints."""

    def test_list_consent_sessions_deduplicates(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Only the latest session per client is returned."""
        body = [
            {
                "grant_scope": ["openid"],
                "handled_at": "2024-01-01T10:00:00Z",
                "consent_request": {"client": {"client_id": "a", "client_name": "A"}},
            },
            {
                "grant_scope": ["openid", "email"],
                "handled_at": "2024-02-01T10:00:00.123456789Z",
                "consent_request": {"client": {"client_id": "a", "client_name": "A"}},
            },
            {
                "grant_scope": ["profile"],
                "handled_at": "2024-01-15T10:00:00Z",
                "consent_request": {"client": {"client_id": "b", "client_name": "B"}},
            },
        ]
        recorder = Recorder(body=body)
        sessions = make_client(recorder).list_consent_sessions("jdoe")

        assert recorder.requests[0].url.path == "/oauth2/auth/sessions/consent"
        assert recorder.requests[0].url.params["subject"] == "jdoe"
        assert [s.client.client_id for s in sessions] == ["a", "b"]
        assert sessions[0].grant_scope == ["openid", "email"]

    def test_list_consent_sessions_empty(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """An empty array is no sessions."""
        assert make_client(Recorder(body=[])).list_consent_sessions("jdoe") == []

    def test_list_consent_sessions_bad_timestamp(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """An unparseable timestamp is a RemoteError."""
        body = [{"handled_at": "yesterday", "consent_request": {"client": {"client_id": "a"}}}]
        with pytest.raises(RemoteError, match="invalid consent session"):
            make_client(Recorder(body=body)).list_consent_sessions("jdoe")

    def test_revoke_consent(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Revocation deletes the subject's consent for one client."""
        recorder = Recorder(status=204)
        make_client(recorder).revoke_consent("jdoe", "my-app")

        request = recorder.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/oauth2/auth/sessions/consent"
        assert request.url.params["subject"] == "jdoe"
        assert request.url.params["client"] == "my-app"

    def test_logout(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Logout deletes the subject's login sessions."""
        recorder = Recorder(status=204)
        make_client(recorder).logout("jdoe")

        request = recorder.requests[0]
        assert request.method == "DELETE"
        assert request.url.path == "/oauth2/auth/sessions/login"
        assert request.url.params["subject"] == "jdoe"

    def test_revoke_not_found(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Status mapping applies to session endpoints too."""
        with pytest.raises(ChallengeNotFoundError) as exc_info:
            make_client(Recorder(status=404, body={"error": "Not Found"})).revoke_consent("jdoe", "x")
        assert str(exc_info.value) == "revoke consent: consent session not found"

    def test_logout_not_found(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """A 404 on logout names the login session, not a challenge."""
        with pytest.raises(ChallengeNotFoundError) as exc_info:
            make_client(Recorder(status=404)).logout("jdoe")
        assert exc_info.value.message == "login session not found"
        assert exc_info.value.operation == "logout"

    def test_challenge_not_found_message_unchanged(self, make_client: Callable[[Recorder], ChallengeClient]) -> None:
        """Challenge lookups keep the challenge message."""
        with pytest.raises(ChallengeNotFoundError, match="challenge not found"):
            make_client(Recorder(status=404)).get_login_request("abc")


class TestLifecycle:
    """Tests for client ownership."""

    def test_owned_client_closed(self, challenge_config: ChallengeConfig) -> None:
        """A client created internally is closed with the context manager."""
        with ChallengeClient(challenge_config) as client:
            http = client._http
            assert str(http.base_url) == "http://hydra.example.com:4445/"
        assert http.is_closed

    def test_borrowed_client_left_open(
        self,
        challenge_config: ChallengeConfig,
        mock_http: Callable[..., httpx.Client],
    ) -> None:
        """A caller-provided client is not closed."""
        http = mock_http(Recorder(), base_url=challenge_config.url)
        ChallengeClient(challenge_config, http_client=http).close()
        assert not http.is_closed
