"""HTTP client for the authorization server admin API.

Wraps the login/consent challenge endpoints and the consent/login session
endpoints of an ORY Hydra style admin API.

Example:
    >>> with ChallengeClient(config.hydra) as client:  # doctest: +SKIP
    ...     challenge = client.get_login_request("abc")
    ...     redirect = client.accept_login_request("abc", "jdoe")
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import httpx

from hydra_ldap.challenge.exceptions import (
    ChallengeError,
    ChallengeExpiredError,
    ChallengeMissingError,
    ChallengeNotFoundError,
    RemoteError,
    UnauthenticatedError,
)
from hydra_ldap.challenge.models import (
    Challenge,
    ChallengeKind,
    ConsentAcceptance,
    ConsentSession,
    LoginAcceptance,
)
from hydra_ldap.challenge.sessions import filter_sessions
from hydra_ldap.exceptions import ConnectionFailedError
from hydra_ldap.logging import TRACE_LEVEL

if TYPE_CHECKING:
    from types import TracebackType

    from hydra_ldap.claims import Claim
    from hydra_ldap.config import ChallengeConfig

log = logging.getLogger(__name__)

REQUESTS_PATH = "oauth2/auth/requests"
CONSENT_SESSIONS_PATH = "oauth2/auth/sessions/consent"
LOGIN_SESSIONS_PATH = "oauth2/auth/sessions/login"

_STATUS_ERRORS: dict[int, type[ChallengeError]] = {
    401: UnauthenticatedError,
    404: ChallengeNotFoundError,
    409: ChallengeExpiredError,
}
_STATUS_MESSAGES = {
    401: "unauthenticated",
    404: "challenge not found",
    409: "challenge expired",
}


def _remote_message(response: httpx.Response) -> str:
    """Return the ``error`` field of a JSON error body, empty otherwise."""
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and body.get("error") is not None:
        return str(body["error"])
    return ""


class ChallengeClient:
    """Client for login/consent challenges and sessions.

    Every call is independent; nothing is retried. Statuses 200 to 302 are
    successes, 401/404/409 map to dedicated errors, anything else raises
    :class:`RemoteError`.

    Args:
        config: Admin API settings.
        http_client: Pre-configured httpx client (created from ``config``
            when None; only a created client is closed by :meth:`close`).
    """

    def __init__(self, config: ChallengeConfig, http_client: httpx.Client | None = None) -> None:
        self.config = config
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(
            base_url=config.url,
            timeout=config.timeout,
            follow_redirects=False,
        )

    def __enter__(self) -> ChallengeClient:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager, closing the owned HTTP client."""
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            self._http.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Transport
    # ─────────────────────────────────────────────────────────────────────────

    def _request(
        self,
        method: str,
        path: str,
        operation: str,
        *,
        params: dict[str, str],
        payload: dict[str, Any] | None = None,
        not_found: str = _STATUS_MESSAGES[404],
    ) -> Any:
        """Send one admin API request and decode its JSON body.

        ``not_found`` replaces the 404 message for calls that do not address a challenge.

        Returns:
            The decoded body, or None for an empty success body.
        """
        if log.isEnabledFor(TRACE_LEVEL):
            log.log(TRACE_LEVEL, "%s %s params=%s payload=%s", method, path, params, json.dumps(payload))

        try:
            response = self._http.request(method, path, params=params, json=payload)
        except httpx.RequestError as exc:
            raise ConnectionFailedError(self.config.url, str(exc) or type(exc).__name__, operation=operation) from exc

        status = response.status_code
        log.debug("%s %s -> %d", method, path, status)
        if status in _STATUS_ERRORS:
            message = not_found if status == 404 else _STATUS_MESSAGES[status]
            raise _STATUS_ERRORS[status](message, operation=operation)
        if not 200 <= status <= 302:
            raise RemoteError(status, _remote_message(response), operation=operation)

        if not response.content:
            return None
        try:
            body = response.json()
        except ValueError as exc:
            raise RemoteError(status, "response body is not valid JSON", operation=operation) from exc

        if log.isEnabledFor(TRACE_LEVEL):
            log.log(TRACE_LEVEL, "%s %s response=%s", method, path, json.dumps(body))
        return body

    # ─────────────────────────────────────────────────────────────────────────
    # Challenges
    # ─────────────────────────────────────────────────────────────────────────

    def get(self, kind: ChallengeKind, challenge_id: str) -> Challenge:
        """Fetch a pending challenge.

        Args:
            kind: Login or consent.
            challenge_id: Challenge identifier.

        Returns:
            The decoded challenge.

        Raises:
            ChallengeMissingError: If ``challenge_id`` is empty (no request sent).
            ChallengeNotFoundError: On 404.
            ChallengeExpiredError: On 409.
            UnauthenticatedError: On 401.
            RemoteError: On any other failure status or an unusable body.
            ConnectionFailedError: On transport failure.
        """
        kind = ChallengeKind(kind)
        operation = f"get {kind.value} request"
        if not challenge_id:
            raise ChallengeMissingError("no challenge found", operation=operation)

        body = self._request(
            "GET",
            f"{REQUESTS_PATH}/{kind.value}",
            operation,
            params={kind.query_param: challenge_id},
        )
        if not isinstance(body, dict):
            raise RemoteError(200, "expected a JSON object", operation=operation)
        return Challenge.from_response(kind, body)

    def accept(self, challenge_id: str, acceptance: LoginAcceptance | ConsentAcceptance) -> str:
        """Accept a challenge and return the URL to redirect the user agent to.

        Args:
            challenge_id: Challenge identifier.
            acceptance: Login or consent acceptance; its kind selects the endpoint.

        Returns:
            The ``redirect_to`` URL returned by the server.

        Raises:
            ChallengeMissingError: If ``challenge_id`` is empty (no request sent).
            ChallengeNotFoundError: On 404.
            ChallengeExpiredError: On 409.
            UnauthenticatedError: On 401.
            RemoteError: On any other failure status or a body without ``redirect_to``.
            ConnectionFailedError: On transport failure.
        """
        kind = acceptance.kind
        operation = f"accept {kind.value} request"
        if not challenge_id:
            raise ChallengeMissingError("no challenge found", operation=operation)

        body = self._request(
            "PUT",
            f"{REQUESTS_PATH}/{kind.value}/accept",
            operation,
            params={kind.query_param: challenge_id},
            payload=acceptance.to_payload(self.config.remember_for),
        )
        redirect_to = body.get("redirect_to") if isinstance(body, dict) else None
        if not redirect_to:
            raise RemoteError(200, "response has no redirect_to", operation=operation)
        return str(redirect_to)

    def get_login_request(self, challenge_id: str) -> Challenge:
        """Fetch a pending login challenge."""
        return self.get(ChallengeKind.LOGIN, challenge_id)

    def get_consent_request(self, challenge_id: str) -> Challenge:
        """Fetch a pending consent challenge."""
        return self.get(ChallengeKind.CONSENT, challenge_id)

    def accept_login_request(self, challenge_id: str, subject: str, remember: bool = False) -> str:
        """Accept a login challenge for ``subject``."""
        return self.accept(challenge_id, LoginAcceptance(subject=subject, remember=remember))

    def accept_consent_request(
        self,
        challenge_id: str,
        grant_scope: list[str],
        claims: Claim,
        remember: bool = False,
    ) -> str:
        """Accept a consent challenge, granting scopes and embedding claims."""
        acceptance = ConsentAcceptance(grant_scope=list(grant_scope), claims=claims, remember=remember)
        return self.accept(challenge_id, acceptance)

    # ─────────────────────────────────────────────────────────────────────────
    # Sessions
    # ─────────────────────────────────────────────────────────────────────────

    def list_consent_sessions(self, subject: str) -> list[ConsentSession]:
        """List the consent sessions of a subject, one per client.

        Raises:
            RemoteError: On a failure status or an unusable body.
            ConnectionFailedError: On transport failure.
        """
        operation = "list consent sessions"
        body = self._request(
            "GET",
            CONSENT_SESSIONS_PATH,
            operation,
            params={"subject": subject},
            not_found="consent session not found",
        )
        if body is None:
            return []
        if not isinstance(body, list):
            raise RemoteError(200, "expected a JSON array", operation=operation)
        try:
            sessions = [ConsentSession.from_response(item) for item in body if isinstance(item, dict)]
        except ValueError as exc:
            raise RemoteError(200, f"invalid consent session: {exc}", operation=operation) from exc
        return filter_sessions(sessions)

    def revoke_consent(self, subject: str, client_id: str) -> None:
        """Revoke the consent granted by ``subject`` to ``client_id``."""
        self._request(
            "DELETE",
            CONSENT_SESSIONS_PATH,
            "revoke consent",
            params={"subject": subject, "client": client_id},
            not_found="consent session not found",
        )
        log.info("Revoked consent of %r for client %r", subject, client_id)

    def logout(self, subject: str) -> None:
        """Invalidate every login session of ``subject``."""
        self._request(
            "DELETE",
            LOGIN_SESSIONS_PATH,
            "logout",
            params={"subject": subject},
            not_found="login session not found",
        )
        log.info("Logged out %r", subject)


__all__ = [
    "CONSENT_SESSIONS_PATH",
    "LOGIN_SESSIONS_PATH",
    "REQUESTS_PATH",
    "ChallengeClient",
]
