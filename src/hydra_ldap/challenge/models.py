"""Data models for the login/consent challenge protocol.

Field names follow the authorization server admin API JSON bodies
(``challenge``, ``requested_scope``, ``skip``, ``subject``, ``client``,
``redirect_to``, ``grant_scope``, ``handled_at``).
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from hydra_ldap.claims import Claim

_MIN_DATETIME = datetime.min.replace(tzinfo=timezone.utc)
_FRACTION = re.compile(r"\.(\d+)")


class ChallengeKind(str, Enum):
    """Kind of challenge issued by the authorization server.

    The value is the path segment and query prefix used by the admin API.

    Examples:
        >>> ChallengeKind("login") is ChallengeKind.LOGIN
        True
        >>> ChallengeKind.CONSENT.query_param
        'consent_challenge'
    """

    LOGIN = "login"
    CONSENT = "consent"

    @property
    def query_param(self) -> str:
        """Name of the query parameter carrying the challenge id."""
        return f"{self.value}_challenge"


@dataclass(frozen=True, slots=True)
class ClientInfo:
    """The OAuth2 client behind a challenge or consent session."""

    client_id: str = ""
    client_name: str = ""

    @classmethod
    def from_response(cls, data: Mapping[str, Any] | None) -> ClientInfo:
        """Build from the ``client`` object of an admin API body."""
        data = data or {}
        return cls(client_id=str(data.get("client_id") or ""), client_name=str(data.get("client_name") or ""))


@dataclass(frozen=True, slots=True)
class Challenge:
    """A pending login or consent request.

    Attributes:
        kind: Login or consent.
        challenge: Challenge identifier.
        subject: Known subject (empty for a first login).
        requested_scopes: Scopes requested by the client.
        skip: True when the server already holds a decision for this subject.
        client: Requesting client.
        request_url: Original authorization request URL.
        raw: Decoded response body.
    """

    kind: ChallengeKind
    challenge: str
    subject: str = ""
    requested_scopes: list[str] = field(default_factory=list)
    skip: bool = False
    client: ClientInfo = field(default_factory=ClientInfo)
    request_url: str = ""
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_response(cls, kind: ChallengeKind, data: Mapping[str, Any]) -> Challenge:
        """Build from a ``GET oauth2/auth/requests/{kind}`` body.

        Examples:
            >>> c = Challenge.from_response(
            ...     ChallengeKind.LOGIN,
            ...     {"challenge": "abc", "skip": True, "subject": "jdoe", "client": {"client_id": "app"}},
            ... )
            >>> c.skip, c.subject, c.client.client_id
            (True, 'jdoe', 'app')
        """
        return cls(
            kind=kind,
            challenge=str(data.get("challenge") or ""),
            subject=str(data.get("subject") or ""),
            requested_scopes=[str(scope) for scope in data.get("requested_scope") or []],
            skip=bool(data.get("skip", False)),
            client=ClientInfo.from_response(data.get("client")),
            request_url=str(data.get("request_url") or ""),
            raw=dict(data),
        )


@dataclass(frozen=True, slots=True)
class LoginAcceptance:
    """Accept payload for a login challenge."""

    subject: str
    remember: bool = False

    kind = ChallengeKind.LOGIN

    def to_payload(self, remember_for: int) -> dict[str, Any]:
        """Return the JSON body of the accept request.

        Examples:
            >>> LoginAcceptance("jdoe").to_payload(3600)
            {'remember': False, 'remember_for': 3600, 'subject': 'jdoe'}
        """
        return {"remember": self.remember, "remember_for": remember_for, "subject": self.subject}


@dataclass(frozen=True, slots=True)
class ConsentAcceptance:
    """Accept payload for a consent challenge."""

    grant_scope: list[str]
    claims: Claim
    remember: bool = False

    kind = ChallengeKind.CONSENT

    def to_payload(self, remember_for: int) -> dict[str, Any]:
        """Return the JSON body of the accept request, embedding ID token claims."""
        return {
            "grant_scope": list(self.grant_scope),
            "remember": self.remember,
            "remember_for": remember_for,
            "session": {"id_token": self.claims.to_id_token()},
        }


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC datetime.

    Sub-microsecond digits are truncated. A missing value parses as the
    minimum datetime so it never wins a "latest" comparison.

    Examples:
        >>> parse_timestamp("2024-05-01T10:00:00.123456789Z")
        datetime.datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=datetime.timezone.utc)
        >>> parse_timestamp(None).year
        1
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if not value:
        return _MIN_DATETIME

    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class ConsentSession:
    """A previously granted consent, as listed by the admin API.

    Attributes:
        client: Client the consent was granted to.
        grant_scope: Granted scopes.
        handled_at: When the consent was granted (UTC).
        remember: Whether the decision is remembered.
        raw: Decoded session object.
    """

    client: ClientInfo
    grant_scope: list[str] = field(default_factory=list)
    handled_at: datetime = _MIN_DATETIME
    remember: bool = False
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_response(cls, data: Mapping[str, Any]) -> ConsentSession:
        """Build from one element of ``GET oauth2/auth/sessions/consent``."""
        request = data.get("consent_request") or {}
        return cls(
            client=ClientInfo.from_response(request.get("client")),
            grant_scope=[str(scope) for scope in data.get("grant_scope") or []],
            handled_at=parse_timestamp(data.get("handled_at")),
            remember=bool(data.get("remember", False)),
            raw=dict(data),
        )


__all__ = [
    "Challenge",
    "ChallengeKind",
    "ClientInfo",
    "ConsentAcceptance",
    "ConsentSession",
    "LoginAcceptance",
    "parse_timestamp",
]
