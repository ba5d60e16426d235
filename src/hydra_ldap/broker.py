"""Login and consent decisions, composed from the directory and challenge clients.

The broker holds the request-independent flow logic of the login, consent
and self-service pages; a web layer only renders forms and redirects.

Example:
    >>> broker = ChallengeBroker(DirectoryClient(cfg.ldap), ChallengeClient(cfg.hydra), cfg.hydra.scope_map)  # doctest: +SKIP
    >>> outcome = broker.start_login("abc")  # doctest: +SKIP
    >>> outcome.redirect_to or "render the login form"  # doctest: +SKIP
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hydra_ldap.claims import filter_claims

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from hydra_ldap.challenge.client import ChallengeClient
    from hydra_ldap.challenge.models import Challenge, ConsentSession
    from hydra_ldap.directory.client import DirectoryClient

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class LoginOutcome:
    """Result of starting a login.

    Attributes:
        challenge: The fetched login request.
        redirect_to: Set when the server allowed skipping the login form.
    """

    challenge: Challenge
    redirect_to: str | None = None

    @property
    def skipped(self) -> bool:
        """True when no form needs to be shown."""
        return self.redirect_to is not None


@dataclass(frozen=True, slots=True)
class ConsentOutcome:
    """Result of starting a consent.

    Attributes:
        challenge: The fetched consent request.
        redirect_to: Set when the server allowed skipping the consent form.
    """

    challenge: Challenge
    redirect_to: str | None = None

    @property
    def skipped(self) -> bool:
        """True when no form needs to be shown."""
        return self.redirect_to is not None


class ChallengeBroker:
    """Drive login and consent challenges against the directory.

    Directory and challenge errors propagate unchanged.

    Args:
        directory: Directory client.
        challenges: Admin API client.
        scope_map: Scope to claim names, as built by :func:`hydra_ldap.claims.scope_map`.
    """

    def __init__(
        self,
        directory: DirectoryClient,
        challenges: ChallengeClient,
        scope_map: Mapping[str, Sequence[str]],
    ) -> None:
        self.directory = directory
        self.challenges = challenges
        self.scope_map = scope_map

    def start_login(self, challenge_id: str) -> LoginOutcome:
        """Fetch a login request, accepting it at once when it can be skipped."""
        challenge = self.challenges.get_login_request(challenge_id)
        if not challenge.skip:
            return LoginOutcome(challenge)

        redirect_to = self.challenges.accept_login_request(challenge_id, challenge.subject, remember=False)
        log.info("Login UI skipped for challenge %s", challenge_id)
        return LoginOutcome(challenge, redirect_to)

    def submit_login(
        self,
        challenge_id: str,
        username: str,
        password: str,
        client_id: str,
        remember: bool = False,
    ) -> str:
        """Authorize a submitted login form and accept the login request.

        Returns:
            URL to redirect the user agent to.

        Raises:
            UserNotFoundError: If the username does not resolve to one entry.
            InvalidCredentialsError: If the password is rejected.
            UnauthorizedError: If the user holds no role for ``client_id``.
        """
        self.directory.is_authorized(username, password, client_id)
        return self.challenges.accept_login_request(challenge_id, username, remember=remember)

    def start_consent(self, challenge_id: str) -> ConsentOutcome:
        """Fetch a consent request, granting it at once when it can be skipped."""
        challenge = self.challenges.get_consent_request(challenge_id)
        if not challenge.skip:
            return ConsentOutcome(challenge)

        redirect_to = self.grant_consent(
            challenge_id,
            challenge.client.client_id,
            challenge.subject,
            challenge.requested_scopes,
        )
        log.info("Consent UI skipped for challenge %s", challenge_id)
        return ConsentOutcome(challenge, redirect_to)

    def grant_consent(
        self,
        challenge_id: str,
        client_id: str,
        subject: str,
        scopes: Sequence[str],
        remember: bool = False,
    ) -> str:
        """Fetch the subject's claims, keep those the scopes disclose, accept consent.

        Returns:
            URL to redirect the user agent to.

        Raises:
            UnauthorizedError: If the subject holds no role for ``client_id``.
        """
        claims = self.directory.fetch_claims(subject, app_id=client_id)
        granted = filter_claims(self.scope_map, claims, scopes)
        return self.challenges.accept_consent_request(challenge_id, list(scopes), granted, remember=remember)

    def consent_sessions(self, subject: str) -> list[ConsentSession]:
        """List the subject's consents, one per client."""
        return self.challenges.list_consent_sessions(subject)

    def revoke_consent(self, subject: str, client_id: str) -> None:
        """Revoke the consent granted by ``subject`` to ``client_id``."""
        self.challenges.revoke_consent(subject, client_id)

    def logout(self, subject: str) -> None:
        """Invalidate the login sessions of ``subject``."""
        self.challenges.logout(subject)


__all__ = [
    "ChallengeBroker",
    "ConsentOutcome",
    "LoginOutcome",
]
