"""Relying-party (self-service OIDC client) exceptions.

Exception hierarchy::

    HydraLdapError
        RelyingPartyError (base for relying-party errors)
            DiscoveryError (discovery document unusable)
            TokenExchangeError (code exchange failed)
            MalformedTokenError (ID token is not a decodable JWT)
            TokenValidationError (audience, issuer, expiry or signature)
            SubjectMismatchError (user-info ``sub`` differs from the ID token)
            StateMismatchError (no pending authorization or wrong state)
            UserInfoError (user-info endpoint failure)
"""

from __future__ import annotations

from hydra_ldap.exceptions import HydraLdapError


class RelyingPartyError(HydraLdapError):
    """Base exception for relying-party errors."""


class DiscoveryError(RelyingPartyError):
    """The provider discovery document could not be fetched or parsed."""


class TokenExchangeError(RelyingPartyError):
    """The authorization code could not be exchanged for tokens."""


class MalformedTokenError(RelyingPartyError):
    """The ID token is missing or not a three-segment JWT with a JSON payload."""


class TokenValidationError(RelyingPartyError):
    """The ID token failed audience, issuer, expiry or signature checks."""


class SubjectMismatchError(RelyingPartyError):
    """The user-info subject is missing or differs from the ID token subject."""


class StateMismatchError(RelyingPartyError):
    """The callback state does not match the pending authorization."""


class UserInfoError(RelyingPartyError):
    """The user-info endpoint answered with a non-200 status or an unusable body.

    Attributes:
        status_code: HTTP status code (0 when the body was the problem).
        www_authenticate: ``WWW-Authenticate`` response header, if any.
    """

    def __init__(self, message: str, *, status_code: int = 0, www_authenticate: str = "") -> None:
        """Initialize UserInfoError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code.
            www_authenticate: ``WWW-Authenticate`` response header.
        """
        super().__init__(
            message,
            operation="fetch user info",
            details={"status_code": status_code, "www_authenticate": www_authenticate},
        )
        self.status_code = status_code
        self.www_authenticate = www_authenticate


__all__ = [
    "DiscoveryError",
    "MalformedTokenError",
    "RelyingPartyError",
    "StateMismatchError",
    "SubjectMismatchError",
    "TokenExchangeError",
    "TokenValidationError",
    "UserInfoError",
]
