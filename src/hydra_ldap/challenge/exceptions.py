"""Challenge protocol (authorization server admin API) exceptions.

Exception hierarchy::

    HydraLdapError
        ChallengeError (base for challenge errors)
            ChallengeMissingError (empty challenge id, also ValueError)
            ChallengeNotFoundError (HTTP 404)
            ChallengeExpiredError (HTTP 409)
            UnauthenticatedError (HTTP 401)
            RemoteError (any other failure status)
"""

from __future__ import annotations

from hydra_ldap.exceptions import HydraLdapError


class ChallengeError(HydraLdapError):
    """Base exception for challenge protocol errors."""


class ChallengeMissingError(ChallengeError, ValueError):
    """The challenge id is empty; no request was sent."""


class ChallengeNotFoundError(ChallengeError):
    """The authorization server does not know the challenge."""


class ChallengeExpiredError(ChallengeError):
    """The challenge was already used or has expired."""


class UnauthenticatedError(ChallengeError):
    """The admin API rejected the request as unauthenticated."""


class RemoteError(ChallengeError):
    """The admin API answered with an unexpected status.

    Attributes:
        status_code: HTTP status code.
        remote_message: The ``error`` field of the JSON body, verbatim
            (empty when absent).

    Examples:
        >>> err = RemoteError(500, "internal_error")
        >>> err.status_code, err.remote_message
        (500, 'internal_error')
        >>> str(err)
        'remote error 500: internal_error'
    """

    def __init__(self, status_code: int, remote_message: str = "", *, operation: str | None = None) -> None:
        """Initialize RemoteError.

        Args:
            status_code: HTTP status code.
            remote_message: Error text reported by the server.
            operation: Name of the operation that produced the error.
        """
        message = f"remote error {status_code}"
        if remote_message:
            message = f"{message}: {remote_message}"
        super().__init__(
            message,
            operation=operation,
            details={"status_code": status_code, "remote_message": remote_message},
        )
        self.status_code = status_code
        self.remote_message = remote_message


__all__ = [
    "ChallengeError",
    "ChallengeExpiredError",
    "ChallengeMissingError",
    "ChallengeNotFoundError",
    "RemoteError",
    "UnauthenticatedError",
]
