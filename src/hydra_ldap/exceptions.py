"""Base exceptions shared by every hydra_ldap module.

Exception hierarchy::

    HydraLdapError (base for all errors)
        ConfigurationError (invalid configuration, also ValueError)
        ConnectionFailedError (transport failure, also ConnectionError)
        DirectoryError (see hydra_ldap.directory.exceptions)
        ChallengeError (see hydra_ldap.challenge.exceptions)
        RelyingPartyError (see hydra_ldap.selfservice.exceptions)
"""

from __future__ import annotations

from typing import Any


class HydraLdapError(Exception):
    """Base exception for all hydra_ldap errors.

    Attributes:
        message: Human-readable error message.
        operation: Name of the operation that failed (prefixed to ``str(err)``).
        details: Additional error context as key-value pairs.

    Examples:
        >>> raise HydraLdapError("boom", operation="find user")
        Traceback (most recent call last):
        ...
        hydra_ldap.exceptions.HydraLdapError: find user: boom
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize HydraLdapError.

        Args:
            message: Human-readable error message.
            operation: Name of the operation that produced the error.
            details: Additional error context.
        """
        super().__init__(f"{operation}: {message}" if operation else message)
        self.message = message
        self.operation = operation
        self.details = details or {}


class ConfigurationError(HydraLdapError, ValueError):
    """Configuration is malformed or incomplete.

    Raised eagerly while loading configuration; fatal to process start.

    Examples:
        >>> raise ConfigurationError("empty ldap endpoint")
        Traceback (most recent call last):
        ...
        hydra_ldap.exceptions.ConfigurationError: empty ldap endpoint
    """


class ConnectionFailedError(HydraLdapError, ConnectionError):
    """A directory or HTTP transport could not be established or broke.

    Attributes:
        target: Endpoint or URL that could not be reached.
        reason: Underlying failure description.
    """

    def __init__(self, target: str, reason: str, *, operation: str | None = None) -> None:
        """Initialize ConnectionFailedError.

        Args:
            target: Endpoint or URL that could not be reached.
            reason: Underlying failure description.
            operation: Name of the operation that produced the error.
        """
        super().__init__(
            f"cannot reach {target}: {reason}",
            operation=operation,
            details={"target": target, "reason": reason},
        )
        self.target = target
        self.reason = reason


__all__ = [
    "ConfigurationError",
    "ConnectionFailedError",
    "HydraLdapError",
]
