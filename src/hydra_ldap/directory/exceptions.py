"""Directory (LDAP) specific exceptions.

Exception hierarchy::

    HydraLdapError
        DirectoryError (base for directory errors)
            UserNotFoundError (zero or several entries match the username)
            InvalidCredentialsError (bind rejected)
            UnauthorizedError (user holds no role for the application)
            SearchError (search fault, e.g. bad base DN)
            BindError (bind failed for another reason)
"""

from __future__ import annotations

from hydra_ldap.exceptions import HydraLdapError


class DirectoryError(HydraLdapError):
    """Base exception for directory errors."""


class UserNotFoundError(DirectoryError):
    """No single directory entry matches the username.

    Raised both when nothing matches and when the match is ambiguous.

    Attributes:
        username: Username that was searched.
        count: Number of entries returned by the search.

    Examples:
        >>> str(UserNotFoundError("jdoe", 0))
        "user 'jdoe' not found"
        >>> str(UserNotFoundError("jdoe", 2))
        "user 'jdoe' is ambiguous (2 entries)"
    """

    def __init__(self, username: str, count: int = 0, *, operation: str | None = None) -> None:
        """Initialize UserNotFoundError.

        Args:
            username: Username that was searched.
            count: Number of entries returned by the search.
            operation: Name of the operation that produced the error.
        """
        message = f"user {username!r} not found" if count == 0 else f"user {username!r} is ambiguous ({count} entries)"
        super().__init__(message, operation=operation, details={"username": username, "count": count})
        self.username = username
        self.count = count


class InvalidCredentialsError(DirectoryError):
    """The directory rejected the username/password pair."""


class UnauthorizedError(DirectoryError):
    """The user holds no role granting access to the application.

    Attributes:
        app_id: Application (OAuth2 client) identifier.
    """

    def __init__(self, app_id: str, *, operation: str | None = None) -> None:
        """Initialize UnauthorizedError.

        Args:
            app_id: Application identifier.
            operation: Name of the operation that produced the error.
        """
        super().__init__(
            f"user is not authorized for application {app_id!r}",
            operation=operation,
            details={"app_id": app_id},
        )
        self.app_id = app_id


class SearchError(DirectoryError):
    """A directory search failed."""


class BindError(DirectoryError):
    """A bind failed for a reason other than invalid credentials."""


__all__ = [
    "BindError",
    "DirectoryError",
    "InvalidCredentialsError",
    "SearchError",
    "UnauthorizedError",
    "UserNotFoundError",
]
