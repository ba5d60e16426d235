"""Directory authorization client.

Answers two questions against an LDAP directory:

- may this username/password pair sign in to this application?
  (:meth:`DirectoryClient.is_authorized`)
- what does the directory know about this user?
  (:meth:`DirectoryClient.fetch_claims`)

Role membership is modeled as group entries living under
``ou=<application id>,<role base DN>`` whose ``member`` attribute lists the
user DN. Holding any such entry authorizes the user.

Examples:
    >>> client = DirectoryClient(config)  # doctest: +SKIP
    >>> client.is_authorized("jdoe", "secret", "my-app")  # doctest: +SKIP
    >>> client.fetch_claims("jdoe", app_id="my-app").to_id_token()  # doctest: +SKIP
    {'email': 'jdoe@example.com', 'roles': ['admin']}
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING

from ldap3.utils.conv import escape_filter_chars
from ldap3.utils.dn import escape_rdn

from hydra_ldap.claims import Claim, map_attributes
from hydra_ldap.directory.connection import DirectoryConnection, Ldap3Connection
from hydra_ldap.directory.exceptions import (
    BindError,
    InvalidCredentialsError,
    SearchError,
    UnauthorizedError,
    UserNotFoundError,
)
from hydra_ldap.directory.models import DirectoryEntry, UserEntry

if TYPE_CHECKING:
    from hydra_ldap.config import DirectoryConfig

log = logging.getLogger(__name__)

USER_FILTER = (
    "(&(|(objectClass=organizationalPerson)(objectClass=inetOrgPerson))"
    "(|(uid={username})(mail={username})(userPrincipalName={username})(sAMAccountName={username})))"
)
ROLE_FILTER = "(member={user_dn})"
ROLE_NAME_ATTRIBUTE = "cn"

ConnectionFactory = Callable[["DirectoryConfig"], DirectoryConnection]


def user_filter(username: str) -> str:
    """Build the user lookup filter.

    Examples:
        >>> user_filter("jdoe")
        '(&(|(objectClass=organizationalPerson)(objectClass=inetOrgPerson))(|(uid=jdoe)(mail=jdoe)(userPrincipalName=jdoe)(sAMAccountName=jdoe)))'
        >>> "(uid=a\\\\2a)" in user_filter("a*")
        True
    """
    return USER_FILTER.format(username=escape_filter_chars(username))


def role_filter(user_dn: str) -> str:
    """Build the role membership filter.

    Examples:
        >>> role_filter("uid=jdoe,ou=people,dc=example,dc=com")
        '(member=uid=jdoe,ou=people,dc=example,dc=com)'
    """
    return ROLE_FILTER.format(user_dn=escape_filter_chars(user_dn))


def role_base_dn(app_id: str, base_dn: str) -> str:
    """Return the subtree holding the roles of one application.

    Examples:
        >>> role_base_dn("my-app", "ou=apps,dc=example,dc=com")
        'ou=my-app,ou=apps,dc=example,dc=com'
    """
    rdn = f"ou={escape_rdn(app_id)}"
    return f"{rdn},{base_dn}" if base_dn else rdn


@contextmanager
def _operation(name: str) -> Iterator[None]:
    """Tag connection-level search and bind errors with the failing operation."""
    try:
        yield
    except (SearchError, BindError, InvalidCredentialsError) as exc:
        if exc.operation:
            raise
        raise type(exc)(exc.message, operation=name, details=exc.details) from exc


class DirectoryClient:
    """Authorization and claim lookups against the directory.

    Every public operation opens its own connection and closes it on every
    exit path. Nothing is retried.

    Args:
        config: Directory settings.
        connection_factory: Callable opening a DirectoryConnection from the
            settings (defaults to :meth:`Ldap3Connection.open`).
    """

    def __init__(
        self,
        config: DirectoryConfig,
        connection_factory: ConnectionFactory | None = None,
    ) -> None:
        self.config = config
        self._connection_factory: ConnectionFactory = connection_factory or Ldap3Connection.open
        self._attribute_map = config.attribute_map

    def open_connection(self) -> DirectoryConnection:
        """Open a new directory connection.

        Raises:
            ConnectionFailedError: If the directory cannot be reached.
        """
        return self._connection_factory(self.config)

    def find_user(
        self,
        conn: DirectoryConnection,
        username: str,
        attributes: Sequence[str] = (),
    ) -> UserEntry:
        """Find the unique entry matching a username.

        The username is matched against ``uid``, ``mail``,
        ``userPrincipalName`` and ``sAMAccountName`` of person entries.

        Args:
            conn: Open connection.
            username: Login name as typed by the user.
            attributes: Extra attributes to read.

        Returns:
            The matching entry.

        Raises:
            UserNotFoundError: If zero or several entries match.
            SearchError: On a search fault.
        """
        with _operation("find user"):
            entries = conn.search(self.config.base_dn, user_filter(username), ["dn", *attributes])
        if len(entries) != 1:
            log.debug("User lookup for %r returned %d entries", username, len(entries))
            raise UserNotFoundError(username, len(entries), operation="find user")
        return UserEntry.from_entry(entries[0])

    def bind(self, conn: DirectoryConnection, dn: str, password: str) -> None:
        """Check a password by binding as ``dn``.

        An empty password is rejected without contacting the directory, since
        an empty simple bind is an unauthenticated bind most servers accept.

        Raises:
            InvalidCredentialsError: On an empty or wrong password.
            BindError: On any other bind failure.
        """
        if not password:
            raise InvalidCredentialsError("empty password", operation="bind")
        with _operation("bind"):
            conn.bind(dn, password)

    def verify_role(self, conn: DirectoryConnection, user_dn: str, app_id: str) -> list[DirectoryEntry]:
        """Return the role entries granting ``user_dn`` access to ``app_id``.

        Raises:
            UnauthorizedError: If the user holds no role for the application.
            SearchError: On a search fault (e.g. the application has no role subtree).
        """
        with _operation("verify role"):
            entries = conn.search(
                role_base_dn(app_id, self.config.role_base_dn),
                role_filter(user_dn),
                [ROLE_NAME_ATTRIBUTE],
            )
        if not entries:
            raise UnauthorizedError(app_id, operation="verify role")
        return entries

    def is_authorized(self, username: str, password: str, app_id: str) -> None:
        """Authenticate a user and check they hold a role for an application.

        Args:
            username: Login name.
            password: Password (never logged).
            app_id: Application (OAuth2 client) identifier.

        Raises:
            ConnectionFailedError: If the directory cannot be reached.
            UserNotFoundError: If the username does not resolve to one entry.
            InvalidCredentialsError: If the password is rejected.
            UnauthorizedError: If no role grants access.
            SearchError: On a search fault.
            BindError: On any other bind failure.
        """
        conn = self.open_connection()
        try:
            user = self.find_user(conn, username)
            self.bind(conn, user.dn, password)
            self.verify_role(conn, user.dn, app_id)
        finally:
            conn.close()
        log.info("User %r authorized for application %r", username, app_id)

    def fetch_claims(self, username: str, app_id: str | None = None) -> Claim:
        """Read the configured attributes of a user as claims.

        Attributes missing from the entry are omitted. When ``app_id`` is
        given, the names of the roles granting access to it are collected too
        (each role's ``cn``, falling back to its DN).

        Args:
            username: Login name.
            app_id: Application whose roles should be collected.

        Returns:
            The unfiltered claims.

        Raises:
            ConnectionFailedError: If the directory cannot be reached.
            UserNotFoundError: If the username does not resolve to one entry.
            UnauthorizedError: If ``app_id`` is given and no role grants access.
            SearchError: On a search fault.
        """
        conn = self.open_connection()
        try:
            user = self.find_user(conn, username, list(self._attribute_map))
            claims = map_attributes(self._attribute_map, user.attributes)
            if app_id is not None:
                roles = self.verify_role(conn, user.dn, app_id)
                claims.roles = [entry.first(ROLE_NAME_ATTRIBUTE) or entry.dn for entry in roles]
        finally:
            conn.close()
        return claims


__all__ = [
    "ROLE_FILTER",
    "USER_FILTER",
    "ConnectionFactory",
    "DirectoryClient",
    "role_base_dn",
    "role_filter",
    "user_filter",
]
