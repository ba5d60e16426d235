"""Directory connection protocol and its ldap3 implementation.

The directory client only depends on :class:`DirectoryConnection`, so tests
and alternative transports can provide their own connection objects.
"""

from __future__ import annotations

import logging
import ssl
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import ldap3
from ldap3.core.exceptions import LDAPBindError, LDAPException

from hydra_ldap.directory.exceptions import BindError, InvalidCredentialsError, SearchError
from hydra_ldap.directory.models import DirectoryEntry, normalize_attributes
from hydra_ldap.exceptions import ConnectionFailedError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from hydra_ldap.config import DirectoryConfig

log = logging.getLogger(__name__)

RESULT_SUCCESS = 0
RESULT_NO_SUCH_OBJECT = 32
RESULT_INVALID_CREDENTIALS = 49


@runtime_checkable
class DirectoryConnection(Protocol):
    """A live, single-use connection to the directory.

    Examples:
        >>> class Dummy:
        ...     def search(self, base_dn, search_filter, attributes): return []
        ...     def bind(self, dn, password): pass
        ...     def close(self): pass
        >>> isinstance(Dummy(), DirectoryConnection)
        True
    """

    def search(self, base_dn: str, search_filter: str, attributes: Sequence[str]) -> list[DirectoryEntry]:
        """Run a subtree search.

        Raises:
            SearchError: On any search fault.
        """
        ...

    def bind(self, dn: str, password: str) -> None:
        """Simple bind as ``dn``.

        Raises:
            InvalidCredentialsError: When the directory rejects the credentials.
            BindError: On any other bind failure.
        """
        ...

    def close(self) -> None:
        """Release the connection. Safe to call more than once."""
        ...


class Ldap3Connection:
    """DirectoryConnection over an ``ldap3.Connection``."""

    def __init__(self, connection: ldap3.Connection, endpoint: str = "") -> None:
        """Wrap an already opened ldap3 connection.

        Args:
            connection: Bound (possibly anonymously) ldap3 connection.
            endpoint: Endpoint label used in log and error messages.
        """
        self._conn = connection
        self._endpoint = endpoint
        self._closed = False

    @classmethod
    def open(cls, config: DirectoryConfig) -> Ldap3Connection:
        """Connect to the configured directory and bind anonymously.

        Args:
            config: Directory settings.

        Returns:
            Open connection.

        Raises:
            ConnectionFailedError: If the socket, TLS handshake or anonymous bind fails.
        """
        tls = None
        if config.tls:
            tls = ldap3.Tls(validate=ssl.CERT_REQUIRED if config.tls_verify else ssl.CERT_NONE)
            if not config.tls_verify:
                log.warning("TLS certificate verification is disabled for %s", config.endpoint)

        try:
            server = ldap3.Server(
                config.endpoint,
                use_ssl=config.tls,
                tls=tls,
                get_info=ldap3.NONE,
                connect_timeout=config.connect_timeout,
            )
            connection = ldap3.Connection(
                server,
                auto_bind=ldap3.AUTO_BIND_NO_TLS,
                receive_timeout=config.receive_timeout,
                raise_exceptions=False,
            )
        except LDAPException as exc:
            raise ConnectionFailedError(config.endpoint, str(exc), operation="open directory connection") from exc

        log.debug("Connected to directory %s", config.endpoint)
        return cls(connection, config.endpoint)

    def search(self, base_dn: str, search_filter: str, attributes: Sequence[str]) -> list[DirectoryEntry]:
        """Run a subtree search and return its entries."""
        log.debug("Searching %s with filter %s", base_dn, search_filter)
        try:
            found = self._conn.search(
                search_base=base_dn,
                search_filter=search_filter,
                search_scope=ldap3.SUBTREE,
                attributes=list(attributes),
            )
        except LDAPException as exc:
            raise SearchError(str(exc), details={"base_dn": base_dn}) from exc

        result = self._conn.result or {}
        code = result.get("result", RESULT_SUCCESS)
        if not found and code != RESULT_SUCCESS:
            description = result.get("description") or result.get("message") or "search failed"
            if code == RESULT_NO_SUCH_OBJECT:
                description = f"no such object: base DN {base_dn!r} does not exist"
            raise SearchError(description, details={"base_dn": base_dn, "result": code})

        return [
            DirectoryEntry(dn=item.get("dn", ""), attributes=normalize_attributes(item.get("attributes")))
            for item in self._conn.response or []
            if item.get("type") == "searchResEntry"
        ]

    def bind(self, dn: str, password: str) -> None:
        """Simple bind, mapping result code 49 to InvalidCredentialsError."""
        try:
            bound = self._conn.rebind(user=dn, password=password, authentication=ldap3.SIMPLE)
        except LDAPBindError as exc:
            self._raise_bind_failure(str(exc))
        except LDAPException as exc:
            raise BindError(str(exc), details={"dn": dn}) from exc
        else:
            if not bound:
                self._raise_bind_failure("bind rejected")

    def _raise_bind_failure(self, reason: str) -> None:
        result = self._conn.result or {}
        if result.get("result") == RESULT_INVALID_CREDENTIALS:
            raise InvalidCredentialsError("invalid credentials")
        raise BindError(result.get("description") or reason, details={"result": result.get("result")})

    def close(self) -> None:
        """Unbind once; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            self._conn.unbind()
        except LDAPException as exc:
            log.warning("Error while closing directory connection to %s: %s", self._endpoint, exc)


__all__ = [
    "RESULT_INVALID_CREDENTIALS",
    "RESULT_NO_SUCH_OBJECT",
    "DirectoryConnection",
    "Ldap3Connection",
]
