"""LDAP directory authorization and claim lookups.

Examples:
    >>> from hydra_ldap.directory import DirectoryClient  # doctest: +SKIP
    >>> DirectoryClient(config.ldap).is_authorized("jdoe", "secret", "my-app")  # doctest: +SKIP
"""

from hydra_ldap.directory.client import DirectoryClient, role_base_dn, role_filter, user_filter
from hydra_ldap.directory.connection import DirectoryConnection, Ldap3Connection
from hydra_ldap.directory.exceptions import (
    BindError,
    DirectoryError,
    InvalidCredentialsError,
    SearchError,
    UnauthorizedError,
    UserNotFoundError,
)
from hydra_ldap.directory.models import DirectoryEntry, UserEntry

__all__ = [
    "BindError",
    "DirectoryClient",
    "DirectoryConnection",
    "DirectoryEntry",
    "DirectoryError",
    "InvalidCredentialsError",
    "Ldap3Connection",
    "SearchError",
    "UnauthorizedError",
    "UserEntry",
    "UserNotFoundError",
    "role_base_dn",
    "role_filter",
    "user_filter",
]
