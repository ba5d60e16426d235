"""Directory attribute to OIDC claim mapping and scope filtering.

Two configuration lists drive this module:

- ``attrs``: ``directoryAttr:claimName`` pairs, translating directory
  attribute names (``mail``) into claim names (``email``).
- ``claim_scopes``: ``claimName:scope`` pairs, grouping claim names by the
  OIDC scope that authorizes disclosing them.

Examples:
    >>> scopes = scope_map(["name:profile", "email:email"])
    >>> claims = Claim(details={"name": "Jean", "email": "jean@x.com", "family_name": "Dupont"})
    >>> filter_claims(scopes, claims, ["profile"]).details
    {'name': 'Jean'}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from hydra_ldap.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

ROLES_CLAIM = "roles"
_SEPARATOR = ":"


@dataclass(slots=True)
class Claim:
    """Identity information about one subject, built per request.

    Attributes:
        details: Claim name to string value.
        roles: Names of the roles granting access to the requesting application.
    """

    details: dict[str, str] = field(default_factory=dict)
    roles: list[str] = field(default_factory=list)

    def to_id_token(self) -> dict[str, Any]:
        """Return the claims to embed in the ID token session.

        The ``roles`` key is only present when at least one role is known.

        Examples:
            >>> Claim(details={"name": "Jean"}).to_id_token()
            {'name': 'Jean'}
            >>> Claim(details={"name": "Jean"}, roles=["admin"]).to_id_token()
            {'name': 'Jean', 'roles': ['admin']}
        """
        result: dict[str, Any] = dict(self.details)
        if self.roles:
            result[ROLES_CLAIM] = list(self.roles)
        return result


def _split_pairs(entries: Iterable[str], label: str) -> list[tuple[str, str]]:
    """Split ``left:right`` configuration entries.

    Raises:
        ConfigurationError: If an entry does not contain exactly one
            separator or has an empty side.
    """
    pairs: list[tuple[str, str]] = []
    for entry in entries:
        parts = str(entry).split(_SEPARATOR)
        if len(parts) != 2 or not parts[0].strip() or not parts[1].strip():
            raise ConfigurationError(
                f"{label} entry {entry!r} is not well formatted (should contain exactly one {_SEPARATOR!r})",
                details={"entry": entry, "setting": label},
            )
        pairs.append((parts[0].strip(), parts[1].strip()))
    return pairs


def attribute_map(entries: Iterable[str]) -> dict[str, str]:
    """Parse ``directoryAttr:claimName`` entries into a mapping.

    Args:
        entries: Configured attribute mapping list.

    Returns:
        Directory attribute name to claim name.

    Raises:
        ConfigurationError: On a malformed entry or a repeated directory attribute.

    Examples:
        >>> attribute_map(["sn:family_name", "mail:email"])
        {'sn': 'family_name', 'mail': 'email'}
    """
    result: dict[str, str] = {}
    for directory_attr, claim_name in _split_pairs(entries, "attrs"):
        if directory_attr in result:
            raise ConfigurationError(
                f"directory attribute {directory_attr!r} is mapped more than once",
                details={"attribute": directory_attr},
            )
        result[directory_attr] = claim_name
    return result


def scope_map(entries: Iterable[str]) -> dict[str, list[str]]:
    """Parse ``claimName:scope`` entries, grouping claim names by scope.

    A claim name may appear under several scopes.

    Examples:
        >>> scope_map(["name:profile", "family_name:profile", "email:email"])
        {'profile': ['name', 'family_name'], 'email': ['email']}
    """
    result: dict[str, list[str]] = {}
    for claim_name, scope in _split_pairs(entries, "claim_scopes"):
        result.setdefault(scope, []).append(claim_name)
    return result


def filter_claims(
    scopes: Mapping[str, Iterable[str]],
    claims: Claim,
    requested_scopes: Iterable[str],
) -> Claim:
    """Keep only the claims disclosed by at least one requested scope.

    A claim is retained iff it is present in ``claims`` and some requested
    scope lists it. Unknown scopes are ignored. Roles follow the same rule
    under the ``roles`` claim name.

    Args:
        scopes: Scope to claim names, as built by :func:`scope_map`.
        claims: Full claim set fetched from the directory.
        requested_scopes: Scopes granted for this request.

    Returns:
        A new, filtered Claim.
    """
    allowed: set[str] = set()
    for scope in requested_scopes:
        allowed.update(scopes.get(scope, ()))

    details = {name: value for name, value in claims.details.items() if name in allowed}
    roles = list(claims.roles) if ROLES_CLAIM in allowed else []
    return Claim(details=details, roles=roles)


def map_attributes(mapping: Mapping[str, str], attributes: Mapping[str, str]) -> Claim:
    """Translate directory attributes into claims.

    Directory attributes missing from ``attributes`` are silently omitted.

    Examples:
        >>> map_attributes({"mail": "email", "sn": "family_name"}, {"mail": "a@b.c"}).details
        {'email': 'a@b.c'}
    """
    details = {claim: attributes[attr] for attr, claim in mapping.items() if attr in attributes}
    return Claim(details=details)


__all__ = [
    "ROLES_CLAIM",
    "Claim",
    "attribute_map",
    "filter_claims",
    "map_attributes",
    "scope_map",
]
