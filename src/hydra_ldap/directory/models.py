"""Data models returned by directory searches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def _as_text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def normalize_attributes(attributes: dict[str, Any] | None) -> dict[str, list[str]]:
    """Normalize raw attribute values to lists of strings.

    Single values become one-element lists; empty values are dropped.

    Examples:
        >>> normalize_attributes({"mail": "a@b.c", "cn": ["x", "y"], "empty": []})
        {'mail': ['a@b.c'], 'cn': ['x', 'y']}
    """
    result: dict[str, list[str]] = {}
    for name, value in (attributes or {}).items():
        values = value if isinstance(value, (list, tuple)) else [value]
        texts = [_as_text(v) for v in values if v is not None]
        if texts:
            result[name] = texts
    return result


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """One search result entry.

    Attributes:
        dn: Distinguished name of the entry.
        attributes: Attribute name to its values.
    """

    dn: str
    attributes: dict[str, list[str]] = field(default_factory=dict)

    def first(self, name: str) -> str | None:
        """Return the first value of an attribute, None when absent.

        Examples:
            >>> DirectoryEntry("cn=x", {"mail": ["a@b.c", "d@e.f"]}).first("mail")
            'a@b.c'
        """
        values = self.attributes.get(name)
        return values[0] if values else None


@dataclass(frozen=True, slots=True)
class UserEntry:
    """The single entry matched by a username lookup.

    Attributes:
        dn: Distinguished name of the user.
        attributes: Attribute name to its first value.
    """

    dn: str
    attributes: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_entry(cls, entry: DirectoryEntry) -> UserEntry:
        """Keep the first value of every attribute of a search entry."""
        return cls(dn=entry.dn, attributes={name: values[0] for name, values in entry.attributes.items() if values})


__all__ = [
    "DirectoryEntry",
    "UserEntry",
    "normalize_attributes",
]
