"""Consent session deduplication."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from hydra_ldap.challenge.models import ConsentSession


def filter_sessions(sessions: Iterable[ConsentSession]) -> list[ConsentSession]:
    """Keep the most recently handled consent session of each client.

    Sessions are grouped by client id. Within a group a later entry only
    replaces the kept one when its ``handled_at`` is strictly later, so ties
    keep the first encountered. Groups appear in first-encounter order.

    Args:
        sessions: Sessions as listed by the admin API.

    Returns:
        One session per client id.
    """
    latest: dict[str, ConsentSession] = {}
    for session in sessions:
        key = session.client.client_id
        current = latest.get(key)
        if current is None or session.handled_at > current.handled_at:
            latest[key] = session
    return list(latest.values())


__all__ = ["filter_sessions"]
