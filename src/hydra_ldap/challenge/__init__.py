"""Login/consent challenge protocol client for the authorization server admin API."""

from hydra_ldap.challenge.client import ChallengeClient
from hydra_ldap.challenge.exceptions import (
    ChallengeError,
    ChallengeExpiredError,
    ChallengeMissingError,
    ChallengeNotFoundError,
    RemoteError,
    UnauthenticatedError,
)
from hydra_ldap.challenge.models import (
    Challenge,
    ChallengeKind,
    ClientInfo,
    ConsentAcceptance,
    ConsentSession,
    LoginAcceptance,
)
from hydra_ldap.challenge.sessions import filter_sessions

__all__ = [
    "Challenge",
    "ChallengeClient",
    "ChallengeError",
    "ChallengeExpiredError",
    "ChallengeKind",
    "ChallengeMissingError",
    "ChallengeNotFoundError",
    "ClientInfo",
    "ConsentAcceptance",
    "ConsentSession",
    "LoginAcceptance",
    "RemoteError",
    "UnauthenticatedError",
    "filter_sessions",
]
