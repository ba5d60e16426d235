"""Self-service OIDC relying-party client."""

from hydra_ldap.selfservice.client import SESSION_KEY, ProviderMetadata, RelyingPartyClient, generate_state
from hydra_ldap.selfservice.exceptions import (
    DiscoveryError,
    MalformedTokenError,
    RelyingPartyError,
    StateMismatchError,
    SubjectMismatchError,
    TokenExchangeError,
    TokenValidationError,
    UserInfoError,
)
from hydra_ldap.selfservice.tokens import CLOCK_SKEW_SECONDS, decode_id_token, validate_claims, verify_signature

__all__ = [
    "CLOCK_SKEW_SECONDS",
    "SESSION_KEY",
    "DiscoveryError",
    "MalformedTokenError",
    "ProviderMetadata",
    "RelyingPartyClient",
    "RelyingPartyError",
    "StateMismatchError",
    "SubjectMismatchError",
    "TokenExchangeError",
    "TokenValidationError",
    "UserInfoError",
    "decode_id_token",
    "generate_state",
    "validate_claims",
    "verify_signature",
]
