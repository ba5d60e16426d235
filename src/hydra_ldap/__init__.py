"""LDAP identity provider for ORY Hydra login and consent challenges.

Example:
    >>> from hydra_ldap import ChallengeBroker, ChallengeClient, DirectoryClient, load_config  # doctest: +SKIP
    >>> cfg = load_config()  # doctest: +SKIP
    >>> broker = ChallengeBroker(DirectoryClient(cfg.ldap), ChallengeClient(cfg.hydra), cfg.hydra.scope_map)  # doctest: +SKIP
"""

__version__ = "0.1.0"

from hydra_ldap.broker import ChallengeBroker, ConsentOutcome, LoginOutcome
from hydra_ldap.challenge import ChallengeClient
from hydra_ldap.claims import Claim, filter_claims
from hydra_ldap.config import AppConfig, load_config
from hydra_ldap.directory import DirectoryClient
from hydra_ldap.exceptions import ConfigurationError, ConnectionFailedError, HydraLdapError
from hydra_ldap.selfservice import RelyingPartyClient

__all__ = [
    "AppConfig",
    "ChallengeBroker",
    "ChallengeClient",
    "Claim",
    "ConfigurationError",
    "ConnectionFailedError",
    "ConsentOutcome",
    "DirectoryClient",
    "HydraLdapError",
    "LoginOutcome",
    "RelyingPartyClient",
    "__version__",
    "filter_claims",
    "load_config",
]
