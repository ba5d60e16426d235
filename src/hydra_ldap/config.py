"""Configuration management for hydra_ldap.

Configuration is read once at process start from a YAML file
(``hydra-ldap.yml`` by default) and turned into frozen dataclasses shared
read-only by every request.

Supports:
- Built-in defaults, overlaid by the file (file wins)
- ``${VAR}`` and ``${VAR:-default}`` expansion in string values
- Environment overrides ``HYDRA_LDAP_<SECTION>_<KEY>`` for scalar settings
- Eager validation: any malformed value raises ``ConfigurationError``

Example file::

    ldap:
      endpoint: ldap.example.com:636
      tls: true
      base_dn: ou=people,dc=example,dc=com
      role_base_dn: ou=apps,dc=example,dc=com
    hydra:
      url: http://hydra:4445/
      session_ttl: 24h
    log:
      level: debug
"""

from __future__ import annotations

import copy
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from box import Box

from hydra_ldap.claims import attribute_map, scope_map
from hydra_ldap.exceptions import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

log = logging.getLogger(__name__)

CONFIG_FILENAME = "hydra-ldap.yml"
ENV_PREFIX = "HYDRA_LDAP_"

DEFAULT_ATTRS = (
    "name:name",
    "sn:family_name",
    "givenName:given_name",
    "mail:email",
)

DEFAULT_CLAIM_SCOPES = (
    "name:profile",
    "family_name:profile",
    "given_name:profile",
    "email:email",
    "roles:roles",
)

LOG_LEVELS = frozenset({"trace", "debug", "info", "warn", "warning", "error", "fatal", "panic"})

_DEFAULTS: dict[str, Any] = {
    "dev": False,
    "hydra": {
        "url": "",
        "session_ttl": "24h",
        "claim_scopes": list(DEFAULT_CLAIM_SCOPES),
        "timeout": 10.0,
    },
    "ldap": {
        "endpoint": "",
        "tls": False,
        "tls_verify": True,
        "base_dn": "",
        "role_base_dn": "",
        "admin_dn": None,
        "admin_password": None,
        "attrs": list(DEFAULT_ATTRS),
        "connect_timeout": 10.0,
        "receive_timeout": 10.0,
    },
    "log": {
        "level": "info",
        "use_systemd": False,
    },
    "selfservice": {
        "client_id": "",
        "client_secret": "",
        "discovery_url": "",
        "callback_url": "",
        "scopes": ["openid"],
        "verify_signature": False,
        "timeout": 10.0,
    },
}

# Pattern for environment variable substitution: ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([a-zA-Z_][a-zA-Z0-9_]*)(?::-([^}]*))?\}")

# Go style durations: 24h, 1h30m, 90s, 1.5h, 250ms
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


def parse_duration(value: str | int | float | timedelta) -> timedelta:
    """Parse a duration setting.

    Accepts a ``timedelta``, a number of seconds, or a Go style duration
    string made of ``<number><unit>`` parts.

    Args:
        value: Raw setting value.

    Returns:
        The parsed duration.

    Raises:
        ConfigurationError: If the value cannot be parsed.

    Examples:
        >>> parse_duration("1h30m")
        datetime.timedelta(seconds=5400)
        >>> parse_duration(90)
        datetime.timedelta(seconds=90)
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ConfigurationError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)

    text = str(value).strip()
    if text.isdigit():
        return timedelta(seconds=int(text))
    if not text or _DURATION_PART.sub("", text):
        raise ConfigurationError(f"invalid duration {value!r} (expected e.g. '24h', '1h30m', '90s')")

    seconds = sum(float(amount) * _DURATION_UNITS[unit] for amount, unit in _DURATION_PART.findall(text))
    return timedelta(seconds=seconds)


def _expand_env_vars(value: str, environ: Mapping[str, str], source: str | None = None) -> str:
    """Expand environment variables in a string value.

    Supports two syntaxes:
    - ``${VAR}`` - required variable, raises ConfigurationError if not set
    - ``${VAR:-default}`` - optional variable with default value

    Examples:
        >>> _expand_env_vars("${HOST:-localhost}:389", {})
        'localhost:389'
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default_value = match.group(2)

        env_value = environ.get(var_name)
        if env_value is not None:
            return env_value
        if default_value is not None:
            return default_value

        where = f" (required by {source})" if source else ""
        raise ConfigurationError(
            f"Environment variable '{var_name}' is not set{where}. Use ${{VAR:-default}} for optional variables.",
            details={"var_name": var_name, "source": source},
        )

    return _ENV_VAR_PATTERN.sub(replacer, value)


def _expand_env_vars_recursive(data: Any, environ: Mapping[str, str], source: str | None = None) -> Any:
    """Recursively expand environment variables in config data."""
    if isinstance(data, dict):
        return {k: _expand_env_vars_recursive(v, environ, source) for k, v in data.items()}
    if isinstance(data, list):
        return [_expand_env_vars_recursive(item, environ, source) for item in data]
    if isinstance(data, str):
        return _expand_env_vars(data, environ, source)
    return data


def _coerce(raw: str, default: Any, name: str) -> Any:
    """Convert a string setting to the type of its default."""
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ConfigurationError(f"{name}: expected a boolean, got {raw!r}")
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"{name}: expected a number, got {raw!r}") from exc
    if isinstance(default, list):
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def _apply_env_overrides(config: Box, environ: Mapping[str, str]) -> None:
    """Override scalar settings from ``HYDRA_LDAP_<SECTION>_<KEY>`` variables."""
    dev_var = f"{ENV_PREFIX}DEV"
    if dev_var in environ:
        config.dev = _coerce(environ[dev_var], False, dev_var)

    for section, keys in _DEFAULTS.items():
        if not isinstance(keys, dict) or not isinstance(config.get(section), dict):
            continue
        for key, default in keys.items():
            var_name = f"{ENV_PREFIX}{section}_{key}".upper()
            if var_name in environ:
                log.debug("Setting %s.%s from %s", section, key, var_name)
                config[section][key] = _coerce(environ[var_name], default, var_name)


def _known_keys(section: str, data: Mapping[str, Any]) -> dict[str, Any]:
    """Keep the keys a section understands, filling defaults and warning about the others."""
    if not isinstance(data, dict):
        raise ConfigurationError(f"section {section!r} must be a mapping, got {type(data).__name__}")
    known = _DEFAULTS[section]
    for key in data:
        if key not in known:
            log.warning("Ignoring unknown setting %s.%s", section, key)
    return {
        key: _typed(f"{section}.{key}", data[key], default) if key in data else copy.deepcopy(default)
        for key, default in known.items()
    }


def _typed(name: str, value: Any, default: Any) -> Any:
    """Bring a file value to the type of its default.

    Strings (e.g. the result of ``${VAR:-false}`` expansion) are converted
    like environment overrides; any other mismatching type is rejected.

    Examples:
        >>> _typed("ldap.tls", "false", False)
        False
        >>> _typed("ldap.connect_timeout", 5, 10.0)
        5.0
    """
    if isinstance(value, str):
        return _coerce(value, default, name)
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        raise ConfigurationError(f"{name}: expected a boolean, got {value!r}")
    if isinstance(default, float):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise ConfigurationError(f"{name}: expected a number, got {value!r}")
    if isinstance(default, list):
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        raise ConfigurationError(f"{name}: expected a list, got {value!r}")
    return value


@dataclass(frozen=True, slots=True)
class DirectoryConfig:
    """LDAP directory settings.

    Attributes:
        endpoint: ``host:port`` or ``ldap[s]://host[:port]``.
        base_dn: Base DN for user searches.
        role_base_dn: Base DN under which ``ou=<app id>`` role groups live.
        tls: Connect with LDAPS.
        tls_verify: Verify the server certificate. Disabling it is a
            deliberate trust decision for self-signed directories.
        admin_dn: Administrative bind DN (not used by the login/consent flows).
        admin_password: Administrative bind password.
        attrs: ``directoryAttr:claimName`` pairs.
        connect_timeout: Socket connection timeout in seconds.
        receive_timeout: Per-operation response timeout in seconds.

    Examples:
        >>> cfg = DirectoryConfig(endpoint="ldap:389", base_dn="dc=example,dc=com")
        >>> cfg.attribute_map["mail"]
        'email'
    """

    endpoint: str
    base_dn: str
    role_base_dn: str = ""
    tls: bool = False
    tls_verify: bool = True
    admin_dn: str | None = None
    admin_password: str | None = field(default=None, repr=False)
    attrs: tuple[str, ...] = DEFAULT_ATTRS
    connect_timeout: float = 10.0
    receive_timeout: float = 10.0

    def __post_init__(self) -> None:
        """Validate settings and parse the attribute mapping eagerly."""
        if not self.endpoint:
            raise ConfigurationError("empty ldap endpoint")
        if not self.base_dn:
            raise ConfigurationError("empty ldap base_dn")
        if self.connect_timeout <= 0 or self.receive_timeout <= 0:
            raise ConfigurationError("ldap timeouts must be greater than 0")
        object.__setattr__(self, "attrs", tuple(self.attrs))
        attribute_map(self.attrs)

    @property
    def attribute_map(self) -> dict[str, str]:
        """Directory attribute name to claim name."""
        return attribute_map(self.attrs)


@dataclass(frozen=True, slots=True)
class ChallengeConfig:
    """Authorization server (Hydra admin API) settings.

    Attributes:
        url: Admin API base URL, normalized to end with ``/``.
        session_ttl: How long the authorization server remembers a decision.
        claim_scopes: ``claimName:scope`` pairs.
        timeout: HTTP timeout in seconds.

    Examples:
        >>> cfg = ChallengeConfig(url="http://hydra:4445", session_ttl="1h")
        >>> cfg.url, cfg.remember_for
        ('http://hydra:4445/', 3600)
    """

    url: str
    session_ttl: timedelta = timedelta(hours=24)
    claim_scopes: tuple[str, ...] = DEFAULT_CLAIM_SCOPES
    timeout: float = 10.0

    def __post_init__(self) -> None:
        """Normalize the URL, parse durations and claim scopes eagerly."""
        if not self.url:
            raise ConfigurationError("empty hydra url")
        if not self.url.startswith(("http://", "https://")):
            raise ConfigurationError(f"hydra url must be http(s): {self.url!r}")
        if not self.url.endswith("/"):
            object.__setattr__(self, "url", self.url + "/")
        object.__setattr__(self, "session_ttl", parse_duration(self.session_ttl))
        object.__setattr__(self, "claim_scopes", tuple(self.claim_scopes))
        if self.timeout <= 0:
            raise ConfigurationError("hydra timeout must be greater than 0")
        scope_map(self.claim_scopes)

    @property
    def remember_for(self) -> int:
        """Session time-to-live in whole seconds (truncated)."""
        return int(self.session_ttl.total_seconds())

    @property
    def scope_map(self) -> dict[str, list[str]]:
        """Scope to the claim names it discloses."""
        return scope_map(self.claim_scopes)


@dataclass(frozen=True, slots=True)
class RelyingPartyConfig:
    """Self-service OIDC relying-party settings.

    Attributes:
        client_id: Client identifier registered at the identity provider.
        client_secret: Client secret.
        discovery_url: Full URL of the provider discovery document.
        callback_url: Redirect URI registered for this client.
        scopes: Scopes requested at authorization time.
        verify_signature: Verify the ID token signature against the provider JWKS.
        timeout: HTTP timeout in seconds.
    """

    client_id: str
    client_secret: str = field(default="", repr=False)
    discovery_url: str = ""
    callback_url: str = ""
    scopes: tuple[str, ...] = ("openid",)
    verify_signature: bool = False
    timeout: float = 10.0

    def __post_init__(self) -> None:
        """Validate the settings required to start an authorization."""
        if not self.client_id:
            raise ConfigurationError("empty selfservice client_id")
        if not self.discovery_url:
            raise ConfigurationError("empty selfservice discovery_url")
        object.__setattr__(self, "scopes", tuple(self.scopes))


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Logging settings.

    Attributes:
        level: One of trace, debug, info, warn, warning, error, fatal, panic.
        use_systemd: Emit systemd priority prefixes instead of timestamps.
    """

    level: str = "info"
    use_systemd: bool = False

    def __post_init__(self) -> None:
        """Validate the level name."""
        level = (self.level or "info").lower()
        if level not in LOG_LEVELS:
            raise ConfigurationError(f"unknown log level {self.level!r}, expected one of {sorted(LOG_LEVELS)}")
        object.__setattr__(self, "level", level)


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Complete process configuration.

    Attributes:
        ldap: Directory settings.
        hydra: Authorization server settings.
        log: Logging settings.
        selfservice: Relying-party settings, None when not configured.
        dev: Development mode (rich console logging).
    """

    ldap: DirectoryConfig
    hydra: ChallengeConfig
    log: LoggingConfig = field(default_factory=LoggingConfig)
    selfservice: RelyingPartyConfig | None = None
    dev: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> AppConfig:
        """Build and validate a configuration from plain data.

        Args:
            data: Mapping with ``ldap``, ``hydra``, ``log`` and ``selfservice`` sections.

        Raises:
            ConfigurationError: If any section is missing required values or malformed.
        """
        ldap_section = _known_keys("ldap", data.get("ldap") or {})
        hydra_section = _known_keys("hydra", data.get("hydra") or {})
        log_section = _known_keys("log", data.get("log") or {})
        rp_section = _known_keys("selfservice", data.get("selfservice") or {})

        selfservice = RelyingPartyConfig(**rp_section) if rp_section.get("client_id") else None
        return cls(
            ldap=DirectoryConfig(**ldap_section),
            hydra=ChallengeConfig(**hydra_section),
            log=LoggingConfig(**log_section),
            selfservice=selfservice,
            dev=_typed("dev", data.get("dev", False), False),
        )


def _read_file(path: Path, environ: Mapping[str, str]) -> dict[str, Any]:
    """Parse a YAML configuration file with env var expansion."""
    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigurationError(f"cannot read {path}: {exc}") from exc

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigurationError(f"invalid config format in {path}: expected a mapping")
    return _expand_env_vars_recursive(content, environ, source=str(path))


def load_config(
    path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load, merge and validate the process configuration.

    Args:
        path: Explicit configuration file. When None, ``hydra-ldap.yml`` in the
            current directory is used if present, otherwise defaults and
            environment only.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        Validated AppConfig.

    Raises:
        ConfigurationError: If the explicit file is missing or anything is invalid.

    Examples:
        >>> cfg = load_config("hydra-ldap.yml")  # doctest: +SKIP
        >>> cfg.hydra.remember_for  # doctest: +SKIP
        86400
    """
    env = os.environ if environ is None else environ
    config = Box(copy.deepcopy(_DEFAULTS))

    if path is not None:
        file_path = Path(path).expanduser()
        if not file_path.exists():
            raise ConfigurationError(f"config file not found: {file_path}")
    else:
        file_path = Path.cwd() / CONFIG_FILENAME
        if not file_path.exists():
            log.info("Config file %s not found, using defaults and environment", file_path)
            file_path = None

    if file_path is not None:
        log.debug("Loading config from: %s", file_path)
        config.merge_update(_read_file(file_path, env))

    _apply_env_overrides(config, env)
    return AppConfig.from_mapping(config.to_dict())


__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_ATTRS",
    "DEFAULT_CLAIM_SCOPES",
    "ENV_PREFIX",
    "AppConfig",
    "ChallengeConfig",
    "DirectoryConfig",
    "LoggingConfig",
    "RelyingPartyConfig",
    "load_config",
    "parse_duration",
]
