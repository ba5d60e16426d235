"""OIDC relying-party client used by the self-service pages.

Runs the authorization code flow against the identity provider (this
service's own authorization server): build the authorization URL, then on
callback exchange the code, validate the ID token and merge user-info.

The pending authorization lives in a caller-provided session mapping under
the ``oauth-session`` key; how that mapping is persisted is up to the caller.

Example:
    >>> rp = RelyingPartyClient.from_config(config.selfservice)  # doctest: +SKIP
    >>> url = rp.begin_auth(session)  # doctest: +SKIP
    >>> claims = rp.complete_auth(code, state, session)  # doctest: +SKIP
    >>> claims["sub"]  # doctest: +SKIP
    'jdoe'
"""

from __future__ import annotations

import base64
import logging
import secrets
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from hydra_ldap.exceptions import ConnectionFailedError
from hydra_ldap.selfservice.exceptions import (
    DiscoveryError,
    MalformedTokenError,
    StateMismatchError,
    SubjectMismatchError,
    TokenExchangeError,
    TokenValidationError,
    UserInfoError,
)
from hydra_ldap.selfservice.tokens import decode_id_token, validate_claims, verify_signature

if TYPE_CHECKING:
    from types import TracebackType

    from hydra_ldap.config import RelyingPartyConfig

log = logging.getLogger(__name__)

SESSION_KEY = "oauth-session"
STATE_BYTES = 64


def generate_state() -> str:
    """Return an unguessable state value (64 random bytes, padded base64url).

    Examples:
        >>> len(generate_state())
        88
    """
    return base64.urlsafe_b64encode(secrets.token_bytes(STATE_BYTES)).decode("ascii")


def _error_field(response: httpx.Response) -> str:
    """Return the OAuth2 ``error`` code of an error body, empty otherwise."""
    try:
        body = response.json()
    except ValueError:
        return ""
    return str(body.get("error") or "") if isinstance(body, dict) else ""


@dataclass(frozen=True, slots=True)
class ProviderMetadata:
    """Endpoints announced by the provider discovery document."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str = ""
    jwks_uri: str = ""

    @classmethod
    def from_document(cls, data: Mapping[str, Any]) -> ProviderMetadata:
        """Build from a decoded discovery document.

        Raises:
            DiscoveryError: If a required endpoint is missing.
        """
        missing = [key for key in ("issuer", "authorization_endpoint", "token_endpoint") if not data.get(key)]
        if missing:
            raise DiscoveryError(f"discovery document lacks {', '.join(missing)}")
        return cls(
            issuer=str(data["issuer"]),
            authorization_endpoint=str(data["authorization_endpoint"]),
            token_endpoint=str(data["token_endpoint"]),
            userinfo_endpoint=str(data.get("userinfo_endpoint") or ""),
            jwks_uri=str(data.get("jwks_uri") or ""),
        )


class RelyingPartyClient:
    """Authorization code flow client.

    Build it with :meth:`from_config`, which fetches the discovery document
    once; instances are then safe to share between requests.

    Args:
        config: Relying-party settings.
        metadata: Provider endpoints.
        http_client: httpx client used for every provider call.
        owns_client: Close ``http_client`` in :meth:`close`.
    """

    def __init__(
        self,
        config: RelyingPartyConfig,
        metadata: ProviderMetadata,
        http_client: httpx.Client,
        *,
        owns_client: bool = False,
    ) -> None:
        self.config = config
        self.metadata = metadata
        self._http = http_client
        self._owns_client = owns_client

    @classmethod
    def from_config(cls, config: RelyingPartyConfig, http_client: httpx.Client | None = None) -> RelyingPartyClient:
        """Fetch the discovery document and build a client.

        Args:
            config: Relying-party settings.
            http_client: Pre-configured httpx client (created when None).

        Raises:
            DiscoveryError: If the document cannot be fetched or is unusable.
        """
        owns_client = http_client is None
        http = http_client or httpx.Client(timeout=config.timeout)
        try:
            response = http.get(config.discovery_url)
        except httpx.RequestError as exc:
            if owns_client:
                http.close()
            raise DiscoveryError(f"cannot fetch {config.discovery_url}: {exc}") from exc

        try:
            if response.status_code != 200:
                raise DiscoveryError(f"discovery endpoint returned HTTP {response.status_code}")
            try:
                document = response.json()
            except ValueError as exc:
                raise DiscoveryError("discovery document is not valid JSON") from exc
            if not isinstance(document, dict):
                raise DiscoveryError("discovery document is not a JSON object")
            metadata = ProviderMetadata.from_document(document)
        except DiscoveryError:
            if owns_client:
                http.close()
            raise

        log.debug("Discovered provider %s", metadata.issuer)
        return cls(config, metadata, http, owns_client=owns_client)

    def __enter__(self) -> RelyingPartyClient:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            self._http.close()

    # ─────────────────────────────────────────────────────────────────────────
    # Authorization code flow
    # ─────────────────────────────────────────────────────────────────────────

    def begin_auth(self, session: MutableMapping[str, Any], state: str | None = None) -> str:
        """Record a pending authorization and return the authorization URL.

        Args:
            session: Caller session mapping.
            state: State to use; a random one is generated when empty.

        Returns:
            URL to redirect the user agent to.
        """
        state = state or generate_state()
        session[SESSION_KEY] = {"state": state}
        url = httpx.URL(self.metadata.authorization_endpoint).copy_merge_params(
            {
                "client_id": self.config.client_id,
                "redirect_uri": self.config.callback_url,
                "response_type": "code",
                "scope": " ".join(self.config.scopes),
                "state": state,
            }
        )
        return str(url)

    def complete_auth(self, code: str, state: str, session: Mapping[str, Any]) -> dict[str, Any]:
        """Finish the flow started by :meth:`begin_auth`.

        Args:
            code: Authorization code from the callback.
            state: State from the callback.
            session: Caller session mapping holding the pending authorization.

        Returns:
            ID token claims merged with user-info claims.

        Raises:
            StateMismatchError: If nothing is pending or the state differs.
            TokenExchangeError: If the code exchange fails.
            MalformedTokenError: If the ID token is absent or undecodable.
            TokenValidationError: If the ID token is invalid.
            UserInfoError: If the user-info endpoint fails.
            SubjectMismatchError: If user-info belongs to another subject.
            ConnectionFailedError: On transport failure.
        """
        pending = session.get(SESSION_KEY)
        if not isinstance(pending, Mapping):
            raise StateMismatchError("no pending authorization in session")
        expected_state = pending.get("state") or ""
        if expected_state and expected_state != state:
            raise StateMismatchError("state token mismatch")

        token = self._exchange_code(code)
        id_token = token.get("id_token")
        if not isinstance(id_token, str) or not id_token:
            raise MalformedTokenError("token response has no id_token")

        claims = decode_id_token(id_token)
        if self.config.verify_signature:
            verify_signature(id_token, self._fetch_jwks())
        validate_claims(claims, self.config.client_id, self.metadata.issuer)

        self._merge_user_info(str(token["access_token"]), claims)
        return claims

    # ─────────────────────────────────────────────────────────────────────────
    # Provider calls
    # ─────────────────────────────────────────────────────────────────────────

    def _send(self, method: str, url: str, operation: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            raise ConnectionFailedError(url, str(exc) or type(exc).__name__, operation=operation) from exc

    def _exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange the code, sending client credentials in the form body."""
        response = self._send(
            "POST",
            self.metadata.token_endpoint,
            "exchange code",
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.config.callback_url,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            headers={"Accept": "application/json"},
        )
        if not response.is_success:
            reason = _error_field(response)
            raise TokenExchangeError(
                f"token endpoint returned HTTP {response.status_code}" + (f": {reason}" if reason else ""),
                details={"status_code": response.status_code, "error": reason},
            )

        try:
            token = response.json()
        except ValueError as exc:
            raise TokenExchangeError("token response is not valid JSON") from exc
        if not isinstance(token, dict):
            raise TokenExchangeError("token response is not a JSON object")

        expires_in = token.get("expires_in")
        if not token.get("access_token"):
            raise TokenExchangeError("invalid token received from provider: no access_token")
        if expires_in is not None and (not isinstance(expires_in, (int, float)) or expires_in <= 0):
            raise TokenExchangeError("invalid token received from provider: already expired")
        return token

    def _fetch_jwks(self) -> dict[str, Any]:
        if not self.metadata.jwks_uri:
            raise TokenValidationError("provider announces no jwks_uri, cannot verify signature")
        response = self._send("GET", self.metadata.jwks_uri, "fetch jwks")
        if response.status_code != 200:
            raise TokenValidationError(f"jwks endpoint returned HTTP {response.status_code}")
        try:
            jwks = response.json()
        except ValueError as exc:
            raise TokenValidationError("jwks document is not valid JSON") from exc
        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            raise TokenValidationError("jwks document has no keys")
        return jwks

    def _merge_user_info(self, access_token: str, claims: dict[str, Any]) -> None:
        """Fetch user-info and merge it into ``claims`` when subjects match."""
        if not self.metadata.userinfo_endpoint:
            raise UserInfoError("provider announces no userinfo_endpoint")

        response = self._send(
            "GET",
            self.metadata.userinfo_endpoint,
            "fetch user info",
            headers={"Authorization": f"Bearer {access_token}"},
        )
        if response.status_code != 200:
            www_authenticate = response.headers.get("WWW-Authenticate", "")
            raise UserInfoError(
                f"non-200 response from user info: {response.status_code}, WWW-Authenticate={www_authenticate}",
                status_code=response.status_code,
                www_authenticate=www_authenticate,
            )
        try:
            user_info = response.json()
        except ValueError as exc:
            raise UserInfoError("user info response is not valid JSON") from exc
        if not isinstance(user_info, dict):
            raise UserInfoError("user info response is not a JSON object")

        subject = user_info.get("sub")
        if not subject:
            log.debug("User info response did not contain a sub claim")
            raise SubjectMismatchError("user info response did not contain a 'sub' claim")
        if subject != claims.get("sub"):
            log.debug("User info sub %r does not match id_token sub %r", subject, claims.get("sub"))
            raise SubjectMismatchError("user info 'sub' claim did not match id_token 'sub' claim")

        claims.update(user_info)


__all__ = [
    "SESSION_KEY",
    "ProviderMetadata",
    "RelyingPartyClient",
    "generate_state",
]
