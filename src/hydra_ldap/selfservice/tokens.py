"""ID token decoding and validation.

Example:
    >>> claims = decode_id_token(id_token)  # doctest: +SKIP
    >>> validate_claims(claims, "my-client", "https://idp.example.com/")  # doctest: +SKIP
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from typing import Any

from authlib.jose import jwt
from authlib.jose.errors import JoseError

from hydra_ldap.selfservice.exceptions import MalformedTokenError, TokenValidationError

logger = logging.getLogger(__name__)

# Clock skew tolerance for expiry validation (seconds)
CLOCK_SKEW_SECONDS = 10


def _b64url_decode(data: str) -> bytes:
    """Decode base64url-encoded data with padding fix.

    Args:
        data: Base64url-encoded string.

    Returns:
        Decoded bytes.

    Examples:
        >>> _b64url_decode("eyJhIjoxfQ")
        b'{"a":1}'
    """
    padding = 4 - len(data) % 4
    if padding != 4:
        data += "=" * padding
    return base64.urlsafe_b64decode(data)


def decode_id_token(token: str) -> dict[str, Any]:
    """Decode the payload of a JWT without verifying it.

    Args:
        token: Compact serialized JWT.

    Returns:
        The payload claims.

    Raises:
        MalformedTokenError: If the token is not made of exactly three
            segments or its payload is not a base64url JSON object.

    Examples:
        >>> decode_id_token("e30.eyJzdWIiOiJqZG9lIn0.sig")
        {'sub': 'jdoe'}
        >>> decode_id_token("a.b")
        Traceback (most recent call last):
        ...
        hydra_ldap.selfservice.exceptions.MalformedTokenError: invalid token, expected 3 segments, got 2
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise MalformedTokenError(f"invalid token, expected 3 segments, got {len(parts)}")

    try:
        payload = json.loads(_b64url_decode(parts[1]))
    except (binascii.Error, ValueError) as exc:
        raise MalformedTokenError(f"cannot decode token payload: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedTokenError("token payload is not a JSON object")
    return payload


def _check_audience(aud: Any, client_id: str) -> None:
    """Accept a string equal to the client id or a list of strings containing it."""
    if isinstance(aud, str):
        if aud == client_id:
            return
    elif isinstance(aud, list) and all(isinstance(item, str) for item in aud):
        if client_id in aud:
            return
    else:
        logger.error("Bad value type in token aud: %s", type(aud).__name__)
        raise TokenValidationError("audience in token does not match client id")

    logger.error("Audience mismatch: got %r, expected %r", aud, client_id)
    raise TokenValidationError("audience in token does not match client id")


def validate_claims(
    claims: dict[str, Any],
    client_id: str,
    issuer: str,
    now: float | None = None,
) -> None:
    """Validate audience, issuer and expiry of decoded ID token claims.

    Args:
        claims: Decoded ID token payload.
        client_id: Expected audience.
        issuer: Issuer announced by the discovery document.
        now: Current UNIX time (defaults to ``time.time()``).

    Raises:
        TokenValidationError: On any audience, issuer or expiry violation.

    Examples:
        >>> validate_claims({"aud": "app", "iss": "https://idp", "exp": 100}, "app", "https://idp", now=105)
        >>> validate_claims({"aud": ["x", "app"], "iss": "https://idp", "exp": 100}, "app", "https://idp", now=111)
        Traceback (most recent call last):
        ...
        hydra_ldap.selfservice.exceptions.TokenValidationError: token is expired
    """
    _check_audience(claims.get("aud"), client_id)

    if claims.get("iss") != issuer:
        raise TokenValidationError("issuer in token does not match issuer in discovery document")

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        raise TokenValidationError("token has no numeric exp claim")

    current = time.time() if now is None else now
    if int(exp) + CLOCK_SKEW_SECONDS < current:
        raise TokenValidationError("token is expired")


def verify_signature(token: str, jwks: dict[str, Any]) -> None:
    """Verify the JWS signature of a token against a JWKS document.

    Raises:
        TokenValidationError: If no key verifies the signature.
    """
    try:
        jwt.decode(token, jwks)
    except (JoseError, ValueError) as exc:
        raise TokenValidationError(f"signature verification failed: {exc}") from exc


__all__ = [
    "CLOCK_SKEW_SECONDS",
    "decode_id_token",
    "validate_claims",
    "verify_signature",
]
