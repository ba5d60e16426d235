"""Tests for the hydra_ldap exception hierarchy."""

from __future__ import annotations

import pytest

from hydra_ldap.challenge.exceptions import (
    ChallengeError,
    ChallengeExpiredError,
    ChallengeMissingError,
    ChallengeNotFoundError,
    RemoteError,
    UnauthenticatedError,
)
from hydra_ldap.directory.exceptions import (
    BindError,
    DirectoryError,
    InvalidCredentialsError,
    SearchError,
    UnauthorizedError,
    UserNotFoundError,
)
from hydra_ldap.exceptions import ConfigurationError, ConnectionFailedError, HydraLdapError
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


class TestHydraLdapError:
    """Tests for the base error."""

    def test_message_only(self) -> None:
        """Without operation, str() is the message."""
        err = HydraLdapError("boom")
        assert str(err) == "boom"
        assert err.message == "boom"
        assert err.operation is None
        assert err.details == {}

    def test_operation_prefix(self) -> None:
        """The operation name prefixes str()."""
        err = HydraLdapError("boom", operation="find user", details={"k": "v"})
        assert str(err) == "find user: boom"
        assert err.message == "boom"
        assert err.details == {"k": "v"}


class TestHierarchy:
    """Every error derives from HydraLdapError through its family base."""

    @pytest.mark.parametrize(
        "cls",
        [UserNotFoundError, InvalidCredentialsError, UnauthorizedError, SearchError, BindError],
    )
    def test_directory_errors(self, cls: type) -> None:
        """Directory errors share DirectoryError."""
        assert issubclass(cls, DirectoryError)
        assert issubclass(cls, HydraLdapError)

    @pytest.mark.parametrize(
        "cls",
        [ChallengeMissingError, ChallengeNotFoundError, ChallengeExpiredError, UnauthenticatedError, RemoteError],
    )
    def test_challenge_errors(self, cls: type) -> None:
        """Challenge errors share ChallengeError."""
        assert issubclass(cls, ChallengeError)
        assert issubclass(cls, HydraLdapError)

    @pytest.mark.parametrize(
        "cls",
        [
            DiscoveryError,
            TokenExchangeError,
            MalformedTokenError,
            TokenValidationError,
            SubjectMismatchError,
            StateMismatchError,
            UserInfoError,
        ],
    )
    def test_relying_party_errors(self, cls: type) -> None:
        """Relying-party errors share RelyingPartyError."""
        assert issubclass(cls, RelyingPartyError)
        assert issubclass(cls, HydraLdapError)

    def test_builtin_compatibility(self) -> None:
        """Some errors also derive from a builtin."""
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(ChallengeMissingError, ValueError)
        assert issubclass(ConnectionFailedError, ConnectionError)


class TestSpecificErrors:
    """Tests for errors carrying extra attributes."""

    def test_connection_failed(self) -> None:
        """Target and reason are kept and rendered."""
        err = ConnectionFailedError("ldap:389", "timed out", operation="open directory connection")
        assert err.target == "ldap:389"
        assert err.reason == "timed out"
        assert str(err) == "open directory connection: cannot reach ldap:389: timed out"

    def test_user_not_found_zero(self) -> None:
        """No match reads as not found."""
        err = UserNotFoundError("jdoe")
        assert err.count == 0
        assert "not found" in str(err)

    def test_user_not_found_ambiguous(self) -> None:
        """Several matches read as ambiguous."""
        err = UserNotFoundError("jdoe", 3)
        assert err.count == 3
        assert "ambiguous" in str(err)

    def test_unauthorized(self) -> None:
        """The application id is kept."""
        err = UnauthorizedError("my-app")
        assert err.app_id == "my-app"
        assert "my-app" in str(err)

    def test_remote_error_with_message(self) -> None:
        """The remote message is kept verbatim."""
        err = RemoteError(503, "Service Unavailable: try later")
        assert err.status_code == 503
        assert err.remote_message == "Service Unavailable: try later"
        assert err.details == {"status_code": 503, "remote_message": "Service Unavailable: try later"}

    def test_remote_error_without_message(self) -> None:
        """An empty remote message is allowed."""
        err = RemoteError(500)
        assert err.remote_message == ""
        assert str(err) == "remote error 500"

    def test_user_info_error(self) -> None:
        """Status and WWW-Authenticate header are kept."""
        err = UserInfoError("denied", status_code=401, www_authenticate='Bearer error="invalid_token"')
        assert err.status_code == 401
        assert err.www_authenticate == 'Bearer error="invalid_token"'
        assert err.operation == "fetch user info"
