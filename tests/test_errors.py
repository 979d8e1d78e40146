"""Tests for the exception hierarchy."""

from __future__ import annotations

import pytest

from gmail_auth.utils.errors import (
    AuthenticationError,
    AuthTimeoutError,
    ConfigurationError,
    GmailAuthError,
    InvalidatedTokenError,
    OAuthProtocolError,
    PortConflictError,
    StorageError,
    TokenExchangeError,
)


class TestGmailAuthError:
    """Tests for the base error."""

    def test_str_without_details(self) -> None:
        assert str(GmailAuthError("boom")) == "boom"

    def test_str_with_details(self) -> None:
        error = GmailAuthError("boom", {"operation": "load"})
        assert str(error) == "boom | Details: {'operation': 'load'}"

    def test_details_default_to_empty(self) -> None:
        assert GmailAuthError("boom").details == {}


class TestHierarchy:
    """Each failure kind is distinguishable by type."""

    @pytest.mark.parametrize(
        "error",
        [
            PortConflictError("busy", port=3000),
            OAuthProtocolError("denied", error_code="access_denied"),
            AuthTimeoutError("late", timeout_seconds=300),
            TokenExchangeError("bad code"),
            InvalidatedTokenError("revoked"),
        ],
    )
    def test_flow_errors_are_authentication_errors(self, error: GmailAuthError) -> None:
        assert isinstance(error, AuthenticationError)

    def test_configuration_and_storage_are_not_authentication_errors(self) -> None:
        assert not isinstance(ConfigurationError("x"), AuthenticationError)
        assert not isinstance(StorageError("x"), AuthenticationError)

    def test_timeout_is_builtin_timeout(self) -> None:
        with pytest.raises(TimeoutError):
            raise AuthTimeoutError("late", timeout_seconds=1.5)


class TestStructuredDetails:
    """Tests for the details each error carries."""

    def test_port_conflict_records_port(self) -> None:
        error = PortConflictError("busy", port=3000, details={"error_type": "OSError"})
        assert error.port == 3000
        assert error.details == {"port": 3000, "error_type": "OSError"}

    def test_oauth_protocol_error_records_provider_error(self) -> None:
        error = OAuthProtocolError(
            "denied",
            error_code="access_denied",
            error_description="The user denied access",
        )
        assert error.error_code == "access_denied"
        assert error.details["oauth_error"] == "access_denied"
        assert error.details["oauth_error_description"] == "The user denied access"

    def test_oauth_protocol_error_without_code(self) -> None:
        error = OAuthProtocolError("no code")
        assert error.error_code is None
        assert error.details == {}

    def test_timeout_records_window(self) -> None:
        error = AuthTimeoutError("late", timeout_seconds=300, details={"port": 3000})
        assert error.timeout_seconds == 300
        assert error.details == {"timeout_seconds": 300, "port": 3000}
