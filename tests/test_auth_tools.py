"""Tests for the authentication tools and response envelopes."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import RevokedAfterFirstRefresh
from gmail_auth.auth.flow import AuthorizationFlow
from gmail_auth.auth.session import AuthSessionManager
from gmail_auth.auth.storage import TokenRecord, TokenStore
from gmail_auth.config import CredentialSource
from gmail_auth.tools import gmail_get_auth_status, gmail_login, gmail_logout
from gmail_auth.tools.base import (
    build_error_response,
    build_success_response,
    error_response_from,
)
from gmail_auth.utils.errors import (
    AuthTimeoutError,
    ConfigurationError,
    StorageError,
)


@pytest.fixture
def session() -> MagicMock:
    mock_session = MagicMock(spec=AuthSessionManager)
    mock_session.get_client = AsyncMock(return_value=MagicMock())
    mock_session.get_gmail_service = AsyncMock(return_value=MagicMock())
    mock_session.get_stored_client = AsyncMock(return_value=MagicMock())
    mock_session.revoke = AsyncMock(return_value=True)
    mock_session.is_authenticated = False
    mock_session.scopes = ["https://www.googleapis.com/auth/gmail.modify"]
    return mock_session


class TestResponses:
    """Tests for response envelope helpers."""

    def test_success_response(self) -> None:
        assert build_success_response({"a": 1}, "done") == {
            "status": "success",
            "data": {"a": 1},
            "message": "done",
        }

    def test_error_response_with_details(self) -> None:
        response = build_error_response("bad", "Code", {"hint": "retry"})
        assert response == {
            "status": "error",
            "error": "bad",
            "error_code": "Code",
            "hint": "retry",
        }

    def test_error_response_from_exception_uses_class_name(self) -> None:
        error = AuthTimeoutError("late", timeout_seconds=300)

        response = error_response_from(error)

        assert response["error"] == "late"
        assert response["error_code"] == "AuthTimeoutError"
        assert response["details"] == {"timeout_seconds": 300}


class TestGmailLogin:
    """Tests for gmail_login tool."""

    @pytest.mark.asyncio
    async def test_login_returns_email(self, session: MagicMock) -> None:
        with (
            patch("gmail_auth.tools.auth.build_gmail_service") as mock_build,
            patch("gmail_auth.tools.auth.get_profile_email", return_value="user@gmail.com"),
        ):
            result = await gmail_login(session)

        assert result["status"] == "success"
        assert result["data"] == {"email": "user@gmail.com"}
        mock_build.assert_called_once_with(session.get_client.return_value)

    @pytest.mark.asyncio
    async def test_login_configuration_error(self, session: MagicMock) -> None:
        session.get_client.side_effect = ConfigurationError("not configured")

        result = await gmail_login(session)

        assert result["status"] == "error"
        assert result["error_code"] == "ConfigurationError"

    @pytest.mark.asyncio
    async def test_login_unexpected_error(self, session: MagicMock) -> None:
        session.get_client.side_effect = RuntimeError("boom")

        result = await gmail_login(session)

        assert result["status"] == "error"
        assert result["error_code"] == "LoginError"


class TestGmailLogout:
    """Tests for gmail_logout tool."""

    @pytest.mark.asyncio
    async def test_logout_with_stored_token(self, session: MagicMock) -> None:
        result = await gmail_logout(session)

        assert result["status"] == "success"
        assert result["data"]["logged_out"] is True
        session.revoke.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_logout_without_stored_token(self, session: MagicMock) -> None:
        session.revoke.return_value = False

        result = await gmail_logout(session)

        assert result["data"]["logged_out"] is False
        assert "Already logged out" in result["message"]

    @pytest.mark.asyncio
    async def test_logout_storage_error(self, session: MagicMock) -> None:
        session.revoke.side_effect = StorageError("denied", {"operation": "delete"})

        result = await gmail_logout(session)

        assert result["status"] == "error"
        assert result["error_code"] == "StorageError"


class TestGmailGetAuthStatus:
    """Tests for gmail_get_auth_status tool."""

    @pytest.mark.asyncio
    async def test_not_authenticated(
        self, session: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("READ_ONLY", raising=False)
        session.get_stored_client.return_value = None

        result = await gmail_get_auth_status(session)

        assert result["status"] == "success"
        assert result["data"]["authenticated"] is False
        assert result["data"]["mode"] == "full_access"
        session.get_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_authenticated(self, session: MagicMock) -> None:
        with (
            patch("gmail_auth.tools.auth.build_gmail_service") as mock_build,
            patch("gmail_auth.tools.auth.get_profile_email", return_value="user@gmail.com"),
        ):
            result = await gmail_get_auth_status(session)

        assert result["data"]["authenticated"] is True
        assert result["data"]["email"] == "user@gmail.com"
        mock_build.assert_called_once_with(session.get_stored_client.return_value)
        session.get_client.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_only_mode(
        self, session: MagicMock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("READ_ONLY", "true")
        session.get_stored_client.return_value = None

        result = await gmail_get_auth_status(session)

        assert result["data"]["mode"] == "read_only"

    @pytest.mark.asyncio
    async def test_profile_failure(self, session: MagicMock) -> None:
        with (
            patch("gmail_auth.tools.auth.build_gmail_service"),
            patch(
                "gmail_auth.tools.auth.get_profile_email", side_effect=RuntimeError("403")
            ),
        ):
            result = await gmail_get_auth_status(session)

        assert result["status"] == "error"
        assert result["error_code"] == "StatusCheckError"

    @pytest.mark.asyncio
    async def test_never_starts_sign_in_when_token_revoked_after_check(
        self,
        credential_source: CredentialSource,
        token_store: TokenStore,
        stored_record: TokenRecord,
    ) -> None:
        """Test the status check refreshes once and never falls back to the flow."""
        token_store.save(stored_record)
        provider = RevokedAfterFirstRefresh(accepted_refresh_tokens={"rt-stored"})
        flow = MagicMock(spec=AuthorizationFlow)
        flow.run = AsyncMock()
        real_session = AuthSessionManager(
            credential_source=credential_source,
            token_store=token_store,
            provider=provider,
            flow=flow,
        )

        with (
            patch("gmail_auth.tools.auth.build_gmail_service"),
            patch("gmail_auth.tools.auth.get_profile_email", return_value="user@gmail.com"),
        ):
            result = await gmail_get_auth_status(real_session)

        assert result["data"]["authenticated"] is True
        assert provider.refreshed == ["rt-stored"]
        flow.run.assert_not_called()
