"""Pytest configuration and fixtures for gmail-auth tests."""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from google.oauth2.credentials import Credentials

from gmail_auth.auth.provider import GOOGLE_TOKEN_URI, GoogleOAuthProvider
from gmail_auth.auth.storage import TokenRecord, TokenStore
from gmail_auth.config import AppCredentials, CredentialSource
from gmail_auth.utils.errors import AuthenticationError, InvalidatedTokenError


def in_one_hour() -> datetime:
    # google-auth compares expiry against naive UTC
    return datetime.now(UTC).replace(tzinfo=None) + timedelta(seconds=3600)


def make_credentials(
    token: str | None = "at-1",
    refresh_token: str | None = "rt-1",
    expiry: datetime | None = None,
) -> Credentials:
    return Credentials(
        token=token,
        refresh_token=refresh_token,
        token_uri=GOOGLE_TOKEN_URI,
        client_id="cid",
        client_secret="csecret",
        expiry=expiry or in_one_hour(),
    )


class FakeProvider(GoogleOAuthProvider):
    """Provider stub: issues "rt-1"/"at-1" for any code, accepts listed refresh tokens."""

    def __init__(
        self,
        accepted_refresh_tokens: set[str] | None = None,
        exchange_error: Exception | None = None,
        revoke_error: Exception | None = None,
    ) -> None:
        super().__init__()
        self.accepted_refresh_tokens = accepted_refresh_tokens or set()
        self.exchange_error = exchange_error
        self.revoke_error = revoke_error
        self.exchanged: list[tuple[str, str]] = []
        self.refreshed: list[str] = []
        self.revoked: list[str] = []

    async def exchange_code(
        self,
        app: AppCredentials,
        code: str,
        redirect_uri: str,
        scopes: list[str],
    ) -> Credentials:
        self.exchanged.append((code, redirect_uri))
        if self.exchange_error is not None:
            raise self.exchange_error
        self.accepted_refresh_tokens.add("rt-1")
        return make_credentials()

    async def refresh(self, credentials: Credentials) -> None:
        self.refreshed.append(credentials.refresh_token)
        if credentials.refresh_token not in self.accepted_refresh_tokens:
            raise InvalidatedTokenError("Token has been expired or revoked.")
        credentials.token = "at-refreshed"
        credentials.expiry = in_one_hour()

    async def revoke(self, token: str) -> None:
        self.revoked.append(token)
        if self.revoke_error is not None:
            raise self.revoke_error
        self.accepted_refresh_tokens.discard(token)


class RevokedAfterFirstRefresh(FakeProvider):
    """Accepts each refresh token once, as if it were revoked right after."""

    async def refresh(self, credentials: Credentials) -> None:
        await super().refresh(credentials)
        self.accepted_refresh_tokens.discard(credentials.refresh_token)


class BrowserStub:
    """Plays the user's browser: follows the consent URL back to the listener.

    ``params`` builds the callback query from the ``state`` in the consent
    URL; by default the provider "approves" with code "code-xyz".
    """

    def __init__(
        self,
        params: Callable[[str], dict[str, str]] | None = None,
        visit_first: tuple[str, ...] = (),
        respond: bool = True,
    ) -> None:
        self.urls: list[str] = []
        self.responses: list[httpx.Response] = []
        self._params = params or (lambda state: {"code": "code-xyz", "state": state})
        self._visit_first = visit_first
        self._respond = respond
        self._tasks: list[asyncio.Task[None]] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        if self._respond:
            task = asyncio.get_running_loop().create_task(self._visit(url))
            self._tasks.append(task)
        return True

    async def _visit(self, url: str) -> None:
        query = parse_qs(urlparse(url).query)
        redirect_uri = query["redirect_uri"][0]
        state = query["state"][0]
        origin = redirect_uri.rsplit("/", 1)[0]

        async with httpx.AsyncClient(timeout=10, trust_env=False) as client:
            for path in self._visit_first:
                self.responses.append(await client.get(f"{origin}{path}"))
            self.responses.append(
                await client.get(redirect_uri, params=self._params(state))
            )

    async def wait(self) -> None:
        await asyncio.gather(*self._tasks)

    @property
    def status_codes(self) -> list[int]:
        return [r.status_code for r in self.responses]


def never_called(url: str) -> Any:
    raise AssertionError(f"unexpected call with {url}")


@pytest.fixture
def app_credentials() -> AppCredentials:
    """Application credentials as resolved from the environment."""
    return AppCredentials(
        client_id="cid",
        client_secret="csecret",
        redirect_uri="http://localhost:3000/oauth2callback",
    )


@pytest.fixture
def credential_source() -> CredentialSource:
    return CredentialSource(
        credentials_path=Path("/nonexistent/credentials.json"),
        environ={"GOOGLE_CLIENT_ID": "cid", "GOOGLE_CLIENT_SECRET": "csecret"},
    )


@pytest.fixture
def token_path(tmp_path: Path) -> Path:
    return tmp_path / ".credentials" / "token.json"


@pytest.fixture
def token_store(token_path: Path) -> TokenStore:
    return TokenStore(token_path)


@pytest.fixture
def stored_record() -> TokenRecord:
    return TokenRecord(client_id="cid", client_secret="csecret", refresh_token="rt-stored")


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def free_port() -> int:
    """A loopback port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("localhost", 0))
        return int(sock.getsockname()[1])


@pytest.fixture
def revoke_failure() -> AuthenticationError:
    return AuthenticationError("Network error revoking token")
