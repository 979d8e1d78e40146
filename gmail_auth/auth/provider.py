"""Google OAuth 2.0 provider operations.

This module wraps the calls the authentication core makes against Google's
identity endpoints:

- building the consent URL (offline access, so a refresh token is issued)
- exchanging an authorization code for tokens
- refreshing an access token from a stored refresh token
- revoking a token

The google-auth libraries are synchronous; each network call runs in a
worker thread via ``asyncio.to_thread`` so the event loop stays free to
serve the local callback listener.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import urlencode

import requests
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from gmail_auth.auth.storage import TokenRecord
from gmail_auth.config import AppCredentials
from gmail_auth.utils.errors import (
    AuthenticationError,
    InvalidatedTokenError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)

# Google OAuth endpoints
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GOOGLE_REVOKE_URI = "https://oauth2.googleapis.com/revoke"


class GoogleOAuthProvider:
    """Talks to Google's OAuth endpoints on behalf of the session.

    Example:
        >>> provider = GoogleOAuthProvider()
        >>> url = provider.authorization_url(app, redirect_uri, scopes, state)
        >>> creds = await provider.exchange_code(app, code, redirect_uri, scopes)
    """

    def __init__(self, request_timeout: int = 30) -> None:
        """Initialize the provider.

        Args:
            request_timeout: Seconds before revoke requests time out.
        """
        self._request_timeout = request_timeout

    def _client_config(self, app: AppCredentials, redirect_uri: str) -> dict[str, Any]:
        # "installed" = Desktop app client type, required by Google for
        # loopback redirect URIs.
        return {
            "installed": {
                "client_id": app.client_id,
                "client_secret": app.client_secret,
                "auth_uri": GOOGLE_AUTH_URI,
                "token_uri": GOOGLE_TOKEN_URI,
                "redirect_uris": [redirect_uri],
            }
        }

    def authorization_url(
        self,
        app: AppCredentials,
        redirect_uri: str,
        scopes: list[str],
        state: str,
    ) -> str:
        """Create the consent URL the user must visit.

        ``access_type=offline`` is what makes Google issue a refresh token;
        ``prompt=consent`` makes it issue one again on re-authorization.

        Args:
            app: Application credentials.
            redirect_uri: Exact redirect URI of the bound callback listener.
            scopes: OAuth scopes to request.
            state: CSRF token echoed back on the callback.

        Returns:
            The full authorization URL.
        """
        params = {
            "client_id": app.client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "state": state,
            "access_type": "offline",
            "prompt": "consent",
        }
        return f"{GOOGLE_AUTH_URI}?{urlencode(params)}"

    async def exchange_code(
        self,
        app: AppCredentials,
        code: str,
        redirect_uri: str,
        scopes: list[str],
    ) -> Credentials:
        """Exchange an authorization code for a credential.

        Args:
            app: Application credentials.
            code: Authorization code from the callback.
            redirect_uri: The redirect URI used in the authorization request.
            scopes: Scopes that were requested.

        Returns:
            Credentials holding refresh token, access token and expiry.

        Raises:
            TokenExchangeError: If the exchange fails or no refresh token
                is issued.
        """
        flow = Flow.from_client_config(
            self._client_config(app, redirect_uri),
            scopes=scopes,
            redirect_uri=redirect_uri,
        )

        try:
            await asyncio.to_thread(flow.fetch_token, code=code)
        except Exception as e:
            logger.error("Failed to exchange authorization code: %s", e)
            raise TokenExchangeError(
                f"Failed to exchange authorization code: {e}",
                details={"operation": "exchange_code", "error_type": type(e).__name__},
            ) from e

        credentials: Credentials = flow.credentials
        if not credentials.refresh_token:
            raise TokenExchangeError(
                "No refresh token received from Google",
                details={
                    "operation": "exchange_code",
                    "hint": "Revoke the app's access in your Google account and retry",
                },
            )

        logger.info("Successfully exchanged authorization code for tokens")
        return credentials

    def build_credentials(self, record: TokenRecord, scopes: list[str]) -> Credentials:
        """Build an unrefreshed credential from a stored record."""
        return Credentials(  # type: ignore[no-untyped-call]
            token=None,
            refresh_token=record.refresh_token,
            token_uri=GOOGLE_TOKEN_URI,
            client_id=record.client_id,
            client_secret=record.client_secret,
            scopes=scopes,
        )

    async def refresh(self, credentials: Credentials) -> None:
        """Mint a new access token from the refresh token, in place.

        Raises:
            InvalidatedTokenError: If Google rejects the refresh token or
                the refresh request fails.
        """
        try:
            await asyncio.to_thread(credentials.refresh, Request())
        except Exception as e:
            logger.warning("Failed to refresh token: %s", e)
            raise InvalidatedTokenError(
                f"Failed to refresh token: {e}",
                details={"operation": "refresh", "error_type": type(e).__name__},
            ) from e

        logger.debug("Refreshed access token")

    async def revoke(self, token: str) -> None:
        """Revoke a refresh or access token with Google.

        Raises:
            AuthenticationError: If the revoke request fails.
        """

        def _post() -> requests.Response:
            return requests.post(
                GOOGLE_REVOKE_URI,
                params={"token": token},
                headers={"content-type": "application/x-www-form-urlencoded"},
                timeout=self._request_timeout,
            )

        try:
            response = await asyncio.to_thread(_post)
        except requests.RequestException as e:
            raise AuthenticationError(
                f"Network error revoking token: {e}",
                details={"operation": "revoke", "error_type": type(e).__name__},
            ) from e

        if response.status_code != 200:
            raise AuthenticationError(
                f"Token revocation failed: {response.text}",
                details={"operation": "revoke", "status_code": response.status_code},
            )

        logger.info("Revoked token with Google")


__all__ = [
    "GoogleOAuthProvider",
    "GOOGLE_AUTH_URI",
    "GOOGLE_TOKEN_URI",
    "GOOGLE_REVOKE_URI",
]
