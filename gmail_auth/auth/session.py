"""Authentication session for one process.

``AuthSessionManager`` is the entry point the rest of the application uses
to obtain Gmail credentials. It is constructed once and passed to whatever
needs it; there is no module-level instance.

Resolution order in ``get_client``:

1. The credential already cached in this session (no network call).
2. The stored refresh token, validated by forcing a refresh. A rejected
   token is discarded silently.
3. A new interactive authorization, whose refresh token is then stored.
"""

from __future__ import annotations

import asyncio
import logging

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource

from gmail_auth.auth.flow import AuthorizationFlow
from gmail_auth.auth.provider import GoogleOAuthProvider
from gmail_auth.auth.storage import TokenRecord, TokenStore
from gmail_auth.config import (
    CredentialSource,
    get_auth_timeout,
    get_gmail_scopes,
    get_oauth_port,
)
from gmail_auth.gmail.client import build_gmail_service
from gmail_auth.utils.errors import (
    InvalidatedTokenError,
    StorageError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)


class AuthSessionManager:
    """Serves validated Gmail credentials to the process.

    Attributes:
        token_store: Where the refresh token is persisted.
        credential_source: Resolves the OAuth application identity.

    Example:
        >>> session = AuthSessionManager()
        >>> creds = await session.get_client()
        >>> service = await session.get_gmail_service()
    """

    def __init__(
        self,
        credential_source: CredentialSource | None = None,
        token_store: TokenStore | None = None,
        provider: GoogleOAuthProvider | None = None,
        flow: AuthorizationFlow | None = None,
        scopes: list[str] | None = None,
    ) -> None:
        self.credential_source = credential_source or CredentialSource()
        self.token_store = token_store or TokenStore()
        self._provider = provider or GoogleOAuthProvider()
        self._flow = flow or AuthorizationFlow(
            self._provider,
            timeout=get_auth_timeout(),
            port=get_oauth_port(),
        )
        self._scopes = scopes or get_gmail_scopes()
        self._credentials: Credentials | None = None
        # One authorization at a time per session
        self._lock = asyncio.Lock()

    @property
    def scopes(self) -> list[str]:
        return list(self._scopes)

    @property
    def is_authenticated(self) -> bool:
        """Whether a credential is cached in this session."""
        return self._credentials is not None

    async def get_client(self) -> Credentials:
        """Get the session credential, authorizing interactively if needed.

        Returns:
            A credential able to sign Gmail API requests.

        Raises:
            ConfigurationError: If no app credentials are configured.
            PortConflictError, OAuthProtocolError, AuthTimeoutError,
            TokenExchangeError: Propagated unchanged from the flow.
            StorageError: If the new token cannot be saved.
        """
        async with self._lock:
            if self._credentials is not None:
                return self._credentials

            credentials = await self._load_stored_credentials()
            if credentials is None:
                credentials = await self._authorize()

            self._credentials = credentials
            return credentials

    async def get_stored_client(self) -> Credentials | None:
        """Get the session credential without ever starting an authorization.

        Returns the cached credential, or validates the stored token and
        caches the result.

        Returns:
            The credential, or None if nothing valid is cached or stored.
        """
        async with self._lock:
            if self._credentials is None:
                self._credentials = await self._load_stored_credentials()
            return self._credentials

    async def has_valid_token(self) -> bool:
        """Check whether the stored token is accepted by Google.

        Never starts an interactive authorization.
        """
        try:
            return await self._load_stored_credentials() is not None
        except Exception as e:
            logger.debug("Stored token check failed: %s", e)
            return False

    async def get_access_token(self) -> str:
        """Return a current access token, refreshing it if it has expired."""
        credentials = await self.get_client()
        if credentials.valid:
            return str(credentials.token)

        try:
            await self._provider.refresh(credentials)
        except InvalidatedTokenError as e:
            logger.warning("Session token was rejected, re-authenticating: %s", e)
            async with self._lock:
                if self._credentials is credentials:
                    self._credentials = None
            credentials = await self.get_client()
        return str(credentials.token)

    async def get_gmail_service(self) -> Resource:
        """Build a Gmail API service on the session credential."""
        return build_gmail_service(await self.get_client())

    async def revoke(self) -> bool:
        """Revoke the token and forget it locally.

        Remote revocation is best effort. The stored record is deleted and
        the cached credential cleared even if Google cannot be reached.

        Returns:
            True if a stored token file was deleted.
        """
        async with self._lock:
            refresh_token = self._current_refresh_token()
            if refresh_token:
                try:
                    await self._provider.revoke(refresh_token)
                except Exception as e:
                    logger.warning("Could not revoke token with Google: %s", e)

            try:
                return self.token_store.delete()
            finally:
                self._credentials = None
                logger.info("Session credentials cleared")

    def _current_refresh_token(self) -> str | None:
        if self._credentials is not None and self._credentials.refresh_token:
            return str(self._credentials.refresh_token)
        try:
            record = self.token_store.load()
        except StorageError as e:
            logger.warning("Could not load token for revocation: %s", e)
            return None
        return record.refresh_token if record else None

    async def _load_stored_credentials(self) -> Credentials | None:
        try:
            record = self.token_store.load()
        except StorageError as e:
            logger.warning("Ignoring unreadable token file: %s", e)
            return None

        if record is None:
            return None

        candidate = self._provider.build_credentials(record, self._scopes)
        try:
            await self._provider.refresh(candidate)
        except InvalidatedTokenError as e:
            logger.info("Stored token is no longer valid: %s", e)
            return None

        logger.debug("Validated stored token")
        return candidate

    async def _authorize(self) -> Credentials:
        app = self.credential_source.load()
        logger.info("Starting interactive OAuth authorization")
        credentials = await self._flow.run(app, self._scopes)

        if not credentials.refresh_token:
            raise TokenExchangeError(
                "No refresh token received. This should not happen with a new authorization.",
                details={"operation": "save_token"},
            )

        self.token_store.save(
            TokenRecord(
                client_id=app.client_id,
                client_secret=app.client_secret,
                refresh_token=credentials.refresh_token,
            )
        )
        return credentials


__all__ = [
    "AuthSessionManager",
]
