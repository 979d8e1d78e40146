"""Configuration for Gmail OAuth authentication.

Application credentials (client id, secret and redirect base) are resolved
from environment variables first, falling back to a ``credentials.json``
file downloaded from Google Cloud Console. Paths, the callback port, the
consent timeout and the requested scopes are also read from the environment
here so the rest of the package never touches ``os.environ`` directly.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from gmail_auth.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_REDIRECT_URI = "http://localhost:3000/oauth2callback"
DEFAULT_AUTH_TIMEOUT_SECONDS = 300.0

# Full set for mail management
GMAIL_SCOPES_FULL = [
    "https://www.googleapis.com/auth/gmail.modify",
    "https://www.googleapis.com/auth/gmail.compose",
    "https://www.googleapis.com/auth/gmail.settings.basic",
]

GMAIL_SCOPES_READONLY = [
    "https://www.googleapis.com/auth/gmail.readonly",
]

NOT_CONFIGURED_MESSAGE = (
    "Gmail OAuth credentials not configured!\n\n"
    "Please configure credentials using one of these methods:\n\n"
    "1. Environment Variables:\n"
    "   Set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET, and optionally "
    "GOOGLE_REDIRECT_URI\n\n"
    "2. Credentials File:\n"
    "   Place credentials.json in the working directory (or point "
    "GMAIL_CREDENTIALS_PATH at it).\n"
    "   Download this file from Google Cloud Console:\n"
    "   - Go to https://console.cloud.google.com/apis/credentials\n"
    "   - Create OAuth 2.0 Client ID (Desktop app type)\n"
    "   - Download the JSON file and save as credentials.json\n"
)


@dataclass(frozen=True)
class AppCredentials:
    """Immutable OAuth application identity.

    Attributes:
        client_id: Google OAuth client ID.
        client_secret: Google OAuth client secret.
        redirect_uri: Redirect base URI; its host and path locate the
            local callback listener.
    """

    client_id: str
    client_secret: str
    redirect_uri: str = DEFAULT_REDIRECT_URI


def get_credentials_path() -> Path:
    """Path of the Google client secrets file."""
    override = os.getenv("GMAIL_CREDENTIALS_PATH")
    if override:
        return Path(override).expanduser()
    return Path.cwd() / "credentials.json"


def get_token_path() -> Path:
    """Path of the persisted refresh-token record."""
    override = os.getenv("GMAIL_TOKEN_PATH")
    if override:
        return Path(override).expanduser()
    return Path.cwd() / ".credentials" / "token.json"


def get_oauth_port() -> int | None:
    """Fixed callback port from OAUTH_PORT, or None for a random port per attempt."""
    raw = os.getenv("OAUTH_PORT")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(
            "OAUTH_PORT must be an integer",
            details={"value": raw},
        ) from e


def get_auth_timeout() -> float:
    """Seconds the user has to complete consent."""
    raw = os.getenv("OAUTH_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_AUTH_TIMEOUT_SECONDS
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(
            "OAUTH_TIMEOUT_SECONDS must be a number",
            details={"value": raw},
        ) from e


def is_read_only() -> bool:
    """Check if the process should request read-only access."""
    return os.getenv("READ_ONLY", "").lower() in ("true", "1", "yes")


def get_gmail_scopes() -> list[str]:
    """Get Gmail API scopes based on mode.

    Returns the read-only scope when READ_ONLY=true, full scopes otherwise.
    """
    if is_read_only():
        return list(GMAIL_SCOPES_READONLY)
    return list(GMAIL_SCOPES_FULL)


class CredentialSource:
    """Resolves the OAuth application credentials.

    Priority is environment variables, then the credentials file. Nothing is
    cached; every ``load()`` re-reads its sources.

    Example:
        >>> source = CredentialSource()
        >>> app = source.load()
        >>> app.client_id
        '1234.apps.googleusercontent.com'
    """

    def __init__(
        self,
        credentials_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the source.

        Args:
            credentials_path: Credentials file location. Defaults to
                ``get_credentials_path()`` evaluated at load time.
            environ: Environment mapping, defaults to ``os.environ``.
        """
        self._credentials_path = credentials_path
        self._environ = environ

    @property
    def credentials_path(self) -> Path:
        return self._credentials_path or get_credentials_path()

    def has_credentials_file(self) -> bool:
        return self.credentials_path.exists()

    def load(self) -> AppCredentials:
        """Resolve application credentials.

        Returns:
            The resolved AppCredentials.

        Raises:
            ConfigurationError: If no source is configured or the
                credentials file is malformed.
        """
        environ = self._environ if self._environ is not None else os.environ

        client_id = environ.get("GOOGLE_CLIENT_ID")
        client_secret = environ.get("GOOGLE_CLIENT_SECRET")
        if client_id and client_secret:
            logger.debug("Using OAuth credentials from environment")
            return AppCredentials(
                client_id=client_id,
                client_secret=client_secret,
                redirect_uri=environ.get("GOOGLE_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            )

        return self._load_file(self.credentials_path)

    def _load_file(self, path: Path) -> AppCredentials:
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigurationError(
                NOT_CONFIGURED_MESSAGE,
                details={"credentials_path": str(path)},
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Could not read credentials file: {e}",
                details={"credentials_path": str(path), "error_type": type(e).__name__},
            ) from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                "credentials.json is not valid JSON. "
                "Please download the credentials file from Google Cloud Console.",
                details={"credentials_path": str(path), "error": str(e)},
            ) from e

        section = None
        if isinstance(data, dict):
            # Google OAuth credentials can be in 'installed' or 'web' format
            section = data.get("installed") or data.get("web")

        if not isinstance(section, dict):
            raise ConfigurationError(
                'credentials.json does not contain "installed" or "web" credentials. '
                "Please download the credentials file from Google Cloud Console.",
                details={"credentials_path": str(path)},
            )

        client_id = section.get("client_id")
        client_secret = section.get("client_secret")
        if not client_id or not client_secret:
            raise ConfigurationError(
                "credentials.json is missing client_id or client_secret",
                details={"credentials_path": str(path)},
            )

        redirect_uris = section.get("redirect_uris") or []
        redirect_uri = redirect_uris[0] if redirect_uris else DEFAULT_REDIRECT_URI

        logger.debug("Using OAuth credentials from %s", path)
        return AppCredentials(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri or DEFAULT_REDIRECT_URI,
        )


__all__ = [
    "AppCredentials",
    "CredentialSource",
    "DEFAULT_AUTH_TIMEOUT_SECONDS",
    "DEFAULT_REDIRECT_URI",
    "GMAIL_SCOPES_FULL",
    "GMAIL_SCOPES_READONLY",
    "get_auth_timeout",
    "get_credentials_path",
    "get_gmail_scopes",
    "get_oauth_port",
    "get_token_path",
    "is_read_only",
]
