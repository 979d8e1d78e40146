"""Exception hierarchy for Gmail authentication.

Every failure the authentication core can produce maps to exactly one
exception class, so callers branch on the type rather than on message text.
Each exception carries a ``details`` dictionary with the structured context
(port, provider error code, storage operation, ...) a CLI or UI needs to
render remediation.
"""

from __future__ import annotations


class GmailAuthError(Exception):
    """Base exception for all gmail-auth errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, details: dict[str, object] | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(GmailAuthError):
    """Raised when the OAuth application credentials are missing or malformed.

    Never retried automatically; the user must fix the environment
    variables or the credentials file.
    """

    pass


class StorageError(GmailAuthError):
    """Raised for token file failures other than "file not found".

    ``details["operation"]`` names the failing operation
    (``load``, ``save`` or ``delete``).
    """

    pass


class AuthenticationError(GmailAuthError):
    """Base class for failures of the OAuth exchange itself."""

    pass


class PortConflictError(AuthenticationError):
    """Raised when the local callback listener cannot bind its port.

    Attributes:
        port: The port that could not be bound.
    """

    def __init__(
        self,
        message: str,
        port: int,
        details: dict[str, object] | None = None,
    ) -> None:
        details = {"port": port, **(details or {})}
        super().__init__(message, details)
        self.port = port


class OAuthProtocolError(AuthenticationError):
    """Raised when the provider redirects back with an error or without a code.

    Attributes:
        error_code: OAuth error code returned by the provider, if any.
        error_description: Provider supplied description, if any.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        error_description: str | None = None,
        details: dict[str, object] | None = None,
    ) -> None:
        merged: dict[str, object] = dict(details or {})
        if error_code:
            merged["oauth_error"] = error_code
        if error_description:
            merged["oauth_error_description"] = error_description
        super().__init__(message, merged)
        self.error_code = error_code
        self.error_description = error_description


class AuthTimeoutError(AuthenticationError, TimeoutError):
    """Raised when the user does not complete consent within the window.

    Also a builtin ``TimeoutError`` so generic timeout handling catches it.

    Attributes:
        timeout_seconds: Length of the window that elapsed.
    """

    def __init__(
        self,
        message: str,
        timeout_seconds: float,
        details: dict[str, object] | None = None,
    ) -> None:
        details = {"timeout_seconds": timeout_seconds, **(details or {})}
        super().__init__(message, details)
        self.timeout_seconds = timeout_seconds


class TokenExchangeError(AuthenticationError):
    """Raised when exchanging an authorization code for tokens fails."""

    pass


class InvalidatedTokenError(AuthenticationError):
    """Raised when a stored refresh token is rejected by the provider.

    The session manager treats this as a signal to fall back to a fresh
    interactive authorization instead of surfacing it.
    """

    pass


__all__ = [
    "GmailAuthError",
    "ConfigurationError",
    "StorageError",
    "AuthenticationError",
    "PortConflictError",
    "OAuthProtocolError",
    "AuthTimeoutError",
    "TokenExchangeError",
    "InvalidatedTokenError",
]
