"""Shared utilities for gmail-auth.

Currently the exception hierarchy used across the package.
"""

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
