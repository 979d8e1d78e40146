"""OAuth 2.0 authentication for the Gmail API.

This package provides:

- File-based persistence of the refresh token
- Google provider operations (consent URL, code exchange, refresh, revoke)
- The interactive local-callback authorization flow
- The session manager that ties them together

Usage:
    >>> from gmail_auth.auth import AuthSessionManager
    >>>
    >>> session = AuthSessionManager()
    >>> credentials = await session.get_client()
"""

from gmail_auth.auth.callback_server import CallbackListener
from gmail_auth.auth.flow import AuthorizationAttempt, AuthorizationFlow, FlowState
from gmail_auth.auth.provider import (
    GOOGLE_AUTH_URI,
    GOOGLE_REVOKE_URI,
    GOOGLE_TOKEN_URI,
    GoogleOAuthProvider,
)
from gmail_auth.auth.session import AuthSessionManager
from gmail_auth.auth.storage import TokenRecord, TokenStore

__all__ = [
    # Session
    "AuthSessionManager",
    # Flow
    "AuthorizationFlow",
    "AuthorizationAttempt",
    "FlowState",
    "CallbackListener",
    # Provider
    "GoogleOAuthProvider",
    "GOOGLE_AUTH_URI",
    "GOOGLE_TOKEN_URI",
    "GOOGLE_REVOKE_URI",
    # Storage
    "TokenRecord",
    "TokenStore",
]
