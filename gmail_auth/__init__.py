"""Gmail OAuth 2.0 authentication.

Obtains, persists and renews Gmail API credentials for a process acting on
behalf of one human user.
"""

from gmail_auth.auth import AuthSessionManager, TokenRecord, TokenStore
from gmail_auth.config import AppCredentials, CredentialSource

__version__ = "0.1.0"

__all__ = [
    "AppCredentials",
    "AuthSessionManager",
    "CredentialSource",
    "TokenRecord",
    "TokenStore",
    "__version__",
]
