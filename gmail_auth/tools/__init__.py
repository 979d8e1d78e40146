"""MCP tools exposed by the gmail-auth server."""

from gmail_auth.tools.auth import gmail_get_auth_status, gmail_login, gmail_logout

__all__ = [
    "gmail_get_auth_status",
    "gmail_login",
    "gmail_logout",
]
