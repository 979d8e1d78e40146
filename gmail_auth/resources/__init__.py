"""MCP resources exposed by the gmail-auth server."""

from gmail_auth.resources.auth_status import AUTH_STATUS_URI, render_auth_status

__all__ = [
    "AUTH_STATUS_URI",
    "render_auth_status",
]
