"""FastMCP server exposing Gmail authentication.

Tools:
- gmail_login: run the browser sign-in if no valid token is stored
- gmail_logout: revoke and delete the stored token
- gmail_get_auth_status: report whether the stored token works

Resource:
- gmail://auth-status: markdown status with setup instructions

One AuthSessionManager is created per server and bound into every tool, so
all tools share the same cached credential.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.types import ToolAnnotations

from gmail_auth.auth.session import AuthSessionManager
from gmail_auth.resources.auth_status import AUTH_STATUS_URI, render_auth_status
from gmail_auth.tools import gmail_get_auth_status, gmail_login, gmail_logout

logger = logging.getLogger(__name__)

SERVER_NAME = "gmail-auth"


@asynccontextmanager
async def server_lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Log startup and shutdown of the server."""
    logger.info("Gmail auth server starting up...")
    yield {}
    logger.info("Gmail auth server shutting down...")


def _register_auth_tools(mcp: FastMCP, session: AuthSessionManager) -> None:
    """Register the authentication tools bound to ``session``."""

    @mcp.tool(
        name="gmail_login",
        annotations=ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
        ),
    )
    async def gmail_login_tool() -> dict[str, Any]:
        """Sign in to Gmail using the local browser OAuth flow.

        Prints the Google consent URL and opens a browser. After the user
        approves, the callback is received on localhost and the refresh
        token is stored.

        Returns:
            Success: {status, data: {email}, message}
            Error: {status, error, error_code}
        """
        return await gmail_login(session)

    @mcp.tool(
        name="gmail_logout",
        annotations=ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
        ),
    )
    async def gmail_logout_tool() -> dict[str, Any]:
        """Sign out of Gmail by revoking and clearing stored credentials."""
        return await gmail_logout(session)

    @mcp.tool(
        name="gmail_get_auth_status",
        annotations=ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
        ),
    )
    async def gmail_get_auth_status_tool() -> dict[str, Any]:
        """Check if the user is authenticated with Gmail.

        Returns:
            Success response with authenticated, email, mode and scopes.
        """
        return await gmail_get_auth_status(session)


def _register_resources(mcp: FastMCP, session: AuthSessionManager) -> None:
    @mcp.resource(
        AUTH_STATUS_URI,
        name="auth-status",
        description="Gmail authentication status and setup instructions",
        mime_type="text/markdown",
    )
    async def auth_status_resource() -> str:
        return await render_auth_status(session)


def create_server(session: AuthSessionManager | None = None) -> FastMCP:
    """Create and configure the FastMCP server instance.

    Args:
        session: Session shared by all tools. A new one is created if omitted.

    Returns:
        Configured FastMCP server instance.
    """
    session = session or AuthSessionManager()

    server = FastMCP(
        name=SERVER_NAME,
        lifespan=server_lifespan,
    )
    _register_auth_tools(server, session)
    _register_resources(server, session)

    logger.info("Gmail auth server created")
    return server


__all__ = [
    "SERVER_NAME",
    "create_server",
    "server_lifespan",
]
