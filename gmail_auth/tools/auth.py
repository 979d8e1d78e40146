"""Authentication tools: sign in, sign out and status.

Each tool takes the process's AuthSessionManager explicitly; the server
binds it when registering the tools.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from gmail_auth.auth.session import AuthSessionManager
from gmail_auth.config import is_read_only
from gmail_auth.gmail.client import build_gmail_service, get_profile_email
from gmail_auth.tools.base import (
    build_error_response,
    build_success_response,
    error_response_from,
)
from gmail_auth.utils.errors import GmailAuthError

logger = logging.getLogger(__name__)


async def gmail_login(session: AuthSessionManager) -> dict[str, Any]:
    """Sign in to Gmail, running the browser flow if no valid token exists.

    The authorization URL is written to stderr and a browser is opened when
    possible. The call returns once the user completes consent or the
    attempt fails.

    Returns:
        Success: {status, data: {email}, message}
        Error: {status, error, error_code}
    """
    try:
        credentials = await session.get_client()
        service = build_gmail_service(credentials)
        email = await asyncio.to_thread(get_profile_email, service)
    except GmailAuthError as e:
        logger.error("Authentication failed: %s", e)
        return error_response_from(e)
    except Exception as e:
        logger.error("Unexpected error during login: %s", e)
        return build_error_response(error=f"Login failed: {e}", error_code="LoginError")

    logger.info("Authenticated as %s", email)
    return build_success_response(
        data={"email": email},
        message=f"Successfully authenticated as {email}",
    )


async def gmail_logout(session: AuthSessionManager) -> dict[str, Any]:
    """Sign out of Gmail by revoking and deleting stored credentials.

    Returns:
        Success response with logout confirmation.
    """
    try:
        had_credentials = await session.revoke()
    except GmailAuthError as e:
        logger.warning("Error deleting token during logout: %s", e)
        return error_response_from(e)

    if had_credentials:
        logger.info("User logged out successfully")
        return build_success_response(
            data={"logged_out": True},
            message="Successfully logged out. You will need to re-authenticate.",
        )

    logger.debug("Logout called but no credentials were stored")
    return build_success_response(
        data={"logged_out": False},
        message="No credentials were stored. Already logged out.",
    )


async def gmail_get_auth_status(session: AuthSessionManager) -> dict[str, Any]:
    """Check whether the stored token is valid, without starting a sign-in.

    Returns:
        Success response with:
        - authenticated: True/False
        - email: User's email if authenticated, None otherwise
        - mode: "read_only" or "full_access"
        - scopes: Scopes this process requests
    """
    mode = "read_only" if is_read_only() else "full_access"
    data: dict[str, Any] = {
        "authenticated": False,
        "email": None,
        "mode": mode,
        "scopes": session.scopes,
    }

    try:
        credentials = await session.get_stored_client()
        if credentials is None:
            return build_success_response(
                data=data,
                message="Not authenticated. Use gmail_login to sign in.",
            )
        service = build_gmail_service(credentials)
        email = await asyncio.to_thread(get_profile_email, service)
    except Exception as e:
        logger.error("Error checking auth status: %s", e)
        return build_error_response(
            error=f"Failed to check authentication status: {e}",
            error_code="StatusCheckError",
        )

    data.update(authenticated=True, email=email)
    return build_success_response(data=data, message=f"Authenticated as {email}")


__all__ = [
    "gmail_get_auth_status",
    "gmail_login",
    "gmail_logout",
]
