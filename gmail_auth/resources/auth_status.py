"""Markdown report of the Gmail authentication state.

Served as the ``gmail://auth-status`` MCP resource so a client can tell the
user what to do next: nothing, sign in, or configure OAuth credentials.
"""

from __future__ import annotations

import asyncio
import logging

from gmail_auth.auth.session import AuthSessionManager
from gmail_auth.gmail.client import build_gmail_service, get_profile_email
from gmail_auth.utils.errors import ConfigurationError

logger = logging.getLogger(__name__)

AUTH_STATUS_URI = "gmail://auth-status"


async def render_auth_status(session: AuthSessionManager) -> str:
    """Describe the current authentication state as markdown.

    Never starts an interactive sign-in.
    """
    try:
        credentials = await session.get_stored_client()
        if credentials is not None:
            service = build_gmail_service(credentials)
            email = await asyncio.to_thread(get_profile_email, service)
            return authenticated_message(email)

        try:
            session.credential_source.load()
        except ConfigurationError:
            return not_configured_message(str(session.credential_source.credentials_path))

        return not_authenticated_message(
            str(session.token_store.path),
            token_present=session.token_store.exists(),
        )
    except Exception as e:
        logger.error("Error rendering auth status: %s", e)
        return error_message(str(e))


def authenticated_message(email: str) -> str:
    return f"""# Gmail Authentication Status

**AUTHENTICATED**

You are currently authenticated with Gmail as: **{email}**

The stored refresh token is valid; access tokens are renewed automatically.
"""


def not_authenticated_message(token_path: str, token_present: bool = False) -> str:
    problem = (
        "The stored token was rejected by Google (expired or revoked)."
        if token_present
        else "OAuth credentials are configured, but you haven't authenticated yet."
    )
    return f"""# Gmail Authentication Status

**NOT AUTHENTICATED**

## What's Wrong

{problem}

## How to Fix

Run this command in your terminal:

```bash
gmail-auth-login
```

This will:
1. Print a Google sign-in URL and open it in your browser
2. Ask you to sign in with your Google account
3. Request permission to access Gmail
4. Save a refresh token to `{token_path}` for future use
"""


def not_configured_message(credentials_path: str) -> str:
    return f"""# Gmail Authentication Status

**NOT CONFIGURED**

## What's Wrong

No Google Cloud OAuth credentials are configured.

## How to Fix

### Step 1: Create Google Cloud Credentials

1. Go to [Google Cloud Console](https://console.cloud.google.com)
2. Create a new project (or select existing)
3. Enable the Gmail API
4. Configure the OAuth consent screen and add yourself as a test user
5. Create an OAuth 2.0 Client ID (Desktop app type)

### Step 2: Provide the Credentials

Either set `GOOGLE_CLIENT_ID` and `GOOGLE_CLIENT_SECRET`, or save the
downloaded JSON file as:

```
{credentials_path}
```

### Step 3: Authenticate

```bash
gmail-auth-login
```
"""


def error_message(error: str) -> str:
    return f"""# Gmail Authentication Status

**ERROR CHECKING STATUS**

An error occurred while checking authentication status:

```
{error}
```

Check the server logs for more details, then try `gmail-auth-login`.
"""


__all__ = [
    "AUTH_STATUS_URI",
    "render_auth_status",
]
