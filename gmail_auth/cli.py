"""Command-line sign-in.

Runs the OAuth flow once (or validates the stored token), checks Gmail
access and reports the authenticated account. Run this before starting the
MCP server so the server never has to open a browser itself.
"""

from __future__ import annotations

import asyncio
import sys

from dotenv import load_dotenv

from gmail_auth.auth.session import AuthSessionManager
from gmail_auth.gmail.client import get_profile_email
from gmail_auth.logging_config import configure_logging
from gmail_auth.utils.errors import (
    ConfigurationError,
    GmailAuthError,
    PortConflictError,
)


async def authenticate(session: AuthSessionManager) -> str:
    """Sign in and return the authenticated address."""
    service = await session.get_gmail_service()
    return await asyncio.to_thread(get_profile_email, service)


def main() -> int:
    load_dotenv()
    configure_logging()

    print("\nGmail - Authentication Setup\n", file=sys.stderr)
    print(
        "This will open your browser to authenticate with the Gmail API.\n"
        "Please sign in and grant the requested permissions.\n",
        file=sys.stderr,
    )

    session = AuthSessionManager()
    try:
        email = asyncio.run(authenticate(session))
    except (ConfigurationError, PortConflictError) as e:
        # Message carries multi-line remediation steps
        print(f"\nAuthentication failed!\n\n{e.message}", file=sys.stderr)
        return 1
    except GmailAuthError as e:
        print(f"\nAuthentication failed: {e}", file=sys.stderr)
        return 1

    print(f"\nAuthenticated as: {email}", file=sys.stderr)
    print(f"Your token has been saved to {session.token_store.path}\n", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
