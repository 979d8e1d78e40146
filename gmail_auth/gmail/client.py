"""Authenticated Gmail API client factory."""

from __future__ import annotations

import logging

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import Resource, build

logger = logging.getLogger(__name__)


def build_gmail_service(credentials: Credentials) -> Resource:
    """Build a Gmail API service signed by ``credentials``.

    The service refreshes the access token through the credential whenever
    it has expired, so callers never handle expiry themselves.
    """
    service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
    logger.debug("Created Gmail service")
    return service


def get_profile_email(service: Resource) -> str:
    """Return the authenticated user's address."""
    profile = service.users().getProfile(userId="me").execute()
    return str(profile["emailAddress"])


__all__ = [
    "build_gmail_service",
    "get_profile_email",
]
