"""Gmail API client construction."""

from gmail_auth.gmail.client import build_gmail_service, get_profile_email

__all__ = [
    "build_gmail_service",
    "get_profile_email",
]
