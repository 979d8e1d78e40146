"""Response envelopes shared by the MCP tools."""

from __future__ import annotations

from typing import Any

from gmail_auth.utils.errors import GmailAuthError


class ResponseKeys:
    """Standard keys for tool responses."""

    STATUS = "status"
    DATA = "data"
    MESSAGE = "message"
    ERROR = "error"
    ERROR_CODE = "error_code"


def build_success_response(
    data: Any,
    message: str | None = None,
) -> dict[str, Any]:
    """Build standardized success response.

    Args:
        data: Tool-specific payload.
        message: Optional human-readable message.

    Returns:
        Standardized success response dict.
    """
    response: dict[str, Any] = {
        ResponseKeys.STATUS: "success",
        ResponseKeys.DATA: data,
    }
    if message:
        response[ResponseKeys.MESSAGE] = message
    return response


def build_error_response(
    error: str,
    error_code: str | None = None,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build standardized error response.

    Args:
        error: Human-readable error message.
        error_code: Optional error code for programmatic handling.
        details: Optional additional error details.

    Returns:
        Standardized error response dict.
    """
    response: dict[str, Any] = {
        ResponseKeys.STATUS: "error",
        ResponseKeys.ERROR: error,
    }
    if error_code:
        response[ResponseKeys.ERROR_CODE] = error_code
    if details:
        response.update(details)
    return response


def error_response_from(error: GmailAuthError) -> dict[str, Any]:
    """Build an error response keyed by the exception class name."""
    return build_error_response(
        error=error.message,
        error_code=type(error).__name__,
        details={"details": error.details} if error.details else None,
    )


__all__ = [
    "ResponseKeys",
    "build_error_response",
    "build_success_response",
    "error_response_from",
]
