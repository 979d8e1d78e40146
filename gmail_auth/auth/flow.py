"""Interactive OAuth authorization-code flow.

One call to ``AuthorizationFlow.run`` is one attempt:

1. Bind a local listener on a transient port (random high port unless one
   is configured).
2. Build the Google consent URL for that listener's redirect URI.
3. Emit the URL (always, so a remote or headless user can still open it)
   and try to launch a browser.
4. Race the inbound callback against a deadline. Whichever finishes first
   decides the outcome; the other is disabled.
5. Tear down the listener and deadline on every exit path.

Possible outcomes: a fresh ``Credentials``, or one of
``PortConflictError``, ``OAuthProtocolError``, ``AuthTimeoutError``,
``TokenExchangeError`` or an unexpected error raised by the callback
handler.
"""

from __future__ import annotations

import asyncio
import logging
import random
import secrets
import sys
import webbrowser
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlparse

from google.oauth2.credentials import Credentials
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse, Response
from starlette.routing import Route

from gmail_auth.auth.callback_server import CallbackListener
from gmail_auth.auth.provider import GoogleOAuthProvider
from gmail_auth.config import DEFAULT_AUTH_TIMEOUT_SECONDS, AppCredentials
from gmail_auth.utils.errors import (
    AuthTimeoutError,
    OAuthProtocolError,
    TokenExchangeError,
)

logger = logging.getLogger(__name__)

CALLBACK_HOST = "localhost"
DEFAULT_CALLBACK_PATH = "/oauth2callback"
LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1"})
RANDOM_PORT_RANGE = (50000, 60000)

SUCCESS_PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>Authentication Successful</title>
  <style>
    body { font-family: Arial, sans-serif; text-align: center; padding: 50px; }
    .success { color: #28a745; font-size: 24px; }
    .message { margin-top: 20px; color: #666; }
  </style>
</head>
<body>
  <div class="success">&#10004; Authentication Successful!</div>
  <div class="message">You can close this window and return to the terminal.</div>
</body>
</html>
"""


def _error_page(title: str, message: str) -> str:
    return (
        f"<html><body><h1>{title}</h1>"
        f"<p>{message}</p>"
        "<p>You can close this window.</p></body></html>"
    )


class FlowState(str, Enum):
    """Lifecycle of one authorization attempt."""

    IDLE = "idle"
    LISTENING = "listening"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class AuthorizationAttempt:
    """Ephemeral state of a single interactive authorization.

    Exactly one terminal outcome is ever recorded in ``outcome``.
    """

    port: int
    redirect_uri: str
    callback_path: str
    state: str
    outcome: asyncio.Future[Credentials]
    status: FlowState = FlowState.IDLE
    listener: CallbackListener | None = None
    deadline: asyncio.Task[None] | None = None
    auth_url: str | None = field(default=None, repr=False)

    def resolve(self, credentials: Credentials) -> bool:
        """Record success. Returns False if the attempt already ended."""
        if self.outcome.done():
            return False
        self.outcome.set_result(credentials)
        return True

    def fail(self, error: BaseException) -> bool:
        """Record failure. Returns False if the attempt already ended."""
        if self.outcome.done():
            return False
        self.outcome.set_exception(error)
        return True


def _print_auth_url(url: str) -> None:
    # stderr: stdout may be an MCP stdio transport
    print(
        "\nAuthorize this application by visiting this URL:\n\n"
        f"{url}\n\n"
        "Waiting for the authorization callback...\n",
        file=sys.stderr,
        flush=True,
    )


def random_port() -> int:
    """Pick a random high port for one attempt."""
    return random.randrange(*RANDOM_PORT_RANGE)


def callback_path_for(redirect_base: str) -> str:
    """Route path of the local listener for a configured redirect base.

    Only an http(s) loopback base contributes its path; anything else
    (out-of-band URNs, remote web redirects) gets the default path.
    """
    base = urlparse(redirect_base)
    if base.scheme not in ("http", "https") or base.hostname not in LOOPBACK_HOSTS:
        return DEFAULT_CALLBACK_PATH
    if not base.path.startswith("/") or base.path == "/":
        return DEFAULT_CALLBACK_PATH
    return base.path


class AuthorizationFlow:
    """Runs interactive three-legged OAuth round trips.

    The deadline is driven by an injectable ``sleep`` coroutine so tests can
    control the clock without real waits.

    Attributes:
        last_attempt: The most recent AuthorizationAttempt, for inspection.

    Example:
        >>> flow = AuthorizationFlow(GoogleOAuthProvider())
        >>> creds = await flow.run(app_credentials, scopes)
    """

    def __init__(
        self,
        provider: GoogleOAuthProvider | None = None,
        timeout: float = DEFAULT_AUTH_TIMEOUT_SECONDS,
        port: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        open_browser: Callable[[str], object] = webbrowser.open,
        emit_url: Callable[[str], None] = _print_auth_url,
    ) -> None:
        """Initialize the flow.

        Args:
            provider: OAuth provider operations. Defaults to Google.
            timeout: Seconds the user has to complete consent.
            port: Fixed callback port; None picks a random high port per
                attempt.
            sleep: Coroutine function used for the deadline.
            open_browser: Launches a browser on a URL.
            emit_url: Receives the authorization URL on every attempt.
        """
        self._provider = provider or GoogleOAuthProvider()
        self._timeout = timeout
        self._port = port
        self._sleep = sleep
        self._open_browser = open_browser
        self._emit_url = emit_url
        self.last_attempt: AuthorizationAttempt | None = None

    async def run(self, app: AppCredentials, scopes: list[str]) -> Credentials:
        """Run one interactive authorization.

        Args:
            app: Application credentials.
            scopes: Scopes to request.

        Returns:
            Credentials freshly minted from the authorization code.

        Raises:
            PortConflictError: The callback port could not be bound.
            OAuthProtocolError: The provider returned an error, no code, or
                a mismatched state.
            AuthTimeoutError: No callback arrived before the deadline.
            TokenExchangeError: The code could not be exchanged.
        """
        attempt = self._new_attempt(app)
        self.last_attempt = attempt

        listener = CallbackListener(
            self._build_app(attempt, app, scopes),
            port=attempt.port,
            host=CALLBACK_HOST,
        )
        try:
            # Raises PortConflictError before anything is emitted
            listener.bind()
        except BaseException:
            attempt.status = FlowState.FAILED
            raise
        attempt.listener = listener

        try:
            await listener.start()
            attempt.status = FlowState.LISTENING

            auth_url = self._provider.authorization_url(
                app, attempt.redirect_uri, scopes, attempt.state
            )
            attempt.auth_url = auth_url
            logger.info(
                "Waiting for OAuth callback on port %d (state %s...)",
                attempt.port,
                attempt.state[:8],
            )
            self._emit_url(auth_url)
            self._launch_browser(auth_url)

            attempt.deadline = asyncio.create_task(self._sleep(self._timeout))
            await asyncio.wait(
                {attempt.outcome, attempt.deadline},
                return_when=asyncio.FIRST_COMPLETED,
            )

            if not attempt.outcome.done():
                # Deadline won; make sure a late callback cannot resolve it
                attempt.outcome.cancel()
                raise AuthTimeoutError(
                    f"Authentication timed out after {self._timeout:g} seconds. "
                    "Please try again.",
                    timeout_seconds=self._timeout,
                    details={"port": attempt.port},
                )

            credentials = attempt.outcome.result()
            attempt.status = FlowState.SUCCEEDED
            logger.info("OAuth authorization completed")
            return credentials

        except BaseException:
            attempt.status = FlowState.FAILED
            raise

        finally:
            if attempt.deadline is not None and not attempt.deadline.done():
                attempt.deadline.cancel()
            if not attempt.outcome.done():
                attempt.outcome.cancel()
            await listener.close()

    def _new_attempt(self, app: AppCredentials) -> AuthorizationAttempt:
        port = self._port if self._port is not None else random_port()
        callback_path = callback_path_for(app.redirect_uri)
        return AuthorizationAttempt(
            port=port,
            redirect_uri=f"http://{CALLBACK_HOST}:{port}{callback_path}",
            callback_path=callback_path,
            state=secrets.token_urlsafe(32),
            outcome=asyncio.get_running_loop().create_future(),
        )

    def _launch_browser(self, url: str) -> None:
        try:
            opened = self._open_browser(url)
        except Exception as e:
            logger.warning("Could not open a browser (%s); open the URL manually", e)
            return
        if opened is False:
            logger.warning("No browser available; open the URL manually")

    def _build_app(
        self,
        attempt: AuthorizationAttempt,
        app: AppCredentials,
        scopes: list[str],
    ) -> Starlette:
        async def oauth_callback(request: Request) -> Response:
            """Handle the OAuth redirect from Google."""
            if attempt.outcome.done():
                return HTMLResponse(
                    _error_page("Already Completed", "This sign-in attempt has ended."),
                    status_code=410,
                )

            try:
                return await self._handle_callback(request, attempt, app, scopes)
            except Exception as e:
                logger.error("Error processing OAuth callback: %s", e, exc_info=True)
                attempt.fail(e)
                return HTMLResponse(
                    _error_page("Error", "Internal server error."),
                    status_code=500,
                )

        return Starlette(routes=[Route(attempt.callback_path, oauth_callback)])

    async def _handle_callback(
        self,
        request: Request,
        attempt: AuthorizationAttempt,
        app: AppCredentials,
        scopes: list[str],
    ) -> Response:
        params = request.query_params

        if "error" in params:
            error_code = params.get("error")
            description = params.get("error_description")
            logger.error("OAuth provider returned error: %s", error_code)
            attempt.fail(
                OAuthProtocolError(
                    f"OAuth error: {error_code} - {description or 'No description'}",
                    error_code=error_code,
                    error_description=description,
                )
            )
            return HTMLResponse(
                _error_page("Authentication Failed", f"Authorization failed: {error_code}"),
                status_code=400,
            )

        if params.get("state") != attempt.state:
            attempt.fail(
                OAuthProtocolError(
                    "State mismatch - possible CSRF attack",
                    details={"hint": "Request may have been tampered with"},
                )
            )
            return HTMLResponse(
                _error_page("Security Error", "State mismatch."),
                status_code=400,
            )

        code = params.get("code")
        if not code:
            attempt.fail(
                OAuthProtocolError(
                    "No authorization code in callback",
                    details={"params": list(params.keys())},
                )
            )
            return HTMLResponse(
                _error_page("Error", "No authorization code provided."),
                status_code=400,
            )

        try:
            credentials = await self._provider.exchange_code(
                app, code, attempt.redirect_uri, scopes
            )
        except TokenExchangeError as e:
            attempt.fail(e)
            return HTMLResponse(
                _error_page("Authentication Failed", "Could not exchange the code."),
                status_code=500,
            )

        if not attempt.resolve(credentials):
            # Deadline fired while the exchange was in flight
            return HTMLResponse(
                _error_page("Already Completed", "This sign-in attempt has ended."),
                status_code=410,
            )
        return HTMLResponse(SUCCESS_PAGE)


__all__ = [
    "AuthorizationAttempt",
    "AuthorizationFlow",
    "DEFAULT_CALLBACK_PATH",
    "callback_path_for",
    "FlowState",
    "random_port",
]
