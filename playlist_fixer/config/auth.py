"""
OAuth2 authorization code flow for the Spotify Web API

This module turns a browser login into an authenticated API client. It owns
the only concurrent piece of the application: a short-lived local HTTP
listener that receives Spotify's redirect on its own thread.

The login follows Spotify's authorization code flow:
1. Generate a single-use state token (CSRF protection)
2. Start the local callback listener on the redirect URL's host and port
3. Print the authorization URL; the user opens it in a browser
4. Receive the redirect, validate the state, exchange the code for tokens
5. Build the authenticated client and hand it to the waiting caller

Hand-off model:
The listener thread and the caller share nothing but a single-slot queue.
The listener puts exactly one value into it, either the authenticated client
or the fatal exception that ended the login. The caller performs one blocking
get and never touches the listener again apart from shutting it down.

Listener states:
IDLE -> LISTENING -> AWAITING_CALLBACK -> EXCHANGING -> DELIVERED
                                       \\-> FAILED (state mismatch, exchange failure)
"""

import base64
import html
import queue
import secrets
import threading
import urllib.parse
from enum import Enum
from http.server import HTTPServer, BaseHTTPRequestHandler
from typing import Any, Callable, Optional, Tuple

import requests

from .settings import Settings
from ..exceptions import (
    AuthorizationError,
    AuthorizationStateMismatch,
    EntropyUnavailable,
    ListenerBindError,
    LoginTimeout,
    TokenExchangeFailed,
)
from ..spotify.models import Credential
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Minimum entropy for the state token
STATE_TOKEN_BYTES = 16


def generate_state(n_bytes: int = STATE_TOKEN_BYTES) -> str:
    """
    Create a cryptographically secure, URL-safe state token

    Args:
        n_bytes: Number of random bytes (at least 16)

    Returns:
        URL-safe base64 text without padding

    Raises:
        ValueError: If fewer than 16 bytes are requested
        EntropyUnavailable: If the OS random source cannot supply the bytes
    """
    if n_bytes < STATE_TOKEN_BYTES:
        raise ValueError(f"State token needs at least {STATE_TOKEN_BYTES} bytes, got {n_bytes}")

    try:
        raw = secrets.token_bytes(n_bytes)
    except (NotImplementedError, OSError) as e:
        raise EntropyUnavailable(
            f"Secure random source unavailable: {e}",
            details={'original_error': repr(e)}
        ) from e

    if len(raw) != n_bytes:
        raise EntropyUnavailable(f"Random source returned {len(raw)} of {n_bytes} bytes")

    return base64.urlsafe_b64encode(raw).decode('ascii').rstrip('=')


def build_authorize_url(settings: Settings, state: str) -> str:
    """
    Build the Spotify login URL for the authorization code flow

    Args:
        settings: Settings carrying client ID, redirect URL and scopes
        state: State token echoed back on the redirect

    Returns:
        Complete authorization URL to open in a browser
    """
    params = {
        'client_id': settings.spotify.client_id,
        'response_type': 'code',  # Authorization code flow
        'redirect_uri': settings.spotify.redirect_url,
        'scope': ' '.join(settings.scopes),
        'state': state,
    }
    return f"{settings.spotify.authorize_url}?{urllib.parse.urlencode(params)}"


def _request_token(settings: Settings, data: dict) -> dict:
    """POST to the token endpoint and return the decoded JSON payload"""
    payload = {
        **data,
        'client_id': settings.spotify.client_id,
        'client_secret': settings.spotify.client_secret,
    }
    response = requests.post(
        settings.spotify.token_url,
        headers={'Content-Type': 'application/x-www-form-urlencoded'},
        data=payload,
        timeout=settings.network.request_timeout
    )
    response.raise_for_status()
    return response.json()


def exchange_code_for_token(settings: Settings, code: str) -> Credential:
    """
    Exchange an authorization code for access and refresh tokens

    Args:
        settings: Settings with client credentials and the redirect URL
        code: Authorization code from the callback

    Returns:
        Credential for the granted scopes

    Raises:
        TokenExchangeFailed: On network errors, HTTP errors or malformed payloads
    """
    try:
        token_data = _request_token(settings, {
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': settings.spotify.redirect_url,  # Must match authorization request
        })
        return Credential.from_token_response(token_data, fallback_scope=settings.spotify.scope)
    except (requests.RequestException, ValueError, KeyError) as e:
        raise TokenExchangeFailed(
            f"Couldn't get token: {e}",
            details={'original_error': repr(e)}
        ) from e


def refresh_credential(settings: Settings, credential: Credential) -> Credential:
    """
    Obtain a fresh access token using the refresh token

    Raises:
        TokenExchangeFailed: If there is no refresh token or the refresh fails
    """
    if not credential.refresh_token:
        raise TokenExchangeFailed("Access token expired and no refresh token is available")

    try:
        token_data = _request_token(settings, {
            'grant_type': 'refresh_token',
            'refresh_token': credential.refresh_token,
        })
        return Credential.from_token_response(
            token_data,
            fallback_scope=credential.scope,
            previous_refresh_token=credential.refresh_token
        )
    except (requests.RequestException, ValueError, KeyError) as e:
        raise TokenExchangeFailed(
            f"Failed to refresh access token: {e}",
            details={'original_error': repr(e)}
        ) from e


SUCCESS_HTML = """
<html>
<head><title>Login Completed</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #1DB954;">Login Completed!</h1>
    <p>You can close this window and return to the terminal.</p>
</body>
</html>
"""

FAILURE_HTML = """
<html>
<head><title>Login Failed</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1 style="color: #E22134;">Couldn't get token</h1>
    <p>{reason}</p>
</body>
</html>
"""

NOT_FOUND_HTML = """
<html>
<head><title>Not Found</title></head>
<body style="font-family: Arial, sans-serif; text-align: center; margin-top: 50px;">
    <h1>404 page not found</h1>
</body>
</html>
"""


class ServerState(Enum):
    """Lifecycle of the callback listener"""
    IDLE = "idle"
    LISTENING = "listening"
    AWAITING_CALLBACK = "awaiting_callback"
    EXCHANGING = "exchanging"
    DELIVERED = "delivered"
    FAILED = "failed"


class CallbackHandler(BaseHTTPRequestHandler):
    """
    HTTP request handler for the OAuth2 redirect

    Delegates the decision to the AuthorizationCallbackServer attached to the
    HTTP server, writes the response, and only then lets the controller hand
    its result to the waiting caller.
    """

    def do_GET(self):
        controller = self.server.controller
        try:
            status, body = controller.handle_callback(self.path)
            self.send_response(status)
            self.send_header('Content-type', 'text/html; charset=utf-8')
            self.end_headers()
            self.wfile.write(body.encode('utf-8'))
        finally:
            controller.release_result()

    def log_message(self, format, *args):
        # Route request lines to the log file instead of stderr
        logger.debug("Callback server: " + format % args)


class CallbackHTTPServer(HTTPServer):
    """Single-threaded HTTP server that knows its controller"""

    def __init__(self, server_address: Tuple[str, int], controller: 'AuthorizationCallbackServer'):
        super().__init__(server_address, CallbackHandler)
        self.controller = controller


class AuthorizationCallbackServer:
    """
    Local listener that completes the browser login and hands over a client

    The listener binds the host and port of the configured redirect URL and
    serves requests on a daemon thread. The first callback carrying the right
    state triggers the code exchange; the resulting client, or the fatal error,
    is delivered once through a single-slot queue.

    Attributes:
        settings: Application settings (credentials, redirect URL, scopes)
        state: Single-use state token embedded in the login URL
        client_factory: Builds the authenticated client from a Credential
        status: Current ServerState
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[Credential], Any],
        state: Optional[str] = None,
        host: Optional[str] = None,
        port: Optional[int] = None,
        exchange: Callable[[Settings, str], Credential] = exchange_code_for_token
    ):
        """
        Initialize the listener without binding it

        Args:
            settings: Application settings
            client_factory: Callable turning a Credential into the API client
            state: Pre-generated state token, generated here when omitted
            host: Bind host override, defaults to the redirect URL host
            port: Bind port override, defaults to the redirect URL port
            exchange: Code exchange function, swappable for tests
        """
        self.settings = settings
        self.client_factory = client_factory
        self.state = state or generate_state()
        self.exchange = exchange

        redirect = urllib.parse.urlparse(settings.spotify.redirect_url)
        self.host = host or redirect.hostname or '127.0.0.1'
        self.port = redirect.port if port is None else port
        self.callback_path = redirect.path or '/callback'

        self.status = ServerState.IDLE
        self._channel: "queue.Queue[Any]" = queue.Queue(maxsize=1)
        self._pending: Optional[Any] = None
        self._httpd: Optional[CallbackHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def authorize_url(self) -> str:
        """Login URL for the user to open"""
        return build_authorize_url(self.settings, self.state)

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, useful when binding port 0"""
        return self._httpd.server_address[1] if self._httpd else None

    def start(self) -> 'AuthorizationCallbackServer':
        """
        Bind the listener and start serving on a background thread

        Raises:
            ListenerBindError: If the address cannot be bound
        """
        if self.status is not ServerState.IDLE:
            raise AuthorizationError(f"Callback server already started ({self.status.value})")

        try:
            self._httpd = CallbackHTTPServer((self.host, self.port), self)
        except OSError as e:
            raise ListenerBindError(
                f"Could not listen on {self.host}:{self.port}: {e}",
                details={'host': self.host, 'port': self.port}
            ) from e

        self.status = ServerState.LISTENING
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            name="oauth-callback",
            daemon=True  # Allow main thread to exit
        )
        self._thread.start()
        logger.debug(f"Callback server listening on {self.host}:{self.bound_port}{self.callback_path}")

        self.status = ServerState.AWAITING_CALLBACK
        return self

    def handle_callback(self, raw_path: str) -> Tuple[int, str]:
        """
        Decide the response for one request and stage the hand-off value

        Runs on the listener thread. The staged value is released by
        release_result() after the response has been written.

        Args:
            raw_path: Request path including the query string

        Returns:
            Tuple of (HTTP status, HTML body)
        """
        parsed = urllib.parse.urlparse(raw_path)
        if parsed.path != self.callback_path:
            return 404, NOT_FOUND_HTML

        if self.status is not ServerState.AWAITING_CALLBACK:
            logger.debug(f"Ignoring callback received in state {self.status.value}")
            return 404, NOT_FOUND_HTML

        query = urllib.parse.parse_qs(parsed.query)
        received_state = query.get('state', [''])[0]
        if not secrets.compare_digest(received_state.encode('utf-8'), self.state.encode('utf-8')):
            self._fail(AuthorizationStateMismatch(
                "State mismatch: the login response does not belong to this session",
                details={'received_state': received_state}
            ))
            return 404, NOT_FOUND_HTML

        self.status = ServerState.EXCHANGING

        if 'error' in query:
            reason = query['error'][0]
            self._fail(TokenExchangeFailed(f"Authorization denied: {reason}", details={'error': reason}))
            return 403, FAILURE_HTML.format(reason=html.escape(f"Authorization denied: {reason}"))

        code = query.get('code', [''])[0]
        if not code:
            self._fail(TokenExchangeFailed("Callback did not include an authorization code"))
            return 403, FAILURE_HTML.format(reason="No authorization code received")

        try:
            credential = self.exchange(self.settings, code)
            client = self.client_factory(credential)
        except TokenExchangeFailed as e:
            self._fail(e)
            return 403, FAILURE_HTML.format(reason="The authorization code could not be exchanged")
        except Exception as e:
            self._fail(TokenExchangeFailed(
                f"Could not build Spotify client: {e}",
                details={'original_error': repr(e)}
            ))
            return 403, FAILURE_HTML.format(reason="The Spotify client could not be created")

        self.status = ServerState.DELIVERED
        self._pending = client
        logger.info("Authorization code exchanged, client delivered")
        return 200, SUCCESS_HTML

    def _fail(self, error: AuthorizationError) -> None:
        logger.error(f"Login failed: {error}")
        self.status = ServerState.FAILED
        self._pending = error

    def release_result(self) -> None:
        """Push the staged client or error through the one-shot channel"""
        if self._pending is not None:
            value, self._pending = self._pending, None
            self._channel.put_nowait(value)

    def wait_for_client(self, timeout: Optional[float] = None) -> Any:
        """
        Block until the login completes

        Args:
            timeout: Seconds to wait, None waits without limit

        Returns:
            Authenticated client built by client_factory

        Raises:
            LoginTimeout: If the timeout elapses first
            AuthorizationError: The fatal error that ended the login
        """
        try:
            value = self._channel.get(timeout=timeout)
        except queue.Empty:
            raise LoginTimeout(f"No login completed within {timeout:g} seconds") from None

        if isinstance(value, BaseException):
            raise value
        return value

    def stop(self) -> None:
        """Shut the listener down and release the port"""
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        if self._thread is not None:
            self._thread.join()
        self._httpd = None
        self._thread = None
        logger.debug("Callback server stopped")

    def __enter__(self) -> 'AuthorizationCallbackServer':
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
