"""
OAuth Callback Server.
Single-shot loopback HTTP listener that catches the provider's redirect.
"""
import html
import threading
import urllib.parse
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Optional

from utils import setup_logger


logger = setup_logger(__name__)


SUCCESS_HTML = """<html>
<head><title>SoundCloud Authentication</title></head>
<body style="font-family: Arial; text-align: center; padding: 50px;">
    <h1 style="color: #FF5500;">Authenticated!</h1>
    <p>You can now return to your game.</p>
</body>
</html>
"""

ERROR_HTML = """<html>
<head><title>SoundCloud Authentication</title></head>
<body style="font-family: Arial; text-align: center; padding: 50px;">
    <h1 style="color: #E74C3C;">Authentication Failed</h1>
    <p>Error: {error}</p>
    <p>Return to your game and try again.</p>
</body>
</html>
"""


@dataclass(frozen=True)
class CallbackOutcome:
    """What the provider's redirect carried."""
    path: str
    code: Optional[str] = None
    error: Optional[str] = None


def parse_callback(path: str) -> CallbackOutcome:
    """
    Extract the authorization code or provider error from a redirect path.

    Args:
        path: Request path including query string

    Returns:
        CallbackOutcome with either code or error set
    """
    query_params = urllib.parse.parse_qs(urllib.parse.urlparse(path).query)

    code = query_params.get('code', [''])[0]
    if code:
        return CallbackOutcome(path=path, code=code)

    error = query_params.get('error', [''])[0]
    if error:
        description = query_params.get('error_description', [''])[0]
        message = f"{error}: {description}" if description else error
        return CallbackOutcome(path=path, error=message)

    return CallbackOutcome(path=path, error="No authorization code in redirect")


class OAuthCallbackHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the OAuth redirect."""

    def setup(self):
        # Idle connections (browser preconnects) must not hold the single-request loop
        self.timeout = self.server.connection_timeout
        super().setup()

    def do_GET(self):
        """Handle GET request (OAuth callback)."""
        logger.info(f"Received redirect: {self.path}")

        outcome = parse_callback(self.path)

        if outcome.code:
            status = 200
            body = SUCCESS_HTML
        else:
            status = 400
            body = ERROR_HTML.format(error=html.escape(outcome.error or ""))
            logger.error(f"OAuth error: {outcome.error}")

        payload = body.encode('utf-8')
        self.send_response(status)
        self.send_header('Content-Type', 'text/html; charset=utf-8')
        self.send_header('Content-Length', str(len(payload)))
        self.send_header('Connection', 'close')
        self.end_headers()
        self.wfile.write(payload)
        self.wfile.flush()

        self.server.outcome = outcome

    def log_message(self, format, *args):
        """Route default server logging to debug."""
        logger.debug(format % args)


class OAuthCallbackServer(HTTPServer):
    """
    Temporary HTTP server to catch the OAuth redirect.

    Binding happens in the constructor, so a busy port raises OSError before
    anything else starts. start() serves on a background thread until the
    first GET arrives, then closes the socket and reports the outcome.
    """

    def __init__(
        self,
        host: str,
        port: int,
        on_callback: Callable[[CallbackOutcome], None],
        poll_interval: float = 0.25,
        connection_timeout: Optional[float] = 5.0
    ):
        """
        Bind callback server.

        Args:
            host: Interface to bind (e.g., localhost)
            port: Port to bind, 0 for an ephemeral port
            on_callback: Called on the listener thread once the response is sent
            poll_interval: How often the listener checks for a stop request
            connection_timeout: Seconds a connection may stay silent before it is dropped

        Raises:
            OSError: If the address cannot be bound
        """
        super().__init__((host, port), OAuthCallbackHandler)
        self.timeout = poll_interval
        self.connection_timeout = connection_timeout
        self.outcome: Optional[CallbackOutcome] = None
        self._on_callback = on_callback
        self._stop_requested = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server_address[1]

    def start(self) -> None:
        """Start listening on a dedicated daemon thread."""
        if self._thread is not None:
            raise RuntimeError("Callback server already started")

        logger.info(f"Starting callback server on {self.server_address[0]}:{self.port}")
        self._thread = threading.Thread(
            target=self._serve_single_request,
            name='oauth-callback-listener',
            daemon=True
        )
        self._thread.start()

    def _serve_single_request(self) -> None:
        try:
            while self.outcome is None and not self._stop_requested.is_set():
                self.handle_request()
        finally:
            self.server_close()

        if self.outcome is not None and not self._stop_requested.is_set():
            self._on_callback(self.outcome)

    def handle_error(self, request, client_address):
        logger.error(f"Callback server error while handling {client_address}", exc_info=True)

    def stop(self, join_timeout: float = 2.0) -> None:
        """Stop listening and release the port. Safe to call more than once."""
        self._stop_requested.set()

        if self._thread is None:
            self.server_close()
            return

        self._thread.join(join_timeout)
        if self._thread.is_alive():
            logger.warning("Callback listener thread did not exit in time; closing the socket")
            self.server_close()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
