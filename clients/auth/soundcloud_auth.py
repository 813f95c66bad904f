"""
SoundCloud OAuth loopback authenticator.
Opens the connect page in the browser and waits for the redirect on localhost.
"""
import asyncio
import threading
import urllib.parse
import webbrowser
from enum import Enum
from typing import Callable, Optional

from config import SoundCloudConfig
from clients.results import Result
from utils import setup_logger
from utils.api_utils import ErrorKind
from .oauth_server import CallbackOutcome, OAuthCallbackServer


logger = setup_logger(__name__)

_USE_CONFIG = object()


class AuthState(str, Enum):
    """Lifecycle of a single authentication attempt."""
    IDLE = 'idle'
    LISTENING = 'listening'
    AUTHENTICATED = 'authenticated'
    FAILED = 'failed'


class SoundCloudAuthenticator:
    """
    Manages one SoundCloud OAuth authorization-code attempt.

    Responsibilities:
    - Build the connect page URL with the loopback redirect
    - Own the loopback listener for the duration of the attempt
    - Open the browser and wait cooperatively for the redirect
    - Report the authorization code, or why there is none

    Single-shot: once an attempt finishes, call reset() before trying again.
    The authorization code is kept in memory only; exchanging it for a token
    is up to the caller.
    """

    def __init__(
        self,
        config: SoundCloudConfig,
        browser_opener: Callable[[str], object] = webbrowser.open
    ):
        """
        Initialize authenticator.

        Args:
            config: SoundCloud configuration
            browser_opener: Opens a URL in the system browser
        """
        self.config = config
        self.browser_opener = browser_opener

        self._lock = threading.Lock()
        self._authenticated = threading.Event()
        self._finished = threading.Event()
        self._cancel_requested = threading.Event()

        self._state = AuthState.IDLE
        self._closed = False
        self._bound_port: Optional[int] = None
        self._code: Optional[str] = None
        self._error: Optional[str] = None
        self._error_kind: Optional[ErrorKind] = None

    @property
    def authenticated(self) -> bool:
        return self._authenticated.is_set()

    @property
    def state(self) -> AuthState:
        with self._lock:
            return self._state

    @property
    def authorization_code(self) -> Optional[str]:
        with self._lock:
            return self._code

    @property
    def redirect_uri(self) -> str:
        """Loopback redirect URI, using the bound port once the listener is up."""
        port = self._bound_port if self._bound_port is not None else self.config.listen_port
        path = self.config.redirect_path.lstrip('/')
        return f"http://{self.config.listen_host}:{port}/{path}"

    def get_authorization_url(self) -> str:
        """
        Build the SoundCloud connect page URL.

        Returns:
            Authorization URL for the user to visit
        """
        params = {
            'client_id': self.config.client_id,
            'redirect_uri': self.redirect_uri,
            'response_type': 'code'
        }

        return f"{self.config.connect_url}?{urllib.parse.urlencode(params)}"

    def cancel(self) -> None:
        """Abandon a running attempt. Safe to call from any thread."""
        self._cancel_requested.set()

    def reset(self) -> None:
        """
        Return a finished authenticator to IDLE for a new attempt.

        Raises:
            RuntimeError: If an attempt is still listening
        """
        with self._lock:
            if self._state is AuthState.LISTENING:
                raise RuntimeError("Cannot reset while authentication is in progress")

            self._authenticated.clear()
            self._finished.clear()
            self._cancel_requested.clear()
            self._state = AuthState.IDLE
            self._closed = False
            self._bound_port = None
            self._code = None
            self._error = None
            self._error_kind = None

    def _on_callback(self, outcome: CallbackOutcome) -> None:
        """Record the redirect. Runs on the listener thread."""
        with self._lock:
            if self._closed:
                logger.debug("Ignoring redirect that arrived after the attempt ended")
                return

            if outcome.code:
                self._code = outcome.code
                self._state = AuthState.AUTHENTICATED
            else:
                self._error = outcome.error
                self._error_kind = ErrorKind.AUTH_DENIED
                self._state = AuthState.FAILED
            self._closed = True

        if outcome.code:
            self._authenticated.set()
        self._finished.set()

    def _finish(self, kind: ErrorKind, message: str) -> None:
        """End the attempt with a failure unless the redirect already settled it."""
        with self._lock:
            if self._state is AuthState.LISTENING:
                self._state = AuthState.FAILED
                self._error = message
                self._error_kind = kind
            self._closed = True

    def _result(self) -> Result[str]:
        with self._lock:
            if self._state is AuthState.AUTHENTICATED:
                return Result.success(self._code)
            return Result.failure(self._error_kind or ErrorKind.AUTH_DENIED, self._error or "Authentication failed")

    def _open_browser(self, url: str) -> None:
        logger.info("Opening browser for authorization...")
        logger.info(f"If browser doesn't open, visit: {url}")

        try:
            opened = self.browser_opener(url)
        except Exception as e:
            logger.warning(f"Couldn't open browser: {e}")
            return

        if opened is False:
            logger.warning("No browser available; open the URL above manually")

    async def _wait_for_redirect(self, timeout: Optional[float]) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout else None

        while not self._finished.is_set():
            if self._cancel_requested.is_set():
                logger.warning("Authentication cancelled")
                self._finish(ErrorKind.CANCELLED, "Authentication cancelled")
                return

            if deadline is not None and loop.time() >= deadline:
                logger.error(f"Timed out after {timeout}s waiting for authorization")
                self._finish(ErrorKind.TIMEOUT, f"No redirect received within {timeout}s")
                return

            await asyncio.sleep(self.config.poll_interval)

    async def authenticate(self, timeout=_USE_CONFIG) -> Result[str]:
        """
        Run the loopback authorization flow.

        Args:
            timeout: Seconds to wait for the redirect; None waits forever.
                Defaults to the configured auth_timeout.

        Returns:
            Result holding the authorization code

        Raises:
            RuntimeError: If this authenticator was already used
            asyncio.CancelledError: If the awaiting task is cancelled
        """
        if timeout is _USE_CONFIG:
            timeout = self.config.auth_timeout

        with self._lock:
            if self._state is not AuthState.IDLE:
                raise RuntimeError(f"Authenticator is {self._state.value}; call reset() first")

            try:
                server = OAuthCallbackServer(
                    self.config.listen_host,
                    self.config.listen_port,
                    self._on_callback,
                    poll_interval=min(self.config.poll_interval, 0.25),
                    connection_timeout=self.config.connection_timeout
                )
            except OSError as e:
                self._state = AuthState.FAILED
                self._error = f"Could not listen on {self.config.listen_host}:{self.config.listen_port}: {e}"
                self._error_kind = ErrorKind.LISTENER
                self._closed = True
                logger.error(self._error)
            else:
                self._bound_port = server.port
                self._state = AuthState.LISTENING

        if self._state is AuthState.FAILED:
            return self._result()

        logger.info("🔐 Starting SoundCloud authorization...")
        server.start()

        try:
            self._open_browser(self.get_authorization_url())
            logger.info("Waiting for authorization callback...")
            await self._wait_for_redirect(timeout)
        except asyncio.CancelledError:
            self._finish(ErrorKind.CANCELLED, "Authentication task cancelled")
            raise
        finally:
            await asyncio.to_thread(server.stop)
            self._finish(ErrorKind.LISTENER, "Authentication aborted")

        result = self._result()
        if result.ok:
            logger.info("✅ Authorization code received")
        return result
