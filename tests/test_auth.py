import asyncio
import socket
import threading
import unittest
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import requests

from clients.auth import AuthState, OAuthCallbackServer, SoundCloudAuthenticator, parse_callback
from config import SoundCloudConfig
from utils.api_utils import ErrorKind


def loopback_config(port: int = 0) -> SoundCloudConfig:
    return SoundCloudConfig(
        client_id='test-client',
        listen_host='127.0.0.1',
        listen_port=port,
        redirect_path='game-authentication',
        auth_timeout=5.0,
        poll_interval=0.02,
        connection_timeout=0.3
    )


class FakeBrowser:
    """Follows the redirect_uri of the consent URL like a browser would after consent."""

    def __init__(self, query: str = 'code=abc123', idle_first: bool = False, post_first: bool = False):
        self.query = query
        self.idle_first = idle_first
        self.post_first = post_first
        self.idle_sockets = []
        self.opened = []
        self.responses = []
        self.threads = []

    def __call__(self, url):
        self.opened.append(url)
        redirect_uri = parse_qs(urlparse(url).query)['redirect_uri'][0]

        if self.idle_first:
            # A preconnect that never sends a request line
            parsed = urlparse(redirect_uri)
            self.idle_sockets.append(socket.create_connection((parsed.hostname, parsed.port), timeout=5))

        def visit():
            if self.post_first:
                self.responses.append(requests.post(redirect_uri, timeout=5))
            self.responses.append(requests.get(f"{redirect_uri}?{self.query}", timeout=5))

        thread = threading.Thread(target=visit)
        thread.start()
        self.threads.append(thread)
        return True

    def join(self):
        for thread in self.threads:
            thread.join(5)
        for idle in self.idle_sockets:
            idle.close()

    @property
    def redirect_uri(self):
        return parse_qs(urlparse(self.opened[0]).query)['redirect_uri'][0]


class TestAuthorizationURL(unittest.TestCase):
    def test_connect_url_embeds_client_and_encoded_redirect(self):
        config = SoundCloudConfig(client_id='abc')
        authenticator = SoundCloudAuthenticator(config, browser_opener=MagicMock())

        url = authenticator.get_authorization_url()

        self.assertEqual(
            url,
            'https://soundcloud.com/connect?client_id=abc'
            '&redirect_uri=http%3A%2F%2Flocalhost%3A8080%2Fgame-authentication'
            '&response_type=code'
        )
        self.assertEqual(authenticator.state, AuthState.IDLE)
        self.assertFalse(authenticator.authenticated)


class TestParseCallback(unittest.TestCase):
    def test_code(self):
        outcome = parse_callback('/game-authentication?code=xyz&state=1')
        self.assertEqual(outcome.code, 'xyz')
        self.assertIsNone(outcome.error)

    def test_provider_error(self):
        outcome = parse_callback('/game-authentication?error=access_denied&error_description=User+denied')
        self.assertIsNone(outcome.code)
        self.assertEqual(outcome.error, 'access_denied: User denied')

    def test_no_code(self):
        outcome = parse_callback('/game-authentication')
        self.assertEqual(outcome.error, 'No authorization code in redirect')


class TestAuthenticate(unittest.IsolatedAsyncioTestCase):
    async def test_redirect_completes_authentication(self):
        browser = FakeBrowser()
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=browser)

        result = await authenticator.authenticate(timeout=5)
        browser.join()

        self.assertTrue(result.ok)
        self.assertEqual(result.value, 'abc123')
        self.assertTrue(authenticator.authenticated)
        self.assertEqual(authenticator.state, AuthState.AUTHENTICATED)
        self.assertEqual(authenticator.authorization_code, 'abc123')

        self.assertEqual(len(browser.opened), 1)
        self.assertEqual(browser.responses[0].status_code, 200)
        self.assertIn('Authenticated!', browser.responses[0].text)

        # The listener handled its single request and is gone
        with self.assertRaises(requests.exceptions.ConnectionError):
            requests.get(browser.redirect_uri, timeout=2)

    async def test_provider_error_fails(self):
        browser = FakeBrowser(query='error=access_denied')
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=browser)

        result = await authenticator.authenticate(timeout=5)
        browser.join()

        self.assertFalse(result.ok)
        self.assertEqual(result.error_kind, ErrorKind.AUTH_DENIED)
        self.assertIn('access_denied', result.error)
        self.assertFalse(authenticator.authenticated)
        self.assertEqual(authenticator.state, AuthState.FAILED)
        self.assertEqual(browser.responses[0].status_code, 400)

    async def test_busy_port_reports_listener_failure(self):
        blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        blocker.bind(('127.0.0.1', 0))
        blocker.listen(1)
        self.addCleanup(blocker.close)
        port = blocker.getsockname()[1]

        opener = MagicMock()
        authenticator = SoundCloudAuthenticator(loopback_config(port), browser_opener=opener)

        result = await authenticator.authenticate(timeout=1)

        self.assertEqual(result.error_kind, ErrorKind.LISTENER)
        self.assertEqual(authenticator.state, AuthState.FAILED)
        opener.assert_not_called()

    async def test_timeout_fails_and_frees_port(self):
        opener = MagicMock(return_value=True)
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=opener)

        result = await authenticator.authenticate(timeout=0.2)

        self.assertEqual(result.error_kind, ErrorKind.TIMEOUT)
        self.assertEqual(authenticator.state, AuthState.FAILED)
        self.assertFalse(authenticator.authenticated)
        opener.assert_called_once()

        port = urlparse(parse_qs(urlparse(opener.call_args.args[0]).query)['redirect_uri'][0]).port
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(('127.0.0.1', port))
        finally:
            sock.close()

    async def test_cancel_fails_attempt(self):
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=MagicMock())
        asyncio.get_running_loop().call_later(0.1, authenticator.cancel)

        result = await authenticator.authenticate(timeout=5)

        self.assertEqual(result.error_kind, ErrorKind.CANCELLED)
        self.assertEqual(authenticator.state, AuthState.FAILED)

    async def test_task_cancellation_tears_down(self):
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=MagicMock())

        task = asyncio.ensure_future(authenticator.authenticate(timeout=None))
        await asyncio.sleep(0.1)
        self.assertEqual(authenticator.state, AuthState.LISTENING)
        task.cancel()

        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(authenticator.state, AuthState.FAILED)

    async def test_browser_failure_is_not_fatal(self):
        opener = MagicMock(side_effect=OSError('no display'))
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=opener)

        result = await authenticator.authenticate(timeout=0.1)

        self.assertEqual(result.error_kind, ErrorKind.TIMEOUT)

    async def test_single_shot_until_reset(self):
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=MagicMock())
        await authenticator.authenticate(timeout=0.1)

        with self.assertRaises(RuntimeError):
            await authenticator.authenticate(timeout=0.1)

        authenticator.reset()
        self.assertEqual(authenticator.state, AuthState.IDLE)

        browser = FakeBrowser(query='code=second')
        authenticator.browser_opener = browser
        result = await authenticator.authenticate(timeout=5)
        browser.join()

        self.assertEqual(result.value, 'second')

    async def test_idle_connection_does_not_block_redirect(self):
        browser = FakeBrowser(idle_first=True)
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=browser)

        result = await authenticator.authenticate(timeout=5)
        browser.join()

        self.assertTrue(result.ok)
        self.assertEqual(result.value, 'abc123')
        self.assertEqual(browser.responses[0].status_code, 200)

        with self.assertRaises(requests.exceptions.ConnectionError):
            requests.get(browser.redirect_uri, timeout=2)

    async def test_non_get_request_keeps_listening(self):
        browser = FakeBrowser(post_first=True)
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=browser)

        result = await authenticator.authenticate(timeout=5)
        browser.join()

        self.assertEqual(result.value, 'abc123')
        self.assertEqual(browser.responses[0].status_code, 501)
        self.assertEqual(browser.responses[1].status_code, 200)

    async def test_provider_error_is_escaped_in_page(self):
        browser = FakeBrowser(query='error=%3Cscript%3Ealert(1)%3C%2Fscript%3E')
        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=browser)

        result = await authenticator.authenticate(timeout=5)
        browser.join()

        self.assertEqual(result.error_kind, ErrorKind.AUTH_DENIED)
        page = browser.responses[0].text
        self.assertNotIn('<script>', page)
        self.assertIn('&lt;script&gt;alert(1)&lt;/script&gt;', page)

    async def test_listener_teardown_runs_off_the_event_loop(self):
        loop_thread = threading.current_thread()
        stop_threads = []
        original_stop = OAuthCallbackServer.stop

        def recording_stop(server, *args, **kwargs):
            stop_threads.append(threading.current_thread())
            return original_stop(server, *args, **kwargs)

        authenticator = SoundCloudAuthenticator(loopback_config(), browser_opener=MagicMock())
        with patch.object(OAuthCallbackServer, 'stop', recording_stop):
            result = await authenticator.authenticate(timeout=0.1)

        self.assertEqual(result.error_kind, ErrorKind.TIMEOUT)
        self.assertEqual(len(stop_threads), 1)
        self.assertIsNot(stop_threads[0], loop_thread)


class TestCallbackServer(unittest.TestCase):
    def test_stop_releases_port_when_handler_is_stuck(self):
        server = OAuthCallbackServer('127.0.0.1', 0, MagicMock(), poll_interval=0.02, connection_timeout=None)
        port = server.port
        server.start()

        idle = socket.create_connection(('127.0.0.1', port), timeout=5)
        try:
            # Give the listener time to accept the idle connection and block on it
            threading.Event().wait(0.2)
            server.stop(join_timeout=0.2)

            with self.assertRaises(OSError):
                socket.create_connection(('127.0.0.1', port), timeout=1).close()
        finally:
            idle.close()
            server.stop()


if __name__ == '__main__':
    unittest.main()
