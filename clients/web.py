"""
SoundCloud web client.
Fetches remote payloads, converts them to typed objects and resolves share URLs.
"""
import asyncio
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union
from urllib.parse import urlencode, urljoin

import requests

from config import AppConfig
from clients.media import decode_audio, decode_texture
from clients.models import DataObject, SoundCloudResource
from clients.results import FetchResult, ResolvedResource, Result
from utils import setup_logger
from utils.api_utils import ErrorKind, extract_error_message


logger = setup_logger(__name__)

T = TypeVar('T')

Decoder = Callable[[bytes, str, str], Any]


class SoundCloudWebClient:
    """
    HTTP client for the SoundCloud API and its media hosts.

    Responsibilities:
    - Fetch URLs, following a bounded number of 302 redirects
    - Convert responses into typed objects, files, audio and textures
    - Resolve public share URLs to canonical API resource URLs

    Every operation is a coroutine. The blocking request runs in a worker
    thread so the event loop only waits on the network round-trip.
    """

    REDIRECT_STATUS = 302

    def __init__(self, config: AppConfig, session: Optional[requests.Session] = None):
        """
        Initialize web client.

        Args:
            config: Application configuration
            session: HTTP session to use (a new one is created if omitted)
        """
        self.config = config
        self.client_id = config.soundcloud.client_id
        self.redirect_limit = config.redirect_limit
        self.working_directory = Path(config.working_directory)
        self.session = session or requests.Session()

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self.session.close()

    def __enter__(self) -> 'SoundCloudWebClient':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _get(self, url: str) -> requests.Response:
        """Issue a single GET without letting requests follow redirects."""
        return self.session.get(
            url,
            allow_redirects=False,
            timeout=self.config.request_timeout
        )

    @staticmethod
    def _build_result(
        response: requests.Response,
        url: str,
        redirects: int,
        requests_made: int,
        redirect_url: Optional[str] = None,
        error: Optional[str] = None,
        error_kind: Optional[ErrorKind] = None
    ) -> FetchResult:
        return FetchResult(
            url=url,
            status_code=response.status_code,
            body=response.content or b'',
            headers=dict(response.headers),
            redirect_url=redirect_url,
            redirects=redirects,
            requests_made=requests_made,
            error=error,
            error_kind=error_kind
        )

    async def fetch(self, url: str) -> FetchResult:
        """
        GET a URL, following up to redirect_limit 302 responses.

        Args:
            url: URL to fetch

        Returns:
            FetchResult for the terminal response. Transport errors, HTTP
            errors and an exhausted redirect limit are reported through
            error_kind rather than raised.
        """
        current = url
        redirects = 0
        requests_made = 0

        while True:
            requests_made += 1
            try:
                response = await asyncio.to_thread(self._get, current)
            except requests.exceptions.Timeout as e:
                logger.error(f"Request to {current} timed out after {self.config.request_timeout}s: {e}")
                return FetchResult(
                    url=current,
                    redirects=redirects,
                    requests_made=requests_made,
                    error=f"Timed out after {self.config.request_timeout}s: {e}",
                    error_kind=ErrorKind.NETWORK
                )
            except requests.exceptions.RequestException as e:
                logger.error(f"Request to {current} failed: {e}")
                return FetchResult(
                    url=current,
                    redirects=redirects,
                    requests_made=requests_made,
                    error=str(e),
                    error_kind=ErrorKind.NETWORK
                )

            location = response.headers.get('Location')

            if response.status_code == self.REDIRECT_STATUS and location:
                target = urljoin(current, location)

                if redirects >= self.redirect_limit:
                    logger.warning(
                        f"Redirect limit ({self.redirect_limit}) reached at {current}, "
                        f"not following {target}"
                    )
                    return self._build_result(
                        response, current, redirects, requests_made,
                        redirect_url=target,
                        error=f"Exceeded redirect limit of {self.redirect_limit}",
                        error_kind=ErrorKind.REDIRECT_LIMIT
                    )

                logger.debug(f"Following redirect {redirects + 1}: {current} -> {target}")
                redirects += 1
                current = target
                continue

            if response.status_code >= 400:
                message = extract_error_message(
                    response.text if response.content else '',
                    f"HTTP {response.status_code}"
                )
                logger.error(f"Request to {current} failed with {response.status_code}: {message}")
                return self._build_result(
                    response, current, redirects, requests_made,
                    error=message,
                    error_kind=ErrorKind.HTTP_STATUS
                )

            logger.debug(f"Fetched {current} ({response.status_code}, {len(response.content or b'')} bytes)")
            return self._build_result(response, current, redirects, requests_made)

    async def fetch_object(
        self,
        url: str,
        target: Union[type, Callable[[str], T]]
    ) -> Result[T]:
        """
        Fetch a URL and deserialize the response text.

        Args:
            url: URL to fetch
            target: DataObject subclass, or any callable taking the text

        Returns:
            Result holding the deserialized object
        """
        fetched = await self.fetch(url)
        if not fetched.ok:
            return Result.from_fetch(fetched)

        if isinstance(target, type) and issubclass(target, DataObject):
            parse = target.deserialize
        else:
            parse = target

        try:
            return Result.success(parse(fetched.text))
        except Exception as e:
            logger.warning(f"Could not deserialize response from {url}: {e}")
            return Result.failure(ErrorKind.PARSE, str(e))

    def _target_path(self, filename: str) -> Path:
        """
        Map a caller supplied filename into the working directory.

        Raises:
            ValueError: If the name is empty, absolute or escapes the directory
        """
        if not filename or not filename.strip():
            raise ValueError("Filename must not be empty")

        candidate = Path(filename)
        if candidate.is_absolute() or candidate.drive:
            raise ValueError(f"Filename must be relative: {filename}")

        root = self.working_directory.resolve()
        target = (root / candidate).resolve()
        if root not in target.parents:
            raise ValueError(f"Filename escapes the working directory: {filename}")

        return target

    @staticmethod
    def _write_file(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def fetch_file(self, url: str, filename: str) -> Result[Path]:
        """
        Fetch a URL and save the body under the working directory.

        Args:
            url: URL to fetch
            filename: Name of the file relative to the working directory

        Returns:
            Result holding the path written
        """
        try:
            path = self._target_path(filename)
        except ValueError as e:
            logger.error(f"Refusing to write {filename!r}: {e}")
            return Result.failure(ErrorKind.INVALID_PATH, str(e))

        fetched = await self.fetch(url)
        if not fetched.ok:
            return Result.from_fetch(fetched)

        try:
            await asyncio.to_thread(self._write_file, path, fetched.body)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            return Result.failure(ErrorKind.IO, str(e))

        logger.info(f"Saved {len(fetched.body):,} bytes to {path}")
        return Result.success(path)

    async def _fetch_media(self, url: str, decoder: Decoder, label: str) -> Result[Any]:
        fetched = await self.fetch(url)
        if not fetched.ok:
            return Result.from_fetch(fetched)

        try:
            return Result.success(decoder(fetched.body, fetched.content_type, fetched.url))
        except Exception as e:
            logger.warning(f"Could not decode {label} from {url}: {e}")
            return Result.failure(ErrorKind.DECODE, str(e))

    async def fetch_audio(self, url: str, decoder: Optional[Decoder] = None) -> Result[Any]:
        """
        Fetch a URL and decode the payload as audio.

        Args:
            url: URL to fetch
            decoder: Callable (bytes, content_type, url) -> clip; defaults to decode_audio

        Returns:
            Result holding the decoded clip
        """
        return await self._fetch_media(url, decoder or decode_audio, 'audio')

    async def fetch_texture(self, url: str, decoder: Optional[Decoder] = None) -> Result[Any]:
        """
        Fetch a URL and decode the payload as an image.

        Args:
            url: URL to fetch
            decoder: Callable (bytes, content_type, url) -> texture; defaults to decode_texture

        Returns:
            Result holding the decoded texture
        """
        return await self._fetch_media(url, decoder or decode_texture, 'texture')

    def get_resolve_url(self, public_url: str) -> str:
        """Build the resolve endpoint request for a public share URL."""
        params = {
            'url': public_url,
            'client_id': self.client_id
        }
        return f"{self.config.soundcloud.resolve_url}?{urlencode(params)}"

    async def resolve_url(self, public_url: str) -> ResolvedResource:
        """
        Resolve a public share URL into its canonical API resource URL.

        Results are not cached; every call hits the resolve endpoint.

        Args:
            public_url: e.g. https://soundcloud.com/artist/track

        Returns:
            ResolvedResource, unpackable as (success, resolved_url)
        """
        logger.debug(f"Resolving {public_url}")

        resource = await self.fetch_object(self.get_resolve_url(public_url), SoundCloudResource)
        if not resource.ok:
            return ResolvedResource.failed(resource.error_kind, resource.error or "Resolve failed")

        if not resource.value.uri:
            logger.warning(f"Resolve response for {public_url} carried no uri")
            return ResolvedResource.failed(ErrorKind.NOT_FOUND, f"No resource uri for {public_url}")

        resolved = f"{resource.value.uri}?client_id={self.client_id}"
        logger.debug(f"Resolved {public_url} -> {resource.value.uri}")
        return ResolvedResource(success=True, url=resolved)
