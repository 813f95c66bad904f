"""
Command line front end for the SoundCloud web client.
"""
import argparse
import asyncio
import json
import sys
from typing import List, Optional

from config import AppConfig
from clients.auth import SoundCloudAuthenticator
from clients.web import SoundCloudWebClient
from utils import setup_logger, set_log_level


logger = setup_logger(__name__)


async def run_auth(config: AppConfig, timeout: Optional[float]) -> int:
    """Run the loopback OAuth flow and print the authorization code."""
    authenticator = SoundCloudAuthenticator(config.soundcloud)
    if timeout is None:
        result = await authenticator.authenticate()
    else:
        result = await authenticator.authenticate(timeout=timeout if timeout > 0 else None)

    if not result.ok:
        logger.error(f"❌ Authentication failed ({result.error_kind.value}): {result.error}")
        return 1

    print(result.value)
    return 0


async def run_resolve(config: AppConfig, url: str) -> int:
    """Resolve a public share URL and print the API resource URL."""
    with SoundCloudWebClient(config) as client:
        resolved = await client.resolve_url(url)

    if not resolved.success:
        logger.error(f"❌ Could not resolve {url} ({resolved.error_kind.value}): {resolved.error}")
        return 1

    print(resolved.url)
    return 0


async def run_download(config: AppConfig, url: str, filename: str) -> int:
    """Download a URL into the working directory."""
    with SoundCloudWebClient(config) as client:
        result = await client.fetch_file(url, filename)

    if not result.ok:
        logger.error(f"❌ Download failed ({result.error_kind.value}): {result.error}")
        return 1

    print(result.value)
    return 0


async def run_fetch(config: AppConfig, url: str) -> int:
    """Fetch a JSON document and pretty-print it."""
    with SoundCloudWebClient(config) as client:
        result = await client.fetch_object(url, json.loads)

    if not result.ok:
        logger.error(f"❌ Fetch failed ({result.error_kind.value}): {result.error}")
        return 1

    print(json.dumps(result.value, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='SoundCloud web client: authenticate, resolve and download'
    )
    parser.add_argument(
        '--env-file',
        type=str,
        default=None,
        help='Path to .env file (defaults to searching parent directories)'
    )
    parser.add_argument(
        '--log-level',
        type=str,
        default=None,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Override LOG_LEVEL'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    auth = commands.add_parser('auth', help='Authenticate through the browser')
    auth.add_argument(
        '--timeout',
        type=float,
        default=None,
        help='Seconds to wait for the redirect (0 waits forever, default AUTH_TIMEOUT)'
    )

    resolve = commands.add_parser('resolve', help='Resolve a public track URL')
    resolve.add_argument('url', help='Public SoundCloud URL')

    download = commands.add_parser('download', help='Download a URL to the working directory')
    download.add_argument('url', help='URL to download')
    download.add_argument('filename', help='File name under WORKING_DIRECTORY')

    fetch = commands.add_parser('fetch', help='Fetch and print a JSON document')
    fetch.add_argument('url', help='URL to fetch')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = AppConfig.load(args.env_file)
    except ValueError as e:
        logger.error(f"❌ Invalid configuration: {e}")
        return 1

    set_log_level(args.log_level or config.log_level)

    if args.command == 'auth':
        return asyncio.run(run_auth(config, args.timeout))
    if args.command == 'resolve':
        return asyncio.run(run_resolve(config, args.url))
    if args.command == 'download':
        return asyncio.run(run_download(config, args.url, args.filename))
    return asyncio.run(run_fetch(config, args.url))


if __name__ == "__main__":
    sys.exit(main())
