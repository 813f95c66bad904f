"""
Authentication module for SoundCloud OAuth.
Handles the loopback redirect flow and the callback listener.
"""
from .soundcloud_auth import SoundCloudAuthenticator, AuthState
from .oauth_server import OAuthCallbackServer, CallbackOutcome, parse_callback

__all__ = [
    'SoundCloudAuthenticator',
    'AuthState',
    'OAuthCallbackServer',
    'CallbackOutcome',
    'parse_callback'
]
