"""
API clients package.
Handles authentication and communication with the SoundCloud API.
"""
from .web import SoundCloudWebClient
from .results import FetchResult, Result, ResolvedResource
from .models import DataObject, SoundCloudResource
from .media import AudioClip, Texture

__all__ = [
    'SoundCloudWebClient',
    'FetchResult',
    'Result',
    'ResolvedResource',
    'DataObject',
    'SoundCloudResource',
    'AudioClip',
    'Texture'
]
