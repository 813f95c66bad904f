"""
Media payloads returned by the audio and texture fetchers.

Actual playback and rendering belong to the host application, which can
pass its own decoder callables to the web client. The defaults here only
check the payload and wrap the bytes with their detected format.
"""
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse


AUDIO_SIGNATURES = (
    (b'ID3', 'mp3'),
    (b'\xff\xfb', 'mp3'),
    (b'\xff\xf3', 'mp3'),
    (b'\xff\xf2', 'mp3'),
    (b'OggS', 'ogg'),
    (b'fLaC', 'flac'),
)

IMAGE_SIGNATURES = (
    (b'\x89PNG\r\n\x1a\n', 'png'),
    (b'\xff\xd8\xff', 'jpeg'),
    (b'GIF87a', 'gif'),
    (b'GIF89a', 'gif'),
)

AUDIO_CONTENT_TYPES = {
    'audio/mpeg': 'mp3',
    'audio/mp3': 'mp3',
    'audio/ogg': 'ogg',
    'audio/wav': 'wav',
    'audio/x-wav': 'wav',
    'audio/flac': 'flac',
}

IMAGE_CONTENT_TYPES = {
    'image/png': 'png',
    'image/jpeg': 'jpeg',
    'image/jpg': 'jpeg',
    'image/gif': 'gif',
    'image/webp': 'webp',
}


class DecodeError(ValueError):
    """Raised when a payload cannot be turned into the requested media."""
    pass


@dataclass(frozen=True)
class AudioClip:
    """Downloaded audio ready to hand to a player."""
    data: bytes
    format: str
    content_type: str
    source_url: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class Texture:
    """Downloaded image ready to hand to a renderer."""
    data: bytes
    format: str
    content_type: str
    source_url: str

    @property
    def size(self) -> int:
        return len(self.data)


def _extension(url: str) -> str:
    path = urlparse(url).path
    if '.' not in path.rsplit('/', 1)[-1]:
        return ''
    return path.rsplit('.', 1)[-1].lower()


def sniff_audio_format(data: bytes, content_type: str = '', url: str = '') -> Optional[str]:
    """Detect an audio format from magic bytes, then content type, then extension."""
    for signature, name in AUDIO_SIGNATURES:
        if data.startswith(signature):
            return name
    if data[:4] == b'RIFF' and data[8:12] == b'WAVE':
        return 'wav'
    if content_type in AUDIO_CONTENT_TYPES:
        return AUDIO_CONTENT_TYPES[content_type]
    ext = _extension(url)
    if ext in ('mp3', 'ogg', 'wav', 'flac'):
        return ext
    return None


def sniff_image_format(data: bytes, content_type: str = '', url: str = '') -> Optional[str]:
    """Detect an image format from magic bytes, then content type, then extension."""
    for signature, name in IMAGE_SIGNATURES:
        if data.startswith(signature):
            return name
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return 'webp'
    if content_type in IMAGE_CONTENT_TYPES:
        return IMAGE_CONTENT_TYPES[content_type]
    ext = _extension(url)
    if ext in ('png', 'gif', 'webp'):
        return ext
    if ext in ('jpg', 'jpeg'):
        return 'jpeg'
    return None


def decode_audio(data: bytes, content_type: str, url: str) -> AudioClip:
    """
    Default audio decoder.

    Raises:
        DecodeError: If the payload is empty or not recognizable audio
    """
    if not data:
        raise DecodeError("Audio payload is empty")
    audio_format = sniff_audio_format(data, content_type, url)
    if audio_format is None:
        raise DecodeError(f"Unrecognized audio payload (content type {content_type or 'unknown'})")
    return AudioClip(data=data, format=audio_format, content_type=content_type, source_url=url)


def decode_texture(data: bytes, content_type: str, url: str) -> Texture:
    """
    Default image decoder.

    Raises:
        DecodeError: If the payload is empty or not a recognizable image
    """
    if not data:
        raise DecodeError("Image payload is empty")
    image_format = sniff_image_format(data, content_type, url)
    if image_format is None:
        raise DecodeError(f"Unrecognized image payload (content type {content_type or 'unknown'})")
    return Texture(data=data, format=image_format, content_type=content_type, source_url=url)
