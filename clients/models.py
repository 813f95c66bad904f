"""
Typed data objects built from SoundCloud JSON payloads.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from utils.api_utils import APIError, ErrorKind, validate_json


class DataObject:
    """
    Base class for objects deserialized from response text.

    Subclasses implement from_dict; deserialize handles the JSON layer.
    """

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DataObject':
        raise NotImplementedError

    @classmethod
    def deserialize(cls, text: str) -> 'DataObject':
        """
        Build an instance from JSON text.

        Args:
            text: Raw response body

        Returns:
            Deserialized object

        Raises:
            APIError: If the text is not a JSON object
        """
        data = validate_json(text)
        if not isinstance(data, dict):
            raise APIError(
                f"Expected a JSON object for {cls.__name__}, got {type(data).__name__}",
                ErrorKind.PARSE
            )
        return cls.from_dict(data)


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


@dataclass
class SoundCloudResource(DataObject):
    """Generic resource returned by the resolve endpoint (track, user, playlist...)."""
    id: Optional[int] = None
    kind: Optional[str] = None
    uri: str = ''
    permalink_url: Optional[str] = None
    title: Optional[str] = None
    stream_url: Optional[str] = None
    artwork_url: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SoundCloudResource':
        resource_id = data.get('id')
        try:
            resource_id = int(resource_id) if resource_id is not None else None
        except (TypeError, ValueError):
            resource_id = None

        return cls(
            id=resource_id,
            kind=_optional_str(data.get('kind')),
            uri=str(data.get('uri') or ''),
            permalink_url=_optional_str(data.get('permalink_url')),
            title=_optional_str(data.get('title') or data.get('username')),
            stream_url=_optional_str(data.get('stream_url')),
            artwork_url=_optional_str(data.get('artwork_url')),
            raw=data
        )
