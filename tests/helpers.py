"""Shared builders for client tests."""
from pathlib import Path
from typing import Dict, Optional

import requests
from requests.structures import CaseInsensitiveDict

from config import AppConfig, SoundCloudConfig


CLIENT_ID = 'test-client'


def make_config(working_directory: Optional[Path] = None, **soundcloud) -> AppConfig:
    soundcloud.setdefault('client_id', CLIENT_ID)
    return AppConfig(
        soundcloud=SoundCloudConfig(**soundcloud),
        working_directory=working_directory or Path('data/downloads'),
        request_timeout=5.0
    )


def make_response(
    status: int,
    body: bytes = b'',
    headers: Optional[Dict[str, str]] = None,
    url: str = ''
) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = 'utf-8'
    response.url = url
    return response


def redirect(location: str) -> requests.Response:
    return make_response(302, headers={'Location': location})
