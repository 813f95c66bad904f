"""
API Utilities Module

Single Responsibility: Describe and classify API failures
- Error kinds shared by every client operation
- Parse and validate JSON payloads
- Extract readable messages from SoundCloud error bodies
"""

import json
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Distinguishable failure reasons carried by client results."""
    NETWORK = 'network'
    HTTP_STATUS = 'http_status'
    REDIRECT_LIMIT = 'redirect_limit'
    PARSE = 'parse'
    NOT_FOUND = 'not_found'
    DECODE = 'decode'
    IO = 'io'
    INVALID_PATH = 'invalid_path'
    LISTENER = 'listener'
    AUTH_DENIED = 'auth_denied'
    TIMEOUT = 'timeout'
    CANCELLED = 'cancelled'


class APIError(Exception):
    """Raised when an API operation fails and the caller asked for an exception."""
    
    def __init__(self, message: str, kind: Optional[ErrorKind] = None):
        super().__init__(message)
        self.kind = kind


def validate_json(text: str) -> Any:
    """
    Parse a JSON payload.
    
    Args:
        text: Raw response text
        
    Returns:
        Parsed JSON value
        
    Raises:
        APIError: If the text is empty or not valid JSON
    """
    if not text or not text.strip():
        raise APIError("Empty JSON response", ErrorKind.PARSE)
    
    try:
        return json.loads(text)
    except ValueError as e:
        raise APIError(f"Invalid JSON response: {e}", ErrorKind.PARSE)


def extract_error_message(text: str, default: str) -> str:
    """
    Pull a readable message out of a SoundCloud error body.
    
    SoundCloud reports errors as {"errors": [{"error_message": "..."}]};
    anything else falls back to the default.
    
    Args:
        text: Response body text
        default: Message used when the body carries none
        
    Returns:
        Error message
    """
    try:
        data = json.loads(text)
    except ValueError:
        return default
    
    if not isinstance(data, dict):
        return default
    
    errors = data.get('errors')
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        message = errors[0].get('error_message') or errors[0].get('message')
        if message:
            return str(message)
    
    message = data.get('error_description') or data.get('error')
    if isinstance(message, str) and message:
        return message
    
    return default
