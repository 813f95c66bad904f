"""
Utilities package for the SoundCloud web client.
Provides common utilities for logging and API error handling.
"""
from .logger import setup_logger, set_log_level, ColoredFormatter
from .api_utils import APIError, ErrorKind, validate_json, extract_error_message

__all__ = [
    'setup_logger',
    'set_log_level',
    'ColoredFormatter',
    'APIError',
    'ErrorKind',
    'validate_json',
    'extract_error_message'
]
