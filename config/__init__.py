"""
Configuration package for the SoundCloud web client.
Centralized configuration management using environment variables.
"""
from .settings import (
    SoundCloudConfig,
    AppConfig,
    get_config,
    reset_config
)

__all__ = [
    'SoundCloudConfig',
    'AppConfig',
    'get_config',
    'reset_config'
]
