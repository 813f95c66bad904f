"""
Centralized configuration from environment variables.
Loads all secrets and settings without hardcoding.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, treating empty values as the default."""
    value = os.getenv(name, '')
    if not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def _env_int(name: str, default: int) -> int:
    """Read an integer from the environment, treating empty values as the default."""
    value = os.getenv(name, '')
    if not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


@dataclass
class SoundCloudConfig:
    """SoundCloud API and OAuth loopback configuration."""
    client_id: str
    connect_url: str = "https://soundcloud.com/connect"
    resolve_url: str = "http://api.soundcloud.com/resolve"
    listen_host: str = "localhost"
    listen_port: int = 8080
    redirect_path: str = "game-authentication"
    auth_timeout: Optional[float] = 300.0
    poll_interval: float = 0.1
    connection_timeout: float = 5.0
    
    @property
    def redirect_uri(self) -> str:
        """Loopback URI the provider redirects the browser to."""
        return f"http://{self.listen_host}:{self.listen_port}/{self.redirect_path.lstrip('/')}"
    
    @classmethod
    def from_env(cls) -> 'SoundCloudConfig':
        """Load from environment variables."""
        auth_timeout = _env_float('AUTH_TIMEOUT', 300.0)
        
        return cls(
            client_id=os.getenv('CLIENT_ID', ''),
            connect_url=os.getenv('CONNECT_URL', 'https://soundcloud.com/connect'),
            resolve_url=os.getenv('RESOLVE_URL', 'http://api.soundcloud.com/resolve'),
            listen_host=os.getenv('LISTEN_HOST', 'localhost'),
            listen_port=_env_int('LISTEN_PORT', 8080),
            redirect_path=os.getenv('REDIRECT_PATH', 'game-authentication'),
            # Zero disables the deadline
            auth_timeout=auth_timeout if auth_timeout > 0 else None,
            poll_interval=_env_float('AUTH_POLL_INTERVAL', 0.1),
            connection_timeout=_env_float('CALLBACK_CONNECTION_TIMEOUT', 5.0)
        )
    
    def validate(self) -> None:
        """Validate required fields are present."""
        if not self.client_id:
            raise ValueError("CLIENT_ID environment variable is required")
        if not 0 <= self.listen_port <= 65535:
            raise ValueError(f"LISTEN_PORT out of range: {self.listen_port}")
        if self.poll_interval <= 0:
            raise ValueError("AUTH_POLL_INTERVAL must be positive")
        if self.connection_timeout <= 0:
            raise ValueError("CALLBACK_CONNECTION_TIMEOUT must be positive")


@dataclass
class AppConfig:
    """Application-wide configuration."""
    soundcloud: SoundCloudConfig
    working_directory: Path = Path('data/downloads')
    log_level: str = "INFO"
    redirect_limit: int = 3
    request_timeout: Optional[float] = 30.0
    
    @classmethod
    def load(cls, env_file: Optional[str] = None) -> 'AppConfig':
        """
        Load all configuration.
        
        Args:
            env_file: Path to .env file (optional, will search parent dirs)
        """
        # Load environment from .env file if it exists
        if env_file:
            load_dotenv(env_file)
        else:
            load_dotenv()  # Searches parent directories
        
        request_timeout = _env_float('REQUEST_TIMEOUT', 30.0)
        
        config = cls(
            soundcloud=SoundCloudConfig.from_env(),
            working_directory=Path(os.getenv('WORKING_DIRECTORY', 'data/downloads')),
            log_level=os.getenv('LOG_LEVEL', 'INFO'),
            redirect_limit=_env_int('REDIRECT_LIMIT', 3),
            request_timeout=request_timeout if request_timeout > 0 else None
        )
        
        # Validate critical settings
        config.soundcloud.validate()
        if config.redirect_limit < 0:
            raise ValueError("REDIRECT_LIMIT must not be negative")
        
        return config


# Singleton instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create configuration singleton."""
    global _config
    if _config is None:
        _config = AppConfig.load()
    return _config


def reset_config() -> None:
    """Reset configuration (useful for testing)."""
    global _config
    _config = None
