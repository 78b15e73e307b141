"""
Configuration management for Playlist-Fixer

This module handles loading, validation, and management of application settings
from multiple sources including YAML files and environment variables. It provides
a single Settings object that is passed explicitly to the orchestrator, so the
core logic never reads process environment on its own.

The configuration is organized into logical sections using dataclasses:
- Spotify API settings (credentials, redirect URL, scopes, endpoints)
- Rebuild policy (page size, pacing delay, naming of the copy)
- Network behavior (timeouts and retries handed to spotipy)
- Logging output (level, file rotation, colors)

Sensitive data (client ID and secret) should come from environment variables or
a .env file, while non-sensitive settings can be stored in YAML files.
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, asdict
from urllib.parse import urlparse
from dotenv import load_dotenv

from ..exceptions import ConfigurationError

# Load environment variables from .env file if present
load_dotenv()


# Settings that must be numbers, with the type they are converted to
NUMERIC_SETTINGS = {
    ('rebuild', 'page_size'): int,
    ('rebuild', 'pace_seconds'): float,
    ('rebuild', 'login_timeout'): float,
    ('network', 'request_timeout'): int,
    ('network', 'max_retries'): int,
    ('network', 'status_retries'): int,
    ('logging', 'backup_count'): int,
}

# Numeric settings where null is a valid value
OPTIONAL_SETTINGS = {'login_timeout'}


# Scopes requested during login: read private playlists, write public and
# private playlists, read the user profile.
DEFAULT_SCOPES = (
    "playlist-read-private",
    "playlist-modify-public",
    "playlist-modify-private",
    "user-read-private",
)


@dataclass
class SpotifyConfig:
    """
    Spotify API configuration and authentication settings

    The redirect URL must match one registered for the Spotify application;
    its host, port and path also decide where the local callback listener binds.
    """
    client_id: str = ""
    client_secret: str = ""
    redirect_url: str = "http://127.0.0.1:8080/callback"
    scope: str = " ".join(DEFAULT_SCOPES)
    authorize_url: str = "https://accounts.spotify.com/authorize"
    token_url: str = "https://accounts.spotify.com/api/token"


@dataclass
class RebuildConfig:
    """
    Playlist reconstruction policy

    pace_seconds is the pause between two single-track appends. Spotify orders
    "recently added" by its own timestamps, so shortening the pause changes
    the visible order of the rebuilt playlist, not only the run time.
    """
    page_size: int = 50
    pace_seconds: float = 1.0
    name_suffix: str = " Fixed"
    description_prefix: str = "Fixed copy of "
    login_timeout: Optional[float] = None  # None waits forever for the browser login


@dataclass
class NetworkConfig:
    """
    Network and HTTP configuration settings

    Passed through to spotipy, which retries 429 responses honoring
    Retry-After underneath the client.
    """
    request_timeout: int = 30
    max_retries: int = 3
    status_retries: int = 3


@dataclass
class LoggingConfig:
    """Logging configuration and output settings"""
    level: str = "INFO"
    file: str = ""
    max_size: str = "10MB"
    backup_count: int = 3
    console_output: bool = True
    colored_output: bool = True


class Settings:
    """
    Main settings class that manages all configuration

    Loads defaults, then the first YAML file found, then environment variables.
    Later sources override earlier ones.
    """

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize settings from config file and environment variables

        Args:
            config_path: Path to custom config file, if None uses default locations
        """
        self.config_path = config_path
        self.config_dir = Path.home() / ".playlist-fixer"

        # Initialize all configuration objects with default values
        self.spotify = SpotifyConfig()
        self.rebuild = RebuildConfig()
        self.network = NetworkConfig()
        self.logging = LoggingConfig()

        # Load configuration from various sources in order of precedence
        self._load_config()
        self._load_environment_variables()

    def _sections(self) -> Dict[str, Any]:
        return {
            'spotify': self.spotify,
            'rebuild': self.rebuild,
            'network': self.network,
            'logging': self.logging,
        }

    def _load_config(self) -> None:
        """
        Load configuration from YAML file

        The explicit config path wins; otherwise the user config directory and
        the working directory are searched. The first file found is used.

        Raises:
            FileNotFoundError: If an explicit config path does not exist
        """
        if self.config_path and not Path(self.config_path).exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        config_paths = [
            self.config_path,
            self.config_dir / "config.yaml",
            Path("config.yaml")
        ]

        config_data = {}
        for path in config_paths:
            if path and Path(path).exists():
                with open(path, 'r', encoding='utf-8') as f:
                    config_data = yaml.safe_load(f) or {}
                self.loaded_from = Path(path)
                break
        else:
            self.loaded_from = None

        self._apply_config(config_data)

    def _apply_config(self, config_data: Dict[str, Any]) -> None:
        """
        Apply configuration data to dataclass instances

        Only keys that exist on the matching dataclass are applied; unknown
        sections and keys are ignored.

        Args:
            config_data: Dictionary containing configuration sections
        """
        config_mapping = self._sections()

        for section_name, section_data in config_data.items():
            if section_name in config_mapping and isinstance(section_data, dict):
                config_obj = config_mapping[section_name]
                for key, value in section_data.items():
                    if hasattr(config_obj, key):
                        setattr(config_obj, key, self._coerce(section_name, key, value))

    def _coerce(self, section_name: str, key: str, value: Any, source: Optional[str] = None) -> Any:
        """
        Convert a numeric setting to its declared type

        Raises:
            ConfigurationError: If the value is not a number
        """
        target = NUMERIC_SETTINGS.get((section_name, key))
        if target is None or (value is None and key in OPTIONAL_SETTINGS):
            return value

        name = source or f"{section_name}.{key}"
        message = f"Invalid value for {name}: {value!r} (expected a number)"
        # YAML true/false would otherwise pass as 1/0
        if isinstance(value, bool):
            raise ConfigurationError(message, details={'setting': name})

        try:
            return target(value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(message, details={'setting': name}) from e

    def _load_environment_variables(self) -> None:
        """
        Load sensitive configuration from environment variables

        SPOTIFY_ID and SPOTIFY_SECRET are accepted alongside the longer
        SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET names.
        """
        env_mappings = {
            'SPOTIFY_ID': lambda v: setattr(self.spotify, 'client_id', v),
            'SPOTIFY_CLIENT_ID': lambda v: setattr(self.spotify, 'client_id', v),
            'SPOTIFY_SECRET': lambda v: setattr(self.spotify, 'client_secret', v),
            'SPOTIFY_CLIENT_SECRET': lambda v: setattr(self.spotify, 'client_secret', v),
            'SPOTIFY_REDIRECT_URL': lambda v: setattr(self.spotify, 'redirect_url', v),
            'PLAYLIST_FIXER_PACE': lambda v: setattr(
                self.rebuild, 'pace_seconds', self._coerce('rebuild', 'pace_seconds', v, source='PLAYLIST_FIXER_PACE')
            ),
        }

        for env_var, setter in env_mappings.items():
            value = os.getenv(env_var)
            if value:
                setter(value)

    def get_config_directory(self) -> Path:
        """Return the expanded user configuration directory"""
        return Path(self.config_dir).expanduser()

    @property
    def scopes(self) -> List[str]:
        """Requested OAuth scopes as a list"""
        return self.spotify.scope.split()

    def validate(self) -> List[str]:
        """
        Validate current configuration

        Returns:
            List of human-readable problems, empty when the configuration is usable
        """
        errors = []

        # Validate Spotify credentials
        if not self.spotify.client_id or not self.spotify.client_secret:
            errors.append(
                "Spotify client ID and secret are required "
                "(set SPOTIFY_ID and SPOTIFY_SECRET)"
            )

        # The redirect URL doubles as the local listener address
        parsed = urlparse(self.spotify.redirect_url)
        if parsed.scheme != 'http':
            errors.append(f"Redirect URL must use http: {self.spotify.redirect_url}")
        elif not parsed.hostname or parsed.port is None:
            errors.append(f"Redirect URL must include a host and port: {self.spotify.redirect_url}")
        if not parsed.path or parsed.path == '/':
            errors.append(f"Redirect URL must include a callback path: {self.spotify.redirect_url}")

        if not 1 <= self.rebuild.page_size <= 100:
            errors.append(f"Invalid page size: {self.rebuild.page_size} (must be 1-100)")

        if self.rebuild.pace_seconds < 0:
            errors.append(f"Invalid pacing delay: {self.rebuild.pace_seconds}")

        if self.rebuild.login_timeout is not None and self.rebuild.login_timeout <= 0:
            errors.append(f"Invalid login timeout: {self.rebuild.login_timeout}")

        return errors

    def to_dict(self, mask_secrets: bool = True) -> Dict[str, Any]:
        """
        Serialize all sections to plain dictionaries

        Args:
            mask_secrets: Replace the client secret with asterisks

        Returns:
            Nested dictionary suitable for YAML output
        """
        data = {name: asdict(section) for name, section in self._sections().items()}
        if mask_secrets and data['spotify']['client_secret']:
            data['spotify']['client_secret'] = "********"
        return data

    def __str__(self) -> str:
        sections = [
            f"Redirect: {self.spotify.redirect_url}",
            f"Page size: {self.rebuild.page_size}",
            f"Pace: {self.rebuild.pace_seconds}s",
        ]
        return f"Settings({', '.join(sections)})"


# Global settings instance, created on first access
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance

    Returns:
        The global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings(config_path: Optional[str] = None) -> Settings:
    """
    Reload settings from configuration files

    Args:
        config_path: Optional path to specific config file

    Returns:
        New Settings instance with reloaded configuration
    """
    global _settings
    _settings = Settings(config_path)
    return _settings
