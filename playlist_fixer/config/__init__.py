"""
Configuration package for Playlist-Fixer

settings.py holds the Settings object and its process-wide accessor.
auth.py holds the OAuth login listener; it is imported from its own module
(`playlist_fixer.config.auth`) because it depends on the Spotify models and
the logger, which themselves read settings.
"""

from .settings import get_settings, reload_settings, Settings, DEFAULT_SCOPES

__all__ = [
    'get_settings',
    'reload_settings',
    'Settings',
    'DEFAULT_SCOPES',
]
