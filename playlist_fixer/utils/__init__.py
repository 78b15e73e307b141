"""
Utility modules for Playlist-Fixer
"""

from .logger import (
    setup_logging,
    configure_from_settings,
    get_logger,
    get_current_log_file,
)

from .helpers import format_duration, pluralize

from .validation import parse_selection

__all__ = [
    # Logging
    'setup_logging',
    'configure_from_settings',
    'get_logger',
    'get_current_log_file',

    # Helpers
    'format_duration',
    'pluralize',

    # Validation
    'parse_selection',
]
