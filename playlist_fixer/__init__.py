"""
Playlist-Fixer: rebuild Spotify playlists in reverse order

Spotify's "recently added" views order a playlist by the time each track was
added. Playlist-Fixer logs in through a local OAuth callback, lets the user pick
playlists from their library, and for each one creates "<name> Fixed" holding
the same tracks appended one at a time in reverse order, so the copy's
added-at timestamps run the other way.

Package layout:
- config/   Settings loading and the OAuth login listener
- spotify/  Spotify Web API client and data models
- rebuild/  Fetch, reverse and rebuild pipeline plus the run orchestrator
- utils/    Logging setup and selection parsing
"""

__version__ = "0.3.0"

__author__ = "Playlist-Fixer Team"

__description__ = "Rebuild Spotify playlists in reverse order so recently added sorting reads correctly"

__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
