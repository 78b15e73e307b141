"""
Playlist reconstruction pipeline

Fetch every track of a playlist, reverse the order, and append the tracks one
by one to a new playlist. PlaylistFixer drives the whole run from login to the
final "Done!".
"""

from .fetcher import PlaylistTrackFetcher
from .reverser import reverse_tracks
from .rebuilder import PlaylistRebuilder
from .orchestrator import PlaylistFixer

__all__ = [
    'PlaylistTrackFetcher',
    'reverse_tracks',
    'PlaylistRebuilder',
    'PlaylistFixer',
]
