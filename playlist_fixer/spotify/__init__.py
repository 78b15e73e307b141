"""
Spotify integration package

models.py defines the records exchanged with the Web API. The client lives in
`playlist_fixer.spotify.client` and is imported from there directly, since it
needs the token refresh from the config package.
"""

from .models import (
    Credential,
    SpotifyUser,
    PlaylistSummary,
    TrackPage,
    TrackOutcome,
    RebuildOutcome,
    ReconstructionJob,
    AppendStatus,
    JobStatus,
    extract_track_id,
)

__all__ = [
    'Credential',
    'SpotifyUser',
    'PlaylistSummary',
    'TrackPage',
    'TrackOutcome',
    'RebuildOutcome',
    'ReconstructionJob',
    'AppendStatus',
    'JobStatus',
    'extract_track_id',
]
