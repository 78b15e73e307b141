"""
Data models for Spotify playlists, pages and reconstruction jobs

This module defines the data structures that flow through a playlist fix:

1. **Credential**: OAuth tokens obtained from the browser login
2. **API entities**: SpotifyUser, PlaylistSummary and TrackPage, built from raw
   Spotify Web API responses through `from_spotify_data()` factory methods
3. **Reconstruction records**: TrackOutcome, RebuildOutcome and
   ReconstructionJob, which describe what happened to one selected playlist

Track identifiers are plain strings (Spotify track IDs). A page slot that does
not hold a usable track (podcast episode, local file, removed track) is
represented by None so the page keeps its true length for pagination.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


# Seconds before expiry at which a token is already treated as expired
EXPIRY_MARGIN_SECONDS = 60


@dataclass
class Credential:
    """
    OAuth credential returned by the token endpoint

    Attributes:
        access_token: Bearer token for Web API calls
        refresh_token: Long-lived token used to obtain new access tokens
        expires_at: Absolute expiry as epoch seconds
        token_type: Token type, normally "Bearer"
        scope: Space separated scopes actually granted
    """
    access_token: str
    refresh_token: Optional[str]
    expires_at: int
    token_type: str = "Bearer"
    scope: str = ""

    @classmethod
    def from_token_response(cls, data: Dict[str, Any], fallback_scope: str = "",
                            previous_refresh_token: Optional[str] = None) -> 'Credential':
        """
        Build a credential from a token endpoint JSON payload

        Spotify may omit the refresh token on refresh responses; the previous
        one stays valid in that case.

        Raises:
            KeyError: If the payload has no access_token
        """
        expires_in = int(data.get('expires_in', 3600))
        return cls(
            access_token=data['access_token'],
            refresh_token=data.get('refresh_token') or previous_refresh_token,
            expires_at=int(time.time()) + expires_in,
            token_type=data.get('token_type', 'Bearer'),
            scope=data.get('scope', fallback_scope)
        )

    def is_expired(self, now: Optional[float] = None) -> bool:
        """True if the access token expires within the safety margin"""
        current = time.time() if now is None else now
        return current >= self.expires_at - EXPIRY_MARGIN_SECONDS


@dataclass(frozen=True)
class SpotifyUser:
    """The authenticated account"""
    id: str
    display_name: str

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'SpotifyUser':
        # Display name may be null for accounts that never set one
        return cls(id=data['id'], display_name=data.get('display_name') or data['id'])


@dataclass(frozen=True)
class PlaylistSummary:
    """
    Read-only summary of one playlist from the user's playlist listing

    Attributes:
        id: Spotify playlist ID
        name: Playlist title
        total_tracks: Number of items Spotify reports for the playlist
        public: Visibility flag, copied to the rebuilt playlist
        collaborative: Collaborative flag, copied to the rebuilt playlist
        owner_id: Spotify user ID of the owner
    """
    id: str
    name: str
    total_tracks: int
    public: bool
    collaborative: bool
    owner_id: str = ""

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'PlaylistSummary':
        """
        Factory method for constructing a summary from a simplified playlist object

        `public` can be null in the API when the visibility is not relevant;
        it is treated as private.
        """
        tracks = data.get('tracks') or {}
        owner = data.get('owner') or {}
        return cls(
            id=data['id'],
            name=data.get('name') or "",
            total_tracks=int(tracks.get('total', 0)),
            public=bool(data.get('public')),
            collaborative=bool(data.get('collaborative', False)),
            owner_id=owner.get('id', "")
        )


def extract_track_id(item: Optional[Dict[str, Any]]) -> Optional[str]:
    """
    Return the track ID carried by one playlist item, or None for non-tracks

    Episodes, local files and removed tracks have no usable track ID.
    """
    if not isinstance(item, dict):
        return None
    track = item.get('track')
    if not isinstance(track, dict):
        return None
    if track.get('type', 'track') != 'track' or track.get('episode'):
        return None
    if track.get('is_local'):
        return None
    return track.get('id') or None


@dataclass
class TrackPage:
    """
    One page of playlist items

    Attributes:
        items: Track IDs in playlist order; None marks a non-track slot
        total: Total item count reported by Spotify (informational only)
    """
    items: List[Optional[str]] = field(default_factory=list)
    total: Optional[int] = None

    @classmethod
    def from_spotify_data(cls, data: Dict[str, Any]) -> 'TrackPage':
        return cls(
            items=[extract_track_id(item) for item in data.get('items') or []],
            total=data.get('total')
        )

    @property
    def item_count(self) -> int:
        """Number of slots on the page, tracks and non-tracks alike"""
        return len(self.items)

    @property
    def track_ids(self) -> List[str]:
        """Track IDs on the page with non-track slots dropped"""
        return [track_id for track_id in self.items if track_id is not None]


class AppendStatus(Enum):
    """
    Result of appending one track to the rebuilt playlist

    Values:
        ADDED: Spotify accepted the track
        FAILED: The call failed; the track is missing from the copy
    """
    ADDED = "added"
    FAILED = "failed"


class JobStatus(Enum):
    """
    Lifecycle of one playlist reconstruction

    State Transitions:
    PENDING -> FETCH_FAILED (listing the source failed)
    PENDING -> EMPTY (source has no tracks, nothing created)
    PENDING -> CREATE_FAILED (copy could not be created)
    PENDING -> COMPLETED | COMPLETED_WITH_ERRORS (all tracks attempted)
    """
    PENDING = "pending"
    FETCH_FAILED = "fetch_failed"
    EMPTY = "empty"
    CREATE_FAILED = "create_failed"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"


@dataclass(frozen=True)
class TrackOutcome:
    """Per-track entry of the rebuild log"""
    track_id: str
    status: AppendStatus
    error: Optional[str] = None


@dataclass
class RebuildOutcome:
    """
    Result of populating one rebuilt playlist

    Attributes:
        playlist_id: ID of the newly created playlist
        playlist_name: Name given to the new playlist
        outcomes: One entry per attempted track, in append order
    """
    playlist_id: str
    playlist_name: str
    outcomes: List[TrackOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def added_count(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is AppendStatus.ADDED)

    @property
    def failed_tracks(self) -> List[str]:
        """Identifiers whose append failed, in append order"""
        return [outcome.track_id for outcome in self.outcomes if outcome.status is AppendStatus.FAILED]


@dataclass
class ReconstructionJob:
    """
    Ephemeral record of fixing one selected playlist

    Created when the orchestrator starts on a playlist and dropped once the
    run moves on; nothing here is persisted.
    """
    source: PlaylistSummary
    tracks: List[str] = field(default_factory=list)
    reversed_tracks: List[str] = field(default_factory=list)
    destination_id: Optional[str] = None
    outcome: Optional[RebuildOutcome] = None
    status: JobStatus = JobStatus.PENDING
    error: Optional[str] = None

    @property
    def failed_tracks(self) -> List[str]:
        return self.outcome.failed_tracks if self.outcome else []
