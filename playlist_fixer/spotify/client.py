"""
Spotify API client used by the playlist fixer

This module wraps spotipy behind the handful of operations a fix needs:

- get_current_user(): the account that owns the rebuilt playlists
- get_user_playlists(): every playlist in the user's library, all pages
- get_playlist_items(): one page of a playlist's items
- create_playlist(): a new playlist for the user
- add_track(): append a single track to a playlist

Error Handling Strategy:
- 401 Unauthorized: the credential is refreshed once and the call retried
- 429 Rate limited: spotipy retries with Retry-After underneath; if it still
  surfaces, the call waits for Retry-After and retries once
- Anything else: converted to SpotifyAPIError with the HTTP status attached

The client is used strictly sequentially by the orchestrator; it holds no
locks and is not meant to be shared across threads.
"""

import time
from typing import Any, Callable, List

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from ..config.auth import refresh_credential
from ..config.settings import Settings
from ..exceptions import SpotifyAPIError, TokenExchangeFailed
from ..utils.logger import get_logger
from .models import Credential, PlaylistSummary, SpotifyUser, TrackPage


class SpotifyClient:
    """
    Authenticated Spotify Web API client bound to one credential

    Attributes:
        settings: Application settings (network retries and timeouts)
        credential: Current OAuth credential, replaced on refresh
    """

    def __init__(
        self,
        credential: Credential,
        settings: Settings,
        refresher: Callable[[Settings, Credential], Credential] = refresh_credential,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the client around a freshly exchanged credential

        Args:
            credential: Tokens obtained from the login
            settings: Application settings
            refresher: Function returning a new credential from the old one
            sleep: Sleep function used when honoring Retry-After
        """
        self.credential = credential
        self.settings = settings
        self.refresher = refresher
        self.sleep = sleep
        self.logger = get_logger(__name__)
        self._client = self._build_client()

    def _build_client(self) -> spotipy.Spotify:
        return spotipy.Spotify(
            auth=self.credential.access_token,
            requests_timeout=self.settings.network.request_timeout,
            retries=self.settings.network.max_retries,
            status_retries=self.settings.network.status_retries
        )

    def _refresh(self) -> None:
        """
        Replace the credential with a refreshed one

        Raises:
            SpotifyAPIError: If the refresh fails, so callers treat it like
                any other failed request for the current track or playlist
        """
        self.logger.debug("Refreshing Spotify access token")
        try:
            self.credential = self.refresher(self.settings, self.credential)
        except TokenExchangeFailed as e:
            raise SpotifyAPIError(
                f"Could not refresh access token: {e.message}",
                details={'original_error': repr(e)},
                http_status=401
            ) from e
        self._client = self._build_client()

    def _make_request(self, method_name: str, *args, **kwargs) -> Any:
        """
        Call a spotipy method with token refresh and rate limit handling

        Args:
            method_name: Name of the spotipy.Spotify method to call
            *args: Positional arguments for the method
            **kwargs: Keyword arguments for the method

        Returns:
            Decoded JSON response

        Raises:
            SpotifyAPIError: If the call fails after recovery attempts
        """
        if self.credential.is_expired():
            self._refresh()

        try:
            return getattr(self._client, method_name)(*args, **kwargs)
        except SpotifyException as e:
            if e.http_status == 401:
                # Token expired early or was revoked - refresh once and retry
                self._refresh()
                return self._retry(method_name, *args, **kwargs)
            if e.http_status == 429:
                retry_after = int((e.headers or {}).get('Retry-After', 1))
                self.logger.warning(f"Rate limited, waiting {retry_after} seconds...")
                self.sleep(retry_after)
                return self._retry(method_name, *args, **kwargs)
            raise SpotifyAPIError(
                f"Spotify request {method_name} failed: {e.msg}",
                details={'method': method_name, 'reason': e.reason},
                http_status=e.http_status
            ) from e
        except requests.RequestException as e:
            raise SpotifyAPIError(
                f"Network error during {method_name}: {e}",
                details={'method': method_name}
            ) from e

    def _retry(self, method_name: str, *args, **kwargs) -> Any:
        try:
            return getattr(self._client, method_name)(*args, **kwargs)
        except SpotifyException as e:
            raise SpotifyAPIError(
                f"Spotify request {method_name} failed after retry: {e.msg}",
                details={'method': method_name, 'reason': e.reason},
                http_status=e.http_status
            ) from e
        except requests.RequestException as e:
            raise SpotifyAPIError(f"Network error during {method_name}: {e}") from e

    def get_current_user(self) -> SpotifyUser:
        """Return the profile of the authenticated account"""
        return SpotifyUser.from_spotify_data(self._make_request('current_user'))

    def get_user_playlists(self, limit: int = 50) -> List[PlaylistSummary]:
        """
        Return every playlist in the current user's library

        Follows Spotify's `next` links until the listing is exhausted.

        Args:
            limit: Page size for the listing requests (max 50)
        """
        playlists = []
        offset = 0
        while True:
            results = self._make_request('current_user_playlists', limit=limit, offset=offset)
            items = results.get('items') or []
            # Null entries show up for playlists that were deleted mid-listing
            playlists.extend(PlaylistSummary.from_spotify_data(item) for item in items if item)
            if not results.get('next') or not items:
                break
            offset += len(items)

        self.logger.debug(f"Fetched {len(playlists)} playlists")
        return playlists

    def get_playlist_items(self, playlist_id: str, limit: int, offset: int) -> TrackPage:
        """
        Fetch one page of playlist items

        Args:
            playlist_id: Spotify playlist ID
            limit: Maximum number of items on the page
            offset: Index of the first item

        Returns:
            TrackPage with None in place of non-track items
        """
        results = self._make_request(
            'playlist_items',
            playlist_id,
            limit=limit,
            offset=offset,
            fields='items(track(id,type,episode,is_local)),total',
            additional_types=('track',)
        )
        return TrackPage.from_spotify_data(results)

    def create_playlist(self, user_id: str, name: str, description: str,
                        public: bool, collaborative: bool) -> str:
        """
        Create a new playlist for the user

        Returns:
            ID of the created playlist
        """
        result = self._make_request(
            'user_playlist_create',
            user_id,
            name,
            public=public,
            collaborative=collaborative,
            description=description
        )
        return result['id']

    def add_track(self, playlist_id: str, track_id: str) -> None:
        """Append one track to the end of a playlist"""
        self._make_request('playlist_add_items', playlist_id, [track_id])
