"""
Paginated track listing for one playlist

Spotify returns playlist items in pages. The fetcher walks the pages with a
fixed limit and stops at the first page shorter than that limit, so a playlist
whose length is an exact multiple of the page size costs one extra request
that comes back empty.
"""

from typing import List

from ..exceptions import PlaylistFetchError, SpotifyAPIError
from ..utils.logger import get_logger


class PlaylistTrackFetcher:
    """
    Collects every track ID of a playlist in playlist order

    Attributes:
        client: SpotifyClient (or any object with get_playlist_items)
        page_size: Items requested per page, 1..100
    """

    def __init__(self, client, page_size: int = 50):
        if not 1 <= page_size <= 100:
            raise ValueError(f"Page size must be between 1 and 100, got {page_size}")
        self.client = client
        self.page_size = page_size
        self.logger = get_logger(__name__)

    def fetch(self, playlist_id: str) -> List[str]:
        """
        Fetch all track IDs of a playlist

        Non-track items (episodes, local files, removed tracks) count toward
        the page length but are left out of the result.

        Args:
            playlist_id: Spotify playlist ID

        Returns:
            Track IDs in playlist order, possibly empty

        Raises:
            PlaylistFetchError: If any page fails; no partial list is returned
        """
        tracks: List[str] = []
        offset = 0
        pages = 0

        while True:
            try:
                page = self.client.get_playlist_items(playlist_id, limit=self.page_size, offset=offset)
            except SpotifyAPIError as e:
                raise PlaylistFetchError(
                    f"Could not list tracks: {e.message}",
                    details={'playlist_id': playlist_id, 'offset': offset},
                    http_status=e.http_status
                ) from e

            pages += 1
            if page.item_count > self.page_size:
                raise PlaylistFetchError(
                    f"Spotify returned {page.item_count} items for a page of {self.page_size}",
                    details={'playlist_id': playlist_id, 'offset': offset}
                )

            tracks.extend(page.track_ids)

            if page.item_count < self.page_size:
                break
            offset += self.page_size

        self.logger.debug(f"Fetched {len(tracks)} tracks from {playlist_id} in {pages} page(s)")
        return tracks
