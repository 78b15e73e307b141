"""
Creation and population of the reversed playlist copy

Tracks are appended one request at a time with a pause in between. Spotify
stamps every append with its own "added at" time, and that timestamp is what
the "recently added" sort uses, so the pause is part of the result and not
only a rate limit courtesy.
"""

import time
from typing import Callable, List, Optional

from tqdm import tqdm

from ..exceptions import PlaylistCreateError, SpotifyAPIError
from ..spotify.models import AppendStatus, PlaylistSummary, RebuildOutcome, TrackOutcome
from ..utils.helpers import format_duration, pluralize
from ..utils.logger import get_logger


class PlaylistRebuilder:
    """
    Creates "<name> Fixed" and appends the given tracks in order

    Attributes:
        client: SpotifyClient used for create_playlist and add_track
        pace_seconds: Pause between two consecutive appends
        name_suffix: Appended to the source name to form the new name
        description_prefix: Prepended to the source name to form the description
        show_progress: Display the tqdm "Tracks remaining" counter
    """

    def __init__(
        self,
        client,
        pace_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        name_suffix: str = " Fixed",
        description_prefix: str = "Fixed copy of ",
        show_progress: bool = True
    ):
        if pace_seconds < 0:
            raise ValueError(f"Pacing delay cannot be negative: {pace_seconds}")
        self.client = client
        self.pace_seconds = pace_seconds
        self.sleep = sleep
        self.name_suffix = name_suffix
        self.description_prefix = description_prefix
        self.show_progress = show_progress
        self.logger = get_logger(__name__)

    def copy_name(self, source_name: str) -> str:
        return f"{source_name}{self.name_suffix}"

    def copy_description(self, source_name: str) -> str:
        return f"{self.description_prefix}{source_name}"

    def create_copy(self, owner_id: str, summary: PlaylistSummary) -> str:
        """
        Create the empty copy with the source playlist's flags

        Raises:
            PlaylistCreateError: If Spotify rejects the creation
        """
        name = self.copy_name(summary.name)
        try:
            playlist_id = self.client.create_playlist(
                owner_id,
                name,
                description=self.copy_description(summary.name),
                public=summary.public,
                collaborative=summary.collaborative
            )
        except SpotifyAPIError as e:
            raise PlaylistCreateError(
                f"Could not create playlist '{name}': {e.message}",
                details={'source_playlist_id': summary.id},
                http_status=e.http_status
            ) from e

        self.logger.console_info(f"Created new playlist: {name}")
        self.logger.info(f"Created playlist {playlist_id} from {summary.id}")
        return playlist_id

    def rebuild(
        self,
        owner_id: str,
        summary: PlaylistSummary,
        reversed_tracks: List[str],
        on_progress: Optional[Callable[[int], None]] = None
    ) -> RebuildOutcome:
        """
        Create the copy and append every track in the given order

        A failed append is recorded and logged, then the loop moves on to the
        next track. Failed tracks are not retried.

        Args:
            owner_id: User ID that will own the copy
            summary: Source playlist
            reversed_tracks: Track IDs in the order they must be appended
            on_progress: Called with the number of tracks still to append
                after every attempt

        Returns:
            RebuildOutcome with one entry per attempted track

        Raises:
            PlaylistCreateError: If the copy cannot be created; nothing is appended
        """
        playlist_id = self.create_copy(owner_id, summary)
        outcome = RebuildOutcome(playlist_id=playlist_id, playlist_name=self.copy_name(summary.name))

        total = len(reversed_tracks)
        if total > 1 and self.pace_seconds > 0:
            eta = format_duration((total - 1) * self.pace_seconds)
            self.logger.console_info(f"Starting transfer of {pluralize(total, 'track')} (this will take about {eta})...")

        progress_bar = None
        if self.show_progress and total:
            progress_bar = tqdm(
                total=total,
                desc=f"Tracks remaining: {total}",
                bar_format="{desc} {bar} {n}/{total}",
                ncols=80,
                leave=False
            )

        try:
            for index, track_id in enumerate(reversed_tracks):
                # Pause between appends only, never after the last one
                if index > 0 and self.pace_seconds > 0:
                    self.sleep(self.pace_seconds)

                outcome.outcomes.append(self._append(playlist_id, track_id))

                remaining = total - index - 1
                if progress_bar is not None:
                    progress_bar.set_description_str(f"Tracks remaining: {remaining}")
                    progress_bar.update(1)
                if on_progress is not None:
                    on_progress(remaining)
        finally:
            if progress_bar is not None:
                progress_bar.close()

        self.logger.info(
            f"Rebuilt {playlist_id}: {outcome.added_count}/{outcome.attempted} tracks added"
        )
        return outcome

    def _append(self, playlist_id: str, track_id: str) -> TrackOutcome:
        try:
            self.client.add_track(playlist_id, track_id)
        except SpotifyAPIError as e:
            self.logger.warning(f"Failed to add track {track_id}: {e.message}")
            return TrackOutcome(track_id=track_id, status=AppendStatus.FAILED, error=e.message)
        return TrackOutcome(track_id=track_id, status=AppendStatus.ADDED)
