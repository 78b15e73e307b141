"""
End-to-end playlist fix run

PlaylistFixer ties the pieces together in the order a user experiences them:

1. Browser login through the local callback listener
2. "Logged in as" with the current user's name
3. Numbered listing of the user's playlists
4. One comma separated selection, parsed strictly (any bad token aborts)
5. For each selected playlist: fetch, reverse, create the copy, append tracks
6. "Done!"

Failures scoped to one playlist (listing its tracks, creating the copy) are
reported and the run continues with the next selection. Login, user lookup,
playlist listing and selection failures end the run.
"""

import time
from typing import Callable, List, Optional

import click

from ..config.auth import AuthorizationCallbackServer, generate_state
from ..config.settings import Settings
from ..exceptions import (
    ConfigurationError,
    PlaylistCreateError,
    PlaylistFetchError,
    SelectionInputError,
)
from ..spotify.client import SpotifyClient
from ..spotify.models import Credential, JobStatus, PlaylistSummary, ReconstructionJob
from ..utils.helpers import pluralize
from ..utils.logger import get_logger
from ..utils.validation import parse_selection
from .fetcher import PlaylistTrackFetcher
from .rebuilder import PlaylistRebuilder
from .reverser import reverse_tracks

SELECTION_PROMPT = "\nEnter the numbers of the playlists you want to fix (comma separated, e.g. 1,3,7)"


def prompt_selection() -> str:
    """
    Read the playlist selection from the console

    Raises:
        SelectionInputError: If input is closed or the prompt is aborted
    """
    try:
        return click.prompt(SELECTION_PROMPT, default="", show_default=False)
    except click.Abort as e:
        raise SelectionInputError("Error reading input: console closed before a selection was made") from e


class PlaylistFixer:
    """
    Orchestrates one complete fix run

    Attributes:
        settings: Settings for credentials, pacing and page size
        echo: Output function for user-facing lines
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[Credential], SpotifyClient]] = None,
        server_factory: Callable[..., AuthorizationCallbackServer] = AuthorizationCallbackServer,
        read_selection: Callable[[], str] = prompt_selection,
        echo: Callable[[str], None] = click.echo,
        sleep: Callable[[float], None] = time.sleep,
        show_progress: bool = True
    ):
        """
        Initialize the orchestrator

        Args:
            settings: Application settings
            client_factory: Builds the API client from the login credential
            server_factory: Builds the login callback listener
            read_selection: Returns the raw selection text
            echo: Prints one line for the user
            sleep: Sleep used for pacing appends
            show_progress: Show the "Tracks remaining" counter
        """
        self.settings = settings
        self.client_factory = client_factory or (lambda credential: SpotifyClient(credential, settings))
        self.server_factory = server_factory
        self.read_selection = read_selection
        self.echo = echo
        self.sleep = sleep
        self.show_progress = show_progress
        self.logger = get_logger(__name__)

    def authenticate(self) -> SpotifyClient:
        """
        Run the browser login and return the authenticated client

        Blocks until the callback arrives, or until the configured login
        timeout elapses when one is set.

        Raises:
            ConfigurationError: If credentials or the redirect URL are unusable
            AuthorizationError: If the login fails
        """
        problems = self.settings.validate()
        if problems:
            raise ConfigurationError("; ".join(problems), details={'problems': problems})

        server = self.server_factory(
            self.settings,
            client_factory=self.client_factory,
            state=generate_state()
        )
        with server:
            self.echo(
                "Please log in to Spotify by visiting the following page in your browser:\n "
                + server.authorize_url
            )
            client = server.wait_for_client(timeout=self.settings.rebuild.login_timeout)

        self.logger.info("Login completed")
        return client

    def list_playlists(self, client) -> List[PlaylistSummary]:
        """Fetch the user's playlists and print the numbered listing"""
        self.echo("\nFetching playlists")
        playlists = client.get_user_playlists()
        for number, playlist in enumerate(playlists, start=1):
            self.echo(f"[{number}] {playlist.name} (Tracks: {playlist.total_tracks})")
        return playlists

    def run(self, client=None, selection: Optional[str] = None) -> List[ReconstructionJob]:
        """
        Perform a complete fix run

        Args:
            client: Already authenticated client; the browser login runs when omitted
            selection: Selection text; the console prompt runs when omitted

        Returns:
            One ReconstructionJob per selected playlist, in selection order

        Raises:
            PlaylistFixerError: For fatal failures (login, listing, selection)
        """
        if client is None:
            client = self.authenticate()

        user = client.get_current_user()
        self.echo(f"\nLogged in as: {user.display_name}")

        playlists = self.list_playlists(client)
        if not playlists:
            self.echo("No playlists found.")
            return []

        text = selection if selection is not None else self.read_selection()
        indices = parse_selection(text, len(playlists))
        self.logger.info(f"Selected playlists: {[index + 1 for index in indices]}")

        jobs = [self.process_playlist(client, user.id, playlists[index]) for index in indices]

        self.echo("\nDone!")
        self._log_summary(jobs)
        return jobs

    def process_playlist(self, client, user_id: str, summary: PlaylistSummary) -> ReconstructionJob:
        """
        Fix one playlist: fetch, reverse, create the copy, append the tracks

        Never raises for failures scoped to this playlist; the returned job
        records what happened instead.
        """
        self.echo(f"\nProcessing playlist: {summary.name}")
        job = ReconstructionJob(source=summary)

        fetcher = PlaylistTrackFetcher(client, page_size=self.settings.rebuild.page_size)
        try:
            job.tracks = fetcher.fetch(summary.id)
        except PlaylistFetchError as e:
            self.logger.warning(f"Error fetching tracks for {summary.name}: {e}")
            job.status = JobStatus.FETCH_FAILED
            job.error = str(e)
            return job

        if not job.tracks:
            self.echo("No tracks found.")
            job.status = JobStatus.EMPTY
            return job

        job.reversed_tracks = reverse_tracks(job.tracks)

        rebuilder = PlaylistRebuilder(
            client,
            pace_seconds=self.settings.rebuild.pace_seconds,
            sleep=self.sleep,
            name_suffix=self.settings.rebuild.name_suffix,
            description_prefix=self.settings.rebuild.description_prefix,
            show_progress=self.show_progress
        )
        try:
            job.outcome = rebuilder.rebuild(user_id, summary, job.reversed_tracks)
        except PlaylistCreateError as e:
            self.logger.warning(f"Error creating playlist {rebuilder.copy_name(summary.name)}: {e}")
            job.status = JobStatus.CREATE_FAILED
            job.error = str(e)
            return job

        job.destination_id = job.outcome.playlist_id
        if job.failed_tracks:
            job.status = JobStatus.COMPLETED_WITH_ERRORS
            self.logger.warning(
                f"{pluralize(len(job.failed_tracks), 'track')} could not be added to {job.outcome.playlist_name}"
            )
        else:
            job.status = JobStatus.COMPLETED

        self.echo("Playlist processing complete.")
        return job

    def _log_summary(self, jobs: List[ReconstructionJob]) -> None:
        for job in jobs:
            added = job.outcome.added_count if job.outcome else 0
            self.logger.info(
                f"{job.source.name}: {job.status.value}, {added}/{len(job.reversed_tracks)} tracks added"
            )
