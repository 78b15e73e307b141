"""Test the end-to-end fix run"""

import time

import click
import pytest
from unittest.mock import Mock, patch
from spotipy.exceptions import SpotifyException

from playlist_fixer.exceptions import (
    ConfigurationError,
    InvalidSelectionToken,
    LoginTimeout,
    SelectionInputError,
    SpotifyAPIError,
    TokenExchangeFailed,
)
from playlist_fixer.rebuild.orchestrator import PlaylistFixer, prompt_selection
from playlist_fixer.spotify.client import SpotifyClient
from playlist_fixer.spotify.models import Credential, JobStatus


class FakeServer:
    """Stand-in for AuthorizationCallbackServer that delivers a prepared client"""

    instances = []

    def __init__(self, settings, client_factory, state):
        self.settings = settings
        self.client_factory = client_factory
        self.state = state
        self.started = False
        self.stopped = False
        self.wait_timeout = 'unset'
        self.result = None
        FakeServer.instances.append(self)

    @property
    def authorize_url(self):
        return f"https://accounts.spotify.com/authorize?state={self.state}"

    def __enter__(self):
        self.started = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stopped = True

    def wait_for_client(self, timeout=None):
        self.wait_timeout = timeout
        if isinstance(self.result, BaseException):
            raise self.result
        return self.result


@pytest.fixture
def output():
    return []


@pytest.fixture
def make_fixer(settings, output):
    def _make(**kwargs):
        kwargs.setdefault('echo', output.append)
        kwargs.setdefault('sleep', Mock())
        kwargs.setdefault('show_progress', False)
        return PlaylistFixer(settings, **kwargs)
    return _make


class TestPlaylistFixerRun:
    """Test PlaylistFixer.run with a fake Spotify client"""

    def test_my_jam_end_to_end(self, make_fixer, fake_client, make_summary, output):
        summary = make_summary(name='My Jam', public=True, collaborative=False)
        client = fake_client(playlists=[summary], items={summary.id: ['track-A', 'track-B']})

        jobs = make_fixer().run(client=client, selection="1")

        assert client.created == [{
            'id': 'new-1',
            'user_id': 'user-1',
            'name': 'My Jam Fixed',
            'description': 'Fixed copy of My Jam',
            'public': True,
            'collaborative': False,
        }]
        assert client.added == [('new-1', 'track-B'), ('new-1', 'track-A')]
        assert jobs[0].status is JobStatus.COMPLETED
        assert jobs[0].destination_id == 'new-1'
        assert "\nLogged in as: Test User" in output
        assert "[1] My Jam (Tracks: 2)" in output
        assert output[-1] == "\nDone!"

    def test_partial_failure_still_done(self, make_fixer, fake_client, make_summary, output):
        summary = make_summary()
        client = fake_client(playlists=[summary], items={summary.id: ['A', 'B']}, failing_tracks=['B'])

        jobs = make_fixer().run(client=client, selection="1")

        assert client.add_attempts == [('new-1', 'B'), ('new-1', 'A')]
        assert jobs[0].status is JobStatus.COMPLETED_WITH_ERRORS
        assert jobs[0].failed_tracks == ['B']
        assert output[-1] == "\nDone!"

    def test_selection_order_and_duplicates(self, make_fixer, fake_client, make_summary):
        first = make_summary(playlist_id='pl-1', name='First')
        second = make_summary(playlist_id='pl-2', name='Second')
        client = fake_client(playlists=[first, second], items={'pl-1': ['A'], 'pl-2': ['B']})

        jobs = make_fixer().run(client=client, selection="2, 1, 2")

        assert [job.source.name for job in jobs] == ['Second', 'First', 'Second']
        assert [c['name'] for c in client.created] == ['Second Fixed', 'First Fixed', 'Second Fixed']

    def test_empty_playlist_creates_nothing(self, make_fixer, fake_client, make_summary, output):
        summary = make_summary(total_tracks=0)
        client = fake_client(playlists=[summary], items={})

        jobs = make_fixer().run(client=client, selection="1")

        assert jobs[0].status is JobStatus.EMPTY
        assert client.created == []
        assert "No tracks found." in output
        assert output[-1] == "\nDone!"

    def test_fetch_failure_skips_playlist(self, make_fixer, fake_client, make_summary, output):
        broken = make_summary(playlist_id='pl-broken', name='Broken')
        good = make_summary(playlist_id='pl-good', name='Good')
        client = fake_client(playlists=[broken, good], items={'pl-good': ['A']}, fail_fetch_for=['pl-broken'])

        jobs = make_fixer().run(client=client, selection="1,2")

        assert jobs[0].status is JobStatus.FETCH_FAILED
        assert jobs[0].error
        assert jobs[1].status is JobStatus.COMPLETED
        assert [c['name'] for c in client.created] == ['Good Fixed']
        assert output[-1] == "\nDone!"

    def test_create_failure_skips_playlist(self, make_fixer, fake_client, make_summary, output):
        summary = make_summary()
        client = fake_client(playlists=[summary], items={summary.id: ['A']}, fail_create=True)

        jobs = make_fixer().run(client=client, selection="1")

        assert jobs[0].status is JobStatus.CREATE_FAILED
        assert client.add_attempts == []
        assert output[-1] == "\nDone!"

    def test_invalid_selection_processes_nothing(self, make_fixer, fake_client, make_summary, output):
        summary = make_summary()
        client = fake_client(playlists=[summary], items={summary.id: ['A']})

        with pytest.raises(InvalidSelectionToken):
            make_fixer().run(client=client, selection="1, abc")

        assert client.created == []
        assert "\nDone!" not in output

    def test_no_playlists(self, make_fixer, fake_client, output):
        read_selection = Mock()

        jobs = make_fixer(read_selection=read_selection).run(client=fake_client())

        assert jobs == []
        assert output[-1] == "No playlists found."
        read_selection.assert_not_called()

    def test_prompts_when_no_selection_given(self, make_fixer, fake_client, make_summary):
        summary = make_summary()
        client = fake_client(playlists=[summary], items={summary.id: ['A']})
        read_selection = Mock(return_value="1")

        jobs = make_fixer(read_selection=read_selection).run(client=client)

        read_selection.assert_called_once_with()
        assert len(jobs) == 1

    def test_user_lookup_failure_is_fatal(self, make_fixer):
        client = Mock()
        client.get_current_user.side_effect = SpotifyAPIError("Unauthorized", http_status=401)

        with pytest.raises(SpotifyAPIError):
            make_fixer().run(client=client, selection="1")

    def test_pace_comes_from_settings(self, settings, make_fixer, fake_client, make_summary):
        settings.rebuild.pace_seconds = 1.0
        sleep = Mock()
        summary = make_summary()
        client = fake_client(playlists=[summary], items={summary.id: ['A', 'B', 'C']})

        make_fixer(sleep=sleep).run(client=client, selection="1")

        assert sleep.call_count == 2


class TestPlaylistFixerAuthenticate:
    """Test the login step"""

    def test_authenticate_returns_delivered_client(self, settings, make_fixer, output):
        FakeServer.instances = []
        client = object()

        def server_factory(*args, **kwargs):
            server = FakeServer(*args, **kwargs)
            server.result = client
            return server

        result = make_fixer(server_factory=server_factory).authenticate()

        server = FakeServer.instances[0]
        assert result is client
        assert server.started and server.stopped
        assert server.wait_timeout is None
        assert len(server.state) >= 22
        assert any(server.authorize_url in line for line in output)

    def test_login_timeout_from_settings(self, settings, make_fixer):
        settings.rebuild.login_timeout = 5

        def server_factory(*args, **kwargs):
            server = FakeServer(*args, **kwargs)
            server.result = LoginTimeout("No login completed within 5 seconds")
            return server

        FakeServer.instances = []
        with pytest.raises(LoginTimeout):
            make_fixer(server_factory=server_factory).authenticate()

        assert FakeServer.instances[0].wait_timeout == 5
        assert FakeServer.instances[0].stopped

    def test_missing_credentials(self, settings, make_fixer):
        settings.spotify.client_id = ""
        server_factory = Mock()

        with pytest.raises(ConfigurationError):
            make_fixer(server_factory=server_factory).authenticate()

        server_factory.assert_not_called()

    def test_run_authenticates_without_client(self, make_fixer, fake_client):
        client = fake_client()
        fixer = make_fixer()

        with patch.object(fixer, 'authenticate', return_value=client) as mock_authenticate:
            fixer.run(selection="1")

        mock_authenticate.assert_called_once_with()


class TestPromptSelection:
    """Test console selection input"""

    @patch('playlist_fixer.rebuild.orchestrator.click.prompt', return_value="1,3")
    def test_returns_text(self, mock_prompt):
        assert prompt_selection() == "1,3"

    @patch('playlist_fixer.rebuild.orchestrator.click.prompt', side_effect=click.Abort())
    def test_closed_input(self, mock_prompt):
        with pytest.raises(SelectionInputError):
            prompt_selection()


class TestRunWithSpotifyClient:
    """Test a run through the real SpotifyClient over a mocked spotipy"""

    PLAYLISTS = {
        'pl-1': ('One', ['A', 'B']),
        'pl-2': ('Two', ['C']),
    }

    @pytest.fixture
    def api(self):
        with patch('playlist_fixer.spotify.client.spotipy.Spotify') as mock_spotify:
            api = mock_spotify.return_value
            api.current_user.return_value = {'id': 'user-1', 'display_name': 'Test User'}
            api.current_user_playlists.return_value = {
                'items': [
                    {'id': playlist_id, 'name': name, 'public': True, 'collaborative': False,
                     'tracks': {'total': len(tracks)}, 'owner': {'id': 'user-1'}}
                    for playlist_id, (name, tracks) in self.PLAYLISTS.items()
                ],
                'next': None,
            }

            def playlist_items(playlist_id, limit, offset, **kwargs):
                tracks = self.PLAYLISTS[playlist_id][1][offset:offset + limit]
                return {'items': [{'track': {'id': t, 'type': 'track'}} for t in tracks], 'total': len(tracks)}

            api.playlist_items.side_effect = playlist_items
            api.user_playlist_create.side_effect = lambda user, name, **kwargs: {'id': f"copy-{name}"}
            yield api

    def test_failed_token_refresh_only_fails_that_track(self, settings, make_fixer, api, output):
        def add_items(playlist_id, track_ids):
            if track_ids == ['B']:
                raise SpotifyException(401, -1, "The access token expired")
            return {'snapshot_id': 'snap'}

        api.playlist_add_items.side_effect = add_items
        refresher = Mock(side_effect=TokenExchangeFailed("Failed to refresh access token: 503"))
        credential = Credential(access_token='access-1', refresh_token='refresh-1',
                                expires_at=int(time.time()) + 3600)
        client = SpotifyClient(credential, settings, refresher=refresher)

        jobs = make_fixer().run(client=client, selection="1,2")

        assert [call.args for call in api.playlist_add_items.call_args_list] == [
            ('copy-One Fixed', ['B']),
            ('copy-One Fixed', ['A']),
            ('copy-Two Fixed', ['C']),
        ]
        assert jobs[0].status is JobStatus.COMPLETED_WITH_ERRORS
        assert jobs[0].failed_tracks == ['B']
        assert jobs[1].status is JobStatus.COMPLETED
        assert output[-1] == "\nDone!"

    def test_failed_token_refresh_while_listing_skips_playlist(self, settings, make_fixer, api, output):
        api.playlist_add_items.return_value = {'snapshot_id': 'snap'}
        original = api.playlist_items.side_effect

        def playlist_items(playlist_id, **kwargs):
            if playlist_id == 'pl-1':
                raise SpotifyException(401, -1, "The access token expired")
            return original(playlist_id, **kwargs)

        api.playlist_items.side_effect = playlist_items
        refresher = Mock(side_effect=TokenExchangeFailed("Failed to refresh access token: 503"))
        credential = Credential(access_token='access-1', refresh_token='refresh-1',
                                expires_at=int(time.time()) + 3600)
        client = SpotifyClient(credential, settings, refresher=refresher)

        jobs = make_fixer().run(client=client, selection="1,2")

        assert jobs[0].status is JobStatus.FETCH_FAILED
        assert jobs[1].status is JobStatus.COMPLETED
        assert output[-1] == "\nDone!"
