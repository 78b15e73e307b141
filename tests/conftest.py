"""Test configuration and fixtures"""

import logging

import pytest
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from playlist_fixer.config.settings import Settings
from playlist_fixer.exceptions import SpotifyAPIError
from playlist_fixer.spotify.models import PlaylistSummary, SpotifyUser, TrackPage

SPOTIFY_ENV_VARS = [
    'SPOTIFY_ID', 'SPOTIFY_CLIENT_ID', 'SPOTIFY_SECRET', 'SPOTIFY_CLIENT_SECRET',
    'SPOTIFY_REDIRECT_URL', 'PLAYLIST_FIXER_PACE',
]


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def isolated_env(temp_dir, monkeypatch):
    """Empty home and working directory, no Spotify variables in the environment"""
    for name in SPOTIFY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv('HOME', str(temp_dir))
    monkeypatch.chdir(temp_dir)
    return temp_dir


@pytest.fixture
def write_config(temp_dir):
    """Write a YAML config file and return its path"""
    def _write(data: Dict, name: str = "test-config.yaml") -> Path:
        path = temp_dir / name
        with open(path, 'w', encoding='utf-8') as f:
            yaml.safe_dump(data, f)
        return path
    return _write


@pytest.fixture
def settings(isolated_env, monkeypatch):
    """Settings with test credentials and no pacing delay"""
    monkeypatch.setenv('SPOTIFY_ID', 'test-client-id')
    monkeypatch.setenv('SPOTIFY_SECRET', 'test-client-secret')
    test_settings = Settings()
    test_settings.rebuild.pace_seconds = 0
    return test_settings


class FakeSpotifyClient:
    """
    In-memory stand-in for SpotifyClient that records every call

    Playlist items are given as lists of track IDs; None marks a non-track
    slot (episode, local file).
    """

    def __init__(
        self,
        playlists: Optional[List[PlaylistSummary]] = None,
        items: Optional[Dict[str, List[Optional[str]]]] = None,
        failing_tracks: Optional[List[str]] = None,
        fail_fetch_for: Optional[List[str]] = None,
        fail_create: bool = False,
        user: Optional[SpotifyUser] = None
    ):
        self.user = user or SpotifyUser(id='user-1', display_name='Test User')
        self.playlists = playlists or []
        self.items = items or {}
        self.failing_tracks = set(failing_tracks or [])
        self.fail_fetch_for = set(fail_fetch_for or [])
        self.fail_create = fail_create

        self.page_requests = []
        self.created = []
        self.added = []
        self.add_attempts = []

    def get_current_user(self) -> SpotifyUser:
        return self.user

    def get_user_playlists(self) -> List[PlaylistSummary]:
        return list(self.playlists)

    def get_playlist_items(self, playlist_id: str, limit: int, offset: int) -> TrackPage:
        self.page_requests.append((playlist_id, limit, offset))
        if playlist_id in self.fail_fetch_for:
            raise SpotifyAPIError("Not found", http_status=404)
        all_items = self.items.get(playlist_id, [])
        return TrackPage(items=all_items[offset:offset + limit], total=len(all_items))

    def create_playlist(self, user_id, name, description, public, collaborative) -> str:
        if self.fail_create:
            raise SpotifyAPIError("Forbidden", http_status=403)
        playlist_id = f"new-{len(self.created) + 1}"
        self.created.append({
            'id': playlist_id,
            'user_id': user_id,
            'name': name,
            'description': description,
            'public': public,
            'collaborative': collaborative,
        })
        return playlist_id

    def add_track(self, playlist_id: str, track_id: str) -> None:
        self.add_attempts.append((playlist_id, track_id))
        if track_id in self.failing_tracks:
            raise SpotifyAPIError(f"Track {track_id} rejected", http_status=400)
        self.added.append((playlist_id, track_id))


@pytest.fixture
def make_summary():
    """Build a PlaylistSummary with sensible defaults"""
    def _make(playlist_id='pl-1', name='My Jam', total_tracks=2, public=True, collaborative=False):
        return PlaylistSummary(
            id=playlist_id,
            name=name,
            total_tracks=total_tracks,
            public=public,
            collaborative=collaborative,
            owner_id='user-1'
        )
    return _make


@pytest.fixture
def fake_client():
    """Factory for FakeSpotifyClient instances"""
    return FakeSpotifyClient


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo handler changes made by setup_logging or the CLI"""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
