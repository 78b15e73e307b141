"""Test creation and population of the reversed copy"""

import pytest
from unittest.mock import Mock, call

from playlist_fixer.exceptions import PlaylistCreateError
from playlist_fixer.rebuild.rebuilder import PlaylistRebuilder
from playlist_fixer.rebuild.reverser import reverse_tracks
from playlist_fixer.spotify.models import AppendStatus


class TestPlaylistRebuilder:
    """Test PlaylistRebuilder"""

    def make_rebuilder(self, client, pace=0, sleep=None):
        return PlaylistRebuilder(client, pace_seconds=pace, sleep=sleep or Mock(), show_progress=False)

    def test_appends_in_given_order(self, fake_client, make_summary):
        client = fake_client()
        rebuilder = self.make_rebuilder(client)

        outcome = rebuilder.rebuild('user-1', make_summary(), reverse_tracks(['A', 'B']))

        assert client.added == [('new-1', 'B'), ('new-1', 'A')]
        assert outcome.attempted == 2
        assert outcome.added_count == 2
        assert outcome.failed_tracks == []

    def test_copy_name_description_and_flags(self, fake_client, make_summary):
        client = fake_client()
        summary = make_summary(name='Road Trip', public=False, collaborative=True)

        outcome = self.make_rebuilder(client).rebuild('user-1', summary, ['A'])

        created = client.created[0]
        assert created['name'] == 'Road Trip Fixed'
        assert created['description'] == 'Fixed copy of Road Trip'
        assert created['public'] is False
        assert created['collaborative'] is True
        assert created['user_id'] == 'user-1'
        assert outcome.playlist_name == 'Road Trip Fixed'

    def test_partial_failure_continues_without_retry(self, fake_client, make_summary):
        client = fake_client(failing_tracks=['B'])

        outcome = self.make_rebuilder(client).rebuild('user-1', make_summary(), ['B', 'A'])

        assert client.add_attempts == [('new-1', 'B'), ('new-1', 'A')]
        assert client.added == [('new-1', 'A')]
        assert outcome.failed_tracks == ['B']
        assert outcome.outcomes[0].status is AppendStatus.FAILED
        assert outcome.outcomes[0].error == "Track B rejected"
        assert outcome.outcomes[1].status is AppendStatus.ADDED

    def test_create_failure_appends_nothing(self, fake_client, make_summary):
        client = fake_client(fail_create=True)

        with pytest.raises(PlaylistCreateError) as exc_info:
            self.make_rebuilder(client).rebuild('user-1', make_summary(), ['A'])

        assert exc_info.value.http_status == 403
        assert client.add_attempts == []

    def test_pauses_between_appends_only(self, fake_client, make_summary):
        sleep = Mock()
        rebuilder = self.make_rebuilder(fake_client(), pace=1.0, sleep=sleep)

        rebuilder.rebuild('user-1', make_summary(), ['C', 'B', 'A'])

        assert sleep.call_args_list == [call(1.0), call(1.0)]

    def test_zero_pace_never_sleeps(self, fake_client, make_summary):
        sleep = Mock()
        rebuilder = self.make_rebuilder(fake_client(), pace=0, sleep=sleep)

        rebuilder.rebuild('user-1', make_summary(), ['B', 'A'])

        sleep.assert_not_called()

    def test_progress_callback_counts_down(self, fake_client, make_summary):
        remaining = []
        rebuilder = self.make_rebuilder(fake_client(failing_tracks=['B']))

        rebuilder.rebuild('user-1', make_summary(), ['C', 'B', 'A'], on_progress=remaining.append)

        assert remaining == [2, 1, 0]

    def test_progress_bar_enabled(self, fake_client, make_summary):
        client = fake_client()
        rebuilder = PlaylistRebuilder(client, pace_seconds=0, sleep=Mock(), show_progress=True)

        outcome = rebuilder.rebuild('user-1', make_summary(), ['B', 'A'])

        assert outcome.added_count == 2

    def test_negative_pace_rejected(self):
        with pytest.raises(ValueError):
            PlaylistRebuilder(Mock(), pace_seconds=-1)
