"""Test track order reversal"""

import pytest

from playlist_fixer.rebuild.reverser import reverse_tracks


class TestReverseTracks:
    """Test reverse_tracks properties"""

    @pytest.mark.parametrize("tracks", [
        [],
        ['A'],
        ['A', 'B'],
        ['A', 'B', 'C', 'D', 'E'],
        ['A', 'A', 'B'],
    ])
    def test_reversing_twice_restores_order(self, tracks):
        assert reverse_tracks(reverse_tracks(tracks)) == tracks

    def test_empty_sequence(self):
        assert reverse_tracks([]) == []

    def test_first_becomes_last(self):
        tracks = ['A', 'B', 'C']
        result = reverse_tracks(tracks)

        assert result == ['C', 'B', 'A']
        assert result[0] == tracks[-1]
        assert len(result) == len(tracks)

    def test_input_not_mutated(self):
        tracks = ['A', 'B', 'C']
        result = reverse_tracks(tracks)

        assert tracks == ['A', 'B', 'C']
        assert result is not tracks

    def test_accepts_tuples(self):
        assert reverse_tracks(('A', 'B')) == ['B', 'A']
