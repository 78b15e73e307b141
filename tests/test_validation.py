"""Test playlist selection parsing"""

import pytest

from playlist_fixer.exceptions import (
    EmptySelection,
    InvalidSelectionToken,
    SelectionError,
    SelectionOutOfRange,
)
from playlist_fixer.utils.validation import parse_selection


class TestParseSelection:
    """Test parse_selection"""

    @pytest.mark.parametrize("text,total,expected", [
        ("1", 5, [0]),
        ("1, 3", 5, [0, 2]),
        ("3, 1", 5, [2, 0]),
        ("  2  ", 5, [1]),
        ("1,,3", 5, [0, 2]),
        ("1,3,", 5, [0, 2]),
        ("2,2", 5, [1, 1]),
        ("5", 5, [4]),
    ])
    def test_valid_selections(self, text, total, expected):
        assert parse_selection(text, total) == expected

    @pytest.mark.parametrize("text", ["", "   ", ",", " , ,"])
    def test_empty_selection(self, text):
        with pytest.raises(EmptySelection):
            parse_selection(text, 5)

    @pytest.mark.parametrize("text,token", [
        ("abc", "abc"),
        ("1, x", "x"),
        ("1.5", "1.5"),
        ("1 2", "1 2"),
        ("+2", "+2"),
        ("-1", "-1"),
        ("1_0", "1_0"),
        ("\u0663", "\u0663"),
    ])
    def test_invalid_token(self, text, token):
        with pytest.raises(InvalidSelectionToken) as exc_info:
            parse_selection(text, 5)

        assert exc_info.value.token == token
        assert str(exc_info.value) == f"Invalid number: {token}"

    @pytest.mark.parametrize("text,value", [("6", 6), ("0", 0), ("1, 9", 9), ("10", 10)])
    def test_out_of_range(self, text, value):
        with pytest.raises(SelectionOutOfRange) as exc_info:
            parse_selection(text, 5)

        assert exc_info.value.value == value
        assert exc_info.value.total == 5

    def test_first_bad_token_wins(self):
        with pytest.raises(InvalidSelectionToken):
            parse_selection("abc, 9", 5)

    def test_all_errors_are_selection_errors(self):
        for text in ["", "abc", "6"]:
            with pytest.raises(SelectionError):
                parse_selection(text, 5)
