"""
Input validation utilities
"""
import re
from typing import List

from ..exceptions import EmptySelection, InvalidSelectionToken, SelectionOutOfRange

SELECTION_NUMBER = re.compile(r'[0-9]+')


def parse_selection(text: str, total: int) -> List[int]:
    """
    Parse a comma separated list of playlist numbers

    Numbers are 1-based as shown in the listing. Empty tokens between commas
    are skipped and duplicates are kept, so "1,,1" processes playlist 1 twice.

    Args:
        text: Raw console input, e.g. "1, 3"
        total: Number of playlists that were listed

    Returns:
        0-based indices in the order the user typed them

    Raises:
        EmptySelection: If the input holds no numbers at all
        InvalidSelectionToken: If a token is not an integer
        SelectionOutOfRange: If a number is outside 1..total
    """
    text = (text or "").strip()
    if not text:
        raise EmptySelection("No playlists selected")

    indices = []
    for raw_token in text.split(','):
        token = raw_token.strip()
        if not token:
            continue

        # Plain ASCII digits only; int() would also take "+1", "1_0" and non-Latin digits
        if not SELECTION_NUMBER.fullmatch(token):
            raise InvalidSelectionToken(token)
        value = int(token)

        if value < 1 or value > total:
            raise SelectionOutOfRange(value, total)

        indices.append(value - 1)

    if not indices:
        raise EmptySelection("No playlists selected")

    return indices
