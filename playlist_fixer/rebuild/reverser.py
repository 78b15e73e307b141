"""
Track order reversal
"""

from typing import List, Sequence, TypeVar

T = TypeVar('T')


def reverse_tracks(tracks: Sequence[T]) -> List[T]:
    """
    Return a new list holding the tracks in reverse order

    The input is never modified. Reversing twice gives back the original
    order and the empty sequence maps to an empty list.
    """
    return list(reversed(tracks))
