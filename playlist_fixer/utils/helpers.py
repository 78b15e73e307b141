"""
Small formatting helpers shared by the console output
"""

from typing import Union


def format_duration(seconds: Union[int, float]) -> str:
    """
    Format duration in seconds to human-readable string

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted duration string, "M:SS" or "H:MM:SS"
    """
    if seconds < 0:
        return "0:00"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = int(seconds % 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def pluralize(count: int, word: str) -> str:
    """Return "1 track" / "2 tracks" style text"""
    return f"{count} {word}" if count == 1 else f"{count} {word}s"
