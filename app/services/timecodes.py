"""
Timecode helpers for clip requests.

Accepts ``M:SS`` / ``MM:SS`` and ``H:MM:SS`` forms and renders seconds back
as zero-padded ``MM:SS`` or ``HH:MM:SS``.
"""

import re

TIMECODE_PATTERN = r"^\d+:[0-5]\d(:[0-5]\d)?$"

_TIMECODE_RE = re.compile(TIMECODE_PATTERN)


def is_valid_timecode(value: str) -> bool:
    return bool(_TIMECODE_RE.match(value))


def parse_timecode(value: str) -> int:
    """
    Convert a timecode string to seconds.

    Args:
        value: ``M:SS`` or ``H:MM:SS``

    Returns:
        Total seconds

    Raises:
        ValueError: If the string is not a recognised timecode
    """
    if not is_valid_timecode(value):
        raise ValueError(f"Invalid time format: {value!r}")

    parts = [int(p) for p in value.split(":")]
    if len(parts) == 2:
        minutes, seconds = parts
        return minutes * 60 + seconds

    hours, minutes, seconds = parts
    return hours * 3600 + minutes * 60 + seconds


def format_seconds(total_seconds: int) -> str:
    """Format seconds as MM:SS, or HH:MM:SS when at least one hour."""
    total_seconds = int(total_seconds)
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"
