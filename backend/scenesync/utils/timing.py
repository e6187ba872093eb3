"""Timing utilities for subtitle processing.

Contains the SubRip timestamp helpers shared by the SRT parser,
the SRT generator and the adapted-subtitle export route.
"""

import re

SRT_TIMESTAMP_RE = re.compile(r"(\d{2,}):(\d{2}):(\d{2}),(\d{3})")


def format_srt_timestamp(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS,mmm``.

    Milliseconds are rounded once on the total, so values such as
    59.9996 become ``00:01:00,000`` rather than ``00:00:59,1000``.

    Example:
        >>> format_srt_timestamp(3725.4)
        '01:02:05,400'
    """
    total_ms = max(0, int(round(seconds * 1000)))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, millis = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def parse_srt_timestamp(value: str) -> float:
    """Parse ``HH:MM:SS,mmm`` into seconds.

    Raises:
        ValueError: if the string is not a SubRip timestamp
    """
    match = SRT_TIMESTAMP_RE.fullmatch(value.strip())
    if not match:
        raise ValueError(f"Invalid SRT timestamp: {value!r}")

    hours, minutes, secs, millis = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + secs + millis / 1000
