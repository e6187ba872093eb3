"""SubRip (.srt) parsing and generation."""

import logging
import re

from ..errors import FormatError
from ..models import Subtitle
from ..utils.timing import format_srt_timestamp, parse_srt_timestamp

logger = logging.getLogger("uvicorn.error")

_BLOCK_SEPARATOR_RE = re.compile(r"\r?\n\r?\n")
_LINE_SEPARATOR_RE = re.compile(r"\r?\n")
_TIMING_RE = re.compile(r"(\d{2}:\d{2}:\d{2},\d{3})\s*-->\s*(\d{2}:\d{2}:\d{2},\d{3})")


def _parse_block(block: str) -> Subtitle:
    lines = _LINE_SEPARATOR_RE.split(block)
    if len(lines) < 3:
        raise FormatError(f"Block has {len(lines)} line(s), expected index, timing and text")

    index_line = lines[0].strip()
    if not index_line.isdigit() or int(index_line) == 0:
        raise FormatError(f"Invalid subtitle index: {index_line!r}")

    timing = _TIMING_RE.search(lines[1])
    if not timing:
        raise FormatError(f"Invalid timing line: {lines[1]!r}")

    return Subtitle(
        id=int(index_line),
        start_time=parse_srt_timestamp(timing.group(1)),
        end_time=parse_srt_timestamp(timing.group(2)),
        text="\n".join(lines[2:]),
    )


def parse_srt(content: str) -> list[Subtitle]:
    """
    Parse SRT content into subtitles.

    Accepts LF or CRLF line endings. Malformed blocks are skipped, never fatal.
    """
    subtitles: list[Subtitle] = []
    content = content.lstrip("\ufeff").strip()
    if not content:
        return subtitles

    for block in _BLOCK_SEPARATOR_RE.split(content):
        block = block.strip()
        if not block:
            continue
        try:
            subtitles.append(_parse_block(block))
        except FormatError as exc:
            logger.debug("Skipping malformed SRT block: %s", exc)

    return subtitles


def generate_srt(subtitles: list[Subtitle]) -> str:
    """Render subtitles as SRT content, numbered in list order."""
    blocks = [
        f"{index}\n{format_srt_timestamp(sub.start_time)} --> {format_srt_timestamp(sub.end_time)}\n{sub.text}\n"
        for index, sub in enumerate(subtitles, start=1)
    ]
    return "\n".join(blocks)
