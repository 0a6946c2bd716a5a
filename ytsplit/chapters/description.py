"""Chapter extraction from free-text video descriptions.

Descriptions often carry a tracklist when the platform has no chapter
metadata. Three line shapes are recognised, tried as families in priority
order; the first family that finds at least two timestamped lines wins:

    1 - Title (4:24)        numbered list, timestamp last
    [00:04:24] Title        leading timestamp, bracketed or plain
    Title - 4:24            trailing timestamp without a number

A single timestamp is never treated as a tracklist since it is just as
likely to be a mention of a moment in the video.
"""

import logging
import re

from ytsplit.models import Chapter
from ytsplit.timestamps import parse_timestamp
from ytsplit.titles import clean_chapter_title

logger = logging.getLogger(__name__)

_TS = r"\[?\d{1,2}(?::\d{2}){1,2}\]?"

_NUMBERED_RE = re.compile(
    rf"^\s*\d{{1,3}}\s*[-–—.)]\s*(?P<title>.*?)\s*\(\s*(?P<ts>\d{{1,2}}(?::\d{{2}}){{1,2}})\s*\)\s*$"
)
_LEADING_RE = re.compile(
    rf"^\s*(?P<ts>{_TS})(?![\d:])\s*[-–—:|]?\s*(?P<title>.*?)\s*$"
)
_TRAILING_RE = re.compile(
    rf"^\s*(?P<title>.*?\S)(?:\s+|\s*[-–—:|]\s*|(?=[\[(]))"
    rf"(?:(?P<ts1>{_TS})|\(\s*(?P<ts2>\d{{1,2}}(?::\d{{2}}){{1,2}})\s*\))\s*$"
)

MIN_ENTRIES = 2


def _match_numbered(line: str) -> tuple[str, str] | None:
    m = _NUMBERED_RE.match(line)
    return (m.group("ts"), m.group("title")) if m else None


def _match_leading(line: str) -> tuple[str, str] | None:
    m = _LEADING_RE.match(line)
    return (m.group("ts"), m.group("title")) if m else None


def _match_trailing(line: str) -> tuple[str, str] | None:
    m = _TRAILING_RE.match(line)
    if m is None:
        return None
    return (m.group("ts1") or m.group("ts2"), m.group("title"))


PATTERN_FAMILIES = (
    ("numbered", _match_numbered),
    ("leading", _match_leading),
    ("trailing", _match_trailing),
)


def _extract(lines: list[str], matcher) -> list[tuple[float, str]]:
    entries: list[tuple[float, str]] = []
    for line in lines:
        found = matcher(line)
        if found is None:
            continue
        ts, title = found
        seconds = parse_timestamp(ts)
        if seconds is None:
            continue
        entries.append((seconds, title))
    return entries


def _build_chapters(
    entries: list[tuple[float, str]], duration: float | None
) -> list[Chapter] | None:
    entries = sorted(entries, key=lambda e: e[0])
    starts = [start for start, _ in entries]

    if len(set(starts)) != len(starts):
        logger.debug("Duplicate timestamps in description, ignoring tracklist")
        return None
    if duration and starts[-1] >= duration:
        logger.debug(
            "Description timestamp %.0fs is beyond the video duration %.0fs", starts[-1], duration
        )
        return None

    chapters: list[Chapter] = []
    for i, (start, raw_title) in enumerate(entries):
        end = starts[i + 1] if i + 1 < len(entries) else (duration or None)
        title = clean_chapter_title(raw_title) or f"Track {i + 1}"
        chapters.append(Chapter(title=title, start_time=start, end_time=end))
    return chapters


def chapters_from_description(description: str, duration: float | None) -> list[Chapter] | None:
    """Parse a tracklist out of a video description.

    Returns the chapters in time order, or None when the description holds
    no usable tracklist. ``duration`` closes the last chapter; when it is
    unknown the last chapter is left open.
    """
    if not description:
        return None

    lines = description.splitlines()
    for name, matcher in PATTERN_FAMILIES:
        entries = _extract(lines, matcher)
        if len(entries) < MIN_ENTRIES:
            continue
        logger.debug("Description matched %d '%s' lines", len(entries), name)
        chapters = _build_chapters(entries, duration)
        if chapters is not None:
            logger.info("Parsed %d chapters from the description", len(chapters))
        return chapters

    logger.debug("No tracklist found in description")
    return None
