"""Chapter resolution: metadata, then description, then silence."""

import logging
from typing import Callable

from ytsplit.chapters.description import chapters_from_description
from ytsplit.ffutil import AnalysisError
from ytsplit.models import Chapter, Resolution, VideoInfo

logger = logging.getLogger(__name__)

Tier = Callable[[], list[Chapter] | None]

SOURCE_METADATA = "metadata"
SOURCE_DESCRIPTION = "description"
SOURCE_SILENCE = "silence"


def chapters_from_metadata(raw_chapters: list[dict] | None, duration: float | None = None) -> list[Chapter]:
    """Build chapters from the ``chapters`` array of yt-dlp's JSON output.

    Entries without a usable start time are skipped; missing end times are
    filled from the next chapter's start or the video duration.
    """
    entries: list[tuple[float, float | None, str]] = []
    for item in raw_chapters or []:
        start = item.get("start_time")
        if not isinstance(start, (int, float)) or start < 0:
            continue
        end = item.get("end_time")
        end = float(end) if isinstance(end, (int, float)) else None
        entries.append((float(start), end, (item.get("title") or "").strip()))
    entries.sort(key=lambda e: e[0])

    chapters: list[Chapter] = []
    for i, (start, end, title) in enumerate(entries):
        if i + 1 < len(entries):
            end = entries[i + 1][0]
        elif end is None or end <= start:
            end = duration or None
        if end is not None and end <= start:
            continue
        chapters.append(Chapter(title=title or f"Track {i + 1}", start_time=start, end_time=end))
    return chapters


def close_gaps(chapters: list[Chapter], duration: float | None = None) -> list[Chapter]:
    """Make a chapter list contiguous, starting at zero.

    Each chapter ends where the next begins, and the last one ends at
    ``duration`` when that is known.
    """
    if not chapters:
        return []
    ordered = sorted(chapters, key=lambda c: c.start_time)
    starts = [0.0] + [c.start_time for c in ordered[1:]]
    last_end = duration if duration else ordered[-1].end_time
    if last_end is not None and last_end <= starts[-1]:
        last_end = ordered[-1].end_time
    ends = starts[1:] + [last_end]
    return [
        Chapter(title=c.title, start_time=s, end_time=e)
        for c, s, e in zip(ordered, starts, ends)
    ]


def resolve_chapters(info: VideoInfo, silence_tier: Tier) -> Resolution:
    """Try each chapter source once, in order of trust, and keep the first hit.

    ``silence_tier`` always returns chapters (a single whole-file chapter in
    the worst case), so resolution cannot fail.
    """
    tiers: list[tuple[str, Tier]] = [
        (SOURCE_METADATA, lambda: info.chapters or None),
        (SOURCE_DESCRIPTION, lambda: chapters_from_description(info.description, info.duration)),
        (SOURCE_SILENCE, silence_tier),
    ]

    for source, tier in tiers:
        try:
            chapters = tier()
        except (ValueError, AnalysisError) as e:
            logger.warning("Chapter source %s failed: %s", source, e)
            continue
        if chapters:
            logger.info("Using %d chapters from %s", len(chapters), source)
            return Resolution(chapters=close_gaps(chapters, info.duration), source=source)
        logger.debug("No chapters from %s", source)

    # Only reachable if the silence tier breaks its contract
    logger.warning("No chapter source produced anything, using the whole file")
    return Resolution(
        chapters=[Chapter(title="Track 1", start_time=0.0, end_time=info.duration or None)],
        source=SOURCE_SILENCE,
    )
