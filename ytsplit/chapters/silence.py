"""Silence-based chapter detection, the last fallback tier."""

import logging
from pathlib import Path
from typing import Callable

from ytsplit import ffutil
from ytsplit.config import SilenceConfig
from ytsplit.models import Chapter, SilenceInterval

logger = logging.getLogger(__name__)

SilenceDetector = Callable[..., list[SilenceInterval]]


def boundaries_from_silence(
    intervals: list[SilenceInterval], duration: float | None
) -> list[float]:
    """Midpoints of the silences that sit strictly inside the file.

    Leading and trailing silence touch the file edges and do not separate
    two tracks, so they are skipped.
    """
    boundaries: list[float] = []
    for interval in sorted(intervals, key=lambda s: s.start):
        if interval.start <= 0.0:
            continue
        if duration is not None and interval.end >= duration:
            continue
        mid = interval.midpoint
        if boundaries and mid <= boundaries[-1]:
            continue
        boundaries.append(mid)
    return boundaries


def chapters_from_boundaries(boundaries: list[float], duration: float | None) -> list[Chapter]:
    edges = [0.0, *boundaries]
    chapters = []
    for i, start in enumerate(edges):
        end = edges[i + 1] if i + 1 < len(edges) else duration
        chapters.append(Chapter(title=f"Track {i + 1}", start_time=start, end_time=end))
    return chapters


def whole_file_chapter(duration: float | None) -> list[Chapter]:
    return [Chapter(title="Track 1", start_time=0.0, end_time=duration or None)]


def chapters_from_silence(
    input_path: Path,
    duration: float | None,
    config: SilenceConfig,
    detect: SilenceDetector | None = None,
) -> list[Chapter]:
    """Derive track boundaries from silence gaps.

    Never raises for analysis problems: if ffmpeg fails or finds no usable
    silence, the whole file becomes a single chapter.
    """
    detect = detect or ffutil.detect_silence

    if not duration:
        try:
            duration = ffutil.probe_duration(input_path)
        except ffutil.AnalysisError as e:
            logger.warning("Could not determine audio duration: %s", e)
            duration = None

    try:
        intervals = detect(
            input_path,
            threshold_db=config.threshold_db,
            min_duration=config.min_duration,
            duration=duration,
        )
    except ffutil.AnalysisError as e:
        logger.warning("Silence analysis failed, keeping the file as one track: %s", e)
        return whole_file_chapter(duration)

    boundaries = boundaries_from_silence(intervals, duration)
    if not boundaries:
        logger.warning("No silence detected, keeping the file as one track")
        return whole_file_chapter(duration)

    chapters = chapters_from_boundaries(boundaries, duration)
    logger.info("%d tracks detected from silence", len(chapters))
    return chapters
