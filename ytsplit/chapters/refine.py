"""Chapter boundary refinement against detected silence.

Declared chapter timestamps are often a second or two off the real gap
between songs. Each internal boundary is moved to the midpoint of the
closest silence found within a small window around it; the first start and
the last end are left where they are.
"""

import logging
from pathlib import Path

from ytsplit import ffutil
from ytsplit.chapters.silence import SilenceDetector
from ytsplit.config import RefineConfig
from ytsplit.models import Chapter, Refinement, RefinementEntry, SilenceInterval

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = 5.0


def nearest_silence(
    intervals: list[SilenceInterval], target: float, window: float
) -> SilenceInterval | None:
    """The interval overlapping ``[target-window, target+window]`` whose
    midpoint is closest to ``target``; earliest wins ties."""
    candidates = [s for s in intervals if s.overlaps(target - window, target + window)]
    if not candidates:
        return None
    return min(candidates, key=lambda s: (abs(s.midpoint - target), s.start))


def refine_chapters(
    chapters: list[Chapter],
    intervals: list[SilenceInterval],
    window: float = DEFAULT_WINDOW,
) -> Refinement:
    """Return a new chapter list with internal boundaries snapped to silence.

    Search windows are built from the original boundaries up front, so an
    earlier adjustment never shifts a later search. A candidate midpoint must
    stay strictly between the previous refined boundary and the next original
    one, otherwise the boundary is left unchanged.
    """
    if len(chapters) < 2:
        return Refinement(
            chapters=list(chapters),
            report=[RefinementEntry(c.title, c.start_time, c.start_time) for c in chapters],
        )

    original = [c.start_time for c in chapters[1:]]
    lower_limit = chapters[0].start_time
    last_end = chapters[-1].end_time

    refined: list[float] = []
    for i, boundary in enumerate(original):
        lo = refined[-1] if refined else lower_limit
        hi = original[i + 1] if i + 1 < len(original) else last_end

        match = nearest_silence(intervals, boundary, window)
        new = boundary
        if match is not None:
            mid = match.midpoint
            if mid > lo and (hi is None or mid < hi):
                new = mid
            else:
                logger.debug("Silence at %.2fs would reorder chapters, keeping %.2fs", mid, boundary)
        refined.append(new)

    starts = [chapters[0].start_time, *refined]
    ends = [*refined, last_end]
    new_chapters = [
        Chapter(title=c.title, start_time=s, end_time=e)
        for c, s, e in zip(chapters, starts, ends)
    ]
    report = [
        RefinementEntry(title=c.title, original_start=c.start_time, refined_start=s)
        for c, s in zip(chapters, starts)
    ]
    for n, entry in enumerate(report, 1):
        if entry.delta:
            logger.debug(
                "Chapter %d: start %.2fs -> %.2fs (%+.2fs)",
                n, entry.original_start, entry.refined_start, entry.delta,
            )
    return Refinement(chapters=new_chapters, report=report)


def refine_from_audio(
    chapters: list[Chapter],
    input_path: Path,
    config: RefineConfig,
    duration: float | None = None,
    detect: SilenceDetector | None = None,
) -> Refinement:
    """Run one full-file silence analysis and refine against it.

    If the analysis fails or finds nothing the chapters come back unchanged.
    """
    detect = detect or ffutil.detect_silence
    try:
        intervals = detect(
            input_path,
            threshold_db=config.threshold_db,
            min_duration=config.min_duration,
            duration=duration,
        )
    except ffutil.AnalysisError as e:
        logger.warning("Silence analysis failed, chapters left as declared: %s", e)
        intervals = []

    if not intervals:
        logger.info("No silences detected, chapters left as declared")
    return refine_chapters(chapters, intervals, window=config.window)


def _format_delta(delta: float) -> str:
    if abs(delta) < 0.1:
        return "-"
    return f"{delta:+.1f}s"


def format_refinement_report(report: list[RefinementEntry]) -> str:
    """Render the original/refined start times as a plain-text table."""
    lines = [
        "Chapter refinement report:",
        f"{'':<5} {'Title':<30} {'Original':>9} -> {'Refined':>9} ({'Delta':>7})",
        "-" * 70,
    ]
    for n, entry in enumerate(report, 1):
        title = entry.title if len(entry.title) <= 28 else entry.title[:25] + "..."
        lines.append(
            f"{str(n) + '.':<5} {title:<30} {entry.original_start:>8.1f}s -> "
            f"{entry.refined_start:>8.1f}s ({_format_delta(entry.delta):>7})"
        )

    deltas = [abs(e.delta) for e in report]
    average = sum(deltas) / len(deltas) if deltas else 0.0
    maximum = max(deltas, default=0.0)
    lines.append("")
    lines.append(f"  Average adjustment: {average:.2f}s | Max adjustment: {maximum:.2f}s")
    return "\n".join(lines)
