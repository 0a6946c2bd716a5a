"""FFmpeg/ffprobe subprocess helpers."""

import logging
import re
import subprocess
from pathlib import Path

from ytsplit.models import SilenceInterval

logger = logging.getLogger(__name__)

_SILENCE_START_RE = re.compile(r"silence_start: (-?[\d.]+)")
_SILENCE_END_RE = re.compile(r"silence_end: (-?[\d.]+)")


class AnalysisError(RuntimeError):
    """Raised when ffmpeg/ffprobe fails or its output cannot be used."""
    pass


def probe_duration(input_path: Path) -> float:
    """Return the container duration in seconds via ffprobe."""
    cmd = [
        "ffprobe",
        "-v", "error",
        "-show_entries", "format=duration",
        "-of", "default=noprint_wrappers=1:nokey=1",
        str(input_path),
    ]
    try:
        result = subprocess.run(cmd, capture_output=True, encoding="utf-8", errors="replace")
    except OSError as e:
        raise AnalysisError(f"Failed to run ffprobe: {e}") from e

    if result.returncode != 0:
        raise AnalysisError(f"ffprobe failed (rc={result.returncode}): {result.stderr.strip()}")
    try:
        return float(result.stdout.strip())
    except ValueError:
        raise AnalysisError(f"Invalid duration from ffprobe: {result.stdout.strip()!r}") from None


def parse_silence_ranges(stderr: str, duration: float | None = None) -> list[SilenceInterval]:
    """Parse silencedetect output from ffmpeg stderr into SilenceIntervals.

    Each ``silence_end`` closes the most recent ``silence_start``. If the last
    start has no matching end (silence extends to EOF), ``duration`` is used
    as the end time; without a duration the unpaired start is dropped.
    """
    intervals: list[SilenceInterval] = []
    current_start: float | None = None

    for line in stderr.splitlines():
        m = _SILENCE_START_RE.search(line)
        if m:
            current_start = max(float(m.group(1)), 0.0)
            continue
        m = _SILENCE_END_RE.search(line)
        if m and current_start is not None:
            end = float(m.group(1))
            if end > current_start:
                intervals.append(SilenceInterval(start=current_start, end=end))
            current_start = None

    if current_start is not None and duration is not None and duration > current_start:
        # Unpaired silence_start: silence extends to EOF
        intervals.append(SilenceInterval(start=current_start, end=duration))

    intervals.sort(key=lambda s: s.start)
    return intervals


def detect_silence(
    input_path: Path,
    threshold_db: float,
    min_duration: float,
    duration: float | None = None,
) -> list[SilenceInterval]:
    """Run FFmpeg silencedetect and return silent intervals.

    *duration* is used to cap trailing silence that extends to EOF (an unpaired
    ``silence_start`` with no matching ``silence_end``).  When not supplied, any
    unpaired trailing silence is dropped.

    Raises AnalysisError when ffmpeg cannot be run or exits with an error.
    """
    cmd = [
        "ffmpeg",
        "-hide_banner",
        "-i", str(input_path),
        "-af", f"silencedetect=noise={threshold_db}dB:d={min_duration}",
        "-f", "null", "-",
    ]
    logger.debug("Detecting silence (threshold %s dB, min %ss) in %s", threshold_db, min_duration, input_path)
    try:
        result = subprocess.run(cmd, capture_output=True, encoding="utf-8", errors="replace")
    except OSError as e:
        raise AnalysisError(f"Failed to run ffmpeg: {e}") from e

    if result.returncode != 0:
        tail = result.stderr.strip().splitlines()[-1:] if result.stderr else []
        raise AnalysisError(
            f"ffmpeg silencedetect failed (rc={result.returncode})"
            + (f": {tail[0]}" if tail else " with no output")
        )

    intervals = parse_silence_ranges(result.stderr, duration=duration)
    logger.info("Found %d silence intervals", len(intervals))
    return intervals


def cut_track(
    input_path: Path,
    output_path: Path,
    start: float,
    duration: float | None,
    bitrate_kbps: int = 192,
) -> None:
    """Encode ``[start, start+duration)`` of the input as an MP3 file.

    A ``duration`` of None copies through to the end of the input.
    """
    cmd = [
        "ffmpeg", "-y",
        "-hide_banner", "-loglevel", "error",
        "-ss", f"{start:.3f}",
        "-i", str(input_path),
    ]
    if duration is not None:
        cmd += ["-t", f"{duration:.3f}"]
    cmd += ["-vn", "-c:a", "libmp3lame", "-b:a", f"{bitrate_kbps}k"]
    cmd.append(str(output_path))
    subprocess.run(cmd, capture_output=True, check=True)
