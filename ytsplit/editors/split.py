"""Track splitter: cuts the downloaded audio into one tagged MP3 per chapter."""

import logging
import subprocess
from pathlib import Path
from typing import Callable

from ytsplit import ffutil
from ytsplit.config import Config
from ytsplit.editors.tags import load_cover, write_tags
from ytsplit.models import Chapter
from ytsplit.titles import sanitize_filename

logger = logging.getLogger(__name__)


class SplitError(RuntimeError):
    pass


def split_tracks(
    input_path: Path,
    chapters: list[Chapter],
    output_dir: Path,
    artist: str,
    album: str,
    config: Config,
    cover_path: Path | None = None,
    on_track: Callable[[int, int, Chapter], None] | None = None,
) -> list[Path]:
    """Encode every chapter to ``output_dir`` and tag it.

    Existing files are skipped unless ``config.overwrite_existing`` is set.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    cover_data, cover_mime = load_cover(cover_path)
    total = len(chapters)
    outputs: list[Path] = []

    for n, chapter in enumerate(chapters, 1):
        name = config.format_filename(n, chapter.title, artist, album)
        output_path = output_dir / f"{sanitize_filename(name)}.mp3"

        if output_path.exists() and not config.overwrite_existing:
            logger.info("Skipping existing track %s", output_path.name)
        else:
            try:
                ffutil.cut_track(
                    input_path,
                    output_path,
                    start=chapter.start_time,
                    duration=chapter.duration,
                    bitrate_kbps=config.audio_quality,
                )
            except subprocess.CalledProcessError as e:
                stderr = e.stderr.decode(errors="replace") if isinstance(e.stderr, bytes) else (e.stderr or "")
                raise SplitError(f"ffmpeg failed on track {n} ({chapter.title}): {stderr[-500:]}") from e

            write_tags(
                output_path,
                title=chapter.title,
                artist=artist,
                album=album,
                track_number=n,
                total_tracks=total,
                cover_data=cover_data,
                cover_mime=cover_mime,
            )

        outputs.append(output_path)
        if on_track:
            on_track(n, total, chapter)

    return outputs
