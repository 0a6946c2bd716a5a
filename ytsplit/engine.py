"""Orchestrator: download, resolve chapters, refine, split and tag."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ytsplit import downloader
from ytsplit.chapters.refine import refine_from_audio
from ytsplit.chapters.resolver import SOURCE_SILENCE, resolve_chapters
from ytsplit.chapters.silence import chapters_from_silence
from ytsplit.config import Config
from ytsplit.editors.split import split_tracks
from ytsplit.models import Chapter, RefinementEntry
from ytsplit.tempfiles import TempFile
from ytsplit.titles import clean_folder_name, parse_artist_album, sanitize_filename

logger = logging.getLogger(__name__)

TEMP_AUDIO_NAME = "temp_audio.mp3"


@dataclass
class SplitJob:
    """One URL to split, with optional forced metadata."""

    url: str
    config: Config = field(default_factory=Config)
    output_dir: Path | None = None
    artist: str | None = None
    album: str | None = None


@dataclass
class EngineResult:
    output_dir: Path
    title: str = ""
    artist: str = ""
    album: str = ""
    duration: float = 0.0
    chapter_source: str = ""
    chapters: list[Chapter] = field(default_factory=list)
    tracks: list[Path] = field(default_factory=list)
    cover_path: Path | None = None
    refinement: list[RefinementEntry] = field(default_factory=list)
    download_failures: list[downloader.AttemptFailure] = field(default_factory=list)
    audio_path: Path | None = None


def process(
    job: SplitJob,
    on_progress: Callable[[str, float], None] | None = None,
) -> EngineResult:
    """Execute the full download-and-split pipeline.

    Args:
        job: What to download and how.
        on_progress: Optional callback(stage_name, fraction_complete).
    """

    def _progress(stage: str, frac: float) -> None:
        if on_progress:
            on_progress(stage, frac)

    config = job.config
    downloader.check_dependencies()

    url = downloader.clean_url(job.url)
    _progress("Fetching video information", 0.0)
    info = downloader.fetch_video_info(url, timeout=config.download.info_timeout)
    _progress("Fetching video information", 0.05)

    parsed_artist, parsed_album = parse_artist_album(info.title, info.uploader)
    artist = clean_folder_name(job.artist) if job.artist else parsed_artist
    album = clean_folder_name(job.album) if job.album else parsed_album

    base_dir = job.output_dir or config.get_output_dir()
    output_dir = base_dir / sanitize_filename(config.format_directory(artist, album))
    output_dir.mkdir(parents=True, exist_ok=True)

    cover_path = None
    if config.download_cover:
        _progress("Downloading cover art", 0.08)
        try:
            cover_path = downloader.download_thumbnail(url, output_dir, info.thumbnail_url)
        except downloader.DownloadError as e:
            logger.warning("No cover art: %s", e)

    _progress("Downloading audio", 0.10)
    with TempFile(output_dir / TEMP_AUDIO_NAME, keep=config.keep_audio) as temp_audio:
        download = downloader.download_audio(
            url, temp_audio.path, timeout=config.download.timeout
        )
        audio_path = temp_audio.path = download.path
        _progress("Audio downloaded", 0.50)

        _progress("Resolving chapters", 0.55)
        resolution = resolve_chapters(
            info,
            silence_tier=lambda: chapters_from_silence(audio_path, info.duration, config.silence),
        )
        chapters = resolution.chapters

        refinement: list[RefinementEntry] = []
        if config.refine.enabled and resolution.source != SOURCE_SILENCE and len(chapters) > 1:
            _progress("Refining chapter boundaries", 0.60)
            refined = refine_from_audio(chapters, audio_path, config.refine, duration=info.duration)
            chapters = refined.chapters
            refinement = refined.report

        _progress(f"Splitting {len(chapters)} tracks", 0.65)

        def on_track(n: int, total: int, chapter: Chapter) -> None:
            _progress(f"Track {n}/{total}: {chapter.title}", 0.65 + 0.33 * n / total)

        tracks = split_tracks(
            audio_path,
            chapters,
            output_dir,
            artist,
            album,
            config,
            cover_path=cover_path,
            on_track=on_track,
        )

    _progress("Done", 1.0)
    return EngineResult(
        output_dir=output_dir,
        title=info.title,
        artist=artist,
        album=album,
        duration=info.duration,
        chapter_source=resolution.source,
        chapters=chapters,
        tracks=tracks,
        cover_path=cover_path,
        refinement=refinement,
        download_failures=download.failures,
        audio_path=audio_path if temp_audio.kept else None,
    )
