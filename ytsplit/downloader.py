"""yt-dlp wrappers: video metadata, audio download with format fallback, thumbnails."""

import json
import logging
import re
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable
from urllib.parse import parse_qs, urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util import Retry

from ytsplit.chapters.resolver import chapters_from_metadata
from ytsplit.models import VideoInfo

logger = logging.getLogger(__name__)

_VIDEO_ID_RE = re.compile(
    r"(?:youtube\.com/(?:watch\?(?:.*&)?v=|embed/|shorts/|live/)|youtu\.be/)([A-Za-z0-9_-]{11})"
)

THUMBNAIL_QUALITIES = ("maxresdefault", "hqdefault", "mqdefault")
THUMBNAIL_RETRIES = 3


class ToolNotFoundError(RuntimeError):
    pass


class DownloadAttemptError(RuntimeError):
    """One yt-dlp invocation failed; ``diagnostic`` is its raw error text."""

    def __init__(self, diagnostic: str):
        super().__init__(diagnostic)
        self.diagnostic = diagnostic


class DownloadError(RuntimeError):
    """Raised when a download (or metadata fetch) cannot be completed."""

    def __init__(self, message: str, failures: list["AttemptFailure"] | None = None):
        super().__init__(message)
        self.failures = failures or []


@dataclass(frozen=True)
class FormatAttempt:
    """One format selector to try. ``selector=None`` omits ``-f`` entirely."""

    selector: str | None
    label: str


@dataclass(frozen=True)
class AttemptFailure:
    ordinal: int
    attempt: FormatAttempt
    diagnostic: str


@dataclass
class DownloadResult:
    path: Path
    attempt: FormatAttempt
    failures: list[AttemptFailure] = field(default_factory=list)


def default_format_attempts() -> tuple[FormatAttempt, ...]:
    return (
        FormatAttempt("bestaudio[ext=m4a]/bestaudio", "m4a best audio"),
        FormatAttempt("140", "format 140 (m4a)"),
        FormatAttempt("bestaudio", "best audio"),
        # yt-dlp only applies its own default selection when -f is absent
        FormatAttempt(None, "auto-select"),
    )


def check_dependencies() -> None:
    """Raise ToolNotFoundError naming every missing external tool."""
    missing = [cmd for cmd in ("yt-dlp", "ffmpeg", "ffprobe") if shutil.which(cmd) is None]
    if missing:
        raise ToolNotFoundError(f"Missing dependencies: {', '.join(missing)}")


def extract_video_id(url: str) -> str | None:
    m = _VIDEO_ID_RE.search(url)
    return m.group(1) if m else None


def clean_url(url: str) -> str:
    """Strip playlist and tracking parameters from a watch URL."""
    parsed = urlparse(url)
    if "youtube.com" in parsed.netloc and parsed.path == "/watch":
        video = parse_qs(parsed.query).get("v")
        if video:
            return f"https://www.youtube.com/watch?v={video[0]}"
    return url


def explain_ytdlp_error(raw: str) -> tuple[str, str | None]:
    """Turn raw yt-dlp stderr into a short message and an optional suggestion."""
    lowered = raw.lower()

    if any(s in lowered for s in (
        "members-only", "this video is only available", "join this channel",
        "private video", "sign in to confirm",
    )):
        return (
            "This video requires authentication (member-only or private content)",
            "Try a public video, or download it with yt-dlp directly using your own cookies.",
        )
    if "age-restricted" in lowered or "age restricted" in lowered:
        return "This video is age-restricted", "Age-restricted videos need a signed-in yt-dlp session."
    if any(s in lowered for s in ("not available in your country", "geo-restricted", "blocked in your country")):
        return (
            "This video is not available in your country (geo-restricted)",
            "You may need to use a VPN or proxy to access this content.",
        )
    if any(s in lowered for s in ("video unavailable", "has been removed", "no longer available")):
        return "This video is no longer available (deleted or made private)", None
    if any(s in lowered for s in ("unable to download", "http error", "connection", "timed out")):
        return "Network error while downloading", "Check your internet connection and try again."
    if "unsupported url" in lowered or "invalid url" in lowered or "is not a valid url" in lowered:
        return "Invalid or unsupported URL", "Make sure you're using a valid video URL."

    for line in raw.splitlines():
        line = line.strip()
        if line.startswith("ERROR:"):
            return line[len("ERROR:"):].strip(), None
    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    return (lines[-1] if lines else "yt-dlp failed with no output"), None


def _timeout(value: float | None) -> float | None:
    return value if value and value > 0 else None


def parse_video_info(data: dict) -> VideoInfo:
    duration = float(data.get("duration") or 0.0)
    return VideoInfo(
        title=data.get("title") or "Untitled Video",
        duration=duration,
        chapters=chapters_from_metadata(data.get("chapters"), duration),
        video_id=data.get("id") or "",
        thumbnail_url=data.get("thumbnail") or "",
        uploader=data.get("uploader") or data.get("channel") or "",
        description=data.get("description") or "",
    )


def fetch_video_info(url: str, timeout: float | None = None) -> VideoInfo:
    """Read title, duration, chapters and description via ``yt-dlp --dump-json``."""
    cmd = ["yt-dlp", "--dump-json", "--no-playlist", "--no-warnings", url]
    try:
        result = subprocess.run(
            cmd, capture_output=True, encoding="utf-8", errors="replace", timeout=_timeout(timeout)
        )
    except subprocess.TimeoutExpired:
        raise DownloadError(f"yt-dlp timed out after {timeout:g}s while reading video info") from None
    except OSError as e:
        raise DownloadError(f"Failed to run yt-dlp: {e}") from e

    if result.returncode != 0:
        message, suggestion = explain_ytdlp_error(result.stderr)
        raise DownloadError(f"{message}\n\n{suggestion}" if suggestion else message)

    try:
        data = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise DownloadError(f"Could not parse yt-dlp output: {e}") from e
    return parse_video_info(data)


def run_ytdlp(
    url: str,
    output: Path,
    selector: str | None,
    timeout: float | None = None,
    audio_quality: int = 0,
) -> Path:
    """Download ``url`` as MP3 to ``output`` (extension replaced by .mp3).

    Raises DownloadAttemptError carrying yt-dlp's raw stderr on failure. A
    timeout kills the process and counts as a failure.
    """
    cmd = ["yt-dlp"]
    if selector is not None:
        cmd += ["-f", selector]
    cmd += [
        "-x",
        "--audio-format", "mp3",
        "--audio-quality", str(audio_quality),
        "-o", str(output.with_suffix(".%(ext)s")),
        "--no-playlist",
        "--no-progress",
        url,
    ]
    try:
        result = subprocess.run(
            cmd, capture_output=True, encoding="utf-8", errors="replace", timeout=_timeout(timeout)
        )
    except subprocess.TimeoutExpired:
        raise DownloadAttemptError(f"yt-dlp timed out after {timeout:g}s") from None
    except OSError as e:
        raise DownloadAttemptError(f"Failed to run yt-dlp: {e}") from e

    if result.returncode != 0:
        raise DownloadAttemptError(result.stderr.strip() or f"yt-dlp exited with code {result.returncode}")

    final = output.with_suffix(".mp3")
    if not final.exists():
        raise DownloadAttemptError(f"yt-dlp reported success but {final} was not created")
    return final


Invoker = Callable[[str, Path, str | None, float | None], Path]


def download_audio(
    url: str,
    output: Path,
    attempts: tuple[FormatAttempt, ...] | None = None,
    invoke: Invoker | None = None,
    timeout: float | None = None,
) -> DownloadResult:
    """Download audio, trying each format selector in order until one works.

    Any failure moves on to the next attempt. When every attempt fails,
    DownloadError is raised with the last attempt's raw error text and the
    full failure history in ``failures``.
    """
    attempts = attempts if attempts is not None else default_format_attempts()
    invoke = invoke or run_ytdlp
    failures: list[AttemptFailure] = []

    for ordinal, attempt in enumerate(attempts, 1):
        logger.debug("Download attempt %d/%d: %s", ordinal, len(attempts), attempt.label)
        try:
            path = invoke(url, output, attempt.selector, timeout)
        except Exception as e:
            diagnostic = e.diagnostic if isinstance(e, DownloadAttemptError) else str(e) or type(e).__name__
            logger.warning(
                "Download attempt %d/%d (%s) failed: %s",
                ordinal, len(attempts), attempt.label, diagnostic,
            )
            failures.append(AttemptFailure(ordinal=ordinal, attempt=attempt, diagnostic=diagnostic))
            continue
        if failures:
            logger.info("Downloaded with fallback format '%s'", attempt.label)
        return DownloadResult(path=path, attempt=attempt, failures=failures)

    last = failures[-1].diagnostic if failures else "no format attempts configured"
    raise DownloadError(
        f"yt-dlp failed with all {len(attempts)} format selectors. Last error: {last}",
        failures=failures,
    )


def thumbnail_urls(url: str, thumbnail_url: str = "") -> list[str]:
    if "ytimg.com" in url or "img.youtube.com" in url:
        return [url]
    video_id = extract_video_id(url)
    urls = [f"https://img.youtube.com/vi/{video_id}/{q}.jpg" for q in THUMBNAIL_QUALITIES] if video_id else []
    if thumbnail_url and thumbnail_url not in urls:
        urls.append(thumbnail_url)
    return urls


def new_session() -> requests.Session:
    """A session that retries connection errors and transient HTTP statuses."""
    s = requests.Session()
    retries = Retry(
        total=THUMBNAIL_RETRIES,
        backoff_factor=0.5,
        status_forcelist=[429, 500, 502, 503, 504],
        allowed_methods=["HEAD", "GET"],
        raise_on_status=False,
    )
    s.mount("https://", HTTPAdapter(max_retries=retries))
    s.mount("http://", HTTPAdapter(max_retries=retries))
    return s


def download_thumbnail(
    url: str,
    output_dir: Path,
    thumbnail_url: str = "",
    session: requests.Session | None = None,
) -> Path:
    """Save the best available thumbnail as ``cover.jpg`` in ``output_dir``."""
    session = session or new_session()
    output_path = output_dir / "cover.jpg"

    for thumb in thumbnail_urls(url, thumbnail_url):
        try:
            r = session.get(thumb, timeout=30)
        except requests.RequestException as e:
            logger.debug("Thumbnail %s failed: %s", thumb, e)
            continue
        if r.status_code == 200 and r.content:
            output_path.write_bytes(r.content)
            return output_path
        # 404 means this quality doesn't exist; try the next one
        logger.debug("Thumbnail %s returned HTTP %d", thumb, r.status_code)

    raise DownloadError("Could not download thumbnail from any source")
