"""Shared data types used across ytsplit."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Chapter:
    """A titled time interval that becomes one output track.

    ``end_time`` is None only for a final chapter whose end is not known yet.
    """

    title: str
    start_time: float
    end_time: float | None = None

    def __post_init__(self) -> None:
        if self.start_time < 0:
            raise ValueError(f"start_time must be >= 0, got {self.start_time}")
        if self.end_time is not None and self.end_time <= self.start_time:
            raise ValueError(
                f"end_time ({self.end_time}) must be > start_time ({self.start_time})"
            )

    @property
    def duration(self) -> float | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


@dataclass(frozen=True)
class SilenceInterval:
    """A start/end pair in seconds where the audio stayed below the threshold."""

    start: float
    end: float

    @property
    def midpoint(self) -> float:
        return (self.start + self.end) / 2.0

    def overlaps(self, lo: float, hi: float) -> bool:
        return self.start <= hi and self.end >= lo


@dataclass
class Resolution:
    """Chapters produced by the winning fallback tier."""

    chapters: list[Chapter]
    source: str


@dataclass(frozen=True)
class RefinementEntry:
    title: str
    original_start: float
    refined_start: float

    @property
    def delta(self) -> float:
        return self.refined_start - self.original_start


@dataclass
class Refinement:
    chapters: list[Chapter]
    report: list[RefinementEntry] = field(default_factory=list)


@dataclass
class VideoInfo:
    """Metadata extracted from ``yt-dlp --dump-json``."""

    title: str
    duration: float
    chapters: list[Chapter] = field(default_factory=list)
    video_id: str = ""
    thumbnail_url: str = ""
    uploader: str = ""
    description: str = ""
