"""Title cleaning: chapter titles, folder names and artist/album detection."""

import re

UNKNOWN_ARTIST = "Unknown Artist"

_FULL_ALBUM_RE = re.compile(r"\s*[\[(]\s*full\s+album\s*[\])].*$", re.IGNORECASE)
_FULL_ALBUM_SUFFIX_RE = re.compile(r"\s*-\s*full\s+album\s*$", re.IGNORECASE)
_BRACKETS_RE = re.compile(r"\[.*?\]|\(.*?\)")
_SPACES_RE = re.compile(r"\s+")
_TRACK_PREFIX_RE = re.compile(
    r"^\s*(?:track\s*\d+\s*[-.:)]?\s+|\d{1,3}\s*[-.:)]\s+)", re.IGNORECASE
)
_DECORATION = " \t-–—|•·*~:\"“”«»"
_INVALID_FILENAME_RE = re.compile(r'[/\\:*?"<>|]')
_UPLOADER_SUFFIX_RE = re.compile(r"\s*(?:-\s*topic|vevo)\s*$", re.IGNORECASE)

# Tried in order when looking for an "Artist - Album" split
_SEPARATORS = (" - ", " | ", " – ", " — ", " • ", " ~ ")


def _capitalize_words(text: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in text.split())


def clean_chapter_title(raw: str) -> str:
    """Normalize a raw chapter title.

    Strips leading track numbering ("1 - ", "03. ", "Track 5: "), surrounding
    quotes and separator decoration, and collapses whitespace. Titles written
    entirely in capitals are converted to Title Case; mixed-case titles are
    left alone. Returns an empty string when nothing remains.
    """
    title = _SPACES_RE.sub(" ", raw).strip()
    title = _TRACK_PREFIX_RE.sub("", title, count=1)
    title = title.strip(_DECORATION)
    if title.isupper():
        title = _capitalize_words(title)
    return title


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in file names with underscores."""
    return _INVALID_FILENAME_RE.sub("_", name).strip()


def clean_folder_name(name: str) -> str:
    """Turn a raw video title into a tidy ``Artist - Album`` style name."""
    cleaned = _FULL_ALBUM_RE.sub("", name)
    cleaned = _BRACKETS_RE.sub("", cleaned)
    for ch in "_|/":
        cleaned = cleaned.replace(ch, "-")
    cleaned = _FULL_ALBUM_SUFFIX_RE.sub("", cleaned)
    cleaned = _SPACES_RE.sub(" ", cleaned)
    cleaned = _capitalize_words(cleaned)
    return cleaned.strip().strip("-").strip()


def clean_uploader(uploader: str) -> str:
    return _UPLOADER_SUFFIX_RE.sub("", uploader).strip()


def parse_artist_album(title: str, uploader: str | None = None) -> tuple[str, str]:
    """Split a video title into ``(artist, album)``.

    Dash separators take precedence over pipes and unicode separators. When
    the title has no separator the channel name stands in for the artist.
    """
    cleaned = _FULL_ALBUM_RE.sub("", title)
    cleaned = _BRACKETS_RE.sub("", cleaned).strip()

    for sep in _SEPARATORS:
        if sep in cleaned:
            parts = [p.strip() for p in cleaned.split(sep) if p.strip()]
            if len(parts) >= 2:
                return clean_folder_name(parts[0]), clean_folder_name(parts[1])

    album = clean_folder_name(cleaned)
    if uploader:
        artist = clean_folder_name(clean_uploader(uploader))
        if artist:
            return artist, album
    return UNKNOWN_ARTIST, album


def format_duration(seconds: float) -> str:
    total = int(seconds)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h}h {m:02d}m {s:02d}s"
    return f"{m}m {s:02d}s"
