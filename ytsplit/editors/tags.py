"""ID3 tagging of split tracks."""

from pathlib import Path

from mutagen.id3 import APIC, ID3, TALB, TIT2, TPE1, TPE2, TRCK, ID3NoHeaderError


def _mime_for(image_path: Path) -> str:
    return "image/png" if image_path.suffix.lower() == ".png" else "image/jpeg"


def write_tags(
    audio_path: Path,
    title: str,
    artist: str,
    album: str,
    track_number: int,
    total_tracks: int,
    cover_data: bytes | None = None,
    cover_mime: str = "image/jpeg",
) -> None:
    """Write title/artist/album/track frames and the front cover to an MP3."""
    try:
        tags = ID3(str(audio_path))
    except ID3NoHeaderError:
        tags = ID3()

    tags.setall("TIT2", [TIT2(encoding=3, text=title)])
    tags.setall("TPE1", [TPE1(encoding=3, text=artist)])
    tags.setall("TPE2", [TPE2(encoding=3, text=artist)])
    tags.setall("TALB", [TALB(encoding=3, text=album)])
    tags.setall("TRCK", [TRCK(encoding=3, text=f"{track_number}/{total_tracks}")])
    if cover_data:
        tags.setall("APIC", [
            APIC(encoding=3, mime=cover_mime, type=3, desc="Cover", data=cover_data)
        ])
    tags.save(str(audio_path))


def load_cover(cover_path: Path | None) -> tuple[bytes | None, str]:
    if cover_path is None or not cover_path.exists():
        return None, "image/jpeg"
    return cover_path.read_bytes(), _mime_for(cover_path)
