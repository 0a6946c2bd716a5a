#!/usr/bin/env python3
"""Generate a synthetic "album" MP3 for manual ytsplit testing.

Produces ~30 seconds of audio: four tones separated by silent gaps, so silence
detection should find three track boundaries:
  0-6s    440 Hz tone
  6-9s    silence
  9-15s   550 Hz tone
  15-18s  silence
  18-23s  660 Hz tone
  23-26s  silence
  26-31s  880 Hz tone
"""

import subprocess
import sys
from pathlib import Path


def generate_test_audio(output: Path) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)

    filter_complex = (
        "sine=f=440:d=6[a0];"
        "anullsrc=r=44100:cl=mono,atrim=duration=3[s0];"
        "sine=f=550:d=6[a1];"
        "anullsrc=r=44100:cl=mono,atrim=duration=3[s1];"
        "sine=f=660:d=5[a2];"
        "anullsrc=r=44100:cl=mono,atrim=duration=3[s2];"
        "sine=f=880:d=5[a3];"
        "[a0][s0][a1][s1][a2][s2][a3]concat=n=7:v=0:a=1[aout]"
    )

    cmd = [
        "ffmpeg", "-y",
        "-filter_complex", filter_complex,
        "-map", "[aout]",
        "-c:a", "libmp3lame",
        "-b:a", "128k",
        str(output),
    ]
    subprocess.run(cmd, check=True)
    print(f"Generated: {output}")


if __name__ == "__main__":
    out = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("tests/fixtures/synthetic_album.mp3")
    generate_test_audio(out)
