"""Timestamp parsing and formatting."""

import re

# [H:]MM:SS with optional brackets and fractional seconds
_TIMESTAMP_RE = re.compile(
    r"^\s*(\[)?\s*(?:(\d+):)?(\d{1,2}):(\d{1,2}(?:\.\d+)?)\s*(\])?\s*$"
)


def parse_timestamp(text: str) -> float | None:
    """Convert ``H:MM:SS``, ``MM:SS`` or ``[HH:MM:SS]`` into seconds.

    Returns None instead of raising when the text is not a valid timestamp:
    non-numeric parts, negative values, unbalanced brackets, or minutes and
    seconds of 60 and above.
    """
    m = _TIMESTAMP_RE.match(text)
    if m is None:
        return None

    open_bracket, hours, minutes, seconds, close_bracket = m.groups()
    if bool(open_bracket) != bool(close_bracket):
        return None

    h = int(hours) if hours is not None else 0
    mins = int(minutes)
    secs = float(seconds)

    if mins >= 60 or secs >= 60:
        return None

    return float(h * 3600 + mins * 60 + secs)


def format_timestamp(seconds: float) -> str:
    """Render seconds as ``MM:SS``, or ``HH:MM:SS`` from one hour up."""
    total = int(seconds)
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h > 0:
        return f"{h:02d}:{m:02d}:{s:02d}"
    return f"{m:02d}:{s:02d}"
