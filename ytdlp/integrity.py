"""Post-download sanity check of trailer files."""

from __future__ import annotations

from pathlib import Path

from mutagen import MutagenError
from mutagen.mp4 import MP4


def is_playable_mp4(path: Path) -> bool:
    """Return True if ``path`` parses as MP4 with a positive duration."""
    try:
        if not path.is_file() or path.stat().st_size == 0:
            return False
        audio = MP4(str(path))
    except (MutagenError, OSError):
        return False
    info = getattr(audio, "info", None)
    return bool(info is not None and getattr(info, "length", 0) > 0)
