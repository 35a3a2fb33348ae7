"""Folder-name parsing and search-query helpers for trailer lookups."""

from __future__ import annotations

import re
from typing import List, Tuple

from core.entries import CandidateEntry, ContentType


YEAR_MIN = 1880
YEAR_MAX = 2030
MAX_QUERY_WORDS = 5

_SEPARATORS = re.compile(r"[.\-_\s()\[\]{}]+")
_YEAR_TOKEN = re.compile(r"^\d{4}$")
_SEASON_FOLDER = re.compile(r"^S(\d+)$", re.IGNORECASE)
_SEASON_IN_NAME = re.compile(r"[.\s_\-]S(\d+)(?=[.\s_\-]|$)", re.IGNORECASE)

_SEASON_MARKER = re.compile(r"^S\d+(-S\d+)?$", re.IGNORECASE)
_LONG_NUMBER = re.compile(r"^\d{3,}$")
_RELEASE_GROUP = re.compile(r"^[A-Z0-9\-]+$")
_AUDIO_CODEC = re.compile(r"^DDP?\d", re.IGNORECASE)

RELEASE_JUNK_TOKENS = frozenset(
    {
        "1080p", "720p", "480p", "2160p", "4k", "uhd",
        "web-dl", "webdl", "webrip", "bluray", "blu-ray", "hdtv", "dvdrip", "brrip",
        "nf", "hmax", "amzn", "atvp", "dsnp", "disney", "hulu",
        "ddp51", "dd51", "dd5", "atmos", "dts", "aac", "ac3", "eac3",
        "x264", "x265", "h264", "h265", "hevc", "avc",
        "multi", "subbed", "dubbed",
        "extended", "uncut", "remastered", "repack", "proper",
    }
)


def _basename(path: str) -> str:
    trimmed = str(path or "").rstrip("/\\")
    parts = re.split(r"[/\\]", trimmed)
    return parts[-1] if parts else trimmed


def _parent_name(path: str) -> str:
    parts = re.split(r"[/\\]", str(path or "").rstrip("/\\"))
    return parts[-2] if len(parts) >= 2 else ""


def _tokens(name: str) -> List[str]:
    return [t for t in _SEPARATORS.split(name) if t]


def _spaced(name: str) -> str:
    """Replace dots and underscores with spaces and collapse whitespace."""
    return re.sub(r"\s+", " ", re.sub(r"[._]", " ", name)).strip()


def parse_movie(path: str) -> Tuple[str, int | None]:
    """Split a movie folder name into title and optional year.

    The first token that is a 4-digit year in [1880, 2030] ends the title.
    Without such a token the whole name (separators as spaces) is the title.

    Examples:
        ``The.Matrix.1999.1080p.BluRay`` -> ``("The Matrix", 1999)``
        ``Top Gun (1986)`` -> ``("Top Gun", 1986)``
    """
    basename = _basename(path)
    tokens = _tokens(basename)
    for idx, token in enumerate(tokens):
        if not _YEAR_TOKEN.match(token):
            continue
        year = int(token)
        if YEAR_MIN <= year <= YEAR_MAX:
            title = " ".join(tokens[:idx]).strip()
            return (title or " ".join(tokens) or basename, year)
    return (" ".join(tokens) or basename, None)


def parse_tv_show(path: str) -> Tuple[str, int | None, int | None]:
    """Parse a TV folder into ``(title, season, year)``.

    ``Show (2019)/S02`` takes title and year from the parent folder.
    ``Show.Name.S01.1080p.WEB`` takes title and season from the name itself.
    Anything else is a bare title without a season.
    """
    basename = _basename(path)

    m = _SEASON_FOLDER.match(basename)
    if m:
        title, year = parse_movie(_parent_name(path))
        return title, int(m.group(1)), year

    m = _SEASON_IN_NAME.search(basename)
    if m:
        title = _spaced(basename[: m.start()])
        return (title or basename), int(m.group(1)), None

    return (_spaced(basename) or basename), None, None


def _is_junk(token: str) -> bool:
    if token.lower() in RELEASE_JUNK_TOKENS:
        return True
    if _LONG_NUMBER.match(token):
        return True
    if _SEASON_MARKER.match(token):
        return True
    if len(token) <= 1:
        return True
    # release-group style tags (TV4TG, FLUX, ...)
    if len(token) <= 8 and _RELEASE_GROUP.match(token):
        return True
    return bool(_AUDIO_CODEC.match(token))


def clean_title_for_search(title: str) -> str:
    """Strip release/codec/source noise so a video search gets a short title.

    ``Baby.Bandito.MULTi.1080p.NF.WEB-DL`` -> ``Baby Bandito``. Keeps at most
    five words and falls back to the punctuation-normalized input when every
    token is stripped.
    """
    if not title or not title.strip():
        return title.strip() if title else ""
    normalized = re.sub(r"\s+", " ", re.sub(r"[.\-_]", " ", title)).strip()
    kept: List[str] = []
    for token in normalized.split(" "):
        if not token or _is_junk(token):
            continue
        kept.append(token)
        if len(kept) >= MAX_QUERY_WORDS:
            break
    result = " ".join(kept).strip()
    return result or normalized


def build_search_query(
    content_type: ContentType | str,
    path: str,
    title: str | None,
    year: int | None,
    season: int | None,
) -> str:
    """Build the video-search query for a folder's trailer."""
    raw_title = title or _basename(path) or "Unknown"
    effective = clean_title_for_search(raw_title)
    if not effective.strip():
        effective = raw_title

    kind = content_type.value if isinstance(content_type, ContentType) else str(content_type).strip().lower()
    if kind == ContentType.MOVIE.value:
        if year is not None:
            return f"{effective} {year} trailer"
        return f"{effective} trailer"
    if season is not None:
        return f"{effective} season {season} trailer"
    return f"{effective} trailer"


def query_for_entry(entry: CandidateEntry) -> str:
    """Build the search query for a scanned candidate entry."""
    return build_search_query(entry.content_type, entry.path, entry.title, entry.year, entry.season)
