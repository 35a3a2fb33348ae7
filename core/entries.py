"""Library roots and candidate folders produced by a scan."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class ContentType(str, Enum):
    """Kind of media a library folder holds."""

    MOVIE = "movie"
    TVSHOW = "tvshow"

    @classmethod
    def from_collection_type(cls, label: str | None) -> "ContentType | None":
        """Map a host collection-type label to a content type (None if unsupported)."""
        value = str(label or "").strip().lower()
        if value in ("movies", "movie"):
            return cls.MOVIE
        if value in ("tvshows", "tv", "tvshow", "series"):
            return cls.TVSHOW
        return None


@dataclass(frozen=True)
class VirtualFolder:
    """One library as reported by the media host."""

    name: str
    collection_type: str
    locations: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LibraryRoot:
    """A library location on disk."""

    path: str
    content_type: ContentType
    library_name: str = ""


@dataclass
class CandidateEntry:
    """A movie or TV season folder eligible for a trailer."""

    path: str
    content_type: ContentType
    discovered_at: str
    title: str = ""
    year: int | None = None
    season: int | None = None
