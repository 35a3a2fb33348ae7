"""Trailer URLs from metadata, used when the video search fails."""

from __future__ import annotations

from typing import List, Protocol, Sequence

from core.entries import CandidateEntry
from core.hosts.adapter import MediaHost
from logger import get_logger

log = get_logger()


class TrailerSource(Protocol):
    """Something that may know a trailer URL for a folder."""

    name: str

    def trailer_url(self, entry: CandidateEntry) -> str | None:
        ...


class HostTrailerSource:
    """Remote-trailer metadata attached to the host's catalog item."""

    def __init__(self, host: MediaHost) -> None:
        self._host = host
        self.name = f"{host.name} catalog"

    def trailer_url(self, entry: CandidateEntry) -> str | None:
        urls = self._host.find_remote_trailers(entry.path)
        for url in urls:
            if url and url.strip():
                return url.strip()
        return None


class MetadataFallback:
    """Tries each source in order and returns the first trailer URL found.

    Lookup failures are logged and treated as "no URL"; they never reach
    the caller.
    """

    def __init__(self, sources: Sequence[TrailerSource]) -> None:
        self._sources: List[TrailerSource] = list(sources)

    @property
    def sources(self) -> List[TrailerSource]:
        return list(self._sources)

    def resolve_trailer_url(self, entry: CandidateEntry) -> str | None:
        for source in self._sources:
            try:
                url = source.trailer_url(entry)
            except Exception as exc:
                log.warn(f"Trailer lookup via {source.name} failed for {entry.path}: {exc}")
                continue
            if url:
                log.debug(f"Trailer URL from {source.name}: {url}")
                return url
        return None
