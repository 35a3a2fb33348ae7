"""Filesystem scanning of library roots into trailer candidates."""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import AbstractSet, List, Sequence

from core.entries import CandidateEntry, ContentType, LibraryRoot
from core.hosts.adapter import MediaHost
from core.matching import parse_movie, parse_tv_show
from logger import get_logger

log = get_logger()

_SEASON_SUBDIR = re.compile(r"^S\d+$", re.IGNORECASE)


def list_subdirs(path: Path) -> List[Path]:
    """Return immediate child directories of ``path`` ordered by name."""
    return sorted((p for p in path.iterdir() if p.is_dir()), key=lambda p: p.name)


def season_subdirs(show_dir: Path) -> List[Path]:
    """Return ``S<digits>`` child directories of a show folder ordered by name."""
    return [p for p in list_subdirs(show_dir) if _SEASON_SUBDIR.match(p.name)]


def scan_movie_root(root: Path, discovered_at: str) -> List[CandidateEntry]:
    """One entry per immediate child directory of a movie root."""
    if not root.is_dir():
        log.info(f"Movies path does not exist: {root}")
        return []
    try:
        dirs = list_subdirs(root)
    except OSError as exc:
        log.warn(f"Could not scan movies path {root}: {exc}")
        return []
    entries = [
        CandidateEntry(path=os.path.abspath(d), content_type=ContentType.MOVIE, discovered_at=discovered_at)
        for d in dirs
    ]
    log.info(f"Scanned movies: {root} ({len(entries)} entries)")
    return entries


def scan_tv_root(root: Path, discovered_at: str) -> List[CandidateEntry]:
    """Entries for a TV root.

    A show folder with ``S<digits>`` children yields one entry per season
    folder; otherwise the show folder itself is the entry. A show folder that
    cannot be read is skipped.
    """
    if not root.is_dir():
        log.info(f"TV path does not exist: {root}")
        return []
    try:
        show_dirs = list_subdirs(root)
    except OSError as exc:
        log.warn(f"Could not scan TV path {root}: {exc}")
        return []
    entries: List[CandidateEntry] = []
    per_season = 0
    flat = 0
    for show_dir in show_dirs:
        try:
            seasons = season_subdirs(show_dir)
        except OSError as exc:
            log.warn(f"Could not scan show folder {show_dir}: {exc}")
            continue
        if seasons:
            per_season += len(seasons)
            for season_dir in seasons:
                entries.append(
                    CandidateEntry(
                        path=os.path.abspath(season_dir),
                        content_type=ContentType.TVSHOW,
                        discovered_at=discovered_at,
                    )
                )
        else:
            flat += 1
            entries.append(
                CandidateEntry(
                    path=os.path.abspath(show_dir),
                    content_type=ContentType.TVSHOW,
                    discovered_at=discovered_at,
                )
            )
    log.info(
        f"Scanned TV: {root} (season folders: {per_season}, flat show folders: {flat}, "
        f"total TV entries: {len(entries)})"
    )
    return entries


def enrich_entries(entries: Sequence[CandidateEntry]) -> None:
    """Attach parsed title/year/season to every entry in place."""
    for entry in entries:
        if entry.content_type is ContentType.MOVIE:
            entry.title, entry.year = parse_movie(entry.path)
            entry.season = None
        else:
            entry.title, entry.season, entry.year = parse_tv_show(entry.path)


class LibraryScanner:
    """Discovers library roots through the host and scans them on disk."""

    def __init__(self, host: MediaHost) -> None:
        self._host = host

    def get_library_roots(
        self,
        include: AbstractSet[str] | None = None,
        exclude: AbstractSet[str] | None = None,
    ) -> List[LibraryRoot]:
        """Return existing movie/TV library roots, filtered by library name.

        ``include`` (when non-empty) is an allowlist and ``exclude`` a
        blocklist; both compare names case-insensitively. Never raises: host
        failures are logged and yield an empty list.
        """
        include_names = {n.casefold() for n in include or ()}
        exclude_names = {n.casefold() for n in exclude or ()}
        roots: List[LibraryRoot] = []
        try:
            folders = self._host.get_virtual_folders()
            for folder in folders:
                content_type = ContentType.from_collection_type(folder.collection_type)
                if content_type is None:
                    continue
                name = folder.name.strip()
                if include_names and name.casefold() not in include_names:
                    continue
                if exclude_names and name.casefold() in exclude_names:
                    continue
                for location in folder.locations:
                    if not location or not str(location).strip():
                        continue
                    path = os.path.abspath(str(location).strip())
                    if os.path.isdir(path):
                        roots.append(LibraryRoot(path=path, content_type=content_type, library_name=name))
                        log.debug(f"Library root: {path} ({content_type.value}, library: {name})")
                    else:
                        log.warn(f"Library path does not exist: {path}")
        except Exception as exc:
            log.error(f"Failed to get library roots: {exc}")
            return []
        return roots

    def scan_and_enrich(self, roots: Sequence[LibraryRoot], discovered_at: str) -> List[CandidateEntry]:
        """Scan roots into candidate entries with parsed metadata, sorted by path."""
        entries: List[CandidateEntry] = []
        for root in roots:
            if root.content_type is ContentType.MOVIE:
                entries.extend(scan_movie_root(Path(root.path), discovered_at))
            else:
                entries.extend(scan_tv_root(Path(root.path), discovered_at))
        enrich_entries(entries)
        entries.sort(key=lambda e: e.path)
        return entries
