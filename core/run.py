"""Trailer download run: scan, pick folders, download, record stats."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, List, Protocol, Sequence, Tuple

from config.models import TrailerConfig
from core.entries import CandidateEntry
from core.files.scanner import LibraryScanner
from core.hosts.adapter import MediaHost
from core.matching import query_for_entry
from core.services.fallback import MetadataFallback
from core.services.rescan import queue_library_scan
from core.services.stats_store import TrailerStatsStore
from logger import get_logger

log = get_logger()


class RunCancelled(Exception):
    """Raised inside a run when the cancel event is set."""


class Downloader(Protocol):
    def download_one(self, entry: CandidateEntry, output_path: str, cancel: threading.Event | None = None) -> bool:
        ...

    def download_from_url(self, url: str, output_path: str, cancel: threading.Event | None = None) -> bool:
        ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunContext:
    """Collaborators and settings for one run."""

    trailers: TrailerConfig
    scanner: LibraryScanner
    downloader: Downloader
    stats: TrailerStatsStore
    host: MediaHost
    fallback: MetadataFallback | None = None
    cancel: threading.Event = field(default_factory=threading.Event)
    progress: Callable[[float], None] | None = None
    clock: Callable[[], datetime] = _utc_now


@dataclass
class RunSummary:
    """Aggregate results for a run."""

    downloaded: int = 0
    failed: int = 0
    skipped: int = 0
    total_folders: int = 0
    cancelled: bool = False

    @property
    def exit_code(self) -> int:
        return 0 if self.failed == 0 else 1


def output_path_for(entry: CandidateEntry, trailer_path: str) -> str:
    return os.path.join(entry.path, trailer_path)


def entry_has_trailer(entry: CandidateEntry, trailer_path: str) -> bool:
    return os.path.isfile(output_path_for(entry, trailer_path))


def folder_sort_time(path: str) -> float:
    """Directory mtime, or 0 when it cannot be read."""
    try:
        return os.stat(path).st_mtime
    except OSError:
        return 0.0


def partition_entries(
    entries: Sequence[CandidateEntry], trailer_path: str
) -> Tuple[List[CandidateEntry], List[CandidateEntry]]:
    """Split entries into ``(has_trailer, needs_trailer)`` keeping their order."""
    has: List[CandidateEntry] = []
    needs: List[CandidateEntry] = []
    for entry in entries:
        (has if entry_has_trailer(entry, trailer_path) else needs).append(entry)
    return has, needs


def order_candidates(entries: Sequence[CandidateEntry]) -> List[CandidateEntry]:
    """Newest folders first; equal mtimes keep the incoming (path) order."""
    return sorted(entries, key=lambda e: folder_sort_time(e.path), reverse=True)


def cap_candidates(entries: List[CandidateEntry], max_per_run: int) -> List[CandidateEntry]:
    if max_per_run > 0 and len(entries) > max_per_run:
        return entries[:max_per_run]
    return entries


def _check_cancelled(cancel: threading.Event) -> None:
    if cancel.is_set():
        raise RunCancelled()


def _wait(cancel: threading.Event, seconds: float) -> None:
    """Sleep for ``seconds`` unless the run is cancelled first."""
    if seconds > 0 and cancel.wait(seconds):
        raise RunCancelled()
    _check_cancelled(cancel)


def _try_fallback(ctx: RunContext, entry: CandidateEntry, output_path: str) -> bool:
    if ctx.fallback is None or not ctx.trailers.use_metadata_fallback:
        return False
    _check_cancelled(ctx.cancel)
    url = ctx.fallback.resolve_trailer_url(entry)
    if not url:
        return False
    log.info(f"  Trying trailer URL from metadata: {url}")
    return ctx.downloader.download_from_url(url, output_path, ctx.cancel)


def acquire_trailer(ctx: RunContext, entry: CandidateEntry, output_path: str, query: str) -> bool:
    """Search download, metadata fallback, then one delayed retry of both."""
    if ctx.downloader.download_one(entry, output_path, ctx.cancel):
        return True
    _check_cancelled(ctx.cancel)
    if _try_fallback(ctx, entry, output_path):
        return True
    _wait(ctx.cancel, ctx.trailers.retry_delay_seconds)
    log.info(f"  Retrying: {query}")
    if ctx.downloader.download_one(entry, output_path, ctx.cancel):
        return True
    _check_cancelled(ctx.cancel)
    return _try_fallback(ctx, entry, output_path)


def _process_entries(ctx: RunContext, entries: List[CandidateEntry], summary: RunSummary, run_date: date) -> None:
    total = len(entries)
    for idx, entry in enumerate(entries, 1):
        _check_cancelled(ctx.cancel)
        output_path = output_path_for(entry, ctx.trailers.trailer_path)
        query = query_for_entry(entry)
        log.info(f"\n[{idx}/{total}] {query} -> {output_path}")

        try:
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            ok = acquire_trailer(ctx, entry, output_path, query)
        except OSError as exc:
            log.warn(f"  Could not prepare {output_path}: {exc}")
            ok = False

        if ok:
            summary.downloaded += 1
            log.info("  ✅ Trailer downloaded")
        else:
            summary.failed += 1
            log.info(f"  ❌ Trailer failed: {query} (path: {entry.path})")

        ctx.stats.record_progress(summary.downloaded, summary.failed, run_date=run_date)
        if ctx.progress is not None:
            ctx.progress(idx / total)
        if idx < total:
            _wait(ctx.cancel, ctx.trailers.delay_seconds)


def run_download_task(ctx: RunContext) -> RunSummary:
    """Run one acquisition pass over every configured library.

    Final counts are recorded and a library rescan is requested even when
    the run is cancelled part way through.
    """
    summary = RunSummary()
    trailers = ctx.trailers
    now = ctx.clock()
    run_date = now.astimezone(timezone.utc).date()

    roots = ctx.scanner.get_library_roots(trailers.include_libraries, trailers.exclude_libraries)
    if not roots:
        log.info("No movie or TV libraries found; nothing to do.")
        return summary

    entries = ctx.scanner.scan_and_enrich(roots, now.isoformat())
    log.info(f"Scanned {len(entries)} library folder(s).")

    has_trailer, needs = partition_entries(entries, trailers.trailer_path)
    summary.total_folders = len(entries)
    summary.skipped = len(has_trailer)
    ctx.stats.record_folder_counts(len(entries), len(has_trailer))

    needs = cap_candidates(order_candidates(needs), trailers.max_trailers_per_run)
    if not needs:
        log.info(f"Nothing to do (all folders have a trailer). Skipped: {summary.skipped}.")
        ctx.stats.record_run(0, 0, run_date=run_date)
        queue_library_scan(ctx.host)
        return summary

    log.info(
        f"{len(needs)} folder(s) to process (skipped {summary.skipped} with a trailer), "
        f"delay {trailers.delay_seconds:g}s between items."
    )
    try:
        _process_entries(ctx, needs, summary, run_date)
    except RunCancelled:
        summary.cancelled = True
        log.info("\nRun cancelled.")
    finally:
        log.info("\nDone.")
        log.info(f"  Downloaded: {summary.downloaded}")
        log.info(f"  Skipped:    {summary.skipped}")
        log.info(f"  Failed:     {summary.failed}")
        ctx.stats.record_run(summary.downloaded, summary.failed, run_date=run_date)
        queue_library_scan(ctx.host)
    return summary
