"""Bulk removal of downloaded trailers."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from config.models import TrailerConfig
from core.files.scanner import LibraryScanner
from core.hosts.adapter import MediaHost
from core.services.rescan import queue_library_scan
from logger import get_logger

log = get_logger()


@dataclass
class RemovalSummary:
    scanned: int = 0
    deleted: int = 0
    errors: int = 0
    cancelled: bool = False


def remove_all_trailers(
    trailers: TrailerConfig,
    scanner: LibraryScanner,
    host: MediaHost,
    cancel: threading.Event | None = None,
    progress: Callable[[float], None] | None = None,
) -> RemovalSummary:
    """Delete the trailer file from every scanned library folder, then rescan.

    Per-file failures are counted and logged; the pass continues.
    """
    summary = RemovalSummary()
    roots = scanner.get_library_roots(trailers.include_libraries, trailers.exclude_libraries)
    if not roots:
        log.info("No movie or TV libraries found; nothing to do.")
        return summary

    entries = scanner.scan_and_enrich(roots, datetime.now(timezone.utc).isoformat())
    summary.scanned = len(entries)
    log.info(f"Removing trailers from {len(entries)} folder(s) (trailer path: {trailers.trailer_path}).")

    for idx, entry in enumerate(entries, 1):
        if cancel is not None and cancel.is_set():
            summary.cancelled = True
            log.info("Removal cancelled.")
            break
        full_path = os.path.join(entry.path, trailers.trailer_path)
        try:
            if os.path.isfile(full_path):
                os.remove(full_path)
                summary.deleted += 1
                log.debug(f"Deleted: {full_path}")
        except OSError as exc:
            summary.errors += 1
            log.warn(f"Could not delete trailer {full_path}: {exc}")
        if progress is not None:
            progress(idx / len(entries))

    log.info(f"Remove all trailers done: {summary.deleted} deleted, {summary.errors} errors.")
    queue_library_scan(host)
    return summary
