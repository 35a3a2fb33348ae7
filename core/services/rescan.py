"""Library rescan requests."""

from __future__ import annotations

from core.hosts.adapter import MediaHost
from logger import get_logger

log = get_logger()


def queue_library_scan(host: MediaHost) -> bool:
    """Ask the host to rescan its libraries. Returns False (logged) on failure."""
    try:
        host.queue_library_scan()
    except Exception as exc:
        log.warn(f"Could not queue library scan on {host.name}: {exc}")
        return False
    log.info("Library scan queued so new trailers appear")
    return True
