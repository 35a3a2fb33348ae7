"""Runs yt-dlp to fetch one trailer into a media folder."""

from __future__ import annotations

import glob
import os
import shutil
import threading
from pathlib import Path
from typing import Callable, List, Tuple

from config.models import DownloaderConfig
from core.entries import CandidateEntry
from core.matching import query_for_entry
from logger import get_logger
from ytdlp.bootstrap import download_ytdlp, managed_executable_path
from ytdlp.integrity import is_playable_mp4
from ytdlp.options import build_download_args, search_target
from ytdlp.process import InvokeResult, InvokeStatus, run_process

log = get_logger()

Bootstrapper = Callable[[Path], Tuple[Path, bool]]

VERSION_MESSAGE_LIMIT = 80
RELEASE_PAGE = "https://github.com/yt-dlp/yt-dlp/releases/latest/download/"


def _truncate(text: str, limit: int = VERSION_MESSAGE_LIMIT) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def _missing_python(err: str) -> bool:
    lowered = err.lower()
    return "python3" in lowered and ("no such file or directory" in lowered or "not found" in lowered)


def cleanup_partial_files(output_path: str) -> None:
    """Remove ``.part`` / ``.ytdl`` fragments yt-dlp left next to ``output_path``."""
    for leftover in glob.glob(glob.escape(output_path) + "*"):
        if not leftover.endswith((".part", ".ytdl")):
            continue
        try:
            os.remove(leftover)
        except OSError as exc:
            log.debug(f"Could not remove partial download {leftover}: {exc}")


class YtDlpRunner:
    """Resolves the yt-dlp executable and runs one download at a time.

    Args:
        config: Downloader settings (path, quality, extra options).
        data_dir: Directory holding the managed yt-dlp copy.
        bootstrap: Callable fetching the managed copy into ``data_dir``;
            ``None`` disables automatic downloads.
    """

    def __init__(
        self,
        config: DownloaderConfig,
        data_dir: Path,
        bootstrap: Bootstrapper | None = download_ytdlp,
    ) -> None:
        self._config = config
        self._data_dir = Path(data_dir)
        self._bootstrap = bootstrap
        self._bootstrap_failed = False

    @property
    def managed_path(self) -> Path:
        return managed_executable_path(self._data_dir)

    def resolve_executable(self) -> str:
        """Pick the executable to run.

        A configured path wins when it exists (bare names are looked up on
        PATH). Otherwise the managed copy is used, fetched first if missing.
        A failed fetch is not retried for the lifetime of the runner.
        The returned path may still not exist; running it then reports
        NOT_FOUND.
        """
        configured = self._config.ytdlp_path
        if configured:
            if os.path.isfile(configured):
                return configured
            if os.sep not in configured and "/" not in configured:
                found = shutil.which(configured)
                if found:
                    return found
        managed = self.managed_path
        if managed.is_file():
            return str(managed)
        if self._bootstrap is not None:
            if not self._bootstrap_failed:
                log.info(f"yt-dlp not found; downloading to {managed}")
                _, ok = self._bootstrap(self._data_dir)
                self._bootstrap_failed = not ok
            return str(managed)
        return configured or str(managed)

    def check_available(self) -> Tuple[bool, str]:
        """Run ``--version`` and return ``(ok, version or diagnostic message)``."""
        exe = self.resolve_executable()
        if exe == str(self.managed_path) and not self.managed_path.is_file():
            return False, "Could not download yt-dlp. Check network access and that the data directory is writable."

        result = run_process([exe, "--version"])
        if result.status is InvokeStatus.OK:
            if result.returncode == 0:
                version = result.stdout.strip() or result.stderr.strip()
                return True, _truncate(version)
            err = result.stderr.strip() or result.stdout.strip()
            if err and _missing_python(err):
                return (
                    False,
                    "The installed yt-dlp is the Python script but python3 is not available. "
                    f"Use the standalone binary instead ({RELEASE_PAGE}yt-dlp_linux) and point ytdlp_path at it.",
                )
            return False, err or f"Exit code {result.returncode}"
        return False, self._start_failure_message(exe, result)

    def _start_failure_message(self, exe: str, result: InvokeResult) -> str:
        has_dir = "/" in exe or os.sep in exe
        if result.status is InvokeStatus.NOT_EXECUTABLE or (has_dir and os.path.isfile(exe)):
            return f'File exists at "{exe}" but could not be run (permissions or wrong architecture?). Try: chmod +x {exe}'
        if result.status is InvokeStatus.NOT_FOUND:
            if has_dir:
                return f'Cannot run "{exe}" (file not found). Install yt-dlp there or leave ytdlp_path empty.'
            return (
                "Leave ytdlp_path empty to use the managed copy (downloaded automatically), "
                "or set the full path to your yt-dlp executable."
            )
        return result.error or "Unknown error."

    def _run(self, target: str, output_path: str, cancel: threading.Event | None) -> bool:
        exe = self.resolve_executable()
        cmd: List[str] = [exe] + build_download_args(
            target,
            output_path,
            self._config.quality,
            self._config.options,
        )
        log.debug(f"Running: {' '.join(cmd)}")
        result = run_process(cmd, cancel=cancel)
        if result.status is InvokeStatus.CANCELLED:
            log.info("yt-dlp cancelled")
            cleanup_partial_files(output_path)
            return False
        if result.status is not InvokeStatus.OK:
            log.warn(f"yt-dlp could not be started ({result.status.value}): {result.error}")
            return False
        if result.returncode != 0:
            detail = result.stderr.strip() or result.stdout.strip()
            log.warn(f"yt-dlp exited with {result.returncode}: {detail}")
            cleanup_partial_files(output_path)
            return False
        output = Path(output_path)
        if not output.is_file():
            log.warn(f"yt-dlp reported success but no file at {output_path}")
            return False
        if self._config.verify_downloads and not is_playable_mp4(output):
            log.warn(f"Downloaded file is not a playable MP4, removing: {output_path}")
            try:
                output.unlink()
            except OSError as exc:
                log.warn(f"Could not remove invalid download {output_path}: {exc}")
            return False
        return True

    def download_one(
        self,
        entry: CandidateEntry,
        output_path: str,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Search for the entry's trailer and download the first hit."""
        query = query_for_entry(entry)
        log.debug(f"Search query: {query}")
        return self._run(search_target(query), output_path, cancel)

    def download_from_url(
        self,
        url: str,
        output_path: str,
        cancel: threading.Event | None = None,
    ) -> bool:
        """Download a trailer from a direct video URL."""
        url = str(url or "").strip()
        if not url:
            return False
        return self._run(url, output_path, cancel)
