"""Download a standalone yt-dlp release into the data directory."""

from __future__ import annotations

import os
import stat
import sys
from pathlib import Path
from typing import Tuple

import requests

from logger import get_logger

log = get_logger()

RELEASE_BASE_URL = "https://github.com/yt-dlp/yt-dlp/releases/latest/download/"
USER_AGENT = "trailer-fetcher/0.1"


def platform_names(platform: str | None = None) -> Tuple[str, str]:
    """Return ``(local file name, release asset name)`` for a platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return "yt-dlp.exe", "yt-dlp.exe"
    if platform == "darwin":
        return "yt-dlp", "yt-dlp_macos"
    return "yt-dlp", "yt-dlp_linux"


def managed_executable_path(data_dir: Path, platform: str | None = None) -> Path:
    """Where the managed yt-dlp copy lives (whether or not it exists yet)."""
    file_name, _ = platform_names(platform)
    return Path(data_dir) / file_name


def download_ytdlp(
    data_dir: Path,
    session: requests.Session | None = None,
    timeout: float = 120.0,
    platform: str | None = None,
) -> Tuple[Path, bool]:
    """Fetch the platform's yt-dlp release into ``data_dir``.

    Returns:
        ``(target path, success)``. Failures are logged, never raised.
    """
    file_name, asset = platform_names(platform)
    target = Path(data_dir) / file_name
    url = RELEASE_BASE_URL + asset
    session = session or requests.Session()
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        resp = session.get(url, headers={"User-Agent": USER_AGENT}, timeout=timeout)
        resp.raise_for_status()
        if not resp.content:
            log.warn(f"yt-dlp download returned an empty response from {url}")
            return target, False
        tmp_path = target.with_name(target.name + ".download")
        tmp_path.write_bytes(resp.content)
        os.replace(tmp_path, target)
        if not (platform or sys.platform).startswith("win"):
            target.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IXUSR)
    except (requests.RequestException, OSError) as exc:
        log.error(f"Failed to download yt-dlp from {url}: {exc}")
        return target, False
    log.info(f"Downloaded yt-dlp to {target} ({len(resp.content)} bytes)")
    return target, True
