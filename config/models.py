"""Configuration dataclasses.

All values are normalized by ``config.loader`` before these objects are built,
so consumers can read fields directly without re-validating them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Tuple


DEFAULT_TRAILER_PATH = "trailer.mp4"
DEFAULT_QUALITY = "720p"


@dataclass(frozen=True)
class DownloaderConfig:
    """yt-dlp invocation settings."""

    ytdlp_path: str = ""
    quality: str = DEFAULT_QUALITY
    options: Dict[str, str] = field(default_factory=dict)
    options_invalid: bool = False
    verify_downloads: bool = False


@dataclass(frozen=True)
class TrailerConfig:
    """Per-run acquisition settings."""

    trailer_path: str = DEFAULT_TRAILER_PATH
    delay_seconds: float = 3.0
    retry_delay_seconds: float = 5.0
    max_trailers_per_run: int = 50
    use_metadata_fallback: bool = True
    include_libraries: FrozenSet[str] = frozenset()
    exclude_libraries: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class LibraryConfig:
    """A library declared in config for the filesystem host."""

    name: str
    collection_type: str
    paths: Tuple[str, ...] = ()


@dataclass(frozen=True)
class HostConfig:
    """Media host connection settings."""

    type: str = "filesystem"
    url: str = ""
    api_key_env: str = "JELLYFIN_API_KEY"
    api_key: str = ""
    timeout_seconds: float = 20.0
    libraries: Tuple[LibraryConfig, ...] = ()


@dataclass(frozen=True)
class TmdbConfig:
    """TMDb configuration settings."""

    enabled: bool = True
    api_key_env: str = "TMDB_API_KEY"
    api_key: str = ""
    language: str = "en-US"
    min_score: float = 6.0


@dataclass(frozen=True)
class PathsConfig:
    """Locations for state owned by the tool."""

    data_dir: Path = Path("~/.trailer-fetcher").expanduser()

    @property
    def stats_path(self) -> Path:
        return self.data_dir / "stats.json"


@dataclass(frozen=True)
class Config:
    """Top-level configuration container."""

    downloader: DownloaderConfig
    trailers: TrailerConfig
    host: HostConfig
    tmdb: TmdbConfig
    paths: PathsConfig
    log_level: str = "INFO"
