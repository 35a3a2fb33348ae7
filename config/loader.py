"""Configuration loading and normalization."""

from __future__ import annotations

import json
from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Any, Dict, FrozenSet, List, Tuple

from config.merge import merge_sections
from config.models import (
    DEFAULT_QUALITY,
    DEFAULT_TRAILER_PATH,
    Config,
    DownloaderConfig,
    HostConfig,
    LibraryConfig,
    PathsConfig,
    TmdbConfig,
    TrailerConfig,
)


QUALITY_TIERS = ("best", "1080p", "720p", "480p")
HOST_TYPES = ("filesystem", "jellyfin")

DEFAULTS: Dict[str, Any] = {
    "downloader": {
        "ytdlp_path": "",
        "quality": DEFAULT_QUALITY,
        "options": {},
        "verify_downloads": False,
    },
    "trailers": {
        "trailer_path": DEFAULT_TRAILER_PATH,
        "delay_seconds": 3,
        "retry_delay_seconds": 5,
        "max_trailers_per_run": 50,
        "use_metadata_fallback": True,
        "include_libraries": "",
        "exclude_libraries": "",
    },
    "host": {
        "type": "filesystem",
        "url": "",
        "api_key_env": "JELLYFIN_API_KEY",
        "api_key": "",
        "timeout_seconds": 20,
        "libraries": [],
    },
    "tmdb": {
        "enabled": True,
        "api_key_env": "TMDB_API_KEY",
        "api_key": "",
        "language": "en-US",
        "min_score": 6.0,
    },
    "paths": {"data_dir": "~/.trailer-fetcher"},
    "logging": {"level": "INFO"},
}


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return default


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _as_list(value: Any) -> List[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def parse_name_set(value: Any) -> FrozenSet[str]:
    """Parse a comma-separated (or list) library-name set, case-insensitively."""
    names: set[str] = set()
    for item in _as_list(value):
        for part in item.split(","):
            name = part.strip().casefold()
            if name:
                names.add(name)
    return frozenset(names)


def sanitize_trailer_path(value: Any) -> str:
    """Return a safe trailer path relative to a media folder.

    Blank values, values containing ``..`` and absolute paths (POSIX or
    Windows style) fall back to ``trailer.mp4``.
    """
    path = str(value or "").strip()
    if not path or ".." in path:
        return DEFAULT_TRAILER_PATH
    if PurePosixPath(path).is_absolute() or PureWindowsPath(path).is_absolute():
        return DEFAULT_TRAILER_PATH
    if PureWindowsPath(path).drive:
        return DEFAULT_TRAILER_PATH
    return path


def normalize_quality(value: Any) -> str:
    quality = str(value or "").strip().lower()
    return quality if quality in QUALITY_TIERS else DEFAULT_QUALITY


def normalize_executable_path(value: Any) -> str:
    """Trim whitespace and surrounding double quotes from a configured path."""
    return str(value or "").strip().strip('"').strip()


def _option_value(value: Any) -> str | bool | None:
    if value is None or isinstance(value, bool) or isinstance(value, str):
        return value
    return json.dumps(value)


def parse_downloader_options(value: Any) -> Tuple[Dict[str, str | bool], bool]:
    """Parse the extra yt-dlp options map.

    Accepts a dict or a JSON object string. Returns ``(options, invalid)``;
    malformed input yields an empty map with ``invalid`` set.
    """
    if value is None or value == "":
        return {}, False
    raw = value
    if isinstance(value, str):
        try:
            raw = json.loads(value)
        except json.JSONDecodeError:
            return {}, True
    if not isinstance(raw, dict):
        return {}, True
    options: Dict[str, str | bool] = {}
    for key, item in raw.items():
        name = str(key or "").strip()
        normalized = _option_value(item)
        if not name or normalized is None:
            continue
        options[name] = normalized
    return options, False


def _parse_libraries(value: Any) -> Tuple[LibraryConfig, ...]:
    libraries: List[LibraryConfig] = []
    if not isinstance(value, list):
        return ()
    for item in value:
        if not isinstance(item, dict):
            continue
        paths = tuple(p.strip() for p in _as_list(item.get("paths") or item.get("locations")) if p.strip())
        libraries.append(
            LibraryConfig(
                name=str(item.get("name") or "").strip(),
                collection_type=str(item.get("type") or item.get("collection_type") or "").strip(),
                paths=paths,
            )
        )
    return tuple(libraries)


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Build a validated Config instance from a raw (already merged) dictionary."""
    downloader_raw = raw.get("downloader", {}) or {}
    trailers_raw = raw.get("trailers", {}) or {}
    host_raw = raw.get("host", {}) or {}
    tmdb_raw = raw.get("tmdb", {}) or {}
    paths_raw = raw.get("paths", {}) or {}
    logging_raw = raw.get("logging", {}) or {}

    options, options_invalid = parse_downloader_options(downloader_raw.get("options"))
    downloader = DownloaderConfig(
        ytdlp_path=normalize_executable_path(downloader_raw.get("ytdlp_path")),
        quality=normalize_quality(downloader_raw.get("quality")),
        options=options,
        options_invalid=options_invalid,
        verify_downloads=_as_bool(downloader_raw.get("verify_downloads"), False),
    )
    trailers = TrailerConfig(
        trailer_path=sanitize_trailer_path(trailers_raw.get("trailer_path")),
        delay_seconds=max(0.0, _as_float(trailers_raw.get("delay_seconds"), 3.0)),
        retry_delay_seconds=max(0.0, _as_float(trailers_raw.get("retry_delay_seconds"), 5.0)),
        max_trailers_per_run=max(0, _as_int(trailers_raw.get("max_trailers_per_run"), 50)),
        use_metadata_fallback=_as_bool(trailers_raw.get("use_metadata_fallback"), True),
        include_libraries=parse_name_set(trailers_raw.get("include_libraries")),
        exclude_libraries=parse_name_set(trailers_raw.get("exclude_libraries")),
    )

    host_type = str(host_raw.get("type") or "filesystem").strip().lower()
    host = HostConfig(
        type=host_type if host_type in HOST_TYPES else "filesystem",
        url=str(host_raw.get("url") or "").strip().rstrip("/"),
        api_key_env=str(host_raw.get("api_key_env") or "JELLYFIN_API_KEY"),
        api_key=str(host_raw.get("api_key") or ""),
        timeout_seconds=max(1.0, _as_float(host_raw.get("timeout_seconds"), 20.0)),
        libraries=_parse_libraries(host_raw.get("libraries")),
    )
    tmdb = TmdbConfig(
        enabled=_as_bool(tmdb_raw.get("enabled"), True),
        api_key_env=str(tmdb_raw.get("api_key_env") or "TMDB_API_KEY"),
        api_key=str(tmdb_raw.get("api_key") or ""),
        language=str(tmdb_raw.get("language") or "en-US"),
        min_score=_as_float(tmdb_raw.get("min_score"), 6.0),
    )
    data_dir = str(paths_raw.get("data_dir") or "~/.trailer-fetcher")
    paths = PathsConfig(data_dir=Path(data_dir).expanduser())

    return Config(
        downloader=downloader,
        trailers=trailers,
        host=host,
        tmdb=tmdb,
        paths=paths,
        log_level=str(logging_raw.get("level") or "INFO").upper(),
    )


def _load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a JSON object: {path}")
    return data


def load_config(path: Path | None) -> Config:
    """Load config overrides from ``path`` (if any) on top of the defaults."""
    raw = dict(DEFAULTS)
    if path is not None:
        raw = merge_sections(raw, _load_json(path))
    return config_from_dict(raw)
