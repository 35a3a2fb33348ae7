#!/usr/bin/env python3
"""CLI entrypoint for the trailer fetcher."""

from __future__ import annotations

import json
import os
import signal
import threading
from dataclasses import replace
from typing import Callable, List

from cli import CliOptions, parse_cli
from config import Config, TrailerConfig, load_config
from core.cleanup import remove_all_trailers
from core.files.scanner import LibraryScanner
from core.hosts.adapter import MediaHost
from core.hosts.filesystem.adapter import FilesystemHost
from core.hosts.jellyfin.adapter import JellyfinHost
from core.run import RunContext, run_download_task
from core.services.fallback import HostTrailerSource, MetadataFallback, TrailerSource
from core.services.stats_store import TrailerStatsStore
from logger import get_logger
from tmdb.client import TmdbTrailerLookup
from ytdlp.bootstrap import download_ytdlp
from ytdlp.runner import YtDlpRunner

log = get_logger()


class ConfigError(ValueError):
    """Configuration that cannot be used for the requested command."""


def _secret(value: str, env_name: str) -> str:
    return value or os.environ.get(env_name, "")


def build_host(cfg: Config) -> MediaHost:
    """Create the media host adapter selected by ``host.type``."""
    if cfg.host.type == "jellyfin":
        api_key = _secret(cfg.host.api_key, cfg.host.api_key_env)
        if not cfg.host.url:
            raise ConfigError("host.url is required for the jellyfin host")
        if not api_key:
            raise ConfigError(f"Jellyfin API key missing: set host.api_key or {cfg.host.api_key_env}")
        return JellyfinHost(cfg.host.url, api_key, timeout=cfg.host.timeout_seconds)
    return FilesystemHost(cfg.host.libraries)


def build_fallback(cfg: Config, host: MediaHost) -> MetadataFallback:
    """Host catalog first, then TMDb when enabled and a key is available."""
    sources: List[TrailerSource] = [HostTrailerSource(host)]
    tmdb_key = _secret(cfg.tmdb.api_key, cfg.tmdb.api_key_env)
    if cfg.tmdb.enabled and tmdb_key:
        sources.append(TmdbTrailerLookup(tmdb_key, language=cfg.tmdb.language, min_score=cfg.tmdb.min_score))
    else:
        log.debug("TMDb trailer lookup disabled (no API key or tmdb.enabled=false)")
    return MetadataFallback(sources)


def apply_run_overrides(trailers: TrailerConfig, options: CliOptions) -> TrailerConfig:
    """Apply ``run`` command flags on top of the configured trailer settings."""
    changes = {}
    if options.max_trailers is not None:
        changes["max_trailers_per_run"] = options.max_trailers
    if options.libraries:
        changes["include_libraries"] = frozenset(n.casefold() for n in options.libraries)
    if options.no_fallback:
        changes["use_metadata_fallback"] = False
    return replace(trailers, **changes) if changes else trailers


def install_cancel_handler(cancel: threading.Event) -> Callable[[], None]:
    """Make Ctrl+C set ``cancel``; returns a function restoring the old handler."""
    previous = signal.getsignal(signal.SIGINT)

    def _handler(_signum, _frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        log.info("\nCancelling after the current step (press Ctrl+C again to abort)...")
        cancel.set()

    signal.signal(signal.SIGINT, _handler)
    return lambda: signal.signal(signal.SIGINT, previous)


def _runner(cfg: Config) -> YtDlpRunner:
    return YtDlpRunner(cfg.downloader, cfg.paths.data_dir)


def cmd_run(cfg: Config, options: CliOptions) -> int:
    host = build_host(cfg)
    trailers = apply_run_overrides(cfg.trailers, options)
    if cfg.downloader.options_invalid:
        log.warn("downloader.options is not a valid JSON object; extra yt-dlp options are ignored.")
    cancel = threading.Event()
    ctx = RunContext(
        trailers=trailers,
        scanner=LibraryScanner(host),
        downloader=_runner(cfg),
        stats=TrailerStatsStore(cfg.paths.stats_path),
        host=host,
        fallback=build_fallback(cfg, host) if trailers.use_metadata_fallback else None,
        cancel=cancel,
    )
    restore = install_cancel_handler(cancel)
    try:
        summary = run_download_task(ctx)
    finally:
        restore()
    if summary.cancelled:
        return 130
    return summary.exit_code


def cmd_check(cfg: Config) -> int:
    ok, message = _runner(cfg).check_available()
    if ok:
        log.info(f"yt-dlp OK: {message}")
    else:
        log.error(f"yt-dlp not available: {message}")
    if cfg.downloader.options_invalid:
        log.error("downloader.options is not a valid JSON object; extra yt-dlp options are ignored.")
        ok = False
    return 0 if ok else 1


def format_stats(stats: dict) -> str:
    lines = [
        f"Total downloaded:     {stats['totalDownloaded']}",
        f"Total failed:         {stats['totalFailed']}",
        f"Folders:              {stats['totalFolders']} ({stats['foldersWithTrailer']} with trailer)",
        f"Last 7 / 30 / 365 d:  {stats['last7Days']} / {stats['last30Days']} / {stats['last365Days']}",
        f"Runs recorded:        {stats['totalRuns']}",
    ]
    if stats.get("lastRunDate"):
        lines.append(
            f"Last run:             {stats['lastRunDate']} "
            f"({stats['lastRunDownloaded']} downloaded, {stats['lastRunFailed']} failed)"
        )
    return "\n".join(lines)


def cmd_stats(cfg: Config, as_json: bool) -> int:
    stats = TrailerStatsStore(cfg.paths.stats_path).get_stats().to_dict()
    if as_json:
        print(json.dumps(stats, indent=2))
    else:
        print(format_stats(stats))
    return 0


def cmd_reset_stats(cfg: Config) -> int:
    TrailerStatsStore(cfg.paths.stats_path).reset()
    return 0


def cmd_remove_trailers(cfg: Config) -> int:
    host = build_host(cfg)
    cancel = threading.Event()
    restore = install_cancel_handler(cancel)
    try:
        summary = remove_all_trailers(cfg.trailers, LibraryScanner(host), host, cancel=cancel)
    finally:
        restore()
    return 0 if summary.errors == 0 else 1


def cmd_fetch_ytdlp(cfg: Config) -> int:
    _, ok = download_ytdlp(cfg.paths.data_dir)
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint.

    Returns:
        Process exit code.
    """
    options = parse_cli(argv)
    if options.config_path:
        if not options.config_path.exists():
            log.error(f"Config path not found: {options.config_path}")
            return 2
        if options.config_path.is_dir():
            log.error(f"Config path must be a file: {options.config_path}")
            return 2

    try:
        cfg = load_config(options.config_path)
    except (OSError, ValueError) as exc:
        log.error(f"Could not load config: {exc}")
        return 2
    log.set_level(options.log_level or cfg.log_level)

    try:
        if options.command == "check":
            return cmd_check(cfg)
        if options.command == "stats":
            return cmd_stats(cfg, options.as_json)
        if options.command == "reset-stats":
            return cmd_reset_stats(cfg)
        if options.command == "remove-trailers":
            return cmd_remove_trailers(cfg)
        if options.command == "fetch-ytdlp":
            return cmd_fetch_ytdlp(cfg)
        return cmd_run(cfg, options)
    except ConfigError as exc:
        log.error(str(exc))
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
