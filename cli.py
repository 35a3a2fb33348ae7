"""Command-line parsing helpers."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path

COMMANDS = ("run", "check", "stats", "reset-stats", "remove-trailers", "fetch-ytdlp")


@dataclass
class CliOptions:
    """Parsed CLI options shared by every command."""

    command: str
    config_path: Path | None
    log_level: str | None = None
    max_trailers: int | None = None
    libraries: list[str] = field(default_factory=list)
    no_fallback: bool = False
    as_json: bool = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trailer-fetcher",
        description="Download missing movie and TV trailers with yt-dlp and place them next to your media.",
    )
    parser.add_argument("--config", help="Path to a config.json file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARN", "ERROR"],
        type=str.upper,
        help="Override logging.level from config",
    )
    sub = parser.add_subparsers(dest="command", metavar="command")

    run = sub.add_parser("run", help="Download trailers for folders that lack one")
    run.add_argument("--max", type=int, dest="max_trailers", help="Override trailers.max_trailers_per_run")
    run.add_argument(
        "--library",
        action="append",
        dest="libraries",
        help="Only process this library (repeatable, comma-separated allowed)",
    )
    run.add_argument("--no-fallback", action="store_true", help="Do not try trailer URLs from metadata")

    sub.add_parser("check", help="Check that yt-dlp runs and the options are valid")
    stats = sub.add_parser("stats", help="Show download statistics")
    stats.add_argument("--json", action="store_true", dest="as_json", help="Print stats as JSON")
    sub.add_parser("reset-stats", help="Clear all download statistics")
    sub.add_parser("remove-trailers", help="Delete the trailer file from every library folder")
    sub.add_parser("fetch-ytdlp", help="Download the managed yt-dlp executable")
    return parser


def _split_names(values: list[str] | None) -> list[str]:
    names: list[str] = []
    for item in values or []:
        for raw in str(item).split(","):
            name = raw.strip()
            if name:
                names.append(name)
    return names


def resolve_config_path(value: str | None) -> Path | None:
    """Resolve the config path from the CLI value or ./config.json."""
    if value:
        return Path(value).expanduser().resolve()
    default_file = Path.cwd() / "config.json"
    if default_file.exists():
        return default_file.resolve()
    return None


def parse_cli(argv: list[str] | None = None) -> CliOptions:
    """Parse command-line arguments; ``run`` is the default command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "run"
    max_trailers = getattr(args, "max_trailers", None)
    if max_trailers is not None and max_trailers < 0:
        parser.error("--max must be zero or positive")
    return CliOptions(
        command=command,
        config_path=resolve_config_path(args.config),
        log_level=args.log_level,
        max_trailers=max_trailers,
        libraries=_split_names(getattr(args, "libraries", None)),
        no_fallback=bool(getattr(args, "no_fallback", False)),
        as_json=bool(getattr(args, "as_json", False)),
    )
