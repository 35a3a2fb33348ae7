"""yt-dlp command-line construction."""

from __future__ import annotations

from typing import Dict, List, Mapping

from logger import get_logger

log = get_logger()

QUALITY_FORMATS: Dict[str, str] = {
    "best": "best",
    "1080p": "best[height<=1080]",
    "720p": "best[height<=720]",
    "480p": "best[height<=480]",
}
DEFAULT_QUALITY = "720p"

# Extra options a user may pass through. Anything that can run commands,
# write outside the target file or change the output template is left out.
ALLOWED_OPTION_NAMES = frozenset(
    {
        "user-agent",
        "referer",
        "add-header",
        "proxy",
        "no-check-certificate",
        "retries",
        "fragment-retries",
        "file-access-retries",
        "concurrent-fragments",
        "sleep-interval",
        "sleep-requests",
        "throttle",
        "socket-timeout",
        "source-address",
        "force-ipv4",
        "force-ipv6",
        "geo-bypass",
        "geo-verification-proxy",
        "format",
        "merge-output-format",
        "prefer-free-formats",
        "no-playlist",
        "cookies",
        "cookies-from-browser",
        "no-cookies-from-browser",
        "no-warnings",
        "no-progress",
        "ignore-errors",
        "abort-on-error",
    }
)


# Allowlisted options that take no value; only the bare flag is ever emitted.
FLAG_OPTION_NAMES = frozenset(
    {
        "no-check-certificate",
        "force-ipv4",
        "force-ipv6",
        "geo-bypass",
        "prefer-free-formats",
        "no-playlist",
        "no-cookies-from-browser",
        "no-warnings",
        "no-progress",
        "ignore-errors",
        "abort-on-error",
    }
)


def format_for_quality(quality: str | None) -> str:
    """Map a quality tier to a yt-dlp format selector (unknown tiers use 720p)."""
    key = str(quality or "").strip().lower()
    return QUALITY_FORMATS.get(key, QUALITY_FORMATS[DEFAULT_QUALITY])


def normalize_option_name(name: str) -> str:
    return str(name or "").strip().lstrip("-").strip().lower()


def is_allowed_option(name: str) -> bool:
    return normalize_option_name(name) in ALLOWED_OPTION_NAMES


def _flag_enabled(value: str | bool | None) -> bool | None:
    if isinstance(value, bool):
        return value
    text = str(value or "").strip().lower()
    if text in ("true", "1", "yes", "on"):
        return True
    if text in ("false", "0", "no", "off", ""):
        return False
    return None


def build_extra_args(options: Mapping[str, str | bool] | None) -> List[str]:
    """Turn the extra-options map into CLI arguments.

    Only allowlisted names pass. Flag options emit ``--name`` when enabled
    and nothing otherwise. Value options are emitted as a single
    ``--name=value`` argument so a value can never be read as another option.
    """
    args: List[str] = []
    for raw_name, value in (options or {}).items():
        name = normalize_option_name(raw_name)
        if not name:
            continue
        if name not in ALLOWED_OPTION_NAMES:
            log.debug(f"Ignoring yt-dlp option not in allowlist: {raw_name}")
            continue
        if name in FLAG_OPTION_NAMES:
            enabled = _flag_enabled(value)
            if enabled is None:
                log.debug(f"Ignoring value for yt-dlp flag option: {raw_name}")
            elif enabled:
                args.append(f"--{name}")
            continue
        if isinstance(value, bool) or value is None:
            log.debug(f"Ignoring yt-dlp option without a value: {raw_name}")
            continue
        args.append(f"--{name}={value}")
    return args


def search_target(query: str) -> str:
    """yt-dlp target that downloads the first video search hit."""
    return f"ytsearch1:{query}"


def build_download_args(
    target: str,
    output_path: str,
    quality: str | None,
    options: Mapping[str, str | bool] | None = None,
) -> List[str]:
    """Arguments (without the executable) for one download into ``output_path``."""
    args = [
        "-o",
        output_path,
        "--merge-output-format",
        "mp4",
        "-f",
        format_for_quality(quality),
        "--no-warnings",
        "--no-progress",
        target,
    ]
    args.extend(build_extra_args(options))
    return args
