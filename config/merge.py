"""Config merging helpers."""

from __future__ import annotations

from typing import Any, Dict


# Flat settings keys (as exported by the host plugin settings page) and the
# section/key they map onto.
FLAT_SETTINGS = {
    "ytdlppath": ("downloader", "ytdlp_path"),
    "quality": ("downloader", "quality"),
    "ytdlpoptionsjson": ("downloader", "options"),
    "trailerpath": ("trailers", "trailer_path"),
    "delayseconds": ("trailers", "delay_seconds"),
    "retrydelayseconds": ("trailers", "retry_delay_seconds"),
    "maxtrailersperrun": ("trailers", "max_trailers_per_run"),
    "usemetadatafallback": ("trailers", "use_metadata_fallback"),
    "includelibrarynames": ("trailers", "include_libraries"),
    "excludelibrarynames": ("trailers", "exclude_libraries"),
}


def _flat_key(key: str) -> str:
    return "".join(ch for ch in str(key).lower() if ch.isalnum())


def lift_flat_settings(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Move top-level camelCase settings into their config sections.

    Keys that are not flat settings are returned untouched. A value given both
    flat and inside its section keeps the section value.
    """
    lifted: Dict[str, Any] = {}
    flat: Dict[tuple[str, str], Any] = {}
    for key, value in raw.items():
        target = FLAT_SETTINGS.get(_flat_key(key)) if not isinstance(value, dict) else None
        if target:
            flat[target] = value
        else:
            lifted[key] = value
    for (section, name), value in flat.items():
        current = lifted.get(section)
        section_values = dict(current) if isinstance(current, dict) else {}
        section_values.setdefault(name, value)
        lifted[section] = section_values
    return lifted


def merge_dicts(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge overrides into base."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def merge_sections(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Merge user overrides (flat or sectioned) into the default sections."""
    return merge_dicts(base, lift_flat_settings(overrides))
