"""Config package facade."""

from config.loader import config_from_dict, load_config
from config.models import (
    Config,
    DownloaderConfig,
    HostConfig,
    LibraryConfig,
    PathsConfig,
    TmdbConfig,
    TrailerConfig,
)

__all__ = [
    "Config",
    "DownloaderConfig",
    "HostConfig",
    "LibraryConfig",
    "PathsConfig",
    "TmdbConfig",
    "TrailerConfig",
    "config_from_dict",
    "load_config",
]
