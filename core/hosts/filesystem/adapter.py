"""Host adapter for libraries declared directly in config."""

from __future__ import annotations

from typing import Iterable, List

from config.models import LibraryConfig
from core.entries import VirtualFolder
from logger import get_logger

log = get_logger()


class FilesystemHost:
    """Libraries listed in config; there is no catalog behind them."""

    name = "filesystem"

    def __init__(self, libraries: Iterable[LibraryConfig]) -> None:
        self._libraries = list(libraries)

    def get_virtual_folders(self) -> List[VirtualFolder]:
        return [
            VirtualFolder(
                name=library.name,
                collection_type=library.collection_type,
                locations=tuple(library.paths),
            )
            for library in self._libraries
        ]

    def queue_library_scan(self) -> None:
        log.debug("Filesystem host has no catalog to refresh.")

    def find_remote_trailers(self, path: str) -> List[str]:
        return []
