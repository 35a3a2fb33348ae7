"""Media host capability interface."""

from __future__ import annotations

from typing import List, Protocol

from core.entries import VirtualFolder


class MediaHost(Protocol):
    """What the trailer pipeline needs from the application hosting the libraries."""

    name: str

    def get_virtual_folders(self) -> List[VirtualFolder]:
        """Return configured libraries with their collection type and locations."""

    def queue_library_scan(self) -> None:
        """Ask the host to re-index its catalog (fire and forget)."""

    def find_remote_trailers(self, path: str) -> List[str]:
        """Return remote trailer URLs for the catalog item at ``path``.

        A TV season folder resolves to its parent show. Unknown paths return
        an empty list.
        """
