"""Jellyfin server adapter (REST API over requests)."""

from __future__ import annotations

import os
from typing import Any, Dict, List

import requests

from core.entries import VirtualFolder
from logger import get_logger

log = get_logger()

_CATALOG_TYPES = "Movie,Series,Season"


def normalize_path(path: str) -> str:
    """Normalize a filesystem path for catalog lookups."""
    return os.path.normcase(os.path.normpath(str(path).strip()))


def jellyfin_request(
    session: requests.Session,
    base_url: str,
    api_key: str,
    method: str,
    endpoint: str,
    params: Dict[str, Any] | None = None,
    timeout: float = 20.0,
) -> Any:
    """Make a Jellyfin API request.

    Args:
        session: Requests session.
        base_url: Server base URL without a trailing slash.
        api_key: Jellyfin API key.
        method: HTTP method.
        endpoint: API endpoint path.
        params: Optional query parameters.
        timeout: Request timeout in seconds.

    Returns:
        Parsed JSON response, or None for empty bodies.
    """
    url = f"{base_url}{endpoint}"
    headers = {"X-Emby-Token": api_key, "Accept": "application/json"}
    resp = session.request(method, url, params=params or {}, headers=headers, timeout=timeout)
    resp.raise_for_status()
    if not resp.content:
        return None
    return resp.json()


class JellyfinHost:
    """Library discovery, rescans and remote-trailer metadata from a Jellyfin server."""

    name = "jellyfin"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session: requests.Session | None = None,
        timeout: float = 20.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout = timeout
        self._by_path: Dict[str, Dict[str, Any]] | None = None
        self._by_id: Dict[str, Dict[str, Any]] = {}

    def _request(self, method: str, endpoint: str, params: Dict[str, Any] | None = None) -> Any:
        return jellyfin_request(
            self._session,
            self._base_url,
            self._api_key,
            method,
            endpoint,
            params,
            timeout=self._timeout,
        )

    def get_virtual_folders(self) -> List[VirtualFolder]:
        data = self._request("GET", "/Library/VirtualFolders") or []
        folders: List[VirtualFolder] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            locations = tuple(str(loc) for loc in (item.get("Locations") or []) if loc)
            folders.append(
                VirtualFolder(
                    name=str(item.get("Name") or "").strip(),
                    collection_type=str(item.get("CollectionType") or "").strip(),
                    locations=locations,
                )
            )
        return folders

    def queue_library_scan(self) -> None:
        self._request("POST", "/Library/Refresh")
        self._by_path = None

    def _load_catalog(self) -> Dict[str, Dict[str, Any]]:
        if self._by_path is not None:
            return self._by_path
        data = self._request(
            "GET",
            "/Items",
            {
                "Recursive": "true",
                "IncludeItemTypes": _CATALOG_TYPES,
                "Fields": "Path,RemoteTrailers",
                "EnableImages": "false",
            },
        ) or {}
        by_path: Dict[str, Dict[str, Any]] = {}
        for item in data.get("Items", []) or []:
            item_id = str(item.get("Id") or "")
            if item_id:
                self._by_id[item_id] = item
            path = str(item.get("Path") or "")
            if not path:
                continue
            by_path[normalize_path(path)] = item
            # Movie items point at the video file; index the folder too.
            if item.get("Type") == "Movie":
                by_path.setdefault(normalize_path(os.path.dirname(path)), item)
        self._by_path = by_path
        log.debug(f"Jellyfin catalog loaded: {len(by_path)} path(s)")
        return by_path

    def _series_for(self, season: Dict[str, Any]) -> Dict[str, Any] | None:
        series_id = str(season.get("SeriesId") or season.get("ParentId") or "")
        if not series_id:
            return None
        if series_id in self._by_id:
            return self._by_id[series_id]
        data = self._request("GET", "/Items", {"Ids": series_id, "Fields": "Path,RemoteTrailers"}) or {}
        items = data.get("Items", []) or []
        if not items:
            return None
        self._by_id[series_id] = items[0]
        return items[0]

    def find_remote_trailers(self, path: str) -> List[str]:
        catalog = self._load_catalog()
        key = normalize_path(path)
        item = catalog.get(key)
        if item is None:
            item = catalog.get(normalize_path(os.path.dirname(key)))
            if item is None or item.get("Type") != "Series":
                return []
        if item.get("Type") == "Season":
            item = self._series_for(item)
            if item is None:
                return []
        trailers = item.get("RemoteTrailers") or []
        return [str(t.get("Url")).strip() for t in trailers if isinstance(t, dict) and t.get("Url")]
