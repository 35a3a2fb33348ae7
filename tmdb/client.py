"""TMDb API client: title matching and trailer video lookup."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Dict, List

import requests
from rapidfuzz import fuzz

from core.entries import CandidateEntry, ContentType
from core.matching import clean_title_for_search
from logger import get_logger

log = get_logger()

TMDB_BASE = "https://api.themoviedb.org/3"
YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v="


def tmdb_request(
    session: requests.Session,
    api_key: str,
    endpoint: str,
    params: Dict[str, Any],
    timeout: float = 20.0,
) -> Dict[str, Any]:
    """Make a TMDb API request.

    Args:
        session: Requests session.
        api_key: TMDb API key.
        endpoint: API endpoint path.
        params: Query parameters.
        timeout: Request timeout in seconds.

    Returns:
        Parsed JSON response.
    """
    url = f"{TMDB_BASE}{endpoint}"
    params = dict(params)
    params["api_key"] = api_key
    resp = session.get(url, params=params, timeout=timeout)
    resp.raise_for_status()
    return resp.json()


def normalize_title(title: str) -> str:
    """Normalize a title for fuzzy matching.

    Args:
        title: Title to normalize.

    Returns:
        Normalized title string.
    """
    lowered = title.lower()
    lowered = unicodedata.normalize("NFKD", lowered)
    lowered = "".join(ch for ch in lowered if not unicodedata.combining(ch))
    lowered = lowered.replace("&", "and")
    lowered = re.sub(r"[^a-z0-9]+", " ", lowered)
    return re.sub(r"\s+", " ", lowered).strip()


def title_similarity(left: str, right: str) -> float:
    """Fuzzy similarity of two titles in [0, 1]."""
    if not left or not right:
        return 0.0
    return fuzz.QRatio(normalize_title(left), normalize_title(right)) / 100.0


@dataclass(frozen=True)
class SearchKind:
    endpoint: str
    title_keys: tuple[str, str]
    year_param: str


MOVIE_SEARCH = SearchKind("/search/movie", ("title", "original_title"), "year")
TV_SEARCH = SearchKind("/search/tv", ("name", "original_name"), "first_air_date_year")


def search_best_match(
    session: requests.Session,
    api_key: str,
    kind: SearchKind,
    title: str,
    year: int | None,
    language: str,
    min_score: float,
) -> Dict[str, Any] | None:
    """Find the best-scoring search result for ``title``.

    Results are scored by title similarity on a 0-10 scale; the best one is
    returned only when it reaches ``min_score``.
    """
    if not title:
        return None
    params: Dict[str, Any] = {"query": title, "language": language, "include_adult": False}
    if year:
        params[kind.year_param] = year
    data = tmdb_request(session, api_key, kind.endpoint, params)
    results = data.get("results", []) or []
    if not results:
        return None

    def score(r: Dict[str, Any]) -> float:
        result_title = str(r.get(kind.title_keys[0]) or r.get(kind.title_keys[1]) or "")
        return title_similarity(title, result_title) * 10.0

    best = max(results, key=score)
    if score(best) < min_score:
        return None
    return best


def pick_trailer_url(videos: List[Dict[str, Any]]) -> str | None:
    """Choose a YouTube trailer from a TMDb ``/videos`` result list.

    Official trailers come first; otherwise the list order is kept.
    """
    trailers = [
        v
        for v in videos
        if isinstance(v, dict)
        and str(v.get("site") or "").lower() == "youtube"
        and str(v.get("type") or "").lower() == "trailer"
        and v.get("key")
    ]
    if not trailers:
        return None
    trailers.sort(key=lambda v: not bool(v.get("official")))
    return YOUTUBE_WATCH_URL + str(trailers[0]["key"])


def _videos(session: requests.Session, api_key: str, endpoint: str, language: str) -> List[Dict[str, Any]]:
    # include_video_language keeps English trailers when the UI language has none
    lang_prefix = language.split("-")[0] if language else "en"
    data = tmdb_request(
        session,
        api_key,
        endpoint,
        {"language": language, "include_video_language": f"{lang_prefix},en,null"},
    )
    return data.get("results", []) or []


class TmdbTrailerLookup:
    """Metadata source resolving an entry to a YouTube trailer URL via TMDb."""

    name = "tmdb"

    def __init__(
        self,
        api_key: str,
        language: str = "en-US",
        min_score: float = 6.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._language = language
        self._min_score = min_score
        self._session = session or requests.Session()

    def trailer_url(self, entry: CandidateEntry) -> str | None:
        title = clean_title_for_search(entry.title or "")
        if not title:
            return None
        if entry.content_type is ContentType.MOVIE:
            match = search_best_match(
                self._session, self._api_key, MOVIE_SEARCH, title, entry.year, self._language, self._min_score
            )
            if not match:
                log.debug(f"TMDb: no movie match for {title!r}")
                return None
            return pick_trailer_url(
                _videos(self._session, self._api_key, f"/movie/{match['id']}/videos", self._language)
            )

        match = search_best_match(
            self._session, self._api_key, TV_SEARCH, title, entry.year, self._language, self._min_score
        )
        if not match:
            log.debug(f"TMDb: no TV match for {title!r}")
            return None
        show_id = match["id"]
        if entry.season is not None:
            try:
                url = pick_trailer_url(
                    _videos(
                        self._session,
                        self._api_key,
                        f"/tv/{show_id}/season/{entry.season}/videos",
                        self._language,
                    )
                )
            except requests.HTTPError as exc:
                log.debug(f"TMDb: no season {entry.season} videos for {title!r}: {exc}")
                url = None
            if url:
                return url
        return pick_trailer_url(_videos(self._session, self._api_key, f"/tv/{show_id}/videos", self._language))
