import os

import pytest
import requests

from core.entries import CandidateEntry, ContentType
from tmdb.client import TmdbTrailerLookup, tmdb_request


@pytest.mark.integration
def test_tmdb_api_connection() -> None:
    api_key = os.environ.get("TMDB_API_KEY")
    if not api_key:
        pytest.skip("TMDB_API_KEY is not set in the environment.")
    session = requests.Session()
    data = tmdb_request(session, api_key, "/configuration", {})
    assert "images" in data


@pytest.mark.integration
def test_tmdb_trailer_lookup_finds_youtube_trailer() -> None:
    api_key = os.environ.get("TMDB_API_KEY")
    if not api_key:
        pytest.skip("TMDB_API_KEY is not set in the environment.")
    entry = CandidateEntry(
        path="/movies/Inception (2010)",
        content_type=ContentType.MOVIE,
        discovered_at="t",
        title="Inception",
        year=2010,
    )
    url = TmdbTrailerLookup(api_key).trailer_url(entry)
    assert url is not None
    assert url.startswith("https://www.youtube.com/watch?v=")
