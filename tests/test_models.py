from __future__ import annotations

from models import (DETAIL_PLACEHOLDER_URL, THUMBNAIL_PLACEHOLDER_URL,
                    MovieDetail, SearchPhase, SearchResult, SearchSession)
from tests.conftest import omdb_item


def test_search_result_keeps_real_poster() -> None:
    result = SearchResult.from_omdb(omdb_item("tt0372784", "Batman Begins"))

    assert result.movie_id == "tt0372784"
    assert result.title == "Batman Begins"
    assert result.poster_url == "https://img.example/poster.jpg"
    assert result.has_poster is True
    assert result.imdb_url == "https://www.imdb.com/title/tt0372784/"


def test_missing_poster_sentinel_is_replaced_at_construction() -> None:
    """The "N/A" poster never reaches the view layer."""

    result = SearchResult.from_omdb(omdb_item("tt001", poster="N/A"))

    assert result.poster_url == THUMBNAIL_PLACEHOLDER_URL
    assert result.has_poster is False


def test_absent_poster_field_uses_placeholder() -> None:
    item = omdb_item("tt001")
    del item["Poster"]

    assert SearchResult.from_omdb(item).poster_url == THUMBNAIL_PLACEHOLDER_URL


def test_movie_detail_maps_not_available_fields_to_none() -> None:
    payload = dict(
        omdb_item("tt0096895", "Batman", "1989", poster="N/A"),
        Genre="Action, Adventure",
        imdbRating="7.5",
        Plot="N/A",
        Runtime="126 min",
        Director="Tim Burton",
        Actors="N/A",
        Response="True",
    )

    detail = MovieDetail.from_omdb(payload)

    assert detail.title == "Batman"
    assert detail.genre == "Action, Adventure"
    assert detail.rating == "7.5"
    assert detail.plot is None
    assert detail.actors is None
    assert detail.runtime == "126 min"
    assert detail.poster_url == DETAIL_PLACEHOLDER_URL


def test_session_flags() -> None:
    idle = SearchSession()
    assert not idle.loading
    assert not idle.has_more

    searching = idle.evolve(query="batman", phase=SearchPhase.SEARCHING)
    assert searching.loading

    partial = SearchSession(
        query="batman",
        page=1,
        results=(SearchResult.from_omdb(omdb_item("tt001")),),
        total_results=5,
        phase=SearchPhase.RESULTS,
    )
    assert partial.has_more
    assert not partial.loading
