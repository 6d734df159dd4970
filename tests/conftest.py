"""Shared doubles for the findMovie test-suite."""

from __future__ import annotations

import sqlite3
from typing import Any, Dict, List, Optional, Tuple
from unittest.mock import Mock

import pytest

from models import (DetailOutcome, Empty, SearchOutcome, SearchPage,
                    SearchResult, Success)
from services import FavoritesStore, KeyValueStorage


def omdb_item(movie_id: str, title: Optional[str] = None, year: str = "2005",
              poster: str = "https://img.example/poster.jpg") -> Dict[str, Any]:
    """Build a raw search item shaped like OMDb's ``Search`` entries."""

    return {
        "imdbID": movie_id,
        "Title": title or f"Movie {movie_id}",
        "Year": year,
        "Type": "movie",
        "Poster": poster,
    }


def search_page(movie_ids: List[str], total: int, page: int = 1) -> Success:
    results = tuple(SearchResult.from_omdb(omdb_item(movie_id)) for movie_id in movie_ids)
    return Success(SearchPage(results=results, total_results=total, page=page))


def http_response(payload: Any = None, *, status: int = 200, json_error: bool = False) -> Mock:
    """Return a stand-in for :class:`requests.Response`."""

    response = Mock()
    response.status_code = status
    response.ok = status < 400
    if json_error:
        response.json.side_effect = ValueError("Expecting value")
    else:
        response.json.return_value = payload
    return response


class ScriptedOmdbClient:
    """Client double that answers from a ``(query, page) -> outcome`` script."""

    def __init__(self, pages: Optional[Dict[Tuple[str, int], SearchOutcome]] = None,
                 details: Optional[Dict[str, DetailOutcome]] = None) -> None:
        self.pages = dict(pages or {})
        self.details = dict(details or {})
        self.calls: List[Tuple[str, int]] = []
        self.detail_calls: List[str] = []

    def search(self, query: str, page: int = 1) -> SearchOutcome:
        self.calls.append((query, page))
        return self.pages.get((query, page), Empty("Movie not found!"))

    def fetch_detail(self, movie_id: str) -> DetailOutcome:
        self.detail_calls.append(movie_id)
        return self.details.get(movie_id, Empty("Incorrect IMDb ID."))


class BrokenStorage:
    """Storage double whose reads and writes always fail."""

    def get_item(self, key):
        raise sqlite3.OperationalError("disk I/O error")

    def set_item(self, key, value):
        raise sqlite3.OperationalError("database is locked")


@pytest.fixture
def storage():
    kv = KeyValueStorage(":memory:")
    yield kv
    kv.close()


@pytest.fixture
def favorites_store(storage):
    store = FavoritesStore(storage)
    yield store
    store.close()
