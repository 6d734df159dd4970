# services.py
import json
import logging
import sqlite3
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import requests

from models import (DetailOutcome, Empty, ErrorKind, Failure, MovieDetail,
                    SaveOutcome, SearchOutcome, SearchPage, SearchResult,
                    Success)

logger = logging.getLogger(__name__)

OMDB_PAGE_SIZE = 10


class KeyValueStorage:
    """A small string key/value store kept in a single SQLite table."""
    def __init__(self, db_name: str):
        self.db_name = db_name
        # Writes arrive from the favorites writer thread.
        self.conn = sqlite3.connect(db_name, check_same_thread=False)
        self.create_table()

    def create_table(self):
        """Creates the kv table if it doesn't exist."""
        with self.conn:
            self.conn.execute("""
                CREATE TABLE IF NOT EXISTS kv (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

    def get_item(self, key: str) -> Optional[str]:
        row = self.conn.execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set_item(self, key: str, value: str):
        with self.conn:
            self.conn.execute(
                "INSERT INTO kv (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, value),
            )

    def remove_item(self, key: str):
        with self.conn:
            self.conn.execute("DELETE FROM kv WHERE key = ?", (key,))

    def close(self):
        self.conn.close()


class FavoritesStore:
    """Keeps the favorite movie ids as one JSON-encoded list under a single storage key.

    The in-memory set handed back by ``toggle`` is always the source of truth for the
    running session. Writes go through a single background worker so they land in the
    order they were issued; a failed write is reported, never raised.
    """
    def __init__(self, storage: KeyValueStorage, key: str = "favorites"):
        self.storage = storage
        self.key = key
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="favorites-writer")
        self._error_listeners: List[Callable[[Failure], None]] = []

    def add_error_listener(self, listener: Callable[[Failure], None]):
        self._error_listeners.append(listener)

    def remove_error_listener(self, listener: Callable[[Failure], None]):
        if listener in self._error_listeners:
            self._error_listeners.remove(listener)

    def _report(self, failure: Failure):
        for listener in self._error_listeners:
            listener(failure)

    def load(self) -> FrozenSet[str]:
        """Reads the persisted favorites. Any storage or decoding problem yields an empty set."""
        try:
            raw = self.storage.get_item(self.key)
        except sqlite3.Error as e:
            logger.error("Error loading favorites: %s", e)
            self._report(Failure(ErrorKind.PERSISTENCE, f"Could not read favorites: {e}"))
            return frozenset()
        if raw is None:
            return frozenset()
        try:
            decoded = json.loads(raw)
        except ValueError as e:
            logger.error("Stored favorites are not valid JSON: %s", e)
            self._report(Failure(ErrorKind.PERSISTENCE, "Stored favorites are corrupt."))
            return frozenset()
        if not isinstance(decoded, list):
            logger.error("Stored favorites are not a list: %r", type(decoded).__name__)
            self._report(Failure(ErrorKind.PERSISTENCE, "Stored favorites are corrupt."))
            return frozenset()
        return frozenset(item for item in decoded if isinstance(item, str))

    @staticmethod
    def toggle(movie_id: str, current: Iterable[str]) -> FrozenSet[str]:
        """Removes the id if present, adds it otherwise."""
        current = frozenset(current)
        if movie_id in current:
            return current - {movie_id}
        return current | {movie_id}

    def save(self, favorites: Iterable[str]) -> SaveOutcome:
        """Writes the full set back to storage, blocking until done."""
        snapshot = frozenset(favorites)
        try:
            self.storage.set_item(self.key, json.dumps(sorted(snapshot)))
        except sqlite3.Error as e:
            logger.exception("Error saving favorites")
            failure = Failure(ErrorKind.PERSISTENCE, f"Could not save favorites: {e}")
            self._report(failure)
            return failure
        return Success(snapshot)

    def toggle_and_save(self, movie_id: str, current: Iterable[str]) -> Tuple[FrozenSet[str], "Future[SaveOutcome]"]:
        """Toggles in memory right away and queues the write, returning both."""
        updated = self.toggle(movie_id, current)
        return updated, self._writer.submit(self.save, updated)

    def close(self):
        self._writer.shutdown(wait=True)


class OmdbClient:
    """A service to handle interactions with the OMDb search and detail endpoint."""
    def __init__(self, api_key: str, base_url: str = "https://www.omdbapi.com/",
                 timeout: Optional[float] = 10.0, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def search(self, query: str, page: int = 1) -> SearchOutcome:
        """Fetches one page of title matches for the query."""
        payload = self._get({"s": query, "page": page})
        if isinstance(payload, Failure):
            return payload
        if payload.get("Response") != "True":
            return Empty(payload.get("Error") or "No movies found")

        items = payload.get("Search")
        if not isinstance(items, list):
            logger.warning("Search response for %r page %d has no result list", query, page)
            return Failure(ErrorKind.MALFORMED, "The movie service sent an unexpected response.")

        unique_results: Dict[str, SearchResult] = {}
        for item in items:
            parsed_result = self._parse_item(item)
            if parsed_result and parsed_result.movie_id not in unique_results:
                unique_results[parsed_result.movie_id] = parsed_result
        if items and not unique_results:
            logger.warning("Search response for %r page %d had no usable items", query, page)
            return Failure(ErrorKind.MALFORMED, "The movie service sent an unexpected response.")

        results = tuple(unique_results.values())
        try:
            total = int(payload.get("totalResults"))
        except (TypeError, ValueError):
            total = (page - 1) * OMDB_PAGE_SIZE + len(results)
        return Success(SearchPage(results=results, total_results=total, page=page))

    def fetch_detail(self, movie_id: str) -> DetailOutcome:
        """Fetches the full record for a single IMDb id."""
        payload = self._get({"i": movie_id})
        if isinstance(payload, Failure):
            return payload
        if payload.get("Response") != "True":
            return Empty(payload.get("Error") or "Movie not found")
        if not payload.get("imdbID"):
            logger.warning("Detail response for %s has no imdbID", movie_id)
            return Failure(ErrorKind.MALFORMED, "The movie service sent an unexpected response.")
        return Success(MovieDetail.from_omdb(payload))

    def _parse_item(self, item: Any) -> Optional[SearchResult]:
        """Parses a single raw API item into our SearchResult data model."""
        if not isinstance(item, dict) or not item.get("imdbID"):
            return None
        return SearchResult.from_omdb(item)

    def _get(self, params: Dict[str, Any]) -> Union[Dict[str, Any], Failure]:
        request_params = dict(params, apikey=self.api_key)
        try:
            response = self.session.get(self.base_url, params=request_params, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Error fetching from OMDb (%s): %s", params, e)
            return Failure(ErrorKind.NETWORK, f"Could not reach the movie service: {e}")

        try:
            payload = response.json()
        except ValueError:
            if not response.ok:
                logger.warning("OMDb answered HTTP %s for %s", response.status_code, params)
                return Failure(ErrorKind.NETWORK, f"The movie service answered HTTP {response.status_code}.")
            logger.warning("OMDb sent a body that is not JSON for %s", params)
            return Failure(ErrorKind.MALFORMED, "The movie service sent an unexpected response.")

        if not isinstance(payload, dict):
            logger.warning("OMDb sent a %s instead of an object for %s", type(payload).__name__, params)
            return Failure(ErrorKind.MALFORMED, "The movie service sent an unexpected response.")
        return payload
