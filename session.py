# session.py
import logging
from dataclasses import dataclass
from typing import Optional

from models import (Empty, Failure, SearchOutcome, SearchPhase, SearchSession,
                    Success)
from services import OmdbClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchRequest:
    """A search call the controller has issued and is waiting on."""
    ticket: int
    query: str
    page: int

    @property
    def is_first_page(self) -> bool:
        return self.page == 1


class SearchController:
    """Drives one search session: new queries, pagination and retries.

    Every request gets a ticket from an increasing counter. Only the response to the
    most recently issued ticket is applied, so a slow answer to an older query can
    never overwrite the results of a newer one.
    """
    def __init__(self, client: OmdbClient):
        self.client = client
        self.session = SearchSession()
        self._last_ticket = 0

    def _issue(self, query: str, page: int) -> SearchRequest:
        self._last_ticket += 1
        return SearchRequest(ticket=self._last_ticket, query=query, page=page)

    def is_current(self, request: SearchRequest) -> bool:
        return request.ticket == self._last_ticket

    def begin_search(self, query: str) -> Optional[SearchRequest]:
        query = query.strip()
        if not query:
            return None
        self.session = SearchSession(query=query, phase=SearchPhase.SEARCHING)
        return self._issue(query, 1)

    def can_load_more(self) -> bool:
        s = self.session
        return (s.phase is SearchPhase.RESULTS and not s.loading
                and bool(s.results) and s.has_more)

    def begin_load_more(self) -> Optional[SearchRequest]:
        if not self.can_load_more():
            return None
        self.session = self.session.evolve(phase=SearchPhase.LOADING_MORE, error=None)
        return self._issue(self.session.query, self.session.page + 1)

    def retry(self) -> Optional[SearchRequest]:
        s = self.session
        if s.phase is SearchPhase.ERROR:
            return self.begin_search(s.query)
        if s.phase is SearchPhase.RESULTS and s.error is not None:
            return self.begin_load_more()
        return None

    def should_load_more(self, index: int, threshold: int) -> bool:
        """Whether the row at ``index`` is close enough to the end to fetch the next page."""
        return self.can_load_more() and index >= len(self.session.results) - max(threshold, 1)

    def apply(self, request: SearchRequest, outcome: SearchOutcome) -> bool:
        """Folds a response into the session. Returns False when the response is stale."""
        if not self.is_current(request):
            logger.debug("Dropping stale response for %r page %d (ticket %d)",
                         request.query, request.page, request.ticket)
            return False

        s = self.session
        if isinstance(outcome, Success):
            page = outcome.value
            if request.is_first_page:
                self.session = SearchSession(
                    query=request.query,
                    page=1,
                    results=page.results,
                    total_results=page.total_results,
                    phase=SearchPhase.RESULTS if page.results else SearchPhase.EMPTY,
                    notice=None if page.results else "No movies found",
                )
            else:
                known = {r.movie_id for r in s.results}
                fresh = tuple(r for r in page.results if r.movie_id not in known)
                self.session = s.evolve(
                    page=request.page,
                    results=s.results + fresh,
                    total_results=page.total_results,
                    phase=SearchPhase.RESULTS,
                    error=None,
                )
        elif isinstance(outcome, Empty):
            self.session = SearchSession(query=request.query, phase=SearchPhase.EMPTY,
                                         notice=outcome.message)
        elif isinstance(outcome, Failure):
            logger.warning("Search for %r page %d failed: %s", request.query, request.page, outcome.message)
            if request.is_first_page:
                self.session = SearchSession(query=request.query, phase=SearchPhase.ERROR, error=outcome)
            else:
                self.session = s.evolve(phase=SearchPhase.RESULTS, error=outcome)
        else:
            raise TypeError(f"Unexpected search outcome: {outcome!r}")
        return True

    def _run(self, request: Optional[SearchRequest]) -> SearchSession:
        if request is not None:
            self.apply(request, self.client.search(request.query, request.page))
        return self.session

    # Blocking helpers for headless use; the TUI splits begin/apply across a worker thread.
    def search(self, query: str) -> SearchSession:
        return self._run(self.begin_search(query))

    def load_more(self) -> SearchSession:
        return self._run(self.begin_load_more())

    def retry_now(self) -> SearchSession:
        return self._run(self.retry())
