# ui.py
import asyncio
from typing import Iterable, Optional, Tuple

from rich.markup import escape
from textual.app import ComposeResult
from textual.message import Message
from textual.screen import Screen
from textual.widgets import (Button, DataTable, Footer, Header, Input, Label,
                             LoadingIndicator, Markdown, RichLog, Static)

from models import (IMDB_TITLE_URL, DetailOutcome, Empty, Failure,
                    MovieDetail, SearchPhase, SearchResult, SearchSession,
                    Success)
from services import OmdbClient

FAVORITE_ON = "★"
FAVORITE_OFF = "☆"


def favorite_mark(is_favorite: bool) -> str:
    return FAVORITE_ON if is_favorite else FAVORITE_OFF


class SearchControls(Static):
    """Widget for the search input and button."""
    class SearchRequested(Message):
        def __init__(self, query: str) -> None:
            self.query = query
            super().__init__()

    def compose(self) -> ComposeResult:
        yield Label("Search for a movie:")
        yield Input(placeholder="Search for a movie...", id="search-input")
        yield Button("Search", variant="primary")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.post_search_message()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.post_search_message()

    def post_search_message(self) -> None:
        query = self.query_one(Input).value.strip()
        if query:
            self.post_message(self.SearchRequested(query))


class StatusBar(Static):
    """One line describing where the current search session stands."""
    def update_status(self, session: SearchSession) -> None:
        if session.phase is SearchPhase.IDLE:
            text = "Type a title and press Enter."
        elif session.phase is SearchPhase.SEARCHING:
            text = f"⏳ Searching for '{escape(session.query)}'..."
        elif session.phase is SearchPhase.LOADING_MORE:
            text = f"⏳ Loading page {session.page + 1}..."
        elif session.phase is SearchPhase.EMPTY:
            text = f"🤷 {escape(session.notice or 'No movies found')}"
        elif session.phase is SearchPhase.ERROR:
            text = f"[red]❌ {escape(session.error.message) if session.error else 'Search failed'}[/red] (r to retry)"
        else:
            text = f"{len(session.results)} of {session.total_results} movies, page {session.page}"
            if session.error:
                text += f" [red]- {escape(session.error.message)}[/red] (r to retry)"
        self.update(text)


class ResultsDisplay(DataTable):
    """Widget for the search results table."""
    class MovieSelected(Message):
        def __init__(self, key: str) -> None:
            self.key = key
            super().__init__()

    class MovieHighlighted(Message):
        def __init__(self, key: Optional[str], index: int) -> None:
            self.key = key
            self.index = index
            super().__init__()

    shown_ids: Tuple[str, ...] = ()

    def on_mount(self) -> None:
        self.add_column(FAVORITE_ON, key="favorite", width=2)
        self.add_column("Title", key="title")
        self.add_column("Year", key="year")
        self.cursor_type = "row"

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.row_key.value:
            self.post_message(self.MovieSelected(event.row_key.value))

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        self.post_message(self.MovieHighlighted(event.row_key.value, event.cursor_row))

    def update_results(self, results: Iterable[SearchResult], favorites: Iterable[str]) -> None:
        """Appends rows when the new list extends the shown one, otherwise redraws."""
        results = tuple(results)
        favorites = frozenset(favorites)
        ids = tuple(r.movie_id for r in results)
        if ids[:len(self.shown_ids)] == self.shown_ids:
            start = len(self.shown_ids)
        else:
            self.clear()
            start = 0
        for r in results[start:]:
            self.add_row(favorite_mark(r.movie_id in favorites), r.title, r.year, key=r.movie_id)
        self.shown_ids = ids
        if start == 0 and results:
            self.focus()

    def refresh_favorite(self, movie_id: str, is_favorite: bool) -> None:
        if movie_id in self.shown_ids:
            self.update_cell(movie_id, "favorite", favorite_mark(is_favorite))


class LogPane(RichLog):
    """A dedicated widget for logging application events."""
    def add_message(self, message: str) -> None:
        self.write(message)


def render_detail(detail: MovieDetail, is_favorite: bool) -> str:
    lines = [
        f"## {favorite_mark(is_favorite)} {detail.title} ({detail.year})",
        "",
        f"- **Genre**: {detail.genre or 'N/A'}",
        f"- **Rating**: {detail.rating or 'N/A'}",
    ]
    if detail.runtime:
        lines.append(f"- **Runtime**: {detail.runtime}")
    if detail.director:
        lines.append(f"- **Director**: {detail.director}")
    if detail.actors:
        lines.append(f"- **Cast**: {detail.actors}")
    lines.append(f"- **Poster**: `{detail.poster_url}`")
    lines.append(f"- **IMDb**: `{detail.imdb_url}`")
    lines += ["", detail.plot or "*No plot available.*"]
    return "\n".join(lines)


class DetailScreen(Screen):
    """The single-movie screen. Fetches a fresh copy every time it is shown."""
    BINDINGS = [
        ("escape", "app.pop_screen", "Back"),
        ("f", "toggle_favorite", "Favorite"),
        ("c", "copy_link", "Copy Link"),
        ("r", "retry", "Retry"),
    ]

    def __init__(self, movie_id: str, client: OmdbClient) -> None:
        super().__init__()
        self.movie_id = movie_id
        self.client = client
        self.detail: Optional[MovieDetail] = None
        self.outcome: Optional[DetailOutcome] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield LoadingIndicator(id="detail-loading")
        yield Markdown(id="detail-body")
        yield Footer()

    def on_mount(self) -> None:
        self.start_fetch()

    def start_fetch(self) -> None:
        self.query_one(LoadingIndicator).display = True
        self.query_one(Markdown).display = False
        self.run_worker(self.load_detail(), group="detail_worker", exclusive=True)

    async def load_detail(self) -> None:
        outcome = await asyncio.to_thread(self.client.fetch_detail, self.movie_id)
        self.show_outcome(outcome)

    def show_outcome(self, outcome: DetailOutcome) -> None:
        self.outcome = outcome
        self.query_one(LoadingIndicator).display = False
        body = self.query_one(Markdown)
        body.display = True
        if isinstance(outcome, Success):
            self.detail = outcome.value
            body.update(render_detail(self.detail, self.movie_id in self.app.favorites))
        elif isinstance(outcome, Empty):
            body.update(f"## Details\n\n🤷 {outcome.message}\n\n*Press r to try again.*")
        elif isinstance(outcome, Failure):
            body.update(f"## Details\n\n❌ {outcome.message}\n\n*Press r to try again.*")

    def action_retry(self) -> None:
        if not isinstance(self.outcome, Success):
            self.start_fetch()

    def action_toggle_favorite(self) -> None:
        is_favorite = self.app.toggle_favorite(self.movie_id)
        if self.detail:
            self.query_one(Markdown).update(render_detail(self.detail, is_favorite))

    def action_copy_link(self) -> None:
        title = self.detail.title if self.detail else self.movie_id
        self.app.copy_link(IMDB_TITLE_URL.format(self.movie_id), title)
