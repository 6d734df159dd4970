# main.py
import argparse
import asyncio
import logging
import sys
from typing import FrozenSet, List, Optional

try:
    import pyperclip
except ImportError:
    pyperclip = None

from rich.markup import escape
from textual.app import App, ComposeResult
from textual.containers import Container, Vertical
from textual.reactive import reactive
from textual.widgets import Footer, Header, Input

from config import Config
from models import (Failure, SearchPhase, SearchResult, SearchSession,
                    Success)
from services import FavoritesStore, KeyValueStorage, OmdbClient
from session import SearchController, SearchRequest
from ui import DetailScreen, LogPane, ResultsDisplay, SearchControls, StatusBar

logger = logging.getLogger(__name__)


class FindMovieApp(App):
    BINDINGS = [
        ("d", "toggle_dark", "Toggle dark mode"),
        ("q", "quit", "Quit"),
        ("f", "toggle_favorite", "Favorite"),
        ("c", "copy_link", "Copy Link"),
        ("m", "load_more", "Load More"),
        ("r", "retry", "Retry"),
    ]
    CSS_PATH = "find_movie.css"
    TITLE = "findMovie"

    session = reactive(SearchSession(), always_update=True, init=False)

    def __init__(self, client: OmdbClient, favorites_store: FavoritesStore, config: Config):
        super().__init__()
        self.client = client
        self.favorites_store = favorites_store
        self.config = config
        self.controller = SearchController(client)
        self.favorites: FrozenSet[str] = frozenset()
        self.highlighted: Optional[SearchResult] = None

    def compose(self) -> ComposeResult:
        yield Header()
        with Container(id="main-container"):
            with Vertical(id="search-pane"):
                yield SearchControls()
                yield StatusBar(id="status")
                yield ResultsDisplay(id="results-table")
            yield LogPane(id="log", wrap=True, highlight=True, markup=True)
        yield Footer()

    def on_mount(self) -> None:
        # Kept as references: these widgets live on the default screen and must stay
        # reachable while the detail screen is on top.
        self.results_table = self.query_one(ResultsDisplay)
        self.status_bar = self.query_one(StatusBar)
        self.log_pane = self.query_one(LogPane)
        self.query_one(Input).focus()
        self.status_bar.update_status(self.session)

        if pyperclip:
            self.log_pane.add_message("[green]✅ Clipboard found.[/green]")
        else:
            self.log_pane.add_message("[yellow]⚠️ 'pyperclip' not installed.[/yellow]")
        self.load_favorites()

    def load_favorites(self) -> None:
        problems: List[Failure] = []
        self.favorites_store.add_error_listener(problems.append)
        try:
            self.favorites = self.favorites_store.load()
        finally:
            self.favorites_store.remove_error_listener(problems.append)
        for problem in problems:
            self.log_pane.add_message(f"[red]❌ {escape(problem.message)}[/red]")
            self.notify(escape(problem.message), title="Favorites", severity="warning")
        self.log_pane.add_message(f"⭐ {len(self.favorites)} favorites loaded.")

    def watch_session(self, old_session: SearchSession, new_session: SearchSession) -> None:
        if old_session.results != new_session.results or not new_session.results:
            self.results_table.update_results(new_session.results, self.favorites)
        self.status_bar.update_status(new_session)

    # --- Searching ---

    def start_request(self, request: Optional[SearchRequest]) -> None:
        if request is None:
            return
        self.session = self.controller.session
        if request.is_first_page:
            self.highlighted = None
            self.log_pane.add_message(f"🔎 Searching for '{escape(request.query)}'...")
        else:
            self.log_pane.add_message(f"⏬ Loading page {request.page} of '{escape(request.query)}'...")
        self.workers.cancel_group(self, "search_worker")
        self.run_worker(self.perform_search(request), group="search_worker", exclusive=True)

    def on_search_controls_search_requested(self, message: SearchControls.SearchRequested) -> None:
        self.start_request(self.controller.begin_search(message.query))

    def action_load_more(self) -> None:
        self.start_request(self.controller.begin_load_more())

    def action_retry(self) -> None:
        self.start_request(self.controller.retry())

    async def perform_search(self, request: SearchRequest) -> None:
        outcome = await asyncio.to_thread(self.client.search, request.query, request.page)
        if not self.controller.apply(request, outcome):
            return
        self.session = self.controller.session

        if isinstance(outcome, Failure):
            self.log_pane.add_message(f"[red]❌ {escape(outcome.message)}[/red]")
            self.notify(f"{escape(outcome.message)} Press r to retry.", title="Search failed", severity="error")
        elif self.session.phase is SearchPhase.EMPTY:
            notice = self.session.notice or "No movies found"
            self.log_pane.add_message(f"🤷 {escape(notice)} ('{escape(request.query)}').")
            self.notify(f"{escape(notice)} Try searching for something else.", title="No movies found")
        elif isinstance(outcome, Success):
            self.log_pane.add_message(
                f"🎬 Page {self.session.page}: showing {len(self.session.results)} "
                f"of {self.session.total_results} movies."
            )

    # --- Result list ---

    def on_results_display_movie_highlighted(self, message: ResultsDisplay.MovieHighlighted) -> None:
        self.highlighted = next((r for r in self.session.results if r.movie_id == message.key), None)
        if self.controller.should_load_more(message.index, self.config.LOAD_MORE_THRESHOLD):
            self.action_load_more()

    def on_results_display_movie_selected(self, message: ResultsDisplay.MovieSelected) -> None:
        self.push_screen(DetailScreen(message.key, self.client))

    # --- Favorites ---

    def toggle_favorite(self, movie_id: str) -> bool:
        """Flips the favorite mark right away and saves in the background. Returns the new state."""
        self.favorites, pending = self.favorites_store.toggle_and_save(movie_id, self.favorites)
        is_favorite = movie_id in self.favorites
        self.results_table.refresh_favorite(movie_id, is_favorite)
        self.run_worker(self.confirm_saved(pending), group="favorites_worker")
        return is_favorite

    async def confirm_saved(self, pending) -> None:
        outcome = await asyncio.wrap_future(pending)
        if isinstance(outcome, Failure):
            self.log_pane.add_message(f"[red]❌ {escape(outcome.message)}[/red]")
            self.notify(escape(outcome.message), title="Favorites not saved", severity="warning")

    def action_toggle_favorite(self) -> None:
        if not self.highlighted:
            self.log_pane.add_message("[yellow]⚠️ No movie selected.[/yellow]")
            return
        if self.toggle_favorite(self.highlighted.movie_id):
            self.log_pane.add_message(f"⭐ Added '[b]{escape(self.highlighted.title)}[/b]' to favorites.")
        else:
            self.log_pane.add_message(f"☆ Removed '[b]{escape(self.highlighted.title)}[/b]' from favorites.")

    # --- Clipboard ---

    def copy_link(self, url: str, title: str) -> None:
        if not pyperclip:
            self.log_pane.add_message("[red]❌ 'pyperclip' not installed.[/red]")
            return
        pyperclip.copy(url)
        self.log_pane.add_message(f"📋 Copied link for '[b]{escape(title)}[/b]'.")

    def action_copy_link(self) -> None:
        if self.highlighted:
            self.copy_link(self.highlighted.imdb_url, self.highlighted.title)
        else:
            self.log_pane.add_message("[yellow]⚠️ No movie selected.[/yellow]")


def configure_logging(config: Config) -> None:
    """Sends log records to a file; the terminal belongs to the TUI."""
    logging.basicConfig(
        filename=config.LOG_FILENAME,
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Search OMDb from the terminal and keep a list of favorites.")
    parser.add_argument("--env-file", help="Path to a .env file holding OMDB_API_KEY.")
    parser.add_argument("--db", help="SQLite file used for local storage.")
    args = parser.parse_args(argv)

    app_config = Config.from_env(args.env_file)
    if args.db:
        app_config.DATABASE_FILENAME = args.db
    configure_logging(app_config)

    if not app_config.OMDB_API_KEY:
        print("OMDB_API_KEY is not set. Export it or put it in a .env file.", file=sys.stderr)
        return 1

    logger.info("Starting with storage at %s", app_config.DATABASE_FILENAME)
    storage = KeyValueStorage(app_config.DATABASE_FILENAME)
    favorites_store = FavoritesStore(storage, app_config.FAVORITES_KEY)
    client = OmdbClient(app_config.OMDB_API_KEY, app_config.OMDB_API_URL, app_config.REQUEST_TIMEOUT)

    app = FindMovieApp(client, favorites_store, app_config)
    try:
        app.run()
    finally:
        favorites_store.close()
        storage.close()
        client.session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
