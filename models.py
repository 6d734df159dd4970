# models.py
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Generic, Optional, Tuple, TypeVar, Union

POSTER_NOT_AVAILABLE = "N/A"
THUMBNAIL_PLACEHOLDER_URL = "https://via.placeholder.com/50x75"
DETAIL_PLACEHOLDER_URL = "https://via.placeholder.com/200x300"
IMDB_TITLE_URL = "https://www.imdb.com/title/{}/"

T = TypeVar("T")


def _clean(value: Any) -> Optional[str]:
    """OMDb reports missing fields as "N/A"; map those (and blanks) to None."""
    if value is None:
        return None
    text = str(value).strip()
    if not text or text == POSTER_NOT_AVAILABLE:
        return None
    return text


@dataclass(frozen=True)
class SearchResult:
    """A single row of a search response."""
    movie_id: str
    title: str
    year: str
    poster_url: str
    has_poster: bool = True

    @classmethod
    def from_omdb(cls, item: Dict[str, Any], placeholder: str = THUMBNAIL_PLACEHOLDER_URL) -> "SearchResult":
        """Parses a raw OMDb search item. The poster sentinel is replaced here, not in the view."""
        poster = _clean(item.get("Poster"))
        return cls(
            movie_id=str(item["imdbID"]),
            title=_clean(item.get("Title")) or "Untitled",
            year=_clean(item.get("Year")) or "N/A",
            poster_url=poster or placeholder,
            has_poster=poster is not None,
        )

    @property
    def imdb_url(self) -> str:
        return IMDB_TITLE_URL.format(self.movie_id)


@dataclass(frozen=True)
class MovieDetail(SearchResult):
    """Everything a search row has, plus the fields shown on the detail screen."""
    genre: Optional[str] = None
    rating: Optional[str] = None
    plot: Optional[str] = None
    runtime: Optional[str] = None
    director: Optional[str] = None
    actors: Optional[str] = None

    @classmethod
    def from_omdb(cls, item: Dict[str, Any], placeholder: str = DETAIL_PLACEHOLDER_URL) -> "MovieDetail":
        base = SearchResult.from_omdb(item, placeholder=placeholder)
        return cls(
            movie_id=base.movie_id,
            title=base.title,
            year=base.year,
            poster_url=base.poster_url,
            has_poster=base.has_poster,
            genre=_clean(item.get("Genre")),
            rating=_clean(item.get("imdbRating")),
            plot=_clean(item.get("Plot")),
            runtime=_clean(item.get("Runtime")),
            director=_clean(item.get("Director")),
            actors=_clean(item.get("Actors")),
        )


@dataclass(frozen=True)
class SearchPage:
    """One page of search results as returned by the client."""
    results: Tuple[SearchResult, ...]
    total_results: int
    page: int


# --- Tagged outcomes ---

class ErrorKind(Enum):
    NETWORK = "network"
    MALFORMED = "malformed"
    PERSISTENCE = "persistence"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T


@dataclass(frozen=True)
class Empty:
    """A well-formed response whose status token was not "True"."""
    message: str = "No movies found"


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str


SearchOutcome = Union[Success[SearchPage], Empty, Failure]
DetailOutcome = Union[Success[MovieDetail], Empty, Failure]
SaveOutcome = Union[Success[FrozenSet[str]], Failure]


# --- Search session state ---

class SearchPhase(Enum):
    IDLE = "idle"
    SEARCHING = "searching"
    RESULTS = "results"
    EMPTY = "empty"
    ERROR = "error"
    LOADING_MORE = "loading_more"


@dataclass(frozen=True)
class SearchSession:
    """The transient state of one query and its accumulated pages."""
    query: str = ""
    page: int = 0
    results: Tuple[SearchResult, ...] = field(default_factory=tuple)
    total_results: int = 0
    phase: SearchPhase = SearchPhase.IDLE
    notice: Optional[str] = None
    error: Optional[Failure] = None

    @property
    def loading(self) -> bool:
        return self.phase in (SearchPhase.SEARCHING, SearchPhase.LOADING_MORE)

    @property
    def has_more(self) -> bool:
        return len(self.results) < self.total_results

    def evolve(self, **changes: Any) -> "SearchSession":
        return replace(self, **changes)
