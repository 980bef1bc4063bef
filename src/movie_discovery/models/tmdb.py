"""TMDb data models."""

from attrs import field, frozen

POSTER_BASE_URL = "https://image.tmdb.org/t/p/w500"


@frozen
class Genre:
    """Represents a TMDb genre."""

    id: int
    name: str


@frozen
class ProductionCompany:
    """Represents a production company credited on a movie."""

    id: int
    name: str


@frozen
class MovieSummary:
    """Represents a movie as listed by discover and search."""

    id: int
    title: str
    poster_path: str | None = None
    vote_average: float = 0.0
    release_date: str = ""

    @property
    def poster_url(self) -> str | None:
        if not self.poster_path:
            return None
        return f"{POSTER_BASE_URL}{self.poster_path}"

    @property
    def release_year(self) -> str:
        return self.release_date.split("-")[0] if self.release_date else ""


@frozen
class MovieDetails(MovieSummary):
    """Represents the full detail record for a single movie."""

    runtime: int | None = None
    overview: str = ""
    genres: tuple[Genre, ...] = field(default=(), converter=tuple)
    budget: int = 0
    revenue: int = 0
    production_companies: tuple[ProductionCompany, ...] = field(
        default=(), converter=tuple
    )
    vote_count: int = 0
