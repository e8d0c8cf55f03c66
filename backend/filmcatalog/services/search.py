"""Catalog search with a TMDb fallback for unmatched title queries."""

from __future__ import annotations

from collections.abc import Callable
import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy import Select, or_, select
from sqlalchemy.orm import Session

from filmcatalog.core.settings import get_settings
from filmcatalog.integrations.tmdb import TMDBCatalog
from filmcatalog.models import STATUS_ACTIVE, Movie, MovieGenre
from filmcatalog.services.ingest import upsert_remote_movies

logger = logging.getLogger(__name__)

SortKey = Literal["latest", "top", "default"]


class MovieFilters(BaseModel):
    q: Optional[str] = None
    year: Optional[int] = None
    genre_id: Optional[int] = None
    country: Optional[str] = None
    language: Optional[str] = None
    min_runtime: Optional[int] = Field(default=None, ge=0)
    max_runtime: Optional[int] = Field(default=None, ge=0)
    sort: SortKey = "default"

    @field_validator("q", "country", "language", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @model_validator(mode="after")
    def _check_runtime_bounds(self) -> "MovieFilters":
        if (
            self.min_runtime is not None
            and self.max_runtime is not None
            and self.min_runtime > self.max_runtime
        ):
            raise ValueError("min_runtime must not exceed max_runtime")
        return self


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_movie_query(filters: MovieFilters) -> Select:
    stmt = select(Movie)
    if filters.genre_id is not None:
        stmt = stmt.join(MovieGenre, MovieGenre.movie_id == Movie.id).where(
            MovieGenre.genre_id == filters.genre_id
        )

    stmt = stmt.where(Movie.status == STATUS_ACTIVE)

    if filters.q:
        pattern = _like_pattern(filters.q)
        stmt = stmt.where(
            or_(
                Movie.title.ilike(pattern, escape="\\"),
                Movie.original_title.ilike(pattern, escape="\\"),
            )
        )
    if filters.year is not None:
        stmt = stmt.where(Movie.year == filters.year)
    if filters.country:
        stmt = stmt.where(Movie.country == filters.country)
    if filters.language:
        stmt = stmt.where(Movie.language == filters.language)
    if filters.min_runtime is not None:
        stmt = stmt.where(Movie.runtime_minutes >= filters.min_runtime)
    if filters.max_runtime is not None:
        stmt = stmt.where(Movie.runtime_minutes <= filters.max_runtime)

    if filters.sort == "latest":
        stmt = stmt.order_by(Movie.release_date.desc().nulls_last(), Movie.id.desc())
    else:
        # No ranking signal exists yet, so "top" is newest-added first as well.
        stmt = stmt.order_by(Movie.id.desc())
    return stmt


class MovieSearchService:
    """Serve searches locally and fall back to TMDb for unmatched title queries."""

    def __init__(
        self,
        session: Session,
        catalog: TMDBCatalog | None = None,
        schedule_sweep: Callable[[], None] | None = None,
        default_language: str | None = None,
    ) -> None:
        self._session = session
        self._catalog = catalog
        self._schedule_sweep = schedule_sweep
        self._default_language = default_language

    @property
    def catalog(self) -> TMDBCatalog:
        if self._catalog is None:
            self._catalog = TMDBCatalog()
        return self._catalog

    def search(self, filters: MovieFilters) -> list[Movie]:
        movies = list(self._session.scalars(build_movie_query(filters)))
        if movies or not filters.q:
            return movies
        return self._search_remote(filters)

    def _search_remote(self, filters: MovieFilters) -> list[Movie]:
        language = (
            filters.language or self._default_language or get_settings().tmdb_language
        )
        records = self.catalog.search(filters.q, year=filters.year, language=language)

        try:
            movies = upsert_remote_movies(
                self._session, records, catalog=self.catalog, language=language
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "No local match for %r; stored %s movies from %s",
            filters.q,
            len(movies),
            self.catalog.name,
        )

        if self._schedule_sweep is not None:
            try:
                self._schedule_sweep()
            except Exception:
                logger.exception("Could not schedule retention sweep")
        return movies
