from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
import logging
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.orm import Session

from filmcatalog.core.auth import require_admin
from filmcatalog.db import get_db, get_session_factory
from filmcatalog.exceptions import InvalidFilterError, MovieNotFoundError
from filmcatalog.integrations.tmdb import TMDBCatalog
from filmcatalog.models import Movie
from filmcatalog.services.genres import bind_genres, genres_for_movie
from filmcatalog.services.movies import MovieFields, create_movie, update_movie
from filmcatalog.services.retention import run_retention_sweep
from filmcatalog.services.search import MovieFilters, MovieSearchService, SortKey

router = APIRouter(prefix="/movies", tags=["movies"])
logger = logging.getLogger(__name__)


def _serialize_movie(movie: Movie) -> dict[str, Any]:
    return {
        "id": movie.id,
        "tmdb_id": movie.tmdb_id,
        "title": movie.title,
        "original_title": movie.original_title,
        "release_date": movie.release_date,
        "year": movie.year,
        "runtime_minutes": movie.runtime_minutes,
        "language": movie.language,
        "country": movie.country,
        "description": movie.description,
        "poster_url": movie.poster_url,
        "source": movie.source,
        "status": movie.status,
        "last_fetched_at": movie.last_fetched_at,
        "created_at": movie.created_at,
        "updated_at": movie.updated_at,
    }


@lru_cache
def get_catalog() -> TMDBCatalog:
    """Shared adapter so the TMDb connection pool is reused across requests.

    The adapter captures settings when first built; call
    ``get_catalog.cache_clear()`` after ``get_settings.cache_clear()`` to pick
    up a changed base URL, timeout or API key.
    """
    return TMDBCatalog()


def get_movie_filters(
    q: str | None = Query(default=None, description="Search by title or original title"),
    year: int | None = Query(default=None, description="Release year"),
    genre_id: int | None = Query(default=None),
    country: str | None = Query(default=None),
    language: str | None = Query(default=None),
    min_runtime: int | None = Query(default=None, description="Minimum runtime in minutes"),
    max_runtime: int | None = Query(default=None, description="Maximum runtime in minutes"),
    sort: SortKey = Query(default="default"),
) -> MovieFilters:
    try:
        return MovieFilters(
            q=q,
            year=year,
            genre_id=genre_id,
            country=country,
            language=language,
            min_runtime=min_runtime,
            max_runtime=max_runtime,
            sort=sort,
        )
    except ValidationError as exc:
        message = "; ".join(error["msg"] for error in exc.errors())
        raise InvalidFilterError(message) from exc


@router.get("")
def list_movies(
    background_tasks: BackgroundTasks,
    filters: MovieFilters = Depends(get_movie_filters),
    db: Session = Depends(get_db),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    catalog: TMDBCatalog = Depends(get_catalog),
) -> list[dict[str, Any]]:
    service = MovieSearchService(
        db,
        catalog=catalog,
        schedule_sweep=lambda: background_tasks.add_task(run_retention_sweep, session_factory),
    )
    return [_serialize_movie(movie) for movie in service.search(filters)]


@router.get("/{movie_id}")
def get_movie(movie_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    movie = db.get(Movie, movie_id)
    if movie is None:
        raise MovieNotFoundError()
    return {
        "movie": _serialize_movie(movie),
        "genres": [
            {"genre_id": genre.id, "name": genre.name}
            for genre in genres_for_movie(db, movie_id)
        ],
    }


@router.post("", status_code=status.HTTP_201_CREATED)
def create_movie_entry(
    payload: MovieFields,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
) -> dict[str, int]:
    try:
        movie_id = create_movie(db, payload).id
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"movie_id": movie_id}


@router.put("/{movie_id}")
def update_movie_entry(
    movie_id: int,
    payload: MovieFields,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
) -> dict[str, bool]:
    try:
        update_movie(db, movie_id, payload)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return {"ok": True}


class BindGenresRequest(BaseModel):
    genre_ids: list[int]


@router.put("/{movie_id}/genres")
def replace_genres(
    movie_id: int,
    payload: BindGenresRequest,
    db: Session = Depends(get_db),
    _: str = Depends(require_admin),
) -> dict[str, bool]:
    try:
        genre_ids = bind_genres(db, movie_id, payload.genre_ids)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Bound genres %s to movie %s", genre_ids, movie_id)
    return {"ok": True}
