"""Persist TMDb search results as locally owned movies."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import date, datetime, timezone
import logging
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from filmcatalog.exceptions import IngestError
from filmcatalog.integrations.tmdb import RemoteMovieRecord
from filmcatalog.models import SOURCE_TMDB, STATUS_ACTIVE, Movie
from filmcatalog.services.genres import (
    dialect_insert,
    ensure_genres_by_name,
    replace_movie_genres,
)

logger = logging.getLogger(__name__)

# Columns refreshed when a known TMDb id is ingested again. Runtime and
# country are curated locally and never overwritten.
_REFRESHED_COLUMNS = (
    "title",
    "original_title",
    "release_date",
    "year",
    "language",
    "description",
    "poster_url",
    "last_fetched_at",
)


class RemoteCatalog(Protocol):
    """What the upsert needs from a remote catalog adapter."""

    def genre_map(self, language: str) -> dict[int, str]:
        ...

    def poster_url(self, poster_path: str | None) -> str | None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_release_year(release_date: str | None) -> int | None:
    if not release_date:
        return None
    prefix = release_date[:4]
    if len(prefix) == 4 and prefix.isdigit():
        return int(prefix)
    return None


def parse_release_date(record: RemoteMovieRecord) -> date | None:
    if not record.release_date:
        return None
    try:
        return date.fromisoformat(record.release_date)
    except ValueError as exc:
        raise IngestError(
            f"TMDb movie {record.id} has a malformed release date {record.release_date!r}"
        ) from exc


def _movie_values(
    record: RemoteMovieRecord, catalog: RemoteCatalog, fetched_at: datetime
) -> dict[str, object]:
    return {
        "tmdb_id": record.id,
        "title": record.title or record.original_title or "Unknown",
        "original_title": record.original_title or None,
        "release_date": parse_release_date(record),
        "year": parse_release_year(record.release_date),
        "language": record.original_language or None,
        "description": record.overview or None,
        "poster_url": catalog.poster_url(record.poster_path),
        "source": SOURCE_TMDB,
        "status": STATUS_ACTIVE,
        "last_fetched_at": fetched_at,
    }


def _upsert_movie(session: Session, values: dict[str, object]) -> int:
    stmt = dialect_insert(session)(Movie).values(**values)
    refreshed = {column: stmt.excluded[column] for column in _REFRESHED_COLUMNS}
    refreshed["status"] = STATUS_ACTIVE
    refreshed["updated_at"] = func.now()
    stmt = stmt.on_conflict_do_update(
        index_elements=[Movie.tmdb_id], set_=refreshed
    ).returning(Movie.id)
    return session.execute(stmt).scalar_one()


def upsert_remote_movies(
    session: Session,
    records: Sequence[RemoteMovieRecord],
    *,
    catalog: RemoteCatalog,
    language: str,
    now: Callable[[], datetime] = _utcnow,
) -> list[Movie]:
    """Insert or refresh ``records`` keyed by TMDb id and return the stored rows.

    Genre names for every record are resolved in a single batch. Each movie's
    genre links are replaced, not merged. The caller owns the transaction:
    any exception leaves the batch for the caller to roll back.
    """
    if not records:
        return []

    genre_names_by_code = catalog.genre_map(language)
    wanted_names = {
        genre_names_by_code[code]
        for record in records
        for code in record.genre_ids
        if code in genre_names_by_code
    }
    genre_ids_by_name = ensure_genres_by_name(session, wanted_names)

    fetched_at = now()
    saved_ids: list[int] = []
    for record in records:
        movie_id = _upsert_movie(session, _movie_values(record, catalog, fetched_at))

        local_genre_ids = []
        for code in record.genre_ids:
            genre_id = genre_ids_by_name.get(genre_names_by_code.get(code))
            if genre_id is not None:
                local_genre_ids.append(genre_id)
        replace_movie_genres(session, movie_id, local_genre_ids)

        if movie_id not in saved_ids:
            saved_ids.append(movie_id)

    stmt = (
        select(Movie)
        .where(Movie.id.in_(saved_ids))
        .execution_options(populate_existing=True)
    )
    movies_by_id = {movie.id: movie for movie in session.scalars(stmt)}

    logger.info(
        "Upserted %s TMDb movies (%s): ids=%s", len(saved_ids), language, saved_ids
    )
    return [movies_by_id[movie_id] for movie_id in saved_ids]
