"""Genre resolution and movie/genre link management."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from filmcatalog.exceptions import MovieNotFoundError, UnknownGenreError
from filmcatalog.models import Genre, Movie, MovieGenre


def dialect_insert(session: Session):
    """Return the conflict-aware ``insert`` construct for the session's backend."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Upserts are not supported on {dialect!r}")


def ensure_genres_by_name(session: Session, names: Iterable[str]) -> dict[str, int]:
    """Make sure every name exists as a Genre and return ``{name: genre_id}``.

    Inserts are conflict tolerant and ids are read back afterwards, so names
    created concurrently by another transaction are still returned.
    """
    unique_names = sorted({name for name in names if name})
    if not unique_names:
        return {}

    stmt = (
        dialect_insert(session)(Genre)
        .values([{"name": name} for name in unique_names])
        .on_conflict_do_nothing(index_elements=[Genre.name])
    )
    session.execute(stmt)

    rows = session.execute(
        select(Genre.id, Genre.name).where(Genre.name.in_(unique_names))
    ).all()
    return {name: genre_id for genre_id, name in rows}


def replace_movie_genres(session: Session, movie_id: int, genre_ids: Iterable[int]) -> None:
    """Replace the full link set of a movie with ``genre_ids``."""
    session.execute(delete(MovieGenre).where(MovieGenre.movie_id == movie_id))

    unique_ids = list(dict.fromkeys(genre_ids))
    if unique_ids:
        session.execute(
            insert(MovieGenre),
            [{"movie_id": movie_id, "genre_id": genre_id} for genre_id in unique_ids],
        )


def bind_genres(session: Session, movie_id: int, genre_ids: Iterable[int]) -> list[int]:
    """Administrative genre assignment for an existing movie."""
    if session.get(Movie, movie_id) is None:
        raise MovieNotFoundError()

    unique_ids = list(dict.fromkeys(genre_ids))
    if unique_ids:
        known = set(session.scalars(select(Genre.id).where(Genre.id.in_(unique_ids))))
        missing = [genre_id for genre_id in unique_ids if genre_id not in known]
        if missing:
            raise UnknownGenreError(f"unknown genre ids: {', '.join(map(str, missing))}")

    replace_movie_genres(session, movie_id, unique_ids)
    return unique_ids


def genres_for_movie(session: Session, movie_id: int) -> list[Genre]:
    stmt = (
        select(Genre)
        .join(MovieGenre, MovieGenre.genre_id == Genre.id)
        .where(MovieGenre.movie_id == movie_id)
        .order_by(Genre.name)
    )
    return list(session.scalars(stmt))
