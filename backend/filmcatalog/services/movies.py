"""Administrative creation and editing of catalog entries."""

from __future__ import annotations

from datetime import date
import logging
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from filmcatalog.exceptions import MovieNotFoundError, MovieValidationError
from filmcatalog.models import SOURCE_LOCAL, STATUS_ACTIVE, Movie

logger = logging.getLogger(__name__)

MovieStatus = Literal["active", "hidden"]


class MovieFields(BaseModel):
    """Editable movie columns. Only keys present in the request are applied."""

    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    original_title: Optional[str] = None
    release_date: Optional[date] = None
    year: Optional[int] = None
    runtime_minutes: Optional[int] = Field(default=None, ge=0)
    language: Optional[str] = None
    country: Optional[str] = None
    description: Optional[str] = None
    poster_url: Optional[str] = None
    status: Optional[MovieStatus] = None


def create_movie(session: Session, fields: MovieFields) -> Movie:
    """Add a locally curated movie. New entries default to ``active``."""
    title = (fields.title or "").strip()
    if not title:
        raise MovieValidationError("title required")

    values = fields.model_dump(exclude={"title", "status"})
    movie = Movie(
        **values,
        title=title,
        status=fields.status or STATUS_ACTIVE,
        source=SOURCE_LOCAL,
    )
    session.add(movie)
    session.flush()
    logger.info("Created local movie %s (%r)", movie.id, title)
    return movie


def update_movie(session: Session, movie_id: int, fields: MovieFields) -> Movie:
    """Apply a partial update; keys absent from the request keep their value."""
    changes = fields.model_dump(exclude_unset=True)
    if not changes:
        raise MovieValidationError("no fields to update")

    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise MovieValidationError("title required")
        changes["title"] = title
    if "status" in changes and changes["status"] is None:
        raise MovieValidationError("status cannot be null")

    movie = session.get(Movie, movie_id)
    if movie is None:
        raise MovieNotFoundError()

    for key, value in changes.items():
        setattr(movie, key, value)
    movie.updated_at = func.now()
    session.flush()
    logger.info("Updated movie %s fields %s", movie_id, sorted(changes))
    return movie
