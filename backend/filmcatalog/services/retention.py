"""Eviction of stale, unreferenced TMDb-sourced movies."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
import logging

from sqlalchemy import delete, exists, select
from sqlalchemy.orm import Session

from filmcatalog.core.settings import get_settings, resolve_retention_days
from filmcatalog.models import SOURCE_TMDB, Movie, MovieGenre, Rating, Review, WatchHistory

logger = logging.getLogger(__name__)


def sweep_stale_remote_movies(
    session: Session,
    retention_days: float | None = None,
    *,
    now: datetime | None = None,
) -> int:
    """Delete TMDb movies not fetched within the window and never referenced.

    A movie with any rating, review or watch history entry is kept regardless
    of age. Returns the number of movies removed.
    """
    if retention_days is None:
        retention_days = get_settings().tmdb_cache_days
    days = resolve_retention_days(retention_days)
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=days)

    stmt = (
        delete(Movie)
        .where(
            Movie.source == SOURCE_TMDB,
            Movie.last_fetched_at.is_not(None),
            Movie.last_fetched_at < cutoff,
            ~exists(select(Rating.id).where(Rating.movie_id == Movie.id)),
            ~exists(select(Review.id).where(Review.movie_id == Movie.id)),
            ~exists(select(WatchHistory.id).where(WatchHistory.movie_id == Movie.id)),
        )
        .returning(Movie.id)
        .execution_options(synchronize_session=False)
    )
    deleted_ids = list(session.scalars(stmt))

    # Backends without enforced cascades leave the links behind.
    if deleted_ids:
        session.execute(
            delete(MovieGenre)
            .where(MovieGenre.movie_id.in_(deleted_ids))
            .execution_options(synchronize_session=False)
        )

    logger.info(
        "Retention sweep removed %s TMDb movies older than %s", len(deleted_ids), cutoff
    )
    return len(deleted_ids)


def run_retention_sweep(
    session_factory: Callable[[], Session], retention_days: float | None = None
) -> int | None:
    """Best-effort sweep in its own transaction; failures are logged, never raised."""
    session = session_factory()
    try:
        removed = sweep_stale_remote_movies(session, retention_days)
        session.commit()
        return removed
    except Exception:
        session.rollback()
        logger.exception("Retention sweep failed")
        return None
    finally:
        session.close()
