from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from filmcatalog.models import Genre, Movie, MovieGenre, Rating, Review, User, WatchHistory
from filmcatalog.services.retention import run_retention_sweep, sweep_stale_remote_movies

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def _remote_movie(session, title, age_days, **kwargs):
    movie = Movie(
        title=title,
        tmdb_id=kwargs.pop("tmdb_id", None),
        source=kwargs.pop("source", "tmdb"),
        last_fetched_at=NOW - timedelta(days=age_days) if age_days is not None else None,
        **kwargs,
    )
    session.add(movie)
    session.flush()
    return movie


def _remaining_titles(session):
    return set(session.scalars(select(Movie.title)))


def test_sweep_deletes_only_stale_unreferenced_remote_movies(session):
    _remote_movie(session, "stale", 31, tmdb_id=1)
    _remote_movie(session, "fresh", 29, tmdb_id=2)
    rated = _remote_movie(session, "rated", 31, tmdb_id=3)
    reviewed = _remote_movie(session, "reviewed", 45, tmdb_id=4)
    watched = _remote_movie(session, "watched", 400, tmdb_id=5)
    _remote_movie(session, "local", 90, source="local")
    _remote_movie(session, "never fetched", None, tmdb_id=6)

    user = User(username="ana")
    session.add(user)
    session.flush()
    session.add_all(
        [
            Rating(user_id=user.id, movie_id=rated.id, score=8),
            Review(user_id=user.id, movie_id=reviewed.id, content="Great"),
            WatchHistory(user_id=user.id, movie_id=watched.id),
        ]
    )
    session.flush()

    removed = sweep_stale_remote_movies(session, 30, now=NOW)

    assert removed == 1
    assert _remaining_titles(session) == {
        "fresh",
        "rated",
        "reviewed",
        "watched",
        "local",
        "never fetched",
    }


def test_sweep_removes_links_of_deleted_movies(session):
    stale = _remote_movie(session, "stale", 60, tmdb_id=10)
    kept = _remote_movie(session, "kept", 1, tmdb_id=11)
    genre = Genre(name="Drama")
    session.add(genre)
    session.flush()
    session.add_all(
        [
            MovieGenre(movie_id=stale.id, genre_id=genre.id),
            MovieGenre(movie_id=kept.id, genre_id=genre.id),
        ]
    )
    session.flush()

    sweep_stale_remote_movies(session, 30, now=NOW)

    assert set(session.scalars(select(MovieGenre.movie_id))) == {kept.id}
    assert session.scalar(select(Genre.name)) == "Drama"


def test_sweep_uses_configured_window(session, monkeypatch):
    monkeypatch.setenv("TMDB_CACHE_DAYS", "7")
    _remote_movie(session, "eight days", 8, tmdb_id=1)
    _remote_movie(session, "six days", 6, tmdb_id=2)

    sweep_stale_remote_movies(session, now=NOW)

    assert _remaining_titles(session) == {"six days"}


def test_sweep_treats_invalid_window_as_thirty_days(session):
    _remote_movie(session, "thirty-one", 31, tmdb_id=1)
    _remote_movie(session, "twenty-nine", 29, tmdb_id=2)

    sweep_stale_remote_movies(session, -5, now=NOW)

    assert _remaining_titles(session) == {"twenty-nine"}


def test_run_retention_sweep_commits_in_its_own_session(session_factory):
    with session_factory() as setup:
        movie = Movie(
            title="ancient",
            tmdb_id=1,
            source="tmdb",
            last_fetched_at=datetime.now(timezone.utc) - timedelta(days=365),
        )
        setup.add(movie)
        setup.commit()

    assert run_retention_sweep(session_factory, 30) == 1

    with session_factory() as check:
        assert check.scalars(select(Movie)).all() == []


def test_run_retention_sweep_swallows_failures(caplog):
    class BrokenSession:
        def __init__(self):
            self.rolled_back = False
            self.closed = False

        def scalars(self, *args, **kwargs):
            raise RuntimeError("database went away")

        def rollback(self):
            self.rolled_back = True

        def close(self):
            self.closed = True

    broken = BrokenSession()

    assert run_retention_sweep(lambda: broken, 30) is None
    assert broken.rolled_back is True
    assert broken.closed is True
    assert "Retention sweep failed" in caplog.text
