import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from filmcatalog.api.routes.movies import get_catalog
from filmcatalog.core import settings as settings_module
from filmcatalog.integrations.tmdb import RemoteMovieRecord, build_poster_url, get_genre_cache
from filmcatalog.models import Base


class FakeCatalog:
    """In-memory stand-in for TMDBCatalog that records every call."""

    name = "fake"

    def __init__(self, results=None, genres=None, error=None):
        self.results = [
            record if isinstance(record, RemoteMovieRecord) else RemoteMovieRecord(**record)
            for record in results or []
        ]
        self.genres = dict(genres or {})
        self.error = error
        self.search_calls = []
        self.genre_calls = []

    def search(self, query, *, year=None, language):
        self.search_calls.append((query, year, language))
        if self.error is not None:
            raise self.error
        return list(self.results)

    def genre_map(self, language):
        self.genre_calls.append(language)
        return dict(self.genres)

    def poster_url(self, poster_path):
        return build_poster_url(poster_path, "https://images.test/w500")


def _clear_cached_config():
    settings_module.get_settings.cache_clear()
    get_catalog.cache_clear()
    get_genre_cache.cache_clear()


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Ensure cached settings and the objects built from them do not leak."""
    _clear_cached_config()
    yield
    _clear_cached_config()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def session(session_factory):
    with session_factory() as db:
        yield db


@pytest.fixture
def fake_catalog_cls():
    return FakeCatalog
