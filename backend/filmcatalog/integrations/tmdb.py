"""TMDb client and the catalog adapter used by the search fallback."""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache
import logging
import threading
import time
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from filmcatalog.core.settings import get_settings
from filmcatalog.exceptions import RemoteProviderError

logger = logging.getLogger(__name__)


class TMDBClient:
    """HTTP client for interacting with TMDb."""

    def __init__(self, client: httpx.Client | None = None) -> None:
        settings = get_settings()
        self._api_key = settings.tmdb_api_key

        if client is None:
            self._client = httpx.Client(
                base_url=settings.tmdb_base_url,
                timeout=settings.tmdb_timeout_seconds,
            )
        else:
            self._client = client

    def _params(self, **params: Any) -> dict[str, Any]:
        cleaned = {key: value for key, value in params.items() if value is not None}
        if self._api_key:
            cleaned["api_key"] = self._api_key
        return cleaned

    def search_movies(
        self, query: str, *, year: int | None = None, language: str | None = None
    ) -> dict[str, Any]:
        """Search TMDb for movies by title (and optional release year)."""
        params = self._params(query=query, year=year, language=language, include_adult="false")
        response = self._client.get("/search/movie", params=params)
        response.raise_for_status()
        return response.json()

    def movie_genres(self, *, language: str | None = None) -> dict[str, Any]:
        """Fetch the official movie genre list in ``language``."""
        response = self._client.get("/genre/movie/list", params=self._params(language=language))
        response.raise_for_status()
        return response.json()


class RemoteMovieRecord(BaseModel):
    """A single search hit as TMDb reports it."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str | None = None
    original_title: str | None = None
    release_date: str | None = None
    overview: str | None = None
    poster_path: str | None = None
    original_language: str | None = None
    genre_ids: list[int] = Field(default_factory=list)


class _SearchPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    results: list[RemoteMovieRecord] = Field(default_factory=list)


class _RemoteGenre(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str


class _GenreList(BaseModel):
    model_config = ConfigDict(extra="ignore")

    genres: list[_RemoteGenre] = Field(default_factory=list)


class GenreCodeCache:
    """Per-language cache of TMDb genre code to name mappings.

    ``ttl_seconds=None`` keeps entries for the lifetime of the cache. The clock
    is injectable so staleness can be driven from tests.
    """

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, tuple[float, dict[int, str]]] = {}
        self._lock = threading.Lock()

    def get(self, language: str) -> dict[int, str] | None:
        with self._lock:
            entry = self._entries.get(language)
            if entry is None:
                return None
            stored_at, mapping = entry
            if self._ttl is not None and self._clock() - stored_at >= self._ttl:
                del self._entries[language]
                return None
            return dict(mapping)

    def set(self, language: str, mapping: dict[int, str]) -> None:
        with self._lock:
            self._entries[language] = (self._clock(), dict(mapping))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


@lru_cache
def get_genre_cache() -> GenreCodeCache:
    """Process-wide genre cache configured from settings."""
    return GenreCodeCache(ttl_seconds=get_settings().tmdb_genre_cache_ttl_seconds)


def _failure_reason(exc: Exception) -> str:
    """Describe a provider failure without echoing the request URL.

    httpx error messages embed the full URL, which carries ``api_key``.
    """
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code}"
    if isinstance(exc, httpx.HTTPError):
        return type(exc).__name__
    return "invalid response payload"


def build_poster_url(poster_path: str | None, base_url: str) -> str | None:
    if not poster_path:
        return None
    return f"{base_url.rstrip('/')}/{poster_path.lstrip('/')}"


class TMDBCatalog:
    """Remote catalog adapter: typed search results and cached genre names."""

    name = "tmdb"

    def __init__(
        self,
        client: TMDBClient | None = None,
        genre_cache: GenreCodeCache | None = None,
        image_base_url: str | None = None,
    ) -> None:
        self._client = client or TMDBClient()
        self._genre_cache = genre_cache if genre_cache is not None else get_genre_cache()
        self._image_base_url = image_base_url or get_settings().tmdb_image_base_url

    def search(
        self, query: str, *, year: int | None = None, language: str
    ) -> list[RemoteMovieRecord]:
        try:
            payload = self._client.search_movies(query, year=year, language=language)
            page = _SearchPage.model_validate(payload)
        except (httpx.HTTPError, ValueError) as exc:
            reason = _failure_reason(exc)
            logger.warning("TMDb search failed for %r (%s): %s", query, language, reason)
            raise RemoteProviderError(f"TMDb search failed ({reason})") from exc

        logger.info("TMDb search for %r (%s) returned %s results", query, language, len(page.results))
        return page.results

    def genre_map(self, language: str) -> dict[int, str]:
        cached = self._genre_cache.get(language)
        if cached is not None:
            return cached

        try:
            payload = self._client.movie_genres(language=language)
            genres = _GenreList.model_validate(payload).genres
        except (httpx.HTTPError, ValueError) as exc:
            reason = _failure_reason(exc)
            logger.warning("TMDb genre list failed for %s: %s", language, reason)
            raise RemoteProviderError(f"TMDb genre list failed ({reason})") from exc

        mapping = {genre.id: genre.name for genre in genres if genre.name}
        self._genre_cache.set(language, mapping)
        return mapping

    def poster_url(self, poster_path: str | None) -> str | None:
        return build_poster_url(poster_path, self._image_base_url)
