import httpx
import pytest

from filmcatalog.exceptions import RemoteProviderError
from filmcatalog.integrations.tmdb import (
    GenreCodeCache,
    TMDBCatalog,
    TMDBClient,
    build_poster_url,
)


def _catalog(handler, cache=None):
    transport = httpx.MockTransport(handler)
    client = TMDBClient(httpx.Client(transport=transport, base_url="https://example.test"))
    return TMDBCatalog(
        client=client,
        genre_cache=cache if cache is not None else GenreCodeCache(),
        image_base_url="https://image.test/t/p/w500",
    )


def test_tmdb_client_searches_with_language_year_and_key(monkeypatch):
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        requests.append(request)
        return httpx.Response(200, json={"results": []})

    monkeypatch.setenv("TMDB_API_KEY", "test-key")

    client = TMDBClient(
        httpx.Client(transport=httpx.MockTransport(handler), base_url="https://example.test")
    )
    client.search_movies("Dune", year=2021, language="en-US")

    assert len(requests) == 1
    request = requests[0]
    assert request.url.path.endswith("/search/movie")
    assert request.url.params["query"] == "Dune"
    assert request.url.params["year"] == "2021"
    assert request.url.params["language"] == "en-US"
    assert request.url.params["api_key"] == "test-key"


def test_catalog_search_returns_typed_records():
    def handler(request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        assert "year" not in request.url.params
        return httpx.Response(
            200,
            json={
                "page": 1,
                "results": [
                    {
                        "id": 42,
                        "title": "Dune",
                        "original_title": "Dune",
                        "release_date": "2021-09-15",
                        "overview": "Spice.",
                        "poster_path": "/dune.jpg",
                        "original_language": "en",
                        "genre_ids": [878, 12],
                        "popularity": 99.1,
                    },
                    {"id": 43, "title": "Dune Drifter"},
                ],
            },
        )

    records = _catalog(handler).search("Dune", language="en-US")

    assert [record.id for record in records] == [42, 43]
    assert records[0].genre_ids == [878, 12]
    assert records[1].release_date is None
    assert records[1].genre_ids == []


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, json={"status_message": "boom"}),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"results": [{"title": "missing id"}]}),
    ],
)
def test_catalog_search_failures_surface_as_remote_errors(response):
    catalog = _catalog(lambda request: response)

    with pytest.raises(RemoteProviderError):
        catalog.search("Dune", language="en-US")


def test_catalog_search_wraps_transport_errors():
    def handler(request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        raise httpx.ConnectError("unreachable", request=request)

    with pytest.raises(RemoteProviderError):
        _catalog(handler).search("Dune", language="en-US")


def test_genre_map_is_cached_per_language():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        language = request.url.params["language"]
        calls.append(language)
        name = "Science Fiction" if language == "en-US" else "科幻"
        return httpx.Response(200, json={"genres": [{"id": 878, "name": name}]})

    catalog = _catalog(handler)

    assert catalog.genre_map("en-US") == {878: "Science Fiction"}
    assert catalog.genre_map("en-US") == {878: "Science Fiction"}
    assert catalog.genre_map("zh-CN") == {878: "科幻"}
    assert calls == ["en-US", "zh-CN"]


def test_genre_map_refetches_after_ttl_expires():
    now = [1000.0]
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        calls.append(request.url.params["language"])
        return httpx.Response(200, json={"genres": [{"id": 12, "name": f"Adventure {len(calls)}"}]})

    cache = GenreCodeCache(ttl_seconds=60, clock=lambda: now[0])
    catalog = _catalog(handler, cache=cache)

    assert catalog.genre_map("en-US") == {12: "Adventure 1"}
    now[0] += 59
    assert catalog.genre_map("en-US") == {12: "Adventure 1"}
    now[0] += 1
    assert catalog.genre_map("en-US") == {12: "Adventure 2"}
    assert len(calls) == 2


def test_genre_map_failure_is_not_cached():
    responses = [
        httpx.Response(503),
        httpx.Response(200, json={"genres": [{"id": 12, "name": "Adventure"}]}),
    ]
    catalog = _catalog(lambda request: responses.pop(0))

    with pytest.raises(RemoteProviderError):
        catalog.genre_map("en-US")
    assert catalog.genre_map("en-US") == {12: "Adventure"}


def test_genre_cache_returns_copies():
    cache = GenreCodeCache()
    cache.set("en-US", {1: "Drama"})

    cached = cache.get("en-US")
    cached[2] = "Comedy"

    assert cache.get("en-US") == {1: "Drama"}
    cache.clear()
    assert cache.get("en-US") is None


def test_build_poster_url_joins_prefix_and_path():
    assert build_poster_url("/abc.jpg", "https://image.test/t/p/w500") == "https://image.test/t/p/w500/abc.jpg"
    assert build_poster_url("abc.jpg", "https://image.test/t/p/w500/") == "https://image.test/t/p/w500/abc.jpg"
    assert build_poster_url(None, "https://image.test") is None
    assert build_poster_url("", "https://image.test") is None


def test_catalog_poster_url_uses_configured_prefix():
    catalog = _catalog(lambda request: httpx.Response(200, json={}))

    assert catalog.poster_url("/x.jpg") == "https://image.test/t/p/w500/x.jpg"


def test_provider_errors_do_not_leak_the_api_key(monkeypatch, caplog):
    monkeypatch.setenv("TMDB_API_KEY", "SECRET-KEY-123")
    catalog = _catalog(lambda request: httpx.Response(401, json={"status_message": "nope"}))

    with pytest.raises(RemoteProviderError) as search_error:
        catalog.search("Dune", language="en-US")
    with pytest.raises(RemoteProviderError) as genre_error:
        catalog.genre_map("en-US")

    assert search_error.value.detail == "TMDb search failed (HTTP 401)"
    assert genre_error.value.detail == "TMDb genre list failed (HTTP 401)"
    assert "SECRET-KEY-123" not in caplog.text


def test_transport_error_message_names_the_failure_only(monkeypatch):
    monkeypatch.setenv("TMDB_API_KEY", "SECRET-KEY-123")

    def handler(request: httpx.Request) -> httpx.Response:  # type: ignore[override]
        raise httpx.ConnectError(f"could not reach {request.url}", request=request)

    with pytest.raises(RemoteProviderError) as excinfo:
        _catalog(handler).search("Dune", language="en-US")

    assert excinfo.value.detail == "TMDb search failed (ConnectError)"
