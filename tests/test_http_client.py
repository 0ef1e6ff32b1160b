"""Tests for HTTP retrieval of sub-resources."""

from pathlib import Path

import httpx
import pytest
from hishel.httpx import AsyncCacheClient
from pytest_httpx import HTTPXMock

from lighterceptor.config import CacheConfig, HttpConfig
from lighterceptor.http_client import HttpxFetcher, create_cache_storage, create_http_client
from lighterceptor.types import FetchedContent


def _config(**overrides: object) -> HttpConfig:
    return HttpConfig.model_validate({"max_retries": 0, "http2": False, **overrides})


@pytest.mark.asyncio
async def test_fetch_success(httpx_mock: HTTPXMock) -> None:
    """Test a 200 response becomes FetchedContent with its content type."""
    httpx_mock.add_response(
        url="https://example.com/site.css",
        text="body { background: url(bg.png) }",
        headers={"Content-Type": "text/css"},
    )

    fetcher = HttpxFetcher.from_config(_config())
    try:
        content = await fetcher("https://example.com/site.css")
    finally:
        await fetcher.aclose()

    assert content == FetchedContent("body { background: url(bg.png) }", "text/css")


@pytest.mark.asyncio
async def test_fetch_sends_user_agent(httpx_mock: HTTPXMock) -> None:
    """Test the configured User-Agent is sent."""
    httpx_mock.add_response(url="https://example.com/a.js", text="")

    fetcher = HttpxFetcher.from_config(_config(user_agent="TestAgent/1.0"))
    try:
        await fetcher("https://example.com/a.js")
    finally:
        await fetcher.aclose()

    request = httpx_mock.get_request()
    assert request is not None
    assert request.headers["User-Agent"] == "TestAgent/1.0"


@pytest.mark.asyncio
async def test_fetch_error_status_returns_none(httpx_mock: HTTPXMock) -> None:
    """Test non-success responses yield None."""
    httpx_mock.add_response(url="https://example.com/missing.css", status_code=404)

    fetcher = HttpxFetcher.from_config(_config())
    try:
        assert await fetcher("https://example.com/missing.css") is None
    finally:
        await fetcher.aclose()


@pytest.mark.asyncio
async def test_fetch_network_error_returns_none(httpx_mock: HTTPXMock) -> None:
    """Test transport failures yield None instead of raising."""
    httpx_mock.add_exception(httpx.ConnectError("Connection refused"))

    fetcher = HttpxFetcher.from_config(_config())
    try:
        assert await fetcher("https://example.com/down.js") is None
    finally:
        await fetcher.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "url",
    ["data:text/css,a{}", "img/a.png", "ftp://example.com/a.css", "javascript:void(0)"],
)
async def test_fetch_unsupported_scheme(url: str) -> None:
    """Test non-http(s) URLs are never requested."""
    fetcher = HttpxFetcher.from_config(_config())
    try:
        assert await fetcher(url) is None
    finally:
        await fetcher.aclose()


@pytest.mark.asyncio
async def test_borrowed_client_left_open() -> None:
    """Test aclose() does not close a client the fetcher does not own."""
    client = httpx.AsyncClient()
    fetcher = HttpxFetcher(client, owns_client=False)

    await fetcher.aclose()

    assert client.is_closed is False
    await client.aclose()


def test_cache_storage_disabled() -> None:
    """Test no storage is created when caching is off."""
    assert create_cache_storage(HttpConfig()) is None


def test_cache_storage_memory_backend(tmp_path: Path) -> None:
    """Test the memory backend uses hishel's default storage."""
    config = HttpConfig(
        cache=CacheConfig(enabled=True, backend="memory", cache_dir=str(tmp_path / "cache"))
    )
    assert create_cache_storage(config) is None


def test_cache_storage_sqlite_backend(tmp_path: Path) -> None:
    """Test the sqlite backend creates its cache directory."""
    cache_dir = tmp_path / "cache"
    config = HttpConfig(
        cache=CacheConfig(enabled=True, backend="sqlite", cache_dir=str(cache_dir), ttl_seconds=600)
    )

    storage = create_cache_storage(config)

    assert storage is not None
    assert cache_dir.exists()


@pytest.mark.asyncio
async def test_create_http_client_plain() -> None:
    """Test a plain httpx client is built when caching is off."""
    client = create_http_client(_config(max_redirects=3))
    try:
        assert isinstance(client, httpx.AsyncClient)
        assert not isinstance(client, AsyncCacheClient)
        assert client.follow_redirects is True
        assert client.max_redirects == 3
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_create_http_client_cached(tmp_path: Path) -> None:
    """Test a hishel client is built when caching is on."""
    config = _config(cache={"enabled": True, "cache_dir": str(tmp_path / "cache")})
    client = create_http_client(config)
    try:
        assert isinstance(client, AsyncCacheClient)
    finally:
        await client.aclose()
