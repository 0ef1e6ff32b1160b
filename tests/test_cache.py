"""Tests for the per-run resource cache."""

import asyncio

import pytest

from lighterceptor.cache import ResourceCache
from lighterceptor.types import FetchedContent
from tests.conftest import StubFetcher

CSS_URL = "https://example.com/site.css"


@pytest.mark.asyncio
async def test_load_returns_fetched_content() -> None:
    """Test a first load goes through the fetcher."""
    fetcher = StubFetcher({CSS_URL: FetchedContent("a{}", "text/css")})
    cache = ResourceCache(fetcher)

    content = await cache.load(CSS_URL)

    assert content == FetchedContent("a{}", "text/css")
    assert fetcher.calls == [CSS_URL]
    assert CSS_URL in cache
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_sequential_loads_fetch_once() -> None:
    """Test repeated loads are served from the cache."""
    fetcher = StubFetcher({CSS_URL: FetchedContent("a{}")})
    cache = ResourceCache(fetcher)

    first = await cache.load(CSS_URL)
    second = await cache.load(CSS_URL)

    assert first is second
    assert fetcher.call_count(CSS_URL) == 1
    assert cache.fetch_count == 1


@pytest.mark.asyncio
async def test_concurrent_loads_share_one_retrieval() -> None:
    """Test in-flight retrievals are shared between concurrent callers."""
    started = asyncio.Event()
    release = asyncio.Event()
    calls: list[str] = []

    async def slow_fetcher(url: str) -> FetchedContent | None:
        calls.append(url)
        started.set()
        await release.wait()
        return FetchedContent("body")

    cache = ResourceCache(slow_fetcher)
    tasks = [asyncio.create_task(cache.load(CSS_URL)) for _ in range(5)]
    await started.wait()
    release.set()
    results = await asyncio.gather(*tasks)

    assert calls == [CSS_URL]
    assert all(result == FetchedContent("body") for result in results)


@pytest.mark.asyncio
async def test_failure_is_cached() -> None:
    """Test a failed retrieval resolves to None and is not retried."""
    calls: list[str] = []

    async def failing_fetcher(url: str) -> FetchedContent | None:
        calls.append(url)
        raise ConnectionError("boom")

    cache = ResourceCache(failing_fetcher)

    assert await cache.load(CSS_URL) is None
    assert await cache.load(CSS_URL) is None
    assert calls == [CSS_URL]


@pytest.mark.asyncio
async def test_missing_content_is_cached() -> None:
    """Test a fetcher returning None is remembered."""
    fetcher = StubFetcher()
    cache = ResourceCache(fetcher)

    assert await cache.load(CSS_URL) is None
    assert await cache.load(CSS_URL) is None
    assert fetcher.call_count(CSS_URL) == 1


@pytest.mark.asyncio
async def test_no_fetcher() -> None:
    """Test loads without a fetcher resolve to None without counting a retrieval."""
    cache = ResourceCache(None)

    assert await cache.load(CSS_URL) is None
    assert cache.fetch_count == 0
    assert CSS_URL in cache
