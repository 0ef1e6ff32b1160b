"""HTTP retrieval of discovered sub-resources.

Provides the default retrieval primitive used by the resource cache:
- create_http_client(): httpx client with HTTP/2, retries and optional caching
- HttpxFetcher: turns a GET into FetchedContent, or None on any failure
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from hishel import AsyncSqliteStorage
from hishel.httpx import AsyncCacheClient
from httpx_retries import Retry, RetryTransport

from lighterceptor.types import FetchedContent

if TYPE_CHECKING:
    from lighterceptor.config import HttpConfig

logger = logging.getLogger(__name__)

FETCHABLE_SCHEMES = {"http", "https"}


def create_cache_storage(config: HttpConfig) -> AsyncSqliteStorage | None:
    """Create cache storage based on configuration.

    Args:
        config: HTTP configuration

    Returns:
        Cache storage instance or None if disabled or using memory backend
    """
    if not config.cache.enabled:
        return None

    cache_config = config.cache
    if cache_config.backend == "sqlite":
        cache_db = Path(cache_config.cache_dir) / "http_cache.db"
        cache_db.parent.mkdir(parents=True, exist_ok=True)
        return AsyncSqliteStorage(
            database_path=str(cache_db),
            default_ttl=float(cache_config.ttl_seconds) if cache_config.ttl_seconds else None,
        )
    return None


def create_http_client(config: HttpConfig) -> httpx.AsyncClient | AsyncCacheClient:
    """Create httpx client with HTTP/2, retry logic, and optional caching.

    Args:
        config: HTTP configuration

    Returns:
        Configured httpx AsyncClient or Hishel AsyncCacheClient
    """
    retry_policy = Retry(
        total=config.max_retries,
        backoff_factor=config.retry_backoff - 1.0,
        backoff_jitter=config.retry_jitter,
        status_forcelist=[429, 500, 502, 503, 504],
        respect_retry_after_header=True,
        allowed_methods=["HEAD", "GET"],
    )

    base_transport = httpx.AsyncHTTPTransport(http2=config.http2, retries=0)
    transport = RetryTransport(transport=base_transport, retry=retry_policy)
    timeout = httpx.Timeout(config.timeout, connect=config.connect_timeout)
    headers = {"User-Agent": config.user_agent}

    if config.cache.enabled:
        storage = create_cache_storage(config)
        return AsyncCacheClient(
            storage=storage,
            transport=transport,
            timeout=timeout,
            follow_redirects=True,
            max_redirects=config.max_redirects,
            headers=headers,
        )

    return httpx.AsyncClient(
        transport=transport,
        timeout=timeout,
        follow_redirects=True,
        max_redirects=config.max_redirects,
        headers=headers,
    )


class HttpxFetcher:
    """Retrieval primitive backed by an httpx client.

    Retrieval failures (network errors, non-success status, unsupported scheme)
    yield None instead of raising.

    Example:
        >>> fetcher = HttpxFetcher.from_config(HttpConfig())
        >>> content = await fetcher("https://example.com/site.css")
        >>> await fetcher.aclose()
    """

    def __init__(
        self,
        client: httpx.AsyncClient | AsyncCacheClient,
        *,
        owns_client: bool = True,
    ) -> None:
        """Initialize fetcher.

        Args:
            client: HTTP client used for retrievals
            owns_client: Whether aclose() should close the client
        """
        self._client = client
        self._owns_client = owns_client

    @classmethod
    def from_config(cls, config: HttpConfig) -> HttpxFetcher:
        """Build a fetcher that owns a freshly configured client."""
        return cls(create_http_client(config))

    async def __call__(self, url: str) -> FetchedContent | None:
        """GET a URL and return its decoded body and content type."""
        scheme = url.partition(":")[0].lower()
        if scheme not in FETCHABLE_SCHEMES:
            logger.debug(f"Not fetching {url}: unsupported scheme")
            return None

        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.debug(f"HTTP {e.response.status_code} for {url}")
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Fetch failed for {url}: {type(e).__name__}: {e}")
            return None

        return FetchedContent(
            text=response.text,
            content_type=response.headers.get("content-type"),
        )

    async def aclose(self) -> None:
        """Close the client if this fetcher owns it."""
        if self._owns_client:
            await self._client.aclose()
