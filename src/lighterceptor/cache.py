"""Per-run resource cache.

Memoizes retrievals by URL. The in-flight task is stored before it is awaited,
so concurrent callers for one URL share a single retrieval.
"""

import asyncio
import logging

from lighterceptor.types import FetchedContent, Fetcher

logger = logging.getLogger(__name__)


class ResourceCache:
    """Memoizes fetcher results (including failures) for one discovery run.

    Features:
    - At most one retrieval per URL for the lifetime of the cache
    - Concurrent callers for the same URL await the same task
    - Failures and a missing fetcher resolve to None, and that None is cached

    Example:
        >>> cache = ResourceCache(fetcher)
        >>> content = await cache.load("https://example.com/site.css")
    """

    def __init__(self, fetcher: Fetcher | None) -> None:
        """Initialize cache.

        Args:
            fetcher: Retrieval primitive, or None when retrieval is unavailable
        """
        self.fetcher = fetcher
        self._entries: dict[str, asyncio.Task[FetchedContent | None]] = {}
        self.fetch_count = 0

    def __contains__(self, url: object) -> bool:
        return url in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    async def load(self, url: str) -> FetchedContent | None:
        """Return the content for a URL, retrieving it on first request.

        Args:
            url: Absolute URL to load

        Returns:
            FetchedContent, or None if retrieval failed or is unavailable
        """
        task = self._entries.get(url)
        if task is None:
            task = asyncio.ensure_future(self._retrieve(url))
            self._entries[url] = task
        return await asyncio.shield(task)

    async def _retrieve(self, url: str) -> FetchedContent | None:
        if self.fetcher is None:
            logger.debug(f"No fetcher available, skipping {url}")
            return None

        self.fetch_count += 1
        try:
            return await self.fetcher(url)
        except Exception as e:
            logger.debug(f"Retrieval failed for {url}: {type(e).__name__}: {e}")
            return None
