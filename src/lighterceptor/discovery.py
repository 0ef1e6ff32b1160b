"""Request log and discovery queue.

RequestLog is the ordered trace returned to callers. DiscoveryQueue is the
deduplicating FIFO work list that drives recursive expansion.
"""

import logging
import time
from collections import deque
from collections.abc import Iterator

from lighterceptor.types import PendingWorkItem, RequestRecord, RequestSource, ResourceKind
from lighterceptor.urls import URLResolver

logger = logging.getLogger(__name__)


class RequestLog:
    """Append-only, ordered record of discovered requests.

    The same URL may appear several times (different mechanisms or elements).
    """

    def __init__(self) -> None:
        self._records: list[RequestRecord] = []

    def record(self, url: str, source: RequestSource) -> RequestRecord:
        """Append a request discovered now via ``source``."""
        entry = RequestRecord(url=url, source=source, timestamp=int(time.time() * 1000))
        self._records.append(entry)
        logger.debug(f"[{source}] {url}")
        return entry

    @property
    def records(self) -> list[RequestRecord]:
        """Snapshot of the log in discovery order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[RequestRecord]:
        return iter(list(self._records))


class DiscoveryQueue:
    """Deduplicating breadth-first work list.

    A URL is enqueued at most once per run. Membership in the processed set
    only gates enqueueing; it has no effect on what gets recorded.
    """

    def __init__(self, enabled: bool = True) -> None:
        """Initialize queue.

        Args:
            enabled: Whether recursion is on; when False every enqueue is a no-op
        """
        self.enabled = enabled
        self._pending: deque[PendingWorkItem] = deque()
        self._processed: set[str] = set()

    def enqueue(self, url: str, kind_hint: ResourceKind | None = None) -> bool:
        """Add a URL unless recursion is off, it is skippable, or already seen.

        Returns:
            True if the URL was added
        """
        if not self.enabled or URLResolver.is_skippable(url) or url in self._processed:
            return False

        self._processed.add(url)
        self._pending.append(PendingWorkItem(url=url, kind_hint=kind_hint))
        logger.debug(f"Enqueued {url} (kind hint: {kind_hint or 'none'})")
        return True

    def pop(self) -> PendingWorkItem | None:
        """Remove and return the oldest pending item, or None when empty."""
        if not self._pending:
            return None
        return self._pending.popleft()

    @property
    def processed(self) -> frozenset[str]:
        """URLs that have been enqueued so far."""
        return frozenset(self._processed)

    def pending(self) -> list[PendingWorkItem]:
        """Snapshot of items waiting to be drained, oldest first."""
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)
