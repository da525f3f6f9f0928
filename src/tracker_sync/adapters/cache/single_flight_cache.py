"""Single-flight result cache with a time-to-live."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from tracker_sync.domain.contracts.sync_cache import SyncCacheProtocol

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class _Entry:
    task: asyncio.Future[Any]
    created_at: float


class SingleFlightCache(SyncCacheProtocol):
    """Shares one computation among all callers asking for the same key.

    Entries are registered before the computation first yields, so
    concurrent callers always join the existing entry. Successful results
    and exceptions alike are served to later callers until the entry is
    ``ttl_seconds`` old. Entries still running are never evicted.

    A caller that is cancelled stops waiting but does not cancel the
    shared computation.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: How long a registered entry is served, in seconds.
            clock: Monotonic clock returning seconds.
        """
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the cached or in-flight result for ``key``, or start ``compute``.

        Args:
            key: The cache key.
            compute: Factory for the computation, called at most once per entry.

        Returns:
            The result of the computation; its exception is raised instead if it failed.
        """
        self._evict_expired()

        entry = self._entries.get(key)
        if entry is None:
            task = asyncio.ensure_future(compute())
            task.add_done_callback(self._retrieve_exception)
            entry = _Entry(task=task, created_at=self._clock())
            self._entries[key] = entry
            logger.debug(f"Started computation for {key}")
        else:
            logger.debug(f"Joining cached computation for {key}")

        result: T = await asyncio.shield(entry.task)
        return result

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if entry.task.done() and now - entry.created_at >= self._ttl_seconds
        ]
        for key in expired:
            del self._entries[key]

    @staticmethod
    def _retrieve_exception(task: asyncio.Future[Any]) -> None:
        # Mark the exception as retrieved even if no caller is left to await it.
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Cached computation failed: {task.exception()}")
