"""Protocol for deduplicating concurrent synchronizations."""

from collections.abc import Awaitable, Callable
from typing import Protocol, TypeVar

T = TypeVar("T")


class SyncCacheProtocol(Protocol):
    """Protocol for a single-flight result cache keyed by upstream URL."""

    async def get_or_compute(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        """Return the cached or in-flight result for ``key``, or start ``compute``.

        Args:
            key: The cache key.
            compute: Factory for the computation, called at most once per entry.

        Returns:
            The result of the computation; its exception is raised instead if it failed.
        """
        ...
