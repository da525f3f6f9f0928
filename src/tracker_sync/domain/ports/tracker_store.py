"""Tracker store port."""

from collections.abc import Sequence
from types import TracebackType
from typing import Protocol

from tracker_sync.domain.models import AuditEntry, Hint, Slot, TrackedResource


class TrackerTransaction(Protocol):
    """A unit of work against the tracker store.

    Used as an async context manager; leaving the block without calling
    :meth:`commit` rolls the transaction back. Update methods write only the
    listed columns and return ``None`` if the row no longer exists.
    """

    async def __aenter__(self) -> "TrackerTransaction": ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None: ...

    async def commit(self) -> None:
        """Commit the transaction."""
        ...

    async def rollback(self) -> None:
        """Roll back the transaction."""
        ...

    async def get_tracker_by_upstream_url(self, upstream_url: str) -> TrackedResource | None:
        """Get a tracker by its upstream URL."""
        ...

    async def get_tracker_by_tracker_id(self, tracker_id: str) -> TrackedResource | None:
        """Get a tracker by its opaque ID."""
        ...

    async def create_tracker(self, tracker: TrackedResource) -> TrackedResource:
        """Create a tracker; the ``id`` of the argument is ignored."""
        ...

    async def update_tracker(
        self, tracker: TrackedResource, columns: Sequence[str]
    ) -> TrackedResource | None:
        """Update the given columns of an existing tracker."""
        ...

    async def get_slots_by_tracker(self, tracker_id: int) -> list[Slot]:
        """Get all slots of a tracker by the tracker's row ID."""
        ...

    async def create_slot(self, slot: Slot) -> Slot:
        """Create a slot; the ``id`` of the argument is ignored."""
        ...

    async def update_slot(self, slot: Slot, columns: Sequence[str]) -> Slot | None:
        """Update the given columns of an existing slot."""
        ...

    async def get_hints_by_tracker(self, tracker_id: int) -> list[Hint]:
        """Get all hints of a tracker by the tracker's row ID, in ID order."""
        ...

    async def create_hint(self, hint: Hint) -> Hint:
        """Create a hint; the ``id`` of the argument is ignored."""
        ...

    async def update_hint(self, hint: Hint, columns: Sequence[str]) -> Hint | None:
        """Update the given columns of an existing hint."""
        ...

    async def delete_hint(self, hint_id: int) -> bool:
        """Delete a hint, returning whether it existed."""
        ...

    async def create_audit_entries(self, entries: Sequence[AuditEntry]) -> None:
        """Append audit entries."""
        ...

    async def get_audit_entries(
        self, entity: str | None = None, entity_id: int | None = None
    ) -> list[AuditEntry]:
        """Get audit entries, optionally filtered by entity, in insertion order."""
        ...


class TrackerStore(Protocol):
    """Port for the persistent tracker store."""

    async def begin(self) -> TrackerTransaction:
        """Begin a new transaction."""
        ...
