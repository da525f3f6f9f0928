"""Reconciles parsed upstream tracker state with the store."""

import logging
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import replace
from datetime import datetime, timedelta

from tracker_sync.application.services.audit_diff import Auditable, build_audit_entry
from tracker_sync.application.services.completion_status import update_completion_status
from tracker_sync.domain.errors import (
    HintSlotMissingError,
    NumericConversionError,
    SlotCountMismatchError,
    SlotInformationMismatchError,
    StoreError,
)
from tracker_sync.domain.models import (
    CompletionStatus,
    Hint,
    HintClassification,
    HintKey,
    HintRecord,
    Slot,
    SlotIdentity,
    SlotRecord,
    SlotSyncState,
    TrackedResource,
)
from tracker_sync.domain.models.tracker_id import new_tracker_id
from tracker_sync.domain.ports import TrackerTransaction

logger = logging.getLogger(__name__)

# Store columns are signed 32-bit integers.
I32_MAX = 2**31 - 1

# Upstream last-activity values are relative to a snapshot epoch we cannot
# see, so derived timestamps drift between requests by up to a few minutes.
LAST_ACTIVITY_TOLERANCE = timedelta(minutes=1)


def _to_i32(value: int, position: int) -> int:
    if not 0 <= value <= I32_MAX:
        raise NumericConversionError(position)
    return value


def _activity_time(now: datetime, elapsed: timedelta | None) -> datetime | None:
    return now - elapsed if elapsed is not None else None


def _activity_changed(stored: datetime | None, derived: datetime | None) -> bool:
    if stored is None or derived is None:
        return stored is not derived
    return abs(stored - derived) >= LAST_ACTIVITY_TOLERANCE


class TrackerReconciler:
    """Applies freshly parsed tracker records to the store.

    All writes go through the transaction handed to :meth:`reconcile`; any
    error leaves the transaction for the caller to roll back.
    """

    async def reconcile(
        self,
        tx: TrackerTransaction,
        now: datetime,
        upstream_url: str,
        slots: Sequence[SlotRecord],
        hints: Sequence[HintRecord],
    ) -> str:
        """Create or update the tracker for ``upstream_url``.

        Args:
            tx: Open store transaction.
            now: Synchronization time.
            upstream_url: Canonical upstream URL of the tracker.
            slots: Parsed slot records.
            hints: Parsed hint records.

        Returns:
            The opaque tracker ID.

        Raises:
            ReconciliationError: If upstream and stored state are inconsistent.
            StoreError: If a row vanished mid-transaction or the store failed.
        """
        tracker = await tx.get_tracker_by_upstream_url(upstream_url)
        if tracker is None:
            return await self._create_tracker(tx, now, upstream_url, slots, hints)
        return await self._update_tracker(tx, now, tracker, slots, hints)

    async def _create_tracker(
        self,
        tx: TrackerTransaction,
        now: datetime,
        upstream_url: str,
        slots: Sequence[SlotRecord],
        hints: Sequence[HintRecord],
    ) -> str:
        tracker = await tx.create_tracker(
            TrackedResource(
                id=None,
                tracker_id=new_tracker_id(),
                upstream_url=upstream_url,
                last_synchronized_at=now,
            )
        )
        tracker_row_id = self._require_id(tracker)

        # Hints refer to slots by name only.
        name_to_id: dict[str, int] = {}

        for record in slots:
            slot, _ = update_completion_status(
                Slot(
                    id=None,
                    tracker_id=tracker_row_id,
                    identity=SlotIdentity(
                        position=_to_i32(record.position, record.position),
                        game=record.game,
                        checks_total=_to_i32(record.checks.total, record.position),
                    ),
                    state=SlotSyncState(
                        name=record.name,
                        tracker_status=record.status,
                        checks_done=_to_i32(record.checks.completed, record.position),
                        last_activity=_activity_time(now, record.last_activity),
                        completion_status=CompletionStatus.INCOMPLETE,
                    ),
                )
            )
            created = await tx.create_slot(slot)
            name_to_id[created.name] = self._require_id(created)

        # One hint per statement; large trackers exceed parameter limits otherwise.
        for record in hints:
            await tx.create_hint(self._hint_from_record(record, name_to_id))

        logger.info(
            f"Created tracker {tracker.tracker_id} for {upstream_url} "
            f"with {len(slots)} slot(s) and {len(hints)} hint(s)"
        )
        return tracker.tracker_id

    async def _update_tracker(
        self,
        tx: TrackerTransaction,
        now: datetime,
        tracker: TrackedResource,
        slots: Sequence[SlotRecord],
        hints: Sequence[HintRecord],
    ) -> str:
        tracker_row_id = self._require_id(tracker)
        name_to_id = await self._update_slots(tx, now, tracker_row_id, slots)
        await self._update_hints(tx, now, tracker, name_to_id, hints)

        updated = replace(tracker, last_synchronized_at=max(now, tracker.last_synchronized_at))
        stored = await tx.update_tracker(updated, ["last_synchronized_at"])
        if stored is None:
            raise StoreError(f"tracker {tracker.tracker_id} disappeared during synchronization")
        await self._audit(tx, now, tracker, stored)

        return tracker.tracker_id

    async def _update_slots(
        self,
        tx: TrackerTransaction,
        now: datetime,
        tracker_row_id: int,
        slots: Sequence[SlotRecord],
    ) -> dict[str, int]:
        stored_slots = sorted(
            await tx.get_slots_by_tracker(tracker_row_id), key=lambda s: s.position
        )
        if len(stored_slots) != len(slots):
            raise SlotCountMismatchError(tracker=len(slots), database=len(stored_slots))

        name_to_id: dict[str, int] = {}
        updated_count = 0

        for record, stored in zip(sorted(slots, key=lambda s: s.position), stored_slots):
            identity = SlotIdentity(
                position=_to_i32(record.position, record.position),
                game=record.game,
                checks_total=_to_i32(record.checks.total, record.position),
            )
            if identity != stored.identity:
                raise SlotInformationMismatchError(record.position)

            name_to_id[record.name] = self._require_id(stored)

            updated, columns = self._apply_slot_record(stored, record, now)
            if not columns:
                continue

            result = await tx.update_slot(updated, columns)
            if result is None:
                raise StoreError(f"slot {stored.id} disappeared during synchronization")
            await self._audit(tx, now, stored, result)
            updated_count += 1

        logger.debug(f"Updated {updated_count} of {len(stored_slots)} slot(s)")
        return name_to_id

    @staticmethod
    def _apply_slot_record(
        stored: Slot, record: SlotRecord, now: datetime
    ) -> tuple[Slot, list[str]]:
        """Apply the mutable upstream fields of a record, listing changed columns."""
        checks_done = _to_i32(record.checks.completed, record.position)
        state = replace(
            stored.state,
            name=record.name,
            tracker_status=record.status,
            checks_done=checks_done,
        )
        columns = [
            column
            for column in ("name", "tracker_status", "checks_done")
            if getattr(state, column) != getattr(stored.state, column)
        ]

        last_activity = _activity_time(now, record.last_activity)
        if _activity_changed(stored.state.last_activity, last_activity):
            state = replace(state, last_activity=last_activity)
            columns.append("last_activity")

        slot, status_changed = update_completion_status(replace(stored, state=state))
        if status_changed:
            columns.append("completion_status")

        return slot, columns

    async def _update_hints(
        self,
        tx: TrackerTransaction,
        now: datetime,
        tracker: TrackedResource,
        name_to_id: dict[str, int],
        hints: Sequence[HintRecord],
    ) -> None:
        tracker_row_id = self._require_id(tracker)

        # Duplicate keys are legitimate, so match as a multiset: each key maps
        # to a stack of stored hints, reversed so pop() yields the oldest.
        existing: dict[HintKey, list[Hint]] = defaultdict(list)
        for hint in await tx.get_hints_by_tracker(tracker_row_id):
            existing[hint.key()].append(hint)
        for stack in existing.values():
            stack.reverse()

        new_hints: list[Hint] = []
        for record in hints:
            candidate = self._hint_from_record(record, name_to_id)
            stack = existing.get(candidate.key())
            if not stack:
                new_hints.append(candidate)
                continue

            stored = stack.pop()
            if stored.found == record.found:
                continue

            result = await tx.update_hint(replace(stored, found=record.found), ["found"])
            if result is None:
                raise StoreError(f"hint {stored.id} disappeared during synchronization")
            await self._audit(tx, now, stored, result)

        for hint in new_hints:
            await tx.create_hint(hint)

        stale = [hint for stack in existing.values() for hint in stack]
        for hint in stale:
            logger.warning(
                f"Hint {hint.id} ({hint.item!r} at {hint.location!r}) is no longer reported "
                f"by upstream tracker {tracker.tracker_id}, deleting it"
            )
            await tx.delete_hint(self._require_id(hint))

        logger.debug(
            f"Reconciled {len(hints)} hint(s): {len(new_hints)} new, {len(stale)} removed"
        )

    @staticmethod
    def _hint_from_record(record: HintRecord, name_to_id: dict[str, int]) -> Hint:
        finder = name_to_id.get(record.finder)
        if finder is None:
            raise HintSlotMissingError(record.finder)

        # An unknown receiver is an item link shared by several slots.
        receiver = name_to_id.get(record.receiver)

        return Hint(
            id=None,
            finder_slot_id=finder,
            receiver_slot_id=receiver,
            item_link_name="" if receiver is not None else record.receiver,
            item=record.item,
            location=record.location,
            entrance=record.entrance,
            found=record.found,
            classification=HintClassification.UNSET,
        )

    @staticmethod
    async def _audit(
        tx: TrackerTransaction, now: datetime, old: Auditable, new: Auditable
    ) -> None:
        entry = build_audit_entry(old, new, now)
        if entry is not None:
            await tx.create_audit_entries([entry])

    @staticmethod
    def _require_id(entity: TrackedResource | Slot | Hint) -> int:
        if entity.id is None:
            raise StoreError(f"store returned a {entity.entity_name} without an ID")
        return entity.id
