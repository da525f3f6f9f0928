"""Tests for the tracker reconciler against an in-memory SQLite store."""

import json
import logging
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta

import pytest

from tracker_sync.adapters.sqlite_store import SqliteTrackerStore
from tracker_sync.application.services.tracker_reconciler import TrackerReconciler
from tracker_sync.domain.errors import (
    HintSlotMissingError,
    NumericConversionError,
    SlotCountMismatchError,
    SlotInformationMismatchError,
)
from tracker_sync.domain.models import (
    AuditEntry,
    Checks,
    CompletionStatus,
    Hint,
    HintClassification,
    HintRecord,
    Slot,
    SlotRecord,
    TrackedResource,
    TrackerGameStatus,
)
from tracker_sync.domain.models.tracker_id import is_valid_tracker_id
from tracker_sync.domain.ports import TrackerTransaction

URL = "https://archipelago.gg/tracker/" + "A" * 22
NOW = datetime(2024, 3, 5, 10, 0, tzinfo=UTC)


def slot_record(
    position: int,
    name: str,
    completed: int = 0,
    total: int = 10,
    status: TrackerGameStatus = TrackerGameStatus.PLAYING,
    last_activity: timedelta | None = timedelta(seconds=30),
    game: str | None = None,
) -> SlotRecord:
    return SlotRecord(
        position=position,
        name=name,
        game=game or f"Game {position}",
        status=status,
        checks=Checks(completed=completed, total=total),
        last_activity=last_activity,
    )


def hint_record(
    finder: str, receiver: str, item: str, location: str = "Chest", found: bool = False
) -> HintRecord:
    return HintRecord(
        finder=finder,
        receiver=receiver,
        item=item,
        location=location,
        entrance="Vanilla",
        found=found,
    )


SLOTS = [
    slot_record(1, "Alice", completed=3),
    slot_record(2, "Bob", completed=10, status=TrackerGameStatus.GOAL_COMPLETED),
]
HINTS = [
    hint_record("Alice", "Bob", "Morph Ball"),
    hint_record("Bob", "Everyone", "Triforce Piece", found=True),
]


@dataclass
class StoredState:
    tracker: TrackedResource
    slots: list[Slot]
    hints: list[Hint]
    audits: list[AuditEntry]


async def reconcile(
    store: SqliteTrackerStore,
    now: datetime,
    slots: list[SlotRecord],
    hints: list[HintRecord],
) -> str:
    async with await store.begin() as tx:
        tracker_id = await TrackerReconciler().reconcile(tx, now, URL, slots, hints)
        await tx.commit()
    return tracker_id


async def load_slots(tx: TrackerTransaction) -> list[Slot]:
    tracker = await tx.get_tracker_by_upstream_url(URL)
    assert tracker is not None and tracker.id is not None
    return await tx.get_slots_by_tracker(tracker.id)


async def load(store: SqliteTrackerStore) -> StoredState:
    async with await store.begin() as tx:
        tracker = await tx.get_tracker_by_upstream_url(URL)
        assert tracker is not None and tracker.id is not None
        return StoredState(
            tracker=tracker,
            slots=await tx.get_slots_by_tracker(tracker.id),
            hints=await tx.get_hints_by_tracker(tracker.id),
            audits=await tx.get_audit_entries(),
        )


class TestNewTracker:
    """Tests for the first synchronization of a tracker."""

    @pytest.mark.asyncio
    async def test_creates_tracker_slots_and_hints(self, store: SqliteTrackerStore) -> None:
        """Given an unseen URL, when reconciling, then everything is created without audits."""
        tracker_id = await reconcile(store, NOW, SLOTS, HINTS)

        state = await load(store)
        assert is_valid_tracker_id(tracker_id)
        assert state.tracker.tracker_id == tracker_id
        assert state.tracker.last_synchronized_at == NOW
        assert [s.name for s in state.slots] == ["Alice", "Bob"]
        assert state.audits == []

    @pytest.mark.asyncio
    async def test_derives_slot_state(self, store: SqliteTrackerStore) -> None:
        """Given parsed slots, when creating, then completion and last activity are derived."""
        await reconcile(store, NOW, SLOTS, HINTS)

        alice, bob = (await load(store)).slots
        assert alice.completion_status is CompletionStatus.INCOMPLETE
        assert bob.completion_status is CompletionStatus.DONE
        assert alice.state.last_activity == NOW - timedelta(seconds=30)
        assert alice.user.notes == ""

    @pytest.mark.asyncio
    async def test_resolves_hint_slots_and_item_links(self, store: SqliteTrackerStore) -> None:
        """Given a hint to an unknown receiver, when creating, then it becomes an item link."""
        await reconcile(store, NOW, SLOTS, HINTS)

        state = await load(store)
        alice, bob = state.slots
        direct, item_link = state.hints
        assert (direct.finder_slot_id, direct.receiver_slot_id) == (alice.id, bob.id)
        assert direct.item_link_name == ""
        assert (item_link.finder_slot_id, item_link.receiver_slot_id) == (bob.id, None)
        assert item_link.item_link_name == "Everyone"
        assert item_link.found is True
        assert {h.classification for h in state.hints} == {HintClassification.UNSET}

    @pytest.mark.asyncio
    async def test_unknown_finder_fails(self, store: SqliteTrackerStore) -> None:
        """Given a hint found by an unknown slot, when creating, then reconciliation fails."""
        with pytest.raises(HintSlotMissingError, match="'Mallory'"):
            await reconcile(store, NOW, SLOTS, [hint_record("Mallory", "Bob", "Bombs")])

    @pytest.mark.asyncio
    async def test_out_of_range_numbers_fail(self, store: SqliteTrackerStore) -> None:
        """Given a check count beyond the store's range, when creating, then conversion fails."""
        slots = [slot_record(1, "Alice", total=2**31)]

        with pytest.raises(NumericConversionError, match="game 1"):
            await reconcile(store, NOW, slots, [])

    @pytest.mark.asyncio
    async def test_failure_leaves_no_rows(self, store: SqliteTrackerStore) -> None:
        """Given a failing first synchronization, when it rolls back, then no tracker exists."""
        with pytest.raises(HintSlotMissingError):
            await reconcile(store, NOW, SLOTS, [hint_record("Mallory", "Bob", "Bombs")])

        async with await store.begin() as tx:
            assert await tx.get_tracker_by_upstream_url(URL) is None


class TestExistingTracker:
    """Tests for synchronizing a tracker that already exists."""

    @pytest.mark.asyncio
    async def test_unchanged_input_is_idempotent(self, store: SqliteTrackerStore) -> None:
        """Given the same page again, when reconciling, then rows are unchanged and unaudited."""
        first_id = await reconcile(store, NOW, SLOTS, HINTS)
        before = await load(store)

        later = NOW + timedelta(seconds=30)
        second_id = await reconcile(store, later, SLOTS, HINTS)

        after = await load(store)
        assert second_id == first_id
        assert after.slots == before.slots
        assert after.hints == before.hints
        assert after.audits == []
        assert after.tracker.last_synchronized_at == later

    @pytest.mark.asyncio
    async def test_progress_is_written_and_audited(self, store: SqliteTrackerStore) -> None:
        """Given more checks done, when reconciling, then the slot is updated with one audit."""
        await reconcile(store, NOW, SLOTS, HINTS)

        progressed = [replace(SLOTS[0], checks=Checks(completed=10, total=10)), SLOTS[1]]
        await reconcile(store, NOW + timedelta(minutes=1), progressed, HINTS)

        state = await load(store)
        alice = state.slots[0]
        assert alice.checks_done == 10
        assert alice.completion_status is CompletionStatus.ALL_CHECKS
        assert len(state.audits) == 1
        audit = state.audits[0]
        assert (audit.entity, audit.entity_id) == ("slot", alice.id)
        assert audit.actor_ip is None and audit.actor_user_id is None
        assert json.loads(audit.diff) == {
            "checks_done": {"old": 3, "new": 10},
            "completion_status": {"old": "incomplete", "new": "all_checks"},
        }

    @pytest.mark.asyncio
    async def test_renamed_slot_keeps_hint_links(self, store: SqliteTrackerStore) -> None:
        """Given a renamed slot, when reconciling, then its hints resolve by the new name."""
        await reconcile(store, NOW, SLOTS, HINTS)

        renamed = [replace(SLOTS[0], name="Alicia"), SLOTS[1]]
        hints = [hint_record("Alicia", "Bob", "Morph Ball"), HINTS[1]]
        await reconcile(store, NOW + timedelta(minutes=1), renamed, hints)

        state = await load(store)
        assert state.slots[0].name == "Alicia"
        assert len(state.hints) == 2
        assert [json.loads(a.diff) for a in state.audits] == [
            {"name": {"old": "Alice", "new": "Alicia"}}
        ]

    @pytest.mark.asyncio
    async def test_last_activity_jitter_is_ignored(self, store: SqliteTrackerStore) -> None:
        """Given a last activity within a minute of the stored one, when reconciling, then it is kept."""
        await reconcile(store, NOW, SLOTS, HINTS)
        stored = (await load(store)).slots[0].state.last_activity

        jittered = [replace(SLOTS[0], last_activity=timedelta(seconds=75)), SLOTS[1]]
        await reconcile(store, NOW + timedelta(seconds=30), jittered, HINTS)

        assert (await load(store)).slots[0].state.last_activity == stored

    @pytest.mark.asyncio
    async def test_last_activity_drift_is_written_without_audit(
        self, store: SqliteTrackerStore
    ) -> None:
        """Given a last activity a minute or more away, when reconciling, then it is replaced."""
        await reconcile(store, NOW, SLOTS, HINTS)

        later = NOW + timedelta(minutes=5)
        await reconcile(store, later, SLOTS, HINTS)

        state = await load(store)
        assert state.slots[0].state.last_activity == later - timedelta(seconds=30)
        assert state.audits == []

    @pytest.mark.asyncio
    async def test_released_status_is_kept(self, store: SqliteTrackerStore) -> None:
        """Given a manually released slot, when it completes its goal, then it stays released."""
        await reconcile(store, NOW, SLOTS, HINTS)
        async with await store.begin() as tx:
            alice = (await load_slots(tx))[0]
            released = replace(
                alice, state=replace(alice.state, completion_status=CompletionStatus.RELEASED)
            )
            await tx.update_slot(released, ["completion_status"])
            await tx.commit()

        goal = [replace(SLOTS[0], status=TrackerGameStatus.GOAL_COMPLETED), SLOTS[1]]
        await reconcile(store, NOW + timedelta(seconds=30), goal, HINTS)

        state = await load(store)
        assert state.slots[0].completion_status is CompletionStatus.RELEASED
        assert [json.loads(a.diff) for a in state.audits] == [
            {"tracker_status": {"old": "playing", "new": "goal_completed"}}
        ]

    @pytest.mark.asyncio
    async def test_user_fields_are_preserved(self, store: SqliteTrackerStore) -> None:
        """Given notes written by a user, when reconciling, then they survive."""
        await reconcile(store, NOW, SLOTS, HINTS)
        async with await store.begin() as tx:
            alice = (await load_slots(tx))[0]
            await tx.update_slot(
                replace(alice, user=replace(alice.user, notes="BK on bombs")), ["notes"]
            )
            await tx.commit()

        progressed = [replace(SLOTS[0], checks=Checks(completed=5, total=10)), SLOTS[1]]
        await reconcile(store, NOW + timedelta(seconds=30), progressed, HINTS)

        alice = (await load(store)).slots[0]
        assert alice.user.notes == "BK on bombs"
        assert alice.checks_done == 5

    @pytest.mark.asyncio
    async def test_slot_count_mismatch_fails(self, store: SqliteTrackerStore) -> None:
        """Given a page with an extra slot, when reconciling, then it fails with both counts."""
        await reconcile(store, NOW, SLOTS, HINTS)

        with pytest.raises(SlotCountMismatchError) as exc_info:
            await reconcile(store, NOW, [*SLOTS, slot_record(3, "Carol")], HINTS)

        assert (exc_info.value.tracker, exc_info.value.database) == (3, 2)

    @pytest.mark.asyncio
    async def test_changed_slot_identity_fails_without_writes(
        self, store: SqliteTrackerStore
    ) -> None:
        """Given a slot whose check total changed, when reconciling, then nothing is modified."""
        await reconcile(store, NOW, SLOTS, HINTS)
        before = await load(store)

        changed = [SLOTS[0], replace(SLOTS[1], checks=Checks(completed=10, total=12))]
        with pytest.raises(SlotInformationMismatchError, match="game 2"):
            await reconcile(store, NOW + timedelta(minutes=5), changed, HINTS)

        assert await load(store) == before

    @pytest.mark.asyncio
    async def test_changed_game_fails(self, store: SqliteTrackerStore) -> None:
        """Given a slot whose game changed, when reconciling, then it fails."""
        await reconcile(store, NOW, SLOTS, HINTS)

        changed = [replace(SLOTS[0], game="Tetris"), SLOTS[1]]
        with pytest.raises(SlotInformationMismatchError, match="game 1"):
            await reconcile(store, NOW, changed, HINTS)


class TestHintMatching:
    """Tests for matching parsed hints against stored hints."""

    @pytest.mark.asyncio
    async def test_found_flag_is_updated_in_place(self, store: SqliteTrackerStore) -> None:
        """Given a hint that was found, when reconciling, then the same row is updated and audited."""
        await reconcile(store, NOW, SLOTS, HINTS)
        before = await load(store)

        found = [replace(HINTS[0], found=True), HINTS[1]]
        await reconcile(store, NOW + timedelta(seconds=30), SLOTS, found)

        after = await load(store)
        assert [h.id for h in after.hints] == [h.id for h in before.hints]
        assert after.hints[0].found is True
        assert len(after.audits) == 1
        assert after.audits[0].entity == "hint"
        assert json.loads(after.audits[0].diff) == {"found": {"old": False, "new": True}}

    @pytest.mark.asyncio
    async def test_new_hints_are_inserted(self, store: SqliteTrackerStore) -> None:
        """Given a newly revealed hint, when reconciling, then it is added after existing ones."""
        await reconcile(store, NOW, SLOTS, HINTS)

        extra = hint_record("Alice", "Bob", "Hookshot")
        await reconcile(store, NOW + timedelta(seconds=30), SLOTS, [extra, *HINTS])

        state = await load(store)
        assert [h.item for h in state.hints] == ["Morph Ball", "Triforce Piece", "Hookshot"]
        assert state.audits == []

    @pytest.mark.asyncio
    async def test_vanished_duplicate_keeps_oldest(self, store: SqliteTrackerStore) -> None:
        """Given duplicate stored hints, when one disappears, then the oldest is kept."""
        duplicate = hint_record("Alice", "Bob", "Bombs")
        await reconcile(store, NOW, SLOTS, [duplicate, duplicate, *HINTS])
        before = await load(store)
        first_bombs, second_bombs = before.hints[0], before.hints[1]

        await reconcile(
            store, NOW + timedelta(seconds=30), SLOTS, [replace(duplicate, found=True), *HINTS]
        )

        after = await load(store)
        assert [h.id for h in after.hints] == [first_bombs.id, *(h.id for h in before.hints[2:])]
        assert after.hints[0].found is True
        assert second_bombs.id not in {h.id for h in after.hints}

    @pytest.mark.asyncio
    async def test_duplicate_hints_match_as_multiset(self, store: SqliteTrackerStore) -> None:
        """Given two identical unfound hints, when one is found, then exactly one row is updated."""
        duplicate = hint_record("Alice", "Bob", "Bombs")
        await reconcile(store, NOW, SLOTS, [duplicate, duplicate])
        before = await load(store)

        await reconcile(
            store, NOW + timedelta(seconds=30), SLOTS, [replace(duplicate, found=True), duplicate]
        )

        after = await load(store)
        assert [h.id for h in after.hints] == [h.id for h in before.hints]
        assert [h.found for h in after.hints] == [True, False]
        hint_audits = [a for a in after.audits if a.entity == "hint"]
        assert len(hint_audits) == 1
        assert hint_audits[0].entity_id == before.hints[0].id

    @pytest.mark.asyncio
    async def test_duplicate_count_is_preserved(self, store: SqliteTrackerStore) -> None:
        """Given the same duplicates again, when reconciling, then no rows are added or removed."""
        duplicate = hint_record("Alice", "Bob", "Bombs")
        hints = [duplicate, duplicate, duplicate]
        await reconcile(store, NOW, SLOTS, hints)
        before = await load(store)

        await reconcile(store, NOW + timedelta(seconds=30), SLOTS, hints)

        assert (await load(store)).hints == before.hints

    @pytest.mark.asyncio
    async def test_vanished_hints_are_deleted_with_warning(
        self, store: SqliteTrackerStore, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Given a hint no longer on the page, when reconciling, then it is deleted and logged."""
        await reconcile(store, NOW, SLOTS, HINTS)

        with caplog.at_level(logging.WARNING):
            await reconcile(store, NOW + timedelta(seconds=30), SLOTS, HINTS[1:])

        state = await load(store)
        assert [h.item for h in state.hints] == ["Triforce Piece"]
        assert "no longer reported" in caplog.text
        assert "Morph Ball" in caplog.text

    @pytest.mark.asyncio
    async def test_classification_is_not_overwritten(self, store: SqliteTrackerStore) -> None:
        """Given a classified hint, when it is found, then the classification survives."""
        await reconcile(store, NOW, SLOTS, HINTS)
        async with await store.begin() as tx:
            tracker = await tx.get_tracker_by_upstream_url(URL)
            assert tracker is not None and tracker.id is not None
            hint = (await tx.get_hints_by_tracker(tracker.id))[0]
            await tx.update_hint(
                replace(hint, classification=HintClassification.CRITICAL), ["classification"]
            )
            await tx.commit()

        found = [replace(HINTS[0], found=True), HINTS[1]]
        await reconcile(store, NOW + timedelta(seconds=30), SLOTS, found)

        hint = (await load(store)).hints[0]
        assert hint.found is True
        assert hint.classification is HintClassification.CRITICAL

