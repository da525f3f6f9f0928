"""Tests for audit diffs."""

import json
from dataclasses import replace
from datetime import UTC, datetime

import pytest

from tracker_sync.application.services.audit_diff import build_audit_entry, build_fieldwise_diff
from tracker_sync.domain.models import (
    CompletionStatus,
    Hint,
    Slot,
    SlotIdentity,
    SlotSyncState,
    TrackedResource,
    TrackerGameStatus,
)

NOW = datetime(2024, 3, 5, 10, 0, tzinfo=UTC)


@pytest.fixture
def slot() -> Slot:
    return Slot(
        id=3,
        tracker_id=1,
        identity=SlotIdentity(position=1, game="Factorio", checks_total=10),
        state=SlotSyncState(
            name="Alice",
            tracker_status=TrackerGameStatus.PLAYING,
            checks_done=3,
            last_activity=NOW,
        ),
    )


def test_diff_of_identical_entities_is_empty(slot: Slot) -> None:
    """Given two equal slots, when diffing, then the diff is empty."""
    assert build_fieldwise_diff(slot, slot) == {}


def test_diff_lists_changed_fields_only(slot: Slot) -> None:
    """Given a slot with two changed fields, when diffing, then only those are listed."""
    new = replace(
        slot,
        state=replace(
            slot.state, checks_done=10, completion_status=CompletionStatus.ALL_CHECKS
        ),
    )

    diff = build_fieldwise_diff(slot, new)

    assert diff == {
        "checks_done": {"old": 3, "new": 10},
        "completion_status": {"old": CompletionStatus.INCOMPLETE, "new": CompletionStatus.ALL_CHECKS},
    }


def test_last_activity_is_not_audited(slot: Slot) -> None:
    """Given only a changed last activity, when building an audit entry, then none is built."""
    new = replace(slot, state=replace(slot.state, last_activity=None))

    assert build_audit_entry(slot, new, NOW) is None


def test_last_synchronized_at_is_not_audited() -> None:
    """Given a tracker whose synchronization time moved, when auditing, then nothing is recorded."""
    tracker = TrackedResource(
        id=1, tracker_id="A" * 22, upstream_url="https://example.com/t/x", last_synchronized_at=NOW
    )
    new = replace(tracker, last_synchronized_at=NOW.replace(hour=11), last_port=38281)

    assert build_audit_entry(tracker, new, NOW) is None


def test_audit_entry_serializes_diff_as_json() -> None:
    """Given a hint whose found flag changed, when auditing, then the diff is JSON text."""
    hint = Hint(
        id=9,
        finder_slot_id=1,
        receiver_slot_id=None,
        item_link_name="Everyone",
        item="Sword",
        location="Chest",
        entrance="Vanilla",
        found=False,
    )

    entry = build_audit_entry(hint, replace(hint, found=True), NOW)

    assert entry is not None
    assert entry.entity == "hint"
    assert entry.entity_id == 9
    assert entry.changed_at == NOW
    assert entry.actor_ip is None
    assert entry.actor_user_id is None
    assert json.loads(entry.diff) == {"found": {"old": False, "new": True}}


def test_audit_entry_serializes_datetimes(slot: Slot) -> None:
    """Given a changed datetime field, when auditing, then it is written in ISO format."""
    checked = datetime(2024, 3, 6, tzinfo=UTC)
    new = replace(slot, user=replace(slot.user, last_checked=checked))

    entry = build_audit_entry(slot, new, NOW)

    assert entry is not None
    assert json.loads(entry.diff) == {
        "last_checked": {"old": None, "new": "2024-03-06T00:00:00+00:00"}
    }


def test_audit_requires_stored_entity(slot: Slot) -> None:
    """Given an entity without an ID, when auditing, then a ValueError is raised."""
    with pytest.raises(ValueError, match="has not been stored"):
        build_audit_entry(slot, replace(slot, id=None), NOW)
