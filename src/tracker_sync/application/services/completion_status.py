"""Completion status derivation and merging."""

from dataclasses import replace

from tracker_sync.domain.models import CompletionStatus, Slot, TrackerGameStatus


def merge_completion_status(
    auto: CompletionStatus, current: CompletionStatus
) -> CompletionStatus:
    """Combine an automatically derived status with the stored one.

    Precedence, applied in order:

    1. ``RELEASED`` on either side wins. It is a manual decision that
       automation must never overwrite.
    2. ``INCOMPLETE`` on one side yields the other side, so neither an
       incomplete signal nor an unset manual value regresses the other.
    3. ``DONE`` on either side wins.
    4. ``ALL_CHECKS`` with ``GOAL`` yields ``DONE``.
    5. Otherwise both sides are equal.
    """
    if CompletionStatus.RELEASED in (auto, current):
        return CompletionStatus.RELEASED
    if auto is CompletionStatus.INCOMPLETE:
        return current
    if current is CompletionStatus.INCOMPLETE:
        return auto
    if CompletionStatus.DONE in (auto, current):
        return CompletionStatus.DONE
    if auto is not current:
        return CompletionStatus.DONE
    return auto


def auto_completion_status(
    checks_done: int, checks_total: int, tracker_status: TrackerGameStatus
) -> CompletionStatus:
    """Derive a completion status from upstream data alone."""
    all_checks = checks_done >= checks_total
    goal = tracker_status is TrackerGameStatus.GOAL_COMPLETED

    if all_checks and goal:
        return CompletionStatus.DONE
    if all_checks:
        return CompletionStatus.ALL_CHECKS
    if goal:
        return CompletionStatus.GOAL
    return CompletionStatus.INCOMPLETE


def update_completion_status(slot: Slot) -> tuple[Slot, bool]:
    """Recompute a slot's completion status.

    Returns:
        The slot with the merged status, and whether the status changed.
    """
    auto = auto_completion_status(
        slot.state.checks_done, slot.identity.checks_total, slot.state.tracker_status
    )
    merged = merge_completion_status(auto, slot.state.completion_status)
    if merged is slot.state.completion_status:
        return slot, False
    return replace(slot, state=replace(slot.state, completion_status=merged)), True
