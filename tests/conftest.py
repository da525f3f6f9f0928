"""Shared fixtures for tracker synchronization tests."""

from collections.abc import Callable, Iterator, Sequence
from html import escape

import pytest

from tracker_sync.adapters.sqlite_store import SqliteTrackerStore

SlotRow = tuple[str, str, str, str, str, str]
HintRow = tuple[str, str, str, str, str, bool]

TRACKER_URL = "https://archipelago.gg/tracker/" + "A" * 22


def _row(cells: Sequence[str]) -> str:
    return "<tr>" + "".join(f"<td>{escape(cell)}</td>" for cell in cells) + "</tr>"


def render_tracker_page(slots: Sequence[SlotRow], hints: Sequence[HintRow]) -> str:
    """Render a minimal upstream tracker page.

    The checks table carries an extra ``%`` column that the parser must ignore.
    """
    slot_rows = "\n".join(
        _row([position, name, game, status, checks, "", last_activity])
        for position, name, game, status, checks, last_activity in slots
    )
    hint_rows = "\n".join(
        _row([finder, receiver, item, location, entrance, "✔" if found else ""])
        for finder, receiver, item, location, entrance, found in hints
    )
    return f"""<!DOCTYPE html>
<html>
<body>
<table id="checks-table">
  <thead>
    <tr><th>#</th><th>Name</th><th>Game</th><th>Status</th><th>Checks</th><th>%</th>
    <th>Last Activity</th></tr>
  </thead>
  <tbody>
{slot_rows}
  </tbody>
</table>
<table id="hints-table">
  <thead>
    <tr><th>Finder</th><th>Receiver</th><th>Item</th><th>Location</th><th>Entrance</th>
    <th>Found</th></tr>
  </thead>
  <tbody>
{hint_rows}
  </tbody>
</table>
</body>
</html>
"""


@pytest.fixture
def tracker_page() -> Callable[[Sequence[SlotRow], Sequence[HintRow]], str]:
    """Builder for upstream tracker pages."""
    return render_tracker_page


@pytest.fixture
def store() -> Iterator[SqliteTrackerStore]:
    """In-memory SQLite tracker store."""
    sqlite_store = SqliteTrackerStore(":memory:")
    yield sqlite_store
    sqlite_store.close()


@pytest.fixture
def tracker_url() -> str:
    """A valid upstream tracker URL under the default allow-list."""
    return TRACKER_URL
