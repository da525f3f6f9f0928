"""Tracker store backed by SQLite.

SQLite allows a single writer, so transactions are serialized with an
``asyncio.Lock``: :meth:`SqliteTrackerStore.begin` waits for the previous
transaction to commit or roll back. Statements run on the event loop thread;
they are local and short.

Enums are stored as their string values, datetimes as ISO 8601 text and
booleans as integers.
"""

import asyncio
import logging
import sqlite3
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import TracebackType
from typing import Any

from tracker_sync.adapters.sqlite_store.schema import create_schema
from tracker_sync.domain.errors import StoreError
from tracker_sync.domain.models import (
    AuditEntry,
    AvailabilityStatus,
    CompletionStatus,
    Hint,
    HintClassification,
    PingPreference,
    ProgressionStatus,
    Slot,
    SlotIdentity,
    SlotSyncState,
    SlotUserFields,
    TrackedResource,
    TrackerGameStatus,
)

logger = logging.getLogger(__name__)

MEMORY_DATABASE = ":memory:"


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Row factory that returns rows as dictionaries keyed by column name."""
    names = [column[0] for column in cursor.description]
    return dict(zip(names, row))


def configure_connection(conn: sqlite3.Connection) -> None:
    """Apply connection settings: WAL journal, foreign keys and dict rows."""
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    conn.row_factory = dict_factory


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except sqlite3.Error as e:
        raise StoreError(f"failed to {action}: {e}") from e


def _to_sql(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def _datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value is not None else None


def _tracker_from_row(row: dict[str, Any]) -> TrackedResource:
    ping_policy = row["global_ping_policy"]
    return TrackedResource(
        id=row["id"],
        tracker_id=row["tracker_id"],
        upstream_url=row["upstream_url"],
        last_synchronized_at=datetime.fromisoformat(row["last_synchronized_at"]),
        title=row["title"],
        description=row["description"],
        owner_user_id=row["owner_user_id"],
        lock_settings=bool(row["lock_settings"]),
        global_ping_policy=PingPreference(ping_policy) if ping_policy is not None else None,
        room_link=row["room_link"],
        last_port=row["last_port"],
        next_port_check_at=_datetime(row["next_port_check_at"]),
        inactivity_threshold_yellow_hours=row["inactivity_threshold_yellow_hours"],
        inactivity_threshold_red_hours=row["inactivity_threshold_red_hours"],
        require_authentication_to_claim=bool(row["require_authentication_to_claim"]),
    )


def _slot_from_row(row: dict[str, Any]) -> Slot:
    return Slot(
        id=row["id"],
        tracker_id=row["tracker_id"],
        identity=SlotIdentity(
            position=row["position"],
            game=row["game"],
            checks_total=row["checks_total"],
        ),
        state=SlotSyncState(
            name=row["name"],
            tracker_status=TrackerGameStatus(row["tracker_status"]),
            checks_done=row["checks_done"],
            last_activity=_datetime(row["last_activity"]),
            completion_status=CompletionStatus(row["completion_status"]),
        ),
        user=SlotUserFields(
            claimed_by_user_id=row["claimed_by_user_id"],
            discord_username=row["discord_username"],
            discord_ping=PingPreference(row["discord_ping"]),
            availability_status=AvailabilityStatus(row["availability_status"]),
            progression_status=ProgressionStatus(row["progression_status"]),
            last_checked=_datetime(row["last_checked"]),
            notes=row["notes"],
            user_is_away=bool(row["user_is_away"]),
        ),
    )


def _hint_from_row(row: dict[str, Any]) -> Hint:
    return Hint(
        id=row["id"],
        finder_slot_id=row["finder_slot_id"],
        receiver_slot_id=row["receiver_slot_id"],
        item_link_name=row["item_link_name"],
        item=row["item"],
        location=row["location"],
        entrance=row["entrance"],
        found=bool(row["found"]),
        classification=HintClassification(row["classification"]),
    )


def _audit_entry_from_row(row: dict[str, Any]) -> AuditEntry:
    return AuditEntry(
        id=row["id"],
        entity=row["entity"],
        entity_id=row["entity_id"],
        changed_at=datetime.fromisoformat(row["changed_at"]),
        diff=row["diff"],
        actor_ip=row["actor_ip"],
        actor_user_id=row["actor_user_id"],
    )


class SqliteTrackerTransaction:
    """A single SQLite transaction holding the store's write lock."""

    def __init__(self, conn: sqlite3.Connection, lock: asyncio.Lock) -> None:
        """Initialize with a connection already inside ``BEGIN``.

        Args:
            conn: The store connection.
            lock: The store lock, held by the caller; released when the transaction ends.
        """
        self._conn = conn
        self._lock = lock
        self._finished = False

    async def __aenter__(self) -> "SqliteTrackerTransaction":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if not self._finished:
            await self.rollback()

    async def commit(self) -> None:
        """Commit the transaction and release the store."""
        self._finish("COMMIT")

    async def rollback(self) -> None:
        """Roll back the transaction and release the store."""
        self._finish("ROLLBACK")

    def _finish(self, statement: str) -> None:
        if self._finished:
            raise StoreError("transaction is already finished")
        self._finished = True
        try:
            with _store_errors(f"{statement.lower()} transaction"):
                try:
                    self._conn.execute(statement)
                finally:
                    if self._conn.in_transaction:
                        self._conn.execute("ROLLBACK")
        finally:
            self._lock.release()

    def _execute(self, action: str, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        if self._finished:
            raise StoreError(f"failed to {action}: transaction is already finished")
        with _store_errors(action):
            return self._conn.execute(sql, tuple(params))

    def _insert(self, table: str, values: dict[str, Any]) -> int:
        names = list(values)
        cursor = self._execute(
            f"insert into {table}",
            f"INSERT INTO {table} ({', '.join(names)}) "
            f"VALUES ({', '.join('?' for _ in names)})",
            [_to_sql(values[name]) for name in names],
        )
        if cursor.lastrowid is None:
            raise StoreError(f"insert into {table} returned no row ID")
        return cursor.lastrowid

    def _update(
        self, table: str, row_id: int | None, values: dict[str, Any], columns: Sequence[str]
    ) -> dict[str, Any] | None:
        unknown = set(columns) - set(values)
        if unknown:
            raise ValueError(f"unknown {table} column(s): {', '.join(sorted(unknown))}")
        if row_id is None:
            raise ValueError(f"cannot update a {table} row without an ID")
        if not columns:
            return self._select_one(table, row_id)

        cursor = self._execute(
            f"update {table}",
            f"UPDATE {table} SET {', '.join(f'{name} = ?' for name in columns)} WHERE id = ?",
            [*(_to_sql(values[name]) for name in columns), row_id],
        )
        if cursor.rowcount == 0:
            return None
        return self._require_row(table, row_id)

    def _select_one(self, table: str, row_id: int) -> dict[str, Any] | None:
        row: dict[str, Any] | None = self._execute(
            f"read {table}", f"SELECT * FROM {table} WHERE id = ?", [row_id]
        ).fetchone()
        return row

    def _require_row(self, table: str, row_id: int) -> dict[str, Any]:
        row = self._select_one(table, row_id)
        if row is None:
            raise StoreError(f"{table} row {row_id} vanished after being written")
        return row

    async def get_tracker_by_upstream_url(self, upstream_url: str) -> TrackedResource | None:
        """Get a tracker by its upstream URL."""
        row = self._execute(
            "read trackers", "SELECT * FROM trackers WHERE upstream_url = ?", [upstream_url]
        ).fetchone()
        return _tracker_from_row(row) if row is not None else None

    async def get_tracker_by_tracker_id(self, tracker_id: str) -> TrackedResource | None:
        """Get a tracker by its opaque ID."""
        row = self._execute(
            "read trackers", "SELECT * FROM trackers WHERE tracker_id = ?", [tracker_id]
        ).fetchone()
        return _tracker_from_row(row) if row is not None else None

    async def create_tracker(self, tracker: TrackedResource) -> TrackedResource:
        """Create a tracker; the ``id`` of the argument is ignored."""
        row_id = self._insert("trackers", tracker.columns())
        return _tracker_from_row(self._require_row("trackers", row_id))

    async def update_tracker(
        self, tracker: TrackedResource, columns: Sequence[str]
    ) -> TrackedResource | None:
        """Update the given columns of an existing tracker."""
        row = self._update("trackers", tracker.id, tracker.columns(), columns)
        return _tracker_from_row(row) if row is not None else None

    async def get_slots_by_tracker(self, tracker_id: int) -> list[Slot]:
        """Get all slots of a tracker by the tracker's row ID, in position order."""
        rows = self._execute(
            "read slots",
            "SELECT * FROM slots WHERE tracker_id = ? ORDER BY position",
            [tracker_id],
        ).fetchall()
        return [_slot_from_row(row) for row in rows]

    async def create_slot(self, slot: Slot) -> Slot:
        """Create a slot; the ``id`` of the argument is ignored."""
        row_id = self._insert("slots", slot.columns())
        return _slot_from_row(self._require_row("slots", row_id))

    async def update_slot(self, slot: Slot, columns: Sequence[str]) -> Slot | None:
        """Update the given columns of an existing slot."""
        row = self._update("slots", slot.id, slot.columns(), columns)
        return _slot_from_row(row) if row is not None else None

    async def get_hints_by_tracker(self, tracker_id: int) -> list[Hint]:
        """Get all hints of a tracker by the tracker's row ID, in ID order."""
        rows = self._execute(
            "read hints",
            "SELECT hints.* FROM hints "
            "JOIN slots ON slots.id = hints.finder_slot_id "
            "WHERE slots.tracker_id = ? ORDER BY hints.id",
            [tracker_id],
        ).fetchall()
        return [_hint_from_row(row) for row in rows]

    async def create_hint(self, hint: Hint) -> Hint:
        """Create a hint; the ``id`` of the argument is ignored."""
        row_id = self._insert("hints", hint.columns())
        return _hint_from_row(self._require_row("hints", row_id))

    async def update_hint(self, hint: Hint, columns: Sequence[str]) -> Hint | None:
        """Update the given columns of an existing hint."""
        row = self._update("hints", hint.id, hint.columns(), columns)
        return _hint_from_row(row) if row is not None else None

    async def delete_hint(self, hint_id: int) -> bool:
        """Delete a hint, returning whether it existed."""
        cursor = self._execute("delete hint", "DELETE FROM hints WHERE id = ?", [hint_id])
        return cursor.rowcount > 0

    async def create_audit_entries(self, entries: Sequence[AuditEntry]) -> None:
        """Append audit entries."""
        for entry in entries:
            self._insert(
                "audit_entries",
                {
                    "entity": entry.entity,
                    "entity_id": entry.entity_id,
                    "changed_at": entry.changed_at,
                    "actor_ip": entry.actor_ip,
                    "actor_user_id": entry.actor_user_id,
                    "diff": entry.diff,
                },
            )

    async def get_audit_entries(
        self, entity: str | None = None, entity_id: int | None = None
    ) -> list[AuditEntry]:
        """Get audit entries, optionally filtered by entity, in insertion order."""
        conditions: list[str] = []
        params: list[Any] = []
        if entity is not None:
            conditions.append("entity = ?")
            params.append(entity)
        if entity_id is not None:
            conditions.append("entity_id = ?")
            params.append(entity_id)

        where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self._execute(
            "read audit entries", f"SELECT * FROM audit_entries{where} ORDER BY id", params
        ).fetchall()
        return [_audit_entry_from_row(row) for row in rows]


class SqliteTrackerStore:
    """Tracker store persisted in a SQLite database file."""

    def __init__(self, path: str | Path) -> None:
        """Initialize the store; the database is opened on first use.

        Args:
            path: Database file path, or ``":memory:"`` for a private in-memory database.
        """
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None
        self._lock = asyncio.Lock()

    def _connect(self) -> sqlite3.Connection:
        if self._conn is not None:
            return self._conn

        if self._path != MEMORY_DATABASE:
            Path(self._path).parent.mkdir(parents=True, exist_ok=True)

        with _store_errors(f"open database {self._path}"):
            # Autocommit mode; transactions are started explicitly.
            conn = sqlite3.connect(self._path, isolation_level=None)
            configure_connection(conn)
            create_schema(conn)

        logger.info(f"Opened tracker database {self._path}")
        self._conn = conn
        return conn

    async def begin(self) -> SqliteTrackerTransaction:
        """Begin a new transaction, waiting for any running one to finish.

        Raises:
            StoreError: If the database cannot be opened or the transaction cannot start.
        """
        await self._lock.acquire()
        try:
            conn = self._connect()
            with _store_errors("begin transaction"):
                conn.execute("BEGIN IMMEDIATE")
        except BaseException:
            self._lock.release()
            raise
        return SqliteTrackerTransaction(conn, self._lock)

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
