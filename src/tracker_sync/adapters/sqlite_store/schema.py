"""SQLite schema for the tracker store.

Tables:
- trackers: one row per mirrored upstream tracker
- slots: one row per game within a tracker, unique by position
- hints: item/location links between slots; duplicates are allowed
- audit_entries: append-only change log
- schema_info: version tracking
"""

import sqlite3

SCHEMA_VERSION = 1

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS schema_info (
    version INTEGER PRIMARY KEY,
    applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS trackers (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tracker_id TEXT NOT NULL UNIQUE,
    upstream_url TEXT NOT NULL UNIQUE,
    last_synchronized_at TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    owner_user_id INTEGER,
    lock_settings INTEGER NOT NULL DEFAULT 0,
    global_ping_policy TEXT,
    room_link TEXT NOT NULL DEFAULT '',
    last_port INTEGER,
    next_port_check_at TEXT,
    inactivity_threshold_yellow_hours INTEGER NOT NULL DEFAULT 24,
    inactivity_threshold_red_hours INTEGER NOT NULL DEFAULT 48,
    require_authentication_to_claim INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS slots (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tracker_id INTEGER NOT NULL REFERENCES trackers(id),

    -- Fixed for the lifetime of the slot
    position INTEGER NOT NULL,
    game TEXT NOT NULL,
    checks_total INTEGER NOT NULL,

    -- Written by synchronization
    name TEXT NOT NULL,
    tracker_status TEXT NOT NULL,
    checks_done INTEGER NOT NULL,
    last_activity TEXT,
    completion_status TEXT NOT NULL DEFAULT 'incomplete',

    -- Written by users
    claimed_by_user_id INTEGER,
    discord_username TEXT,
    discord_ping TEXT NOT NULL DEFAULT 'never',
    availability_status TEXT NOT NULL DEFAULT 'unknown',
    progression_status TEXT NOT NULL DEFAULT 'unknown',
    last_checked TEXT,
    notes TEXT NOT NULL DEFAULT '',
    user_is_away INTEGER NOT NULL DEFAULT 0,

    UNIQUE(tracker_id, position)
);

CREATE TABLE IF NOT EXISTS hints (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    finder_slot_id INTEGER NOT NULL REFERENCES slots(id),
    receiver_slot_id INTEGER REFERENCES slots(id),
    item_link_name TEXT NOT NULL DEFAULT '',
    item TEXT NOT NULL,
    location TEXT NOT NULL,
    entrance TEXT NOT NULL,
    found INTEGER NOT NULL,
    classification TEXT NOT NULL DEFAULT 'unset'
);

CREATE TABLE IF NOT EXISTS audit_entries (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    entity TEXT NOT NULL CHECK(entity IN ('tracker', 'slot', 'hint')),
    entity_id INTEGER NOT NULL,
    changed_at TEXT NOT NULL,
    actor_ip TEXT,
    actor_user_id INTEGER,
    diff TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_slots_tracker ON slots(tracker_id);
CREATE INDEX IF NOT EXISTS idx_hints_finder ON hints(finder_slot_id);
CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_entries(entity, entity_id);
"""


def get_schema_version(conn: sqlite3.Connection) -> int:
    """Get the applied schema version, or 0 for an empty database.

    Expects a connection configured with the dict row factory.
    """
    table = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = 'schema_info'"
    ).fetchone()
    if table is None:
        return 0
    row = conn.execute("SELECT MAX(version) AS version FROM schema_info").fetchone()
    return row["version"] or 0


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables and indexes if they do not exist yet.

    Args:
        conn: SQLite connection, not inside a transaction.
    """
    if get_schema_version(conn) >= SCHEMA_VERSION:
        return
    conn.executescript(SCHEMA_DDL)
    conn.execute("INSERT OR IGNORE INTO schema_info (version) VALUES (?)", (SCHEMA_VERSION,))
