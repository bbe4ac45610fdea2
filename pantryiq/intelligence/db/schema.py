"""Database schema definitions and migration helpers."""

from __future__ import annotations

import sqlite3
from pathlib import Path

_SCHEMA_VERSION = 1

_DDL = """
CREATE TABLE IF NOT EXISTS system_ingredient_equivalencies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    subject_name TEXT NOT NULL,
    equivalent_name TEXT NOT NULL,
    confidence REAL NOT NULL DEFAULT 1.0,
    substitution_ratio TEXT NOT NULL DEFAULT '1:1',
    bidirectional INTEGER NOT NULL DEFAULT 0,
    active INTEGER NOT NULL DEFAULT 1,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    UNIQUE (subject_name, equivalent_name),
    CHECK (subject_name <> equivalent_name)
);

CREATE INDEX IF NOT EXISTS idx_system_eq_equivalent
    ON system_ingredient_equivalencies(equivalent_name);

CREATE TABLE IF NOT EXISTS household_ingredient_equivalencies (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    household_id TEXT NOT NULL,
    subject_name TEXT NOT NULL,
    equivalent_name TEXT NOT NULL,
    confidence REAL NOT NULL DEFAULT 1.0,
    substitution_ratio TEXT NOT NULL DEFAULT '1:1',
    bidirectional INTEGER NOT NULL DEFAULT 0,
    active INTEGER NOT NULL DEFAULT 1,
    notes TEXT,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    UNIQUE (household_id, subject_name, equivalent_name),
    CHECK (subject_name <> equivalent_name)
);

CREATE INDEX IF NOT EXISTS idx_household_eq_lookup
    ON household_ingredient_equivalencies(household_id, subject_name);

CREATE TABLE IF NOT EXISTS products (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT '',
    brand TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS inventory_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    household_id TEXT NOT NULL,
    product_id TEXT REFERENCES products(id),
    quantity REAL NOT NULL DEFAULT 1.0,
    unit TEXT NOT NULL DEFAULT 'pieces',
    purchase_date TEXT,
    expiration_date TEXT,
    is_consumed INTEGER NOT NULL DEFAULT 0,
    created_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now', 'localtime'))
);

CREATE INDEX IF NOT EXISTS idx_inventory_household
    ON inventory_items(household_id, is_consumed);
CREATE INDEX IF NOT EXISTS idx_inventory_expiration
    ON inventory_items(expiration_date);

CREATE TABLE IF NOT EXISTS inventory_audit_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    household_id TEXT NOT NULL,
    inventory_item_id INTEGER REFERENCES inventory_items(id),
    product_id TEXT,
    action_type TEXT NOT NULL,
    quantity_delta REAL NOT NULL,
    unit TEXT,
    action_date TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_audit_household_date
    ON inventory_audit_log(household_id, action_date);

CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER NOT NULL
);
"""


def ensure_schema(db_path: str | Path) -> sqlite3.Connection:
    """Open (or create) the database and ensure the schema is up to date.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        An open sqlite3.Connection with the schema applied.
    """
    db_path = Path(db_path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    # Owners share one connection across threads and serialize access to it
    conn = sqlite3.connect(str(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    try:
        row = conn.execute("SELECT version FROM schema_version").fetchone()
        current_version = row["version"] if row else 0
    except sqlite3.OperationalError:
        current_version = 0

    if current_version < _SCHEMA_VERSION:
        conn.executescript(_DDL)
        conn.execute("DELETE FROM schema_version")
        conn.execute(
            "INSERT INTO schema_version (version) VALUES (?)",
            (_SCHEMA_VERSION,),
        )
        conn.commit()

    return conn
