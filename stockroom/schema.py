"""
Centralized SQLite Schema Initialization.

Defines the canonical schema for the Stockroom local database and provides
a single entry-point -- :func:`initialize_schema` -- that creates all
required tables idempotently.  A ``schema_version`` table records the
applied version.

The local tables mirror the Supabase configuration tables column for
column (apart from the local-only ``categories.name_key``), so rows
fetched from Supabase can be cached verbatim:

- ``settings``      single row of application settings
- ``alert_rules``   the fixed alert-rule set, seeded with defaults
- ``categories``    product categories; ``name_key`` holds the Python
                    ``casefold()`` of the name and carries the unique
                    index, since SQLite's NOCASE folds ASCII only
- ``pin_settings``  single row holding the administrative PIN
- ``audit_log``     persistent structured audit trail

Decimal-valued columns are stored as TEXT so values round-trip exactly.

Usage::

    from stockroom.logger import StructuredLogger
    from stockroom.schema import initialize_schema

    initialize_schema(db.sqlite, StructuredLogger(name="schema"))
"""

from __future__ import annotations

import sqlite3
from typing import Callable

from stockroom.logger import StructuredLogger
from stockroom.models.alert_rule import DEFAULT_ALERT_RULES

__all__ = ["CURRENT_SCHEMA_VERSION", "initialize_schema"]

CURRENT_SCHEMA_VERSION: int = 2

_TABLE_DEFINITIONS: list[str] = [
    # -- persistent structured audit trail ------------------------------------
    """
    CREATE TABLE IF NOT EXISTS audit_log (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        timestamp TEXT NOT NULL,
        action TEXT NOT NULL,
        entity_type TEXT NOT NULL,
        entity_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        details TEXT DEFAULT '{}',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- application settings (single row) ------------------------------------
    """
    CREATE TABLE IF NOT EXISTS settings (
        id TEXT PRIMARY KEY,
        company_name TEXT NOT NULL DEFAULT '',
        company_address TEXT NOT NULL DEFAULT '',
        company_phone TEXT NOT NULL DEFAULT '',
        company_email TEXT NOT NULL DEFAULT '',
        currency TEXT NOT NULL DEFAULT 'USD'
                 CHECK (currency IN ('USD', 'IQD')),
        usd_to_iqd_rate TEXT NOT NULL DEFAULT '1320',
        tax_rate TEXT NOT NULL DEFAULT '0',
        low_stock_threshold INTEGER NOT NULL DEFAULT 10
                 CHECK (low_stock_threshold >= 0),
        date_format TEXT NOT NULL DEFAULT 'MM/dd/yyyy',
        theme TEXT NOT NULL DEFAULT 'light',
        language TEXT NOT NULL DEFAULT 'en',
        auto_backup INTEGER NOT NULL DEFAULT 0,
        backup_frequency TEXT NOT NULL DEFAULT 'daily',
        email_notifications INTEGER NOT NULL DEFAULT 1,
        sms_notifications INTEGER NOT NULL DEFAULT 0,
        last_seller TEXT,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- fixed alert-rule set --------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS alert_rules (
        id TEXT PRIMARY KEY,
        type TEXT NOT NULL
             CHECK (type IN ('low_stock', 'out_of_stock', 'high_value_sale')),
        enabled INTEGER NOT NULL DEFAULT 1,
        message TEXT NOT NULL DEFAULT '',
        threshold TEXT
    )
    """,
    # -- product categories ----------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS categories (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL COLLATE NOCASE,
        name_key TEXT NOT NULL UNIQUE,
        description TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # -- administrative PIN (single row) ---------------------------------------
    """
    CREATE TABLE IF NOT EXISTS pin_settings (
        id TEXT PRIMARY KEY,
        pin TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
]


def _ensure_version_table(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_version (
            id INTEGER PRIMARY KEY CHECK (id = 1),
            version INTEGER NOT NULL,
            applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    conn.commit()


def _get_schema_version(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return int(row[0]) if row else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        """
        INSERT INTO schema_version (id, version, applied_at)
        VALUES (1, ?, CURRENT_TIMESTAMP)
        ON CONFLICT(id) DO UPDATE SET
            version    = excluded.version,
            applied_at = CURRENT_TIMESTAMP
        """,
        (version,),
    )


def _create_all_tables(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Execute every DDL statement.  Does **not** commit."""
    for ddl in _TABLE_DEFINITIONS:
        conn.execute(ddl)
    logger.info(f"Created {len(_TABLE_DEFINITIONS)} tables.")


def _seed_alert_rules(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Insert the default alert rules unless rows already exist.  Does **not** commit."""
    for rule in DEFAULT_ALERT_RULES:
        conn.execute(
            """
            INSERT OR IGNORE INTO alert_rules (id, type, enabled, message, threshold)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                rule.id,
                str(rule.type),
                int(rule.enabled),
                rule.message,
                str(rule.threshold) if rule.threshold is not None else None,
            ),
        )
    logger.info(f"Seeded {len(DEFAULT_ALERT_RULES)} default alert rules.")


_ALLOWED_TABLES: frozenset[str] = frozenset({
    "audit_log",
    "settings",
    "alert_rules",
    "categories",
    "pin_settings",
})
"""Tables that may be named in the dynamic PRAGMA query of :func:`_column_exists`."""


def _column_exists(conn: sqlite3.Connection, table: str, column: str) -> bool:
    """Check whether *column* already exists in *table*.

    Raises:
        ValueError: If *table* is not in :data:`_ALLOWED_TABLES`.
    """
    if table not in _ALLOWED_TABLES:
        raise ValueError(f"Invalid table name: {table!r}.")
    cursor = conn.execute(f"PRAGMA table_info({table})")
    return any(row[1] == column for row in cursor.fetchall())


def _migrate_v1_to_v2(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Add ``categories.name_key`` and its unique index.

    Existing rows get their key from ``str.casefold()``.  Two names that
    already collide under Unicode folding make the index creation fail,
    and the upgrade rolls back.
    """
    if not _column_exists(conn, "categories", "name_key"):
        conn.execute("ALTER TABLE categories ADD COLUMN name_key TEXT")
        rows = conn.execute("SELECT id, name FROM categories").fetchall()
        conn.executemany(
            "UPDATE categories SET name_key = ? WHERE id = ?",
            [(str(row[1]).casefold(), row[0]) for row in rows],
        )
        logger.info(f"Migration v1 to v2: keyed {len(rows)} categories.")
    conn.execute(
        "CREATE UNIQUE INDEX IF NOT EXISTS idx_categories_name_key "
        "ON categories (name_key)"
    )


_MIGRATIONS: dict[int, Callable[[sqlite3.Connection, StructuredLogger], None]] = {
    2: _migrate_v1_to_v2,
}


def _run_incremental_migrations(
    conn: sqlite3.Connection,
    logger: StructuredLogger,
    from_version: int,
    to_version: int,
) -> None:
    """Run the registered migrations in ``(from_version, to_version]``.

    Does **not** commit.
    """
    for version in sorted(v for v in _MIGRATIONS if from_version < v <= to_version):
        logger.info(f"Running migration to version {version}...")
        _MIGRATIONS[version](conn, logger)


def initialize_schema(conn: sqlite3.Connection, logger: StructuredLogger) -> None:
    """Ensure the local SQLite database matches the current schema version.

    Idempotent: safe to call on every startup.  A fresh database gets
    every table and the seeded alert rules; an existing one runs the
    migrations registered in :data:`_MIGRATIONS`.  The upgrade and the
    version bump run in one transaction; on failure everything is rolled
    back and the next startup retries.
    """
    _ensure_version_table(conn)
    current: int = _get_schema_version(conn)

    if current >= CURRENT_SCHEMA_VERSION:
        logger.info(f"Schema is up to date (version {current}).")
        return

    logger.info(
        f"Upgrading schema from version {current} to {CURRENT_SCHEMA_VERSION}..."
    )

    try:
        if current == 0:
            _create_all_tables(conn, logger)
            _seed_alert_rules(conn, logger)
        else:
            _run_incremental_migrations(conn, logger, current, CURRENT_SCHEMA_VERSION)
        _set_schema_version(conn, CURRENT_SCHEMA_VERSION)
        conn.commit()
    except Exception:
        conn.rollback()
        logger.error(
            f"Schema initialisation failed; rolled back to version {current}."
        )
        raise

    logger.info(f"Schema initialised at version {CURRENT_SCHEMA_VERSION}.")
