# src/gtd/tasks/migrations.py

"""
Schema for the tasks table and its online migration.

SQLite cannot alter a CHECK constraint in place, so widening the state
enumeration (adding INBOX/INVALID to an older store) is done by rebuilding the
table inside one transaction:

    create shadow -> copy rows -> drop old -> rename shadow -> indexes + trigger

Any failure rolls the whole sequence back and the original table stays as it
was. Running the migration on an up-to-date store is a no-op.
"""

from __future__ import annotations

import logging
import re
import sqlite3

from ..core.errors import MigrationError

logger = logging.getLogger(__name__)

TABLE = "tasks"
SHADOW_TABLE = "tasks_new"

# Column order matches the legacy layout so old rows copy one-to-one.
COLUMNS: tuple[str, ...] = (
    "id",
    "parent",
    "priority",
    "state",
    "kind",
    "title",
    "description",
    "author",
    "created",
    "updated",
    "source",
    "blocked_by",
    "tags",
)

REQUIRED_STATE_TOKENS: tuple[str, ...] = ("'INBOX'", "'INVALID'")

_STATE_CHECK_RE = re.compile(r"CHECK\s*\(\s*state\s+IN\s*\(([^)]*)\)", re.IGNORECASE)


def create_table_sql(name: str = TABLE, *, if_not_exists: bool = True) -> str:
    guard = "IF NOT EXISTS " if if_not_exists else ""
    return f"""
        CREATE TABLE {guard}{name} (
            id          TEXT PRIMARY KEY,
            parent      TEXT REFERENCES {name}(id),
            priority    TEXT CHECK(priority IN ('high', 'medium', 'low')) DEFAULT 'medium',
            state       TEXT CHECK(state IN ('INBOX', 'NEW', 'IN_PROGRESS', 'DONE', 'CANCELLED', 'INVALID')) DEFAULT 'INBOX',
            kind        TEXT CHECK(kind IN ('BUG', 'FEATURE', 'REGRESSION')) NOT NULL,
            title       TEXT NOT NULL,
            description TEXT,
            author      TEXT NOT NULL,
            created     REAL DEFAULT ((julianday('now') - 2440587.5) * 86400.0),
            updated     REAL DEFAULT ((julianday('now') - 2440587.5) * 86400.0),
            source      TEXT,
            blocked_by  TEXT REFERENCES {name}(id),
            tags        TEXT
        )
        """


INDEX_SQL: tuple[str, ...] = (
    "CREATE INDEX IF NOT EXISTS idx_state_priority ON tasks(state, priority)",
    "CREATE INDEX IF NOT EXISTS idx_parent ON tasks(parent)",
    "CREATE INDEX IF NOT EXISTS idx_id_prefix ON tasks(substr(id, 1, 7))",
    "CREATE INDEX IF NOT EXISTS idx_kind_state ON tasks(kind, state)",
    "CREATE INDEX IF NOT EXISTS idx_blocked_by ON tasks(blocked_by) WHERE blocked_by IS NOT NULL",
    "CREATE INDEX IF NOT EXISTS idx_created ON tasks(created)",
    "CREATE INDEX IF NOT EXISTS idx_updated ON tasks(updated)",
    "CREATE INDEX IF NOT EXISTS idx_tags ON tasks(tags) WHERE tags IS NOT NULL",
)

# Bumps `updated` for any write that did not set it itself (the store always does).
TRIGGER_SQL = """
    CREATE TRIGGER IF NOT EXISTS update_task_timestamp
    AFTER UPDATE ON tasks
    WHEN NEW.updated = OLD.updated
    BEGIN
        UPDATE tasks
        SET updated = (julianday('now') - 2440587.5) * 86400.0
        WHERE id = NEW.id;
    END
    """


def table_sql(conn: sqlite3.Connection, name: str = TABLE) -> str | None:
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type = 'table' AND name = ?",
        (name,),
    ).fetchone()
    return None if row is None else str(row[0])


def table_columns(conn: sqlite3.Connection, name: str = TABLE) -> set[str]:
    return {str(row[1]) for row in conn.execute(f"PRAGMA table_info({name})").fetchall()}


def needs_migration(conn: sqlite3.Connection) -> bool:
    """True when a tasks table exists and its state CHECK lacks the newer states."""
    sql = table_sql(conn)
    if sql is None:
        return False
    m = _STATE_CHECK_RE.search(sql)
    if m is None:
        return True
    allowed = m.group(1)
    return not all(tok in allowed for tok in REQUIRED_STATE_TOKENS)


def _run_in_transaction(conn: sqlite3.Connection, statements: list[str]) -> None:
    prev = conn.isolation_level
    conn.isolation_level = None
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            for stmt in statements:
                conn.execute(stmt)
        except BaseException:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.isolation_level = prev


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the table, indexes and trigger when missing (idempotent)."""
    _run_in_transaction(conn, [create_table_sql(TABLE), *INDEX_SQL, TRIGGER_SQL])


def migrate(conn: sqlite3.Connection) -> bool:
    """
    Rebuild the tasks table with the current state constraint if needed.

    Returns True when a migration ran, False when the store was already current.
    Raises MigrationError (original table untouched) on any failure.

    Run it on a connection with foreign keys OFF and no open transaction.
    """
    if not needs_migration(conn):
        logger.debug("Tasks schema is current; no migration needed.")
        return False

    if conn.in_transaction:
        raise MigrationError("migration must not run inside an open transaction")

    old_cols = table_columns(conn)
    shared = [c for c in COLUMNS if c in old_cols]
    cols = ", ".join(shared)

    logger.info(
        "TaskStore migration: rebuilding %s with widened state constraint (columns=%s)",
        TABLE,
        cols,
    )

    statements = [
        create_table_sql(SHADOW_TABLE, if_not_exists=False),
        f"INSERT INTO {SHADOW_TABLE} ({cols}) SELECT {cols} FROM {TABLE}",
        f"DROP TABLE {TABLE}",
        f"ALTER TABLE {SHADOW_TABLE} RENAME TO {TABLE}",
        *INDEX_SQL,
        TRIGGER_SQL,
    ]
    try:
        _run_in_transaction(conn, statements)
    except sqlite3.Error as e:
        raise MigrationError(f"failed to migrate {TABLE} table: {e}") from e

    logger.info("TaskStore migration: %s table migrated", TABLE)
    return True


def ensure_schema(conn: sqlite3.Connection) -> bool:
    """
    Bring the store up to date: migrate an old table, then create whatever is
    missing (fresh table, newer indexes, trigger). Returns True if migrated.
    """
    migrated = migrate(conn)
    create_schema(conn)
    return migrated
