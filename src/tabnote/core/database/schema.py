"""SQLite schema and durable key-value storage for tabnote."""

import sqlite3
from pathlib import Path

SCHEMA_VERSION = 1

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS key_value (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS metadata (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create all tables."""
    conn.executescript(_SCHEMA_SQL)
    conn.execute(
        "INSERT OR REPLACE INTO metadata (key, value) VALUES (?, ?)",
        ("schema_version", str(SCHEMA_VERSION)),
    )
    conn.commit()


def get_schema_version(conn: sqlite3.Connection) -> int | None:
    """Return the current schema version, or None if metadata table doesn't exist."""
    try:
        row = conn.execute(
            "SELECT value FROM metadata WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        return None
    return int(row[0]) if row else None


def migrate_schema(conn: sqlite3.Connection) -> None:
    """Create or migrate the database schema to the latest version."""
    version = get_schema_version(conn)
    if version is None:
        create_schema(conn)


class SqliteBackingStore:
    """Durable key-value storage in a single SQLite table.

    Every ``set`` and ``remove`` commits immediately; batching is the job of
    the caller (see ``PersistentStore``). sqlite3 errors are not caught.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn
        migrate_schema(conn)

    @classmethod
    def open(cls, data_dir: Path, filename: str) -> "SqliteBackingStore":
        data_dir.mkdir(parents=True, exist_ok=True)
        return cls(sqlite3.connect(str(data_dir / filename)))

    def get(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM key_value WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO key_value (key, value) VALUES (?, ?)", (key, value)
        )
        self.conn.commit()

    def remove(self, key: str) -> None:
        self.conn.execute("DELETE FROM key_value WHERE key = ?", (key,))
        self.conn.commit()

    def keys(self) -> list[str]:
        return [row[0] for row in self.conn.execute("SELECT key FROM key_value ORDER BY key")]

    def close(self) -> None:
        self.conn.close()
