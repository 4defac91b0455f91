"""
Embedded database connection module using SQLite.
Opens the store with import-friendly PRAGMA settings and bootstraps the schema.
"""

import sqlite3
from pathlib import Path
from typing import Union

from yomidb.db.schema import SCHEMA_SQL, SCHEMA_VERSION
from yomidb.errors import DatabaseError


def get_db_connection(db_path: Union[str, Path] = ":memory:") -> sqlite3.Connection:
    """Open an SQLite connection for importing or querying."""
    db_path_str = str(db_path)
    if db_path_str != ":memory:":
        Path(db_path_str).parent.mkdir(parents=True, exist_ok=True)

    # isolation_level=None: transactions are opened explicitly with BEGIN
    conn = sqlite3.connect(db_path_str, isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    if db_path_str != ":memory:":
        conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA synchronous = NORMAL")
    conn.execute("PRAGMA cache_size = -65536")
    conn.execute("PRAGMA temp_store = MEMORY")
    return conn


def check_schema_version(conn: sqlite3.Connection) -> None:
    """Verify the stored schema version matches this release."""
    try:
        row = conn.execute(
            "SELECT value FROM schema_meta WHERE key = 'schema_version'"
        ).fetchone()
    except sqlite3.OperationalError:
        # schema_meta doesn't exist yet - fresh database
        return
    if row is None:
        return
    if row[0] != SCHEMA_VERSION:
        raise DatabaseError(
            f"Incompatible schema version: {row[0]} (expected {SCHEMA_VERSION})"
        )


def create_database(conn: sqlite3.Connection) -> None:
    """Create the schema if needed and record its version."""
    check_schema_version(conn)
    conn.executescript(SCHEMA_SQL)
    conn.execute(
        "INSERT OR IGNORE INTO schema_meta (key, value) VALUES ('schema_version', ?)",
        (SCHEMA_VERSION,),
    )
    conn.execute(
        "INSERT OR IGNORE INTO schema_meta (key, value) "
        "VALUES ('created_at', datetime('now'))"
    )
