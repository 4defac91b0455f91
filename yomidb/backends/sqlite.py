"""
Embedded storage backend: a single SQLite file, written by one process.

Each bank file is written inside one transaction; interning uses
INSERT ... ON CONFLICT DO NOTHING followed by a re-read of the id.
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from yomidb.backends.base import DictionaryRecord, StorageBackend
from yomidb.data.banks import DictIndex
from yomidb.db.connection import create_database, get_db_connection
from yomidb.db.schema import (
    IGNORE_DUPLICATES,
    INTERN_TABLES,
    ROW_KEY_COLUMN,
    TABLE_COLUMNS,
)
from yomidb.errors import ConstraintViolation, DatabaseError, StorageError


def insert_sql(table: str, placeholder: str = "?") -> str:
    """Build the INSERT statement for a bank table."""
    columns = TABLE_COLUMNS[table]
    sql = (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({', '.join([placeholder] * len(columns))})"
    )
    if table in IGNORE_DUPLICATES:
        sql += f" ON CONFLICT ({', '.join(IGNORE_DUPLICATES[table])}) DO NOTHING"
    return sql


class SqliteBackend(StorageBackend):
    name = "sqlite"
    per_file_transactions = True

    def __init__(self, db_path: Union[str, Path] = ":memory:"):
        self.db_path = str(db_path)
        try:
            self.conn = get_db_connection(self.db_path)
            create_database(self.conn)
        except (sqlite3.Error, OSError) as e:
            raise DatabaseError(f"Could not open {self.db_path}: {e}") from e

    @contextmanager
    def _errors(self, table: str, value=None) -> Iterator[None]:
        """Translate driver errors raised while touching table."""
        try:
            yield
        except sqlite3.IntegrityError as e:
            raise ConstraintViolation(table, value, str(e)) from e
        except sqlite3.Error as e:
            raise StorageError(f"{table}: {e}") from e

    @contextmanager
    def transaction(self) -> Iterator[None]:
        # Nested calls join the enclosing transaction
        if self.conn.in_transaction:
            yield
            return
        with self._errors("transaction"):
            self.conn.execute("BEGIN")
        try:
            yield
        except BaseException:
            # SQLite may already have rolled back on its own
            if self.conn.in_transaction:
                self.conn.execute("ROLLBACK")
            raise
        with self._errors("transaction"):
            self.conn.execute("COMMIT")

    # -- dictionaries -------------------------------------------------------

    def find_dictionary(self, title: str, revision: str) -> Optional[DictionaryRecord]:
        with self._errors("dictionaries"):
            row = self.conn.execute(
                "SELECT id, title, revision, completed_at FROM dictionaries "
                "WHERE title = ? AND revision = ?",
                (title, revision),
            ).fetchone()
        if row is None:
            return None
        return DictionaryRecord(
            row["id"], row["title"], row["revision"], row["completed_at"] is not None
        )

    def list_dictionaries(self) -> List[DictionaryRecord]:
        with self._errors("dictionaries"):
            rows = self.conn.execute(
                "SELECT id, title, revision, completed_at FROM dictionaries ORDER BY id"
            ).fetchall()
        return [
            DictionaryRecord(r["id"], r["title"], r["revision"], r["completed_at"] is not None)
            for r in rows
        ]

    def register_dictionary(self, index: DictIndex, is_bundled: bool) -> Optional[int]:
        with self._errors("dictionaries", (index.title, index.revision)):
            cursor = self.conn.execute(
                """INSERT INTO dictionaries
                       (title, revision, format, author, url, description,
                        attribution, frequency_mode, sequenced, is_bundled)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                   ON CONFLICT (title, revision) DO NOTHING""",
                (
                    index.title,
                    index.revision,
                    index.format,
                    index.author,
                    index.url,
                    index.description,
                    index.attribution,
                    index.frequency_mode,
                    int(index.sequenced),
                    int(is_bundled),
                ),
            )
        if cursor.rowcount == 0:
            return None
        return cursor.lastrowid

    def mark_complete(self, dict_id: int) -> None:
        with self._errors("dictionaries", dict_id):
            self.conn.execute(
                "UPDATE dictionaries SET completed_at = datetime('now') WHERE id = ?",
                (dict_id,),
            )

    def remove_dictionary(self, dict_id: int) -> None:
        with self.transaction(), self._errors("dictionaries", dict_id):
            self.conn.execute("DELETE FROM dictionaries WHERE id = ?", (dict_id,))

    # -- interning ----------------------------------------------------------

    def intern_glossary(self, digest: str, serialized: str) -> int:
        with self._errors("glossaries", digest):
            self.conn.execute(
                "INSERT INTO glossaries (hash, content) VALUES (?, ?) "
                "ON CONFLICT (hash) DO NOTHING",
                (digest, serialized),
            )
            row = self.conn.execute(
                "SELECT id FROM glossaries WHERE hash = ?", (digest,)
            ).fetchone()
        return row[0]

    def intern_string(self, table: str, value: str) -> int:
        column = INTERN_TABLES[table]
        with self._errors(table, value):
            self.conn.execute(
                f"INSERT INTO {table} ({column}) VALUES (?) ON CONFLICT ({column}) DO NOTHING",
                (value,),
            )
            row = self.conn.execute(
                f"SELECT id FROM {table} WHERE {column} = ?", (value,)
            ).fetchone()
        return row[0]

    # -- bank rows ----------------------------------------------------------

    def insert_batch(self, table: str, rows: Sequence[tuple]) -> int:
        sql = insert_sql(table)
        key_index = TABLE_COLUMNS[table].index(ROW_KEY_COLUMN[table])
        written = 0
        with self.transaction():
            cursor = self.conn.cursor()
            for row in rows:
                with self._errors(table, row[key_index]):
                    cursor.execute(sql, row)
                written += cursor.rowcount
        return written

    # -- maintenance --------------------------------------------------------

    def finalize(self) -> None:
        """Reclaim space freed by the import and fold the WAL into the file."""
        with self._errors("maintenance"):
            self.conn.execute("VACUUM")
            if self.db_path != ":memory:":
                self.conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")

    def close(self) -> None:
        self.conn.close()
