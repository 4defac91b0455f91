"""
Remote storage backend: a hosted PostgreSQL database reached over the network.

Every call runs in its own short transaction so a batch is either fully
visible or not at all. Connection-level failures surface as
TransientStorageError (the caller decides whether to retry) and the
connection is reopened on the next call. Other importers may be writing
concurrently, so interning relies on ON CONFLICT DO NOTHING plus a re-read.
"""

from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Sequence

import psycopg2
from psycopg2.extras import execute_values

from yomidb.backends.base import DictionaryRecord, StorageBackend
from yomidb.config import get_db_config
from yomidb.data.banks import DictIndex
from yomidb.db.db_sync import create_database_sync, open_connection
from yomidb.db.schema import IGNORE_DUPLICATES, INTERN_TABLES, TABLE_COLUMNS
from yomidb.errors import ConstraintViolation, StorageError, TransientStorageError

TRANSIENT_ERRORS = (psycopg2.OperationalError, psycopg2.InterfaceError)

ANALYZE_TABLES = (
    "dictionaries",
    "glossaries",
    "def_tag_sets",
    "term_tag_sets",
    "rule_sets",
    "terms",
    "term_meta",
    "tags",
    "kanji",
    "kanji_meta",
)


def batch_insert_sql(table: str) -> str:
    """INSERT statement for psycopg2's execute_values (single VALUES %s)."""
    sql = f"INSERT INTO {table} ({', '.join(TABLE_COLUMNS[table])}) VALUES %s"
    if table in IGNORE_DUPLICATES:
        sql += f" ON CONFLICT ({', '.join(IGNORE_DUPLICATES[table])}) DO NOTHING"
    return sql


class PostgresBackend(StorageBackend):
    name = "postgres"
    per_file_transactions = False

    def __init__(self, config: Optional[dict] = None, connect: Callable = open_connection):
        self.config = config or get_db_config()
        self.schema = self.config.get("schema", "yomitan")
        self._connect = connect
        self._conn = None

        try:
            create_database_sync(self._connection(), self.schema)
        except TRANSIENT_ERRORS as e:
            self._discard()
            raise TransientStorageError(f"Could not reach remote store: {e}") from e

    def _connection(self):
        if self._conn is None or self._conn.closed:
            self._conn = self._connect(self.config)
        return self._conn

    def _discard(self) -> None:
        """Drop a connection that may be broken; the next call reconnects."""
        if self._conn is not None:
            try:
                self._conn.close()
            except psycopg2.Error:
                pass
        self._conn = None

    @contextmanager
    def _cursor(self, table: str, value=None) -> Iterator:
        """One unit of work in its own transaction, with driver errors translated."""
        try:
            conn = self._connection()
            with conn.cursor() as cursor:
                yield cursor
            conn.commit()
        except psycopg2.IntegrityError as e:
            self._rollback()
            detail = getattr(e.diag, "message_detail", None)
            raise ConstraintViolation(
                table, value if value is not None else detail, e.pgerror or str(e)
            ) from e
        except TRANSIENT_ERRORS as e:
            self._discard()
            raise TransientStorageError(f"{table}: {e}") from e
        except psycopg2.Error as e:
            self._rollback()
            raise StorageError(f"{table}: {e}") from e

    def _rollback(self) -> None:
        """Leave an aborted transaction so the connection stays usable."""
        try:
            self._conn.rollback()
        except TRANSIENT_ERRORS:
            self._discard()

    # -- dictionaries -------------------------------------------------------

    def find_dictionary(self, title: str, revision: str) -> Optional[DictionaryRecord]:
        with self._cursor("dictionaries") as cursor:
            cursor.execute(
                "SELECT id, title, revision, completed_at IS NOT NULL "
                "FROM dictionaries WHERE title = %s AND revision = %s",
                (title, revision),
            )
            row = cursor.fetchone()
        return DictionaryRecord(*row) if row else None

    def list_dictionaries(self) -> List[DictionaryRecord]:
        with self._cursor("dictionaries") as cursor:
            cursor.execute(
                "SELECT id, title, revision, completed_at IS NOT NULL "
                "FROM dictionaries ORDER BY id"
            )
            rows = cursor.fetchall()
        return [DictionaryRecord(*row) for row in rows]

    def register_dictionary(self, index: DictIndex, is_bundled: bool) -> Optional[int]:
        with self._cursor("dictionaries", (index.title, index.revision)) as cursor:
            cursor.execute(
                """INSERT INTO dictionaries
                       (title, revision, format, author, url, description,
                        attribution, frequency_mode, sequenced, is_bundled)
                   VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                   ON CONFLICT (title, revision) DO NOTHING
                   RETURNING id""",
                (
                    index.title,
                    index.revision,
                    index.format,
                    index.author,
                    index.url,
                    index.description,
                    index.attribution,
                    index.frequency_mode,
                    index.sequenced,
                    is_bundled,
                ),
            )
            row = cursor.fetchone()
        return row[0] if row else None

    def mark_complete(self, dict_id: int) -> None:
        with self._cursor("dictionaries", dict_id) as cursor:
            cursor.execute(
                "UPDATE dictionaries SET completed_at = now() WHERE id = %s", (dict_id,)
            )

    def remove_dictionary(self, dict_id: int) -> None:
        with self._cursor("dictionaries", dict_id) as cursor:
            cursor.execute("DELETE FROM dictionaries WHERE id = %s", (dict_id,))

    # -- interning ----------------------------------------------------------

    def intern_glossary(self, digest: str, serialized: str) -> int:
        with self._cursor("glossaries", digest) as cursor:
            cursor.execute(
                "INSERT INTO glossaries (hash, content) VALUES (%s, %s::jsonb) "
                "ON CONFLICT (hash) DO NOTHING RETURNING id",
                (digest, serialized),
            )
            row = cursor.fetchone()
            if row is None:
                # Inserted earlier, possibly by another importer
                cursor.execute("SELECT id FROM glossaries WHERE hash = %s", (digest,))
                row = cursor.fetchone()
        return row[0]

    def intern_string(self, table: str, value: str) -> int:
        column = INTERN_TABLES[table]
        with self._cursor(table, value) as cursor:
            cursor.execute(
                f"INSERT INTO {table} ({column}) VALUES (%s) "
                f"ON CONFLICT ({column}) DO NOTHING RETURNING id",
                (value,),
            )
            row = cursor.fetchone()
            if row is None:
                cursor.execute(f"SELECT id FROM {table} WHERE {column} = %s", (value,))
                row = cursor.fetchone()
        return row[0]

    # -- bank rows ----------------------------------------------------------

    def insert_batch(self, table: str, rows: Sequence[tuple]) -> int:
        if not rows:
            return 0
        with self._cursor(table) as cursor:
            # One statement per batch so rowcount covers every row
            execute_values(cursor, batch_insert_sql(table), rows, page_size=len(rows))
            written = cursor.rowcount
        return written

    # -- maintenance --------------------------------------------------------

    def finalize(self) -> None:
        """Refresh planner statistics after a bulk load."""
        for table in ANALYZE_TABLES:
            with self._cursor(table) as cursor:
                cursor.execute(f"ANALYZE {self.schema}.{table}")

    def close(self) -> None:
        self._discard()
