"""Select a storage backend by name."""

from pathlib import Path
from typing import Optional, Union

from yomidb.backends.base import StorageBackend
from yomidb.config import get_db_config, get_sqlite_path
from yomidb.errors import UsageError

BACKENDS = ("sqlite", "postgres")


def create_backend(
    kind: str = "sqlite", destination: Optional[Union[str, Path]] = None
) -> StorageBackend:
    """
    Open the named backend.

    Args:
        kind: "sqlite" (embedded file) or "postgres" (remote store)
        destination: SQLite file path; unused for postgres, which reads DB_* settings
    """
    if kind == "sqlite":
        from yomidb.backends.sqlite import SqliteBackend

        return SqliteBackend(destination or get_sqlite_path())
    if kind == "postgres":
        from yomidb.backends.postgres import PostgresBackend

        return PostgresBackend(get_db_config())
    raise UsageError(f"Unknown backend {kind!r} (expected one of {', '.join(BACKENDS)})")
