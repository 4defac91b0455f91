"""
Synchronous connection to the remote dictionary store.
Uses psycopg2 against a hosted PostgreSQL instance.
"""

from typing import Optional

import psycopg2
import psycopg2.errors

from yomidb.config import get_db_config
from yomidb.db.schema_pg import POSTGRES_SCHEMA


def open_connection(config: Optional[dict] = None):
    """Open a psycopg2 connection using the given or environment configuration."""
    config = config or get_db_config()
    return psycopg2.connect(
        host=config["host"],
        port=config["port"],
        dbname=config["database"],
        user=config["user"],
        password=config["password"],
        connect_timeout=config.get("connect_timeout", 10),
        options=f"-c search_path={config.get('schema', 'yomitan')},public",
    )


def create_database_sync(conn, schema: str = "yomitan") -> None:
    """Create the remote schema on an open connection."""
    cursor = conn.cursor()
    # Execute schema statements one by one
    for statement in POSTGRES_SCHEMA.format(schema=schema).split(";"):
        statement = statement.strip()
        if statement:
            try:
                cursor.execute(statement)
                conn.commit()
            except (psycopg2.errors.DuplicateTable, psycopg2.errors.DuplicateObject):
                # Created concurrently by another importer
                conn.rollback()
