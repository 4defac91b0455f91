"""
Configuration for the dictionary importer.
Loads settings from environment variables (and a local .env file).
"""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def get_db_config() -> dict:
    """Get remote PostgreSQL configuration from environment variables."""
    return {
        "host": os.getenv("DB_HOST", "localhost"),
        "port": int(os.getenv("DB_PORT", "5432")),
        "database": os.getenv("DB_NAME", "yomitan"),
        "user": os.getenv("DB_USER", "yomitan"),
        "password": os.getenv("DB_PASSWORD", ""),
        "schema": os.getenv("DB_SCHEMA", "yomitan"),
        "connect_timeout": int(os.getenv("DB_CONNECT_TIMEOUT", "10")),
    }


def get_sqlite_path() -> Path:
    """Get the default embedded database path."""
    return Path(os.getenv("YOMIDB_PATH", "data/yomitan.db"))


def get_import_config() -> dict:
    """Get batching and retry settings for imports."""
    return {
        "batch_size": int(os.getenv("IMPORT_BATCH_SIZE", "500")),
        "max_attempts": int(os.getenv("IMPORT_MAX_ATTEMPTS", "3")),
        "retry_delay": float(os.getenv("IMPORT_RETRY_DELAY", "1.0")),
        "retry_multiplier": float(os.getenv("IMPORT_RETRY_MULTIPLIER", "2.0")),
    }
