"""
Storage backend interface shared by the embedded and remote stores.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

from yomidb.data.banks import DictIndex


@dataclass(frozen=True)
class DictionaryRecord:
    id: int
    title: str
    revision: str
    completed: bool


class StorageBackend(ABC):
    """
    A relational store for imported dictionaries.

    Implementations must enforce UNIQUE constraints on glossary hashes and
    interned strings, and resolve insert conflicts by re-reading the existing
    id, since other importers may be writing at the same time.
    """

    name = "storage"

    # True when a whole bank file can be written inside one transaction.
    # False for network stores, which receive fixed-size batches instead.
    per_file_transactions = True

    def dictionary_exists(self, title: str, revision: str) -> bool:
        """True if a completed import of (title, revision) is present."""
        record = self.find_dictionary(title, revision)
        return record is not None and record.completed

    @abstractmethod
    def find_dictionary(self, title: str, revision: str) -> Optional[DictionaryRecord]:
        """Look up a dictionary by identity, completed or not."""

    @abstractmethod
    def register_dictionary(self, index: DictIndex, is_bundled: bool) -> Optional[int]:
        """
        Insert a new (incomplete) dictionary row and return its id.

        Returns None when a row with the same (title, revision) already exists.
        """

    @abstractmethod
    def mark_complete(self, dict_id: int) -> None:
        """Stamp a dictionary as fully imported."""

    @abstractmethod
    def remove_dictionary(self, dict_id: int) -> None:
        """Delete a dictionary and every row that references it."""

    @abstractmethod
    def intern_glossary(self, digest: str, serialized: str) -> int:
        """Return the id of the glossary with this hash, inserting it if absent."""

    @abstractmethod
    def intern_string(self, table: str, value: str) -> int:
        """Return the id of value in an interned string table, inserting if absent."""

    @abstractmethod
    def insert_batch(self, table: str, rows: Sequence[tuple]) -> int:
        """Insert rows (tuples in TABLE_COLUMNS order); return the count written."""

    @abstractmethod
    def list_dictionaries(self) -> List[DictionaryRecord]:
        """All dictionary rows, in install order."""

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group writes atomically. A no-op unless the backend overrides it."""
        yield

    def finalize(self) -> None:
        """Post-import maintenance (compaction, statistics)."""

    def close(self) -> None:
        """Release the underlying connection."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
