"""
Batched, transactional writes of bank rows.

The embedded store takes a whole bank file per transaction, which keeps peak
memory at one bank and lets SQLite checkpoint its WAL between files. The
remote store takes fixed-size batches, one network write each, retried with
backoff on transient failures.
"""

from collections import defaultdict
from itertools import islice
from typing import Dict, Iterable, Iterator, List, Optional

from yomidb.backends.base import StorageBackend
from yomidb.services.retry import BackoffPolicy, retry_call

DEFAULT_BATCH_SIZE = 500


def chunked(rows: Iterable[tuple], size: int) -> Iterator[List[tuple]]:
    """Split an iterable into lists of at most size items."""
    iterator = iter(rows)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


class BatchWriter:
    def __init__(
        self,
        backend: StorageBackend,
        batch_size: int = DEFAULT_BATCH_SIZE,
        policy: Optional[BackoffPolicy] = None,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.backend = backend
        self.batch_size = batch_size
        self.policy = policy
        self.totals: Dict[str, int] = defaultdict(int)

    def write_bank(self, table: str, rows: Iterable[tuple]) -> int:
        """
        Write the rows of one bank file.

        rows may be a lazy iterable whose production interns content; it is
        consumed inside the write so that interned ids exist before the rows
        referencing them are stored.
        """
        if self.backend.per_file_transactions:
            with self.backend.transaction():
                written = self.backend.insert_batch(table, list(rows))
        else:
            written = 0
            for batch in chunked(rows, self.batch_size):
                written += retry_call(
                    self.backend.insert_batch,
                    table,
                    batch,
                    policy=self.policy,
                    description=f"{table} batch",
                )

        self.totals[table] += written
        return written
