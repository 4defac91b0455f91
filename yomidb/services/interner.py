"""
Content interning: map repeated values to one stored row and its id.

Glossaries are keyed by the SHA-1 of their canonical JSON form; tag and rule
strings by exact value. A per-import cache answers repeats without touching
storage.
"""

import hashlib
import json
from typing import Any, Dict, Optional

from yomidb.backends.base import StorageBackend
from yomidb.db.schema import INTERN_TABLES
from yomidb.services.retry import BackoffPolicy, retry_call


def canonical_json(value: Any) -> str:
    """Deterministic JSON: sorted keys, no insignificant whitespace, raw UTF-8."""
    return json.dumps(value, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def glossary_hash(serialized: str) -> str:
    return hashlib.sha1(serialized.encode("utf-8")).hexdigest()


class ContentInterner:
    """Lookup-or-insert for interned content, scoped to one import."""

    def __init__(self, backend: StorageBackend, policy: Optional[BackoffPolicy] = None):
        self.backend = backend
        self.policy = policy
        self._glossaries: Dict[str, int] = {}
        self._strings: Dict[str, Dict[str, int]] = {table: {} for table in INTERN_TABLES}

    def glossary(self, content: Any) -> int:
        """Return the id of the stored glossary equal to content."""
        serialized = canonical_json(content)
        digest = glossary_hash(serialized)
        cached = self._glossaries.get(digest)
        if cached is not None:
            return cached

        glossary_id = retry_call(
            self.backend.intern_glossary,
            digest,
            serialized,
            policy=self.policy,
            description="glossary intern",
        )
        self._glossaries[digest] = glossary_id
        return glossary_id

    def string(self, table: str, value: Optional[str]) -> Optional[int]:
        """Return the id of value in table; None for a missing or blank value."""
        if value is None or not value.strip():
            return None
        value = value.strip()
        cache = self._strings[table]
        cached = cache.get(value)
        if cached is not None:
            return cached

        value_id = retry_call(
            self.backend.intern_string,
            table,
            value,
            policy=self.policy,
            description=f"{table} intern",
        )
        cache[value] = value_id
        return value_id

    def cache_info(self) -> Dict[str, int]:
        info = {"glossaries": len(self._glossaries)}
        info.update({table: len(cache) for table, cache in self._strings.items()})
        return info
