"""
Import pipeline for Yomitan dictionary archives.

    index.json -> registrar -> for each bank file:
        decode -> intern (terms) -> batched/transactional write

The registrar gates the whole import: an installed (title, revision) is a
no-op. Any fatal error after registration removes the partial dictionary.
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from tqdm import tqdm

from yomidb.backends.base import StorageBackend
from yomidb.config import get_import_config
from yomidb.data.archive import bank_counts, iter_bank_files, read_index
from yomidb.data.banks import (
    KanjiEntry,
    KanjiMetaEntry,
    TagEntry,
    TermEntry,
    TermMetaEntry,
    decode_bank,
)
from yomidb.errors import NotFoundError
from yomidb.services.interner import ContentInterner
from yomidb.services.registrar import DictionaryRegistrar
from yomidb.services.retry import BackoffPolicy
from yomidb.services.writer import BatchWriter

# Bank kind -> destination table
BANK_TABLES = {
    "term": "terms",
    "term_meta": "term_meta",
    "tag": "tags",
    "kanji": "kanji",
    "kanji_meta": "kanji_meta",
}


@dataclass
class ImportResult:
    title: str
    revision: str
    dict_id: Optional[int] = None
    skipped: bool = False
    counts: Dict[str, int] = field(default_factory=dict)
    interned: Dict[str, int] = field(default_factory=dict)
    elapsed: float = 0.0


def _json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def term_rows(entries: List[TermEntry], dict_id: int, interner: ContentInterner) -> Iterator[tuple]:
    """Term rows with glossary, tag and rule references resolved."""
    for entry in entries:
        glossary_id = interner.glossary(entry.glossary)
        yield (
            dict_id,
            entry.term,
            entry.reading,
            interner.string("def_tag_sets", entry.definition_tags),
            interner.string("rule_sets", entry.rules),
            entry.score,
            glossary_id,
            entry.sequence,
            interner.string("term_tag_sets", entry.term_tags),
        )


def term_meta_rows(entries: List[TermMetaEntry], dict_id: int) -> Iterator[tuple]:
    for entry in entries:
        yield (dict_id, entry.term, entry.mode, entry.reading, _json(entry.data))


def tag_rows(entries: List[TagEntry], dict_id: int) -> Iterator[tuple]:
    for entry in entries:
        yield (
            dict_id,
            entry.name,
            entry.category,
            entry.sort_order,
            entry.notes,
            entry.score,
        )


def kanji_rows(entries: List[KanjiEntry], dict_id: int) -> Iterator[tuple]:
    for entry in entries:
        yield (
            dict_id,
            entry.character,
            entry.onyomi,
            entry.kunyomi,
            entry.tags,
            _json(entry.meanings),
            _json(entry.stats),
        )


def kanji_meta_rows(entries: List[KanjiMetaEntry], dict_id: int) -> Iterator[tuple]:
    for entry in entries:
        yield (dict_id, entry.kanji, entry.mode, _json(entry.data))


def build_rows(kind: str, entries: list, dict_id: int, interner: ContentInterner) -> Iterator[tuple]:
    """Row tuples (in TABLE_COLUMNS order) for one decoded bank."""
    if kind == "term":
        return term_rows(entries, dict_id, interner)
    if kind == "term_meta":
        return term_meta_rows(entries, dict_id)
    if kind == "tag":
        return tag_rows(entries, dict_id)
    if kind == "kanji":
        return kanji_rows(entries, dict_id)
    if kind == "kanji_meta":
        return kanji_meta_rows(entries, dict_id)
    raise ValueError(f"Unknown bank kind: {kind}")


def import_archive(
    archive_path: Union[str, Path],
    backend: StorageBackend,
    is_bundled: bool = False,
    batch_size: Optional[int] = None,
    policy: Optional[BackoffPolicy] = None,
    progress: bool = True,
) -> ImportResult:
    """
    Import one dictionary archive into backend.

    Args:
        archive_path: Path to the dictionary zip
        backend: Destination store
        is_bundled: Mark the dictionary as shipped with the application
        batch_size: Rows per remote write (IMPORT_BATCH_SIZE by default)
        policy: Retry policy for remote calls (IMPORT_* settings by default)
        progress: Show per-bank progress bars

    Raises:
        NotFoundError: archive or index.json missing (nothing written)
        DecodeError: corrupt archive or bank (partial dictionary removed)
        StorageError: storage failure (partial dictionary removed)
    """
    config = get_import_config()
    batch_size = batch_size or config["batch_size"]
    policy = policy or BackoffPolicy.from_env()
    start = time.time()

    index = read_index(archive_path)
    print(f"Dictionary: {index.title} ({index.revision})")
    result = ImportResult(title=index.title, revision=index.revision)

    registrar = DictionaryRegistrar(backend, policy)
    dict_id = registrar.register(index, is_bundled)
    if dict_id is None:
        print("Already installed - skipping.")
        result.skipped = True
        result.elapsed = time.time() - start
        return result
    result.dict_id = dict_id

    interner = ContentInterner(backend, policy)
    writer = BatchWriter(backend, batch_size, policy)
    counts = bank_counts(archive_path)

    try:
        for bank in iter_bank_files(archive_path):
            entries = decode_bank(bank.kind, bank.content, bank.name)
            table = BANK_TABLES[bank.kind]
            rows = tqdm(
                build_rows(bank.kind, entries, dict_id, interner),
                total=len(entries),
                desc=f"{bank.name} ({bank.number}/{counts[bank.kind]})",
                unit=" rows",
                disable=None if progress else True,
                leave=False,
            )
            writer.write_bank(table, rows)
        registrar.complete(dict_id)
    except BaseException:
        registrar.abandon(dict_id)
        raise

    result.counts = {table: writer.totals.get(table, 0) for table in BANK_TABLES.values()}
    result.interned = interner.cache_info()

    for table, total in result.counts.items():
        if total:
            print(f"  {table}: {total:,} rows")
    print(f"  Dictionary id: {dict_id}")

    print(f"Finalizing {backend.name} store...")
    backend.finalize()
    result.elapsed = time.time() - start
    return result


def import_directory(
    directory: Union[str, Path],
    backend: StorageBackend,
    is_bundled: bool = False,
    **kwargs,
) -> List[ImportResult]:
    """Import every *.zip in directory, skipping archives without index.json."""
    directory = Path(directory)
    if not directory.is_dir():
        raise NotFoundError(f"Directory not found: {directory}")

    results = []
    for archive in sorted(directory.glob("*.zip")):
        print(f"\nProcessing archive: {archive.name}")
        try:
            results.append(import_archive(archive, backend, is_bundled, **kwargs))
        except NotFoundError as e:
            print(f"  Skipping {archive.name}: {e}")
    return results
